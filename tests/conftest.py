from __future__ import annotations

import pytest

from idsync.domain.reconciliation import AttributeMappings
from tests.helpers.users import FakeProvider, FakeSource, directory_mappings


@pytest.fixture
def mappings() -> AttributeMappings:
    return directory_mappings()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()
