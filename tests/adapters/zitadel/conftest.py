"""Shared fixtures for Zitadel adapter tests."""

from __future__ import annotations

import pytest

from idsync.config.zitadel import ZitadelConfig
from idsync.domain.model import AttributeValue, CanonicalUser, UserField


@pytest.fixture
def zitadel_config() -> ZitadelConfig:
    return ZitadelConfig(
        url="https://zitadel.example.org",
        organization_id="org-1",
        project_id="project-1",
        token="pat-secret",
        idp_id="idp-1",
        page_size=2,
    )


@pytest.fixture
def canonical_user() -> CanonicalUser:
    return CanonicalUser(
        external_id=AttributeValue.of("jdoe"),
        email=AttributeValue.of("jdoe@example.org"),
        phone=AttributeValue.of("+49 30 1234"),
        first_name=AttributeValue.of("Jane"),
        last_name=AttributeValue.of("Doe"),
        display_name=AttributeValue.of("Doe, Jane"),
        preferred_username=AttributeValue.of("jane"),
        managed_fields=frozenset(UserField),
    )
