"""Public interface for the CSV source adapter."""

from __future__ import annotations

from .source import CsvSource, CsvSourceError, to_raw_record

__all__ = ["CsvSource", "CsvSourceError", "to_raw_record"]
