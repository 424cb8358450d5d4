"""Public interface for the LDAP source adapter."""

from __future__ import annotations

from .source import LdapSource, LdapSourceError, connect, to_raw_record

__all__ = ["LdapSource", "LdapSourceError", "connect", "to_raw_record"]
