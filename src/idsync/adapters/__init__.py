"""Adapters connecting the reconciliation core to sources and the identity provider."""
