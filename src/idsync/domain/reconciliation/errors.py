"""Error taxonomy of a reconciliation run.

Fatal errors (``FatalSyncError``) abort the run before any provider mutation.
Canonicalization errors reject one record; action execution errors fail one user.
Neither of the latter ever stops the run.
"""

from __future__ import annotations

from enum import StrEnum


class FatalSyncError(RuntimeError):
    """A precondition shared by every action is unmet; nothing was mutated."""


class SourceFetchError(FatalSyncError):
    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Failed to fetch source `{source}`: {message}")
        self.source = source


class ProviderFetchError(FatalSyncError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Failed to fetch provider population: {message}")


class CanonicalizationError(ValueError):
    """A raw record cannot be turned into a canonical user."""

    def __init__(self, message: str, *, source: str, identifier: str) -> None:
        super().__init__(message)
        self.source = source
        self.identifier = identifier
        # Set once the external id could be read, so the account is not disabled.
        self.external_id: str | None = None

    def __str__(self) -> str:
        return f"{self.source}:{self.identifier}: {self.args[0]}"


class MultiValueUnsupported(CanonicalizationError):
    def __init__(self, attribute: str, *, source: str, identifier: str) -> None:
        super().__init__(
            f"multiple values for single-valued attribute `{attribute}`",
            source=source,
            identifier=identifier,
        )
        self.attribute = attribute


class MissingRequiredField(CanonicalizationError):
    def __init__(self, attribute: str, *, source: str, identifier: str) -> None:
        super().__init__(
            f"missing value for required attribute `{attribute}`",
            source=source,
            identifier=identifier,
        )
        self.attribute = attribute


class MalformedAttribute(CanonicalizationError):
    def __init__(self, attribute: str, reason: str, *, source: str, identifier: str) -> None:
        super().__init__(
            f"malformed value for attribute `{attribute}`: {reason}",
            source=source,
            identifier=identifier,
        )
        self.attribute = attribute


class MalformedStatus(ValueError):
    """The status attribute does not hold an integer bitmask."""


class ExternalIdCollision(CanonicalizationError):
    def __init__(self, external_id: str, *, first_seen: str, source: str, identifier: str) -> None:
        super().__init__(
            f"external id `{external_id}` already claimed by {first_seen}",
            source=source,
            identifier=identifier,
        )
        self.external_id = external_id


class ErrorKind(StrEnum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTH = "auth"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PARTIAL_CREATE = "partial_create"
    UNKNOWN = "unknown"


class ActionExecutionError(RuntimeError):
    """One action against the provider failed; carried in the run report."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        completed_steps: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.completed_steps = completed_steps

    @property
    def retryable(self) -> bool:
        return self.kind in {ErrorKind.TIMEOUT, ErrorKind.NETWORK, ErrorKind.PARTIAL_CREATE}

    def __str__(self) -> str:
        message = f"[{self.kind}] {self.args[0]}"
        if self.completed_steps:
            message += f" (completed: {', '.join(self.completed_steps)})"
        return message
