"""Raw attribute value object.

Source values arrive as either text or bytes depending on the adapter (LDAP hands
out bytes, CSV hands out text). Comparing them as strings produces spurious diffs
whenever the two sides disagree on encoding, so every value is normalised to bytes
and compared byte for byte.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class AttributeValue:
    raw: bytes
    binary: bool = field(default=False, compare=False)

    @classmethod
    def of(cls, value: str | bytes, *, binary: bool = False) -> AttributeValue:
        if isinstance(value, str):
            return cls(raw=value.encode("utf-8"), binary=binary)
        return cls(raw=bytes(value), binary=binary)

    @classmethod
    def from_wire(cls, text: str, *, binary: bool = False) -> AttributeValue:
        """Parse a value as the provider stores it (base64 for binary values).

        Text decoded with ``surrogateescape`` turns back into its original bytes.
        """

        if not binary:
            return cls(raw=text.encode("utf-8", errors="surrogateescape"))
        try:
            return cls(raw=base64.b64decode(text, validate=True), binary=True)
        except (binascii.Error, ValueError):
            # Malformed stored values must never compare equal to a source value.
            return cls(raw=b"\x00invalid-base64:" + text.encode("utf-8", errors="surrogateescape"))

    @property
    def text(self) -> str:
        """Provider wire form: UTF-8 text, or standard base64 for binary values."""

        if self.binary:
            return base64.b64encode(self.raw).decode("ascii")
        return self.raw.decode("utf-8")

    def __str__(self) -> str:
        return self.text
