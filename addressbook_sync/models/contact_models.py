"""Contact record data models."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..exceptions import MalformedRecordError

# Opaque per-installation token, kept as plain text everywhere
DeviceIdentity = str

NAME_FIELDS = ("name", "displayName")
PHONE_FIELDS = ("phone", "phoneNumber")


def short_identity(identity: DeviceIdentity, length: int = 8) -> str:
    """Truncated identity for log lines and listings."""
    return identity[:length]


def _first_present(raw: Mapping[str, Any], fields) -> Any:
    for field_name in fields:
        if field_name in raw:
            return raw[field_name]
    return None


@dataclass(frozen=True)
class ContactRecord:
    """A single name/phone pair, both required."""
    name: str
    phone: str

    def __post_init__(self):
        """Validate required fields."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise MalformedRecordError("name cannot be empty", raw=self.name)
        if not isinstance(self.phone, str) or not self.phone.strip():
            raise MalformedRecordError("phone cannot be empty", raw=self.phone)
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "phone", self.phone.strip())

    @classmethod
    def from_raw(cls, raw: Any) -> "ContactRecord":
        """Build a record from a loosely shaped mapping.

        Accepts both the remote shape (``name``/``phone``) and the local
        source shape (``displayName``/``phoneNumber``).

        Args:
            raw: Value read from the contact source or the remote store

        Returns:
            ContactRecord: Validated record

        Raises:
            MalformedRecordError: If the value is not a mapping or a field is
                missing, not text, or blank
        """
        if not isinstance(raw, Mapping):
            raise MalformedRecordError(f"Expected a mapping, got {type(raw).__name__}", raw=raw)
        return cls(
            name=_first_present(raw, NAME_FIELDS),
            phone=_first_present(raw, PHONE_FIELDS),
        )

    def to_item(self) -> Dict[str, str]:
        """Remote representation."""
        return {"name": self.name, "phone": self.phone}

    def matches(self, query: str) -> bool:
        """Case-insensitive name match or plain substring phone match."""
        if not query:
            return True
        return query.casefold() in self.name.casefold() or query in self.phone
