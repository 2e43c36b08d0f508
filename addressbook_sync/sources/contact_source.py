"""Read-only local contact sources.

A source yields raw ``{"displayName": ..., "phoneNumber": ...}`` pairs, one per
phone number, in file order. Pairs are not validated here; the exporter turns
them into ``ContactRecord`` and skips the malformed ones.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Protocol, Union

import vobject

from ..exceptions import ContactSourceError, PermissionDeniedError

logger = logging.getLogger(__name__)

RawContact = Dict[str, Any]

PERMISSION_NOTICE = "Contacts permission is required."


class ContactSource(Protocol):
    """Enumerates the device's contacts."""

    def read_contacts(self) -> Iterator[RawContact]:
        ...


def parse_vcard_text(text: str) -> Iterator[RawContact]:
    """Yield one pair per TEL property of each vCard in ``text``.

    Raises:
        vobject.base.ParseError: If the text is not well-formed vCard data
    """
    for card in vobject.readComponents(text):
        if card.name != "VCARD":
            continue
        name = str(card.fn.value).strip() if hasattr(card, "fn") else None
        for tel in card.contents.get("tel", []):
            yield {"displayName": name, "phoneNumber": str(tel.value).strip()}


class FileContactSource:
    """Contacts exported to a ``.vcf`` or ``.csv`` file.

    CSV files need ``displayName`` and ``phoneNumber`` columns. Reading
    requires ``permission_granted``; the grant is checked on every read.
    """

    SUPPORTED_SUFFIXES = (".vcf", ".csv")

    def __init__(self, path: Union[str, Path], permission_granted: bool = False):
        self.path = Path(path).expanduser()
        self.permission_granted = permission_granted
        if self.path.suffix.lower() not in self.SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported contact source format: {self.path.suffix or self.path.name}")

    def _parse(self, handle) -> list:
        if self.path.suffix.lower() == ".vcf":
            return list(parse_vcard_text(handle.read()))
        return [
            {"displayName": row.get("displayName"), "phoneNumber": row.get("phoneNumber")}
            for row in csv.DictReader(handle)
        ]

    def read_contacts(self) -> Iterator[RawContact]:
        """Enumerate raw contact pairs.

        Raises:
            PermissionDeniedError: If access was not granted or the OS refuses it
            ContactSourceError: If the file cannot be read, decoded or parsed
        """
        if not self.permission_granted:
            raise PermissionDeniedError(PERMISSION_NOTICE)

        if not self.path.exists():
            logger.info(f"Contact source {self.path} does not exist, nothing to read")
            return iter(())

        try:
            with self.path.open("r", encoding="utf-8-sig", newline="") as handle:
                contacts = self._parse(handle)
        except PermissionError as e:
            raise PermissionDeniedError(PERMISSION_NOTICE) from e
        except (UnicodeDecodeError, OSError, csv.Error, vobject.base.ParseError) as e:
            raise ContactSourceError(f"Failed to read contact source {self.path.name}: {e}") from e

        logger.info(f"Read {len(contacts)} contact entries from {self.path.name}")
        return iter(contacts)
