"""Local contact sources."""

from .contact_source import PERMISSION_NOTICE, ContactSource, FileContactSource, parse_vcard_text

__all__ = ["PERMISSION_NOTICE", "ContactSource", "FileContactSource", "parse_vcard_text"]
