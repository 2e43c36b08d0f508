"""Address book uplink: one-time contact export into a per-device remote store."""

__version__ = "0.1.0"
