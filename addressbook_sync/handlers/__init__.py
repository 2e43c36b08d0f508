"""Session entry points."""

from .session_handler import SessionHandler, configure_logging, run_session

__all__ = ["SessionHandler", "configure_logging", "run_session"]
