"""Logging setup and helpers for client-supplied text."""
import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Frames can carry whole SDP blobs; keep log lines readable
MAX_REPR_LENGTH = 200


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the process.
    Output goes to stderr with UTF-8 so identities with emojis don't
    break the console on Windows.
    """
    if sys.platform == 'win32' and hasattr(sys.stderr, 'reconfigure'):
        try:
            sys.stderr.reconfigure(encoding='utf-8', errors='replace')
        except (OSError, ValueError):
            pass

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level.upper())


def safe_repr(obj: Any, limit: int = MAX_REPR_LENGTH) -> str:
    """
    Safe representation for values that came off the wire.
    Never raises, and truncates anything longer than ``limit``.
    """
    try:
        text = repr(obj)
    except Exception:
        try:
            text = str(obj).encode('ascii', errors='replace').decode('ascii')
        except Exception:
            return "<Unable to represent object>"
    if len(text) > limit:
        return f"{text[:limit]}...(+{len(text) - limit} chars)"
    return text
