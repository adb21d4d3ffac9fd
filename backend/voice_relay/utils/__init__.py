"""Utility modules for the application."""
from voice_relay.utils.logger import (
    configure_logging,
    safe_repr,
)

__all__ = [
    'configure_logging',
    'safe_repr',
]
