"""Signaling relay and call history service for peer-to-peer voice calls."""

__version__ = "1.0.0"
