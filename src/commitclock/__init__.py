"""commitclock - commit sync and session-based time attribution."""

__version__ = "0.1.0"
