"""Chat bot plugin logic: reminder timers, gist join checks, admin helpers, MIDI tools, a song game and holiday reminders."""

__version__ = "0.1.0"

__all__ = [
    "admin",
    "clock",
    "gist",
    "guessgame",
    "holiday",
    "hyaku",
    "midi",
    "schedule",
    "timer",
]