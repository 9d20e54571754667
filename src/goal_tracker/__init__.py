"""Personal goal and habit tracker: task store, streak statistics, notifications."""

__version__ = "0.3.0"
