"""Test helpers for Habit Reminders tests.

This module re-exports all helpers for convenient imports:

    from tests.helpers import FakeBackend, FakeClock, FakeStorageManager, make_habit

See individual modules for full documentation:
- fakes.py: In-memory clock, notification backend and storage manager
- builders.py: Habit record builders
"""

from tests.helpers.builders import make_habit
from tests.helpers.fakes import FakeBackend, FakeClock, FakeStorageManager, Submission

__all__ = [
    "FakeBackend",
    "FakeClock",
    "FakeStorageManager",
    "Submission",
    "make_habit",
]
