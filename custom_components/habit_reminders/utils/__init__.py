# File: utils/__init__.py
"""Pure Python utilities for Habit Reminders.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time validation, formatting, timezone helpers and clocks

Usage:
    from . import dt_utils
    from .dt_utils import validate_instant
"""

from . import dt_utils

__all__ = ["dt_utils"]
