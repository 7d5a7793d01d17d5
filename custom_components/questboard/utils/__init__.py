# File: utils/__init__.py
"""Pure Python utilities for Questboard.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time parsing, local calendar dates, time-of-day deadlines
    - math_utils: Reward item normalization, scaling and discount arithmetic

Usage:
    from . import dt_utils
    from .math_utils import normalize_reward_items
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
