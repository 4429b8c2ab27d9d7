"""
Bundled data files.

Holds the default profile shipped with the package. Read it through
``default_profile_path()`` rather than building paths by hand.
"""

from __future__ import annotations

from pathlib import Path

_DATA_DIR = Path(__file__).parent

DEFAULT_PROFILE_FILE = "default_profile.yml"


def default_profile_path() -> Path:
    """Path of the profile used when the user supplies none."""
    return _DATA_DIR / DEFAULT_PROFILE_FILE
