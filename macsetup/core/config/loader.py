"""
Configuration loader — reads profile.yml into the Profile model.

Discovery order:
    --config  >  MACSETUP_CONFIG env var  >  ~/.config/macsetup/profile.yml
    >  bundled default profile
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from macsetup.core.data import default_profile_path
from macsetup.core.errors import ConfigError
from macsetup.core.models.profile import Profile

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "MACSETUP_CONFIG"
USER_PROFILE_PATH = Path("~/.config/macsetup/profile.yml")

__all__ = ["ConfigError", "find_profile_file", "load_profile"]


def find_profile_file(explicit: Path | None = None) -> Path:
    """Resolve which profile file to load.

    Args:
        explicit: Path given on the command line, if any.

    Returns:
        Path to the profile. Falls back to the bundled default, so this
        never returns None.
    """
    if explicit is not None:
        return explicit

    env_path = os.environ.get(PROFILE_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    user_path = USER_PROFILE_PATH.expanduser()
    if user_path.is_file():
        return user_path

    return default_profile_path()


def load_profile(path: Path | None = None) -> Profile:
    """Load and validate a profile.

    Args:
        path: Explicit path to profile.yml. If None, uses discovery.

    Returns:
        Validated Profile model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = find_profile_file(path)

    if not path.is_file():
        raise ConfigError(f"Profile not found: {path}")

    logger.debug("Loading profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        profile = Profile.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid profile: {e}") from e

    logger.info(
        "Loaded profile '%s' (%d formulas, %d casks)",
        profile.name,
        len(profile.formulas),
        len(profile.casks),
    )
    return profile
