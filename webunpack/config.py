"""
Environment-driven settings.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, field_validator


_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Defaults applied when a context does not say otherwise."""
    home: Optional[Path] = None         # host root; {home}/work is the preferred work directory
    strategy: str = "classic"           # classic | random | timestamp
    extract_archive: bool = True
    copy_web_inf: bool = False

    @field_validator("strategy")
    @classmethod
    def _known_strategy(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("classic", "random", "timestamp"):
            raise ValueError(f"Unknown naming strategy: {value}")
        return value


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def get_webunpack_home() -> Optional[Path]:
    """
    Get the host root directory.

    Returns:
        Path from WEBUNPACK_HOME, or None if unset
    """
    home = os.environ.get("WEBUNPACK_HOME")
    if not home:
        return None
    return Path(home).expanduser().resolve()


def get_settings() -> Settings:
    """
    Build settings from the environment.

    Recognized variables: WEBUNPACK_HOME, WEBUNPACK_STRATEGY,
    WEBUNPACK_EXTRACT, WEBUNPACK_COPY_WEBINF.

    Returns:
        Settings: validated settings

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    return Settings(
        home=get_webunpack_home(),
        strategy=os.environ.get("WEBUNPACK_STRATEGY", "classic"),
        extract_archive=_env_flag("WEBUNPACK_EXTRACT", True),
        copy_web_inf=_env_flag("WEBUNPACK_COPY_WEBINF", False),
    )
