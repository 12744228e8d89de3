"""
Error types for work directory resolution and artifact unpacking.
"""

from pathlib import Path
from typing import Optional, Union


class WebUnpackError(Exception):
    """Base class for fatal unpacking errors."""


class DeployNotFound(WebUnpackError, FileNotFoundError):
    """The resolved web application is missing or is not a directory."""

    def __init__(self, locator: Optional[str]):
        self.locator = locator
        super().__init__(f"Web application not found: {locator}")


class WorkDirectoryUnavailable(WebUnpackError):
    """No usable work directory could be established."""

    def __init__(self, path: Union[str, Path, None], reason: str = "Unable to establish WorkDirectory"):
        self.path = path
        super().__init__(f"{reason}: {path}")
