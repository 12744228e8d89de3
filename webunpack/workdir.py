"""
Work directory resolution: the shared root under which temp directories live.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union
import logging

from .config import get_webunpack_home
from .context import DeploymentContext
from .errors import WorkDirectoryUnavailable

logger = logging.getLogger(__name__)

TEMP_PREFIX = "webunpack"
TEMP_SUFFIX = "work"


def as_path(value: Union[str, Path, None]) -> Optional[Path]:
    """Convert an attribute value to a Path; anything else is ignored."""
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        return Path(value)
    return None


def is_valid_directory(path: Optional[Path]) -> bool:
    """A usable directory exists, is a directory and is writable."""
    return path is not None and path.exists() and path.is_dir() and os.access(path, os.W_OK)


class WorkDirectoryResolver:
    """
    Find the work directory for a context.

    Search order:
      1. {host_root}/work
      2. context.attributes.base_temp_dir
      3. the system temp directory
      4. a freshly created temp directory
    """

    def __init__(self, host_root: Union[str, Path, None] = None):
        self._host_root = as_path(host_root)

    def get_host_root(self, context: Optional[DeploymentContext] = None) -> Optional[Path]:
        if self._host_root is not None:
            return self._host_root
        if context is not None and context.host.root is not None:
            return Path(context.host.root)
        return get_webunpack_home()

    def set_host_root(self, host_root: Union[str, Path, None]) -> None:
        self._host_root = as_path(host_root)

    def find_work_directory(self, context: DeploymentContext) -> Path:
        """
        Find the work directory.

        Args:
            context: Context whose base_temp_dir attribute may name a directory

        Returns:
            Path: the work directory

        Raises:
            WorkDirectoryUnavailable: If no directory could be found or created
        """
        host_root = self.get_host_root(context)
        if host_root is not None:
            work = host_root / "work"
            if is_valid_directory(work):
                return work

        work = as_path(context.attributes.base_temp_dir)
        if is_valid_directory(work):
            return work

        try:
            system_tmp = tempfile.gettempdir()
        except OSError:
            system_tmp = None
        work = as_path(system_tmp)
        if is_valid_directory(work):
            return work

        # Last resort
        intended = Path(system_tmp or ".") / f"{TEMP_PREFIX}*{TEMP_SUFFIX}"
        try:
            work = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=system_tmp))
        except OSError as e:
            logger.warning(f"Unable to establish WorkDirectory {intended}: {e}")
            raise WorkDirectoryUnavailable(intended, "Unable to establish WorkDirectory") from e
        if not work.is_dir():
            logger.warning(f"Unable to create WorkDirectory: {work}")
            raise WorkDirectoryUnavailable(work, "Unable to create WorkDirectory")
        return work
