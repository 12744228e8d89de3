"""
Resource handles for exploded directories, archives and ordered collections.

All variants share the same capability set: exists, is_directory,
last_modified, list, add_path and copy_to. Archive reading is delegated to
zipfile and recursive copy to shutil.
"""

from __future__ import annotations

import os
import shutil
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote, urlparse
import logging

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".war", ".jar", ".zip")


class Resource(ABC):
    """A readable location that can be probed and copied to local disk."""

    @abstractmethod
    def exists(self) -> bool:
        pass

    @abstractmethod
    def is_directory(self) -> bool:
        pass

    @abstractmethod
    def last_modified(self) -> float:
        """Modification time in seconds since the epoch, 0 if unknown."""
        pass

    @abstractmethod
    def list(self) -> List[str]:
        """Names of the direct children; directories carry a trailing '/'."""
        pass

    @abstractmethod
    def add_path(self, path: str) -> "Resource":
        pass

    @abstractmethod
    def copy_to(self, destination: Path) -> None:
        pass

    @property
    def local_path(self) -> Optional[Path]:
        """Plain local filesystem path, or None if not backed by one."""
        return None

    @property
    def alias(self) -> Optional[str]:
        return None

    @property
    @abstractmethod
    def uri(self) -> str:
        pass

    @property
    def name(self) -> str:
        return PurePosixPath(unquote(urlparse(self.uri).path).rstrip("/!")).name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.uri})"


class PathResource(Resource):
    """A plain file or directory on local disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).absolute()

    def exists(self) -> bool:
        return self.path.exists()

    def is_directory(self) -> bool:
        return self.path.is_dir()

    def last_modified(self) -> float:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return 0.0

    def list(self) -> List[str]:
        if not self.path.is_dir():
            return []
        return sorted(p.name + "/" if p.is_dir() else p.name for p in self.path.iterdir())

    def add_path(self, path: str) -> Resource:
        return PathResource(self.path / path.strip("/"))

    def copy_to(self, destination: Path) -> None:
        destination = Path(destination)
        if self.path.is_dir():
            shutil.copytree(self.path, destination, dirs_exist_ok=True)
        else:
            shutil.copy2(self.path, destination)

    @property
    def local_path(self) -> Optional[Path]:
        return self.path

    @property
    def alias(self) -> Optional[str]:
        # A symlinked location is served through its real path
        try:
            real = self.path.resolve()
        except OSError:
            return None
        if real != self.path:
            return str(real)
        return None

    @property
    def uri(self) -> str:
        uri = self.path.as_uri()
        if self.path.is_dir() and not uri.endswith("/"):
            uri += "/"
        return uri

    def __eq__(self, other) -> bool:
        return isinstance(other, PathResource) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)


class ArchiveResource(Resource):
    """A directory view into a zip-format archive (war, jar or zip)."""

    def __init__(self, archive: Union[str, Path], entry: str = ""):
        self.archive = Path(archive).absolute()
        self.entry = entry.strip("/")

    def _names(self) -> List[str]:
        try:
            with zipfile.ZipFile(self.archive) as zf:
                return zf.namelist()
        except (OSError, zipfile.BadZipFile):
            return []

    def _prefix(self) -> str:
        return self.entry + "/" if self.entry else ""

    def exists(self) -> bool:
        if not self.archive.is_file():
            return False
        if not self.entry:
            return zipfile.is_zipfile(self.archive)
        names = self._names()
        return self.entry in names or any(n.startswith(self._prefix()) for n in names)

    def is_directory(self) -> bool:
        if not self.entry:
            return self.exists()
        prefix = self._prefix()
        return any(n.startswith(prefix) for n in self._names())

    def last_modified(self) -> float:
        try:
            return self.archive.stat().st_mtime
        except OSError:
            return 0.0

    def list(self) -> List[str]:
        prefix = self._prefix()
        children = []
        for name in self._names():
            if not name.startswith(prefix) or name == prefix:
                continue
            head, sep, _ = name[len(prefix):].partition("/")
            child = head + sep
            if child not in children:
                children.append(child)
        return children

    def add_path(self, path: str) -> Resource:
        entry = str(PurePosixPath(self.entry, path.strip("/"))) if self.entry else path.strip("/")
        return ArchiveResource(self.archive, entry)

    def copy_to(self, destination: Path) -> None:
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()
        prefix = self._prefix()
        with zipfile.ZipFile(self.archive) as zf:
            for info in zf.infolist():
                if not info.filename.startswith(prefix):
                    continue
                relative = info.filename[len(prefix):]
                if not relative:
                    continue
                target = (destination / relative).resolve()
                if os.path.commonpath([root, target]) != str(root):
                    logger.warning(f"Skipping archive entry outside destination: {info.filename}")
                    continue
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)

    @property
    def uri(self) -> str:
        return f"jar:{self.archive.as_uri()}!/{self.entry}"

    def __eq__(self, other) -> bool:
        return isinstance(other, ArchiveResource) and (other.archive, other.entry) == (self.archive, self.entry)

    def __hash__(self) -> int:
        return hash((self.archive, self.entry))


class ResourceCollection(Resource):
    """Ordered composition of resources; earlier members shadow later ones."""

    def __init__(self, resources: Iterable[Resource]):
        self.resources: List[Resource] = list(resources)
        if not self.resources:
            raise ValueError("ResourceCollection requires at least one resource")

    def exists(self) -> bool:
        return any(r.exists() for r in self.resources)

    def is_directory(self) -> bool:
        return True

    def last_modified(self) -> float:
        for r in self.resources:
            if r.exists():
                return r.last_modified()
        return 0.0

    def list(self) -> List[str]:
        names: List[str] = []
        for r in self.resources:
            for name in r.list():
                if name not in names:
                    names.append(name)
        return names

    def add_path(self, path: str) -> Resource:
        found = [child for child in (r.add_path(path) for r in self.resources) if child.exists()]
        if not found:
            return self.resources[0].add_path(path)
        if len(found) == 1 or not all(r.is_directory() for r in found):
            return found[0]
        return ResourceCollection(found)

    def copy_to(self, destination: Path) -> None:
        # Copy lowest priority first so earlier members overwrite
        for r in reversed(self.resources):
            if r.exists():
                r.copy_to(destination)

    @property
    def uri(self) -> str:
        return self.resources[0].uri

    def __eq__(self, other) -> bool:
        return isinstance(other, ResourceCollection) and other.resources == self.resources

    def __hash__(self) -> int:
        return hash(tuple(self.resources))

    def __repr__(self) -> str:
        return f"ResourceCollection({self.resources!r})"


def is_archive(path: Union[str, Path]) -> bool:
    """Check whether path is a readable zip-format archive."""
    p = Path(path)
    return p.is_file() and zipfile.is_zipfile(p)


def new_resource(locator: Union[str, Path, Resource]) -> Resource:
    """
    Resolve a locator into a resource handle.

    Args:
        locator: Filesystem path, file: URI, jar:file:...!/entry URI or a Resource

    Returns:
        Resource: PathResource or ArchiveResource
    """
    if isinstance(locator, Resource):
        return locator
    if isinstance(locator, Path):
        return PathResource(locator)

    text = str(locator)
    if text.startswith("jar:"):
        archive, _, entry = text[len("jar:"):].partition("!")
        return ArchiveResource(_file_uri_to_path(archive), entry)
    if text.startswith("file:"):
        return PathResource(_file_uri_to_path(text))
    return PathResource(Path(text).expanduser())


def _file_uri_to_path(uri: str) -> Path:
    if not uri.startswith("file:"):
        return Path(uri)
    return Path(unquote(urlparse(uri).path))
