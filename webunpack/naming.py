"""
Temp directory naming for a single deployment.
"""

import random
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse
import logging

from .context import DeploymentContext
from .workdir import WorkDirectoryResolver, as_path, is_valid_directory

logger = logging.getLogger(__name__)

NAME_PREFIX = "jetty-"
ANY_HOST = "0.0.0.0"
ANY_VHOST = "any"


class NamingStrategy(Enum):
    CLASSIC = "classic"        # {prefix}{host}-{port}-{artifact}-{context}-{vhost}-
    RANDOM = "random"          # classic name + "-" + random int, never an existing entry
    TIMESTAMP = "timestamp"    # classic name + "-" + yyyyMMdd-HHmmss-fff

    @classmethod
    def from_name(cls, name: str) -> "NamingStrategy":
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown naming strategy: {name}") from None


def _connector_port(context: DeploymentContext) -> int:
    port = context.host.local_port
    if port is not None and port >= 0:
        return port
    if context.host.port is not None:
        return context.host.port
    return 0


def _artifact_segment(context: DeploymentContext) -> str:
    resource = context.base_resource
    if resource is None:
        if not context.locator:
            raise ValueError("context has neither war nor resource base")
        resource = context.new_resource(context.locator)

    uri = resource.uri
    if uri.startswith("jar:"):
        uri = uri[len("jar:"):]
    path = unquote(urlparse(uri).path)
    if path.endswith("/"):
        path = path[:-1]
    if path.endswith("!"):
        path = path[:-1]
    return path[path.rfind("/") + 1:]


def sanitize(name: str) -> str:
    """Replace every character outside [alnum _ - .] with '.'."""
    return "".join(c if c.isalnum() or c in "_-." else "." for c in name)


def classic_name(context: DeploymentContext) -> str:
    """
    Create the canonical temp directory name for a context.

    Form: jetty-{host}-{port}-{artifact}-{contextPath}-{vhost}-
    Identical inputs always give an identical name, so an earlier extraction
    can be reused across restarts.

    Args:
        context: Context to name

    Returns:
        str: sanitized directory name
    """
    parts = [NAME_PREFIX]

    parts.append(context.host.host or ANY_HOST)
    parts.append("-")
    parts.append(str(_connector_port(context)))
    parts.append("-")

    try:
        parts.append(_artifact_segment(context))
        parts.append("-")
    except Exception as e:
        logger.warning(f"Can't generate resource base as part of webapp tmp dir name: {e}")

    context_path = (context.context_path or "").replace("/", "_").replace("\\", "_")
    parts.append(context_path)

    parts.append("-")
    parts.append(context.virtual_hosts[0] if context.virtual_hosts else ANY_VHOST)

    return sanitize("".join(parts)) + "-"


def random_name(work_dir: Path, base: str, rng: Optional[random.Random] = None) -> Path:
    """Pick {base}-{random int} under work_dir, retrying while the entry exists."""
    rng = rng or random.Random()
    while True:
        candidate = work_dir / f"{base}-{rng.randint(0, 2**31 - 1)}"
        if not candidate.exists():
            return candidate


def timestamp_name(base: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{base}-{now.strftime('%Y%m%d-%H%M%S')}-{now.microsecond // 1000}"


class TempDirectoryNamer:
    """Resolve the temp directory for a context, naming it by strategy if needed."""

    def __init__(self, strategy: NamingStrategy = NamingStrategy.CLASSIC,
                 resolver: Optional[WorkDirectoryResolver] = None):
        self.strategy = strategy
        self.resolver = resolver or WorkDirectoryResolver()

    def get_dir(self, context: DeploymentContext) -> Path:
        """
        Get the temp directory for this context.

        An existing override on the context or the temp_dir attribute wins and
        marks the directory as user supplied. Otherwise a name is chosen under
        the work directory and the framework owns it. The result is always
        recorded on context.temp_directory.

        Args:
            context: Context to resolve

        Returns:
            Path: the temp directory (not necessarily created yet)

        Raises:
            WorkDirectoryUnavailable: If no work directory can be established
        """
        attrs = context.attributes

        directory = as_path(context.temp_directory)
        if is_valid_directory(directory):
            # A directory this namer chose earlier stays framework-owned
            if not (attrs.temp_dir_configured is False and as_path(attrs.temp_dir) == directory):
                attrs.temp_dir_configured = True
            return directory

        directory = as_path(attrs.temp_dir)
        if is_valid_directory(directory):
            attrs.temp_dir = directory
            attrs.temp_dir_configured = True
            context.temp_directory = directory
            return directory

        work_dir = self.resolver.find_work_directory(context)
        base = classic_name(context)
        if self.strategy is NamingStrategy.RANDOM:
            directory = random_name(work_dir, base)
        elif self.strategy is NamingStrategy.TIMESTAMP:
            directory = work_dir / timestamp_name(base)
        else:
            directory = work_dir / base

        logger.debug(f"Temp directory for {context.context_path}: {directory} ({self.strategy.value})")
        attrs.temp_dir = directory
        attrs.temp_dir_configured = False
        context.temp_directory = directory
        return directory
