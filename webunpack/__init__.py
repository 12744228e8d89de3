"""
Webunpack - per-deployment work directories and artifact unpacking.

This package resolves a private temp directory for each hosted web
application and materializes its archive or exploded directory there.
"""

from .context import DeploymentContext, ContextAttributes, ExtractionPolicy, HostInfo
from .errors import DeployNotFound, WebUnpackError, WorkDirectoryUnavailable
from .lifecycle import DeploymentLifecycle, LifecycleState
from .naming import NamingStrategy, TempDirectoryNamer, classic_name
from .unpacker import ArtifactUnpacker
from .workdir import WorkDirectoryResolver

__version__ = "0.1.0"

__all__ = [
    "ArtifactUnpacker",
    "ContextAttributes",
    "DeployNotFound",
    "DeploymentContext",
    "DeploymentLifecycle",
    "ExtractionPolicy",
    "HostInfo",
    "LifecycleState",
    "NamingStrategy",
    "TempDirectoryNamer",
    "WebUnpackError",
    "WorkDirectoryResolver",
    "WorkDirectoryUnavailable",
    "classic_name",
]
