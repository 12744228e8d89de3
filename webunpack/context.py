"""
Deployment context: the state one web application carries through its lifecycle.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .resource import Resource, new_resource


class LifecycleState(Enum):
    UNCONFIGURED = "unconfigured"
    PRECONFIGURED = "preconfigured"
    CONFIGURED = "configured"
    DECONFIGURED = "deconfigured"


@dataclass
class HostInfo:
    """Where the owning server runs and listens."""
    host: Optional[str] = None          # connector host; None or "" means all interfaces
    local_port: Optional[int] = None    # port actually bound; None or negative if not started
    port: Optional[int] = None          # configured port
    root: Optional[Path] = None         # host root; {root}/work is the preferred work directory


@dataclass
class ExtractionPolicy:
    copy_source_dir: bool = False   # copy an exploded directory into {temp}/webapp
    extract_archive: bool = True    # extract a packaged archive into {temp}/webapp
    copy_web_inf: bool = False      # synthesize {temp}/webinf/WEB-INF ahead of the artifact


@dataclass
class ContextAttributes:
    """Typed attribute store for the keys the unpacking layer understands."""
    base_temp_dir: Optional[Union[str, Path]] = None
    temp_dir: Optional[Union[str, Path]] = None
    temp_dir_configured: Optional[bool] = None     # True when the temp dir was supplied by the user
    extra_resources: Optional[List[Resource]] = None
    web_inf_jar_pattern: Optional[str] = None
    container_jar_pattern: Optional[str] = None


@dataclass
class DeploymentContext:
    """One hosted web application instance."""
    war: Optional[str] = None
    resource_base: Optional[str] = None
    context_path: str = "/"
    virtual_hosts: List[str] = field(default_factory=list)
    temp_directory: Optional[Path] = None
    base_resource: Optional[Resource] = None
    host: HostInfo = field(default_factory=HostInfo)
    policy: ExtractionPolicy = field(default_factory=ExtractionPolicy)
    attributes: ContextAttributes = field(default_factory=ContextAttributes)

    # One list of container classpath entries per loader level, nearest first
    classpath_sources: List[List[str]] = field(default_factory=list)

    # Populated by the lifecycle
    pre_unpack_resource: Optional[Resource] = None
    unpacked: bool = False
    classpath: List[Resource] = field(default_factory=list)
    web_inf_jars: List[Resource] = field(default_factory=list)
    container_jars: List[Resource] = field(default_factory=list)
    started: bool = False
    state: LifecycleState = LifecycleState.UNCONFIGURED

    @property
    def locator(self) -> Optional[str]:
        """The artifact locator: war if set, else the resource base."""
        if self.war:
            return self.war
        return self.resource_base

    def new_resource(self, locator: Union[str, Path, Resource]) -> Resource:
        return new_resource(locator)

    def get_web_inf(self) -> Optional[Resource]:
        """
        Get the WEB-INF resource of the current base resource.

        Returns:
            Resource for WEB-INF, or None if the base resource has none
        """
        if self.base_resource is None:
            return None
        web_inf = self.base_resource.add_path("WEB-INF/")
        if web_inf.exists() and web_inf.is_directory():
            return web_inf
        return None
