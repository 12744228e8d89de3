"""
Lifecycle glue: preconfigure, configure, deconfigure and clone for a context.
"""

import random
import shutil
from pathlib import Path
from typing import Optional
import logging

from .context import DeploymentContext, LifecycleState
from .jars import discover_jars
from .naming import NamingStrategy, TempDirectoryNamer
from .resource import Resource, ResourceCollection
from .unpacker import ArtifactUnpacker
from .workdir import WorkDirectoryResolver

logger = logging.getLogger(__name__)


def is_protected_work_dir(directory: Optional[Path]) -> bool:
    """
    Check if directory is itself called "work" or sits directly in one.

    Such directories are never deleted on teardown.
    """
    if directory is None:
        return False
    directory = Path(directory)
    if directory.name.lower() == "work":
        return True
    parent = directory.parent
    if parent == directory:
        return False
    return parent.name.lower() == "work"


class DeploymentLifecycle:
    """Drive temp directory and artifact handling through a context's life."""

    def __init__(self, strategy: NamingStrategy = NamingStrategy.CLASSIC,
                 resolver: Optional[WorkDirectoryResolver] = None,
                 unpacker: Optional[ArtifactUnpacker] = None):
        self.namer = TempDirectoryNamer(strategy, resolver)
        self.unpacker = unpacker or ArtifactUnpacker()

    def state(self, context: DeploymentContext) -> LifecycleState:
        return context.state

    def make_temp_directory(self, context: DeploymentContext) -> Optional[Path]:
        """
        Resolve the temp directory and create it if missing.

        Failure to create it is logged and otherwise ignored.
        """
        directory = self.namer.get_dir(context)
        if directory is None:
            logger.warning("Unable to create temp directory (directory not specified)")
            return None

        if not directory.exists():
            try:
                directory.mkdir(parents=True)
            except OSError as e:
                logger.warning(f"Unable to create temp directory: {directory} ({e})")
        return directory

    def preconfigure(self, context: DeploymentContext) -> None:
        """
        Resolve the temp directory, unpack the artifact and discover jars.

        Raises:
            DeployNotFound: If the artifact cannot be found
            WorkDirectoryUnavailable: If no work directory can be established
        """
        self.make_temp_directory(context)
        self.unpacker.unpack(context)
        discover_jars(context)
        context.state = LifecycleState.PRECONFIGURED

    def configure(self, context: DeploymentContext) -> None:
        """Wire WEB-INF classes and jars into the classpath and compose extra resources."""
        if context.started:
            logger.debug(f"Cannot configure webapp {context.context_path} after it is started")
            return
        if context.state in (LifecycleState.CONFIGURED, LifecycleState.DECONFIGURED):
            logger.debug(f"Skipping configure of {context.context_path}: already {context.state.value}")
            return

        web_inf = context.get_web_inf()
        if web_inf is not None:
            classes = web_inf.add_path("classes/")
            if classes.exists():
                self._add_classpath(context, classes)
            lib = web_inf.add_path("lib/")
            if lib.exists() and lib.is_directory():
                for name in lib.list():
                    if name.lower().endswith((".jar", ".zip")):
                        self._add_classpath(context, lib.add_path(name))

        extra = context.attributes.extra_resources
        if extra:
            members = [context.base_resource] if context.base_resource is not None else []
            context.base_resource = ResourceCollection([*members, *extra])

        context.state = LifecycleState.CONFIGURED

    def _add_classpath(self, context: DeploymentContext, resource: Resource) -> None:
        members = resource.resources if isinstance(resource, ResourceCollection) else [resource]
        for member in members:
            if member not in context.classpath:
                context.classpath.append(member)

    def deconfigure(self, context: DeploymentContext) -> None:
        """
        Delete the temp directory if the framework owns it and it is not a
        protected work directory, then restore the original base resource.
        """
        temp_dir = context.temp_directory
        attrs = context.attributes
        if temp_dir is not None and not attrs.temp_dir_configured and not is_protected_work_dir(temp_dir):
            logger.info(f"Deleting temp directory {temp_dir}")
            shutil.rmtree(temp_dir, ignore_errors=True)
            context.temp_directory = None
            attrs.temp_dir_configured = None
            attrs.temp_dir = None

        context.base_resource = context.pre_unpack_resource
        context.pre_unpack_resource = None
        context.unpacked = False
        context.classpath = []
        context.state = LifecycleState.DECONFIGURED

    def clone_configure(self, template: DeploymentContext, context: DeploymentContext) -> Optional[Path]:
        """
        Give a cloned context its own sibling of its temp directory.

        Args:
            template: Context the clone was made from
            context: The clone; its temp_directory is replaced

        Returns:
            Path of the new temp directory, or None if there was nothing to clone
        """
        original = template.temp_directory or context.temp_directory
        if original is None:
            logger.warning("Unable to clone temp directory (no temp directory set)")
            return None
        original = Path(original)

        rng = random.Random()
        while True:
            tmp_dir = original.parent / f"{original.name}-{rng.randint(0, 2**31 - 1)}"
            if not tmp_dir.exists():
                break

        try:
            tmp_dir.mkdir(parents=True)
        except OSError as e:
            logger.warning(f"Unable to create cloned Temp Directory: {tmp_dir} ({e})")
        context.temp_directory = tmp_dir
        context.state = LifecycleState.PRECONFIGURED
        return tmp_dir
