"""
Materialize a deployable artifact into the deployment's temp directory.
"""

import shutil
from pathlib import Path
from typing import Optional
import logging

from .context import DeploymentContext
from .errors import DeployNotFound, WorkDirectoryUnavailable
from .resource import (
    ArchiveResource,
    PathResource,
    Resource,
    ResourceCollection,
    is_archive,
)
from .workdir import is_valid_directory

logger = logging.getLogger(__name__)

WEBAPP_DIR = "webapp"
WEBINF_DIR = "webinf"


def find_sibling_dir(war: Optional[str], context: DeploymentContext) -> Optional[Path]:
    """
    Find an exploded directory next to a .war file (same name minus suffix).

    Returns:
        Path of the sibling if it exists, is a directory and is writable
    """
    if not war:
        return None
    local = context.new_resource(war).local_path
    if local is None or not local.name.lower().endswith(".war"):
        return None
    sibling = local.parent / local.name[:-len(".war")]
    if is_valid_directory(sibling):
        return sibling
    return None


def _require_temp_dir(context: DeploymentContext) -> Path:
    if context.temp_directory is None:
        raise WorkDirectoryUnavailable(None, "No temp directory to unpack into")
    return Path(context.temp_directory)


def _extract(web_app: Resource, target: Path) -> None:
    logger.info(f"Extract {web_app} to {target}")
    target.mkdir(parents=True, exist_ok=True)
    web_app.copy_to(target)


class ArtifactUnpacker:
    """Decide whether and how to extract or copy a context's artifact."""

    def unpack(self, context: DeploymentContext) -> Resource:
        """
        Make the artifact available as a local directory and set it as the
        context's base resource.

        Decision order:
          1. exploded directory, no copy requested: used as-is
          2. directory with copy_source_dir: copied into {temp}/webapp every call
          3. archive with extract_archive, nothing extracted yet: extracted
          4. archive with extract_archive, already extracted: re-extracted only
             if the archive is newer than the extracted directory
          5. a writable sibling directory next to a .war replaces {temp}/webapp

        Args:
            context: Context to unpack

        Returns:
            Resource: the new base resource

        Raises:
            DeployNotFound: If the result is missing or not a directory
        """
        if context.unpacked:
            # Re-validate from the original locator; freshness is recomputed
            context.base_resource = context.pre_unpack_resource
        context.pre_unpack_resource = context.base_resource
        context.unpacked = True

        web_app = context.base_resource
        if web_app is None:
            web_app = self._materialize(context)
            context.base_resource = web_app
            logger.debug(f"webapp={web_app}")

        if context.policy.copy_web_inf:
            self.copy_web_inf(context, web_app)

        return context.base_resource

    def _materialize(self, context: DeploymentContext) -> Resource:
        war = context.war
        locator = context.locator
        if not locator:
            logger.warning("Web application not found: no war or resource base set")
            raise DeployNotFound(locator)

        web_app = context.new_resource(locator)
        if web_app.alias is not None:
            logger.debug(f"{web_app} anti-aliased to {web_app.alias}")
            web_app = context.new_resource(web_app.alias)

        logger.debug(f"Try webapp={web_app}, exists={web_app.exists()}, directory={web_app.is_directory()}")

        local = web_app.local_path
        if local is not None and is_archive(local):
            web_app = ArchiveResource(local)
            local = None

        policy = context.policy
        is_local_dir = local is not None and local.is_dir()
        copy_dir = policy.copy_source_dir and is_local_dir
        extract = policy.extract_archive and isinstance(web_app, ArchiveResource)

        if web_app.exists() and (copy_dir or extract):
            target = find_sibling_dir(war, context)
            if target is None:
                target = _require_temp_dir(context) / WEBAPP_DIR

            if copy_dir:
                logger.info(f"Copy {web_app} to {target}")
                target.mkdir(parents=True, exist_ok=True)
                web_app.copy_to(target)
            elif not target.exists():
                _extract(web_app, target)
            elif web_app.last_modified() > target.stat().st_mtime:
                logger.debug(f"{web_app} is newer than {target}, re-extracting")
                shutil.rmtree(target)
                _extract(web_app, target)
            else:
                logger.debug(f"Reusing extracted {target}")

            web_app = PathResource(target.resolve())

        if not web_app.exists() or not web_app.is_directory():
            logger.warning(f"Web application not found {locator}")
            raise DeployNotFound(locator)

        return web_app

    def copy_web_inf(self, context: DeploymentContext, web_app: Resource) -> Optional[Resource]:
        """
        Build {temp}/webinf/WEB-INF with copies of lib/ and classes/ and put it
        ahead of the artifact in the context's base resource.

        Any earlier copy at that path is replaced.

        Returns:
            ResourceCollection set as the base resource, or None if WEB-INF is absent
        """
        web_inf = web_app.add_path("WEB-INF/")
        if not isinstance(web_inf, ResourceCollection) and not (web_inf.exists() and web_inf.is_directory()):
            return None

        webinf_root = _require_temp_dir(context) / WEBINF_DIR
        if webinf_root.exists():
            shutil.rmtree(webinf_root)
        web_inf_dir = webinf_root / "WEB-INF"
        web_inf_dir.mkdir(parents=True)

        lib = web_inf.add_path("lib/")
        if lib.exists():
            lib_dir = web_inf_dir / "lib"
            lib_dir.mkdir()
            logger.info(f"Copying WEB-INF/lib {lib} to {lib_dir}")
            lib.copy_to(lib_dir)

        classes = web_inf.add_path("classes/")
        if classes.exists():
            classes_dir = web_inf_dir / "classes"
            classes_dir.mkdir()
            logger.info(f"Copying WEB-INF/classes from {classes} to {classes_dir}")
            classes.copy_to(classes_dir)

        collection = ResourceCollection([PathResource(webinf_root.resolve()), web_app])
        logger.debug(f"context.base_resource = {collection}")
        context.base_resource = collection
        return collection
