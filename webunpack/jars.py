"""
Jar discovery for WEB-INF/lib and the host's container classpath.
"""

import re
from typing import Iterable, List, Optional
import logging

from .context import DeploymentContext
from .resource import Resource

logger = logging.getLogger(__name__)

JAR_EXTENSIONS = (".jar", ".zip")


def find_jars(context: DeploymentContext) -> Optional[List[Resource]]:
    """
    Look for jars in WEB-INF/lib.

    Args:
        context: Context whose base resource is searched

    Returns:
        List of jar resources, or None if there is no WEB-INF
    """
    web_inf = context.get_web_inf()
    if web_inf is None:
        return None

    jars: List[Resource] = []
    lib = web_inf.add_path("lib/")
    if not (lib.exists() and lib.is_directory()):
        return jars

    for name in lib.list():
        try:
            jar = lib.add_path(name)
            if jar.name.lower().endswith(JAR_EXTENSIONS):
                jars.append(jar)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable WEB-INF/lib entry {name}: {e}")
    return jars


def match_jars(pattern: Optional[str], resources: Iterable[Resource],
               include_all_if_no_pattern: bool) -> List[Resource]:
    """
    Select the resources whose URI matches pattern.

    Args:
        pattern: Regular expression matched against the full URI, or None
        resources: Candidates in order
        include_all_if_no_pattern: What a missing pattern means

    Returns:
        Matching resources, in input order
    """
    resources = list(resources)
    if not pattern:
        return resources if include_all_if_no_pattern else []
    regex = re.compile(pattern)
    return [r for r in resources if regex.fullmatch(r.uri)]


def discover_jars(context: DeploymentContext) -> None:
    """Record container jars and WEB-INF jars on the context."""
    attrs = context.attributes

    context.container_jars = []
    for level in context.classpath_sources:
        entries = []
        for entry in level:
            try:
                entries.append(context.new_resource(entry))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable classpath entry {entry}: {e}")
        context.container_jars.extend(match_jars(attrs.container_jar_pattern, entries, False))

    jars = find_jars(context) or []
    context.web_inf_jars = match_jars(attrs.web_inf_jar_pattern, jars, True)
    logger.debug(f"Found {len(context.web_inf_jars)} WEB-INF jars, {len(context.container_jars)} container jars")
