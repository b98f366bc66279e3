"""Static extraction of declared dependencies and plugins from pom.xml.

This is the fallback when the build tool is unavailable, times out, or lists
nothing. It only sees what the descriptor declares directly: no transitive
dependencies, no inherited versions. Blocks inside ``<dependencyManagement>``
and ``<pluginManagement>`` are skipped because they only pin versions without
using anything.
"""

import logging
import re
from pathlib import Path

from m2audit.core.coordinates import ArtifactCoordinate, make_coordinate

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"

_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_DEPENDENCY_MANAGEMENT = re.compile(
    r"<dependencyManagement>.*?</dependencyManagement>", re.DOTALL
)
_PLUGIN_MANAGEMENT = re.compile(r"<pluginManagement>.*?</pluginManagement>", re.DOTALL)
_EXCLUSIONS = re.compile(r"<exclusions>.*?</exclusions>", re.DOTALL)
_DEPENDENCY_BLOCK = re.compile(r"<dependency>(.*?)</dependency>", re.DOTALL)
_BUILD_BLOCK = re.compile(r"<build>(.*?)</build>", re.DOTALL)
_PLUGIN_BLOCK = re.compile(r"<plugin>(.*?)</plugin>", re.DOTALL)
_PROPERTIES_BLOCK = re.compile(r"<properties>(.*?)</properties>", re.DOTALL)
_PROPERTY = re.compile(r"<([A-Za-z0-9_.-]+)>\s*([^<]*?)\s*</\1>")
_PARENT_BLOCK = re.compile(r"<parent>.*?</parent>", re.DOTALL)
_PROFILES = re.compile(r"<profiles>.*?</profiles>", re.DOTALL)
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

# Sections of a <plugin> block that may carry their own groupId/artifactId
_PLUGIN_NESTED = (
    re.compile(r"<dependencies>.*?</dependencies>", re.DOTALL),
    re.compile(r"<configuration>.*?</configuration>", re.DOTALL),
    re.compile(r"<executions>.*?</executions>", re.DOTALL),
)


def _tag_value(block: str, tag: str) -> str | None:
    match = re.search(rf"<{tag}>\s*([^<]+?)\s*</{tag}>", block)
    if match is None:
        return None
    return match.group(1)


def _read_properties(text: str) -> dict[str, str]:
    """Collect ``<properties>`` entries plus the ``project.*`` coordinates.

    A module without its own ``<groupId>`` or ``<version>`` inherits them
    from ``<parent>``, so the project values fall back to the parent's.
    """
    properties: dict[str, str] = {}
    for block in _PROPERTIES_BLOCK.findall(text):
        for name, value in _PROPERTY.findall(block):
            properties[name] = value

    parent = _PARENT_BLOCK.search(text)
    parent_block = parent.group(0) if parent is not None else ""
    parent_group = _tag_value(parent_block, "groupId")
    parent_version = _tag_value(parent_block, "version")

    own = _PARENT_BLOCK.sub("", text)
    own = _DEPENDENCY_MANAGEMENT.sub("", own)
    own = _DEPENDENCY_BLOCK.sub("", own)
    own = _BUILD_BLOCK.sub("", own)
    own = _PROFILES.sub("", own)
    derived = {
        "project.parent.groupId": parent_group,
        "project.parent.version": parent_version,
        "project.groupId": _tag_value(own, "groupId") or parent_group,
        "project.version": _tag_value(own, "version") or parent_version,
    }
    for name, value in derived.items():
        if value is not None:
            properties.setdefault(name, value)
    return properties


def _resolve(value: str, properties: dict[str, str]) -> str | None:
    """Substitute ``${name}`` placeholders; None if any stays unresolved."""
    resolved = value
    for _ in range(5):
        if "${" not in resolved:
            return resolved
        resolved = _PLACEHOLDER.sub(lambda m: properties.get(m.group(1), m.group(0)), resolved)
    if "${" in resolved:
        return None
    return resolved


def _coordinate(
    block: str,
    properties: dict[str, str],
    *,
    default_group: str | None,
) -> ArtifactCoordinate | None:
    group = _tag_value(block, "groupId") or default_group
    artifact = _tag_value(block, "artifactId")
    version = _tag_value(block, "version")
    if group is None or artifact is None or version is None:
        return None

    resolved_group = _resolve(group, properties)
    resolved_version = _resolve(version, properties)
    if resolved_group is None or resolved_version is None:
        return None
    return make_coordinate(resolved_group, artifact, resolved_version)


def parse_pom_text(text: str) -> set[ArtifactCoordinate]:
    """Extract declared dependencies and build plugins from pom.xml content."""
    text = _COMMENT.sub("", text)
    properties = _read_properties(text)

    text = _DEPENDENCY_MANAGEMENT.sub("", text)
    text = _PLUGIN_MANAGEMENT.sub("", text)
    text = _EXCLUSIONS.sub("", text)

    found: set[ArtifactCoordinate] = set()
    for block in _DEPENDENCY_BLOCK.findall(text):
        coordinate = _coordinate(block, properties, default_group=None)
        if coordinate is not None:
            found.add(coordinate)

    for build in _BUILD_BLOCK.findall(text):
        for block in _PLUGIN_BLOCK.findall(build):
            for nested in _PLUGIN_NESTED:
                block = nested.sub("", block)
            coordinate = _coordinate(block, properties, default_group=DEFAULT_PLUGIN_GROUP)
            if coordinate is not None:
                found.add(coordinate)
    return found


def parse_pom(pom_path: Path) -> set[ArtifactCoordinate]:
    """Extract declared coordinates from a pom.xml file.

    A missing or unreadable descriptor yields an empty set.
    """
    if not pom_path.is_file():
        logger.debug("No descriptor at %s", pom_path)
        return set()
    try:
        text = pom_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Cannot read %s: %s", pom_path, e)
        return set()
    return parse_pom_text(text)


def declares_parent(pom_path: Path) -> bool:
    """Check whether a pom declares a ``<parent>`` block."""
    if not pom_path.is_file():
        return False
    return "<parent>" in _COMMENT.sub("", pom_path.read_text(encoding="utf-8", errors="replace"))


def declared_modules(pom_path: Path) -> list[str]:
    """Return the ``<module>`` entries of an aggregator pom (packaging pom).

    Returns an empty list when the pom is not an aggregator.
    """
    if not pom_path.is_file():
        return []
    text = _COMMENT.sub("", pom_path.read_text(encoding="utf-8", errors="replace"))
    if _tag_value(text, "packaging") != "pom":
        return []
    return [m.strip().rstrip("/") for m in re.findall(r"<module>\s*([^<]+?)\s*</module>", text)]
