"""Parsers for the text the Maven dependency plugin emits.

The plugin's text output is not a stable interface: it changes between plugin
versions and is interleaved with log lines. Two dialects are handled here.

List dialect (``dependency:list``)::

    [INFO]    org.slf4j:slf4j-api:jar:2.0.9:compile -- module org.slf4j
    [INFO]    io.netty:netty-transport-native-epoll:jar:linux-x86_64:4.1.100.Final:runtime

Tree dialect (``dependency:tree``)::

    [INFO] com.example:app:jar:1.0
    [INFO] +- org.slf4j:slf4j-api:jar:2.0.9:compile
    [INFO] |  \\- (org.slf4j:slf4j-api:jar:2.0.7:compile - omitted for conflict with 2.0.9)
    [INFO] \\- junit:junit:jar:4.13.2:test (scope not updated to compile)

Both parsers are line-oriented and skip anything that does not yield a
well-formed coordinate.
"""

import re
from collections.abc import Iterable

from m2audit.core.coordinates import ArtifactCoordinate, make_coordinate

_LOG_PREFIX = re.compile(r"^\s*\[(INFO|WARNING|WARN|ERROR|DEBUG)\]\s*")
_MODULE_SUFFIX = re.compile(r"\s+--\s+module\s+.*$")
_TREE_PREFIX = re.compile(r"^[\s|]*[+\\]-\s*")
_TRAILING_ANNOTATION = re.compile(r"\s+\(.*\)\s*$")
_OMITTED_DETAIL = re.compile(r"\s+-\s+.*$")


def _strip_log_prefix(line: str) -> str:
    return _LOG_PREFIX.sub("", line).strip()


def _coordinate_from_fields(fields: list[str]) -> ArtifactCoordinate | None:
    """Pick group, artifact and version out of a colon-separated artifact row.

    Rows have the shape ``g:a:type[:classifier]:version[:scope]``. With four
    fields there is no scope; with five the classifier is absent; with six or
    more the version is the second-to-last field.
    """
    if len(fields) < 4:
        return None
    group, artifact = fields[0], fields[1]
    if len(fields) in (4, 5):
        version = fields[3]
    else:
        version = fields[-2]
    if version.startswith("$"):
        return None
    return make_coordinate(group, artifact, version)


def parse_list_line(line: str) -> ArtifactCoordinate | None:
    """Parse one line of ``dependency:list`` output."""
    text = _strip_log_prefix(line)
    text = _MODULE_SUFFIX.sub("", text)
    text = _TRAILING_ANNOTATION.sub("", text)
    if " " in text:
        return None
    fields = text.split(":")
    # A bare g:a:type:version row has no scope and is not a list entry
    if len(fields) < 5:
        return None
    return _coordinate_from_fields(fields)


def parse_list_output(text: str) -> set[ArtifactCoordinate]:
    """Parse the full output of ``dependency:list`` into coordinates."""
    return _collect(parse_list_line(line) for line in text.splitlines())


def parse_tree_line(line: str) -> ArtifactCoordinate | None:
    """Parse one line of ``dependency:tree`` output.

    Only rows carrying a tree marker (``+-`` or ``\\-``) are entries; the
    unmarked root line is the project itself.
    """
    text = _strip_log_prefix(line)
    match = _TREE_PREFIX.match(text)
    if match is None:
        return None
    entry = text[match.end() :].strip()

    # Verbose trees wrap omitted entries in parentheses
    if entry.startswith("("):
        entry = entry[1:]
        entry = entry.rstrip(")")
        entry = _OMITTED_DETAIL.sub("", entry)
    else:
        entry = _TRAILING_ANNOTATION.sub("", entry)

    entry = entry.strip()
    if not entry or " " in entry:
        return None
    return _coordinate_from_fields(entry.split(":"))


def parse_tree_output(text: str) -> set[ArtifactCoordinate]:
    """Parse the full output of ``dependency:tree`` into coordinates."""
    return _collect(parse_tree_line(line) for line in text.splitlines())


def _collect(parsed: Iterable[ArtifactCoordinate | None]) -> set[ArtifactCoordinate]:
    return {coordinate for coordinate in parsed if coordinate is not None}


def has_build_failure(text: str) -> bool:
    """Detect Maven's BUILD FAILURE banner in captured output."""
    return "BUILD FAILURE" in text
