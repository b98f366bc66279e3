"""Collect the coordinates each Maven module uses.

Per module the build tool is asked for a scoped dependency list. When that
yields nothing the unscoped dependency tree is tried, and when that also
yields nothing the descriptor is parsed statically. A listing timeout aborts
the module's remaining invocations and tops up what was collected so far with
the static parse, so a hung build never fails the run.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from m2audit.core.coordinates import ArtifactCoordinate
from m2audit.core.discovery import MavenModule, resolve_reactor
from m2audit.core.maven_output_parser import parse_list_output, parse_tree_output
from m2audit.core.pom_parser import parse_pom
from m2audit.gateway.maven.abc import MavenOutput, MavenRunner, MavenStatus
from m2audit.gateway.process.abc import ProgressCallback

logger = logging.getLogger(__name__)

VALID_SCOPES = ("compile", "runtime", "test", "provided", "system")
DEFAULT_SCOPES = ("compile", "runtime", "test")


class CollectionMethod(Enum):
    LIST = "list"
    TREE = "tree"
    STATIC = "static"
    NONE = "none"


class Notice(Enum):
    """Recoverable conditions met while collecting a module."""

    TOOL_UNAVAILABLE = "ToolUnavailable"
    LISTING_EMPTY = "ListingEmpty"
    LISTING_TIMEOUT = "ListingTimeout"
    LISTING_FAILED = "ListingFailed"


@dataclass(frozen=True)
class ModuleUsage:
    coordinates: frozenset[ArtifactCoordinate]
    method: CollectionMethod
    notices: tuple[Notice, ...]


def normalize_scopes(raw: list[str]) -> tuple[list[str], list[str]]:
    """Split requested scope names into valid and invalid ones.

    Names are lowercased and trimmed; duplicates and blanks are dropped.

    Returns:
        (valid scopes in request order, rejected names)
    """
    valid: list[str] = []
    invalid: list[str] = []
    for name in raw:
        scope = name.strip().lower()
        if not scope:
            continue
        if scope not in VALID_SCOPES:
            invalid.append(name.strip())
            continue
        if scope not in valid:
            valid.append(scope)
    return valid, invalid


class UsageCollector:
    def __init__(
        self,
        *,
        maven: MavenRunner,
        use_build_tool: bool,
        timeout_seconds: float,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._maven = maven
        self._use_build_tool = use_build_tool
        self._timeout_seconds = timeout_seconds
        self._on_progress = on_progress

    def collect(self, module: MavenModule, scopes: list[str]) -> ModuleUsage:
        if not self._use_build_tool:
            return self._static(module, ())

        reactor = resolve_reactor(module)
        executable = self._maven.resolve_executable(reactor.exec_dir)
        if executable is None:
            logger.warning("No mvnw or mvn available for %s, parsing descriptor", module.module_dir)
            return self._static(module, (Notice.TOOL_UNAVAILABLE,))

        notices: list[Notice] = []
        collected: set[ArtifactCoordinate] = set()
        for scope in scopes:
            output = self._maven.list_dependencies(
                executable=executable,
                cwd=reactor.exec_dir,
                project_list=reactor.project_list,
                scope=scope,
                timeout_seconds=self._timeout_seconds,
                on_progress=self._on_progress,
            )
            if output.status == MavenStatus.TIMEOUT:
                collected |= parse_list_output(output.text)
                return self._after_timeout(module, collected, CollectionMethod.LIST, notices)
            if self._usable(output, module, f"dependency:list ({scope})", notices):
                collected |= parse_list_output(output.text)

        if collected:
            return ModuleUsage(frozenset(collected), CollectionMethod.LIST, tuple(notices))

        logger.info("Dependency list empty for %s, trying dependency:tree", module.module_dir)
        notices.append(Notice.LISTING_EMPTY)
        output = self._maven.dependency_tree(
            executable=executable,
            cwd=reactor.exec_dir,
            project_list=reactor.project_list,
            timeout_seconds=self._timeout_seconds,
            on_progress=self._on_progress,
        )
        if output.status == MavenStatus.TIMEOUT:
            return self._after_timeout(
                module, parse_tree_output(output.text), CollectionMethod.TREE, notices
            )
        if self._usable(output, module, "dependency:tree", notices):
            collected = parse_tree_output(output.text)
        if collected:
            return ModuleUsage(frozenset(collected), CollectionMethod.TREE, tuple(notices))

        return self._static(module, tuple(notices))

    def _usable(
        self, output: MavenOutput, module: MavenModule, goal: str, notices: list[Notice]
    ) -> bool:
        if output.status == MavenStatus.OK:
            return True
        logger.warning(
            "%s failed for %s (exit code %s)", goal, module.module_dir, output.exit_code
        )
        if Notice.LISTING_FAILED not in notices:
            notices.append(Notice.LISTING_FAILED)
        return False

    def _after_timeout(
        self,
        module: MavenModule,
        collected: set[ArtifactCoordinate],
        method: CollectionMethod,
        notices: list[Notice],
    ) -> ModuleUsage:
        logger.warning(
            "Build tool timed out after %.0fs for %s, merging descriptor parse",
            self._timeout_seconds,
            module.module_dir,
        )
        notices.append(Notice.LISTING_TIMEOUT)
        static = parse_pom(module.pom_path)
        if not collected:
            method = CollectionMethod.STATIC if static else CollectionMethod.NONE
        return ModuleUsage(frozenset(collected | static), method, tuple(notices))

    def _static(self, module: MavenModule, notices: tuple[Notice, ...]) -> ModuleUsage:
        coordinates = parse_pom(module.pom_path)
        method = CollectionMethod.STATIC if coordinates else CollectionMethod.NONE
        return ModuleUsage(frozenset(coordinates), method, notices)
