"""Tests for the dependency:list and dependency:tree output dialects."""

from m2audit.core.coordinates import ArtifactCoordinate
from m2audit.core.maven_output_parser import (
    has_build_failure,
    parse_list_line,
    parse_list_output,
    parse_tree_line,
    parse_tree_output,
)

LIST_OUTPUT = """\
[INFO] Scanning for projects...
[INFO] --- maven-dependency-plugin:3.6.1:list (default-cli) @ app ---
[INFO]
[INFO] The following files have been resolved:
[INFO]    org.slf4j:slf4j-api:jar:2.0.9:compile -- module org.slf4j
[INFO]    com.google.guava:guava:jar:32.1.2-jre:compile
[INFO]    io.netty:netty-transport-native-epoll:jar:linux-x86_64:4.1.100.Final:runtime
[INFO]    org.projectlombok:lombok:jar:1.18.30:provided (optional)
[INFO]    none
[INFO] BUILD SUCCESS
"""

TREE_OUTPUT = """\
[INFO] com.example:app:jar:1.0.0
[INFO] +- org.slf4j:slf4j-api:jar:2.0.9:compile
[INFO] |  \\- (org.slf4j:slf4j-api:jar:2.0.7:compile - omitted for conflict with 2.0.9)
[INFO] +- com.fasterxml.jackson.core:jackson-databind:jar:2.15.2:compile
[INFO] |  +- com.fasterxml.jackson.core:jackson-core:jar:2.15.2:compile
[INFO] \\- junit:junit:jar:4.13.2:test (scope not updated to compile)
"""


class TestListDialect:
    def test_parses_resolved_section(self) -> None:
        result = parse_list_output(LIST_OUTPUT)

        assert result == {
            ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.9"),
            ArtifactCoordinate("com.google.guava", "guava", "32.1.2-jre"),
            ArtifactCoordinate("io.netty", "netty-transport-native-epoll", "4.1.100.Final"),
            ArtifactCoordinate("org.projectlombok", "lombok", "1.18.30"),
        }

    def test_plain_output_file_lines(self) -> None:
        """The plugin's outputFile has no log prefix, only indentation."""
        coordinate = parse_list_line("   org.slf4j:slf4j-api:jar:2.0.9:compile")

        assert coordinate == ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.9")

    def test_classifier_row_uses_second_to_last_field(self) -> None:
        coordinate = parse_list_line("[INFO]    g.h:a:test-jar:tests:1.2:test")

        assert coordinate == ArtifactCoordinate("g.h", "a", "1.2")

    def test_rejects_placeholders_and_ranges(self) -> None:
        assert parse_list_line("[INFO]    org.foo:bar:jar:${bar.version}:compile") is None
        assert parse_list_line("[INFO]    org.foo:bar:jar:[1.0,2.0):compile") is None

    def test_rejects_rows_without_scope(self) -> None:
        assert parse_list_line("[INFO] com.example:app:jar:1.0.0") is None

    def test_ignores_log_noise(self) -> None:
        assert parse_list_line("[WARNING] The POM for org.foo:bar:jar:1.0 is missing") is None
        assert parse_list_line("") is None


class TestTreeDialect:
    def test_parses_tree_entries(self) -> None:
        result = parse_tree_output(TREE_OUTPUT)

        assert result == {
            ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.9"),
            ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.7"),
            ArtifactCoordinate("com.fasterxml.jackson.core", "jackson-databind", "2.15.2"),
            ArtifactCoordinate("com.fasterxml.jackson.core", "jackson-core", "2.15.2"),
            ArtifactCoordinate("junit", "junit", "4.13.2"),
        }

    def test_root_line_is_not_an_entry(self) -> None:
        assert parse_tree_line("[INFO] com.example:app:jar:1.0.0") is None

    def test_unwraps_omitted_entry(self) -> None:
        line = "|  \\- (org.slf4j:slf4j-api:jar:2.0.7:compile - omitted for duplicate)"

        assert parse_tree_line(line) == ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.7")

    def test_deep_indentation(self) -> None:
        line = "[INFO] |  |  |  \\- org.ow2.asm:asm:jar:9.5:runtime"

        assert parse_tree_line(line) == ArtifactCoordinate("org.ow2.asm", "asm", "9.5")


def test_has_build_failure() -> None:
    assert has_build_failure("[INFO] BUILD FAILURE\n[ERROR] Failed to execute goal")
    assert not has_build_failure("[INFO] BUILD SUCCESS")
