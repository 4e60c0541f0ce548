import pytest

from python_unbundler.errors import MalformedEntryError, MissingResourceError
from python_unbundler.manifest import (
    ArtifactEntry,
    parse_manifest,
    read_entry_point,
    read_manifest,
)
from python_unbundler.resources import MemoryResources


def test_parse_line_splits_three_fields() -> None:
    entry = ArtifactEntry.parse_line("abc123\tlib1\tfoo/bar.jar")
    assert entry == ArtifactEntry(hash="abc123", id="lib1", path="foo/bar.jar")


def test_parse_line_rejects_two_fields() -> None:
    with pytest.raises(MalformedEntryError) as excinfo:
        ArtifactEntry.parse_line("abc123\tlib1")
    assert excinfo.value.line == "abc123\tlib1"


def test_parse_line_rejects_extra_fields() -> None:
    with pytest.raises(MalformedEntryError):
        ArtifactEntry.parse_line("abc123\tlib1\tfoo.whl\textra")


@pytest.mark.parametrize(
    "path",
    ["/etc/passwd", "../escape.whl", "a/../../escape.whl", "c:\\lib.whl", "c:/lib.whl", ""],
)
def test_parse_line_rejects_unsafe_paths(path: str) -> None:
    with pytest.raises(MalformedEntryError):
        ArtifactEntry.parse_line(f"abc123\tlib1\t{path}")


def test_entries_are_values() -> None:
    a = ArtifactEntry.parse_line("h\tid\tp.whl")
    b = ArtifactEntry.parse_line("h\tid\tp.whl")
    assert a == b
    assert len({a, b}) == 1
    with pytest.raises(AttributeError):
        a.hash = "other"  # type: ignore[misc]


def test_parse_manifest_preserves_order_and_reports_line_number() -> None:
    entries = parse_manifest("h1\ta\tone.whl\nh2\tb\ttwo.whl\n")
    assert [e.path for e in entries] == ["one.whl", "two.whl"]

    with pytest.raises(MalformedEntryError, match="line 2"):
        parse_manifest("h1\ta\tone.whl\nbroken line\n")


def test_read_manifest_names_the_resource() -> None:
    resources = MemoryResources({"libraries.list": b"h1\ta\tone.whl\nh2\tb\n"})
    with pytest.raises(MalformedEntryError, match="libraries.list"):
        read_manifest(resources, "libraries")


def test_read_manifest_missing_resource() -> None:
    with pytest.raises(MissingResourceError) as excinfo:
        read_manifest(MemoryResources({}), "versions")
    assert excinfo.value.resource == "versions.list"


def test_read_manifest_handles_crlf() -> None:
    resources = MemoryResources({"versions.list": b"h1\tv1\tv1/app.zip\r\n"})
    assert read_manifest(resources, "versions") == [ArtifactEntry("h1", "v1", "v1/app.zip")]


def test_read_entry_point_returns_first_line() -> None:
    resources = MemoryResources({"entry-point": b"app.server:main\nignored\n"})
    assert read_entry_point(resources) == "app.server:main"


@pytest.mark.parametrize("payload", [b"", b"\n", b"   \n"])
def test_read_entry_point_empty_is_none(payload: bytes) -> None:
    assert read_entry_point(MemoryResources({"entry-point": payload})) is None


def test_read_entry_point_missing_resource() -> None:
    with pytest.raises(MissingResourceError):
        read_entry_point(MemoryResources({}))


@pytest.mark.parametrize("path", ["org/example/lib:1.0.whl", "a/b:c/d.whl"])
def test_parse_line_accepts_colon_after_first_segment(path: str) -> None:
    assert ArtifactEntry.parse_line(f"abc123\tlib1\t{path}").path == path


def test_parse_manifest_splits_only_on_line_terminators() -> None:
    text = "h1\tid\x0bone\tone.whl\rh2\tid two\ttwo.whl\r\nh3\tthree\tthree.whl"
    assert parse_manifest(text) == [
        ArtifactEntry("h1", "id\x0bone", "one.whl"),
        ArtifactEntry("h2", "id two", "two.whl"),
        ArtifactEntry("h3", "three", "three.whl"),
    ]


def test_read_entry_point_keeps_unicode_separators() -> None:
    resources = MemoryResources({"entry-point": "app\x1cserver\nignored\n".encode("utf-8")})
    assert read_entry_point(resources) == "app\x1cserver"
