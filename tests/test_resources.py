import pathlib
import zipfile

import pytest

from python_unbundler.errors import ArtifactIOError, MissingResourceError
from python_unbundler.resources import MemoryResources, TraversableResources, open_resources


def test_memory_resources() -> None:
    resources = MemoryResources({"libraries/a/b.whl": b"bytes", "entry-point": b"app\n"})

    assert resources.exists("libraries/a/b.whl") is True
    assert resources.exists("/libraries//a/b.whl") is True
    assert resources.exists("libraries/a") is False
    with resources.open("libraries/a/b.whl") as f:
        assert f.read() == b"bytes"
    assert resources.read_text("entry-point") == "app\n"


def test_missing_resource_names_the_resource() -> None:
    with pytest.raises(MissingResourceError) as excinfo:
        MemoryResources({}).open("versions.list")
    assert excinfo.value.resource == "versions.list"


def test_directory_bundle(tmp_path: pathlib.Path) -> None:
    (tmp_path / "versions" / "1.0").mkdir(parents=True)
    (tmp_path / "versions" / "1.0" / "app.zip").write_bytes(b"app")

    with open_resources(tmp_path) as resources:
        assert isinstance(resources, TraversableResources)
        assert resources.exists("versions/1.0/app.zip") is True
        assert resources.exists("versions/1.0") is False
        with resources.open("versions/1.0/app.zip") as f:
            assert f.read() == b"app"


def test_zip_bundle(tmp_path: pathlib.Path) -> None:
    archive = tmp_path / "bundle.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("entry-point", "app.main\n")
        zf.writestr("libraries/org/lib.whl", b"lib")

    with open_resources(archive) as resources:
        assert resources.read_text("entry-point") == "app.main\n"
        assert resources.exists("libraries/org/lib.whl") is True
        assert resources.exists("libraries/org/other.whl") is False
        with pytest.raises(MissingResourceError):
            resources.open("versions.list")


def test_open_resources_missing_path(tmp_path: pathlib.Path) -> None:
    with pytest.raises(MissingResourceError):
        open_resources(tmp_path / "nope")


def test_open_resources_rejects_non_zip_file(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "bundle.txt"
    path.write_text("not a zip")
    with pytest.raises(ArtifactIOError):
        open_resources(path)


def test_package_bundle_is_the_default() -> None:
    with open_resources() as resources:
        assert isinstance(resources, TraversableResources)
        assert resources.exists("versions.list") is False


def test_read_text_rejects_invalid_utf8() -> None:
    resources = MemoryResources({"versions.list": b"\xff\xfe not text\n"})

    with pytest.raises(ArtifactIOError) as excinfo:
        resources.read_text("versions.list")
    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
