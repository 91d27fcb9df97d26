from __future__ import annotations

from pathlib import Path

import pytest

from image_converter.errors import EncodeFailure
from image_converter.image_engine.output_path import is_bare_format, resolve_output_path


class RecordingFileIO:
    """FileIO stand-in that never touches the disk."""

    def __init__(self, existing=(), fail_mkdir: bool = False):
        self.existing = set(existing)
        self.created: list[str] = []
        self.fail_mkdir = fail_mkdir

    def exists(self, path: str) -> bool:
        return path in self.existing

    def makedirs(self, path: str) -> None:
        if self.fail_mkdir:
            raise PermissionError(13, "Permission denied", path)
        self.created.append(path)
        self.existing.add(path)

    def write_bytes(self, path: str, data: bytes) -> None:
        raise AssertionError("not expected")

    def remove(self, path: str) -> None:
        raise AssertionError("not expected")


def test_bare_format_goes_next_to_source_with_suffix():
    fio = RecordingFileIO(existing={"/a/b"})

    out = resolve_output_path("webp", "/a/b/photo.png", "converted", fileio=fio)

    assert out == "/a/b/photo_converted.webp"
    assert fio.created == []


def test_explicit_path_is_used_verbatim_and_directory_created():
    fio = RecordingFileIO()

    out = resolve_output_path("/x/y/out.png", "/a/b/photo.jpg", fileio=fio)

    assert out == "/x/y/out.png"
    assert fio.created == ["/x/y"]


def test_bare_format_without_suffix_uses_default_suffix():
    fio = RecordingFileIO(existing={"/a/b"})

    assert resolve_output_path(".PNG", "/a/b/photo.jpg", fileio=fio) == "/a/b/photo_converted.png"


def test_empty_suffix_keeps_plain_stem():
    fio = RecordingFileIO(existing={"/a/b"})

    assert resolve_output_path("gif", "/a/b/photo.jpg", "", fileio=fio) == "/a/b/photo.gif"


def test_force_ext_overrides_token():
    fio = RecordingFileIO(existing={"/a/b", "/x"})

    assert resolve_output_path(None, "/a/b/photo.jpg", "optimized", fileio=fio, force_ext="jpg") == (
        "/a/b/photo_optimized.jpg"
    )
    assert resolve_output_path("/x/out.webp", "/a/b/photo.png", fileio=fio, force_ext="png") == "/x/out.png"


def test_missing_token_raises():
    with pytest.raises(ValueError):
        resolve_output_path(None, "/a/b/photo.jpg", fileio=RecordingFileIO())


def test_directory_creation_error_is_an_encode_failure():
    with pytest.raises(EncodeFailure):
        resolve_output_path("/x/y/out.png", "/a/b/photo.jpg", fileio=RecordingFileIO(fail_mkdir=True))


def test_real_directory_creation_is_idempotent(tmp_path: Path):
    target = tmp_path / "nested" / "dir" / "out.jpg"

    first = resolve_output_path(str(target), str(tmp_path / "src.png"))
    second = resolve_output_path(str(target), str(tmp_path / "src.png"))

    assert first == second
    assert Path(first).parent.is_dir()


@pytest.mark.parametrize(
    ("token", "bare"), [("webp", True), (".webp", True), ("out.webp", False), ("dir/webp", False), (None, True)]
)
def test_is_bare_format(token, bare):
    assert is_bare_format(token) is bare
