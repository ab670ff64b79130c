# tests/test_files.py
import os
from pathlib import Path

import pytest

from sandboxfs.config import ToolSetConfig
from sandboxfs.errors import ErrorCode, FsToolError
from sandboxfs.services.filesystem import FileSystemService


def _fs(root: Path, **limits) -> FileSystemService:
    return FileSystemService(ToolSetConfig(allowed_root=root, **limits))


def _raises(code: ErrorCode, fn, *args, **kwargs):
    with pytest.raises(FsToolError) as exc:
        fn(*args, **kwargs)
    assert exc.value.code == code


def test_read_notes_scenario(root: Path):
    (root / "notes.txt").write_bytes(b"line one\nline two")
    fs = _fs(root, max_read_bytes=4096)
    assert fs.read_file("notes.txt") == {
        "success": True,
        "path": "notes.txt",
        "content": "line one\nline two",
        "bytesRead": 17,
    }


def test_read_over_limit_fails_before_reading(root: Path):
    (root / "notes.txt").write_bytes(b"line one\nline two")
    _raises(ErrorCode.SIZE_LIMIT_EXCEEDED, _fs(root, max_read_bytes=10).read_file, "notes.txt")


@pytest.mark.parametrize("size,ok", [(0, True), (63, True), (64, True), (65, False)])
def test_read_limit_boundary(root: Path, size: int, ok: bool):
    (root / "f.txt").write_bytes(b"a" * size)
    fs = _fs(root, max_read_bytes=64)
    if ok:
        assert fs.read_file("f.txt")["bytesRead"] == size
    else:
        _raises(ErrorCode.SIZE_LIMIT_EXCEEDED, fs.read_file, "f.txt")


def test_read_reports_bytes_not_characters(root: Path):
    (root / "u.txt").write_text("héllo ✓", encoding="utf-8")
    out = _fs(root).read_file("u.txt")
    assert out["content"] == "héllo ✓"
    assert out["bytesRead"] == len("héllo ✓".encode("utf-8"))


def test_read_is_idempotent(root: Path):
    (root / "a.txt").write_text("same\n")
    fs = _fs(root)
    assert fs.read_file("a.txt") == fs.read_file("a.txt")


def test_read_errors(root: Path, outside: Path):
    (root / "dir").mkdir()
    (root / "bin.dat").write_bytes(b"\xff\xfe\x00\x81")
    os.symlink(outside / "secret.txt", root / "leak.txt")
    fs = _fs(root)
    _raises(ErrorCode.NOT_FOUND, fs.read_file, "missing.txt")
    _raises(ErrorCode.NOT_A_FILE, fs.read_file, "dir")
    _raises(ErrorCode.DECODE_ERROR, fs.read_file, "bin.dat")
    _raises(ErrorCode.CONFINEMENT_VIOLATION, fs.read_file, "leak.txt")
    _raises(ErrorCode.CONFINEMENT_VIOLATION, fs.read_file, "../outside/secret.txt")


def test_list_root_with_file_and_dir(root: Path):
    (root / "README.md").write_text("# hi")
    (root / "src").mkdir()
    out = _fs(root).list_dir(".")
    assert out == {
        "success": True,
        "path": ".",
        "entries": [
            {"name": "README.md", "type": "file"},
            {"name": "src", "type": "directory"},
        ],
        "truncated": False,
    }


def test_list_empty_path_means_root(root: Path):
    (root / "a.txt").write_text("a")
    out = _fs(root).list_dir("")
    assert out["path"] == ""
    assert [e["name"] for e in out["entries"]] == ["a.txt"]


def test_list_truncates_at_max_entries(root: Path):
    for i in range(6):
        (root / f"f{i}.txt").write_text(str(i))
    out = _fs(root, max_entries=5).list_dir(".")
    assert len(out["entries"]) == 5
    assert out["truncated"] is True


def test_list_exactly_max_entries_is_not_truncated(root: Path):
    for i in range(5):
        (root / f"f{i}.txt").write_text(str(i))
    out = _fs(root, max_entries=5).list_dir(".")
    assert len(out["entries"]) == 5
    assert out["truncated"] is False


def test_list_classifies_symlinks_as_other(root: Path, outside: Path):
    os.symlink(outside, root / "escape")
    out = _fs(root).list_dir(".")
    assert out["entries"] == [{"name": "escape", "type": "other"}]


def test_list_errors(root: Path):
    (root / "file.txt").write_text("x")
    fs = _fs(root)
    _raises(ErrorCode.NOT_A_DIRECTORY, fs.list_dir, "file.txt")
    _raises(ErrorCode.NOT_FOUND, fs.list_dir, "nope")
    _raises(ErrorCode.CONFINEMENT_VIOLATION, fs.list_dir, "../")
