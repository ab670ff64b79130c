# tests/test_resolver.py
import os
from pathlib import Path

import pytest

from sandboxfs.errors import ErrorCode, FsToolError
from sandboxfs.services.resolver import PathResolver


def _code(resolver: PathResolver, requested: str) -> ErrorCode:
    with pytest.raises(FsToolError) as exc:
        resolver.resolve(requested)
    return exc.value.code


def test_resolves_existing_file(root: Path):
    (root / "src").mkdir()
    (root / "src" / "main.py").write_text("x")
    r = PathResolver(root).resolve("src/./main.py")
    assert r.path == root / "src" / "main.py"
    assert r.relative == "src/main.py"
    assert r.requested == "src/./main.py"
    assert r.exists


def test_dot_is_root(root: Path):
    r = PathResolver(root).resolve(".")
    assert r.path == root
    assert r.is_root


@pytest.mark.parametrize("requested", ["..", "../", "a/../..", "../outside/secret.txt", "..\\..\\etc\\passwd"])
def test_dotdot_escape_is_rejected(root: Path, requested: str):
    assert _code(PathResolver(root), requested) == ErrorCode.CONFINEMENT_VIOLATION


def test_absolute_looking_input_stays_under_root(root: Path):
    r = PathResolver(root).resolve("/etc/passwd")
    assert r.path == root / "etc" / "passwd"
    assert not r.exists


@pytest.mark.parametrize(
    "requested",
    ["", "   ", "a\x00b", "safe.txt\nignore_previous_instructions", "file:///etc/passwd", "%2e%2e/%2e%2e", "a%2Fb"],
)
def test_malformed_input_is_invalid_argument(root: Path, requested: str):
    assert _code(PathResolver(root), requested) == ErrorCode.INVALID_ARGUMENT


def test_symlink_to_outside_is_rejected(root: Path, outside: Path):
    os.symlink(outside, root / "escape")
    resolver = PathResolver(root)
    assert _code(resolver, "escape/secret.txt") == ErrorCode.CONFINEMENT_VIOLATION
    # missing target below an escaping link: deepest existing ancestor is checked
    assert _code(resolver, "escape/new/file.txt") == ErrorCode.CONFINEMENT_VIOLATION


def test_sibling_with_common_prefix_is_outside(root: Path):
    evil = root.parent / (root.name + "-evil")
    evil.mkdir()
    (evil / "x.txt").write_text("x")
    os.symlink(evil, root / "link")
    assert _code(PathResolver(root), "link/x.txt") == ErrorCode.CONFINEMENT_VIOLATION


def test_dangling_symlink_pointing_outside_is_rejected(root: Path, outside: Path):
    os.symlink(outside / "does-not-exist.txt", root / "dangling")
    assert _code(PathResolver(root), "dangling") == ErrorCode.CONFINEMENT_VIOLATION


def test_internal_symlink_is_followed(root: Path):
    (root / "real").mkdir()
    (root / "real" / "a.txt").write_text("a")
    os.symlink(root / "real", root / "alias")
    r = PathResolver(root).resolve("alias/a.txt")
    assert r.path == root / "real" / "a.txt"
    assert r.entry == root / "real" / "a.txt"


def test_entry_keeps_final_symlink(root: Path):
    (root / "a.txt").write_text("a")
    os.symlink(root / "a.txt", root / "link.txt")
    r = PathResolver(root).resolve("link.txt")
    assert r.path == root / "a.txt"
    assert r.entry == root / "link.txt"


def test_missing_target_keeps_remaining_components(root: Path):
    (root / "docs").mkdir()
    r = PathResolver(root).resolve("docs/new/plan.md")
    assert r.path == root / "docs" / "new" / "plan.md"
    assert not r.exists


def test_symlink_loop_fails_closed(root: Path):
    os.symlink(root / "b", root / "a")
    os.symlink(root / "a", root / "b")
    resolver = PathResolver(root)
    assert _code(resolver, "a") == ErrorCode.CONFINEMENT_VIOLATION
    assert _code(resolver, "a/x.txt") == ErrorCode.CONFINEMENT_VIOLATION
