# sandboxfs/services/resolver.py
from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path

from sandboxfs.errors import ErrorCode, FsToolError

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
URL_LIKE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
ENCODED_SEPARATORS = re.compile(r"%(2e|2f|5c)", re.IGNORECASE)


@dataclass(frozen=True)
class ResolvedPath:
    requested: str  # caller string, echoed back in results
    path: Path      # canonical target, symlinks followed
    entry: Path     # canonical parent + final component (final symlink not followed)
    relative: str
    exists: bool

    @property
    def is_root(self) -> bool:
        return self.relative == "."


def _is_within(root: Path, candidate: Path) -> bool:
    # component-wise: /allowed-root-evil is not under /allowed-root
    return candidate == root or candidate.is_relative_to(root)


class PathResolver:
    """
    Confine caller-supplied relative paths to a single canonical root.

    Checks run in this order:
      1. syntax (empty, control characters, URL-like or percent-encoded
         traversal) -> invalid_argument
      2. lexical '..' escape -> confinement_violation, before any stat
      3. canonicalization of the deepest existing ancestor, symlinks
         followed, then a component-wise containment check
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve(strict=True)

    def resolve(self, requested: str) -> ResolvedPath:
        parts = self._normalize(requested)
        lexical = self.root.joinpath(*parts)

        path = self._canonicalize(lexical)
        self._ensure_inside(path, requested)
        if parts:
            entry = self._canonicalize(lexical.parent) / lexical.name
            self._ensure_inside(entry, requested)
        else:
            entry = self.root

        relative = path.relative_to(self.root).as_posix()
        return ResolvedPath(
            requested=requested,
            path=path,
            entry=entry,
            relative=relative,
            exists=os.path.lexists(entry),
        )

    # ---------- Internals ----------

    def _normalize(self, requested: str) -> list[str]:
        if not isinstance(requested, str) or not requested.strip():
            raise FsToolError(ErrorCode.INVALID_ARGUMENT, "Path must be a non-empty string.")
        if CONTROL_CHARS.search(requested):
            raise FsToolError(ErrorCode.INVALID_ARGUMENT, "Path contains control characters.")
        if URL_LIKE.match(requested):
            raise FsToolError(ErrorCode.INVALID_ARGUMENT, "Path must not be a URL.")
        if ENCODED_SEPARATORS.search(requested):
            raise FsToolError(
                ErrorCode.INVALID_ARGUMENT, "Path must not contain percent-encoded dots or separators."
            )

        # Windows separators count too; a leading separator never overrides the root
        rel = requested.replace("\\", "/").lstrip("/")
        norm = posixpath.normpath(rel) if rel else "."
        if norm == ".." or norm.startswith("../"):
            raise FsToolError(
                ErrorCode.CONFINEMENT_VIOLATION, "Path is outside the configured allowed root."
            )
        return [] if norm == "." else norm.split("/")

    def _canonicalize(self, lexical: Path) -> Path:
        existing = lexical
        missing: list[str] = []
        while not os.path.lexists(existing):
            missing.append(existing.name)
            existing = existing.parent
        try:
            base = existing.resolve()
        except (OSError, RuntimeError):
            base = None
        # a link left in the resolved result means a symlink loop
        if base is None or os.path.islink(base):
            raise FsToolError(
                ErrorCode.CONFINEMENT_VIOLATION, "Path could not be resolved inside the allowed root."
            )
        return base.joinpath(*reversed(missing))

    def _ensure_inside(self, candidate: Path, requested: str) -> None:
        if not _is_within(self.root, candidate):
            raise FsToolError(
                ErrorCode.CONFINEMENT_VIOLATION,
                f"Resolved path for '{requested}' escapes the configured allowed root.",
            )
