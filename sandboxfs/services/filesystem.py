# sandboxfs/services/filesystem.py
from __future__ import annotations

import logging
import os
import stat
from typing import Any, Dict, List, Sequence

from sandboxfs.config import ToolSetConfig
from sandboxfs.errors import ErrorCode, FsToolError, from_os_error, success
from sandboxfs.services.resolver import PathResolver, ResolvedPath

logger = logging.getLogger(__name__)

# not present on every platform
O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)
O_BINARY = getattr(os, "O_BINARY", 0)


def _entry_type(entry: os.DirEntry) -> str:
    if entry.is_dir(follow_symlinks=False):
        return "directory"
    if entry.is_file(follow_symlinks=False):
        return "file"
    return "other"


def _check_size(size: int, limit: int, what: str) -> None:
    if size > limit:
        raise FsToolError(
            ErrorCode.SIZE_LIMIT_EXCEEDED,
            f"{what} exceeds configured size limit ({limit} bytes).",
        )


def _apply_edits(content: str, edits: Sequence[Any]) -> tuple[str, int]:
    applied = 0
    for edit in edits:
        if edit.oldText not in content:
            raise FsToolError(
                ErrorCode.EDIT_TARGET_MISSING,
                f"Could not find text to replace: {edit.oldText[:80]}",
            )
        count = -1 if edit.replaceAll else 1
        content = content.replace(edit.oldText, edit.newText, count)
        applied += 1
    return content, applied


class FileSystemService:
    """
    Sandbox all file operations inside the configured allowed root.

    Every public method resolves its path through PathResolver first and
    returns a success dict echoing the caller's path. Failures raise
    FsToolError; the registry turns them into failure results.
    """

    def __init__(self, config: ToolSetConfig):
        self.config = config
        self.resolver = PathResolver(config.allowed_root)

    # ---------- Read-only ----------

    def list_dir(self, rel_path: str = ".") -> Dict[str, Any]:
        target = self.resolver.resolve(rel_path or ".")
        st = self._stat(target)
        if not stat.S_ISDIR(st.st_mode):
            raise FsToolError(ErrorCode.NOT_A_DIRECTORY, "Target path is not a directory.")

        limit = self.config.max_entries
        entries: List[Dict[str, str]] = []
        truncated = False
        try:
            with os.scandir(target.path) as it:
                for entry in it:
                    if len(entries) == limit:
                        truncated = True
                        break
                    entries.append({"name": entry.name, "type": _entry_type(entry)})
        except OSError as e:
            raise from_os_error(e) from e

        entries.sort(key=lambda e: e["name"])
        return success(rel_path, entries=entries, truncated=truncated)

    def read_file(self, rel_path: str) -> Dict[str, Any]:
        target = self.resolver.resolve(rel_path)
        data = self._read_bytes(target, "File size for read_file operation")
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            raise FsToolError(
                ErrorCode.DECODE_ERROR, "File is not valid UTF-8 text; binary files are not supported."
            ) from None
        return success(rel_path, content=content, bytesRead=len(data))

    # ---------- Mutating ----------

    def write_file(
        self,
        rel_path: str,
        content: str,
        *,
        mode: str = "overwrite",
        create_parents: bool = True,
    ) -> Dict[str, Any]:
        data = content.encode("utf-8")
        # pre-check before touching the filesystem
        _check_size(len(data), self.config.max_write_bytes, "Write payload size")

        target = self.resolver.resolve(rel_path)
        if target.is_root or os.path.isdir(target.path):
            raise FsToolError(ErrorCode.NOT_A_FILE, "Target path points to a directory, not a file.")
        if os.path.exists(target.path) and not os.path.isfile(target.path):
            # fifos and devices are never opened
            raise FsToolError(ErrorCode.NOT_A_FILE, "Target path is not a regular file.")

        parent = target.path.parent
        if create_parents:
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except FileExistsError:
                raise FsToolError(
                    ErrorCode.NOT_A_DIRECTORY, "A parent of the target path is not a directory."
                ) from None
            except OSError as e:
                raise from_os_error(e) from e
        elif not parent.is_dir():
            raise FsToolError(ErrorCode.NOT_FOUND, "Parent directory does not exist.")

        flags = os.O_WRONLY | os.O_CREAT | O_NOFOLLOW | O_BINARY
        flags |= os.O_APPEND if mode == "append" else os.O_TRUNC
        try:
            fd = os.open(target.path, flags, 0o644)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                size = os.fstat(f.fileno()).st_size
        except OSError as e:
            raise from_os_error(e) from e

        logger.debug("wrote %d bytes to %s (%s)", len(data), target.relative, mode)
        return success(rel_path, mode=mode, bytesWritten=len(data), fileSizeBytes=size)

    def edit_file(self, rel_path: str, edits: Sequence[Any]) -> Dict[str, Any]:
        if len(edits) > self.config.max_edit_operations:
            raise FsToolError(
                ErrorCode.OPERATION_LIMIT_EXCEEDED,
                f"Operation count exceeds configured limit ({self.config.max_edit_operations}).",
            )
        target = self.resolver.resolve(rel_path)
        data = self._read_bytes(target, "File size for edit_file read operation")
        try:
            original = data.decode("utf-8")
        except UnicodeDecodeError:
            raise FsToolError(ErrorCode.DECODE_ERROR, "File is not valid UTF-8 text.") from None

        updated, applied = _apply_edits(original, edits)
        out = updated.encode("utf-8")
        _check_size(len(out), self.config.max_write_bytes, "Edited content size")

        try:
            fd = os.open(target.path, os.O_WRONLY | os.O_TRUNC | O_NOFOLLOW | O_BINARY)
            with os.fdopen(fd, "wb") as f:
                f.write(out)
        except OSError as e:
            raise from_os_error(e) from e
        return success(rel_path, appliedEdits=applied, fileSizeBytes=len(out))

    def make_directory(self, rel_path: str, *, parents: bool = True) -> Dict[str, Any]:
        target = self.resolver.resolve(rel_path)
        if target.exists:
            if os.path.isdir(target.path):
                return success(rel_path, created=False)
            raise FsToolError(ErrorCode.NOT_A_DIRECTORY, "Target path exists and is not a directory.")
        try:
            target.path.mkdir(parents=parents)
        except FileNotFoundError:
            raise FsToolError(ErrorCode.NOT_FOUND, "Parent directory does not exist.") from None
        except FileExistsError:
            raise FsToolError(
                ErrorCode.NOT_A_DIRECTORY, "A parent of the target path is not a directory."
            ) from None
        except OSError as e:
            raise from_os_error(e) from e
        return success(rel_path, created=True)

    def delete_file(self, rel_path: str, *, confirm: bool = False) -> Dict[str, Any]:
        if not confirm:
            raise FsToolError(
                ErrorCode.DESTRUCTIVE_CONFIRMATION_REQUIRED, "Set confirm=true to delete files."
            )
        target = self.resolver.resolve(rel_path)
        if target.is_root:
            raise FsToolError(ErrorCode.INVALID_ARGUMENT, "Refusing to delete the allowed root.")
        if not target.exists:
            raise FsToolError(ErrorCode.NOT_FOUND, "Target path was not found.")
        try:
            # lstat: a symlink is removed itself, never its target
            st = os.lstat(target.entry)
            if not (stat.S_ISREG(st.st_mode) or stat.S_ISLNK(st.st_mode)):
                raise FsToolError(ErrorCode.NOT_A_FILE, "delete_file only supports files or symlinks.")
            os.unlink(target.entry)
        except OSError as e:
            raise from_os_error(e) from e
        return success(rel_path, deleted=True)

    # ---------- Internals ----------

    def _stat(self, target: ResolvedPath) -> os.stat_result:
        try:
            return os.stat(target.path)
        except FileNotFoundError:
            raise FsToolError(ErrorCode.NOT_FOUND, "Target path was not found.") from None
        except OSError as e:
            raise from_os_error(e) from e

    def _read_bytes(self, target: ResolvedPath, what: str) -> bytes:
        st = self._stat(target)
        if not stat.S_ISREG(st.st_mode):
            raise FsToolError(ErrorCode.NOT_A_FILE, "Target path is not a file.")
        limit = self.config.max_read_bytes
        _check_size(st.st_size, limit, what)

        try:
            fd = os.open(target.path, os.O_RDONLY | O_NOFOLLOW | O_BINARY)
            with os.fdopen(fd, "rb") as f:
                _check_size(os.fstat(f.fileno()).st_size, limit, what)
                data = f.read(limit + 1)
        except OSError as e:
            raise from_os_error(e) from e
        # file grew after fstat
        _check_size(len(data), limit, what)
        return data
