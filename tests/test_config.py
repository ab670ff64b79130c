# tests/test_config.py
import os
from pathlib import Path

import pytest

from sandboxfs.config import DEFAULT_MAX_READ_BYTES, Settings, ToolSetConfig


def test_root_is_canonicalized(root: Path, tmp_path: Path):
    os.symlink(root, tmp_path / "alias")
    cfg = ToolSetConfig(allowed_root=tmp_path / "alias")
    assert cfg.allowed_root == root
    assert cfg.max_read_bytes == DEFAULT_MAX_READ_BYTES


def test_root_must_exist_and_be_a_directory(tmp_path: Path):
    with pytest.raises(ValueError):
        ToolSetConfig(allowed_root=tmp_path / "missing")
    (tmp_path / "file").write_text("x")
    with pytest.raises(ValueError):
        ToolSetConfig(allowed_root=tmp_path / "file")
    with pytest.raises(ValueError):
        ToolSetConfig(allowed_root=Path("relative/root"))


@pytest.mark.parametrize("field", ["max_read_bytes", "max_write_bytes", "max_entries", "max_edit_operations"])
def test_limits_must_be_positive(root: Path, field: str):
    with pytest.raises(ValueError):
        ToolSetConfig(allowed_root=root, **{field: 0})


def test_config_is_immutable(root: Path):
    cfg = ToolSetConfig(allowed_root=root)
    with pytest.raises(AttributeError):
        cfg.max_read_bytes = 1


def test_settings_from_env_build_toolset(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FS_ALLOWED_ROOT", str(tmp_path / "ws"))
    monkeypatch.setenv("FS_MAX_READ_BYTES", "123")
    monkeypatch.setenv("FS_DELETE_ENABLED", "true")
    cfg = Settings().toolset_config()
    assert cfg.allowed_root == (tmp_path / "ws").resolve()
    assert cfg.allowed_root.is_dir()
    assert cfg.max_read_bytes == 123
    assert cfg.allow_delete is True
