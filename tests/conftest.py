# tests/conftest.py
from pathlib import Path

import pytest

from sandboxfs.config import Settings
from sandboxfs.di import build_container


@pytest.fixture
def root(tmp_path: Path) -> Path:
    r = tmp_path / "allowed-root"
    r.mkdir()
    return r.resolve()


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    o = tmp_path / "outside"
    o.mkdir()
    (o / "secret.txt").write_text("secret", encoding="utf-8")
    return o.resolve()


@pytest.fixture
def make_container(root: Path):
    def _make(**overrides):
        return build_container(Settings(FS_ALLOWED_ROOT=root, **overrides))
    return _make
