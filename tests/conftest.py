import os
import struct
import tempfile
from pathlib import Path

# Keep the module-level database out of the user's data directory.
os.environ.setdefault("DMM_DATA_DIR", tempfile.mkdtemp(prefix="dmm-tests-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

import deadlock_mod_manager.models  # noqa: E402, F401  register all tables
from deadlock_mod_manager.main import app  # noqa: E402
from deadlock_mod_manager.routers.deps import get_game_root, get_metadata_store  # noqa: E402
from deadlock_mod_manager.services.metadata_store import SqlMetadataStore  # noqa: E402
from deadlock_mod_manager.utils.paths import ensure_mod_dirs  # noqa: E402

VPK_SIGNATURE = 0x55AA1234


def build_vpk(paths: list[str], *, version: int = 2, preload: bytes = b"") -> bytes:
    """Build a directory-only VPK listing *paths* (``dir/stem.ext``)."""
    grouped: dict[str, dict[str, list[str]]] = {}
    for path in paths:
        directory, _, file_name = path.rpartition("/")
        stem, _, ext = file_name.rpartition(".")
        grouped.setdefault(ext, {}).setdefault(directory or " ", []).append(stem)

    tree = bytearray()
    for ext, dirs in grouped.items():
        tree += ext.encode() + b"\x00"
        for directory, stems in dirs.items():
            tree += directory.encode() + b"\x00"
            for stem in stems:
                tree += stem.encode() + b"\x00"
                tree += struct.pack("<IHHIIH", 0, len(preload), 0x7FFF, 0, 0, 0xFFFF)
                tree += preload
            tree += b"\x00"
        tree += b"\x00"
    tree += b"\x00"

    if version == 2:
        header = struct.pack("<IIIIIII", VPK_SIGNATURE, 2, len(tree), 0, 0, 0, 0)
    else:
        header = struct.pack("<III", VPK_SIGNATURE, version, len(tree))
    return header + bytes(tree)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def store(engine):
    return SqlMetadataStore(engine)


@pytest.fixture
def game_root(tmp_path) -> Path:
    """A ``game/citadel`` root with empty enabled and disabled folders."""
    root = tmp_path / "Deadlock" / "game" / "citadel"
    ensure_mod_dirs(root)
    return root


@pytest.fixture
def vpk_bytes():
    return build_vpk


@pytest.fixture
def make_vpk(game_root):
    def _make(
        name: str,
        paths: list[str] | None = None,
        *,
        enabled: bool = True,
        raw: bytes | None = None,
    ) -> Path:
        folder = game_root / "addons"
        if not enabled:
            folder = folder / ".disabled"
        path = folder / name
        data = raw if raw is not None else build_vpk(paths or ["materials/default.vmat_c"])
        path.write_bytes(data)
        return path

    return _make


@pytest.fixture
def client(engine, store, game_root, monkeypatch):
    monkeypatch.setattr("deadlock_mod_manager.database.engine", engine)
    app.dependency_overrides[get_game_root] = lambda: game_root
    app.dependency_overrides[get_metadata_store] = lambda: store
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()
