"""Locations of the enabled and disabled addon directories.

Deadlock loads addon archives from ``game/citadel/addons``.  Disabled mods
are parked in ``addons/.disabled`` so they keep their filename (and thus
their reserved slot) while being invisible to the game.
"""

from pathlib import Path

from deadlock_mod_manager.constants import ADDONS_DIRNAME, DISABLED_DIRNAME


def game_root_from_install(install_path: str | Path) -> Path:
    """Map a Deadlock install directory to the ``citadel`` content root."""
    return Path(install_path) / "game" / "citadel"


def addons_dir(root: str | Path) -> Path:
    return Path(root) / ADDONS_DIRNAME


def disabled_dir(root: str | Path) -> Path:
    return Path(root) / ADDONS_DIRNAME / DISABLED_DIRNAME


def ensure_mod_dirs(root: str | Path) -> tuple[Path, Path]:
    """Create both mod directories if missing and return ``(enabled, disabled)``."""
    enabled = addons_dir(root)
    disabled = disabled_dir(root)
    disabled.mkdir(parents=True, exist_ok=True)
    return enabled, disabled
