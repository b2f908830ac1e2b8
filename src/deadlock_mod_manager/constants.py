"""Filesystem and load-order constants for Deadlock addon archives."""

VPK_EXTENSION = ".vpk"
DIR_SUFFIX = "_dir.vpk"
PRIORITY_PREFIX = "pak"

MIN_PRIORITY = 1
MAX_PRIORITY = 99
DEFAULT_PRIORITY = 50

CONTAINER_EXTENSIONS = {".zip", ".7z", ".rar"}

ADDONS_DIRNAME = "addons"
DISABLED_DIRNAME = ".disabled"

# Files that ship inside many mods but never affect what the game loads.
IGNORED_CONFLICT_FILES = frozenset(
    {
        "readme.txt",
        "readme.md",
        "license.txt",
        "license.md",
        "credits.txt",
        "changelog.txt",
        "info.txt",
    }
)
