"""Domain errors raised by the mod engine.

Parsing never raises: an unreadable archive is reported as ``None`` by
:func:`deadlock_mod_manager.vpk.parser.parse_vpk_directory`.
"""


class ModManagerError(Exception):
    """Base class for all mod engine errors."""


class ModNotFoundError(ModManagerError):
    def __init__(self, mod_id: str) -> None:
        super().__init__(f"Mod not found: {mod_id}")
        self.mod_id = mod_id


class NoFreeSlotError(ModManagerError):
    """Every priority slot in the allowed range is occupied."""


class PriorityInUseError(ModManagerError):
    """The destination filename for a rename is held by another archive."""


class DownloadError(ModManagerError):
    """The remote payload could not be fetched."""


class ExtractionError(ModManagerError):
    """A container archive could not be unpacked."""


class DownloadCancelledError(ModManagerError):
    """A queued download was removed before it started."""
