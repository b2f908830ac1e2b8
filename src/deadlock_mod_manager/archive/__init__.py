from deadlock_mod_manager.archive.handler import (
    ArchiveEntry,
    ArchiveHandler,
    RarHandler,
    SevenZipHandler,
    ZipHandler,
    extract_vpks,
    is_container,
    open_archive,
)

__all__ = [
    "ArchiveEntry",
    "ArchiveHandler",
    "RarHandler",
    "SevenZipHandler",
    "ZipHandler",
    "extract_vpks",
    "is_container",
    "open_archive",
]
