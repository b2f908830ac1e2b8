"""Abstract container handler with implementations for ZIP, 7z, and RAR.

Mods are usually published as a ``.zip``/``.7z``/``.rar`` wrapping one or
more ``.vpk`` archives.  Handlers list a container's entries and extract
selected entries to disk; :func:`extract_vpks` flattens the ``.vpk`` files
of a container into one directory.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import py7zr

from deadlock_mod_manager.constants import CONTAINER_EXTENSIONS, VPK_EXTENSION
from deadlock_mod_manager.errors import ExtractionError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = CONTAINER_EXTENSIONS
DEFAULT_TIMEOUT = 300.0


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    filename: str
    is_dir: bool
    size: int = 0

    @property
    def basename(self) -> str:
        return PurePosixPath(self.filename.replace("\\", "/")).name


class ArchiveHandler(ABC):
    """Base class for container format handlers."""

    @abstractmethod
    def list_entries(self) -> list[ArchiveEntry]:
        """Return all entries in the container."""

    @abstractmethod
    def extract_to(self, entries: list[ArchiveEntry], dest_dir: Path) -> dict[str, Path]:
        """Extract *entries* under *dest_dir*; map entry name -> extracted file."""

    @abstractmethod
    def close(self) -> None:
        """Release resources."""

    def __enter__(self) -> ArchiveHandler:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


def _inside(dest_dir: Path, name: str) -> Path | None:
    """Resolve *name* under *dest_dir*, rejecting paths that escape it."""
    base = dest_dir.resolve()
    candidate = (base / name.replace("\\", "/")).resolve()
    if candidate.is_file() and base in candidate.parents:
        return candidate
    return None


class ZipHandler(ArchiveHandler):
    """Handler for .zip containers using stdlib zipfile."""

    def __init__(self, path: str | Path) -> None:
        self._zf = zipfile.ZipFile(path, "r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(filename=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for info in self._zf.infolist()
        ]

    def extract_to(self, entries: list[ArchiveEntry], dest_dir: Path) -> dict[str, Path]:
        result: dict[str, Path] = {}
        for entry in entries:
            if entry.is_dir:
                continue
            # ZipFile.extract strips absolute paths and ".." components.
            result[entry.filename] = Path(self._zf.extract(entry.filename, dest_dir))
        return result

    def close(self) -> None:
        self._zf.close()


class SevenZipHandler(ArchiveHandler):
    """Handler for .7z containers using py7zr."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._archive = py7zr.SevenZipFile(self._path, mode="r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(
                filename=entry.filename,
                is_dir=entry.is_directory,
                size=entry.uncompressed if hasattr(entry, "uncompressed") else 0,
            )
            for entry in self._archive.list()
        ]

    def extract_to(self, entries: list[ArchiveEntry], dest_dir: Path) -> dict[str, Path]:
        targets = [e.filename for e in entries if not e.is_dir]
        self._archive.reset()
        self._archive.extract(path=dest_dir, targets=targets)
        result: dict[str, Path] = {}
        for name in targets:
            extracted = _inside(dest_dir, name)
            if extracted is not None:
                result[name] = extracted
        return result

    def close(self) -> None:
        self._archive.close()


def _find_7zip() -> str | None:
    """Locate the 7-Zip CLI executable."""
    common = [
        r"C:\Program Files\7-Zip\7z.exe",
        r"C:\Program Files (x86)\7-Zip\7z.exe",
    ]
    for p in common:
        if Path(p).exists():
            return p
    return shutil.which("7z") or shutil.which("7za")


def _technical_blocks(output: str) -> list[dict[str, str]]:
    """Split ``7z l -slt`` output into one ``key -> value`` dict per listed item."""
    blocks: list[dict[str, str]] = [{}]
    for line in output.splitlines():
        key, sep, value = line.strip().partition(" = ")
        if sep:
            blocks[-1][key] = value
        elif blocks[-1]:
            blocks.append({})
    return [b for b in blocks if "Path" in b]


class RarHandler(ArchiveHandler):
    """Handler for .rar containers using the 7-Zip CLI, or ``unrar`` as a fallback.

    Each CLI call gets a bounded wait; on timeout the process is killed and
    the operation fails.
    """

    def __init__(self, path: str | Path, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._seven_zip = _find_7zip()
        self._unrar = shutil.which("unrar")
        if not self._seven_zip and not self._unrar:
            raise FileNotFoundError("RAR extraction requires 7-Zip (p7zip-full) or unrar")
        self._path = str(path)
        self._timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        result = subprocess.run(args, capture_output=True, text=True, timeout=self._timeout)
        if result.returncode != 0:
            raise RuntimeError(f"{args[0]} failed (exit {result.returncode}): {result.stderr}")
        return result

    def list_entries(self) -> list[ArchiveEntry]:
        if not self._seven_zip:
            output = self._run([self._unrar, "lb", self._path]).stdout  # type: ignore[list-item]
            return [
                ArchiveEntry(filename=line.strip(), is_dir=False)
                for line in output.splitlines()
                if line.strip()
            ]

        output = self._run([self._seven_zip, "l", "-slt", self._path]).stdout
        entries: list[ArchiveEntry] = []
        for props in _technical_blocks(output):
            name = props["Path"]
            # The container itself is listed as the first block.
            if name == self._path:
                continue
            size = props.get("Size", "")
            entries.append(
                ArchiveEntry(
                    filename=name,
                    is_dir=props.get("Folder") == "+",
                    size=int(size) if size.isdigit() else 0,
                )
            )
        return entries

    def extract_to(self, entries: list[ArchiveEntry], dest_dir: Path) -> dict[str, Path]:
        if self._seven_zip:
            self._run([self._seven_zip, "x", "-y", f"-o{dest_dir}", self._path])
        else:
            self._run([self._unrar, "x", "-y", self._path, f"{dest_dir}/"])  # type: ignore[list-item]
        result: dict[str, Path] = {}
        for entry in entries:
            if entry.is_dir:
                continue
            extracted = _inside(dest_dir, entry.filename)
            if extracted is not None:
                result[entry.filename] = extracted
        return result

    def close(self) -> None:
        pass


def is_container(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def open_archive(path: str | Path, *, timeout: float = DEFAULT_TIMEOUT) -> ArchiveHandler:
    """Open a container file and return the appropriate handler.

    Raises:
        ValueError: If the file extension is not supported.
        FileNotFoundError: For RAR files when no extraction tool is installed.
        zipfile.BadZipFile: If a ZIP file is corrupt.
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext == ".zip":
        return ZipHandler(path)
    if ext == ".7z":
        return SevenZipHandler(path)
    if ext == ".rar":
        return RarHandler(path, timeout=timeout)

    raise ValueError(f"Unsupported archive format: {ext}")


def extract_vpks(
    path: str | Path, dest_dir: str | Path, *, timeout: float = DEFAULT_TIMEOUT
) -> list[Path]:
    """Extract every ``.vpk`` in a container into *dest_dir*, flattening folders.

    Returns the extracted files sorted by name.  A later entry with the same
    basename replaces an earlier one.

    Raises:
        ExtractionError: If the container is corrupt, unsupported, or the
            extraction tool fails or times out.
    """
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with open_archive(path, timeout=timeout) as archive:
            vpks = [
                e
                for e in archive.list_entries()
                if not e.is_dir and e.basename.lower().endswith(VPK_EXTENSION)
            ]
            if not vpks:
                logger.info("No .vpk files inside %s", Path(path).name)
                return []
            with tempfile.TemporaryDirectory(prefix="dmm-extract-") as tmp:
                extracted = archive.extract_to(vpks, Path(tmp))
                placed: dict[str, Path] = {}
                for entry in vpks:
                    src = extracted.get(entry.filename)
                    if src is None:
                        continue
                    target = dest_dir / entry.basename
                    shutil.move(str(src), target)
                    placed[entry.basename] = target
    except subprocess.TimeoutExpired as exc:
        raise ExtractionError(f"Extraction timed out after {exc.timeout}s") from exc
    except (zipfile.BadZipFile, py7zr.Bad7zFile) as exc:
        raise ExtractionError(f"Corrupt archive {Path(path).name}: {exc}") from exc
    except (OSError, RuntimeError, ValueError) as exc:
        raise ExtractionError(f"Could not extract {Path(path).name}: {exc}") from exc

    logger.info("Extracted %d .vpk file(s) from %s", len(placed), Path(path).name)
    return [placed[name] for name in sorted(placed)]
