"""Key-value access to per-file mod metadata.

The engine only ever reads and writes metadata by archive filename, so the
rest of the code depends on the small :class:`MetadataStore` protocol rather
than on the database.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from deadlock_mod_manager.models.metadata import ModMetadata

logger = logging.getLogger(__name__)


class MetadataStore(Protocol):
    def get(self, file_name: str) -> ModMetadata | None: ...

    def load_all(self) -> dict[str, ModMetadata]: ...

    def upsert(self, file_name: str, **fields: Any) -> ModMetadata: ...

    def remove(self, file_name: str) -> None: ...

    def rename(self, old_name: str, new_name: str) -> None: ...

    def variant_presets(self) -> list[str]: ...


class SqlMetadataStore:
    """``MetadataStore`` backed by the ``mod_metadata`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, file_name: str) -> ModMetadata | None:
        with Session(self._engine) as session:
            return session.get(ModMetadata, file_name)

    def load_all(self) -> dict[str, ModMetadata]:
        with Session(self._engine) as session:
            rows = session.exec(select(ModMetadata)).all()
            return {row.file_name: row for row in rows}

    def upsert(self, file_name: str, **fields: Any) -> ModMetadata:
        """Merge *fields* into the row for *file_name*, creating it if needed."""
        with Session(self._engine) as session:
            row = session.get(ModMetadata, file_name)
            if row is None:
                row = ModMetadata(file_name=file_name)
            for key, value in fields.items():
                if not hasattr(row, key):
                    raise AttributeError(f"Unknown metadata field: {key}")
                setattr(row, key, value)
            row.updated_at = datetime.now(UTC)
            session.add(row)
            session.commit()
            session.refresh(row)
            return row

    def remove(self, file_name: str) -> None:
        with Session(self._engine) as session:
            row = session.get(ModMetadata, file_name)
            if row is not None:
                session.delete(row)
                session.commit()
                logger.debug("Removed metadata for %s", file_name)

    def rename(self, old_name: str, new_name: str) -> None:
        """Re-key a row after its archive was renamed; no-op if none exists."""
        with Session(self._engine) as session:
            row = session.get(ModMetadata, old_name)
            if row is None:
                return
            fields = row.model_dump(exclude={"file_name", "updated_at"})
            session.delete(row)
            existing = session.get(ModMetadata, new_name)
            if existing is not None:
                session.delete(existing)
            session.flush()
            session.add(ModMetadata(file_name=new_name, **fields))
            session.commit()

    def variant_presets(self) -> list[str]:
        """Filenames previously installed as a variant preset."""
        with Session(self._engine) as session:
            rows = session.exec(
                select(ModMetadata.file_name).where(
                    ModMetadata.is_variant_preset == True  # noqa: E712
                )
            ).all()
            return sorted(rows)
