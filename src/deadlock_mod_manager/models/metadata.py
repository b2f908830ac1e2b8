"""Descriptive metadata for installed archives, keyed by filename.

The filesystem is the source of truth for which mods exist; this table only
remembers what the catalog told us about each file when it was downloaded.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class ModMetadata(SQLModel, table=True):
    __tablename__ = "mod_metadata"

    file_name: str = Field(primary_key=True)
    mod_name: str = ""
    thumbnail_url: str | None = None
    gamebanana_id: int | None = Field(default=None, index=True)
    gamebanana_file_id: int | None = None
    category_id: int | None = None
    category_name: str | None = None
    source_section: str | None = None
    nsfw: bool = False
    is_variant_preset: bool = Field(default=False, index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
