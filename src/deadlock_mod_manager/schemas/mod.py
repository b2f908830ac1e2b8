from pydantic import BaseModel


class Mod(BaseModel):
    id: str
    name: str
    file_name: str
    path: str
    enabled: bool
    priority: int
    size: int
    installed_at: str
    thumbnail_url: str | None = None
    gamebanana_id: int | None = None
    gamebanana_file_id: int | None = None
    category_id: int | None = None
    category_name: str | None = None
    source_section: str | None = None
    nsfw: bool = False


class SetPriorityRequest(BaseModel):
    priority: int


class NextPriorityResult(BaseModel):
    priority: int
    used: list[int]


class CleanupResult(BaseModel):
    removed_archives: int = 0
    renamed_presets: int = 0
    renamed_textures: int = 0
    skipped_presets: int = 0
    skipped_textures: int = 0


class ModContents(BaseModel):
    mod_id: str
    file_count: int
    heroes: list[str]
    sample_paths: list[str]
