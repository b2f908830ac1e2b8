"""Subset of the remote catalog's mod payload the download pipeline needs."""

from pydantic import BaseModel


class RemoteFile(BaseModel):
    id: int
    file_name: str = ""
    download_url: str
    size: int = 0


class RemoteCategory(BaseModel):
    id: int | None = None
    name: str | None = None


class RemoteModDetails(BaseModel):
    id: int
    name: str
    files: list[RemoteFile] = []
    category: RemoteCategory | None = None
    thumbnail_url: str | None = None
    nsfw: bool = False

    def find_file(self, file_id: int) -> RemoteFile | None:
        return next((f for f in self.files if f.id == file_id), None)
