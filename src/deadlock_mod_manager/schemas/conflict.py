from enum import StrEnum

from pydantic import BaseModel


class ConflictKind(StrEnum):
    """Why two enabled mods collide."""

    priority = "priority"
    file = "file"


class Conflict(BaseModel):
    mod_a: str
    mod_a_name: str
    mod_b: str
    mod_b_name: str
    kind: ConflictKind
    details: str

    def involves(self, first: str, second: str) -> bool:
        return {self.mod_a, self.mod_b} == {first, second}
