"""Policy for multi-variant cosmetic downloads.

Some cosmetic packs ship one shared texture archive plus dozens of mutually
exclusive preset archives (the "Midnight Mina" outfit pack is the known
case).  Installing all of them at once breaks the look, so the download
pipeline keeps a single texture file and a single preset.

The rules are name heuristics; they are kept together here so tuning them
never touches the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from deadlock_mod_manager.constants import VPK_EXTENSION

_PACK_KEYWORDS = ("midnight_mina", "midnight mina", "midnight-mina")


@dataclass(slots=True)
class VariantSelection:
    keep: list[str] = field(default_factory=list)
    discard: list[str] = field(default_factory=list)
    preset: str | None = None


def is_multi_variant_download(mod_name: str, file_name: str = "") -> bool:
    """True when a catalog entry looks like the multi-variant cosmetic pack."""
    haystack = f"{mod_name} {file_name}".lower()
    return any(k in haystack for k in _PACK_KEYWORDS)


def is_variant_texture(file_name: str) -> bool:
    """The shared texture archive every variant of a pack depends on."""
    lower = file_name.lower()
    return lower.endswith(VPK_EXTENSION) and "textures" in lower


def select_variant_files(file_names: list[str]) -> VariantSelection:
    """Keep one texture archive and the alphabetically first variant.

    Every archive that is not a texture counts as a variant; packs rarely
    name their presets consistently.
    """
    selection = VariantSelection()
    textures = sorted(n for n in file_names if is_variant_texture(n))
    variants = sorted(n for n in file_names if not is_variant_texture(n))

    if textures:
        selection.keep.append(textures[0])
    if variants:
        selection.keep.append(variants[0])
        selection.preset = variants[0]

    kept = set(selection.keep)
    selection.discard = sorted(n for n in file_names if n not in kept)
    return selection


def select_single_file(file_names: list[str]) -> VariantSelection:
    """Ordinary containers install only their alphabetically first archive."""
    ordered = sorted(file_names)
    return VariantSelection(keep=ordered[:1], discard=ordered[1:])
