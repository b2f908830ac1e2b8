from deadlock_mod_manager.vpk.parser import (
    VpkContentSummary,
    VpkEntry,
    VpkHeader,
    extract_hero_from_path,
    get_vpk_content_summary,
    is_ignored_file,
    parse_vpk_directory,
    parse_vpk_header,
)

__all__ = [
    "VpkContentSummary",
    "VpkEntry",
    "VpkHeader",
    "extract_hero_from_path",
    "get_vpk_content_summary",
    "is_ignored_file",
    "parse_vpk_directory",
    "parse_vpk_header",
]
