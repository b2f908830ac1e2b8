import struct

import pytest

from deadlock_mod_manager.vpk.parser import (
    HEADER_V1_SIZE,
    HEADER_V2_SIZE,
    TruncatedTreeError,
    extract_hero_from_path,
    get_vpk_content_summary,
    is_ignored_file,
    parse_vpk_directory,
    parse_vpk_header,
    parse_vpk_tree,
    read_vpk_entries,
)


class TestParseHeader:
    def test_version_2_header(self, vpk_bytes):
        header = parse_vpk_header(vpk_bytes(["a/b.txt"]))
        assert header.version == 2
        assert header.header_size == HEADER_V2_SIZE
        assert header.tree_size > 0

    def test_version_1_header(self, vpk_bytes):
        header = parse_vpk_header(vpk_bytes(["a/b.txt"], version=1))
        assert header.version == 1
        assert header.header_size == HEADER_V1_SIZE

    def test_bad_signature(self):
        data = struct.pack("<III", 0xDEADBEEF, 2, 0)
        with pytest.raises(ValueError, match="signature"):
            parse_vpk_header(data)

    def test_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            parse_vpk_header(b"\x34\x12\xaa")


class TestParseTree:
    def test_empty_tree(self):
        assert parse_vpk_tree(b"\x00") == []

    def test_entry_fields(self, vpk_bytes):
        data = vpk_bytes(["materials/skin.vmat_c"])
        entries = parse_vpk_tree(data[HEADER_V2_SIZE:])
        assert len(entries) == 1
        entry = entries[0]
        assert entry.extension == "vmat_c"
        assert entry.directory == "materials"
        assert entry.stem == "skin"
        assert entry.archive_index == 0x7FFF
        assert entry.full_path == "materials/skin.vmat_c"

    def test_unterminated_string(self):
        with pytest.raises(TruncatedTreeError):
            parse_vpk_tree(b"vmat_c")

    def test_truncated_entry_record(self):
        tree = b"vmat_c\x00materials\x00skin\x00" + b"\x00" * 5
        with pytest.raises(TruncatedTreeError):
            parse_vpk_tree(tree)

    def test_bad_terminator(self):
        record = struct.pack("<IHHIIH", 0, 0, 0, 0, 0, 0x1234)
        tree = b"vmat_c\x00materials\x00skin\x00" + record + b"\x00\x00\x00"
        with pytest.raises(TruncatedTreeError, match="terminator"):
            parse_vpk_tree(tree)

    def test_preload_longer_than_tree(self):
        record = struct.pack("<IHHIIH", 0, 500, 0, 0, 0, 0xFFFF)
        tree = b"vmat_c\x00materials\x00skin\x00" + record + b"\x00\x00\x00"
        with pytest.raises(TruncatedTreeError, match="Preload"):
            parse_vpk_tree(tree)


class TestParseDirectory:
    def test_lists_all_paths(self, tmp_path, vpk_bytes):
        paths = [
            "materials/models/heroes/haze/body.vmat_c",
            "materials/models/heroes/haze/head.vmat_c",
            "models/heroes/haze/haze.vmdl_c",
            "sounds/ui/click.vsnd_c",
        ]
        vpk = tmp_path / "pak01_dir.vpk"
        vpk.write_bytes(vpk_bytes(paths))

        assert sorted(parse_vpk_directory(vpk)) == sorted(paths)

    def test_root_directory_has_no_prefix(self, tmp_path, vpk_bytes):
        vpk = tmp_path / "pak01_dir.vpk"
        vpk.write_bytes(vpk_bytes(["readme.txt", "scripts/a.vdata"]))

        assert sorted(parse_vpk_directory(vpk)) == ["readme.txt", "scripts/a.vdata"]

    def test_skips_preload_bytes(self, tmp_path, vpk_bytes):
        vpk = tmp_path / "pak01_dir.vpk"
        vpk.write_bytes(vpk_bytes(["a/one.txt", "a/two.txt", "b/three.txt"], preload=b"\xff" * 7))

        assert sorted(parse_vpk_directory(vpk)) == ["a/one.txt", "a/two.txt", "b/three.txt"]

    def test_version_1_file(self, tmp_path, vpk_bytes):
        vpk = tmp_path / "pak01_dir.vpk"
        vpk.write_bytes(vpk_bytes(["particles/fx.vpcf_c"], version=1))

        assert parse_vpk_directory(vpk) == ["particles/fx.vpcf_c"]

    def test_wrong_signature_returns_none(self, tmp_path):
        vpk = tmp_path / "bad.vpk"
        vpk.write_bytes(b"PK\x03\x04" + b"\x00" * 40)
        assert parse_vpk_directory(vpk) is None

    def test_truncated_tree_returns_none(self, tmp_path, vpk_bytes):
        data = vpk_bytes(["materials/a.vmat_c", "materials/b.vmat_c"])
        vpk = tmp_path / "cut.vpk"
        vpk.write_bytes(data[:-10])
        assert parse_vpk_directory(vpk) is None

    def test_missing_file_returns_none(self, tmp_path):
        assert parse_vpk_directory(tmp_path / "nope.vpk") is None

    def test_empty_file_returns_none(self, tmp_path):
        vpk = tmp_path / "empty.vpk"
        vpk.write_bytes(b"")
        assert parse_vpk_directory(vpk) is None

    def test_read_entries_raises_on_short_tree(self, tmp_path, vpk_bytes):
        vpk = tmp_path / "cut.vpk"
        vpk.write_bytes(vpk_bytes(["a/b.txt"])[:-3])
        with pytest.raises(TruncatedTreeError, match="Tree truncated"):
            read_vpk_entries(vpk)


class TestHeroHelpers:
    def test_hero_from_model_path(self):
        assert extract_hero_from_path("models/heroes/haze/haze.vmdl_c") == "haze"

    def test_hero_from_material_path_lowercased(self):
        assert extract_hero_from_path("materials/models/heroes/Wraith/body.vmat_c") == "wraith"

    def test_hero_from_wip_folder(self):
        assert extract_hero_from_path("models/heroes_wip/viper/viper.vmdl_c") == "viper"

    def test_non_hero_path(self):
        assert extract_hero_from_path("sounds/ui/click.vsnd_c") is None

    def test_content_summary(self, tmp_path, vpk_bytes):
        vpk = tmp_path / "pak01_dir.vpk"
        vpk.write_bytes(
            vpk_bytes(
                [
                    "models/heroes/haze/haze.vmdl_c",
                    "materials/models/heroes/wraith/body.vmat_c",
                    "sounds/ui/click.vsnd_c",
                ]
            )
        )
        summary = get_vpk_content_summary(vpk)
        assert summary.heroes == frozenset({"haze", "wraith"})
        assert summary.file_count == 3
        assert len(summary.sample_paths) == 3

    def test_content_summary_unreadable(self, tmp_path):
        vpk = tmp_path / "junk.vpk"
        vpk.write_bytes(b"junk")
        summary = get_vpk_content_summary(vpk)
        assert summary.file_count == 0
        assert summary.heroes == frozenset()


class TestIgnoredFiles:
    @pytest.mark.parametrize(
        "path",
        ["readme.txt", "docs/README.TXT", "License.md", "a/b/credits.txt", "changelog.txt"],
    )
    def test_ignored(self, path):
        assert is_ignored_file(path) is True

    @pytest.mark.parametrize("path", ["readme.vmat_c", "materials/readme/skin.vmat_c", "notes.txt"])
    def test_not_ignored(self, path):
        assert is_ignored_file(path) is False
