"""
Tests for game folder lookups
"""
from conftest import write_manifest

from mhg_importer.library import GameLibrary


class TestGameLibrary:
    """Tests for manifest probing and title scans"""

    def test_has_game_requires_manifest(self, metadata_path):
        write_manifest(metadata_path, 10, {"name": "Alpha"})
        (metadata_path / "content" / "games" / "11").mkdir()
        library = GameLibrary(metadata_path)
        assert library.has_game(10)
        assert library.has_game("10")
        assert not library.has_game(11)
        assert not library.has_game(12)

    def test_find_by_name_is_case_insensitive_and_trimmed(self, metadata_path):
        write_manifest(metadata_path, 10, {"name": "  The Alpha Game "})
        assert GameLibrary(metadata_path).find_by_titles(["the alpha game"]) == 10

    def test_find_by_legacy_title(self, metadata_path):
        write_manifest(metadata_path, 20, {"title": "Beta"})
        assert GameLibrary(metadata_path).find_by_titles(["BETA"]) == 20

    def test_titles_tried_in_order(self, metadata_path):
        write_manifest(metadata_path, 10, {"name": "Alpha"})
        write_manifest(metadata_path, 20, {"name": "Alpha Original"})
        library = GameLibrary(metadata_path)
        assert library.find_by_titles(["Missing", "Alpha Original", "Alpha"]) == 20

    def test_invalid_manifests_and_folders_are_ignored(self, metadata_path):
        bad_dir = metadata_path / "content" / "games" / "30"
        bad_dir.mkdir(parents=True)
        (bad_dir / "metadata.json").write_text("{oops", encoding="utf-8")
        write_manifest(metadata_path, "not-a-number", {"name": "Gamma"})
        library = GameLibrary(metadata_path)
        assert library.find_by_titles(["Gamma"]) is None

    def test_no_games_directory(self, metadata_path):
        library = GameLibrary(metadata_path)
        assert not library.exists()
        assert library.find_by_titles(["Alpha"]) is None
