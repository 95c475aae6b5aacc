"""
Tests for identity resolution
"""
import pytest

from mhg_importer.models import CatalogIdentity
from mhg_importer.resolver import (
    IdentityResolver,
    choose_candidate,
    date_hint_for,
    normalize_date_hint,
    reduce_title_search,
    reduced_titles,
)


def make_search(results):
    """Search function returning canned candidates and recording calls"""
    calls = []

    def search(title, release_date=None):
        calls.append((title, release_date))
        return [CatalogIdentity(id=i, name=title) for i in results.get(title, [])]

    search.calls = calls
    return search


class TestReducingTitleSearch:
    """Tests for the word-by-word title reduction"""

    def test_reduced_titles(self):
        assert reduced_titles("The Great Game Deluxe") == [
            "The Great Game Deluxe", "The Great Game", "The Great", "The",
        ]

    def test_shortens_until_match(self):
        search = make_search({"The Great Game": [42]})
        result = reduce_title_search(["The Great Game Deluxe Edition"], None, search)
        assert result.found
        assert result.used_title == "The Great Game"
        assert [c.id for c in result.candidates] == [42]
        assert [title for title, _ in search.calls] == [
            "The Great Game Deluxe Edition",
            "The Great Game Deluxe",
            "The Great Game",
        ]

    def test_first_title_match_stops_search(self):
        search = make_search({"Alpha": [1], "Alpha Original": [2]})
        result = reduce_title_search(["Alpha", "Alpha Original"], None, search)
        assert result.used_title == "Alpha"
        assert len(search.calls) == 1

    def test_moves_to_next_title_after_exhausting_words(self):
        search = make_search({"Beta Original": [7]})
        result = reduce_title_search(["Alpha Game", "Beta Original"], None, search)
        assert result.used_title == "Beta Original"
        assert result.attempted_titles == ["Alpha Game", "Alpha", "Beta Original"]

    def test_not_found(self):
        search = make_search({})
        result = reduce_title_search(["One Two"], None, search)
        assert not result.found
        assert result.used_title is None
        assert result.attempted_titles == ["One Two", "One"]

    def test_date_hint_is_normalized(self):
        search = make_search({"Alpha": [1]})
        reduce_title_search(["Alpha"], 1300752000000, search)
        assert search.calls == [("Alpha", "1300752000")]

    def test_search_errors_propagate(self):
        def failing_search(title, release_date=None):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            reduce_title_search(["Alpha"], None, failing_search)


class TestDateHints:
    """Tests for release date hints"""

    @pytest.mark.parametrize("value,expected", [
        (1999, "1999"),
        ("2011", "2011"),
        (1300752000, "1300752000"),
        ("1300752000", "1300752000"),
        (1300752000000, "1300752000"),
        ("2011-03-22", "2011-03-22"),
        (None, None),
        ("", None),
        ("soon", None),
    ])
    def test_normalize_date_hint(self, value, expected):
        assert normalize_date_hint(value) == expected

    def test_raw_timestamp_wins(self):
        assert date_hint_for("1300752000", 2011) == 1300752000

    def test_year_start_when_no_timestamp(self):
        # 2011-01-01 00:00:00 UTC
        assert date_hint_for(None, 2011) == 1293840000

    def test_fallback_last(self):
        assert date_hint_for(None, None, fallback="1300752000") == 1300752000
        assert date_hint_for(None, None) is None


class TestChooseCandidate:
    """Tests for the candidate selection policy"""

    def test_prefers_candidate_not_on_server(self):
        candidates = [CatalogIdentity(1, "A"), CatalogIdentity(2, "B"), CatalogIdentity(3, "C")]
        assert choose_candidate(candidates, {1}).id == 2

    def test_falls_back_to_first_when_all_exist(self):
        candidates = [CatalogIdentity(1, "A"), CatalogIdentity(2, "B")]
        assert choose_candidate(candidates, {1, 2}).id == 1

    def test_resolver_tracks_existing_ids(self):
        search = make_search({"Alpha": [1, 2]})
        resolver = IdentityResolver(search, set())
        result = resolver.resolve(["Alpha"], None)
        assert resolver.pick(result).id == 1
        resolver.mark_existing(1)
        assert resolver.pick(result).id == 2
