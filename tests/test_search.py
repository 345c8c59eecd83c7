from urllib.parse import parse_qs, urlparse

from spotify_cli.commands.search import search_command
from spotify_cli.pins import Pin, ResourceType
from spotify_cli.response import ErrorKind, PayloadKind
from spotify_cli.search import (
    SearchFilters,
    add_fuzzy_scores,
    best_match,
    clamp_limit,
    extract_first_uri,
    filter_exact_matches,
    filter_ghost_entries,
    truncate_to_limit_one,
)


class TestPostProcessing:
    """Tests for the in-place result edits."""

    def test_ghost_entries_are_dropped(self):
        data = {
            "tracks": {
                "items": [
                    {"id": "valid", "name": "T1"},
                    {"name": "Ghost"},
                    {"id": None, "name": "Null"},
                    {"id": "also_valid", "name": "T2"},
                ]
            }
        }
        filter_ghost_entries(data)
        assert [i["id"] for i in data["tracks"]["items"]] == ["valid", "also_valid"]

    def test_null_items_are_dropped(self):
        data = {"playlists": {"items": [None, {"id": "p"}]}}
        filter_ghost_entries(data)
        assert data["playlists"]["items"] == [{"id": "p"}]

    def test_truncate_to_limit_one(self):
        data = {
            "tracks": {"items": [{"name": "t1"}, {"name": "t2"}, {"name": "t3"}], "limit": 3},
            "artists": {"items": [{"name": "a1"}, {"name": "a2"}], "limit": 2},
        }
        truncate_to_limit_one(data)
        assert data["tracks"]["items"] == [{"name": "t1"}]
        assert data["artists"]["items"] == [{"name": "a1"}]
        assert data["tracks"]["limit"] == 1
        assert data["artists"]["limit"] == 1

    def test_exact_matches(self):
        data = {"tracks": {"items": [{"name": "Yesterday"}, {"name": "Help!"}]}}
        filter_exact_matches(data, "yester")
        assert data["tracks"]["items"] == [{"name": "Yesterday"}]

    def test_fuzzy_scores_use_best_name(self):
        """Test an artist name can outscore the item name."""
        data = {
            "tracks": {
                "items": [{"name": "Song", "artists": [{"name": "Queen"}]}, {"name": "Queen"}]
            }
        }
        add_fuzzy_scores(data, "queen")
        assert [i["fuzzy_score"] for i in data["tracks"]["items"]] == [100.0, 100.0]

    def test_fuzzy_sort(self):
        data = {"albums": {"items": [{"name": "Other"}, {"name": "Abbey Road"}]}}
        add_fuzzy_scores(data, "abbey road", sort=True)
        assert data["albums"]["items"][0]["name"] == "Abbey Road"

    def test_clamp_limit(self):
        assert clamp_limit(0) == 1
        assert clamp_limit(500) == 50


class TestFilters:
    def test_build_query(self):
        filters = SearchFilters(artist="Queen", year="1975", new=True)
        assert filters.build_query("bohemian") == "bohemian artist:Queen year:1975 tag:new"

    def test_filters_only(self):
        assert SearchFilters(genre="jazz", hipster=True).build_query("") == "genre:jazz tag:hipster"

    def test_has_filters(self):
        assert not SearchFilters().has_filters()
        assert SearchFilters(upc="123").has_filters()


class TestBestMatch:
    """Tests for picking one candidate by name."""

    def setup_method(self):
        self.candidates = [
            {"id": "1", "name": "Radar", "owner": {"display_name": "Other"}},
            {"id": "2", "name": "Radar", "owner": {"display_name": "Me"}},
        ]

    def test_owner_bonus(self):
        assert best_match(self.candidates, "radar", user_name="Me")["id"] == "2"

    def test_tie_keeps_first(self):
        assert best_match(self.candidates, "radar")["id"] == "1"

    def test_empty(self):
        assert best_match([], "radar") is None


class TestExtractFirstUri:
    def test_containers_before_pins(self):
        pins = [{"uri": "spotify:playlist:pinned"}]
        spotify = {"albums": {"items": [{"uri": "spotify:album:a"}]}}
        assert extract_first_uri(pins, spotify) == "spotify:album:a"

    def test_type_order(self):
        spotify = {
            "albums": {"items": [{"uri": "spotify:album:a"}]},
            "tracks": {"items": [{"uri": "spotify:track:t"}]},
        }
        assert extract_first_uri([], spotify) == "spotify:track:t"

    def test_falls_back_to_pins(self):
        pins = [{"uri": "spotify:playlist:pinned"}]
        assert extract_first_uri(pins, {"tracks": {"items": []}}) == "spotify:playlist:pinned"

    def test_nothing(self):
        assert extract_first_uri([], None) is None


class TestSearchCommand:
    """Tests for the search handler against a fake client."""

    def test_empty_query(self, fake_client):
        response = search_command("  ")
        assert response.code == 400
        assert response.error_kind == ErrorKind.VALIDATION
        assert fake_client.calls == []

    def test_invalid_type(self, fake_client):
        response = search_command("x", types=["song"])
        assert response.code == 400
        assert "song" in response.message

    def test_pins_only_skips_remote(self, fake_client, pin_store):
        pin_store.add(Pin(ResourceType.PLAYLIST, "p1", "Chill Vibes"))
        response = search_command("chill", pins_only=True)

        assert response.is_success
        assert response.payload_kind == PayloadKind.COMBINED_SEARCH
        assert response.payload["spotify"] is None
        assert response.payload["pins"][0]["alias"] == "Chill Vibes"
        assert fake_client.calls == []

    def test_limit_one_requests_two(self, fake_client):
        """Test limit 1 asks for two results and returns one per type."""
        fake_client.routes[("GET", "/search")] = {
            "tracks": {"items": [{"id": "a", "name": "First"}, {"id": "b", "name": "Second"}]}
        }
        response = search_command("first", types=["track"], limit=1)

        _, path, _ = fake_client.calls[0]
        query = parse_qs(urlparse(path).query)
        assert query["limit"] == ["2"]
        assert query["type"] == ["track"]
        assert [i["id"] for i in response.payload["spotify"]["tracks"]["items"]] == ["a"]

    def test_filters_reach_the_query(self, fake_client):
        fake_client.routes[("GET", "/search")] = {}
        search_command("", types=["album"], filters=SearchFilters(artist="Queen"))

        _, path, _ = fake_client.calls[0]
        assert parse_qs(urlparse(path).query)["q"] == ["artist:Queen"]

    def test_results_are_scored(self, fake_client):
        fake_client.routes[("GET", "/search")] = {
            "tracks": {"items": [{"id": "a", "name": "Queen"}, {"name": "Ghost"}]}
        }
        response = search_command("queen", types=["track"])
        items = response.payload["spotify"]["tracks"]["items"]
        assert len(items) == 1
        assert items[0]["fuzzy_score"] == 100.0

    def test_play_first_result(self, fake_client):
        """Test --play starts the first remote result."""
        fake_client.routes[("GET", "/search")] = {
            "tracks": {"items": [{"id": "a", "name": "Queen", "uri": "spotify:track:a"}]}
        }
        response = search_command("queen", types=["track"], play=True)

        assert response.message == "Playing spotify:track:a"
        assert fake_client.calls_to("PUT", "/me/player/play")[0][2] == {"uris": ["spotify:track:a"]}
