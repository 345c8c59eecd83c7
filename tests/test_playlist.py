from urllib.parse import parse_qs, urlparse

from spotify_cli.api import ApiError
from spotify_cli.commands.playlist import (
    find_duplicates,
    playlist_add,
    playlist_deduplicate,
    playlist_duplicate,
    playlist_edit,
    playlist_get,
    playlist_remove,
)
from spotify_cli.pins import Pin, ResourceType
from spotify_cli.response import ErrorKind


def track_item(letter, index=None):
    suffix = letter if index is None else f"{letter}{index}"
    return {"track": {"id": suffix, "name": f"Song {suffix}", "uri": f"spotify:track:{suffix}"}}


def paged(items):
    """Route that serves ``items`` by the limit/offset in the request path."""

    def route(path, body):
        query = parse_qs(urlparse(path).query)
        limit = int(query.get("limit", ["50"])[0])
        offset = int(query.get("offset", ["0"])[0])
        page = items[offset:offset + limit]
        more = offset + limit < len(items)
        return {"items": page, "next": "next-page" if more else None}

    return route


class TestFindDuplicates:
    def test_keeps_first_occurrences_in_order(self):
        items = [track_item(c) for c in "ABACBD"]
        unique, duplicates = find_duplicates(items)
        assert unique == [f"spotify:track:{c}" for c in "ABCD"]
        assert duplicates == ["Song A", "Song B"]

    def test_skips_unavailable_tracks(self):
        unique, duplicates = find_duplicates([None, {"track": None}, track_item("A")])
        assert unique == ["spotify:track:A"]
        assert duplicates == []


class TestDeduplicate:
    """Tests for the clear-and-rewrite deduplication."""

    def setup_method(self):
        self.tracks_path = "/playlists/pl1/tracks"

    def serve(self, client, items):
        client.routes[("GET", self.tracks_path)] = paged(items)
        client.routes[("DELETE", self.tracks_path)] = {"snapshot_id": "s1"}
        client.routes[("POST", self.tracks_path)] = {"snapshot_id": "s2"}

    def test_rewrites_unique_tracks_in_order(self, fake_client):
        self.serve(fake_client, [track_item(c) for c in "ABACBD"])

        response = playlist_deduplicate("pl1")

        assert response.is_success
        assert response.message == "Removed 2 duplicate(s)"
        assert response.payload == {
            "duplicates": ["Song A", "Song B"],
            "removed": 2,
            "remaining": 4,
        }
        deletes = fake_client.calls_to("DELETE", self.tracks_path)
        posts = fake_client.calls_to("POST", self.tracks_path)
        assert len(deletes) == 1
        assert [t["uri"] for t in deletes[0][2]["tracks"]] == [f"spotify:track:{c}" for c in "ABCD"]
        assert posts[0][2] == {"uris": [f"spotify:track:{c}" for c in "ABCD"]}

    def test_dry_run_writes_nothing(self, fake_client):
        self.serve(fake_client, [track_item(c) for c in "AAB"])

        response = playlist_deduplicate("pl1", dry_run=True)

        assert response.message.startswith("[DRY RUN]")
        assert response.payload["dry_run"] is True
        assert response.payload["duplicates"] == ["Song A"]
        assert response.payload["would_remain"] == 2
        assert fake_client.calls_to("DELETE", self.tracks_path) == []
        assert fake_client.calls_to("POST", self.tracks_path) == []

    def test_no_duplicates(self, fake_client):
        self.serve(fake_client, [track_item(c) for c in "ABC"])
        assert playlist_deduplicate("pl1").message == "No duplicates found"
        assert fake_client.calls_to("DELETE", self.tracks_path) == []

    def test_empty_playlist(self, fake_client):
        self.serve(fake_client, [])
        response = playlist_deduplicate("pl1")
        assert response.message == "Playlist is empty, nothing to deduplicate"

    def test_large_playlist_is_paged_and_chunked(self, fake_client):
        """Test reads follow pagination and writes stay within 100 URIs."""
        items = [track_item("T", i) for i in range(150)] + [track_item("T", 0)]
        self.serve(fake_client, items)

        response = playlist_deduplicate("pl1")

        assert response.payload["remaining"] == 150
        assert len(fake_client.calls_to("GET", self.tracks_path)) == 4
        deletes = fake_client.calls_to("DELETE", self.tracks_path)
        posts = fake_client.calls_to("POST", self.tracks_path)
        assert [len(c[2]["tracks"]) for c in deletes] == [100, 50]
        assert [len(c[2]["uris"]) for c in posts] == [100, 50]
        assert posts[0][2]["uris"][0] == "spotify:track:T0"

    def test_restore_failure(self, fake_client):
        self.serve(fake_client, [track_item(c) for c in "AAB"])
        fake_client.routes[("POST", self.tracks_path)] = ApiError(500, "boom")

        response = playlist_deduplicate("pl1")

        assert response.code == 500
        assert response.message == "Failed to restore unique tracks: 500 boom"

    def test_clear_failure_skips_restore(self, fake_client):
        self.serve(fake_client, [track_item(c) for c in "AAB"])
        fake_client.routes[("DELETE", self.tracks_path)] = ApiError(502, "bad gateway")

        response = playlist_deduplicate("pl1")

        assert response.code == 502
        assert response.message == "Failed to clear playlist: 502 bad gateway"
        assert fake_client.calls_to("POST", self.tracks_path) == []


class TestDuplicate:
    """Tests for copying a playlist into a new private one."""

    def setup_method(self):
        self.source = {
            "id": "pl1",
            "name": "Mix",
            "description": "Weekend",
            "tracks": {"items": [track_item("A"), {"track": None}, track_item("B")]},
        }

    def serve(self, client):
        client.routes[("GET", "/playlists/pl1")] = self.source
        client.routes[("GET", "/me")] = {"id": "u1"}
        client.routes[("POST", "/users/u1/playlists")] = {"id": "new1", "name": "Mix (Copy)"}
        client.routes[("POST", "/playlists/new1/tracks")] = {"snapshot_id": "s"}

    def test_default_name_and_private(self, fake_client):
        self.serve(fake_client)

        response = playlist_duplicate("pl1")

        assert response.is_success
        assert response.message == "Duplicated playlist as 'Mix (Copy)'"
        create = fake_client.calls_to("POST", "/users/u1/playlists")[0]
        assert create[2] == {"name": "Mix (Copy)", "public": False, "description": "Weekend"}

    def test_copies_track_uris(self, fake_client):
        self.serve(fake_client)

        playlist_duplicate("pl1", name="Backup")

        assert fake_client.calls_to("POST", "/users/u1/playlists")[0][2]["name"] == "Backup"
        adds = fake_client.calls_to("POST", "/playlists/new1/tracks")
        assert adds[0][2] == {"uris": ["spotify:track:A", "spotify:track:B"]}

    def test_copy_failure_after_create(self, fake_client):
        self.serve(fake_client)
        fake_client.routes[("POST", "/playlists/new1/tracks")] = ApiError(500, "boom")

        response = playlist_duplicate("pl1")

        assert response.code == 500
        assert response.message == "Created playlist but failed to copy tracks: 500 boom"

    def test_missing_source(self, fake_client):
        response = playlist_duplicate("pl1")
        assert response.code == 404
        assert fake_client.calls_to("POST", "/users/u1/playlists") == []


class TestResolvePlaylist:
    """Tests for accepting ids, URLs, pins and names."""

    def test_by_url(self, fake_client):
        fake_client.routes[("GET", "/playlists/abc")] = {"id": "abc", "name": "Mix"}
        response = playlist_get("https://open.spotify.com/playlist/abc?si=1")
        assert response.payload["id"] == "abc"

    def test_by_pin_alias(self, fake_client, pin_store):
        pin_store.add(Pin(ResourceType.PLAYLIST, "pinned1", "road trip"))
        fake_client.routes[("GET", "/playlists/pinned1")] = {"id": "pinned1"}
        assert playlist_get("Road Trip").payload["id"] == "pinned1"

    def test_by_exact_name(self, fake_client):
        fake_client.routes[("GET", "/me/playlists")] = paged(
            [{"id": "p1", "name": "Other"}, {"id": "p2", "name": "Night Drive"}]
        )
        fake_client.routes[("GET", "/playlists/p2")] = {"id": "p2"}
        assert playlist_get("night drive").payload["id"] == "p2"

    def test_unknown_name(self, fake_client):
        fake_client.routes[("GET", "/me/playlists")] = paged([])
        response = playlist_get("Night Drive")
        assert response.code == 404
        assert response.error_kind == ErrorKind.NOT_FOUND


class TestWrites:
    def test_add_requires_uris(self, fake_client):
        response = playlist_add("pl1", [])
        assert response.code == 400
        assert fake_client.calls == []

    def test_add_now_playing_dry_run(self, fake_client):
        fake_client.routes[("GET", "/me/player")] = {"item": {"id": "t", "uri": "spotify:track:t"}}
        response = playlist_add("pl1", now_playing=True, dry_run=True)
        assert response.payload["uris"] == ["spotify:track:t"]
        assert fake_client.calls_to("POST", "/playlists/pl1/tracks") == []

    def test_add_with_position(self, fake_client):
        fake_client.routes[("POST", "/playlists/pl1/tracks")] = {"snapshot_id": "s"}
        response = playlist_add("pl1", ["spotify:track:a"], position=0)
        assert response.code == 201
        assert fake_client.calls[-1][2] == {"uris": ["spotify:track:a"], "position": 0}

    def test_remove(self, fake_client):
        fake_client.routes[("DELETE", "/playlists/pl1/tracks")] = {"snapshot_id": "s"}
        response = playlist_remove("pl1", ["spotify:track:a"])
        assert response.message == "Removed 1 track(s)"
        assert fake_client.calls[-1][2] == {"tracks": [{"uri": "spotify:track:a"}]}

    def test_edit_without_changes(self, fake_client):
        response = playlist_edit("pl1")
        assert response.code == 400
        assert "--private" in response.message

    def test_edit_visibility(self, fake_client):
        response = playlist_edit("pl1", public=False)
        assert response.message == "Playlist updated"
        assert fake_client.calls[-1] == ("PUT", "/playlists/pl1", {"public": False})
