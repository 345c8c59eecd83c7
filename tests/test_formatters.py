from spotify_cli.formatters import FormatterRegistry, format_duration
from spotify_cli.response import ErrorKind, PayloadKind, Response


class TestFormatterLookup:
    """Tests for choosing a formatter by kind and by shape."""

    def setup_method(self):
        self.registry = FormatterRegistry()

    def test_lookup_by_kind(self):
        assert self.registry.find({}, PayloadKind.DEVICES).name == "devices"

    def test_playlist_detail_wins_over_search_results(self):
        """Test a playlist with a tracks container is not rendered as search results."""
        payload = {
            "name": "Mix",
            "owner": {"display_name": "me"},
            "tracks": {"items": [], "total": 0},
        }
        assert self.registry.find(payload).name == "playlist_detail"

    def test_album_detail_wins_over_search_results(self):
        payload = {"name": "A", "album_type": "album", "tracks": {"items": []}}
        assert self.registry.find(payload).name == "album_detail"

    def test_raw_search_results(self):
        payload = {"tracks": {"items": [{"id": "t", "name": "Song"}]}}
        assert self.registry.find(payload).name == "spotify_search"

    def test_combined_search_by_shape(self):
        assert self.registry.find({"pins": [], "spotify": {}}).name == "combined_search"

    def test_pins_by_shape(self):
        assert self.registry.find({"pins": []}).name == "pins"

    def test_library_check(self):
        assert self.registry.find([True, False]).name == "library_check"

    def test_unknown_shape(self):
        assert self.registry.find({"something": "else"}) is None


class TestRender:
    """Tests for the rendered text."""

    def test_error_goes_to_stderr(self, capsys):
        response = Response.err_with_details(404, "Not found", ErrorKind.NOT_FOUND, "try again")
        FormatterRegistry().render(response)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: Not found" in captured.err
        assert "try again" in captured.err

    def test_message_only(self, capsys):
        FormatterRegistry().render(Response.success(200, "Paused"))
        assert capsys.readouterr().out == "Paused\n"

    def test_unmatched_payload_prints_message(self, capsys):
        FormatterRegistry().render(Response.success_with_payload(200, "Done", {"x": 1}))
        assert capsys.readouterr().out == "Done\n"

    def test_devices(self, capsys):
        payload = {
            "devices": [
                {"id": "d1", "name": "Laptop", "type": "Computer", "is_active": True, "volume_percent": 40}
            ]
        }
        FormatterRegistry().render(Response.success_typed(200, "Devices", PayloadKind.DEVICES, payload))
        out = capsys.readouterr().out
        assert "* Laptop [Computer] 40%" in out
        assert "ID: d1" in out

    def test_scores_can_be_hidden(self, capsys):
        """Test show_scores=False drops fuzzy scores from search output."""
        payload = {
            "pins": [{"alias": "Chill", "type": "playlist", "id": "p1", "tags": [], "score": 90.0}],
            "spotify": {
                "tracks": {"items": [{"name": "Song", "uri": "spotify:track:t", "fuzzy_score": 42.0}]}
            },
        }
        response = Response.success_typed(200, "Found", PayloadKind.COMBINED_SEARCH, payload)

        FormatterRegistry(show_scores=True).render(response)
        shown = capsys.readouterr().out
        FormatterRegistry(show_scores=False).render(response)
        hidden = capsys.readouterr().out

        assert "(90)" in shown and "(42)" in shown
        assert "(90)" not in hidden and "(42)" not in hidden
        assert "spotify:track:t" in hidden


class TestFormatDuration:
    def test_minutes(self):
        assert format_duration(61000) == "1:01"

    def test_hours(self):
        assert format_duration(3723000) == "1:02:03"

    def test_missing(self):
        assert format_duration(None) == "0:00"
