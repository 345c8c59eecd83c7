import json

from spotify_cli.response import (
    SERIALIZE_FALLBACK,
    ErrorKind,
    PayloadKind,
    Response,
)


class TestResponse:
    """Tests for the response envelope."""

    def test_plain_success_has_no_optional_keys(self):
        data = Response.success(200, "OK").to_dict()
        assert data == {"status": "success", "code": 200, "message": "OK"}

    def test_typed_payload_kind_is_snake_case(self):
        response = Response.success_typed(200, "Queue", PayloadKind.PLAY_HISTORY, {"items": []})
        data = json.loads(response.to_json())
        assert data["payload_kind"] == "play_history"
        assert data["payload"] == {"items": []}

    def test_untyped_payload(self):
        data = Response.success_with_payload(201, "Pin added", {"id": "x"}).to_dict()
        assert "payload_kind" not in data
        assert data["payload"] == {"id": "x"}

    def test_error_without_details(self):
        response = Response.err(400, "Bad", ErrorKind.VALIDATION)
        assert not response.is_success
        assert response.error_kind == ErrorKind.VALIDATION
        assert response.to_dict()["error"] == {"kind": "validation"}

    def test_error_with_details(self):
        response = Response.err_with_details(500, "Failed to load config", ErrorKind.CONFIG, "missing")
        assert response.to_dict()["error"] == {"kind": "config", "details": "missing"}

    def test_from_dict_restores_enums(self):
        """Test a serialized error comes back with its kind as an enum."""
        original = Response.err_with_details(404, "Gone", ErrorKind.NOT_FOUND, "no such id")
        restored = Response.from_dict(json.loads(original.to_json()))
        assert restored.code == 404
        assert restored.error_kind == ErrorKind.NOT_FOUND
        assert restored.error_details == "no such id"

    def test_unserializable_payload_falls_back(self):
        response = Response.success_with_payload(200, "Odd", {"value": object()})
        assert response.to_json() == SERIALIZE_FALLBACK
