import sys

import pytest

from spotify_cli import paths
from spotify_cli.config import (
    DEFAULT_OAUTH_PORT,
    TOKEN_STORAGE_FILE,
    TOKEN_STORAGE_KEYRING,
    Config,
    ConfigMissingField,
    ConfigNotFound,
    ConfigParseError,
)

FULL_CONFIG = """
[spotify-cli]
client_id = "abc123"
token_storage = "file"
oauth_port = 9090

[search]
show_scores = false
sort_by_score = true

[search.fuzzy]
exact_match = 200.0
similarity_threshold = 0.5
unknown_key = 1
"""


class TestConfig:
    """Tests for loading config.toml."""

    def test_full_file(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text(FULL_CONFIG)

        config = Config.load(path)

        assert config.client_id == "abc123"
        assert config.token_storage == TOKEN_STORAGE_FILE
        assert config.oauth_port == 9090
        assert config.show_scores is False
        assert config.sort_by_score is True
        assert config.fuzzy.exact_match == 200.0
        assert config.fuzzy.similarity_threshold == 0.5
        assert config.fuzzy.starts_with == 50.0

    def test_defaults(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text('[spotify-cli]\nclient_id = "abc"\n')

        config = Config.load(path)

        assert config.token_storage == TOKEN_STORAGE_KEYRING
        assert config.oauth_port == DEFAULT_OAUTH_PORT
        assert config.show_scores is True

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigNotFound):
            Config.load(temp_dir / "config.toml")

    def test_missing_client_id(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text('[spotify-cli]\nclient_id = ""\n')
        with pytest.raises(ConfigMissingField):
            Config.load(path)

    def test_invalid_toml(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text("[spotify-cli\nclient_id = ")
        with pytest.raises(ConfigParseError):
            Config.load(path)

    def test_invalid_token_storage(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text('[spotify-cli]\nclient_id = "a"\ntoken_storage = "vault"\n')
        with pytest.raises(ConfigParseError):
            Config.load(path)

    def test_default_location(self, home):
        config_dir = paths.config_dir()
        config_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text('[spotify-cli]\nclient_id = "from-home"\n')
        assert Config.load().client_id == "from-home"


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX layout")
class TestPaths:
    def test_layout(self, home):
        assert paths.config_dir() == home / ".config" / "spotify-cli"
        assert paths.token_file().name == "token.json"
        assert paths.pins_file().name == "pins.json"
        assert paths.socket_file().name == "daemon.sock"
        assert paths.pid_file().name == "daemon.pid"
        assert paths.log_file().parent == paths.config_dir()

    def test_config_dir_is_not_created(self, home):
        paths.config_dir()
        assert not (home / ".config").exists()
