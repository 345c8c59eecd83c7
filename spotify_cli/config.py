"""
Loading of ``config.toml``.

The file lives in the config directory and is only ever read::

    [spotify-cli]
    client_id = "your-client-id"
    token_storage = "keyring"   # or "file"

    [search]
    show_scores = true
    sort_by_score = false

    [search.fuzzy]
    exact_match = 100.0
"""

import logging
import tomllib
from dataclasses import dataclass, field, fields

from . import paths

logger = logging.getLogger(__name__)

DEFAULT_OAUTH_PORT = 8888
TOKEN_STORAGE_KEYRING = "keyring"
TOKEN_STORAGE_FILE = "file"


class ConfigError(Exception):
    pass


class ConfigNotFound(ConfigError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Config file not found: {path}")


class ConfigMissingField(ConfigError):
    def __init__(self, field_name):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class ConfigParseError(ConfigError):
    pass


@dataclass
class FuzzyConfig:
    """Weights for the general-text fuzzy scorer."""

    exact_match: float = 100.0
    starts_with: float = 50.0
    contains: float = 30.0
    word_match: float = 10.0
    similarity_threshold: float = 0.6
    similarity_weight: float = 20.0

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in data.items() if k in known})


@dataclass
class Config:
    client_id: str
    token_storage: str = TOKEN_STORAGE_KEYRING
    oauth_port: int = DEFAULT_OAUTH_PORT
    show_scores: bool = True
    sort_by_score: bool = False
    fuzzy: FuzzyConfig = field(default_factory=FuzzyConfig)

    @classmethod
    def load(cls, path=None):
        """Read and validate the config file; ``path`` defaults to the standard location."""
        if path is None:
            path = paths.config_file()
        if not path.exists():
            raise ConfigNotFound(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigParseError(f"Failed to parse {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e
        logger.debug("Loaded config from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data):
        section = data.get("spotify-cli", {})
        client_id = section.get("client_id")
        if not client_id:
            raise ConfigMissingField("client_id")

        token_storage = section.get("token_storage", TOKEN_STORAGE_KEYRING)
        if token_storage not in (TOKEN_STORAGE_KEYRING, TOKEN_STORAGE_FILE):
            raise ConfigParseError(
                f"Invalid token_storage '{token_storage}'. Use 'keyring' or 'file'"
            )

        search = data.get("search", {})
        return cls(
            client_id=client_id,
            token_storage=token_storage,
            oauth_port=int(section.get("oauth_port", DEFAULT_OAUTH_PORT)),
            show_scores=bool(search.get("show_scores", True)),
            sort_by_score=bool(search.get("sort_by_score", False)),
            fuzzy=FuzzyConfig.from_dict(search.get("fuzzy", {})),
        )
