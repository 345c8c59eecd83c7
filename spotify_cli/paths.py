"""Locations of the files spotify-cli keeps under the per-user config directory."""

import os
import sys
from pathlib import Path

from . import APP_NAME

CONFIG_FILE_NAME = "config.toml"
TOKEN_FILE_NAME = "token.json"
PINS_FILE_NAME = "pins.json"
SOCKET_FILE_NAME = "daemon.sock"
PID_FILE_NAME = "daemon.pid"
LOG_FILE_NAME = "spotify-cli.log"


class PathError(Exception):
    """Raised when the user's home or config directory cannot be found."""


def config_dir():
    """Return the per-user config directory (not created)."""
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise PathError("Could not determine config directory: APPDATA is not set")
        return Path(appdata) / APP_NAME
    try:
        home = Path.home()
    except (KeyError, RuntimeError) as e:
        raise PathError(f"Could not determine home directory: {e}") from e
    return home / ".config" / APP_NAME


def config_file():
    return config_dir() / CONFIG_FILE_NAME


def token_file():
    return config_dir() / TOKEN_FILE_NAME


def pins_file():
    return config_dir() / PINS_FILE_NAME


def socket_file():
    return config_dir() / SOCKET_FILE_NAME


def pid_file():
    return config_dir() / PID_FILE_NAME


def log_file():
    return config_dir() / LOG_FILE_NAME
