"""
Token persistence.

Two backends share the ``save``/``load``/``delete``/``exists`` interface: the
system keychain (via ``keyring``) and a JSON file readable only by the owner.
``TokenStore`` picks one from the configured preference once, falls back to
the file when no keychain is usable, and migrates file tokens into the
keychain on read.
"""

import json
import logging
import os

import keyring
import keyring.backends.fail
import keyring.errors

from . import paths
from .config import TOKEN_STORAGE_FILE, TOKEN_STORAGE_KEYRING
from .tokens import Token

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "spotify-cli"
KEYRING_KEY = "oauth_token"


class TokenStoreError(Exception):
    pass


class TokenNotFound(TokenStoreError):
    def __init__(self, where="store"):
        super().__init__(f"Token not found in {where}")


class KeyringUnavailable(TokenStoreError):
    pass


class FileTokenStore:
    def __init__(self, path=None):
        self.path = path if path is not None else paths.token_file()

    def save(self, token):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(token.to_dict(), f, indent=4)
            if os.name == "posix":
                os.chmod(self.path, 0o600)
        except OSError as e:
            raise TokenStoreError(f"Failed to write {self.path}: {e}") from e
        logger.info("Token saved to %s", self.path)

    def load(self):
        if not self.path.exists():
            logger.debug("Token file %s not found.", self.path)
            raise TokenNotFound("file")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return Token.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError) as e:
            raise TokenStoreError(f"Failed to read {self.path}: {e}") from e

    def delete(self):
        if self.path.exists():
            try:
                self.path.unlink()
            except OSError as e:
                raise TokenStoreError(f"Failed to remove {self.path}: {e}") from e
            logger.info("Token file %s removed.", self.path)

    def exists(self):
        return self.path.exists()


class KeyringTokenStore:
    def __init__(self, service=KEYRING_SERVICE, key=KEYRING_KEY):
        backend = keyring.get_keyring()
        if isinstance(backend, keyring.backends.fail.Keyring):
            raise KeyringUnavailable("No system keyring backend available")
        self.service = service
        self.key = key

    def save(self, token):
        try:
            keyring.set_password(self.service, self.key, json.dumps(token.to_dict()))
        except keyring.errors.KeyringError as e:
            raise TokenStoreError(f"Keyring error: {e}") from e

    def load(self):
        try:
            raw = keyring.get_password(self.service, self.key)
        except keyring.errors.KeyringError as e:
            raise TokenStoreError(f"Keyring error: {e}") from e
        if raw is None:
            raise TokenNotFound("keyring")
        try:
            return Token.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError) as e:
            raise TokenStoreError(f"Malformed token in keyring: {e}") from e

    def delete(self):
        try:
            keyring.delete_password(self.service, self.key)
        except keyring.errors.PasswordDeleteError:
            pass  # already gone
        except keyring.errors.KeyringError as e:
            raise TokenStoreError(f"Keyring error: {e}") from e

    def exists(self):
        try:
            return keyring.get_password(self.service, self.key) is not None
        except keyring.errors.KeyringError:
            return False


class TokenStore:
    """Keychain-first token storage with a file fallback chosen once at construction."""

    def __init__(self, preferred=TOKEN_STORAGE_KEYRING, file_store=None, keyring_factory=None):
        self.file = file_store if file_store is not None else FileTokenStore()
        self.keyring = None
        self.backend = TOKEN_STORAGE_FILE

        if preferred == TOKEN_STORAGE_KEYRING:
            factory = keyring_factory or KeyringTokenStore
            try:
                self.keyring = factory()
                self.backend = TOKEN_STORAGE_KEYRING
                logger.debug("Using keyring for token storage")
            except (KeyringUnavailable, keyring.errors.KeyringError) as e:
                logger.warning("Keyring unavailable, falling back to file storage: %s", e)
        else:
            logger.debug("Using file for token storage (configured)")

    def save(self, token):
        if self.keyring is not None:
            self.keyring.save(token)
            logger.debug("Token saved to keyring")
        else:
            self.file.save(token)

    def load(self):
        if self.keyring is None:
            return self.file.load()
        try:
            return self.keyring.load()
        except TokenNotFound:
            logger.debug("Token not in keyring, checking file for migration")

        token = self.file.load()
        try:
            self.keyring.save(token)
        except TokenStoreError as e:
            logger.warning("Could not migrate token into keyring, keeping file: %s", e)
            return token
        self.file.delete()
        logger.info("Token migrated from %s to keyring", self.file.path)
        return token

    def delete(self):
        if self.keyring is not None:
            self.keyring.delete()
            logger.debug("Token deleted from keyring")
        self.file.delete()

    def exists(self):
        if self.keyring is not None and self.keyring.exists():
            return True
        return self.file.exists()
