"""OAuth access token with an absolute expiry."""

import time

EXPIRY_BUFFER_SECS = 60


class Token:
    def __init__(
        self, access_token, expires_at, token_type="Bearer", scope="", refresh_token=None
    ):
        self.access_token = access_token
        self.token_type = token_type
        self.scope = scope
        self.expires_at = int(expires_at)
        self.refresh_token = refresh_token

    @classmethod
    def from_response(cls, data, now=None):
        """Build a token from the accounts service JSON, stamping the expiry from ``now``."""
        if now is None:
            now = time.time()
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope", ""),
            expires_at=int(now) + int(data["expires_in"]),
            refresh_token=data.get("refresh_token"),
        )

    @classmethod
    def from_dict(cls, data):
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope", ""),
            expires_at=data["expires_at"],
            refresh_token=data.get("refresh_token"),
        )

    def to_dict(self):
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "scope": self.scope,
            "expires_at": self.expires_at,
            "refresh_token": self.refresh_token,
        }

    def is_expired(self, now=None):
        if now is None:
            now = time.time()
        return now + EXPIRY_BUFFER_SECS >= self.expires_at

    def seconds_until_expiry(self, now=None):
        """Seconds left before the hard expiry; negative once it has passed."""
        if now is None:
            now = time.time()
        return int(self.expires_at - now)

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Token(expires_at={self.expires_at}, scope={self.scope!r})"
