import itertools
import json
import logging
import socket

from .. import paths
from ..response import ErrorKind, Response
from . import protocol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class RpcClientError(Exception):
    pass


class DaemonUnavailable(RpcClientError):
    """No daemon is accepting connections; nothing was sent."""


class RpcClient:
    """Blocking client: one connection per call, events on the wire are skipped."""

    _ids = itertools.count(1)

    def __init__(self, socket_path=None, timeout=DEFAULT_TIMEOUT):
        self.socket_path = socket_path if socket_path is not None else paths.socket_file()
        self.timeout = timeout

    def _connect(self):
        if not self.socket_path.exists():
            raise DaemonUnavailable(f"No daemon socket at {self.socket_path}")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(str(self.socket_path))
        except OSError as e:
            sock.close()
            raise DaemonUnavailable(f"Could not connect to {self.socket_path}: {e}") from e
        return sock

    def is_available(self):
        try:
            sock = self._connect()
        except DaemonUnavailable:
            return False
        sock.close()
        return True

    def call(self, method, params=None):
        """Send one request and return the reply as a ``Response``."""
        request = protocol.RpcRequest(method, params, next(self._ids))
        with self._connect() as sock:
            logger.debug("Forwarding %s to daemon", method)
            try:
                sock.sendall(protocol.encode(request.to_dict()))
                with sock.makefile("r", encoding="utf-8") as stream:
                    for line in stream:
                        message = self._parse(line)
                        if message is None or message.get("id") != request.id:
                            continue
                        return protocol.to_response(message)
            except OSError as e:
                raise RpcClientError(f"Daemon connection failed: {e}") from e
        raise RpcClientError("Daemon closed the connection without replying")

    @staticmethod
    def _parse(line):
        line = line.strip()
        if not line:
            return None
        try:
            message = json.loads(line)
        except ValueError:
            logger.warning("Ignoring malformed line from daemon: %.80s", line)
            return None
        if not isinstance(message, dict) or not ("result" in message or "error" in message):
            return None
        return message


def call_daemon(method, params=None, socket_path=None):
    """``RpcClient.call`` with transport failures turned into an error response."""
    try:
        return RpcClient(socket_path).call(method, params)
    except DaemonUnavailable:
        raise
    except RpcClientError as e:
        return Response.err_with_details(503, "Daemon request failed", ErrorKind.NETWORK, str(e))
