"""
JSON-RPC 2.0 messages, one JSON object per line.

Requests carry an ``id``; a message without one is a notification and gets
no reply. Server-to-client events are notifications too.
"""

import json

from ..response import ErrorKind, Response

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcProtocolError(Exception):
    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(message)


class RpcRequest:
    def __init__(self, method, params=None, id=None):
        self.method = method
        self.params = params if params is not None else {}
        self.id = id

    @property
    def is_notification(self):
        return self.id is None

    @classmethod
    def parse(cls, line):
        try:
            data = json.loads(line)
        except ValueError as e:
            raise RpcProtocolError(PARSE_ERROR, f"Parse error: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("method"), str):
            raise RpcProtocolError(INVALID_REQUEST, "Invalid request: expected an object with a method")
        params = data.get("params")
        if params is not None and not isinstance(params, dict):
            raise RpcProtocolError(INVALID_PARAMS, "Invalid params: expected an object")
        return cls(data["method"], params, data.get("id"))

    def to_dict(self):
        data = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
        if self.params:
            data["params"] = self.params
        if self.id is not None:
            data["id"] = self.id
        return data


def success_response(id, result):
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": id}


def error_response(id, code, message, data=None):
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "error": error, "id": id}


def notification(method, params=None):
    data = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        data["params"] = params
    return data


def from_response(id, response):
    """Wrap a command ``Response``; errors keep the response code as the RPC code."""
    if response.is_success:
        result = {"code": response.code, "message": response.message, "payload": response.payload}
        if response.payload_kind is not None:
            result["payload_kind"] = response.payload_kind.value
        return success_response(id, result)
    data = None
    if response.error is not None:
        data = {"kind": response.error_kind.value, "details": response.error_details}
    return error_response(id, response.code, response.message, data)


def to_response(message):
    """Turn a JSON-RPC reply back into a ``Response`` (client side)."""
    if "error" in message:
        error = message["error"] or {}
        data = error.get("data") or {}
        code = error.get("code", 500)
        if code < 0:
            return Response.err_with_details(
                500, error.get("message", "RPC error"), ErrorKind.API, f"JSON-RPC error {code}"
            )
        return Response.from_dict(
            {
                "status": "error",
                "code": code,
                "message": error.get("message", ""),
                "error": {
                    "kind": data.get("kind", ErrorKind.API.value),
                    "details": data.get("details"),
                },
            }
        )
    result = message.get("result") or {}
    return Response.from_dict(
        {
            "status": "success",
            "code": result.get("code", 200),
            "message": result.get("message", ""),
            "payload": result.get("payload"),
            "payload_kind": result.get("payload_kind"),
        }
    )


def encode(message):
    return (json.dumps(message) + "\n").encode("utf-8")
