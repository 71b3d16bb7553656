"""
JSON-RPC 2.0 envelope model shared by every transport.

``encode`` is the only serializer used to put responses on the wire, which
keeps stdio, HTTP and WebSocket output byte-identical for the same request.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Union

from mcp.types import INVALID_REQUEST, METHOD_NOT_FOUND, ErrorData

from k8s_pod_mcp.errors import InvalidRequest

JSONRPC_VERSION = "2.0"

# Implementation-defined server error; the only code used for failures that
# are neither envelope nor routing problems.
SERVER_ERROR = -32000

RequestId = Union[str, int, float, None]


def _valid_id(value: Any) -> bool:
    if value is None or isinstance(value, str):
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


@dataclass(frozen=True)
class RpcRequest:
    method: str
    params: Any = None
    id: RequestId = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    @classmethod
    def from_message(cls, message: Any) -> "RpcRequest":
        """Validate a decoded JSON value and build a request from it.

        A missing ``id`` is treated like ``"id": null``.
        """
        if not isinstance(message, dict):
            raise InvalidRequest("request must be a JSON object")
        if message.get("jsonrpc") != JSONRPC_VERSION:
            raise InvalidRequest("jsonrpc must be '2.0'")
        method = message.get("method")
        if not isinstance(method, str) or not method:
            raise InvalidRequest("method must be a non-empty string")
        request_id = message.get("id")
        if not _valid_id(request_id):
            raise InvalidRequest("id must be a string, a number or null")
        return cls(method=method, params=message.get("params"), id=request_id)


@dataclass(frozen=True)
class RpcResponse:
    id: RequestId
    result: Any = None
    error: ErrorData | None = None

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result
        return payload


def encode(response: RpcResponse) -> str:
    return json.dumps(response.to_dict(), ensure_ascii=False, separators=(",", ":"), default=str)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode(raw: str | bytes) -> Any:
    """Parse one inbound frame.

    Raises ValueError on bad UTF-8, bad JSON, the non-standard
    ``NaN``/``Infinity`` literals, or nesting too deep to parse.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError("JSON nesting too deep") from exc


# ---------------------------------------------------------------------------
# Error constructors
# ---------------------------------------------------------------------------

def error_response(request_id: RequestId, code: int, message: str, data: Any = None) -> RpcResponse:
    return RpcResponse(id=request_id, error=ErrorData(code=code, message=message, data=data))


def invalid_request() -> RpcResponse:
    return error_response(None, INVALID_REQUEST, "Invalid Request")


def method_not_found(request_id: RequestId) -> RpcResponse:
    return error_response(request_id, METHOD_NOT_FOUND, "Method not found")


def internal_error(request_id: RequestId, data: Any = None) -> RpcResponse:
    return error_response(request_id, SERVER_ERROR, "Internal error", data)
