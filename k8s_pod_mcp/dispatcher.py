"""
Transport-agnostic JSON-RPC dispatcher.

Methods:
  initialize            — static server capability descriptor
  tools/list, get_tools — static tool descriptor list
  get_pod_status        — list pods (params.namespace optional, omit for all)
  describe_pod          — read one pod (params.pod_name required)
  get_pod_logs          — pod logs (params.pod_name required, container optional)

``Dispatcher.dispatch`` never raises: malformed envelopes map to -32600,
unknown methods to -32601 and any handler failure to -32000. Notifications
(``id`` null) are executed but produce no response.
"""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from k8s_pod_mcp.backend.client import BackendClient
from k8s_pod_mcp.errors import InvalidParamsError, InvalidRequest, MissingParameterError
from k8s_pod_mcp.protocol import (
    RpcRequest,
    RpcResponse,
    internal_error,
    invalid_request,
    method_not_found,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "k8s-mcp"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSION = "2024-11-05"


class Method(str, Enum):
    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    GET_TOOLS = "get_tools"
    GET_POD_STATUS = "get_pod_status"
    DESCRIBE_POD = "describe_pod"
    GET_POD_LOGS = "get_pod_logs"

    @classmethod
    def lookup(cls, name: str) -> "Method | None":
        try:
            return cls(name)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Static descriptors
# ---------------------------------------------------------------------------

TOOL_DESCRIPTORS: tuple[dict, ...] = (
    {
        "name": "k8s_pod_status",
        "description": "Get Kubernetes pod status",
        "parameters": {
            "namespace": {"type": "string", "optional": True},
            "selector": {"type": "string", "optional": True},
        },
    },
    {
        "name": "k8s_pod_describe",
        "description": "Describe Kubernetes pod",
        "parameters": {
            "namespace": {"type": "string", "optional": True},
            "pod_name": {"type": "string", "required": True},
        },
    },
    {
        "name": "k8s_pod_logs",
        "description": "Get Kubernetes pod logs",
        "parameters": {
            "namespace": {"type": "string", "optional": True},
            "pod_name": {"type": "string", "required": True},
            "container": {"type": "string", "optional": True},
        },
    },
)

SERVER_CAPABILITIES: dict = {
    "protocolVersion": PROTOCOL_VERSION,
    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    "capabilities": {"toolsSupport": True, "workspaceSupport": False},
}


# ---------------------------------------------------------------------------
# Parameter helpers
# ---------------------------------------------------------------------------

def _params_dict(params: Any) -> dict:
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidParamsError("params must be an object")
    return params


def _optional_str(params: dict, key: str) -> str | None:
    value = params.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidParamsError(f"{key} must be a string")
    return value


def _required_str(params: dict, key: str) -> str:
    value = _optional_str(params, key)
    if value is None:
        raise MissingParameterError(key)
    return value


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def handle_initialize(backend: BackendClient, params: Any) -> dict:
    return copy.deepcopy(SERVER_CAPABILITIES)


async def handle_tools_list(backend: BackendClient, params: Any) -> list[dict]:
    return copy.deepcopy(list(TOOL_DESCRIPTORS))


async def handle_get_pod_status(backend: BackendClient, params: Any) -> Any:
    args = _params_dict(params)
    result = await backend.list_pods(_optional_str(args, "namespace"))
    return result.data


async def handle_describe_pod(backend: BackendClient, params: Any) -> Any:
    args = _params_dict(params)
    name = _required_str(args, "pod_name")
    namespace = _optional_str(args, "namespace") or "default"
    result = await backend.describe_pod(name, namespace)
    return result.data


async def handle_get_pod_logs(backend: BackendClient, params: Any) -> Any:
    args = _params_dict(params)
    name = _required_str(args, "pod_name")
    namespace = _optional_str(args, "namespace") or "default"
    container = _optional_str(args, "container")
    result = await backend.get_logs(name, namespace, container)
    return result.data


Handler = Callable[[BackendClient, Any], Awaitable[Any]]

HANDLERS: dict[Method, Handler] = {
    Method.INITIALIZE: handle_initialize,
    Method.TOOLS_LIST: handle_tools_list,
    Method.GET_TOOLS: handle_tools_list,
    Method.GET_POD_STATUS: handle_get_pod_status,
    Method.DESCRIBE_POD: handle_describe_pod,
    Method.GET_POD_LOGS: handle_get_pod_logs,
}


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class Dispatcher:
    """Stateless router shared by all transports."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def dispatch(self, message: Any) -> RpcResponse | None:
        try:
            request = RpcRequest.from_message(message)
        except InvalidRequest as exc:
            logger.warning("Invalid request: %s", exc)
            return invalid_request()

        response = await self._route(request)
        if request.is_notification:
            if response.error is not None:
                logger.warning("Notification %s failed: %s", request.method, response.error.message)
            return None
        return response

    async def _route(self, request: RpcRequest) -> RpcResponse:
        method = Method.lookup(request.method)
        if method is None:
            return method_not_found(request.id)

        handler = HANDLERS[method]
        try:
            result = await handler(self.backend, request.params)
        except InvalidParamsError as exc:
            logger.warning("Rejected %s request: %s", method.value, exc)
            return internal_error(request.id, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error handling %s request", method.value)
            return internal_error(request.id, str(exc))
        return RpcResponse(id=request.id, result=result)
