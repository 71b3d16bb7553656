"""
HTTP + WebSocket application.

Routes:
  POST /mcp                    — JSON-RPC over HTTP (200, or 204 for notifications)
  WS   /mcp                    — JSON-RPC over WebSocket
  POST /api/k8s/pods/status    — formatted pod table and status summary
  POST /api/k8s/pods/describe  — formatted pod detail
  POST /api/k8s/pods/logs      — formatted pod logs
  GET  /health                 — liveness plus backend degraded flag
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket

from k8s_pod_mcp import formatters
from k8s_pod_mcp.backend.client import BackendClient
from k8s_pod_mcp.dispatcher import Dispatcher
from k8s_pod_mcp.protocol import decode, encode, internal_error
from k8s_pod_mcp.transports.websocket import handle_connection

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


async def _params(request: Request) -> dict:
    body = await request.body()
    if not body.strip():
        return {}
    data = decode(body)
    return data if isinstance(data, dict) else {}


def _error(status_code: int, text: str) -> JSONResponse:
    return JSONResponse(formatters.tool_result(text, is_error=True), status_code=status_code)


def create_app(dispatcher: Dispatcher, backend: BackendClient) -> Starlette:
    # -----------------------------------------------------------------------
    # JSON-RPC
    # -----------------------------------------------------------------------

    async def mcp_http(request: Request) -> Response:
        try:
            message = decode(await request.body())
            response = await dispatcher.dispatch(message)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error handling HTTP request: %s", exc)
            return Response(
                encode(internal_error(None, str(exc))),
                status_code=500,
                media_type=JSON_MEDIA_TYPE,
            )
        if response is None:
            return Response(status_code=204)
        return Response(encode(response), media_type=JSON_MEDIA_TYPE)

    async def mcp_websocket(websocket: WebSocket) -> None:
        await handle_connection(websocket, dispatcher)

    # -----------------------------------------------------------------------
    # Formatted routes
    # -----------------------------------------------------------------------

    async def pods_status(request: Request) -> Response:
        try:
            params = await _params(request)
            pod_list = (await backend.list_pods(params.get("namespace") or None)).data
            items: list[Any] = (pod_list or {}).get("items") or []

            pods = []
            for pod in items:
                if not formatters.is_complete(pod):
                    logger.warning("Skipping pod with missing required fields")
                    continue
                pods.append(pod)

            counts, problems = formatters.summarize_pods(pods)
            text = formatters.pod_table(pods) + "\n\n" + formatters.status_summary(counts) + "\n"

            if problems:
                text += "\n### Problem Pods\n"
                for problem in problems:
                    try:
                        detail = (await backend.describe_pod(problem.name, problem.namespace)).data
                    except Exception as exc:  # noqa: BLE001
                        text += formatters.problem_pod_entry(problem, error=str(exc))
                    else:
                        text += formatters.problem_pod_entry(problem, detail)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error in check_pod_status: %s", exc)
            return _error(500, f"Error checking pod status: {exc}")
        return JSONResponse(formatters.tool_result(text))

    async def pods_describe(request: Request) -> Response:
        try:
            params = await _params(request)
            if not params.get("pod_name"):
                return _error(400, "Pod name is required")
            detail = (
                await backend.describe_pod(params["pod_name"], params.get("namespace") or "default")
            ).data
            text = formatters.pretty_json(detail)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error in describe_pod: %s", exc)
            return _error(500, f"Error describing pod: {exc}")
        return JSONResponse(formatters.tool_result(text))

    async def pods_logs(request: Request) -> Response:
        try:
            params = await _params(request)
            if not params.get("pod_name"):
                return _error(400, "Pod name is required")
            logs = (
                await backend.get_logs(
                    params["pod_name"],
                    params.get("namespace") or "default",
                    params.get("container") or None,
                )
            ).data
        except Exception as exc:  # noqa: BLE001
            logger.error("Error in get_pod_logs: %s", exc)
            return _error(500, f"Error retrieving pod logs: {exc}")
        if not logs or not str(logs).strip():
            return JSONResponse(
                formatters.tool_result("No logs available for the specified pod/container.")
            )
        return JSONResponse(formatters.tool_result(formatters.code_block(str(logs))))

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "healthy", "degraded": backend.degraded})

    routes = [
        Route("/mcp", mcp_http, methods=["POST"]),
        WebSocketRoute("/mcp", mcp_websocket),
        Route("/api/k8s/pods/status", pods_status, methods=["POST"]),
        Route("/api/k8s/pods/describe", pods_describe, methods=["POST"]),
        Route("/api/k8s/pods/logs", pods_logs, methods=["POST"]),
        Route("/health", health, methods=["GET"]),
    ]
    return Starlette(routes=routes)
