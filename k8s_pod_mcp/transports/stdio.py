"""
Line-delimited stdio transport.

One JSON-RPC request per input line, one response per output line. Each
line is dispatched in its own task so slow backend calls do not hold up
later requests; writes are serialized so responses never interleave.
Logging goes to stderr and never touches stdout.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from io import TextIOWrapper
from typing import AsyncIterable, Awaitable, Callable

import anyio

from k8s_pod_mcp.dispatcher import Dispatcher
from k8s_pod_mcp.protocol import RpcResponse, decode, encode, internal_error

logger = logging.getLogger(__name__)

Writer = Callable[[str], Awaitable[None]]


async def serve_lines(dispatcher: Dispatcher, lines: AsyncIterable[str], write: Writer) -> None:
    """Answer every request read from ``lines`` and return once input ends."""
    write_lock = asyncio.Lock()
    pending: set[asyncio.Task] = set()

    async def emit(response: RpcResponse) -> None:
        async with write_lock:
            try:
                await write(encode(response) + "\n")
            except (OSError, ValueError) as exc:
                logger.error("Error writing response: %s", exc)

    async def handle(line: str) -> None:
        try:
            message = decode(line)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error handling request: %s", exc)
            await emit(internal_error(None, str(exc)))
            return
        try:
            response = await dispatcher.dispatch(message)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error handling request")
            response = internal_error(None, str(exc))
        if response is not None:
            await emit(response)

    async for raw in lines:
        line = raw.strip()
        if not line:
            continue
        task = asyncio.create_task(handle(line))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


async def run_stdio(dispatcher: Dispatcher) -> None:
    stdin = anyio.wrap_file(TextIOWrapper(sys.stdin.buffer, encoding="utf-8"))
    stdout = anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8"))

    async def write(text: str) -> None:
        await stdout.write(text)
        await stdout.flush()

    logger.info("MCP server listening on stdio")
    await serve_lines(dispatcher, stdin, write)
    logger.info("Stdin closed, exiting")
