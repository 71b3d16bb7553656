"""
Unit tests for k8s_pod_mcp/transports/stdio.py
"""

from __future__ import annotations

import io
import json
import sys

from k8s_pod_mcp.server import main
from k8s_pod_mcp.transports.stdio import serve_lines


async def _lines(*items: str):
    for item in items:
        yield item


async def _run(dispatcher, *lines: str) -> list[str]:
    written: list[str] = []

    async def write(text: str) -> None:
        written.append(text)

    await serve_lines(dispatcher, _lines(*lines), write)
    return written


async def test_one_response_per_request(dispatcher):
    out = await _run(
        dispatcher,
        '{"jsonrpc":"2.0","method":"initialize","id":1}\n',
        '{"jsonrpc":"2.0","method":"tools/list","id":2}\n',
    )
    assert len(out) == 2
    assert all(chunk.endswith("\n") and chunk.count("\n") == 1 for chunk in out)
    ids = sorted(json.loads(chunk)["id"] for chunk in out)
    assert ids == [1, 2]


async def test_notification_writes_nothing(dispatcher):
    out = await _run(dispatcher, '{"jsonrpc":"2.0","method":"initialize","id":null}\n')
    assert out == []


async def test_blank_lines_are_skipped(dispatcher):
    out = await _run(dispatcher, "\n", "   \n", '{"jsonrpc":"2.0","method":"get_tools","id":5}\n')
    assert len(out) == 1


async def test_unparseable_line_yields_error_and_keeps_reading(dispatcher):
    out = await _run(
        dispatcher,
        "{this is not json\n",
        '{"jsonrpc":"2.0","method":"bogus","id":"b"}\n',
    )
    responses = {json.dumps(json.loads(chunk)["id"]): json.loads(chunk) for chunk in out}
    parse_error = responses["null"]
    assert parse_error["error"]["code"] == -32000
    assert parse_error["error"]["message"] == "Internal error"
    assert parse_error["error"]["data"]
    assert responses['"b"']["error"]["code"] == -32601


async def test_invalid_envelope_on_stdio(dispatcher):
    out = await _run(dispatcher, '{"jsonrpc":"1.0","method":"initialize","id":3}\n')
    assert json.loads(out[0]) == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32600, "message": "Invalid Request"},
    }


async def test_returns_after_end_of_input(dispatcher):
    assert await _run(dispatcher) == []


async def test_backend_request_on_stdio(dispatcher):
    out = await _run(
        dispatcher,
        '{"jsonrpc":"2.0","method":"describe_pod","params":{"pod_name":"x"},"id":1}\n',
    )
    payload = json.loads(out[0])
    assert payload["id"] == 1
    assert payload["result"]["metadata"]["name"] == "x"


async def test_deeply_nested_line_yields_error_and_keeps_reading(dispatcher):
    out = await _run(
        dispatcher,
        "[" * 200000 + "]" * 200000 + "\n",
        '{"jsonrpc":"2.0","method":"initialize","id":2}\n',
    )
    responses = {json.dumps(json.loads(chunk)["id"]): json.loads(chunk) for chunk in out}
    assert responses["null"]["error"]["code"] == -32000
    assert responses["null"]["error"]["data"] == "JSON nesting too deep"
    assert responses["2"]["result"]["serverInfo"]["name"] == "k8s-mcp"


async def test_nan_id_is_rejected_as_bad_json(dispatcher):
    out = await _run(dispatcher, '{"jsonrpc":"2.0","method":"initialize","id":NaN}\n')
    payload = json.loads(out[0])
    assert payload["id"] is None
    assert payload["error"]["code"] == -32000
    assert payload["error"]["data"] == "NaN is not valid JSON"


async def test_write_failure_is_logged_and_loop_continues(dispatcher, caplog):
    written: list[str] = []

    async def write(text: str) -> None:
        if not written:
            written.append("")
            raise BrokenPipeError("stdout closed")
        written.append(text)

    await serve_lines(
        dispatcher,
        _lines(
            '{"jsonrpc":"2.0","method":"initialize","id":1}\n',
            '{"jsonrpc":"2.0","method":"initialize","id":2}\n',
        ),
        write,
    )
    assert "Error writing response: stdout closed" in caplog.text
    assert len(written) == 2
    assert json.loads(written[1])["result"]["serverInfo"]["name"] == "k8s-mcp"


# ---------------------------------------------------------------------------
# Process level: stdin EOF ends the server cleanly
# ---------------------------------------------------------------------------

class _Pipe(io.BytesIO):
    """Byte buffer that survives its text wrapper being closed."""

    def close(self) -> None:
        pass


def test_main_stdio_exits_cleanly_on_eof(monkeypatch):
    stdin = _Pipe(b'{"jsonrpc":"2.0","method":"initialize","id":1}\n')
    stdout = _Pipe()
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(stdin, encoding="utf-8"))
    monkeypatch.setattr(sys, "stdout", io.TextIOWrapper(stdout, encoding="utf-8"))
    monkeypatch.setattr("k8s_pod_mcp.server.configure_logging", lambda level: None)

    assert main(["--transport", "stdio"]) is None

    lines = stdout.getvalue().decode("utf-8").splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["id"] == 1
