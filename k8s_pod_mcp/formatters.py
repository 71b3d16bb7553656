"""Human-readable formatting for the auxiliary /api/k8s routes."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from mcp.types import CallToolResult, TextContent

HEALTHY_PHASES = ("Running", "Completed", "Succeeded")

POD_TABLE_HEADER = "NAMESPACE  NAME  READY  STATUS  RESTARTS  AGE  IP  NODE"


# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------

def tool_result(text: str, is_error: bool = False) -> dict:
    """``{"content": [{"type": "text", "text": ...}], "isError": ...}``"""
    result = CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)
    return result.model_dump(by_alias=True, exclude_none=True)


def code_block(body: str) -> str:
    return f"```\n{body}\n```"


# ---------------------------------------------------------------------------
# Pod helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProblemPod:
    namespace: str
    name: str
    status: str


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_minutes(created: Any, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    started = _parse_timestamp(created) or now
    return max(0, int((now - started).total_seconds() // 60))


def pod_row(pod: dict, now: datetime | None = None) -> str:
    metadata = pod.get("metadata") or {}
    spec = pod.get("spec") or {}
    status = pod.get("status") or {}

    container_statuses = status.get("containerStatuses") or []
    ready = sum(1 for c in container_statuses if c.get("ready"))
    total = len(spec.get("containers") or [])
    restarts = sum(c.get("restartCount") or 0 for c in container_statuses)
    age = age_minutes(metadata.get("creationTimestamp"), now)

    return "  ".join(
        [
            metadata.get("namespace") or "default",
            metadata.get("name") or "unknown",
            f"{ready}/{total}",
            status.get("phase") or "Unknown",
            str(restarts),
            f"{age}m",
            status.get("podIP") or "",
            spec.get("nodeName") or "",
        ]
    )


def is_complete(pod: Any) -> bool:
    return isinstance(pod, dict) and all(pod.get(k) for k in ("metadata", "spec", "status"))


def summarize_pods(pods: list[dict]) -> tuple[Counter, list[ProblemPod]]:
    counts: Counter = Counter()
    problems: list[ProblemPod] = []
    for pod in pods:
        phase = pod["status"].get("phase") or "Unknown"
        counts[phase] += 1
        if phase not in HEALTHY_PHASES:
            problems.append(
                ProblemPod(
                    namespace=pod["metadata"].get("namespace") or "default",
                    name=pod["metadata"].get("name") or "unknown",
                    status=phase,
                )
            )
    return counts, problems


def pod_table(pods: list[dict], now: datetime | None = None) -> str:
    rows = [POD_TABLE_HEADER] + [pod_row(p, now) for p in pods]
    return code_block("\n".join(rows))


def status_summary(counts: Counter) -> str:
    lines = ["### Pod Status Summary"]
    lines += [f"- {phase}: {count} pod(s)" for phase, count in counts.items()]
    return "\n".join(lines)


def conditions_text(conditions: list[dict]) -> str:
    lines = []
    for c in conditions:
        parts = [
            str(c.get("lastTransitionTime") or ""),
            c.get("type") or "",
            c.get("status") or "",
            c.get("reason") or "",
            c.get("message") or "",
        ]
        lines.append(" ".join(parts))
    return "\n".join(lines)


def problem_pod_entry(problem: ProblemPod, detail: Any = None, error: str | None = None) -> str:
    text = f"- Namespace: {problem.namespace}, Pod: {problem.name}, Status: {problem.status}\n"
    if error is not None:
        return text + f"\n  Could not get pod details: {error}\n"
    conditions = ((detail or {}).get("status") or {}).get("conditions") or []
    events = conditions_text(conditions)
    if events:
        text += "\n  Recent events:\n" + code_block(events) + "\n"
    return text


def pretty_json(payload: Any) -> str:
    return code_block(json.dumps(payload, indent=2, default=str))
