"""Result normalization for display.

Workers answer each check type with a differently shaped payload: ping
returns nested lists of per-packet attempts, http a flat success/time/status
record, tcp and udp a single connect attempt, dns record-type keyed lists.
These helpers flatten an outcome into one :class:`ResultRow`, branching on
the outcome's check type. Payloads are only read, never modified.
"""

import math
from typing import Any, Optional

from checkhost.modules.check.schemas import AgentOutcome, AgentRef, CheckType, ResultRow

EMPTY = "—"
OK_LABEL = "✓ OK"
ERROR_LABEL = "✗ Error"


# ============================================
# Agent labels
# ============================================

def location_label(agent: AgentRef) -> str:
    """``"Country, City"`` when known, else the agent's name."""
    parts = [p for p in (agent.agent_country, agent.agent_city) if p]
    if parts:
        return ", ".join(parts)
    return agent.name or agent.agent_location or "Unknown"


def country_code(agent: AgentRef) -> str:
    if agent.agent_country_code:
        return agent.agent_country_code.upper()
    if agent.agent_country and len(agent.agent_country) >= 2:
        return agent.agent_country[:2].upper()
    return ""


# ============================================
# Payload shape helpers
# ============================================

def _payload_data(payload: Any) -> Any:
    """The check data inside a worker response (its ``result`` key)."""
    if isinstance(payload, dict):
        return payload.get("result")
    return None


def _as_nested(data: Any) -> list[list[Any]]:
    """Coerce ``x``, ``[x, ...]`` or ``[[x, ...], ...]`` into a list of lists."""
    if not data:
        return []
    if not isinstance(data, list):
        return [[data]]
    if not isinstance(data[0], list):
        return [data]
    return data


def _flatten(nested: list[Any]) -> list[Any]:
    flat: list[Any] = []
    for item in nested:
        if isinstance(item, list):
            flat.extend(x for x in item if x is not None)
        elif item is not None:
            flat.append(item)
    return flat


def _seconds(value: Any) -> Optional[float]:
    """A worker timing as float seconds; numeric strings are accepted."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _ms(value: Any) -> Optional[float]:
    seconds = _seconds(value)
    return seconds * 1000 if seconds is not None else None


def _unique(values: list[Any]) -> list[Any]:
    seen: list[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


# ============================================
# Per check type summaries
# ============================================

def summarize_ping(data: Any) -> dict[str, Any]:
    """Packet counts, rtt min/avg/max (ms) and the resolved IP."""
    packets = [p for p in _flatten(_as_nested(data)) if isinstance(p, dict)]
    ok_packets = [p for p in packets if p.get("status") == "OK"]

    ip = next((p["ip"] for p in ok_packets if p.get("ip")), None)
    if ip is None:
        ip = next((p["ip"] for p in packets if p.get("ip")), None)

    times = [t for t in (_ms(p.get("time")) for p in ok_packets) if t is not None]

    return {
        "success_count": len(ok_packets),
        "total_count": len(packets),
        "min_time": min(times) if times else 0.0,
        "avg_time": sum(times) / len(times) if times else 0.0,
        "max_time": max(times) if times else 0.0,
        "ip": ip,
    }


def summarize_http(data: Any) -> dict[str, Any]:
    records = [r for r in _flatten(_as_nested(data)) if isinstance(r, dict)]
    if not records:
        return {"success": False, "time": 0, "status_code": None, "message": "No data", "ip": None}

    first = records[0]
    return {
        "success": first.get("success") in (1, True),
        "time": _seconds(first.get("time")) or 0,
        "status_code": first.get("statusCode"),
        "message": first.get("message") or "Unknown",
        "ip": first.get("ip"),
    }


def summarize_port(data: Any) -> dict[str, Any]:
    """Summary of a tcp or udp connect attempt."""
    records = data if isinstance(data, list) else ([data] if data else [])
    if not records or not isinstance(records[0], dict):
        return {"success": False, "time": None, "address": None, "error": "No data", "note": None}

    first = records[0]
    seconds = _seconds(first.get("time"))
    return {
        "success": not first.get("error") and seconds is not None,
        "time": seconds or None,
        "address": first.get("address"),
        "error": first.get("error"),
        "note": first.get("note"),
    }


def summarize_dns(data: Any) -> dict[str, Any]:
    records = _flatten(data) if isinstance(data, list) else ([data] if data else [])
    a_records: list[str] = []
    aaaa_records: list[str] = []
    ttl = None

    for record in records:
        if not isinstance(record, dict):
            continue
        if isinstance(record.get("A"), list):
            a_records.extend(record["A"])
        if isinstance(record.get("AAAA"), list):
            aaaa_records.extend(record["AAAA"])
        if record.get("TTL") is not None:
            ttl = record["TTL"]

    return {
        "a_records": _unique(a_records),
        "aaaa_records": _unique(aaaa_records),
        "ttl": ttl,
    }


# ============================================
# Rows
# ============================================

def normalize_outcome(outcome: AgentOutcome) -> ResultRow:
    """Flatten one outcome into a table row for its check type."""
    agent = outcome.agent
    base = {
        "location": location_label(agent),
        "country_code": country_code(agent),
        "country_emoji": agent.country_emoji,
    }

    if not outcome.success:
        return ResultRow(
            **base,
            success=False,
            result=ERROR_LABEL,
            error=outcome.error,
        )

    data = _payload_data(outcome.result)
    check_type = outcome.check_type

    if check_type == CheckType.PING:
        ping = summarize_ping(data)
        ip = ping["ip"]
        if not ip and isinstance(outcome.result, dict):
            ip = outcome.result.get("host")
        return ResultRow(
            **base,
            success=ping["success_count"] > 0,
            result=f"{ping['success_count']} / {ping['total_count']}",
            rtt=(
                f"{ping['min_time']:.1f} / {ping['avg_time']:.1f} / {ping['max_time']:.1f} ms"
                if ping["success_count"] > 0 else EMPTY
            ),
            ip=ip or EMPTY,
        )

    if check_type == CheckType.HTTP:
        http = summarize_http(data)
        return ResultRow(
            **base,
            success=http["success"],
            result=OK_LABEL if http["success"] else ERROR_LABEL,
            time=f"{http['time'] * 1000:.0f} ms" if http["time"] > 0 else EMPTY,
            status_code=str(http["status_code"]) if http["status_code"] else EMPTY,
            ip=http["ip"] or EMPTY,
        )

    if check_type in (CheckType.TCP, CheckType.UDP):
        port = summarize_port(data)
        return ResultRow(
            **base,
            success=port["success"],
            result=OK_LABEL if port["success"] else (port["error"] or ERROR_LABEL),
            time=f"{port['time'] * 1000:.0f} ms" if port["time"] else EMPTY,
            ip=port["address"] or EMPTY,
        )

    if check_type == CheckType.DNS:
        dns = summarize_dns(data)
        return ResultRow(
            **base,
            success=bool(dns["a_records"] or dns["aaaa_records"]),
            result=OK_LABEL if dns["a_records"] or dns["aaaa_records"] else ERROR_LABEL,
            a_records=", ".join(dns["a_records"]) or EMPTY,
            aaaa_records=", ".join(dns["aaaa_records"]) or EMPTY,
            ttl=f"{dns['ttl']} s" if dns["ttl"] else EMPTY,
        )

    # ip-info
    info = data if isinstance(data, list) else ([data] if data is not None else [])
    return ResultRow(
        **base,
        success=bool(info),
        result=OK_LABEL if info else ERROR_LABEL,
        info=info,
    )


def normalize_outcomes(outcomes: list[AgentOutcome]) -> list[ResultRow]:
    return [normalize_outcome(outcome) for outcome in outcomes]
