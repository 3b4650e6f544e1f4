# upsd_monitor/services/output_formatter.py

from __future__ import annotations

import json
from typing import Any, Iterable, List

from upsd_monitor.models.metric import MetricRecord


class MetricBuffer:
    """Collects the records of one poll cycle."""

    def __init__(self):
        self.records: List[MetricRecord] = []

    def add(self, record: MetricRecord) -> None:
        self.records.append(record)

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


# ============================================================================
# Influx line protocol
# ============================================================================

def _escape_key(text: str) -> str:
    return text.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def _escape_measurement(text: str) -> str:
    return text.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")


def _field_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _timestamp_ns(record: MetricRecord) -> int:
    ts = record.timestamp
    return int(ts.timestamp()) * 1_000_000_000 + ts.microsecond * 1_000


def format_line_protocol(record: MetricRecord) -> str:
    parts = [_escape_measurement(record.measurement)]
    for key in sorted(record.tags):
        value = record.tags[key]
        if value == "":
            continue
        parts.append(f"{_escape_key(key)}={_escape_key(value)}")
    head = ",".join(parts)

    fields = [
        f"{_escape_key(key)}={_field_value(value)}"
        for key, value in record.fields.items()
        if value is not None
    ]
    return f"{head} {','.join(fields)} {_timestamp_ns(record)}"


# ============================================================================
# stdout emitters
# ============================================================================

def emit_line_protocol(records: Iterable[MetricRecord]) -> None:
    for record in records:
        print(format_line_protocol(record))


def emit_json(records: Iterable[MetricRecord]) -> None:
    payload = [
        {
            "measurement": record.measurement,
            "timestamp": record.timestamp.isoformat(),
            "tags": dict(record.tags),
            "fields": dict(record.fields),
        }
        for record in records
    ]
    print(json.dumps({"metrics": payload}, indent=2))


def _fmt(value: Any, unit: str = "", pattern: str = ".1f") -> str:
    if value is None:
        return "n/a"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:{pattern}}{unit}"
    return f"{value}{unit}"


def emit_human(records: Iterable[MetricRecord]) -> None:
    for record in records:
        tags = record.tags
        fields = record.fields
        flags = sorted(k[len("status_"):] for k in tags if k.startswith("status_"))
        runtime_s = fields.get("time_left_ns", 0) // 1_000_000_000
        print(
            f"[{tags.get('ups_name')}] model={tags.get('model')} serial={tags.get('serial')} "
            f"status={fields.get('ups.status')} flags={fields.get('status_flags')}"
            f"({' '.join(flags) or '-'})"
        )
        print(
            f"    charge={_fmt(fields.get('battery_charge_percent'), '%', '.0f')}  "
            f"load={_fmt(fields.get('load_percent'), '%', '.0f')}  "
            f"in={_fmt(fields.get('input_voltage'), 'V')}  "
            f"out={_fmt(fields.get('output_voltage'), 'V')}  "
            f"runtime={runtime_s}s"
        )
