# upsd_monitor/services/metric_builder.py

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from upsd_monitor.models.device import Value
from upsd_monitor.models.metric import MetricRecord
from upsd_monitor.services.status_decoder import STATUS_VARIABLE, decode_status
from upsd_monitor.services.variables import as_int64, as_text


MEASUREMENT = "upsd"
RUNTIME_VARIABLE = "battery.runtime"
NS_PER_SECOND = 1_000_000_000

# (field name, NUT variable) copied through untouched.
FIELD_SOURCES: Tuple[Tuple[str, str], ...] = (
    ("ups.status", "ups.status"),
    ("input_voltage", "input.voltage"),
    ("load_percent", "ups.load"),
    ("battery_charge_percent", "battery.charge"),
    ("output_voltage", "output.voltage"),
    ("internal_temp", "ups.temperature"),
    ("battery_voltage", "battery.voltage"),
    ("input_frequency", "input.frequency"),
    ("nominal_input_voltage", "input.voltage.nominal"),
    ("nominal_battery_voltage", "battery.voltage.nominal"),
    ("nominal_power", "ups.realpower.nominal"),
    ("firmware", "ups.firmware"),
    ("battery_date", "battery.mfr.date"),
)


class RuntimeTypeLatch:
    """Remembers whether the battery.runtime type warning was already logged."""

    def __init__(self):
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> bool:
        """Return True only for the first caller."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True


def runtime_ns(variables: Mapping[str, Value], latch: RuntimeTypeLatch, log) -> int:
    seconds = as_int64(variables.get(RUNTIME_VARIABLE))
    if seconds is None:
        if latch.fire():
            log.warning(
                "'%s' type is not int64 (got %s); reporting time_left_ns as 0",
                RUNTIME_VARIABLE,
                type(variables.get(RUNTIME_VARIABLE)).__name__,
            )
        seconds = 0
    return seconds * NS_PER_SECOND


def build_metric(
    name: str,
    variables: Mapping[str, Value],
    latch: RuntimeTypeLatch,
    log,
    timestamp: Optional[datetime] = None,
) -> MetricRecord:
    tags: Dict[str, str] = {
        "serial": as_text(variables.get("device.serial")),
        "ups_name": name,
        "model": as_text(variables.get("device.model")),
    }

    # apcupsd compatible STATFLAG word
    status = decode_status(variables, tags)

    fields: Dict[str, Any] = {"status_flags": status}
    for field_name, source in FIELD_SOURCES:
        fields[field_name] = variables.get(source)
    fields["time_left_ns"] = runtime_ns(variables, latch, log)

    log.debug(
        "%s: %s=%r flags=%d", name, STATUS_VARIABLE, variables.get(STATUS_VARIABLE), status
    )

    return MetricRecord(
        measurement=MEASUREMENT,
        tags=tags,
        fields=fields,
        timestamp=timestamp or datetime.now(timezone.utc),
    )
