# upsd_monitor/models/device.py
from dataclasses import dataclass, field
from typing import Union

# Scalar as reported by the server after typing; None means "not reported".
Value = Union[str, int, float, None]


@dataclass
class DeviceVariable:
    name: str
    value: Value


@dataclass
class DeviceSnapshot:
    name: str
    variables: list[DeviceVariable] = field(default_factory=list)
