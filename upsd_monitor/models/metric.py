# upsd_monitor/models/metric.py
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class MetricRecord:
    measurement: str
    tags: dict[str, str]
    fields: dict[str, Any]   # None values are left for the serializer to drop
    timestamp: datetime
