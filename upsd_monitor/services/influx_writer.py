# upsd_monitor/services/influx_writer.py

from __future__ import annotations

from typing import Iterable, Optional

import requests

from upsd_monitor.config import InfluxConfig
from upsd_monitor.models.metric import MetricRecord
from upsd_monitor.services.output_formatter import format_line_protocol


class InfluxWriter:
    """Posts poll results to an InfluxDB (v1 compatible) /write endpoint."""

    def __init__(self, cfg: InfluxConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()
        self.base_url = (cfg.url or "").rstrip("/")

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return bool(self.cfg.enabled and self.base_url and self.cfg.database)

    # ------------------------------------------------------------------
    def write(self, records: Iterable[MetricRecord]) -> bool:
        if not self.enabled:
            self.log.debug("[Influx] Disabled; skipping write")
            return False

        lines = [format_line_protocol(record) for record in records]
        if not lines:
            return True

        headers = {"Content-Type": "text/plain; charset=utf-8"}
        if self.cfg.token:
            headers["Authorization"] = f"Token {self.cfg.token}"

        try:
            resp = self.session.post(
                f"{self.base_url}/write",
                params={"db": self.cfg.database, "precision": "ns"},
                data="\n".join(lines).encode("utf-8"),
                headers=headers,
                timeout=self.cfg.timeout,
            )
        except requests.RequestException as exc:
            self.log.warning("[Influx] Write failed: %s", exc)
            return False

        if resp.status_code not in (200, 204):
            self.log.warning("[Influx] Write returned HTTP %s: %s", resp.status_code, resp.text[:200])
            return False

        self.log.debug("[Influx] Wrote %d point(s)", len(lines))
        return True
