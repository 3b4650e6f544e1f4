# upsd_monitor/services/collector.py

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from upsd_monitor.config import ServerConfig
from upsd_monitor.models.metric import MetricRecord
from upsd_monitor.services.metric_builder import RuntimeTypeLatch, build_metric
from upsd_monitor.services.nut_client import (
    NutClient,
    UpsdAuthError,
    UpsdConnectError,
    UpsdProtocolError,
)
from upsd_monitor.services.variables import normalize_variables


PHASE_CONNECT = "connect"
PHASE_AUTH = "auth"
PHASE_LIST = "getupslist"


class GatherError(Exception):
    """A poll cycle aborted before any metric was emitted."""

    def __init__(self, phase: str, cause: Exception):
        self.phase = phase
        self.cause = cause
        super().__init__(f"{phase}: {cause}")


def _as_emitter(sink: Any) -> Callable[[MetricRecord], None]:
    add = getattr(sink, "add", None)
    if callable(add):
        return add
    if callable(sink):
        return sink
    raise TypeError(f"Unsupported metric sink: {sink!r}")


class UpsdCollector:
    """
    Runs poll cycles against one NUT server.

    Each cycle connects, lists every UPS with its variables, disconnects and
    then emits one MetricRecord per UPS. Nothing is kept between cycles except
    the battery.runtime warning latch.
    """

    def __init__(self, server_cfg: ServerConfig, log, client_factory: Optional[Callable[..., Any]] = None):
        self.cfg = server_cfg
        self.log = log
        self._client_factory = client_factory or NutClient
        self.runtime_latch = RuntimeTypeLatch()
        self._cycle_lock = threading.Lock()

    # ----------------------------------------------------------------------

    def _new_client(self):
        return self._client_factory(
            host=self.cfg.server,
            port=self.cfg.port,
            connect_timeout=self.cfg.connection_timeout,
            op_timeout=self.cfg.op_timeout,
            log=self.log,
        )

    def fetch_devices(self):
        client = self._new_client()

        username = self.cfg.username if self.cfg.has_credentials else None
        password = self.cfg.password if self.cfg.has_credentials else None
        try:
            client.connect(username, password)
        except UpsdConnectError as exc:
            raise GatherError(PHASE_CONNECT, exc) from exc
        except UpsdAuthError as exc:
            raise GatherError(PHASE_AUTH, exc) from exc

        with client:
            try:
                return client.list_devices()
            except UpsdProtocolError as exc:
                raise GatherError(PHASE_LIST, exc) from exc

    # ----------------------------------------------------------------------

    def gather(self, sink) -> int:
        """Run one poll cycle; returns the number of records emitted."""
        emit = _as_emitter(sink)

        with self._cycle_lock:
            devices = self.fetch_devices()
            now = datetime.now(timezone.utc)

            for device in devices:
                variables = normalize_variables(device.variables)
                record = build_metric(
                    device.name, variables, self.runtime_latch, self.log, timestamp=now
                )
                emit(record)
                self.log.debug("%s: emitted %d fields", device.name, len(record.fields))

        self.log.info(
            "Polled %d UPS device(s) from %s:%s", len(devices), self.cfg.server, self.cfg.port
        )
        return len(devices)
