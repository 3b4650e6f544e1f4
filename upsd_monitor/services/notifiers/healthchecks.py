# upsd_monitor/services/notifiers/healthchecks.py

from __future__ import annotations

import urllib.error
import urllib.parse
import urllib.request

from upsd_monitor.config import HealthchecksConfig


class HealthchecksNotifier:
    """Lightweight Healthchecks.io client with optional messages."""

    def __init__(self, cfg: HealthchecksConfig, log):
        self.cfg = cfg
        self.log = log
        self._base_url = (cfg.ping_url or "").rstrip("/")
        self._enabled = bool(cfg.enabled and self._base_url)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------
    def _build_url(self, suffix: str, message: str) -> str:
        url = f"{self._base_url}{suffix}" if suffix else self._base_url

        parsed = list(urllib.parse.urlparse(url))
        query = urllib.parse.parse_qs(parsed[4])
        if message:
            query["msg"] = [message[:200]]
        parsed[4] = urllib.parse.urlencode(query, doseq=True)
        return urllib.parse.urlunparse(parsed)

    def _hit(self, suffix: str = "", message: str = "") -> bool:
        if not self._enabled:
            self.log.debug("[Healthchecks] Disabled; skipping ping %s", suffix)
            return False

        try:
            urllib.request.urlopen(self._build_url(suffix, message), timeout=10)
            self.log.debug("[Healthchecks] Ping sent to %s", suffix or "/")
            return True
        except (urllib.error.URLError, TimeoutError) as exc:
            self.log.warning("[Healthchecks] Ping failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    def ping_success(self, message: str = "") -> bool:
        return self._hit("", message)

    def ping_failure(self, message: str = "") -> bool:
        return self._hit("/fail", message)
