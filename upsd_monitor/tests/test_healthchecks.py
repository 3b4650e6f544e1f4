# tests/test_healthchecks.py

import urllib.error
import urllib.parse

from upsd_monitor.config import HealthchecksConfig
from upsd_monitor.services.notifiers import healthchecks as hc_module
from upsd_monitor.services.notifiers.healthchecks import HealthchecksNotifier
from upsd_monitor.logging import get_logger


LOG = get_logger("healthchecks-test")


def test_disabled_notifier_does_nothing(monkeypatch):
    calls = []
    monkeypatch.setattr(hc_module.urllib.request, "urlopen", lambda *a, **kw: calls.append(a))
    notifier = HealthchecksNotifier(HealthchecksConfig(ping_url="https://hc.test/abc", enabled=False), LOG)
    assert notifier.ping_success("ok") is False
    assert calls == []


def test_failure_ping_targets_fail_endpoint(monkeypatch):
    calls = []
    monkeypatch.setattr(hc_module.urllib.request, "urlopen", lambda url, timeout=None: calls.append(url))
    notifier = HealthchecksNotifier(HealthchecksConfig(ping_url="https://hc.test/abc/", enabled=True), LOG)

    assert notifier.ping_failure("connect: refused") is True

    parsed = urllib.parse.urlparse(calls[0])
    assert parsed.path == "/abc/fail"
    assert urllib.parse.parse_qs(parsed.query)["msg"] == ["connect: refused"]


def test_network_error_is_swallowed(monkeypatch):
    def boom(url, timeout=None):
        raise urllib.error.URLError("down")

    monkeypatch.setattr(hc_module.urllib.request, "urlopen", boom)
    notifier = HealthchecksNotifier(HealthchecksConfig(ping_url="https://hc.test/abc", enabled=True), LOG)
    assert notifier.ping_success() is False
