# tests/test_influx_writer.py

from datetime import datetime, timezone

import requests

from upsd_monitor.config import InfluxConfig
from upsd_monitor.models.metric import MetricRecord
from upsd_monitor.services.influx_writer import InfluxWriter
from upsd_monitor.logging import get_logger


LOG = get_logger("influx-test")


class FakeResponse:
    def __init__(self, status_code=204, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, status_code=204, exc=None):
        self.status_code = status_code
        self.exc = exc
        self.calls = []

    def post(self, url, params=None, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "data": data, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.status_code, "oops")


def _cfg(**overrides):
    cfg = InfluxConfig(enabled=True, url="http://influx.test:8086/", database="ups", timeout=3.0)
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


def _records():
    return [
        MetricRecord(
            measurement="upsd",
            tags={"ups_name": "rack"},
            fields={"status_flags": 8},
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    ]


def test_disabled_writer_short_circuits():
    session = FakeSession()
    writer = InfluxWriter(_cfg(enabled=False), LOG, session=session)
    assert writer.write(_records()) is False
    assert session.calls == []


def test_write_posts_line_protocol():
    session = FakeSession()
    writer = InfluxWriter(_cfg(token="abc"), LOG, session=session)

    assert writer.write(_records()) is True

    call = session.calls[0]
    assert call["url"] == "http://influx.test:8086/write"
    assert call["params"] == {"db": "ups", "precision": "ns"}
    assert call["data"] == b"upsd,ups_name=rack status_flags=8i 1704067200000000000"
    assert call["headers"]["Authorization"] == "Token abc"
    assert call["timeout"] == 3.0


def test_http_error_is_reported_not_raised():
    writer = InfluxWriter(_cfg(), LOG, session=FakeSession(status_code=500))
    assert writer.write(_records()) is False


def test_network_error_is_reported_not_raised():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    writer = InfluxWriter(_cfg(), LOG, session=session)
    assert writer.write(_records()) is False


def test_empty_batch_skips_request():
    session = FakeSession()
    assert InfluxWriter(_cfg(), LOG, session=session).write([]) is True
    assert session.calls == []
