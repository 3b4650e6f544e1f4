# tests/test_collector.py

import pytest

from upsd_monitor.config import ServerConfig
from upsd_monitor.services.collector import GatherError, UpsdCollector
from upsd_monitor.services.nut_client import UpsdAuthError, UpsdProtocolError
from upsd_monitor.services.output_formatter import MetricBuffer
from upsd_monitor.tests.fake_client import SMART_UPS, FakeNutClient, RecordingLog, unreachable


def _collector(fake, **cfg):
    return UpsdCollector(ServerConfig(**cfg), RecordingLog(), client_factory=fake)


def test_single_cycle_emits_one_record_per_device_in_server_order():
    fake = FakeNutClient({
        "zeta": dict(SMART_UPS, **{"ups.status": "OB DISCHRG"}),
        "alpha": SMART_UPS,
    })
    buffer = MetricBuffer()

    count = _collector(fake).gather(buffer)

    assert count == 2
    assert [r.tags["ups_name"] for r in buffer] == ["zeta", "alpha"]
    assert buffer.records[0].fields["status_flags"] == 16
    assert buffer.records[1].fields["time_left_ns"] == 120_000_000_000
    assert fake.disconnects == 1


def test_records_share_cycle_timestamp():
    fake = FakeNutClient({"a": SMART_UPS, "b": SMART_UPS})
    buffer = MetricBuffer()
    _collector(fake).gather(buffer)
    assert buffer.records[0].timestamp == buffer.records[1].timestamp


def test_callable_sink():
    seen = []
    _collector(FakeNutClient({"a": SMART_UPS})).gather(seen.append)
    assert len(seen) == 1


def test_connect_failure_is_one_error_and_no_records():
    fake = unreachable()
    buffer = MetricBuffer()

    with pytest.raises(GatherError) as err:
        _collector(fake).gather(buffer)

    assert err.value.phase == "connect"
    assert str(err.value).startswith("connect: ")
    assert len(buffer) == 0
    assert fake.disconnects == 0
    assert ("list",) not in fake.calls


def test_auth_failure_aborts_cycle():
    fake = FakeNutClient({"a": SMART_UPS}, connect_exc=UpsdAuthError("ERR ACCESS-DENIED"))
    buffer = MetricBuffer()

    with pytest.raises(GatherError) as err:
        _collector(fake, username="monuser", password="secret").gather(buffer)

    assert err.value.phase == "auth"
    assert isinstance(err.value.__cause__, UpsdAuthError)
    assert len(buffer) == 0


def test_list_failure_still_disconnects():
    fake = FakeNutClient(list_exc=UpsdProtocolError("ERR DATA-STALE"))
    buffer = MetricBuffer()

    with pytest.raises(GatherError) as err:
        _collector(fake).gather(buffer)

    assert err.value.phase == "getupslist"
    assert "DATA-STALE" in str(err.value)
    assert len(buffer) == 0
    assert fake.disconnects == 1


def test_credentials_passed_only_when_both_set():
    fake = FakeNutClient({})
    _collector(fake, username="monuser").gather(MetricBuffer())
    assert fake.calls[0] == ("connect", None, None)

    fake = FakeNutClient({})
    _collector(fake, username="monuser", password="secret").gather(MetricBuffer())
    assert fake.calls[0] == ("connect", "monuser", "secret")


def test_client_built_from_config():
    fake = FakeNutClient({})
    _collector(fake, server="10.0.0.5", port=3500, connection_timeout=2.0, op_timeout=4.0).gather(MetricBuffer())
    assert fake.init_kwargs["host"] == "10.0.0.5"
    assert fake.init_kwargs["port"] == 3500
    assert fake.init_kwargs["connect_timeout"] == 2.0
    assert fake.init_kwargs["op_timeout"] == 4.0


def test_no_devices_is_a_successful_empty_cycle():
    fake = FakeNutClient({})
    buffer = MetricBuffer()
    assert _collector(fake).gather(buffer) == 0
    assert fake.disconnects == 1


def test_runtime_warning_fires_once_across_cycles():
    broken = dict(SMART_UPS, **{"battery.runtime": "unknown"})
    collector = _collector(FakeNutClient({"a": broken, "b": broken}))

    for _ in range(10):
        collector.gather(MetricBuffer())

    assert len(collector.log.messages["warning"]) == 1
    assert collector.runtime_latch.fired


def test_warning_latch_is_per_collector():
    broken = {"battery.runtime": 1.5}
    first = _collector(FakeNutClient({"a": broken}))
    second = _collector(FakeNutClient({"a": broken}))
    first.gather(MetricBuffer())
    second.gather(MetricBuffer())
    assert len(first.log.messages["warning"]) == 1
    assert len(second.log.messages["warning"]) == 1


def test_unsupported_sink():
    with pytest.raises(TypeError):
        _collector(FakeNutClient({})).gather(object())
