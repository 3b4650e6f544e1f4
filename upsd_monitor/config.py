# upsd_monitor/config.py
from dataclasses import dataclass, field
from pathlib import Path
import configparser
import re


DEFAULT_SERVER = "127.0.0.1"
DEFAULT_PORT = 3493
DEFAULT_TIMEOUT_S = 10.0

SAMPLE_CONFIG = """\
[upsd]
## A running NUT server to connect to.
# server = 127.0.0.1
# port = 3493
# username = user
# password = password
## Timeout for dialing server.
# connection_timeout = 10s
## Read/write operation timeout.
# op_timeout = 10s

[schedule]
## Delay between poll cycles for the "watch" command.
# interval = 10s

[influx]
# enabled = false
# url = http://127.0.0.1:8086
# database = telegraf
# token =
# timeout = 5s

[healthchecks]
# enabled = false
# ping_url = https://hc-ping.com/<uuid>

[logging]
# console_level = INFO
# console_quiet = false
# debug_modules = upsd_monitor.services.collector
"""


@dataclass(frozen=True)
class ServerConfig:
    server: str = DEFAULT_SERVER
    port: int = DEFAULT_PORT
    username: str = ""
    password: str = ""
    connection_timeout: float = DEFAULT_TIMEOUT_S
    op_timeout: float = DEFAULT_TIMEOUT_S

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class ScheduleConfig:
    interval: float = 10.0


@dataclass
class InfluxConfig:
    enabled: bool = False
    url: str | None = None
    database: str = "telegraf"
    token: str | None = None
    timeout: float = 5.0


@dataclass
class HealthchecksConfig:
    ping_url: str | None = None
    enabled: bool = False


@dataclass
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: list[str] = field(default_factory=list)


@dataclass
class AppConfig:
    upsd: ServerConfig
    schedule: ScheduleConfig
    influx: InfluxConfig
    healthchecks: HealthchecksConfig
    logging: LoggingConfig


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(raw: str, key: str = "duration") -> float:
    """
    Parse "10s", "500ms", "1m30s" or a bare number of seconds into seconds.
    """
    text = raw.strip().lower()
    if not text:
        raise ValueError(f"Empty value for {key}")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"Invalid duration for {key}: {raw!r}")
    return total


class Config:
    def __init__(self, path: str):
        self.path = Path(path)
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",))
        read = self.parser.read(self.path)
        if not read:
            raise FileNotFoundError(f"Config file not found: {self.path}")

    @classmethod
    def load(cls, path: str) -> AppConfig:
        cfg = cls(path)

        p = cfg.parser

        def _as_bool(value: str) -> bool:
            return value.strip().lower() == "true"

        def _maybe_str(raw: str | None) -> str | None:
            if raw is None:
                return None
            raw = raw.strip()
            return raw or None

        # --- upsd ---
        server_kwargs = {}
        if "upsd" in p:
            upsd_sec = p["upsd"]
            if (server := _maybe_str(upsd_sec.get("server"))) is not None:
                server_kwargs["server"] = server
            if "port" in upsd_sec:
                server_kwargs["port"] = int(upsd_sec["port"])
            if "username" in upsd_sec:
                server_kwargs["username"] = upsd_sec["username"].strip()
            if "password" in upsd_sec:
                server_kwargs["password"] = upsd_sec["password"].strip()
            if "connection_timeout" in upsd_sec:
                server_kwargs["connection_timeout"] = parse_duration(
                    upsd_sec["connection_timeout"], "upsd.connection_timeout"
                )
            if "op_timeout" in upsd_sec:
                server_kwargs["op_timeout"] = parse_duration(
                    upsd_sec["op_timeout"], "upsd.op_timeout"
                )
        server_cfg = ServerConfig(**server_kwargs)

        # --- Schedule ---
        schedule_kwargs = {}
        if "schedule" in p and "interval" in p["schedule"]:
            schedule_kwargs["interval"] = parse_duration(
                p["schedule"]["interval"], "schedule.interval"
            )
        schedule_cfg = ScheduleConfig(**schedule_kwargs)

        # --- Influx ---
        influx_kwargs = {}
        if "influx" in p:
            influx_sec = p["influx"]
            if "enabled" in influx_sec:
                influx_kwargs["enabled"] = _as_bool(influx_sec["enabled"])
            if "url" in influx_sec:
                influx_kwargs["url"] = _maybe_str(influx_sec["url"])
            if "database" in influx_sec:
                influx_kwargs["database"] = influx_sec["database"].strip()
            if "token" in influx_sec:
                influx_kwargs["token"] = _maybe_str(influx_sec["token"])
            if "timeout" in influx_sec:
                influx_kwargs["timeout"] = parse_duration(influx_sec["timeout"], "influx.timeout")
        influx_cfg = InfluxConfig(**influx_kwargs)

        # --- Healthchecks ---
        healthchecks_kwargs = {}
        if "healthchecks" in p:
            hc_sec = p["healthchecks"]
            if "ping_url" in hc_sec:
                healthchecks_kwargs["ping_url"] = _maybe_str(hc_sec["ping_url"])
            if "enabled" in hc_sec:
                healthchecks_kwargs["enabled"] = _as_bool(hc_sec["enabled"])
        healthchecks_cfg = HealthchecksConfig(**healthchecks_kwargs)

        # --- Logging ---
        logging_kwargs = {}
        if "logging" in p:
            logging_sec = p["logging"]
            if "console_level" in logging_sec:
                logging_kwargs["console_level"] = logging_sec["console_level"]
            if "console_quiet" in logging_sec:
                logging_kwargs["console_quiet"] = _as_bool(logging_sec["console_quiet"])
            if "debug_modules" in logging_sec:
                raw = logging_sec["debug_modules"]
                logging_kwargs["debug_modules"] = [x.strip() for x in raw.split(",") if x.strip()]
        logging_cfg = LoggingConfig(**logging_kwargs)

        return AppConfig(
            upsd=server_cfg,
            schedule=schedule_cfg,
            influx=influx_cfg,
            healthchecks=healthchecks_cfg,
            logging=logging_cfg,
        )
