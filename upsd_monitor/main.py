# upsd_monitor/main.py

import logging
import sys
import time

from .cli import build_parser
from .config import SAMPLE_CONFIG, Config
from .logging import ConsoleLog

from .services.collector import GatherError, UpsdCollector
from .services.influx_writer import InfluxWriter
from .services.notifiers.healthchecks import HealthchecksNotifier
from .services.output_formatter import MetricBuffer, emit_human, emit_json, emit_line_protocol


EMITTERS = {
    "human": emit_human,
    "json": emit_json,
    "line": emit_line_protocol,
}


def run_cycle(collector, writer, healthchecks, log, *, output_format="human", quiet=False) -> bool:
    """One poll cycle plus outputs. Returns False when the cycle failed."""
    buffer = MetricBuffer()
    try:
        collector.gather(buffer)
    except GatherError as exc:
        log.error("Poll cycle failed: %s", exc)
        healthchecks.ping_failure(str(exc))
        return False

    if not quiet:
        EMITTERS[output_format](buffer.records)

    if writer.enabled:
        writer.write(buffer.records)

    healthchecks.ping_success(f"{len(buffer)} ups polled")
    return True


def run_watch(collector, writer, healthchecks, log, *, interval, count=None, output_format="human", quiet=False) -> int:
    failures = 0
    cycles = 0
    while count is None or cycles < count:
        started = time.monotonic()
        if not run_cycle(collector, writer, healthchecks, log, output_format=output_format, quiet=quiet):
            failures += 1
        cycles += 1
        if count is not None and cycles >= count:
            break
        time.sleep(max(0.0, interval - (time.monotonic() - started)))
    log.info("Watch finished: %d cycle(s), %d failed", cycles, failures)
    return failures


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "sample-config":
        print(SAMPLE_CONFIG, end="")
        return 0

    app_cfg = Config.load(args.config)
    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    log = console_logger.setup()
    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.INFO)

    collector = UpsdCollector(app_cfg.upsd, log)
    writer = InfluxWriter(app_cfg.influx, log)
    healthchecks = HealthchecksNotifier(app_cfg.healthchecks, log)

    if args.command == "gather":
        ok = run_cycle(
            collector, writer, healthchecks, log,
            output_format=args.format, quiet=args.quiet,
        )
        return 0 if ok else 1

    if args.command == "watch":
        interval = args.interval if args.interval is not None else app_cfg.schedule.interval
        log.info("Polling %s:%s every %.1fs", app_cfg.upsd.server, app_cfg.upsd.port, interval)
        try:
            run_watch(
                collector, writer, healthchecks, log,
                interval=interval, count=args.count,
                output_format=args.format, quiet=args.quiet,
            )
        except KeyboardInterrupt:
            log.info("Interrupted; stopping.")
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
