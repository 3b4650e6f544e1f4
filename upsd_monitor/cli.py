# upsd_monitor/cli.py
import argparse

def build_parser():
    parser = argparse.ArgumentParser(
        prog="upsd-monitor",
        description="Poll UPS devices from a Network UPS Tools server"
    )

    parser.add_argument(
        "--config",
        default="upsd_monitor.conf",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress stdout output (cron-friendly)"
    )

    parser.add_argument(
        "--format",
        choices=("human", "json", "line"),
        default="human",
        help="Output format for polled metrics"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # One-shot poll
    sub.add_parser("gather", help="Run a single poll cycle")

    # Repeated polling
    cmd_watch = sub.add_parser(
        "watch",
        help="Poll repeatedly on a fixed interval",
    )
    cmd_watch.add_argument(
        "--interval",
        type=float,
        help="Seconds between cycles (overrides [schedule] interval)",
    )
    cmd_watch.add_argument(
        "--count",
        type=int,
        help="Stop after this many cycles",
    )

    sub.add_parser("sample-config", help="Print a sample configuration file")

    return parser
