"""
vSphere VM Metrics - Main Entry Point

Command-line interface for one metrics collection pass.

Author: uldyssian-sh
License: MIT
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, List, Optional

import structlog

from . import __version__
from .config import DEFAULT_METRIC, MonitorConfig, load_config
from .exceptions import VMMetricsError
from .logging_config import setup_logging
from .pipeline import run

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_TIMEOUT = 124
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vsphere-vm-metrics",
        description="Report the latest performance counter value for every vCenter VM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use VCENTER_HOST, VCENTER_USERNAME and VCENTER_PASSWORD
  python -m vsphere_vm_metrics

  # Lab vCenter with a self-signed certificate
  python -m vsphere_vm_metrics --host vcsa.lab.local --insecure

  # Another counter, eight queries in flight
  python -m vsphere_vm_metrics --metric mem.usage.average --concurrency 8

  # Settings from a file, JSON logs
  python -m vsphere_vm_metrics --config metrics.yaml --log-format json
        """
    )

    parser.add_argument("--config", "-c", help="YAML configuration file", default=None)
    parser.add_argument("--host", help="vCenter host name or address")
    parser.add_argument("--username", "-u", help="vCenter user")
    parser.add_argument("--port", type=int, help="vCenter HTTPS port")
    parser.add_argument(
        "--insecure", action="store_true", default=None,
        help="Skip TLS certificate verification"
    )
    parser.add_argument(
        "--metric", "-m",
        help=f"Counter name as group.counter.rollup (default: {DEFAULT_METRIC})"
    )
    parser.add_argument("--interval", type=int, dest="interval_seconds",
                        help="Sampling interval in seconds")
    parser.add_argument("--max-samples", type=int, dest="max_samples",
                        help="Samples to request per VM")
    parser.add_argument("--concurrency", type=int, help="Queries in flight at once")
    parser.add_argument("--run-timeout", type=float, dest="run_timeout",
                        help="Abort the whole run after this many seconds")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level"
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default="console",
        help="Log output format"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"vsphere-vm-metrics {__version__}"
    )

    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    names = ("host", "username", "port", "insecure", "metric", "interval_seconds",
             "max_samples", "concurrency", "run_timeout")
    return {name: getattr(args, name) for name in names if getattr(args, name) is not None}


async def _run_with_timeout(config: MonitorConfig) -> None:
    if config.run_timeout:
        await asyncio.wait_for(run(config), config.run_timeout)
    else:
        await run(config)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_format)

    try:
        config = load_config(args.config, _overrides(args))
        asyncio.run(_run_with_timeout(config))
    except VMMetricsError as e:
        logger.error("Run aborted", step=e.step, error=str(e))
        return EXIT_FATAL
    except asyncio.TimeoutError:
        logger.error("Run aborted", step="run", error=f"Timed out after {config.run_timeout}s")
        return EXIT_TIMEOUT
    except KeyboardInterrupt:
        logger.warning("Run cancelled by user")
        return EXIT_INTERRUPTED

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
