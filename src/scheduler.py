"""Reclamation runner for the vending domain.

Runs the stale-order expiry job on an interval until interrupted.

Usage:
    python src/scheduler.py                      # Policy interval and timeout
    python src/scheduler.py --interval 1         # Every minute
    python src/scheduler.py --once               # Single run, then exit
"""

import argparse
import asyncio

import structlog

logger = structlog.get_logger(__name__)


def _get_domain():
    from vending.domain import vending

    vending.init()
    return vending


async def run(interval=None, timeout=None):
    from vending.maintenance.scheduler import ReclamationScheduler

    scheduler = ReclamationScheduler(_get_domain(), interval_minutes=interval, timeout_minutes=timeout)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()


def main():
    parser = argparse.ArgumentParser(description="Card vending reclamation runner")
    parser.add_argument("--interval", type=int, help="Minutes between runs (default: policy)")
    parser.add_argument("--timeout", type=int, help="Pending order timeout in minutes (default: policy)")
    parser.add_argument("--once", action="store_true", help="Run a single reclamation pass and exit")
    args = parser.parse_args()

    if args.once:
        from vending.maintenance.scheduler import ReclamationScheduler

        ReclamationScheduler(_get_domain(), timeout_minutes=args.timeout).run_once()
        return

    try:
        asyncio.run(run(args.interval, args.timeout))
    except KeyboardInterrupt:
        logger.info("Reclamation runner interrupted")


if __name__ == "__main__":
    main()
