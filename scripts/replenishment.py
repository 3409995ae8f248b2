#!/usr/bin/env python3
"""
Replenishment pipeline command line.

Runs one pipeline operation against the configured database and prints
the result as JSON.  ``scheduler`` runs the polling scheduler in the
foreground until interrupted.

Usage:
  python3 scripts/replenishment.py [--config FILE] init-db
  python3 scripts/replenishment.py [--config FILE] reorder-check
  python3 scripts/replenishment.py [--config FILE] expiry-check
  python3 scripts/replenishment.py [--config FILE] escalate
  python3 scripts/replenishment.py [--config FILE] dashboard
  python3 scripts/replenishment.py [--config FILE] po-status PO_ID
  python3 scripts/replenishment.py [--config FILE] scheduler

The database URL comes from the config file, or DATABASE_URL when set.
"""

import argparse
import json
import signal
import sys
import threading
from dataclasses import asdict
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

COMMANDS = (
    "init-db",
    "reorder-check",
    "expiry-check",
    "escalate",
    "dashboard",
    "po-status",
    "scheduler",
)


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Reorder and procurement pipeline")
    p.add_argument("--config", type=Path, default=None, help="Deployment YAML overlaying the packaged defaults")
    p.add_argument("--echo", action="store_true", help="Echo SQL")
    p.add_argument("command", choices=COMMANDS)
    p.add_argument("po_id", nargs="?", help="Purchase order id (po-status only)")
    return p.parse_args(argv)


def _print(result) -> None:
    print(json.dumps(asdict(result), indent=2, default=str))


def _run_scheduler(config) -> int:
    from supply_kernel.db.engine import get_session, get_session_factory
    from supply_services import build_scheduler, install_schedules

    scheduler = build_scheduler(get_session_factory(), config)
    session = get_session()
    try:
        install_schedules(scheduler, session, config)
    finally:
        session.close()

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    scheduler.start()
    print(f"  Scheduler running every {config.scheduler.tick_interval_seconds}s (Ctrl-C to stop)")
    stop.wait()
    scheduler.stop()
    return 0


def main(argv=None) -> int:
    args = _parse_args(argv)

    from supply_config import load_pipeline_config
    from supply_kernel.db.engine import get_session, init_engine_from_url
    from supply_kernel.exceptions import SupplyKernelError
    from supply_modules._orm_registry import create_all_tables
    from supply_services import ReplenishmentPipeline

    try:
        config = load_pipeline_config(args.config)
    except (FileNotFoundError, SupplyKernelError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    db = config.database
    init_engine_from_url(
        db.url,
        echo=args.echo or db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )

    if args.command == "init-db":
        create_all_tables()
        print("  Tables created.")
        return 0
    if args.command == "scheduler":
        return _run_scheduler(config)

    session = get_session()
    try:
        pipeline = ReplenishmentPipeline(session, config=config)
        if args.command == "reorder-check":
            _print(pipeline.evaluate_reorder_needs())
        elif args.command == "expiry-check":
            _print(pipeline.run_expiry_check())
        elif args.command == "escalate":
            _print(pipeline.escalate_stale_alerts())
        elif args.command == "dashboard":
            _print(pipeline.dashboard())
        elif args.command == "po-status":
            if not args.po_id:
                print("  ERROR: po-status needs a PO_ID", file=sys.stderr)
                return 2
            _print(pipeline.get_purchase_order_status(UUID(args.po_id)))
    except SupplyKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
