#!/usr/bin/env python3
"""
No-show sweep
Mark SCHEDULED sessions whose start time has passed as NO_SHOW.

Meant to be run on a schedule (cron, EventBridge, ...) against the
configured session store.
"""

import argparse
import asyncio
import logging
from datetime import datetime
from typing import Optional, Sequence

from ..domain.entities import NoShowSweepResult, as_utc
from .config import Settings, settings
from .providers import build_audit_log, build_lifecycle_service, build_session_store

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mark overdue scheduled sessions as no-shows")
    parser.add_argument("--backend", choices=["local", "dynamodb"], help="Session store backend")
    parser.add_argument("--table", help="Sessions table name (DynamoDB backend)")
    parser.add_argument("--region", help="AWS region (DynamoDB backend)")
    parser.add_argument("--grace-minutes", type=int, help="Minutes after scheduled start before a session is a no-show")
    parser.add_argument("--now", type=datetime.fromisoformat, help="Reference time in ISO 8601 (default: current UTC time)")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: Settings = settings) -> Settings:
    overrides = {
        "session_store_backend": args.backend,
        "sessions_table_name": args.table,
        "aws_region": args.region,
        "no_show_grace_minutes": args.grace_minutes,
    }
    return base.model_copy(update={key: value for key, value in overrides.items() if value is not None})


async def run_sweep(run_settings: Settings, now: Optional[datetime] = None) -> NoShowSweepResult:
    session_store = build_session_store(run_settings)
    audit_log = build_audit_log(run_settings)
    service = build_lifecycle_service(run_settings, session_store, audit_log)
    return await service.sweep_no_shows(now=as_utc(now))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    run_settings = settings_from_args(args)

    logging.basicConfig(
        level=run_settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger.info(f"Running no-show sweep against the {run_settings.session_store_backend} store")

    result = asyncio.run(run_sweep(run_settings, now=args.now))
    print(f"Marked {len(result.marked)} session(s) as NO_SHOW, skipped {len(result.skipped)}")
    for session_id in result.marked:
        print(f"  - {session_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
