import argparse
from dataclasses import replace
from datetime import date
from typing import Optional

from app.catalog.templates import default_templates
from app.core.db import SessionLocal, init_db, settings
from app.core.logging import configure_logging_if_needed
from app.maintenance.orchestrator import MaintenanceOrchestrator


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Prune expired runs and seed the rolling run catalog once")
    p.add_argument("--today", type=date.fromisoformat, help="YYYY-MM-DD (default: today in REFERENCE_TIMEZONE)")
    p.add_argument("--window-days", type=int, default=settings.window.window_size_days)
    p.add_argument(
        "--retention-offset-days",
        type=int,
        default=settings.window.retention_cutoff_offset_days,
        help="Runs departing on or before today minus this many days are deleted",
    )
    p.add_argument("--init-db", action="store_true", help="Create missing tables first")
    args = p.parse_args(argv)

    if args.window_days < 1:
        p.error("--window-days must be >= 1")
    if args.retention_offset_days < 0:
        p.error("--retention-offset-days must be >= 0")

    configure_logging_if_needed(settings.log_level)
    if args.init_db:
        init_db()

    window = replace(
        settings.window,
        window_size_days=args.window_days,
        retention_cutoff_offset_days=args.retention_offset_days,
    )
    orchestrator = MaintenanceOrchestrator(SessionLocal, window, default_templates(settings.catalog))

    result = orchestrator.run_pass(today=args.today)
    if result is None:
        print({"status": "aborted"})
        return 1

    print(result.as_dict())
    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
