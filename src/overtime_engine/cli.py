"""Overtime engine Command Line Interface.

Provides operational tools for:
- Schema creation
- Seeding and cloning tariff years
- Holiday calendar maintenance
- Approver assignment seeding
- KPI rollup refresh and comparison

Usage:
    python -m overtime_engine.cli init-db
    python -m overtime_engine.cli seed-tariffs --year 2025
    python -m overtime_engine.cli clone-year --source 2025 --dest 2026 --actor admin-1
    python -m overtime_engine.cli add-holiday --date 2025-12-08 --name "Immaculate Conception"
    python -m overtime_engine.cli assign-approvers --owner tech-1 --hours-approver lead-1
    python -m overtime_engine.cli rollup --period 2025_06 --compare 2025_05
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable
from datetime import date
from decimal import Decimal
from typing import Any, Callable

from overtime_engine.calculators.aggregation import format_variation
from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.calculators.tariff_registry import TariffRegistry
from overtime_engine.calculators.types import RateCode
from overtime_engine.clock import Clock, SystemClock
from overtime_engine.config import get_settings
from overtime_engine.database import create_all, dispose_db, init_db
from overtime_engine.domain.rollups import Period
from overtime_engine.exceptions import EngineError
from overtime_engine.services.permissions import Role
from overtime_engine.services.rollup_service import RollupService
from overtime_engine.store.base import ApproverAssignment
from overtime_engine.store.sql import SqlStore

logger = logging.getLogger(__name__)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_period(s: str) -> Period:
    try:
        return Period.parse(s)
    except EngineError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


class EngineCli:
    """Overtime engine Command Line Interface.

    ``store`` and ``clock`` are injectable; without a store every command
    runs against the database named by ``DATABASE_URL``.
    """

    def __init__(self, store: Any | None = None, clock: Clock | None = None) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m overtime_engine.cli",
            description="Overtime engine operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        seed = subparsers.add_parser(
            "seed-tariffs",
            help="Write the default tariff set into an empty year",
        )
        seed.add_argument("--year", type=int, required=True, help="Tariff year")

        clone = subparsers.add_parser(
            "clone-year",
            help="Copy a year's tariff table into an empty year",
        )
        clone.add_argument("--source", type=int, required=True, help="Source year")
        clone.add_argument("--dest", type=int, required=True, help="Destination year")
        clone.add_argument("--actor", type=str, default="cli", help="Actor recorded in the log")

        tariff = subparsers.add_parser("set-tariff", help="Set one tariff amount")
        tariff.add_argument("--year", type=int, required=True)
        tariff.add_argument(
            "--rate-code",
            type=RateCode,
            required=True,
            choices=list(RateCode),
            metavar="{" + ",".join(c.value for c in RateCode) + "}",
        )
        tariff.add_argument("--amount", type=Decimal, required=True)
        tariff.add_argument("--user", type=str, help="Write a per-user override instead")

        holiday = subparsers.add_parser("add-holiday", help="Add a holiday calendar date")
        holiday.add_argument("--date", type=parse_date, required=True, help="YYYY-MM-DD")
        holiday.add_argument("--name", type=str, required=True)
        holiday.add_argument(
            "--scope",
            type=HolidayScope,
            default=HolidayScope.NATIONAL,
            choices=list(HolidayScope),
            metavar="{national,regional,local}",
        )
        holiday.add_argument("--locality", type=str, help="Locality of a local holiday")

        assign = subparsers.add_parser(
            "assign-approvers",
            help="Bind an owner to their hours and expense approvers",
        )
        assign.add_argument("--owner", type=str, required=True)
        assign.add_argument(
            "--role",
            type=str,
            default=Role.TECHNICIAN.value,
            choices=[r.value for r in Role],
        )
        assign.add_argument("--hours-approver", type=str)
        assign.add_argument("--expense-approver", type=str)
        assign.add_argument("--locality", type=str)

        rollup = subparsers.add_parser("rollup", help="Refresh the KPI rollup of a period")
        rollup.add_argument(
            "--period",
            type=parse_period,
            required=True,
            help="YYYY or YYYY_MM",
        )
        rollup.add_argument(
            "--compare",
            type=parse_period,
            help="Baseline period to compare against",
        )

        evolution = subparsers.add_parser("evolution", help="Monthly totals of a year")
        evolution.add_argument("--year", type=int, required=True)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[[Any, argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "seed-tariffs": self._cmd_seed_tariffs,
            "clone-year": self._cmd_clone_year,
            "set-tariff": self._cmd_set_tariff,
            "add-holiday": self._cmd_add_holiday,
            "assign-approvers": self._cmd_assign_approvers,
            "rollup": self._cmd_rollup,
            "evolution": self._cmd_evolution,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._run_with_store(handler, parsed))
        except EngineError as e:
            print(f"Error [{e.code}]: {e}", file=sys.stderr)
            return 1

    async def _run_with_store(
        self,
        handler: Callable[[Any, argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        if self.store is not None:
            return await handler(self.store, args)

        engine, session_factory = init_db()
        try:
            await create_all(engine)
            return await handler(SqlStore(session_factory), args)
        finally:
            await dispose_db()

    def _registry(self, store: Any) -> TariffRegistry:
        return TariffRegistry(store, self.clock)

    async def _cmd_init_db(self, store: Any, args: argparse.Namespace) -> int:
        """Tables are created when the store opens."""
        print(f"Database ready: {get_settings().database_url if self.store is None else 'in-memory'}")
        return 0

    async def _cmd_seed_tariffs(self, store: Any, args: argparse.Namespace) -> int:
        result = await self._registry(store).seed_defaults(args.year)
        if result.cloned:
            print(f"Seeded {result.rows} default tariffs for {args.year}")
        else:
            print(f"Tariffs for {args.year} already exist; nothing written")
        return 0

    async def _cmd_clone_year(self, store: Any, args: argparse.Namespace) -> int:
        result = await self._registry(store).clone_year(args.source, args.dest, args.actor)
        if result.cloned:
            print(f"Cloned {result.rows} tariffs from {args.source} to {args.dest}")
        else:
            print(f"Tariffs for {args.dest} already exist; nothing cloned")
        return 0

    async def _cmd_set_tariff(self, store: Any, args: argparse.Namespace) -> int:
        rate = await self._registry(store).set_tariff(
            args.year, args.rate_code, args.amount, user_id=args.user
        )
        target = f" for {rate.user_id}" if rate.user_id else ""
        print(f"{rate.year} {rate.rate_code.value}{target}: {rate.amount}/{rate.unit.value}")
        return 0

    async def _cmd_add_holiday(self, store: Any, args: argparse.Namespace) -> int:
        if args.scope == HolidayScope.LOCAL and not args.locality:
            print("A local holiday requires --locality", file=sys.stderr)
            return 1
        holiday = Holiday(
            holiday_date=args.date,
            name=args.name,
            scope=args.scope,
            locality=args.locality,
        )
        await store.add_holiday(holiday)
        print(f"Added holiday {holiday.holiday_date.isoformat()} ({holiday.name})")
        return 0

    async def _cmd_assign_approvers(self, store: Any, args: argparse.Namespace) -> int:
        assignment = ApproverAssignment(
            owner_id=args.owner,
            role=args.role,
            hours_approver_id=args.hours_approver,
            expense_approver_id=args.expense_approver,
            locality=args.locality,
        )
        await store.set_assignment(assignment)
        print(
            f"{args.owner}: hours -> {args.hours_approver or '-'}, "
            f"expenses -> {args.expense_approver or '-'}"
        )
        return 0

    async def _cmd_rollup(self, store: Any, args: argparse.Namespace) -> int:
        service = RollupService(entries=store, rollups=store)
        rollup = await service.refresh_rollup(args.period)

        output: dict[str, Any] = {
            "period": rollup.period,
            "entry_count": rollup.entry_count,
            "total_hours": str(rollup.total_hours),
            "hours_amount": str(rollup.hours_amount),
            "expense_amount": str(rollup.expense_amount),
            "grand_total": str(rollup.grand_total),
            "average_cost_per_hour": str(rollup.average_cost_per_hour),
            "holiday_hours_share": str(rollup.holiday_hours_share),
        }
        if args.compare is not None:
            variations = await service.compare(args.period, args.compare)
            output["baseline"] = args.compare.key
            output["variations"] = {k: format_variation(v) for k, v in variations.items()}

        print(json.dumps(output, indent=2))
        return 0

    async def _cmd_evolution(self, store: Any, args: argparse.Namespace) -> int:
        service = RollupService(entries=store, rollups=store)
        for month in await service.monthly_evolution(args.year):
            print(
                f"{month.period}  hours {month.hours_amount:>12}  "
                f"expenses {month.expense_amount:>12}  total {month.grand_total:>12}"
            )
        return 0


def main() -> int:
    """CLI entry point."""
    logging.basicConfig(level=get_settings().log_level)
    cli = EngineCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
