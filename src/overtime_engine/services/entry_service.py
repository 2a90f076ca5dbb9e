"""Entry service - creation, editing and lifecycle transitions of entries."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, assert_never

from overtime_engine.calculators.amounts import AmountCalculator
from overtime_engine.calculators.day_classifier import HolidayCalendar, classify
from overtime_engine.calculators.tariff_registry import TariffRegistry
from overtime_engine.calculators.types import DayType, RateCode, TariffSnapshot
from overtime_engine.domain.entries import AuditEntry, Entry, ExpenseEntry, TimeEntry
from overtime_engine.domain.expenses import (
    ExpenseDetails,
    HotelDetails,
    MileageDetails,
    PerDiemDetails,
    ReceiptDetails,
    details_from_dict,
)
from overtime_engine.exceptions import (
    EntryNotFoundError,
    PermissionDeniedError,
    TariffNotFoundError,
    ValidationError,
)
from overtime_engine.services.permissions import can_approve
from overtime_engine.services.state_machine import (
    Action,
    ActorKind,
    EntryState,
    EntryStateMachine,
    Transition,
)

if TYPE_CHECKING:
    from overtime_engine.clock import Clock
    from overtime_engine.store.base import (
        ApproverAssignment,
        EntryStore,
        HolidayStore,
        IdentityProvider,
        TariffStore,
    )

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 200


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an optional field that an update leaves untouched
UNSET: Any = _Unset()


def parse_details(data: dict[str, Any]) -> ExpenseDetails:
    """Parse tagged expense details, raising ValidationError when malformed."""
    try:
        return details_from_dict(data)
    except KeyError as e:
        raise ValidationError("details", f"missing field {e}") from None
    except (ValueError, ArithmeticError) as e:
        raise ValidationError("details", str(e)) from None


class EntryService:
    """Service for time and expense entries.

    Operations:
    - create_time_entry / create_expense_entry: new draft with advisory amount
    - update_time_entry / update_expense_entry: owner edits in draft/returned
    - delete_entry: owner hard-deletes a draft
    - transition: submit, approve, reject, return, resubmit

    Each write is a read-modify-write guarded by the entry version, so a
    concurrent writer surfaces as ConcurrentModificationError instead of a
    lost update.
    """

    def __init__(
        self,
        entries: EntryStore,
        tariffs: TariffStore,
        holidays: HolidayStore,
        identity: IdentityProvider,
        clock: Clock,
        max_kilometers: Decimal = Decimal("2000"),
        max_expense_amount: Decimal = Decimal("10000"),
        zero_fallback: bool = False,
    ):
        self.entries = entries
        self.tariffs = tariffs
        self.holidays = holidays
        self.identity = identity
        self.clock = clock
        self.max_kilometers = max_kilometers
        self.max_expense_amount = max_expense_amount
        self.zero_fallback = zero_fallback

    def registry(self) -> TariffRegistry:
        """Fresh registry; its cache lives for one request."""
        return TariffRegistry(self.tariffs, self.clock, self.zero_fallback)

    # ----- reads -----

    async def get_entry(self, entry_id: str) -> Entry:
        entry = await self.entries.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def list_entries(
        self,
        owner_id: str | None = None,
        state: EntryState | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Entry]:
        return await self.entries.find_entries(
            state=state, start=start, end=end, owner_id=owner_id
        )

    # ----- creation -----

    async def create_time_entry(
        self,
        owner_id: str,
        entry_date: date,
        start_time: str,
        end_time: str,
        project_id: str | None = None,
        description: str | None = None,
    ) -> TimeEntry:
        """Create a draft time entry with an advisory amount."""
        self._validate_description(description)
        hours = AmountCalculator.hours_between(start_time, end_time)

        entry = TimeEntry(
            entry_id=str(uuid.uuid4()),
            owner_id=owner_id,
            entry_date=entry_date,
            start_time=start_time,
            end_time=end_time,
            hours=hours,
            day_type=DayType.WORKDAY,
            rate_code=AmountCalculator.rate_code_for_day_type(DayType.WORKDAY),
            project_id=project_id,
            description=description,
        )
        entry = await self._price(entry, self.registry(), authoritative=False)

        version = await self.entries.insert_entry(entry)
        logger.info("Time entry %s created by %s (%s h)", entry.entry_id, owner_id, hours)
        return replace(entry, version=version)

    async def create_expense_entry(
        self,
        owner_id: str,
        entry_date: date,
        details: ExpenseDetails | dict[str, Any],
        project_id: str | None = None,
        description: str | None = None,
    ) -> ExpenseEntry:
        """Create a draft expense entry with an advisory amount."""
        self._validate_description(description)
        if isinstance(details, dict):
            details = parse_details(details)
        self._validate_details(details)

        entry = ExpenseEntry(
            entry_id=str(uuid.uuid4()),
            owner_id=owner_id,
            entry_date=entry_date,
            details=details,
            project_id=project_id,
            description=description,
        )
        entry = await self._price(entry, self.registry(), authoritative=False)

        version = await self.entries.insert_entry(entry)
        logger.info(
            "Expense entry %s (%s) created by %s",
            entry.entry_id,
            entry.category.value,
            owner_id,
        )
        return replace(entry, version=version)

    # ----- edits -----

    async def update_time_entry(
        self,
        entry_id: str,
        actor_id: str,
        entry_date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        project_id: str | None = UNSET,
        description: str | None = UNSET,
    ) -> TimeEntry:
        """Change fields of a draft or returned time entry.

        ``project_id`` and ``description`` may be cleared by passing None;
        leaving them out keeps the stored value.
        """
        entry = await self._load_for_edit(entry_id, actor_id, "edit")
        if not isinstance(entry, TimeEntry):
            raise ValidationError("entry_id", f"entry {entry_id} is not a time entry")

        changes: dict[str, Any] = {}
        if entry_date is not None:
            changes["entry_date"] = entry_date
        if start_time is not None:
            changes["start_time"] = start_time
        if end_time is not None:
            changes["end_time"] = end_time
        if project_id is not UNSET:
            changes["project_id"] = project_id
        if description is not UNSET:
            self._validate_description(description)
            changes["description"] = description

        updated = replace(entry, **changes)
        updated = replace(
            updated,
            hours=AmountCalculator.hours_between(updated.start_time, updated.end_time),
        )
        updated = await self._price(updated, self.registry(), authoritative=False)

        version = await self.entries.compare_and_swap(updated, entry.version)
        logger.info("Time entry %s edited by %s", entry_id, actor_id)
        return replace(updated, version=version)

    async def update_expense_entry(
        self,
        entry_id: str,
        actor_id: str,
        entry_date: date | None = None,
        details: ExpenseDetails | dict[str, Any] | None = None,
        project_id: str | None = UNSET,
        description: str | None = UNSET,
    ) -> ExpenseEntry:
        """Change fields of a draft or returned expense entry."""
        entry = await self._load_for_edit(entry_id, actor_id, "edit")
        if not isinstance(entry, ExpenseEntry):
            raise ValidationError("entry_id", f"entry {entry_id} is not an expense entry")

        changes: dict[str, Any] = {}
        if entry_date is not None:
            changes["entry_date"] = entry_date
        if details is not None:
            if isinstance(details, dict):
                details = parse_details(details)
            self._validate_details(details)
            changes["details"] = details
        if project_id is not UNSET:
            changes["project_id"] = project_id
        if description is not UNSET:
            self._validate_description(description)
            changes["description"] = description

        updated = replace(entry, **changes)
        updated = await self._price(updated, self.registry(), authoritative=False)

        version = await self.entries.compare_and_swap(updated, entry.version)
        logger.info("Expense entry %s edited by %s", entry_id, actor_id)
        return replace(updated, version=version)

    async def delete_entry(self, entry_id: str, actor_id: str) -> None:
        """Hard-delete a draft entry."""
        entry = await self._load_for_edit(entry_id, actor_id, "delete")
        await self.entries.delete_entry(entry_id, entry.version)
        logger.info("Entry %s deleted by %s", entry_id, actor_id)

    # ----- lifecycle -----

    async def transition(
        self,
        entry_id: str,
        action: Action | str,
        actor_id: str,
        actor_role: str,
        comment: str | None = None,
    ) -> Entry:
        """Apply a lifecycle action.

        Steps:
        1. Validate the edge and the mandatory comment (no change on failure)
        2. Authorize the actor against the owner or the bound approver
        3. On submit/resubmit, reclassify the day and recompute the amount
           with the tariff now in effect
        4. Append one audit entry and persist with compare-and-swap

        Raises:
            InvalidTransitionError, MissingCommentError, PermissionDeniedError,
            TariffNotFoundError, ConcurrentModificationError
        """
        action = Action.parse(action)
        entry = await self.get_entry(entry_id)

        transition = EntryStateMachine.validate(entry.state, action, comment, entry.entry_id)
        assignment = await self.identity.get_assignment(entry.owner_id)
        self._authorize(entry, transition, actor_id, actor_role, assignment)

        updated: Entry = entry
        if transition.recompute_amount:
            updated = await self._price(
                entry, self.registry(), authoritative=True, assignment=assignment
            )

        audit = AuditEntry(
            timestamp=self.clock.now(),
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            from_state=entry.state,
            to_state=transition.to_state,
            comment=comment.strip() if comment and comment.strip() else None,
        )
        updated = replace(
            updated,
            state=transition.to_state,
            history=entry.history + (audit,),
        )

        version = await self.entries.compare_and_swap(updated, entry.version)
        logger.info(
            "Entry %s: %s -> %s by %s (%s)",
            entry_id,
            entry.state.value,
            transition.to_state.value,
            actor_id,
            action.value,
        )
        return replace(updated, version=version)

    # ----- internals -----

    async def _load_for_edit(self, entry_id: str, actor_id: str, action: str) -> Entry:
        entry = await self.get_entry(entry_id)
        if entry.owner_id != actor_id:
            raise PermissionDeniedError(
                f"entry {entry_id}", action, actor_id, "only the owner may change an entry"
            )
        if action == "delete":
            EntryStateMachine.ensure_deletable(entry.state, entry_id)
        else:
            EntryStateMachine.ensure_editable(entry.state, entry_id)
        return entry

    def _authorize(
        self,
        entry: Entry,
        transition: Transition,
        actor_id: str,
        actor_role: str,
        assignment: ApproverAssignment | None,
    ) -> None:
        action = transition.action.value
        if transition.actor == ActorKind.OWNER:
            if actor_id != entry.owner_id:
                raise PermissionDeniedError(
                    f"entry {entry.entry_id}", action, actor_id, "only the owner may " + action
                )
            return

        allowed, reason = can_approve(
            actor_id, actor_role, entry.owner_id, entry.kind, assignment
        )
        if not allowed:
            raise PermissionDeniedError(f"entry {entry.entry_id}", action, actor_id, reason)

    async def _classify(self, entry_date: date, locality: str | None) -> DayType:
        holidays = await self.holidays.holidays_for_year(entry_date.year)
        return classify(entry_date, HolidayCalendar.from_holidays(holidays, locality))

    async def _price(
        self,
        entry: Entry,
        registry: TariffRegistry,
        authoritative: bool,
        assignment: ApproverAssignment | None = None,
    ) -> Entry:
        """Classify, resolve and compute the amount of an entry.

        A preview with no tariff stores no amount; an authoritative
        computation propagates TariffNotFoundError.
        """
        snapshot: TariffSnapshot | None = None

        if isinstance(entry, TimeEntry):
            if assignment is None:
                assignment = await self.identity.get_assignment(entry.owner_id)
            locality = assignment.locality if assignment else None
            day_type = await self._classify(entry.entry_date, locality)
            rate_code = AmountCalculator.rate_code_for_day_type(day_type)
            entry = replace(entry, day_type=day_type, rate_code=rate_code)

            snapshot = await self._resolve(registry, entry, rate_code, authoritative)
            if snapshot is None:
                return replace(entry, amount=None, tariff=None)
            # Priced from whole minutes; the stored hours are rounded for display
            minutes = AmountCalculator.minutes_between(entry.start_time, entry.end_time)
            amount = AmountCalculator.minutes_amount(minutes, day_type, snapshot)
        else:
            rate_code = AmountCalculator.rate_code_for_expense(entry.details)
            if rate_code is not None:
                snapshot = await self._resolve(registry, entry, rate_code, authoritative)
                if snapshot is None:
                    return replace(entry, amount=None, tariff=None)
            amount = AmountCalculator.expense_amount(entry.details, snapshot)

        return replace(entry, amount=AmountCalculator.round_to_cents(amount), tariff=snapshot)

    async def _resolve(
        self,
        registry: TariffRegistry,
        entry: Entry,
        rate_code: RateCode,
        authoritative: bool,
    ) -> TariffSnapshot | None:
        try:
            return await registry.resolve(rate_code, entry.entry_date, entry.owner_id)
        except TariffNotFoundError:
            if authoritative:
                raise
            logger.warning(
                "No tariff %s for %d; entry %s stored without amount",
                rate_code.value,
                entry.entry_date.year,
                entry.entry_id,
            )
            return None

    def _validate_description(self, description: str | None) -> None:
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                "description", f"must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

    def _validate_details(self, details: ExpenseDetails) -> None:
        match details:
            case MileageDetails():
                if details.kilometers <= 0:
                    raise ValidationError("kilometers", "must be greater than 0")
                if details.kilometers > self.max_kilometers:
                    raise ValidationError(
                        "kilometers", f"must not exceed {self.max_kilometers}"
                    )
            case PerDiemDetails():
                pass
            case HotelDetails():
                if details.nights < 1:
                    raise ValidationError("nights", "must be at least 1")
                self._validate_amount(details.amount)
            case ReceiptDetails():
                self._validate_amount(details.amount)
            case _:
                assert_never(details)

    def _validate_amount(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("amount", "must be greater than 0")
        if amount > self.max_expense_amount:
            raise ValidationError("amount", f"must not exceed {self.max_expense_amount}")
