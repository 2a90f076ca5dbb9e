"""FastAPI dependencies for dependency injection."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from overtime_engine.services.entry_service import EntryService
from overtime_engine.services.permissions import Role
from overtime_engine.services.rollup_service import RollupService
from overtime_engine.services.tariff_service import TariffService


@dataclass(frozen=True)
class Actor:
    """Caller identity as asserted by the upstream gateway."""

    actor_id: str
    role: str


async def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Extract actor id and role from headers."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required",
        )
    return Actor(actor_id=x_actor_id, role=x_actor_role or Role.TECHNICIAN.value)


def get_entry_service(request: Request) -> EntryService:
    state = request.app.state
    return EntryService(
        entries=state.store,
        tariffs=state.store,
        holidays=state.store,
        identity=state.store,
        clock=state.clock,
        max_kilometers=state.settings.max_kilometers,
        max_expense_amount=state.settings.max_expense_amount,
        zero_fallback=state.settings.tariff_zero_fallback,
    )


def get_tariff_service(request: Request) -> TariffService:
    state = request.app.state
    return TariffService(
        tariffs=state.store,
        holidays=state.store,
        clock=state.clock,
        zero_fallback=state.settings.tariff_zero_fallback,
    )


def get_rollup_service(request: Request) -> RollupService:
    return RollupService(entries=request.app.state.store, rollups=request.app.state.store)


# Type aliases for cleaner dependency injection
CurrentActor = Annotated[Actor, Depends(get_actor)]
Entries = Annotated[EntryService, Depends(get_entry_service)]
Tariffs = Annotated[TariffService, Depends(get_tariff_service)]
Rollups = Annotated[RollupService, Depends(get_rollup_service)]
