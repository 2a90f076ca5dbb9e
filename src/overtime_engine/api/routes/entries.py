"""Entry API endpoints."""

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Path, Query, Response, status

from overtime_engine.api.dependencies import CurrentActor, Entries
from overtime_engine.api.schemas import (
    EntryListResponse,
    EntryResponse,
    ErrorResponse,
    ExpenseEntryCreate,
    ExpenseEntryUpdate,
    TimeEntryCreate,
    TimeEntryUpdate,
    TransitionRequest,
)
from overtime_engine.services.entry_service import UNSET
from overtime_engine.services.state_machine import EntryState

router = APIRouter(prefix="/entries", tags=["entries"])

ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ============================================================================
# Entry CRUD
# ============================================================================


@router.post(
    "/hours",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_time_entry(
    service: Entries,
    actor: CurrentActor,
    payload: TimeEntryCreate,
) -> EntryResponse:
    """Create a draft time entry owned by the caller."""
    entry = await service.create_time_entry(
        owner_id=actor.actor_id,
        entry_date=payload.entry_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        project_id=payload.project_id,
        description=payload.description,
    )
    return EntryResponse.from_entry(entry)


@router.post(
    "/expenses",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_expense_entry(
    service: Entries,
    actor: CurrentActor,
    payload: ExpenseEntryCreate,
) -> EntryResponse:
    """Create a draft expense entry owned by the caller."""
    entry = await service.create_expense_entry(
        owner_id=actor.actor_id,
        entry_date=payload.entry_date,
        details=payload.details,
        project_id=payload.project_id,
        description=payload.description,
    )
    return EntryResponse.from_entry(entry)


@router.get("", response_model=EntryListResponse)
async def list_entries(
    service: Entries,
    owner_id: Annotated[str | None, Query()] = None,
    state: Annotated[EntryState | None, Query()] = None,
    start: Annotated[date | None, Query()] = None,
    end: Annotated[date | None, Query()] = None,
) -> EntryListResponse:
    """List entries filtered by owner, state and date range."""
    entries = await service.list_entries(owner_id=owner_id, state=state, start=start, end=end)
    return EntryListResponse(
        items=[EntryResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


@router.get("/{entry_id}", response_model=EntryResponse, responses=ERRORS)
async def get_entry(
    service: Entries,
    entry_id: Annotated[str, Path()],
) -> EntryResponse:
    return EntryResponse.from_entry(await service.get_entry(entry_id))


@router.patch("/hours/{entry_id}", response_model=EntryResponse, responses=ERRORS)
async def update_time_entry(
    service: Entries,
    actor: CurrentActor,
    entry_id: Annotated[str, Path()],
    payload: TimeEntryUpdate,
) -> EntryResponse:
    """Edit a draft or returned time entry."""
    provided = payload.model_fields_set
    entry = await service.update_time_entry(
        entry_id,
        actor.actor_id,
        entry_date=payload.entry_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        project_id=payload.project_id if "project_id" in provided else UNSET,
        description=payload.description if "description" in provided else UNSET,
    )
    return EntryResponse.from_entry(entry)


@router.patch("/expenses/{entry_id}", response_model=EntryResponse, responses=ERRORS)
async def update_expense_entry(
    service: Entries,
    actor: CurrentActor,
    entry_id: Annotated[str, Path()],
    payload: ExpenseEntryUpdate,
) -> EntryResponse:
    """Edit a draft or returned expense entry."""
    provided = payload.model_fields_set
    entry = await service.update_expense_entry(
        entry_id,
        actor.actor_id,
        entry_date=payload.entry_date,
        details=payload.details,
        project_id=payload.project_id if "project_id" in provided else UNSET,
        description=payload.description if "description" in provided else UNSET,
    )
    return EntryResponse.from_entry(entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERRORS,
)
async def delete_entry(
    service: Entries,
    actor: CurrentActor,
    entry_id: Annotated[str, Path()],
) -> Response:
    """Delete a draft entry."""
    await service.delete_entry(entry_id, actor.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Lifecycle
# ============================================================================


@router.post("/{entry_id}/transitions", response_model=EntryResponse, responses=ERRORS)
async def transition_entry(
    service: Entries,
    actor: CurrentActor,
    entry_id: Annotated[str, Path()],
    payload: TransitionRequest,
) -> EntryResponse:
    """Apply a lifecycle action (submit, approve, reject, return, resubmit)."""
    entry = await service.transition(
        entry_id,
        payload.action,
        actor_id=actor.actor_id,
        actor_role=actor.role,
        comment=payload.comment,
    )
    return EntryResponse.from_entry(entry)
