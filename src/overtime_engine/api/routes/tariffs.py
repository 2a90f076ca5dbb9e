"""Tariff table API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query

from overtime_engine.api.dependencies import CurrentActor, Tariffs
from overtime_engine.api.schemas import (
    CloneRequest,
    CloneResponse,
    ErrorResponse,
    TariffResponse,
    TariffSnapshotResponse,
    TariffTableResponse,
    TariffWrite,
)
from overtime_engine.calculators.types import RateCode

router = APIRouter(prefix="/tariffs", tags=["tariffs"])


@router.get("/{year}", response_model=TariffTableResponse)
async def get_tariff_table(
    service: Tariffs,
    year: Annotated[int, Path(ge=1900, le=9999)],
) -> TariffTableResponse:
    rates = await service.table_for_year(year)
    return TariffTableResponse(year=year, rates=[TariffResponse.from_rate(r) for r in rates])


@router.put(
    "/{year}/{rate_code}",
    response_model=TariffResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def set_tariff(
    service: Tariffs,
    actor: CurrentActor,
    year: Annotated[int, Path(ge=1900, le=9999)],
    rate_code: RateCode,
    payload: TariffWrite,
) -> TariffResponse:
    """Set the general amount for a rate code; past years are read-only."""
    rate = await service.set_tariff(
        year, rate_code, payload.amount, actor.actor_id, actor.role, payload.unit
    )
    return TariffResponse.from_rate(rate)


@router.put(
    "/{year}/{rate_code}/overrides/{user_id}",
    response_model=TariffResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def set_override(
    service: Tariffs,
    actor: CurrentActor,
    year: Annotated[int, Path(ge=1900, le=9999)],
    rate_code: RateCode,
    user_id: str,
    payload: TariffWrite,
) -> TariffResponse:
    rate = await service.set_override(
        year, rate_code, payload.amount, user_id, actor.actor_id, actor.role, payload.unit
    )
    return TariffResponse.from_rate(rate)


@router.get(
    "/{year}/{rate_code}/resolve",
    response_model=TariffSnapshotResponse,
    responses={422: {"model": ErrorResponse}},
)
async def resolve_tariff(
    service: Tariffs,
    year: Annotated[int, Path(ge=1900, le=9999)],
    rate_code: RateCode,
    user_id: Annotated[str | None, Query()] = None,
) -> TariffSnapshotResponse:
    """Tariff that would apply to ``user_id`` in ``year``."""
    snapshot = await service.resolve(rate_code, date(year, 1, 1), user_id)
    return TariffSnapshotResponse.from_snapshot(snapshot)


@router.post(
    "/clone",
    response_model=CloneResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def clone_tariff_year(
    service: Tariffs,
    actor: CurrentActor,
    payload: CloneRequest,
) -> CloneResponse:
    """Copy a year's table into an empty year. Repeat calls report ``cloned: false``."""
    result = await service.clone_tariff_year(
        payload.source_year, payload.dest_year, actor.actor_id, actor.role
    )
    return CloneResponse.from_result(result)
