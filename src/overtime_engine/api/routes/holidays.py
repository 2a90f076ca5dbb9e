"""Holiday calendar API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from overtime_engine.api.dependencies import CurrentActor, Tariffs
from overtime_engine.api.schemas import ErrorResponse, HolidaySchema

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("/{year}", response_model=list[HolidaySchema])
async def list_holidays(
    service: Tariffs,
    year: Annotated[int, Path(ge=1900, le=9999)],
) -> list[HolidaySchema]:
    holidays = await service.holidays_for_year(year)
    return [HolidaySchema.model_validate(h) for h in holidays]


@router.post(
    "",
    response_model=HolidaySchema,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}},
)
async def add_holiday(
    service: Tariffs,
    actor: CurrentActor,
    payload: HolidaySchema,
) -> HolidaySchema:
    holiday = await service.add_holiday(payload.to_holiday(), actor.actor_id, actor.role)
    return HolidaySchema.model_validate(holiday)
