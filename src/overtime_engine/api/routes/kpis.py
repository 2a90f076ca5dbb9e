"""KPI rollup API endpoints."""

from typing import Annotated, Literal

from fastapi import APIRouter, Path, Query

from overtime_engine.api.dependencies import Rollups
from overtime_engine.api.schemas import (
    ComparisonResponse,
    ContributorResponse,
    EvolutionResponse,
    MonthlyTotalsResponse,
    RankingEntry,
    RollupResponse,
)
from overtime_engine.calculators.aggregation import format_variation
from overtime_engine.domain.rollups import Period

router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get("/compare", response_model=ComparisonResponse)
async def compare_periods(
    service: Rollups,
    current: Annotated[str, Query(examples=["2025_06"])],
    baseline: Annotated[str, Query(examples=["2025_05"])],
) -> ComparisonResponse:
    """Percentage variation of every metric between two periods."""
    current_period = Period.parse(current)
    baseline_period = Period.parse(baseline)
    variations = await service.compare(current_period, baseline_period)
    return ComparisonResponse(
        current=current_period.key,
        baseline=baseline_period.key,
        variations={name: format_variation(value) for name, value in variations.items()},
    )


@router.get("/evolution/{year}", response_model=EvolutionResponse)
async def monthly_evolution(
    service: Rollups,
    year: Annotated[int, Path(ge=1900, le=9999)],
) -> EvolutionResponse:
    months = await service.monthly_evolution(year)
    return EvolutionResponse(
        year=year,
        months=[
            MonthlyTotalsResponse(
                period=m.period,
                hours_amount=m.hours_amount,
                expense_amount=m.expense_amount,
                grand_total=m.grand_total,
            )
            for m in months
        ],
    )


@router.get("/{period}", response_model=RollupResponse)
async def get_rollup(service: Rollups, period: str) -> RollupResponse:
    """Current rollup for a period, recomputed from the approved entries."""
    rollup = await service.get_rollup(Period.parse(period))
    return RollupResponse.from_rollup(rollup)


@router.post("/{period}/refresh", response_model=RollupResponse)
async def refresh_rollup(service: Rollups, period: str) -> RollupResponse:
    """Recompute a period's rollup from the approved entries."""
    rollup = await service.refresh_rollup(Period.parse(period))
    return RollupResponse.from_rollup(rollup)


@router.get("/{period}/top-technicians", response_model=list[RankingEntry])
async def top_technicians(
    service: Rollups,
    period: str,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    by: Literal["hours", "expense_amount", "total"] = "hours",
) -> list[RankingEntry]:
    rollup = await service.get_rollup(Period.parse(period))
    return [
        RankingEntry(technician_id=tech, totals=ContributorResponse.from_totals(totals))
        for tech, totals in rollup.top_technicians(limit, by)
    ]
