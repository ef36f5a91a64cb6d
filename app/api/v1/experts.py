"""Expert endpoints — listing, weekly availability, free booking slots."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.deps import DbSession, QueryCacheDep
from app.models.expert import Expert
from app.schemas.booking import AvailabilityRuleRead, SlotList
from app.schemas.catalog import ExpertRead
from app.services.booking import booking_service, day_of_week_index
from app.services.catalog import catalog_service

router = APIRouter()


async def _get_expert_or_404(db: DbSession, expert_id: UUID) -> Expert:
    expert = await catalog_service.get_expert(db, expert_id)
    if not expert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expert not found.",
        )
    return expert


@router.get("", response_model=list[ExpertRead])
async def list_experts(
    db: DbSession,
    cache: QueryCacheDep,
    featured: bool = False,
) -> list[ExpertRead]:
    """List experts by rating, highest first."""
    result = await catalog_service.list_experts(db, cache, featured_only=featured)
    if result.error:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load experts.",
        )
    return result.data


@router.get("/{expert_id}", response_model=ExpertRead)
async def get_expert(expert_id: UUID, db: DbSession) -> ExpertRead:
    expert = await _get_expert_or_404(db, expert_id)
    return ExpertRead.model_validate(expert)


@router.get("/{expert_id}/availability", response_model=list[AvailabilityRuleRead])
async def get_availability(expert_id: UUID, db: DbSession) -> list[AvailabilityRuleRead]:
    """Weekly availability rules, ordered by weekday (0 = Sunday)."""
    await _get_expert_or_404(db, expert_id)
    rules = await booking_service.get_rules(db, expert_id)
    return [AvailabilityRuleRead.model_validate(r) for r in rules]


@router.get("/{expert_id}/slots", response_model=SlotList)
async def get_slots(
    expert_id: UUID,
    db: DbSession,
    target_date: date = Query(..., alias="date"),
) -> SlotList:
    """Free hourly slots for the given date. Never cached."""
    await _get_expert_or_404(db, expert_id)
    slots = await booking_service.get_available_slots(db, expert_id, target_date)
    return SlotList(
        expert_id=expert_id,
        date=target_date,
        day_of_week=day_of_week_index(target_date),
        slots=slots,
    )
