"""Appointment endpoints — booking and the caller's consultations."""

from fastapi import APIRouter, HTTPException, Query, status

from app.deps import CurrentUser, DbSession
from app.schemas.booking import AppointmentCreate, AppointmentRead
from app.services.booking import SlotUnavailableError, booking_service
from app.services.catalog import catalog_service

router = APIRouter()


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    user: CurrentUser,
    db: DbSession,
) -> AppointmentRead:
    """Book one hourly slot with an expert."""
    expert = await catalog_service.get_expert(db, data.expert_id)
    if not expert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expert not found.",
        )
    try:
        appointment = await booking_service.book_appointment(
            db,
            user_id=user.id,
            expert_id=data.expert_id,
            target_date=data.date,
            hour=data.hour,
            notes=data.notes,
        )
    except SlotUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    return AppointmentRead.model_validate(appointment)


@router.get("", response_model=list[AppointmentRead])
async def list_my_appointments(
    user: CurrentUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[AppointmentRead]:
    appointments = await booking_service.list_user_appointments(db, user.id, limit=limit)
    return [AppointmentRead.model_validate(a) for a in appointments]
