"""Booking service — free-slot calculation, appointment booking, availability rules.

Slots are whole hours. For an expert and a date:

1. weekday index of the date (0 = Sunday, the stored convention);
2. the expert's available rules for that weekday, first row only;
3. hours already taken by appointments that day, whatever their status;
4. every hour from the rule's start (inclusive) to end (exclusive) that is
   not taken.

Slots are recomputed on every call and never cached. Times are local
wall-clock values; no timezone conversion happens anywhere here.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.logging import get_logger
from app.core.query_cache import QueryCache
from app.models.appointment import Appointment, AppointmentStatus
from app.models.expert import ExpertAvailability
from app.schemas.audit import AuditAction, AuditLogEntry, AuditTargetType
from app.schemas.booking import AppointmentRead, AvailabilityRuleRead, AvailabilityRuleWrite, SlotRead
from app.services.audit import audit_service
from app.services.catalog import EXPERTS_PREFIX

logger = get_logger(__name__)
settings = get_settings()


class SlotUnavailableError(Exception):
    """The requested hour is not a free slot for that expert and date."""

    def __init__(self, expert_id: UUID, target_date: date, hour: int) -> None:
        self.expert_id = expert_id
        self.target_date = target_date
        self.hour = hour
        super().__init__(
            f"{format_slot_label(hour)} on {target_date.isoformat()} is not available"
        )


# ── Pure helpers ──────────────────────────────────────────────────


def day_of_week_index(target_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return target_date.isoweekday() % 7


def day_bounds(target_date: date) -> tuple[datetime, datetime]:
    return datetime.combine(target_date, time.min), datetime.combine(target_date, time.max)


def _parse_hour(value: str | None, fallback: int) -> int:
    try:
        return int((value or "").split(":")[0])
    except ValueError:
        return fallback


def format_slot_label(hour: int) -> str:
    """12-hour clock label: 9 -> '9:00 AM', 12 -> '12:00 PM', 16 -> '4:00 PM'."""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:00 {suffix}"


def compute_free_slots(
    start_time: str | None,
    end_time: str | None,
    booked_hours: Iterable[int],
) -> list[SlotRead]:
    """Hourly slots in [start hour, end hour) minus the booked hours."""
    start = _parse_hour(start_time, settings.booking_fallback_start_hour)
    end = _parse_hour(end_time, settings.booking_fallback_end_hour)
    taken = set(booked_hours)
    return [
        SlotRead(hour=h, label=format_slot_label(h))
        for h in range(start, end)
        if h not in taken
    ]


# ── Service ───────────────────────────────────────────────────────


class BookingService:
    """Expert availability and appointment booking."""

    async def get_rules(
        self,
        db: AsyncSession,
        expert_id: UUID,
        *,
        day_of_week: int | None = None,
        only_available: bool = False,
    ) -> list[ExpertAvailability]:
        stmt = (
            select(ExpertAvailability)
            .where(ExpertAvailability.expert_id == expert_id)
            .order_by(ExpertAvailability.day_of_week, ExpertAvailability.created_at)
        )
        if day_of_week is not None:
            stmt = stmt.where(ExpertAvailability.day_of_week == day_of_week)
        if only_available:
            stmt = stmt.where(ExpertAvailability.is_available.is_(True))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_booked_hours(
        self,
        db: AsyncSession,
        expert_id: UUID,
        target_date: date,
    ) -> set[int]:
        start, end = day_bounds(target_date)
        result = await db.execute(
            select(Appointment.booked_at)
            .where(Appointment.expert_id == expert_id)
            .where(Appointment.booked_at >= start)
            .where(Appointment.booked_at <= end)
        )
        return {booked_at.hour for booked_at in result.scalars().all()}

    async def get_available_slots(
        self,
        db: AsyncSession,
        expert_id: UUID,
        target_date: date,
    ) -> list[SlotRead]:
        """Free hourly slots for an expert on a date."""
        rules = await self.get_rules(
            db,
            expert_id,
            day_of_week=day_of_week_index(target_date),
            only_available=True,
        )
        if not rules:
            return []

        booked = await self.get_booked_hours(db, expert_id, target_date)

        # Multiple rows for the same weekday are not merged
        rule = rules[0]
        return compute_free_slots(rule.start_time, rule.end_time, booked)

    async def book_appointment(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        expert_id: UUID,
        target_date: date,
        hour: int,
        notes: str | None = None,
    ) -> Appointment:
        """Create a pending appointment if ``hour`` is still free.

        Raises:
            SlotUnavailableError: the hour is outside the expert's hours
                or already taken.
        """
        slots = await self.get_available_slots(db, expert_id, target_date)
        if hour not in {s.hour for s in slots}:
            raise SlotUnavailableError(expert_id, target_date, hour)

        appointment = Appointment(
            user_id=user_id,
            expert_id=expert_id,
            booked_at=datetime.combine(target_date, time(hour=hour)),
            duration_minutes=settings.appointment_duration_minutes,
            status=AppointmentStatus.PENDING.value,
            notes=notes,
        )
        db.add(appointment)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent booking of the same hour
            logger.info("appointment_slot_conflict", expert_id=str(expert_id), hour=hour)
            raise SlotUnavailableError(expert_id, target_date, hour) from e
        await db.refresh(appointment)

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            expert_id=str(expert_id),
            booked_at=appointment.booked_at.isoformat(),
        )
        return appointment

    async def list_user_appointments(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        limit: int = 50,
    ) -> list[Appointment]:
        result = await db.execute(
            select(Appointment)
            .where(Appointment.user_id == user_id)
            .order_by(Appointment.booked_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_appointment(self, db: AsyncSession, appointment_id: UUID) -> Appointment | None:
        result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
        return result.scalar_one_or_none()

    # ── Admin operations (audited) ───────────────────────────────

    async def replace_availability(
        self,
        db: AsyncSession,
        expert_id: UUID,
        rules: list[AvailabilityRuleWrite],
        *,
        admin_id: UUID,
        cache: QueryCache | None = None,
    ) -> list[ExpertAvailability]:
        """Delete every rule of the expert and insert ``rules`` instead."""
        previous = await self.get_rules(db, expert_id)
        before = [AvailabilityRuleRead.model_validate(r).model_dump(mode="json") for r in previous]

        await db.execute(delete(ExpertAvailability).where(ExpertAvailability.expert_id == expert_id))

        created = [
            ExpertAvailability(
                expert_id=expert_id,
                day_of_week=r.day_of_week,
                start_time=r.start_time,
                end_time=r.end_time,
                is_available=r.is_available,
            )
            for r in rules
        ]
        db.add_all(created)
        await db.flush()

        await audit_service.log(
            db,
            AuditLogEntry(
                action=AuditAction.UPDATE_AVAILABILITY,
                target_type=AuditTargetType.EXPERT,
                target_id=expert_id,
                old_value={"rules": before},
                new_value={"rules": [r.model_dump() for r in rules]},
            ),
            admin_id=admin_id,
        )
        if cache is not None:
            cache.invalidate_prefix(EXPERTS_PREFIX)
        return created

    async def update_appointment_status(
        self,
        db: AsyncSession,
        appointment_id: UUID,
        status: str,
        *,
        admin_id: UUID,
    ) -> Appointment | None:
        appointment = await self.get_appointment(db, appointment_id)
        if appointment is None:
            return None

        before = AppointmentRead.model_validate(appointment).model_dump(mode="json")
        appointment.status = status
        await db.flush()
        await db.refresh(appointment)

        action = (
            AuditAction.CANCEL_APPOINTMENT
            if status == AppointmentStatus.CANCELLED.value
            else AuditAction.UPDATE_APPOINTMENT
        )
        await audit_service.log(
            db,
            AuditLogEntry(
                action=action,
                target_type=AuditTargetType.APPOINTMENT,
                target_id=appointment.id,
                old_value=before,
                new_value=AppointmentRead.model_validate(appointment).model_dump(mode="json"),
            ),
            admin_id=admin_id,
        )
        return appointment


booking_service = BookingService()
