"""Tests for races between booking requests and decisions."""

import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictError, InvalidStateError
from app.models import (
    Appointment,
    AppointmentStatus,
    Booking,
    BookingStatus,
    TreatmentCategory,
    User,
    UserType,
)
from app.schemas.booking import BookingCreate
from app.services.booking import BookingService
from app.storage import DatabaseStorage, MemoryStorage


def _request(appointment_id: int) -> BookingCreate:
    return BookingCreate(appointment_id=appointment_id, treatment_category="routine")


def _split(results: list) -> tuple[list, list]:
    successes = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    return successes, failures


class TestInMemoryRaces:
    """Concurrent calls against one MemoryStorage."""

    @pytest.mark.asyncio
    async def test_concurrent_approvals_have_one_winner(
        self,
        memory_storage: MemoryStorage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(memory_storage)
        booking = await service.submit_booking(patient.id, _request(appointment.id))

        results = await asyncio.gather(
            service.approve_booking(booking.id, dentist_user.id),
            service.approve_booking(booking.id, dentist_user.id),
            return_exceptions=True,
        )

        successes, failures = _split(results)
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidStateError)
        assert appointment.status == AppointmentStatus.BOOKED

    @pytest.mark.asyncio
    async def test_concurrent_approve_and_reject_have_one_winner(
        self,
        memory_storage: MemoryStorage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(memory_storage)
        booking = await service.submit_booking(patient.id, _request(appointment.id))

        results = await asyncio.gather(
            service.approve_booking(booking.id, dentist_user.id),
            service.reject_booking(booking.id, dentist_user.id),
            return_exceptions=True,
        )

        successes, failures = _split(results)
        assert len(successes) == 1
        assert isinstance(failures[0], InvalidStateError)
        if booking.status == BookingStatus.APPROVED:
            assert appointment.status == AppointmentStatus.BOOKED
        else:
            assert appointment.status == AppointmentStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_concurrent_submissions_hold_one_booking(
        self,
        memory_storage: MemoryStorage,
        appointment: Appointment,
        patient: User,
    ) -> None:
        service = BookingService(memory_storage)

        results = await asyncio.gather(
            *(service.submit_booking(patient.id, _request(appointment.id)) for _ in range(5)),
            return_exceptions=True,
        )

        successes, failures = _split(results)
        assert len(successes) == 1
        assert all(isinstance(f, ConflictError) for f in failures)
        assert len(memory_storage.bookings) == 1


async def _seed(session: AsyncSession) -> dict[str, int]:
    storage = DatabaseStorage(session)
    practice = await storage.create_practice(name="Race Dental", address="1 Test Road")
    treatment = await storage.create_treatment(
        name="Filling", category=TreatmentCategory.ROUTINE, duration=45
    )
    slot = await storage.create_appointment(
        practice_id=practice.id,
        treatment_id=treatment.id,
        appointment_date=date(2030, 2, 1),
        appointment_time="14:30",
    )
    patient = await storage.create_user(
        email="racer@example.com", password_hash="x", user_type=UserType.PATIENT
    )
    dentist = await storage.create_user(
        email="dr.race@example.com",
        password_hash="x",
        user_type=UserType.DENTIST,
        practice_id=practice.id,
    )
    return {
        "appointment_id": slot.id,
        "patient_id": patient.id,
        "dentist_id": dentist.id,
    }


class TestDatabaseRaces:
    """Two sessions deciding the same booking on SQLite."""

    @pytest.mark.asyncio
    async def test_stale_session_cannot_approve_again(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A session that read the booking as pending loses to an earlier approval."""
        async with session_factory() as first, session_factory() as second:
            ids = await _seed(first)
            first_service = BookingService(DatabaseStorage(first))
            second_service = BookingService(DatabaseStorage(second))

            booking = await first_service.submit_booking(
                ids["patient_id"], _request(ids["appointment_id"])
            )
            booking_id = booking.id
            stale = await second_service.get_booking(booking_id)
            assert stale.status == BookingStatus.PENDING_APPROVAL

            await first_service.approve_booking(booking_id, ids["dentist_id"])

            with pytest.raises(InvalidStateError):
                await second_service.approve_booking(booking_id, ids["dentist_id"])
            with pytest.raises(InvalidStateError):
                await second_service.reject_booking(booking_id, ids["dentist_id"])

        async with session_factory() as check:
            storage = DatabaseStorage(check)
            final = await storage.get_booking(booking_id)
            slot = await storage.get_appointment(ids["appointment_id"])
            assert final.status == BookingStatus.APPROVED
            assert slot.status == AppointmentStatus.BOOKED
            assert slot.user_id == ids["patient_id"]

    @pytest.mark.asyncio
    async def test_unique_index_blocks_second_open_booking(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """The partial index backs up the application check."""
        async with session_factory() as session:
            ids = await _seed(session)
            fields = {
                "user_id": ids["patient_id"],
                "appointment_id": ids["appointment_id"],
                "treatment_category": "routine",
            }
            session.add(Booking(status=BookingStatus.PENDING_APPROVAL, **fields))
            await session.commit()

            session.add(Booking(status=BookingStatus.APPROVED, **fields))
            with pytest.raises(IntegrityError):
                await session.commit()
            await session.rollback()

            # Closed bookings do not count towards the index
            session.add(Booking(status=BookingStatus.REJECTED, **fields))
            await session.commit()

    @pytest.mark.asyncio
    async def test_index_violation_after_the_check_is_a_conflict(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A competing request that lands between check and insert loses with 409."""
        async with session_factory() as session:
            ids = await _seed(session)
            session.add(
                Booking(
                    user_id=ids["patient_id"],
                    appointment_id=ids["appointment_id"],
                    treatment_category="routine",
                    status=BookingStatus.PENDING_APPROVAL,
                )
            )
            await session.commit()

            storage = DatabaseStorage(session)
            real_check = storage.has_open_booking
            calls = []

            async def check_before_competitor(appointment_id: int) -> bool:
                calls.append(appointment_id)
                if len(calls) == 1:
                    return False
                return await real_check(appointment_id)

            monkeypatch.setattr(storage, "has_open_booking", check_before_competitor)

            with pytest.raises(ConflictError, match="already has an open booking"):
                await BookingService(storage).submit_booking(
                    ids["patient_id"], _request(ids["appointment_id"])
                )

    @pytest.mark.asyncio
    async def test_other_integrity_errors_are_not_conflicts(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async with session_factory() as session:
            ids = await _seed(session)
            storage = DatabaseStorage(session)

            async def failing_commit() -> None:
                raise IntegrityError(
                    "INSERT INTO bookings", {}, Exception("FOREIGN KEY constraint failed")
                )

            monkeypatch.setattr(session, "commit", failing_commit)

            with pytest.raises(IntegrityError):
                await BookingService(storage).submit_booking(
                    ids["patient_id"], _request(ids["appointment_id"])
                )
            assert await storage.has_open_booking(ids["appointment_id"]) is False
