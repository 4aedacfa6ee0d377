"""Practice directory: practices, dentists and treatments."""

from dataclasses import dataclass

from app.core.exceptions import NotFoundError
from app.models.appointment import Appointment
from app.models.practice import Dentist, Practice, Treatment
from app.storage.base import Storage


@dataclass
class PracticeListing:
    """A practice together with its open slots and dentists."""

    practice: Practice
    available_appointments: list[Appointment]
    dentists: list[Dentist]


class PracticeService:
    """Read-side service for the practice directory."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def _listing(self, practice: Practice) -> PracticeListing:
        return PracticeListing(
            practice=practice,
            available_appointments=await self.storage.list_available_appointments(
                practice.id
            ),
            dentists=await self.storage.list_dentists(practice.id),
        )

    async def list_practices(self, location: str | None = None) -> list[PracticeListing]:
        """List practices, optionally narrowed to an address or postcode fragment."""
        practices = await self.storage.list_practices(location)
        return [await self._listing(p) for p in practices]

    async def get_practice(self, practice_id: int) -> PracticeListing:
        practice = await self.storage.get_practice(practice_id)
        if practice is None:
            raise NotFoundError("Practice not found")
        return await self._listing(practice)

    async def list_treatments(self, category: str | None = None) -> list[Treatment]:
        return await self.storage.list_treatments(category)

    async def list_dentists(self, practice_id: int | None = None) -> list[Dentist]:
        return await self.storage.list_dentists(practice_id)

    async def get_dentist(self, dentist_id: int) -> Dentist:
        dentist = await self.storage.get_dentist(dentist_id)
        if dentist is None:
            raise NotFoundError("Dentist not found")
        return dentist
