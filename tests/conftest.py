"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so configure the test environment
# before anything from app is imported.
os.environ["ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("DATABASE_URL", None)

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import StaticPool  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.security import hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Appointment,
    Dentist,
    Practice,
    Treatment,
    TreatmentCategory,
    User,
    UserType,
)
from app.services.auth import AuthService  # noqa: E402
from app.storage import DatabaseStorage, MemoryStorage  # noqa: E402
from app.storage.base import Storage  # noqa: E402
from app.utils.time import utc_now  # noqa: E402

# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PATIENT_PASSWORD = "Patient!Pass1"
DENTIST_PASSWORD = "Dentist!Pass1"
SLOT_DATE = date(2030, 1, 15)


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture(scope="function")
async def storage(request, memory_storage: MemoryStorage) -> AsyncGenerator[Storage, None]:
    """Storage backend under test.

    Defaults to the in-memory backend. Modules that parametrize this
    fixture indirectly with "database" get a DatabaseStorage on SQLite.
    """
    if getattr(request, "param", "memory") == "memory":
        yield memory_storage
        return

    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield DatabaseStorage(session)
    await engine.dispose()


@pytest.fixture(scope="function")
def client(memory_storage: MemoryStorage) -> Generator[TestClient, None, None]:
    """Create FastAPI test client backed by the test's in-memory storage."""
    original_provider = app.state.storage_provider
    app.state.storage_provider = memory_storage.scope

    with TestClient(app) as test_client:
        yield test_client

    app.state.storage_provider = original_provider


# --- Seed data ---


@pytest.fixture
async def practice(storage: Storage) -> Practice:
    """Create a practice with a connection tag."""
    return await storage.create_practice(
        name="Smile Dental Care",
        address="12 High Street, Camden, London",
        postcode="NW1 7JE",
        phone="020 7946 0000",
        email="hello@smiledental.example",
        wheelchair_access=True,
        opening_hours={"monday": "09:00-17:00"},
        connection_tag="SMILE-4821",
    )


@pytest.fixture
async def other_practice(storage: Storage) -> Practice:
    """Create a second, unrelated practice."""
    return await storage.create_practice(
        name="Riverside Dental",
        address="3 Quay Road, Bristol",
        postcode="BS1 4QA",
        connection_tag="RIVER-1177",
    )


@pytest.fixture
async def treatment(storage: Storage) -> Treatment:
    return await storage.create_treatment(
        name="Check-up",
        category=TreatmentCategory.ROUTINE,
        description="Routine examination",
        duration=30,
        price=Decimal("45.00"),
    )


@pytest.fixture
async def dentist_profile(storage: Storage, practice: Practice) -> Dentist:
    return await storage.create_dentist(
        practice_id=practice.id,
        name="Dr Amira Patel",
        title="Dental Surgeon",
        experience=12,
    )


@pytest.fixture
async def appointment(
    storage: Storage,
    practice: Practice,
    dentist_profile: Dentist,
    treatment: Treatment,
) -> Appointment:
    """Create an available slot at the practice."""
    return await storage.create_appointment(
        practice_id=practice.id,
        dentist_id=dentist_profile.id,
        treatment_id=treatment.id,
        appointment_date=SLOT_DATE,
        appointment_time="09:00",
        duration=30,
        treatment_type="Check-up",
    )


@pytest.fixture
async def patient(storage: Storage) -> User:
    """Create a patient account with GDPR consent."""
    now = utc_now()
    return await storage.create_user(
        email="patient@example.com",
        password_hash=hash_password(PATIENT_PASSWORD),
        first_name="Sam",
        last_name="Taylor",
        phone="07700 900123",
        user_type=UserType.PATIENT,
        gdpr_consent_given=True,
        gdpr_consent_date=now,
        data_retention_date=now + timedelta(days=365),
    )


@pytest.fixture
async def dentist_user(storage: Storage, practice: Practice) -> User:
    """Create a dentist account linked to the practice."""
    return await storage.create_user(
        email="dentist@smiledental.example",
        password_hash=hash_password(DENTIST_PASSWORD),
        first_name="Amira",
        last_name="Patel",
        user_type=UserType.DENTIST,
        practice_id=practice.id,
        gdpr_consent_given=True,
    )


@pytest.fixture
async def other_dentist_user(storage: Storage, other_practice: Practice) -> User:
    """Create a dentist account at another practice."""
    return await storage.create_user(
        email="dentist@riverside.example",
        password_hash=hash_password(DENTIST_PASSWORD),
        first_name="Owen",
        last_name="Hughes",
        user_type=UserType.DENTIST,
        practice_id=other_practice.id,
    )


async def _bearer(storage: Storage, user: User) -> dict[str, str]:
    session = await AuthService(storage).create_session(user.id)
    return {"Authorization": f"Bearer {session.id}"}


@pytest.fixture
async def patient_headers(storage: Storage, patient: User) -> dict[str, str]:
    """Create authorization headers for the patient."""
    return await _bearer(storage, patient)


@pytest.fixture
async def dentist_headers(storage: Storage, dentist_user: User) -> dict[str, str]:
    """Create authorization headers for the practice's dentist."""
    return await _bearer(storage, dentist_user)


@pytest.fixture
async def other_dentist_headers(
    storage: Storage, other_dentist_user: User
) -> dict[str, str]:
    """Create authorization headers for a dentist at another practice."""
    return await _bearer(storage, other_dentist_user)
