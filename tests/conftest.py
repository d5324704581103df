import os

# Must be set before cleanbook is imported: the engine is created at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from cleanbook.auth import ROLE_PROVIDER, ROLE_REQUESTER, Provider, Requester, create_access_token  # noqa: E402
from cleanbook.database import Base, SessionLocal, engine  # noqa: E402
from cleanbook.main import app  # noqa: E402
from cleanbook.models import Booking, BookingStatus, Service  # noqa: E402

SERVICE_ID = 5
OTHER_SERVICE_ID = 6
PROVIDER_ID = 50
OTHER_PROVIDER_ID = 60
REQUESTER_ID = 7
OTHER_REQUESTER_ID = 8

BASE_TIME = datetime(2025, 6, 1, 10, 0)  # naive UTC


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    session.add_all(
        [
            Service(id=SERVICE_ID, provider_id=PROVIDER_ID, description="Home cleaning"),
            Service(id=OTHER_SERVICE_ID, provider_id=OTHER_PROVIDER_ID, description="Office cleaning"),
        ]
    )
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def requester():
    return Requester(id=REQUESTER_ID)


@pytest.fixture
def other_requester():
    return Requester(id=OTHER_REQUESTER_ID)


@pytest.fixture
def provider():
    return Provider(id=PROVIDER_ID)


@pytest.fixture
def other_provider():
    return Provider(id=OTHER_PROVIDER_ID)


@pytest.fixture
def make_booking(db):
    """Insert a booking directly, bypassing the service layer"""

    def _make(
        status=BookingStatus.PENDING,
        scheduled_at=BASE_TIME,
        service_id=SERVICE_ID,
        requester_id=REQUESTER_ID,
        updated_at=None,
        **attrs,
    ):
        created = updated_at or datetime(2025, 5, 1, 8, 0)
        booking = Booking(
            service_id=service_id,
            requester_id=requester_id,
            scheduled_at=scheduled_at,
            status=status.value if isinstance(status, BookingStatus) else status,
            service_kind=attrs.pop("service_kind", "limpieza general"),
            created_at=created,
            updated_at=updated_at or created,
            **attrs,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def client(db):
    return TestClient(app)


def auth_headers(caller_id: int, role: str, provider_id=None) -> dict:
    token = create_access_token(caller_id, role, provider_id=provider_id, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def requester_headers():
    return auth_headers(REQUESTER_ID, ROLE_REQUESTER)


@pytest.fixture
def other_requester_headers():
    return auth_headers(OTHER_REQUESTER_ID, ROLE_REQUESTER)


@pytest.fixture
def provider_headers():
    return auth_headers(PROVIDER_ID, ROLE_PROVIDER)


@pytest.fixture
def other_provider_headers():
    return auth_headers(OTHER_PROVIDER_ID, ROLE_PROVIDER)
