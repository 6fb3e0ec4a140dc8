import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_BACKEND", "none")

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.core.database import Base
import api.models  # noqa: F401
from api.models.course import Course
from api.models.user import User, UserRole
from api.services.enrollment_requests import EnrollmentRequestManager
from api.services.enrollment_store import EnrollmentStore


class RecordingDispatcher:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def notify_enrollment_outcome(self, user_id, course_title, outcome, admin_note=None):
        self.calls.append(
            {"user_id": user_id, "course_title": course_title, "outcome": outcome, "admin_note": admin_note}
        )
        if self.fail:
            raise RuntimeError("notification service unavailable")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    admin = User(name="Ada Admin", email="admin@example.com", role=UserRole.instructor, is_admin=True)
    alice = User(name="Alice Johnson", email="alice@example.com", role=UserRole.student)
    bob = User(name="Bob Smith", email="bob@example.com", role=UserRole.student)
    carol = User(name="Carol White", email="carol@example.com", role=UserRole.student)
    instructor = User(name="Tom Instructor", email="tom@example.com", role=UserRole.instructor)
    db.add_all([admin, alice, bob, carol, instructor])
    db.flush()

    algebra = Course(title="Algebra I", description="Linear equations", created_by=instructor.id)
    biology = Course(title="Biology", description="Cells and organisms", created_by=instructor.id)
    chemistry = Course(title="Chemistry", created_by=instructor.id)
    db.add_all([algebra, biology, chemistry])
    db.commit()

    return SimpleNamespace(
        admin=admin.id,
        alice=alice.id,
        bob=bob.id,
        carol=carol.id,
        instructor=instructor.id,
        algebra=algebra.id,
        biology=biology.id,
        chemistry=chemistry.id,
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def store(db):
    return EnrollmentStore(db)


@pytest.fixture
def manager(store, dispatcher):
    return EnrollmentRequestManager(store, dispatcher)


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)
