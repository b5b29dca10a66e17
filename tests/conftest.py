import os
import tempfile

# Settings are read once; point them at throwaway locations before any
# classroom module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="classroom-logs-")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="classroom-uploads-")
os.environ["REMINDER_ENABLED"] = "false"

from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from classroom.core.errors import DeliveryError
from classroom.core.security.auth import create_hashed_password, generate_token
from classroom.db.base import Base
from classroom.db.init_db import init_db
from classroom.models import Role, RoleType, User
from classroom.services.assignments import create_assignment
from classroom.services.file_storage import FileStorage, FileUpload
from classroom.utils.helpers import utc_now

PASSWORD = "secret-password"


@pytest.fixture(scope="session")
def hashed_password():
    return create_hashed_password(PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    init_db(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db, hashed_password):
    roles = {role.role: role for role in db.query(Role).all()}

    def add(username, role_type):
        user = User(
            username=username,
            email=f"{username}@example.com",
            role_id=roles[role_type].id,
            hashed_password=hashed_password,
        )
        db.add(user)
        return user

    created = SimpleNamespace(
        tutor=add("tutor1", RoleType.TUTOR),
        other_tutor=add("tutor2", RoleType.TUTOR),
        s1=add("s1", RoleType.STUDENT),
        s2=add("s2", RoleType.STUDENT),
        s3=add("s3", RoleType.STUDENT),
    )
    db.commit()
    return created


@pytest.fixture
def storage(tmp_path):
    return FileStorage(upload_dir=str(tmp_path / "uploads"), base_url="/uploads")


def stored_files(storage):
    return sorted(os.listdir(storage.upload_dir))


def make_file(filename="hw1.pdf", content=b"%PDF-1.4 assignment"):
    return FileUpload(filename=filename, content=content, content_type="application/pdf")


@pytest.fixture
def make_assignment(db, users, storage):
    """Create an assignment as tutor1 with sensible defaults."""

    def _make(student_ids=(), title="HW1", due_in=timedelta(days=2), published_at=None, **kwargs):
        return create_assignment(
            kwargs.pop("username", users.tutor.username),
            title=title,
            description=kwargs.pop("description", "Chapter 1 exercises"),
            published_at=published_at,
            due_date=utc_now() + due_in,
            file=kwargs.pop("file", make_file()),
            student_ids=list(student_ids),
            db=db,
            storage=storage,
        )

    return _make


class RecordingNotifier:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to_email, subject, body):
        if to_email in self.fail_for:
            raise DeliveryError(f"Mailbox unavailable: {to_email}")
        self.sent.append((to_email, subject, body))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, storage, users):
    from fastapi.testclient import TestClient

    from classroom.db.session import get_db
    from classroom.main import app
    from classroom.services.file_storage import get_file_storage

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(username):
    return {"Authorization": f"Bearer {generate_token({'sub': username})}"}
