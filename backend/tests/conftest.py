from pathlib import Path
import os
import tempfile
import pytest

# Point the app at a throwaway SQLite file before `academy` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="academy-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel, Session  # noqa: E402

from academy import models, services  # noqa: E402
from academy.database import engine, create_db_and_tables  # noqa: E402
from academy.main import app, _login_limiter  # noqa: E402
from academy.repositories import YearRepository  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables (and seeded years) for every test."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    _login_limiter.clear()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def year_ids(session):
    """Map of seeded year name -> id."""
    return {y.name: y.id for y in YearRepository(session).list()}


@pytest.fixture
def make_user(session, year_ids):
    """Create a user directly and return `(user, auth_headers)`."""
    counter = {"n": 0}

    def _make(role=models.UserRole.STUDENT, year="Year 1", username=None):
        counter["n"] += 1
        name = username or f"{role.value.lower()}{counter['n']}"
        user = services.AuthService(session).register(name, "secret123", year_ids[year], role=role)
        token = services.AuthService.issue_token(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def content(session, year_ids):
    """Two parallel content trees, one per year, each module -> subject -> lecture -> link."""
    tree = {}
    for year in ("Year 1", "Year 2"):
        module = models.Module(name=f"Algorithms {year}", year_id=year_ids[year])
        session.add(module)
        session.commit()
        session.refresh(module)
        subject = models.Subject(name="Graphs", module_id=module.id)
        session.add(subject)
        session.commit()
        session.refresh(subject)
        lecture = models.Lecture(title="Shortest paths", lecturer="Dr. Ada", subject_id=subject.id)
        session.add(lecture)
        session.commit()
        session.refresh(lecture)
        link = models.LectureLink(name="Slides", url="https://example.org/slides.pdf", lecture_id=lecture.id)
        session.add(link)
        session.commit()
        session.refresh(link)
        tree[year] = {"module": module.id, "subject": subject.id, "lecture": lecture.id, "link": link.id}
    return tree
