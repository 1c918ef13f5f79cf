import os

# Must be set before voter_analytics.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ERROR_WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from voter_analytics.database import build_engine, get_db, init_db
from voter_analytics.services.batch_uploader import UploadUser
from voter_analytics.services.error_reporter import ErrorReporter
from voter_analytics.services.generations import GenerationCounter

SAMPLE_CSV = (
    "First Name,Last Name,Team,Date,Tactic,Attempts,Contacts,Not Home,Refusal,Bad Data,Support,Oppose,Undecided\n"
    "Ann,Lee,Team Tony,2024-04-01,Phone,10,4,3,2,1,2,1,1\n"
    ",Bo,Team Tony,2024-04-01,Phone,5,1,1,1,2,1,0,0\n"
)


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def user():
    return UploadUser(user_id="user-1", email="ann@example.com")


@pytest.fixture
def client(engine):
    from voter_analytics.main import app

    def _get_db():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_db] = _get_db
    app.state.reporter = ErrorReporter()
    app.state.generations = GenerationCounter()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV
