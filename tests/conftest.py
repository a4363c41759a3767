# File: tests/conftest.py

import pytest
import os
import sys
import tempfile
from typing import Dict, List, Optional

import sqlalchemy
from sqlalchemy import text
from sqlalchemy_utils import database_exists, create_database

# 1. Add project root to path
sys.path.append(os.getcwd())

# 2. Point the app at a throwaway database BEFORE anything creates the engine
TEST_DATA_DIR = tempfile.mkdtemp(prefix="buildrelay_tests_")
os.environ["DATA_DIR"] = TEST_DATA_DIR
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL", f"sqlite:///{os.path.join(TEST_DATA_DIR, 'test_buildrelay.db')}"
)

# 3. Import the engine the repositories use
from buildrelay.core.database.connection import engine as TEST_ENGINE, init_db
from buildrelay.features.build_dispatch.domain.interfaces import (
    IBuildInfoService, IJobCatalog, IJobControlService, IJobQueueService
)
from buildrelay.features.build_dispatch.domain.models import (
    AcceptanceResponse, BuildHandle, BuildLog, BuildStatus, DispatchConfig, JobSummary, QueueItem
)


class FakeJenkins(IJobQueueService, IJobControlService, IBuildInfoService, IJobCatalog):
    """
    Scripted stand-in for Jenkins.
    Each scripted list is consumed one entry per call; the last entry keeps
    being returned once the list is down to one. Exceptions are raised.
    """

    def __init__(self):
        self.accept_status = 201
        self.accept_detail = ""
        self.start_error: Optional[Exception] = None

        self.queue_polls: List = []
        self.last_build: Optional[int] = None
        self.last_build_error: Optional[Exception] = None

        self.statuses: List = []
        self.logs: List = ["Started by user admin\nFinished: SUCCESS"]

        self.jobs: List[JobSummary] = []
        self.calls: List[tuple] = []

    def count(self, name: str) -> int:
        return len([c for c in self.calls if c[0] == name])

    @staticmethod
    def _next(script: List):
        if not script:
            raise AssertionError("Unscripted call to FakeJenkins")
        value = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(value, Exception):
            raise value
        return value

    def list_jobs(self) -> List[JobSummary]:
        self.calls.append(("jobs",))
        return list(self.jobs)

    def start_with_parameters(self, job_name: str, parameters: Dict[str, str]) -> AcceptanceResponse:
        self.calls.append(("start", job_name, dict(parameters)))
        if self.start_error:
            raise self.start_error
        return AcceptanceResponse(status_code=self.accept_status, detail=self.accept_detail)

    def list_queued_items(self) -> List[QueueItem]:
        self.calls.append(("queue",))
        return self._next(self.queue_polls)

    def get_last_build(self, job_name: str) -> Optional[int]:
        self.calls.append(("last_build", job_name))
        if self.last_build_error:
            raise self.last_build_error
        return self.last_build

    def get_status(self, job_name: str, build_number: int) -> BuildStatus:
        self.calls.append(("status", job_name, build_number))
        return self._next(self.statuses)

    def get_log(self, job_name: str, build_number: int) -> BuildLog:
        self.calls.append(("log", job_name, build_number))
        return BuildLog(handle=BuildHandle(job_name, build_number), text=self._next(self.logs))


@pytest.fixture
def fake_jenkins():
    return FakeJenkins()


@pytest.fixture
def instant_config():
    """No waiting between polls; a ceiling so a broken script cannot spin forever."""
    return DispatchConfig(
        queue_poll_interval=0,
        build_poll_interval=0,
        resolution_timeout=None,
        max_resolution_attempts=50
    )


@pytest.fixture(scope="session", autouse=True)
def global_setup():
    """
    Runs once per test session.
    Ensures DB exists and every table is registered.
    """
    if not database_exists(TEST_ENGINE.url):
        create_database(TEST_ENGINE.url)

    init_db()

    yield


@pytest.fixture(scope="function", autouse=True)
def clean_db(global_setup):
    """
    Runs before EVERY test.
    Empties every table so history assertions start from zero.
    """
    with TEST_ENGINE.connect() as conn:
        trans = conn.begin()

        is_sqlite = "sqlite" in str(TEST_ENGINE.url)
        table_names = sqlalchemy.inspect(TEST_ENGINE).get_table_names()

        for table in table_names:
            if is_sqlite:
                conn.execute(text(f'DELETE FROM "{table}";'))
            else:
                conn.execute(text(f'TRUNCATE TABLE "{table}" CASCADE;'))

        trans.commit()

    yield
