from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="recurring-tasks-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")

import pytest  # noqa: E402

from recurring_tasks.infra import models  # noqa: E402,F401
from recurring_tasks.infra.db import Base, engine  # noqa: E402


@pytest.fixture()
def db():
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
