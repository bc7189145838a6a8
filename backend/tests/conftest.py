from pathlib import Path
import os
import tempfile
import uuid
import pytest

# Point the app at a throwaway SQLite file before `seva_kendra` is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="seva_kendra_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ.setdefault("ENV", "dev")

from sqlmodel import Session, select  # noqa: E402
from seva_kendra import models  # noqa: E402
from seva_kendra.database import engine, create_db_and_tables  # noqa: E402

CATALOG = [
    ("Birth Certificate", 30.0, True),
    ("Income Certificate", 30.0, True),
    ("PAN Card", 107.0, True),
    ("Old Pension Scheme", 0.0, False),
]


@pytest.fixture(scope="session", autouse=True)
def seeded_db():
    """Create the tables once and seed a small service catalog."""
    create_db_and_tables()
    with Session(engine) as session:
        for name, fee, active in CATALOG:
            exists = session.exec(select(models.Service).where(models.Service.name == name)).first()
            if not exists:
                session.add(models.Service(name=name, fee=fee, is_active=active))
        session.commit()
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def phone():
    """A fresh 10-digit phone number so tests never share applicants."""
    return "9" + str(uuid.uuid4().int)[:9]
