"""Shared test fixtures."""

import os
import sys
from datetime import date
from pathlib import Path

import pytest
import respx

# Settings needs a Firebase project before herdbook is imported
os.environ.setdefault("FIREBASE_PROJECT_ID", "test-project")
os.environ.setdefault("FIREBASE_API_KEY", "test-api-key")

# Add src/ to path so tests can import herdbook
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from herdbook.core import auth  # noqa: E402
from herdbook.core.client import RetryableError  # noqa: E402
from herdbook.core.config import settings  # noqa: E402
from herdbook.data import store as store_module  # noqa: E402
from herdbook.data.store import LocalFirstStore  # noqa: E402
from herdbook.models import (  # noqa: E402
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    CoverageRecord,
    CoverageType,
    PregnancyResult,
    SeasonBull,
    SeasonStatus,
    Sex,
    WeighingType,
    WeightEntry,
)
from herdbook.sync import queue as queue_module  # noqa: E402
from herdbook.sync.cache import CollectionCache  # noqa: E402
from herdbook.sync.queue import OfflineQueue  # noqa: E402

FIRESTORE_HOST = "https://firestore.googleapis.com"
DOCUMENTS = "/v1/projects/test-project/databases/(default)/documents"


@pytest.fixture(autouse=True)
def anonymous_session():
    """Run every test without a Firebase account (API key only)."""
    original = (settings.firebase_project_id, settings.firebase_email, settings.firebase_password)
    settings.firebase_project_id = "test-project"
    settings.firebase_email = None
    settings.firebase_password = None
    auth.sign_out()
    yield
    auth.sign_out()
    settings.firebase_project_id, settings.firebase_email, settings.firebase_password = original


@pytest.fixture
def mock_firestore():
    """Mock Firestore REST API responses."""
    with respx.mock(base_url=FIRESTORE_HOST) as mock:
        yield mock


@pytest.fixture
def mock_identity():
    """Mock Firebase Auth (Identity Toolkit and Secure Token) responses."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


# =============================================================================
# In-memory Firestore for store-level tests
# =============================================================================


class FakeFirestore:
    """Dict-backed stand-in for the document operations the store uses."""

    def __init__(self, uid: str | None = "user-1"):
        self.uid = uid
        self.collections: dict[str, dict[str, dict]] = {}
        self.offline = False
        self.writes: list[tuple[str, str, str]] = []

    def _check(self):
        if self.offline:
            raise RetryableError("Connection failed: offline")

    def docs(self, collection: str) -> dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def seed(self, collection: str, *records: dict) -> None:
        for record in records:
            self.docs(collection)[record["id"]] = {k: v for k, v in record.items() if v is not None}

    async def get_uid(self):
        return self.uid

    async def list_documents(self, collection, page_size=300):
        self._check()
        return [dict(d) for d in self.docs(collection).values()]

    async def query_documents(self, collection, field, value):
        self._check()
        return [dict(d) for d in self.docs(collection).values() if d.get(field) == value]

    async def create_document(self, collection, data, doc_id=None):
        self._check()
        record = {k: v for k, v in data.items() if v is not None}
        record["id"] = doc_id or data.get("id")
        self.docs(collection)[record["id"]] = record
        self.writes.append(("create", collection, record["id"]))
        return dict(record)

    async def set_document(self, collection, doc_id, data, merge=True):
        self._check()
        if not merge:
            self.docs(collection)[doc_id] = {"id": doc_id}
        record = self.docs(collection).setdefault(doc_id, {"id": doc_id})
        for key, value in data.items():
            if value is None:
                record.pop(key, None)
            else:
                record[key] = value
        self.writes.append(("set" if merge else "replace", collection, doc_id))
        return dict(record)

    async def delete_document(self, collection, doc_id):
        self._check()
        self.docs(collection).pop(doc_id, None)
        self.writes.append(("delete", collection, doc_id))


@pytest.fixture
def firestore(monkeypatch):
    fake = FakeFirestore()
    for module in (store_module, queue_module):
        for name in ("set_document", "delete_document"):
            monkeypatch.setattr(module, name, getattr(fake, name))
    monkeypatch.setattr(queue_module, "create_document", fake.create_document)
    monkeypatch.setattr(store_module, "list_documents", fake.list_documents)
    monkeypatch.setattr(store_module, "query_documents", fake.query_documents)
    monkeypatch.setattr(store_module, "get_uid", fake.get_uid)
    return fake


@pytest.fixture
def store(tmp_path, firestore):
    return LocalFirstStore(
        queue=OfflineQueue(tmp_path / "offline_queue.json"),
        cache=CollectionCache(tmp_path / "snapshots"),
        max_age_hours=24,
    )


# =============================================================================
# Sample Records
# =============================================================================


@pytest.fixture
def sample_cow():
    return Animal(
        id="cow-1",
        tag="V001",
        name="Mimosa",
        breed=Breed.HEREFORD,
        sex=Sex.FEMALE,
        weight_kg=450,
        birth_date=date(2020, 3, 10),
    )


@pytest.fixture
def sample_bull():
    return Animal(
        id="bull-1",
        tag="T100",
        name="Trovão",
        breed=Breed.HEREFORD_PO,
        sex=Sex.MALE,
        weight_kg=820,
        birth_date=date(2019, 8, 1),
    )


@pytest.fixture
def sample_calf():
    return Animal(
        id="calf-1",
        tag="B201",
        breed=Breed.HEREFORD,
        sex=Sex.MALE,
        weight_kg=180,
        birth_date=date(2024, 9, 20),
        dam_name="V001",
        weighings=[
            WeightEntry(id="w1", date=date(2024, 9, 20), weight_kg=35, type=WeighingType.BIRTH),
            WeightEntry(id="w2", date=date(2025, 3, 20), weight_kg=180, type=WeighingType.WEANING),
        ],
    )


@pytest.fixture
def sample_herd(sample_cow, sample_bull, sample_calf):
    heifer = Animal(
        id="heifer-1",
        tag="N050",
        breed=Breed.BRAFORD,
        sex=Sex.FEMALE,
        weight_kg=300,
        birth_date=date(2024, 6, 1),
    )
    sold = Animal(
        id="steer-9",
        tag="S009",
        breed=Breed.OTHER,
        sex=Sex.MALE,
        weight_kg=510,
        status=AnimalStatus.SOLD,
    )
    return [sample_cow, sample_bull, sample_calf, heifer, sold]


@pytest.fixture
def sample_season():
    return BreedingSeason(
        id="season-1",
        name="Monta 2024/25",
        start_date=date(2024, 11, 1),
        end_date=date(2025, 1, 31),
        status=SeasonStatus.ACTIVE,
        exposed_cow_ids=["cow-1", "cow-2", "cow-3"],
        bulls=[SeasonBull(id="bull-1", tag="T100")],
        coverage_records=[
            CoverageRecord(
                id="cov-1",
                cow_id="cow-1",
                cow_tag="V001",
                type=CoverageType.NATURAL,
                date=date(2024, 11, 10),
                bull_id="bull-1",
                bull_tag="T100",
                pregnancy_result=PregnancyResult.POSITIVE,
                pregnancy_check_date=date(2025, 1, 10),
                expected_calving_date=date(2025, 8, 20),
            ),
            CoverageRecord(
                id="cov-2",
                cow_id="cow-2",
                cow_tag="V002",
                type=CoverageType.FTAI,
                date=date(2024, 11, 15),
                semen_code="SEM-77",
                pregnancy_result=PregnancyResult.NEGATIVE,
                pregnancy_check_date=date(2025, 1, 15),
            ),
        ],
    )
