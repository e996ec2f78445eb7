"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import get_settings  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory database, API)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep tests off real databases and AI providers."""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# ========================================
# Database
# ========================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with the full schema."""
    from studyunlock.db.database import configure_engine, init_db

    engine = configure_engine(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session bound to the in-memory engine."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


# ========================================
# Embeddings
# ========================================


class KeywordModel:
    """
    Stand-in for a SentenceTransformer.

    Each embedded text gets the vector of the first registered prefix it
    starts with; anything else gets a zero vector.
    """

    def __init__(self, vectors: dict[str, list[float]], dimension: int = 4):
        self.vectors = vectors
        self.dimension = dimension
        self.calls = 0

    def _vector(self, text: str) -> np.ndarray:
        for prefix, vector in self.vectors.items():
            if text.startswith(prefix):
                return np.asarray(vector, dtype=np.float32)
        return np.zeros(self.dimension, dtype=np.float32)

    def encode(self, texts, **kwargs):
        self.calls += 1
        if isinstance(texts, str):
            return self._vector(texts)
        return np.stack([self._vector(t) for t in texts])


@pytest.fixture
def keyword_vectors():
    """
    Vectors chosen so that against the sample syllabus:

    - "Photosynthesis" (extracted) ~ "Photosynthesis" (syllabus): 1.0
    - "ATP synthesis" ~ "Cellular respiration": 0.6 (borderline)
    - "Chlorophyll" matches nothing
    """
    return {
        # syllabus
        "Photosynthesis —": [1.0, 0.0, 0.0, 0.0],
        "Cellular respiration —": [0.0, 1.0, 0.0, 0.0],
        "Mitosis —": [0.0, 0.0, 1.0, 0.0],
        # extracted
        "Photosynthesis:": [1.0, 0.0, 0.0, 0.0],
        "ATP synthesis:": [0.0, 0.6, 0.0, 0.8],
        "Chlorophyll:": [-1.0, 0.0, 0.0, 0.0],
    }


@pytest.fixture
def embedding_service(keyword_vectors):
    from studyunlock.semantic import EmbeddingService

    return EmbeddingService(model=KeywordModel(keyword_vectors))


# ========================================
# Sample data
# ========================================


@pytest.fixture
def course(db_session):
    from studyunlock.content import SyllabusItem, create_course

    return create_course(
        db_session,
        "Biology 101",
        [
            SyllabusItem("Photosynthesis", category="Biology", importance=1),
            SyllabusItem("Cellular respiration", category="Biology", importance=1),
            SyllabusItem("Mitosis", category="Biology", importance=2),
        ],
    )


@pytest.fixture
def content_job(db_session):
    from studyunlock.content import ExtractedItem, register_content_job

    return register_content_job(
        db_session,
        "user-1",
        [
            ExtractedItem(
                "Photosynthesis",
                definition="Plants convert light energy into chemical energy.",
                source_timestamp="02:15",
            ),
            ExtractedItem("ATP synthesis", definition="Cells produce ATP from glucose."),
            ExtractedItem("Chlorophyll", definition="Green pigment that absorbs light."),
        ],
        url="https://example.com/biology-video",
    )


@pytest.fixture
def flashcards(db_session, course):
    """Locked flashcards for user-1 in the sample course."""
    from studyunlock.flashcards import UnlockService

    UnlockService(db_session).ensure_course_flashcards("user-1", course.id)
    return UnlockService(db_session).list_flashcards("user-1", course_id=course.id)


@pytest.fixture
def matches(db_session, course, content_job, flashcards):
    """
    One high-confidence and one medium-confidence match for the sample job.

    Photosynthesis -> Photosynthesis (0.92), ATP synthesis -> Cellular respiration (0.62).
    """
    from studyunlock.db.models import MatchType
    from studyunlock.matching import MatchResult, get_matches_for_content_job, write_concept_matches

    concepts = {c.concept_text: c for c in content_job.concepts}
    syllabus = {s.concept_text: s for s in course.syllabus_concepts}
    write_concept_matches(
        db_session,
        [
            MatchResult(
                concept_id=concepts["Photosynthesis"].id,
                syllabus_concept_id=syllabus["Photosynthesis"].id,
                confidence=0.92,
                match_type=MatchType.EXACT,
                rationale="Same concept.",
            ),
            MatchResult(
                concept_id=concepts["ATP synthesis"].id,
                syllabus_concept_id=syllabus["Cellular respiration"].id,
                confidence=0.62,
                match_type=MatchType.RELATED,
                rationale="ATP synthesis is part of cellular respiration.",
            ),
        ],
    )
    by_syllabus = {m.syllabus_concept.concept_text: m for m in get_matches_for_content_job(db_session, content_job.id)}
    return by_syllabus


# ========================================
# API
# ========================================


@pytest.fixture
def client(db_session):
    """TestClient whose requests share the test session."""
    from fastapi.testclient import TestClient

    from studyunlock.api.main import app
    from studyunlock.db.database import get_session

    def override():
        yield db_session

    app.dependency_overrides[get_session] = override
    yield TestClient(app)
    app.dependency_overrides.clear()
