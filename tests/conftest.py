import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import comicseed.models  # noqa: F401 - registers every table
from comicseed.config import Settings
from comicseed.database import Base
from helpers import RecordingProvider

# 1. SETUP TEST DATABASE
# SQLite in-memory with StaticPool: every session shares one connection,
# so rows committed by the seeder are visible to the test session.
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# 2. DB SESSION FIXTURE
@pytest.fixture(scope="function")
def db():
    """
    Creates a fresh database for every single test case.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    yield session

    # Cleanup
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db):
    """What the orchestrator uses to open its own session on the test database"""
    return TestingSessionLocal


# 3. FILESYSTEM LAYOUT
@pytest.fixture(scope="function")
def seed_settings(tmp_path) -> Settings:
    data_dir = tmp_path / "data"
    public_dir = tmp_path / "public"
    data_dir.mkdir()
    (public_dir / "images").mkdir(parents=True)

    return Settings(
        _env_file=None,
        database_url=SQLALCHEMY_DATABASE_URL,
        data_dir=data_dir,
        public_dir=public_dir,
        log_dir=tmp_path / "logs",
        cache_dir=tmp_path / "cache",
        status_file=tmp_path / "cache" / "seed-progress.json",
        users_sources_raw="users.json",
        comics_sources_raw="comics.json,comicsdata*.json",
        chapters_sources_raw="chapters.json",
        upload_provider="local",
        image_download_retries=1,
        # Cheapest cost bcrypt accepts
        seed_bcrypt_rounds=4,
    )


# 4. UPLOAD PROVIDER DOUBLE
@pytest.fixture(scope="function")
def provider() -> RecordingProvider:
    return RecordingProvider()
