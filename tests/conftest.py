"""
Shared fixtures: throwaway SQLite database per test, local storage under
tmp_path, a scripted media probe, and an httpx client bound to the app.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="lifetube-tests-")
os.environ.setdefault("LIFETUBE_DB_URL", "sqlite+aiosqlite:///" + os.path.join(_TMP, "bootstrap.db"))
os.environ.setdefault("LIFETUBE_UPLOADS_DIR", os.path.join(_TMP, "uploads"))
os.environ.setdefault("LIFETUBE_TEMP_DIR", os.path.join(_TMP, "uploads", "temp"))
os.environ.setdefault("LIFETUBE_SECRET_KEY", "test-secret")

import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from lifetube.core.database import Base, get_db
from lifetube.core.security import create_access_token
from lifetube.main import app
from lifetube.models.models import Like, LikeKind, User, Video
from lifetube.services.media.ingestion_service import IngestionService, get_ingestion_service
from lifetube.services.media.media_probe import ProbeError
from lifetube.services.storage.storage_service import LocalStorage, get_storage


class FakeProbe:
    """Stands in for ffprobe/ffmpeg, which are not installed on CI."""

    def __init__(self, duration: int = 42, frame_ok: bool = True):
        self.duration = duration
        self.frame_ok = frame_ok
        self.probed: List[Path] = []
        self.extracted: List[Path] = []

    async def probe_duration(self, video_path: Path) -> int:
        self.probed.append(video_path)
        return self.duration

    async def extract_frame(self, video_path: Path, output_path: Path) -> Path:
        self.extracted.append(video_path)
        if not self.frame_ok:
            raise ProbeError("ffmpeg not available")
        output_path.write_bytes(b"\x89PNG\r\n\x1a\nframe")
        return output_path


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifetube.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads", "/uploads")


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    return tmp_path / "temp"


@pytest.fixture
def ingestion(storage, probe, temp_dir) -> IngestionService:
    return IngestionService(storage=storage, probe=probe, temp_dir=temp_dir)


@pytest_asyncio.fixture
async def client(session_factory, storage, ingestion):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ingestion_service] = lambda: ingestion

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def users(session_factory) -> Dict[str, User]:
    created = {
        name: User(id=uuid.uuid4(), username=name, email=f"{name}@example.com", avatar_url=f"/avatars/{name}.png")
        for name in ("alice", "bob", "carol")
    }
    async with session_factory() as session:
        session.add_all(created.values())
        await session.commit()
    return created


@pytest.fixture
def auth():
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def make_video(session_factory):
    """Insert a video row directly, bypassing the upload pipeline."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    async def _make(owner: User, title: str = "Clip", views: int = 0, category: str = "General",
                    description: str = "", video_url: Optional[str] = None,
                    thumbnail_url: Optional[str] = None) -> Video:
        counter["n"] += 1
        video = Video(
            id=uuid.uuid4(),
            user_id=owner.id,
            title=title,
            description=description,
            category=category,
            tags=[],
            video_url=video_url or f"/uploads/videos/{title}.mp4",
            thumbnail_url=thumbnail_url,
            duration=10,
            views=views,
            created_at=base + timedelta(minutes=counter["n"]),
        )
        async with session_factory() as session:
            session.add(video)
            await session.commit()
        return video

    return _make


@pytest.fixture
def add_marks(session_factory):
    async def _add(video: Video, kinds: List[LikeKind]) -> None:
        async with session_factory() as session:
            for kind in kinds:
                voter = User(id=uuid.uuid4(), username=f"voter-{uuid.uuid4().hex[:8]}")
                session.add(voter)
                session.add(Like(user_id=voter.id, video_id=video.id, type=kind))
            await session.commit()

    return _add
