import os
import sys
from pathlib import Path
from typing import List

import pytest

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# 테스트용 환경 변수 세팅 (blog 모듈 임포트 전에 적용)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POSTGRES_SSLMODE", "disable")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CORS_ORIGINS", '["*"]')
os.environ.setdefault("SESSION_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALLOW_REGISTRATIONS", "true")
os.environ.setdefault("AUTO_TRANSLATE", "false")

# sys.path에 backend 추가하여 'blog' 패키지 검색 가능하게 함
repo_root = Path(__file__).resolve().parents[2]
backend_path = repo_root / "backend"
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from blog.main import app
from blog.database import Base
from blog.database import get_db as real_get_db
from blog.articles.services.backends import TranslationBackendError
from blog.articles.services.translation import ChunkedTranslator, get_translator
from blog.categories import service as category_service
from blog.categories.schemas import CategoryCreate
from blog.users.models import Role
from blog.users.schema import UserCreate
from blog.users.service import create_user

PASSWORD = "correct-horse-battery"


class PrefixBackend:
    """번역 대신 "EN " 접두어를 붙이는 테스트용 백엔드"""

    def __init__(self, prefix: str = "EN "):
        self.prefix = prefix
        self.calls: List[str] = []

    async def translate(self, text: str) -> str:
        self.calls.append(text)
        return f"{self.prefix}{text}"


class FailingBackend:
    def __init__(self, message: str = "HTTP 503"):
        self.message = message
        self.calls: List[str] = []

    async def translate(self, text: str) -> str:
        self.calls.append(text)
        raise TranslationBackendError(self.message)


class SleepRecorder:
    """asyncio.sleep 대체: 실제로 기다리지 않고 요청된 시간만 기록"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_translator(backend, **kwargs) -> ChunkedTranslator:
    kwargs.setdefault("sleep", SleepRecorder())
    return ChunkedTranslator(backend, **kwargs)


@pytest.fixture()
async def test_engine():
    # 메모리 SQLite로 빠른 테스트 (테스트마다 새 DB)
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db(test_engine):
    async_session = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture()
def translator_backend():
    return PrefixBackend()


@pytest.fixture()
def translator(translator_backend):
    return make_translator(translator_backend)


@pytest.fixture(autouse=True)
async def override_db(db, translator):
    async def _get_db():
        yield db
    app.dependency_overrides[real_get_db] = _get_db
    app.dependency_overrides[get_translator] = lambda: translator
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    async def _make_user(role: Role = Role.USER, email: str | None = None, name: str | None = None):
        counter["n"] += 1
        email = email or f"{role.value.lower()}{counter['n']}@blogtest.io"
        name = name or f"{role.value.title()} {counter['n']}"
        return await create_user(UserCreate(name=name, email=email, password=PASSWORD), db, role=role)

    return _make_user


@pytest.fixture()
def login(client):
    """이메일로 로그인해서 Bearer 헤더 반환 (쿠키는 비워서 익명 요청과 섞이지 않게 함)"""

    async def _login(email: str) -> dict:
        response = await client.post("/api/auth/sign-in/email", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture()
def user_headers(make_user, login):
    async def _user_headers(role: Role = Role.USER):
        user = await make_user(role)
        return user, await login(user.email)

    return _user_headers


@pytest.fixture()
async def category(db):
    return await category_service.create_category(db, CategoryCreate(name="Voyage", description="Récits de voyage"))
