"""
Test configuration and fixtures.

Provides:
- In-memory SQLite session (schema created and dropped per test)
- Users in every role and JWT session cookies for them
- HTTPX AsyncClient with proper headers
- Local photo storage rooted in tmp_path
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Settings are read at import time; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.deps import COOKIE_NAME, get_db
from app.core.security import create_session_token
from app.db.base import Base
from app.db.enums import Role
from app.db.models import User
from app.main import app
from app.schemas.auth import UserSession
from app.services.storage_service import LocalStorageBackend, get_storage_backend


# =============================================================================
# Database Fixtures
# =============================================================================

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code may commit freely."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


def make_user(db: Session, role: Role = Role.USER, name: str = "Test User", **fields) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"test-{uuid.uuid4().hex[:8]}@test.com",
        name=name,
        role=role.value,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db: Session) -> User:
    return make_user(db, Role.USER, name="Inspector One")


@pytest.fixture(scope="function")
def other_user(db: Session) -> User:
    return make_user(db, Role.USER, name="Inspector Two")


@pytest.fixture(scope="function")
def admin_user(db: Session) -> User:
    return make_user(db, Role.ADMIN, name="Admin")


@pytest.fixture(scope="function")
def pending_user(db: Session) -> User:
    return make_user(db, Role.PENDING, name="Newcomer")


@pytest.fixture
def user_factory(db: Session):
    """Create extra users: user_factory(Role.ADMIN, name=...)."""
    def _make(role: Role = Role.USER, **fields) -> User:
        return make_user(db, role, **fields)
    return _make


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    __test__ = False

    user: User
    token: str
    cookie_name: str = COOKIE_NAME

    @property
    def session(self) -> UserSession:
        return session_for(self.user)


def session_for(user: User) -> UserSession:
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.name,
    )


def auth_for(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    return auth_for(test_user)


@pytest.fixture(scope="function")
def admin_auth(admin_user: User) -> TestAuth:
    return auth_for(admin_user)


@pytest.fixture
def user_session(test_user: User) -> UserSession:
    return session_for(test_user)


@pytest.fixture
def other_session(other_user: User) -> UserSession:
    return session_for(other_user)


@pytest.fixture
def admin_session(admin_user: User) -> UserSession:
    return session_for(admin_user)


# =============================================================================
# Storage
# =============================================================================

@pytest.fixture(scope="function")
def local_storage(tmp_path) -> LocalStorageBackend:
    config = settings.model_copy(
        update={"LOCAL_STORAGE_PATH": str(tmp_path), "STORAGE_BASE_URL": ""}
    )
    return LocalStorageBackend(config)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_dependencies(db: Session, storage: LocalStorageBackend) -> None:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_backend] = lambda: storage


def _client(auth: TestAuth | None = None) -> AsyncClient:
    cookies = {auth.cookie_name: auth.token} if auth else None
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    )


@pytest.fixture(scope="function")
async def client(db: Session, local_storage) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints and auth failures."""
    _override_dependencies(db, local_storage)
    async with _client() as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    local_storage,
    test_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as test_user (role USER)."""
    _override_dependencies(db, local_storage)
    async with _client(test_auth) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(
    db: Session,
    local_storage,
    admin_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as admin_user."""
    _override_dependencies(db, local_storage)
    async with _client(admin_auth) as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# Form Data
# =============================================================================

PHOTO_URL = "https://files.example.com/inspecoes/temp/inspector/IMG_1700000000000_abc123.jpg"


def build_valid_form() -> dict[str, dict]:
    """A complete checklist that passes submit validation."""
    return {
        "section1": {
            "q1_equipe_integrada": "YES",
            "q2_cracha_visivel": "YES",
            "q3_lider_presente": "YES",
            "q4_pdst_elaborado": "YES",
            "q5_pdst_passos_adequados": "YES",
            "q6_riscos_condizentes": "YES",
            "q7_barreiras_controle": "YES",
            "q8_pdst_assinado": "NO",
            "q9_lider_identificado": "YES",
            "q10_reuniao_pretrab": "YES",
            "q11_foto_pdst": [PHOTO_URL],
        },
        "section2": {
            "q11_pt_emitida": "YES",
            "q12_emitente_treinado": "NA",
        },
        "section3": {
            "q14_usa_equipamentos": "NO",
        },
        "section4": {
            "q15_usa_maquinas": "NO",
            "q16_cunhas_disponiveis": "YES",
            "q17_caminhoes_calcos": "YES",
        },
        "section5": {
            "q18_uso_epi": "YES",
            "q19_epi_adequado": "YES",
            "q20_bolsa_epi": "YES",
            "q21_lanterna_noturna": "NA",
        },
        "section6": {
            "q22_local_sinalizado": "YES",
            "q23_veiculos_barreira": "YES",
            "q24_dispositivos_luminosos": "NA",
        },
        "section7": {
            "q25_escavacao_profunda": "NO",
            "q26_materiais_distantes": "YES",
        },
        "section8": {
            "q27_equipe_consciente": "YES",
            "q28_fortalecer_realizado": "NO",
            "q29_indicacao_fortalecer": "NO",
            "q30_paralisacao": "NO",
            "q31_nc_pendentes": "NO",
        },
        "section9": {
            "fotos_gerais": [PHOTO_URL],
        },
    }


@pytest.fixture
def valid_form() -> dict[str, dict]:
    return build_valid_form()
