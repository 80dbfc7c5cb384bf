"""Shared test helpers: in-memory credential database, settings and seeded users."""

from collections.abc import Generator

from pydantic import SecretStr
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.security import hash_password
from app.models import Base, PasswordResetToken, User
from app.services.credential_store import CredentialStore

TEST_SECRET = "test-session-secret-0123456789abcdef"


def make_settings(**overrides: object) -> Settings:
    """Settings for tests; ignores any local .env file."""
    values: dict[str, object] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "SESSION_SECRET": SecretStr(TEST_SECRET),
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class InMemoryDatabase:
    """One SQLite in-memory database shared by every session it hands out."""

    def __init__(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def store(self) -> CredentialStore:
        return CredentialStore(self.session())

    def get_db(self) -> Generator[Session, None, None]:
        """Drop-in override for app.core.database.get_db."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def add_user(
        self,
        username: str = "alice",
        email: str = "alice@example.com",
        password: str = "oldpass1",
        role: str = "Customer",
        is_active: bool = True,
        **fields: str,
    ) -> int:
        """Insert a user and return its id."""
        with self.session() as db:
            user = User(
                username=username,
                email=email,
                password_hash=hash_password(password),
                role=role,
                is_active=is_active,
                name=fields.get("name", username.title()),
                surname=fields.get("surname", ""),
                phone=fields.get("phone", ""),
                city=fields.get("city", ""),
                address=fields.get("address", ""),
            )
            db.add(user)
            db.commit()
            return user.id

    def get_user(self, user_id: int) -> User | None:
        with self.session() as db:
            user = db.get(User, user_id)
            if user is not None:
                db.expunge(user)
            return user

    def count_reset_tokens(self, user_id: int) -> int:
        with self.session() as db:
            return db.scalar(
                select(func.count())
                .select_from(PasswordResetToken)
                .where(PasswordResetToken.user_id == user_id)
            )

    def dispose(self) -> None:
        self.engine.dispose()


class ApiTestCase:
    """
    Mixin for unittest.TestCase: app.main.app wired to a fresh in-memory database.

    Subclasses may set settings_overrides before setUp runs.
    """

    settings_overrides: dict[str, object] = {}

    def setUp(self) -> None:
        from fastapi.testclient import TestClient

        from app.core.config import get_settings
        from app.core.database import get_db, get_session_factory
        from app.main import app

        self.db = InMemoryDatabase()
        self.settings = make_settings(**self.settings_overrides)
        self.app = app
        app.dependency_overrides[get_db] = self.db.get_db
        app.dependency_overrides[get_session_factory] = lambda: self.db.SessionLocal
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        self.app.dependency_overrides.clear()
        self.db.dispose()

    def login(self, username: str, password: str):
        return self.client.post(
            "/api/v1/auth/login", json={"username": username, "password": password}
        )
