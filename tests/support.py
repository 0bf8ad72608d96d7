"""Shared helpers for tests: fresh schema per test and an API test case with auth helpers."""

import os
import tempfile
import unittest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.api.dependencies import get_image_store
from app.core.database import ConnectionState, SessionLocal, db_monitor, engine, get_db
from app.main import app
from app.models import Base
from app.services.image_store import LocalImageStore
from app.services.users import create_user

# Smallest valid PNG (1x1, transparent).
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


def reset_database() -> None:
    """Drop and recreate every table; forget any recorded outage."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db_monitor.state = ConnectionState()


class ApiTestCase(unittest.TestCase):
    """TestClient against the real app, an empty database, and a temporary image directory."""

    def setUp(self) -> None:
        reset_database()
        self._upload_dir = tempfile.TemporaryDirectory()
        self.store = LocalImageStore(self._upload_dir.name)
        app.dependency_overrides[get_image_store] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        db_monitor.state = ConnectionState()
        self._upload_dir.cleanup()

    def make_user(
        self,
        username: str,
        password: str = "secret-pw",
        role: str = "editor",
        name: str | None = None,
    ) -> int:
        db = SessionLocal()
        try:
            user = create_user(
                db,
                name=name or username.title(),
                username=username,
                password=password,
                role=role,
            )
            return user.id
        finally:
            db.close()

    def login(self, username: str, password: str = "secret-pw") -> str:
        response = self.client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": password},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["token"]

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def token_for(self, username: str, role: str, name: str | None = None) -> str:
        self.make_user(username, role=role, name=name)
        return self.login(username)

    def use_unreachable_database(self) -> None:
        """Route every request's session to a SQLite file that cannot be opened."""
        missing = os.path.join(self._upload_dir.name, "missing-dir", "ipb.db")
        unreachable = create_engine(f"sqlite:///{missing}")
        self.addCleanup(unreachable.dispose)
        sessions = sessionmaker(autocommit=False, autoflush=False, bind=unreachable)

        def get_unreachable_db():
            db = sessions()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = get_unreachable_db
