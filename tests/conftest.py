"""Pytest fixtures for the voting API and client tests.

The app runs in-process through FastAPI's TestClient with the JSON dummy DB
swapped in for MongoDB, one fresh database file per test.
"""

import os

# Cheap hashing and the file backend before anything from evoting is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("STORAGE_BACKEND", "file")

from typing import Callable, Dict, Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from evoting.database.connection import get_storage  # noqa: E402
from evoting.main import app  # noqa: E402
from evoting.storage import FileStorage  # noqa: E402


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    """Empty JSON dummy DB in the test's temp directory."""
    return FileStorage(str(tmp_path / "db.json"))


@pytest.fixture
def client(storage: FileStorage) -> Generator[TestClient, None, None]:
    """TestClient whose requests all hit the per-test storage."""
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user_payload() -> Callable[..., Dict]:
    """Factory for valid signup payloads; each call gets unique ID, mobile and email.

    Keyword arguments override any field.
    """
    counter = {"n": 0}

    def _make(**overrides) -> Dict:
        counter["n"] += 1
        n = counter["n"]
        payload = {
            "name": f"Voter {n}",
            "age": 30,
            "email": f"voter{n}@example.com",
            "mobile": f"98765{n:05d}",
            "address": "12 MG Road, Bengaluru",
            "aadharCardNumber": f"1234567{n:05d}",
            "password": "secret123",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def signup(client: TestClient, make_user_payload) -> Callable[..., Dict]:
    """Sign up a user and return the response body plus the payload used."""
    def _signup(**overrides) -> Dict:
        payload = make_user_payload(**overrides)
        response = client.post("/user/signup", json=payload)
        assert response.status_code == 200, response.text
        body = response.json()
        body["payload"] = payload
        return body

    return _signup


def auth(token: str) -> Dict[str, str]:
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(signup) -> str:
    return signup(role="admin", name="Election Admin")["token"]


@pytest.fixture
def voter(signup) -> Dict:
    return signup()


@pytest.fixture
def add_candidate(client: TestClient, admin_token: str) -> Callable[..., Dict]:
    """Create a candidate as the admin and return the stored record."""
    def _add(name: str, party: str = "Independent", age: int = 40) -> Dict:
        response = client.post(
            "/candidate",
            json={"name": name, "party": party, "age": age},
            headers=auth(admin_token),
        )
        assert response.status_code == 200, response.text
        return response.json()["response"]

    return _add
