import pytest
from fastapi import status
from jose import jwt

from routes.assignment.assignment_routes import SubmissionOut
from routes.schedule.schedule_routes import ScheduleEventOut
from routes.users.user_routes import UserSummary
from services.auth_service import JWT_ALGORITHM, JWT_SECRET

from .conftest import TEST_PASSWORD


def test_register_returns_user_and_token(client):
    r = client.post(
        "/api/auth/register",
        json={"email": "ann@example.com", "password": TEST_PASSWORD, "name": "Ann", "role": "teacher"},
    )
    assert r.status_code == status.HTTP_200_OK, r.text
    data = r.json()
    assert data["user"]["email"] == "ann@example.com"
    assert data["user"]["role"] == "teacher"
    payload = jwt.decode(data["token"], JWT_SECRET, algorithms=[JWT_ALGORITHM])
    assert payload["sub"] == str(data["user"]["id"])
    assert payload["role"] == "teacher"


def test_register_unknown_role_falls_back_to_student(client):
    r = client.post(
        "/api/auth/register",
        json={"email": "bob@example.com", "password": TEST_PASSWORD, "name": "Bob", "role": "admin"},
    )
    assert r.json()["user"]["role"] == "student"


def test_register_requires_fields(client):
    r = client.post("/api/auth/register", json={"email": "x@example.com", "password": TEST_PASSWORD})
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_register_rejects_duplicate_email(client, register):
    register("Ann")
    r = client.post(
        "/api/auth/register",
        json={"email": "ann@example.com", "password": "other", "name": "Ann 2"},
    )
    assert r.status_code == status.HTTP_409_CONFLICT


def test_login_and_me(client, register):
    user, _, _ = register("Ann")
    r = client.post("/api/auth/login", json={"email": "ann@example.com", "password": TEST_PASSWORD})
    assert r.status_code == status.HTTP_200_OK
    token = r.json()["token"]

    r = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["user"]["id"] == user["id"]


def test_login_wrong_password(client, register):
    register("Ann")
    r = client.post("/api/auth/login", json={"email": "ann@example.com", "password": "nope"})
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    r = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_password_is_not_stored_in_plaintext(client, register, session_factory):
    from models.auth.user_models import User

    register("Ann")
    db = session_factory()
    try:
        user = db.query(User).filter_by(email="ann@example.com").one()
        assert user.password_hash != TEST_PASSWORD
    finally:
        db.close()


def test_me_requires_token(client):
    assert client.get("/api/me").status_code == status.HTTP_401_UNAUTHORIZED
    r = client.get("/api/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_change_password(client, register):
    _, headers, _ = register("Ann")
    r = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "NewPass456"},
        headers=headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST

    r = client.post(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "NewPass456"},
        headers=headers,
    )
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"ok": True}

    r = client.post("/api/auth/login", json={"email": "ann@example.com", "password": "NewPass456"})
    assert r.status_code == status.HTTP_200_OK


def test_user_search(client, register):
    _, headers, _ = register("Ann")
    register("Annika")
    register("Bob")

    r = client.get("/api/users", params={"q": "ann"}, headers=headers)
    assert r.status_code == status.HTTP_200_OK
    names = sorted(u["name"] for u in r.json()["users"])
    assert names == ["Ann", "Annika"]

    r = client.get("/api/users", params={"q": "  "}, headers=headers)
    assert r.json() == {"users": []}


def test_user_search_treats_wildcards_literally(client, register):
    _, headers, _ = register("Ann")
    register("Bob", email="bob_smith@example.com")
    register("Carl", email="carl.jones@example.com")

    for q in ("_", "%", "%_%"):
        r = client.get("/api/users", params={"q": q}, headers=headers)
        assert r.status_code == status.HTTP_200_OK
        assert r.json() == {"users": []}, q

    r = client.get("/api/users", params={"q": "bob_"}, headers=headers)
    assert [u["name"] for u in r.json()["users"]] == ["Bob"]


@pytest.mark.parametrize("schema", [UserSummary, SubmissionOut, ScheduleEventOut])
def test_orm_schemas_read_attributes(schema):
    assert schema.model_config.get("from_attributes") is True
    assert "Config" not in vars(schema)
