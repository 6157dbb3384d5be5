from fastapi.testclient import TestClient

from app.db import init_db
from app.main import app
from app.models.user_account import Role
from conftest import PASSWORD, login, seed_user

client = TestClient(app)

ADMIN = None
ADMIN_UID = None


def setup_module(module):
    global ADMIN, ADMIN_UID
    init_db(reset=True)
    ADMIN_UID = seed_user("users-admin@example.com", role=Role.ADMIN, name="Boss")
    ADMIN = login(client, "users-admin@example.com")


def test_me_reports_capabilities():
    res = client.get("/api/auth/me", headers=ADMIN)
    assert res.status_code == 200
    body = res.json()
    assert body["role"] == "admin"
    assert body["is_admin"] is True
    assert body["can_modify_stock"] is True
    assert body["is_user"] is False


def test_create_and_list_users():
    res = client.post(
        "/api/users",
        json={"name": "Clerk", "email": "New.Clerk@example.com", "password": PASSWORD},
        headers=ADMIN,
    )
    assert res.status_code == 201, res.text
    created = res.json()
    assert created["role"] == "user"
    assert created["is_active"] is True
    assert created["email"] == "new.clerk@example.com"

    emails = [u["email"] for u in client.get("/api/users", headers=ADMIN).json()]
    assert "new.clerk@example.com" in emails

    clerk = login(client, "new.clerk@example.com")
    me = client.get("/api/auth/me", headers=clerk).json()
    assert me["can_modify_stock"] is False
    assert client.get("/api/users", headers=clerk).status_code == 403


def test_create_user_validation():
    missing = client.post("/api/users", json={"name": "X", "email": "", "password": "p"}, headers=ADMIN)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Please fill in all fields"

    bad_role = client.post(
        "/api/users",
        json={"name": "X", "email": "x@example.com", "password": "p", "role": "owner"},
        headers=ADMIN,
    )
    assert bad_role.status_code == 400

    dup = client.post(
        "/api/users",
        json={"name": "Again", "email": "users-admin@example.com", "password": "p"},
        headers=ADMIN,
    )
    assert dup.status_code == 400


def test_deactivate_revokes_sessions_and_blocks_login():
    uid = seed_user("to-deactivate@example.com")
    victim = login(client, "to-deactivate@example.com")
    assert client.get("/api/auth/me", headers=victim).status_code == 200

    res = client.post(f"/api/users/{uid}/toggle-status", headers=ADMIN)
    assert res.status_code == 200
    assert res.json()["is_active"] is False

    assert client.get("/api/auth/me", headers=victim).status_code == 401
    res = client.post("/api/auth/login", json={"email": "to-deactivate@example.com", "password": PASSWORD})
    assert res.status_code == 401

    res = client.post(f"/api/users/{uid}/toggle-status", headers=ADMIN)
    assert res.json()["is_active"] is True
    login(client, "to-deactivate@example.com")


def test_admin_cannot_toggle_self():
    res = client.post(f"/api/users/{ADMIN_UID}/toggle-status", headers=ADMIN)
    assert res.status_code == 400


def test_toggle_unknown_user():
    res = client.post("/api/users/does-not-exist/toggle-status", headers=ADMIN)
    assert res.status_code == 404


def test_logout_invalidates_token():
    seed_user("leaving@example.com")
    headers = login(client, "leaving@example.com")
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_bootstrap_admin_is_created_once():
    from app.db import SessionLocal
    from app.services.user_service import UserService

    db = SessionLocal()
    try:
        svc = UserService(db)
        first = svc.ensure_bootstrap_admin("root@example.com", PASSWORD, "Root")
        again = svc.ensure_bootstrap_admin("root@example.com", "other", "Root")
        assert first.uid == again.uid
        assert first.role is Role.ADMIN
        assert svc.ensure_bootstrap_admin(None, None, "Nobody") is None
    finally:
        db.close()
    login(client, "root@example.com")
