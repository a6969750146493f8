import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import crud
from errors import LastAdminError


def test_user_management_requires_admin(client, member, login):
    login("alice")
    assert client.get("/api/users").status_code == 403
    assert client.get("/api/users/pending").status_code == 403


def test_admin_lists_and_activates_pending_users(client, db_session, admin, make_user, login):
    pending = make_user("waiting", role="pending")
    login("admin")

    r = client.get("/api/users/pending")
    assert r.status_code == 200
    assert [u["username"] for u in r.json()] == ["waiting"]

    r = client.patch(f"/api/users/{pending.id}/activate")
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "user"

    r = client.get("/api/users/pending")
    assert r.json() == []

    r = client.get("/api/users")
    assert {u["username"] for u in r.json()} == {"admin", "waiting"}


def test_admin_creates_user_with_role(client, admin, login):
    login("admin")

    r = client.post("/api/users", json={"username": "helper", "password": "secret123", "role": "admin"})
    assert r.status_code == 201, r.text
    assert r.json()["role"] == "admin"

    r = client.post("/api/users", json={"username": "helper", "password": "secret123"})
    assert r.status_code == 409


def test_role_change_rejects_unknown_role(client, admin, member, login):
    login("admin")
    r = client.patch(f"/api/users/{member.id}/role", json={"role": "superuser"})
    assert r.status_code == 400


def test_last_admin_cannot_be_demoted_or_deleted(client, db_session, admin, login):
    login("admin")

    r = client.patch(f"/api/users/{admin.id}/role", json={"role": "user"})
    assert r.status_code == 400
    assert "last admin" in r.json()["detail"]

    r = client.delete(f"/api/users/{admin.id}")
    assert r.status_code == 400

    db_session.expire_all()
    assert crud.get_user(db_session, admin.id).role == "admin"


def test_admin_can_be_demoted_when_another_remains(db_session, admin, make_user):
    second = make_user("second", role="admin")

    updated = crud.update_user_role(db_session, admin.id, "user")
    assert updated.role == "user"

    with pytest.raises(LastAdminError):
        crud.update_user_role(db_session, second.id, "user")


def test_delete_user_with_borrowed_item_is_refused(client, db_session, admin, member, login, make_item):
    item = make_item("Drill")
    crud.borrow_item(db_session, item.id, member.id)
    login("admin")

    r = client.delete(f"/api/users/{member.id}")
    assert r.status_code == 409

    db_session.expire_all()
    assert crud.get_user(db_session, member.id) is not None


def test_delete_unknown_user(client, admin, login):
    login("admin")
    r = client.delete("/api/users/missing")
    assert r.status_code == 404


def test_admins_demoting_each_other_leave_one_admin(app_module, db_session, admin, make_user):
    second = make_user("second", role="admin")
    barrier = threading.Barrier(2)

    def demote(user_id):
        db = app_module.SessionLocal()
        try:
            barrier.wait(timeout=5)
            crud.update_user_role(db, user_id, "user")
            return "ok"
        except LastAdminError:
            return "refused"
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(demote, [admin.id, second.id]))

    assert sorted(results) == ["ok", "refused"]

    db_session.expire_all()
    assert len(crud.list_users(db_session, role="admin")) == 1


def test_refused_last_admin_delete_leaves_user(db_session, admin):
    with pytest.raises(LastAdminError):
        crud.delete_user(db_session, admin.id)

    db_session.expire_all()
    assert crud.get_user(db_session, admin.id).role == "admin"


def test_demoting_regular_user_is_not_guarded(db_session, admin, member):
    updated = crud.update_user_role(db_session, member.id, "pending")
    assert updated.role == "pending"
