import os
import importlib

import pytest
from fastapi.testclient import TestClient


APP_MODULES = (
    "settings",
    "db",
    "orm",
    "auth",
    "crud",
    "notifications",
    "dependencies",
    "routers.auth_api",
    "routers.users_api",
    "routers.categories_api",
    "routers.inventory_api",
    "routers.history_api",
    "routers.templates_api",
    "routers.inventory_ui",
    "routers.categories_ui",
    "routers",
    "main",
)


@pytest.fixture(scope="session")
def app_module(tmp_path_factory):
    # ---- test DB and environment ----
    tmp_dir = tmp_path_factory.mktemp("workshop_app")
    os.environ["APP_DB_PATH"] = str(tmp_dir / "test_workshop.db")
    os.environ.pop("DATABASE_URL", None)
    os.environ["DEFAULT_ADMIN_USERNAME"] = ""
    os.environ["SMTP_HOST"] = ""

    # ---- reload so every module picks up the test settings ----
    for name in APP_MODULES:
        module = importlib.import_module(name)
        importlib.reload(module)

    return importlib.import_module("main")


@pytest.fixture()
def client(app_module):
    def _get_db_override():
        db = app_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[app_module.get_db] = _get_db_override
    with TestClient(app_module.app) as c:
        yield c
    app_module.app.dependency_overrides.clear()


@pytest.fixture()
def db_session(app_module):
    db = app_module.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def clean_db(app_module, db_session):
    # FK order: transactions -> items -> masters -> users
    from sqlalchemy import delete
    from orm import (
        BorrowingHistoryORM,
        CategoryORM,
        InventoryItemORM,
        NotificationTemplateORM,
        PurchaseORM,
        UserORM,
    )

    db_session.execute(delete(PurchaseORM))
    db_session.execute(delete(BorrowingHistoryORM))
    db_session.execute(delete(InventoryItemORM))
    db_session.execute(delete(NotificationTemplateORM))
    db_session.execute(delete(CategoryORM))
    db_session.execute(delete(UserORM))
    db_session.commit()
    yield


# -----------------------
# Helpers
# -----------------------
PASSWORD = "secret123"


@pytest.fixture()
def make_user(db_session):
    import crud

    def _make(username, role="user", email=None):
        return crud.create_user(
            db_session,
            username=username,
            password=PASSWORD,
            email=email,
            role=role,
        )

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user("admin", role="admin", email="admin@example.com")


@pytest.fixture()
def member(make_user):
    return make_user("alice", role="user", email="alice@example.com")


@pytest.fixture()
def login(client):
    def _login(username, password=PASSWORD):
        r = client.post("/api/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        return r.json()["user"]

    return _login


@pytest.fixture()
def category(db_session):
    import crud
    from models import CategoryIn

    return crud.create_category(db_session, CategoryIn(name="Tools"))


@pytest.fixture()
def make_item(db_session, category):
    import crud
    from models import InventoryItemIn

    def _make(name="Drill", **kwargs):
        kwargs.setdefault("location", "Shelf A")
        kwargs.setdefault("category_id", category.id)
        return crud.create_item(db_session, InventoryItemIn(name=name, **kwargs))

    return _make
