from decimal import Decimal

import crud


def test_ui_requires_login(client):
    r = client.get("/ui/inventory", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/ui/login"

    r = client.get("/ui/login")
    assert r.status_code == 200


def test_ui_login_rejects_bad_credentials(client, member):
    r = client.post("/ui/login", data={"username": "alice", "password": "wrong-pass"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/ui/login?msg=")


def test_ui_flow_create_borrow_return_purchase(client, db_session, admin, member):
    # 1) admin logs in and sets up a category and two items
    r = client.post("/ui/login", data={"username": "admin", "password": "secret123"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/ui/inventory"

    r = client.post("/ui/categories", data={"name": "Cable", "color": "#00aa00"}, follow_redirects=False)
    assert r.status_code == 303

    db_session.expire_all()
    cable = next(c for c in crud.list_categories(db_session) if c.name == "Cable")

    r = client.post(
        "/ui/inventory",
        data={"name": "HDMI Cable", "category_id": cable.id, "location": "Shelf A"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    r = client.post(
        "/ui/inventory",
        data={
            "name": "Zip ties",
            "category_id": cable.id,
            "location": "Drawer 1",
            "is_purchasable": "on",
            "price_per_unit": "0.10",
            "stock_quantity": "100",
        },
        follow_redirects=False,
    )
    assert r.status_code == 303

    r = client.get("/ui/inventory?q=HDMI")
    assert r.status_code == 200
    assert "HDMI Cable" in r.text

    db_session.expire_all()
    items = {i.name: i for i in crud.list_items_filtered(db_session)}
    hdmi = items["HDMI Cable"]
    ties = items["Zip ties"]
    assert ties.is_purchasable is True
    assert ties.price_per_unit == Decimal("0.10")

    # 2) regular user borrows and buys
    client.post("/ui/logout")
    r = client.post("/ui/login", data={"username": "alice", "password": "secret123"}, follow_redirects=False)
    assert r.status_code == 303

    r = client.post(f"/ui/inventory/{hdmi.id}/borrow", follow_redirects=False)
    assert r.status_code == 303

    db_session.expire_all()
    assert crud.get_item(db_session, hdmi.id).current_borrower_id == member.id

    r = client.post(f"/ui/inventory/{ties.id}/purchase", data={"quantity": "30"}, follow_redirects=False)
    assert r.status_code == 303

    r = client.post(f"/ui/inventory/{ties.id}/purchase", data={"quantity": "500"}, follow_redirects=False)
    assert r.status_code == 303
    assert "insufficient" in r.headers["location"]

    db_session.expire_all()
    assert crud.get_item(db_session, ties.id).stock_quantity == 70

    # 3) regular user cannot delete, but can return
    r = client.post(f"/ui/inventory/{hdmi.id}/delete", follow_redirects=False)
    assert r.status_code == 303
    db_session.expire_all()
    assert crud.get_item(db_session, hdmi.id) is not None

    r = client.post(f"/ui/inventory/{hdmi.id}/return", follow_redirects=False)
    assert r.status_code == 303

    db_session.expire_all()
    assert crud.get_item(db_session, hdmi.id).is_available is True

    r = client.get("/ui/inventory")
    assert r.status_code == 200
    assert "Zip ties" in r.text


def test_ui_categories_page(client, admin, category):
    client.post("/ui/login", data={"username": "admin", "password": "secret123"})

    r = client.get("/ui/categories")
    assert r.status_code == 200
    assert "Tools" in r.text


def test_ui_admin_forms_redirect_non_admins(client, db_session, member, category, make_item):
    item = make_item("Band saw")

    r = client.post(f"/ui/inventory/{item.id}/delete", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/ui/login"

    client.post("/ui/login", data={"username": "alice", "password": "secret123"})

    r = client.post("/ui/categories", data={"name": "Sneaky"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/ui/categories?msg=admin")

    r = client.post(
        "/ui/inventory",
        data={"name": "Sneaky item", "category_id": category.id, "location": "X"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"].startswith("/ui/inventory?msg=admin")

    r = client.post(f"/ui/categories/{category.id}/delete", follow_redirects=False)
    assert r.status_code == 303

    db_session.expire_all()
    assert [c.name for c in crud.list_categories(db_session)] == ["Tools"]
    assert [i.name for i in crud.list_items_filtered(db_session)] == ["Band saw"]
