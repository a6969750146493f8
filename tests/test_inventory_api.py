import crud


def test_non_admin_cannot_create_category(client, db_session, member, login):
    login("alice")

    r = client.post("/api/categories", json={"name": "Hacked"})
    assert r.status_code == 403

    db_session.expire_all()
    assert crud.list_categories(db_session) == []


def test_admin_category_crud(client, admin, login):
    login("admin")

    r = client.post("/api/categories", json={"name": "Power tools", "description": "mains powered", "color": "#FF0000"})
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["color"] == "#FF0000"

    r = client.post("/api/categories", json={"name": "Power tools"})
    assert r.status_code == 409

    r = client.post("/api/categories", json={"name": "Bad color", "color": "red"})
    assert r.status_code == 400

    r = client.patch(f"/api/categories/{created['id']}", json={"name": "Electric tools"})
    assert r.status_code == 200
    assert r.json()["name"] == "Electric tools"
    assert r.json()["color"] == "#FF0000"

    r = client.get("/api/categories")
    assert [c["name"] for c in r.json()] == ["Electric tools"]


def test_admin_item_crud(client, admin, login, category):
    login("admin")

    r = client.post(
        "/api/inventory",
        json={
            "name": "Cordless drill",
            "categoryId": category.id,
            "location": "Cabinet 2",
            "purchasePrice": "129.90",
            "isPurchasable": False,
        },
    )
    assert r.status_code == 201, r.text
    item = r.json()
    assert item["isAvailable"] is True
    assert item["stockQuantity"] == 1
    assert item["category"]["name"] == "Tools"

    r = client.patch(f"/api/inventory/{item['id']}", json={"location": "Cabinet 3"})
    assert r.status_code == 200
    assert r.json()["location"] == "Cabinet 3"
    assert r.json()["name"] == "Cordless drill"

    r = client.delete(f"/api/inventory/{item['id']}")
    assert r.status_code == 200

    r = client.get(f"/api/inventory/{item['id']}")
    assert r.status_code == 404


def test_create_item_with_unknown_category(client, admin, login):
    login("admin")
    r = client.post("/api/inventory", json={"name": "Orphan", "categoryId": "missing", "location": "X"})
    assert r.status_code == 400
    assert "category" in r.json()["detail"]


def test_create_item_requires_admin(client, member, login, category):
    login("alice")
    r = client.post("/api/inventory", json={"name": "Drill", "categoryId": category.id, "location": "A"})
    assert r.status_code == 403


def test_item_with_history_cannot_be_deleted(client, db_session, admin, login, make_item):
    item = make_item("Sander")
    crud.borrow_item(db_session, item.id, admin.id)
    crud.return_item(db_session, item.id)
    login("admin")

    r = client.delete(f"/api/inventory/{item.id}")
    assert r.status_code == 409


def test_list_inventory_filters(client, db_session, member, login, make_item):
    drill = make_item("Drill", location="Shelf A")
    make_item("Saw", location="Shelf B", description="japanese pull saw")
    make_item("Hammer", location="Shelf B")
    crud.borrow_item(db_session, drill.id, member.id)
    login("alice")

    r = client.get("/api/inventory")
    assert [i["name"] for i in r.json()] == ["Drill", "Hammer", "Saw"]

    r = client.get("/api/inventory?q=japanese")
    assert [i["name"] for i in r.json()] == ["Saw"]

    r = client.get("/api/inventory?available=false")
    assert [i["name"] for i in r.json()] == ["Drill"]

    r = client.get("/api/inventory?available=true&sort=name&order=desc")
    assert [i["name"] for i in r.json()] == ["Saw", "Hammer"]

    r = client.get("/api/inventory?limit=2&offset=0")
    assert len(r.json()) == 2

    r = client.get("/api/inventory/meta?limit=2")
    assert r.json() == {"total": 3, "limit": 2, "offset": 0, "totalPages": 2}


def test_stats(client, db_session, member, login, make_item):
    drill = make_item("Drill")
    make_item("Saw")
    crud.borrow_item(db_session, drill.id, member.id)
    login("alice")

    r = client.get("/api/stats")
    assert r.status_code == 200
    assert r.json() == {
        "totalItems": 2,
        "borrowedItems": 1,
        "availableItems": 1,
        "totalUsers": 1,
        "totalCategories": 1,
    }
