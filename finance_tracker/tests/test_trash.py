# finance_tracker/tests/test_trash.py
# Tests for restoring and purging deleted items

from datetime import date

from fastapi.testclient import TestClient

from finance_tracker import models


def _trashed_transaction(client, headers, **overrides):
    payload = {"type": "expense", "amount": 42.5, "description": "Taxi", "date": "2025-05-01"}
    payload.update(overrides)
    created = client.post("/transactions/", json=payload, headers=headers).json()
    deleted_item_id = client.delete(f"/transactions/{created['id']}", headers=headers).json()["deleted_item_id"]
    return created, deleted_item_id


def test_restore_transaction_keeps_id_and_data(client: TestClient, auth_headers, category_id):
    created, item_id = _trashed_transaction(client, auth_headers, category_id=category_id)

    response = client.put(f"/trash/{item_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Transaction restored successfully"}

    restored = client.get(f"/transactions/{created['id']}", headers=auth_headers).json()
    assert restored["amount"] == 42.5
    assert restored["description"] == "Taxi"
    assert restored["date"] == "2025-05-01"
    assert restored["category_id"] == category_id

    assert client.get("/trash/", headers=auth_headers).json()["total"] == 0


def test_restore_category(client: TestClient, auth_headers, category_id):
    item_id = client.delete(f"/categories/{category_id}", headers=auth_headers).json()["deleted_item_id"]

    response = client.put(f"/trash/{item_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Category restored successfully"
    assert client.get(f"/categories/{category_id}", headers=auth_headers).json()["name"] == "Food & Dining"


def test_restore_detaches_missing_category(client: TestClient, auth_headers):
    category = client.post("/categories/", json={"name": "Temp", "type": "expense"}, headers=auth_headers).json()
    created, item_id = _trashed_transaction(client, auth_headers, category_id=category["id"])
    client.delete(f"/categories/{category['id']}", headers=auth_headers)

    assert client.put(f"/trash/{item_id}", headers=auth_headers).status_code == 200
    restored = client.get(f"/transactions/{created['id']}", headers=auth_headers).json()
    assert restored["category_id"] is None


def test_restore_conflicting_category_name(client: TestClient, auth_headers):
    category = client.post("/categories/", json={"name": "Gifts", "type": "expense"}, headers=auth_headers).json()
    item_id = client.delete(f"/categories/{category['id']}", headers=auth_headers).json()["deleted_item_id"]
    client.post("/categories/", json={"name": "Gifts", "type": "expense"}, headers=auth_headers)

    response = client.put(f"/trash/{item_id}", headers=auth_headers)
    assert response.status_code == 409

    # The trash entry survives a failed restore
    assert client.get(f"/trash/{item_id}", headers=auth_headers).status_code == 200


def test_purge_removes_entry(client: TestClient, auth_headers, db_session):
    created, item_id = _trashed_transaction(client, auth_headers)

    response = client.delete(f"/trash/{item_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Transaction permanently deleted"

    assert client.get(f"/trash/{item_id}", headers=auth_headers).status_code == 404
    assert db_session.query(models.Transaction).filter(models.Transaction.id == created["id"]).first() is None


def test_trash_is_private(client: TestClient, auth_headers, other_headers):
    _, item_id = _trashed_transaction(client, auth_headers)

    assert client.get("/trash/", headers=other_headers).json()["total"] == 0
    assert client.get(f"/trash/{item_id}", headers=other_headers).status_code == 404
    assert client.put(f"/trash/{item_id}", headers=other_headers).status_code == 404
    assert client.delete(f"/trash/{item_id}", headers=other_headers).status_code == 404


def test_list_groups_by_table(client: TestClient, auth_headers, category_id):
    _trashed_transaction(client, auth_headers)
    _trashed_transaction(client, auth_headers, description="Second")
    client.delete(f"/categories/{category_id}", headers=auth_headers)

    data = client.get("/trash/", headers=auth_headers).json()
    assert data["total"] == 3
    assert len(data["grouped"]["transactions"]) == 2
    assert len(data["grouped"]["categories"]) == 1
    assert data["grouped"]["budgets"] == []
    # Newest first
    assert data["deleted_items"][0]["table_name"] == "categories"

    assert client.get("/trash/?table=budgets", headers=auth_headers).json()["total"] == 0


def test_restore_refuses_when_id_is_taken(client: TestClient, auth_headers, db_session):
    created, item_id = _trashed_transaction(client, auth_headers)
    user_id = client.get("/users/me", headers=auth_headers).json()["id"]

    # Something reappeared under the same id while the item sat in the trash
    db_session.add(models.Transaction(
        id=created["id"], user_id=user_id, amount=1, type="expense", date=date(2025, 5, 2)
    ))
    db_session.commit()

    response = client.put(f"/trash/{item_id}", headers=auth_headers)
    assert response.status_code == 409
    assert response.json() == {"detail": "A record with this id already exists"}
    assert client.get(f"/trash/{item_id}", headers=auth_headers).status_code == 200
