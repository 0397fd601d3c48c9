import pytest


def expense_payload(payer, split_among, amount=300, title="Dinner", type="Food", date="2025-01-15T19:00:00"):
    return {
        "title": title,
        "amount": amount,
        "type": type,
        "date": date,
        "paid_by": payer.id,
        "split_among": [u.id for u in split_among],
    }


def test_create_expense_equal_split(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    bob, _ = group_of_three["bob"]
    carol, _ = group_of_three["carol"]

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, bob, carol])
    )
    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 300
    assert data["paid_by"] == {"user_id": alice.id, "username": "Alice"}
    assert sorted(s["user_id"] for s in data["split_among"]) == sorted([alice.id, bob.id, carol.id])
    assert all(s["amount"] == pytest.approx(100) for s in data["split_among"])
    assert sum(s["amount"] for s in data["split_among"]) == pytest.approx(data["amount"])


def test_uneven_division_keeps_sum(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    bob, _ = group_of_three["bob"]
    carol, _ = group_of_three["carol"]

    data = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, bob, carol], amount=100)
    ).json()
    assert all(s["amount"] == pytest.approx(100 / 3) for s in data["split_among"])
    assert sum(s["amount"] for s in data["split_among"]) == pytest.approx(100)


def test_any_member_can_add_expense(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    bob, bob_headers = group_of_three["bob"]
    carol, _ = group_of_three["carol"]

    # Payer does not have to be part of the split
    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=bob_headers,
        json=expense_payload(bob, [carol], amount=40, title="Taxi", type="Transport")
    )
    assert response.status_code == 200
    assert response.json()["split_among"][0]["amount"] == pytest.approx(40)


def test_empty_split_rejected(client, db_session, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [])
    )
    assert response.status_code == 400
    assert client.get(f"/groups/{group_id}/expenses", headers=alice_headers).json() == []


def test_non_member_participants_rejected(client, make_user, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    outsider, _ = make_user("Outsider")

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, outsider])
    )
    assert response.status_code == 400

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(outsider, [alice])
    )
    assert response.status_code == 400


def test_duplicate_split_participant_rejected(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, alice])
    )
    assert response.status_code == 400


def test_non_member_cannot_add_expense(client, make_user, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, _ = group_of_three["alice"]
    _, outsider_headers = make_user("Outsider")

    response = client.post(
        f"/groups/{group_id}/expenses",
        headers=outsider_headers,
        json=expense_payload(alice, [alice])
    )
    assert response.status_code == 403


@pytest.mark.parametrize("field, value", [
    ("amount", -5),
    ("type", "Groceries"),
    ("title", "   "),
])
def test_invalid_expense_fields(client, group_of_three, field, value):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    payload = expense_payload(alice, [alice])
    payload[field] = value
    response = client.post(f"/groups/{group_id}/expenses", headers=alice_headers, json=payload)
    assert response.status_code == 422


def test_infinite_amount_is_rejected(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    # Sent as raw text: Python's json module parses the Infinity literal
    body = (
        f'{{"title": "Dinner", "amount": Infinity, "type": "Food", '
        f'"paid_by": {alice.id}, "split_among": [{alice.id}]}}'
    )
    response = client.post(
        f"/groups/{group_id}/expenses",
        headers={**alice_headers, "Content-Type": "application/json"},
        content=body
    )
    assert response.status_code == 422
    assert client.get(f"/groups/{group_id}/expenses", headers=alice_headers).json() == []


def test_list_expenses_newest_first(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    client.post(f"/groups/{group_id}/expenses", headers=alice_headers,
                json=expense_payload(alice, [alice], title="Older", date="2025-01-01T10:00:00"))
    client.post(f"/groups/{group_id}/expenses", headers=alice_headers,
                json=expense_payload(alice, [alice], title="Newer", date="2025-02-01T10:00:00"))

    titles = [e["title"] for e in client.get(f"/groups/{group_id}/expenses", headers=alice_headers).json()]
    assert titles == ["Newer", "Older"]


def test_update_expense_recomputes_shares(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    bob, bob_headers = group_of_three["bob"]
    carol, _ = group_of_three["carol"]

    expense = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, bob, carol])
    ).json()

    # Not restricted to the creator or the payer
    response = client.put(
        f"/groups/{group_id}/expenses/{expense['id']}",
        headers=bob_headers,
        json=expense_payload(alice, [alice, bob], amount=500, title="Fancy dinner")
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Fancy dinner"
    assert sorted(s["user_id"] for s in data["split_among"]) == sorted([alice.id, bob.id])
    assert all(s["amount"] == pytest.approx(250) for s in data["split_among"])

    activity = client.get(f"/activities/group/{group_id}", headers=alice_headers).json()[0]
    assert activity["type"] == "expense_updated"
    changes = activity["details"]["changes"]
    assert changes["title"] == {"old": "Dinner", "new": "Fancy dinner"}
    assert changes["amount"] == {"old": 300, "new": 500}
    assert "type" not in changes


def test_update_missing_expense(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    response = client.put(
        f"/groups/{group_id}/expenses/999",
        headers=alice_headers,
        json=expense_payload(alice, [alice])
    )
    assert response.status_code == 404


def test_delete_expense(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    bob, _ = group_of_three["bob"]

    expense = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice, bob])
    ).json()

    response = client.delete(f"/groups/{group_id}/expenses/{expense['id']}", headers=alice_headers)
    assert response.status_code == 200
    assert client.get(f"/groups/{group_id}/expenses", headers=alice_headers).json() == []

    response = client.delete(f"/groups/{group_id}/expenses/{expense['id']}", headers=alice_headers)
    assert response.status_code == 404


def test_expense_from_other_group_not_found(client, auth_headers, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]

    expense = client.post(
        f"/groups/{group_id}/expenses",
        headers=alice_headers,
        json=expense_payload(alice, [alice])
    ).json()
    other_group = client.post("/groups", headers=auth_headers, json={"name": "Other"}).json()

    response = client.delete(f"/groups/{other_group['id']}/expenses/{expense['id']}", headers=auth_headers)
    assert response.status_code == 404
