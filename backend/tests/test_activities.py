from unittest.mock import patch

import models
from utils import activity
from utils.activity import log_activity, diff_fields, EXPENSE_CREATED


def test_personal_feed_excludes_group_activity(client, auth_headers):
    client.post("/expenses", headers=auth_headers, json={"title": "Lunch", "amount": 8, "type": "Food"})
    client.post("/groups", headers=auth_headers, json={"name": "Flat"})

    feed = client.get("/activities/personal", headers=auth_headers).json()
    assert [a["type"] for a in feed] == ["expense_created"]
    assert feed[0]["action"] == 'Added "Lunch" (8.00)'


def test_group_feed_requires_membership(client, auth_headers, make_user):
    group = client.post("/groups", headers=auth_headers, json={"name": "Flat"}).json()
    _, outsider_headers = make_user("Outsider")

    assert client.get(f"/activities/group/{group['id']}", headers=outsider_headers).status_code == 403

    feed = client.get(f"/activities/group/{group['id']}", headers=auth_headers).json()
    assert [a["type"] for a in feed] == ["group_created"]


def test_all_feed_combines_personal_and_groups(client, group_of_three):
    group_id = group_of_three["group"]["id"]
    alice, alice_headers = group_of_three["alice"]
    _, bob_headers = group_of_three["bob"]

    client.post("/expenses", headers=bob_headers, json={"title": "Snacks", "amount": 4, "type": "Food"})
    client.post("/expenses", headers=alice_headers, json={"title": "Private", "amount": 9, "type": "Other"})
    client.post(f"/groups/{group_id}/expenses", headers=alice_headers, json={
        "title": "Rent", "amount": 900, "type": "Bills",
        "paid_by": alice.id, "split_among": [alice.id]
    })

    feed = client.get("/activities/all", headers=bob_headers).json()
    actions = [a["action"] for a in feed]
    assert 'Added "Rent" (900.00)' in actions
    assert 'Added "Snacks" (4.00)' in actions
    # Alice's personal expenses are not shared with the group
    assert 'Added "Private" (9.00)' not in actions


def test_activity_failure_does_not_fail_operation(client, auth_headers, db_session):
    with patch.object(activity.models, "Activity", side_effect=RuntimeError("audit store down")):
        response = client.post("/expenses", headers=auth_headers, json={
            "title": "Still saved", "amount": 5, "type": "Food"
        })

    assert response.status_code == 200
    assert db_session.query(models.Expense).count() == 1
    assert db_session.query(models.Activity).count() == 0


def test_log_activity_rejects_unknown_type_quietly(db_session, test_user, caplog):
    log_activity(db_session, test_user[0].id, "expense_exploded", "Boom")
    assert db_session.query(models.Activity).count() == 0
    assert "Failed to log activity" in caplog.text

    log_activity(db_session, test_user[0].id, EXPENSE_CREATED, "Added", details={"amount": 1})
    assert db_session.query(models.Activity).one().details == {"amount": 1}


def test_diff_fields_only_reports_changes():
    old = {"title": "A", "amount": 10, "type": "Food"}
    new = {"title": "B", "amount": 10, "type": "Food"}
    assert diff_fields(old, new) == {"title": {"old": "A", "new": "B"}}
