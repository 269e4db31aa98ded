import pytest
from fastapi.testclient import TestClient

from conftest import make_user, make_department, make_admin, make_cost_center, stored
from edara.core.security import create_access_token, generate_action_token
from edara.main import app


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user['username'])}"}


@pytest.fixture
def client(fake_db):
    # sin "with": no se disparan los eventos de startup
    return TestClient(app)


@pytest.fixture
def roster(fake_db):
    db = fake_db
    dept = make_department(db)
    users = {name: make_user(db, name) for name in ("creator", "first", "second", "outsider")}
    users["boss"] = make_user(db, "boss", role="admin")
    make_admin(db, dept, users["first"], 0)
    make_admin(db, dept, users["second"], 1)
    return db, dept, users


def _create(client, dept, user, **extra):
    body = {"subject": "Printer", "description": "Printer on floor 2 is broken", "department_id": dept["id"], **extra}
    r = client.post("/tickets", json=body, headers=auth(user))
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_requires_authentication(client):
    assert client.get("/tickets").status_code in (401, 403)


def test_only_next_approver_can_approve(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])

    for name in ("second", "outsider", "creator", "boss"):
        r = client.post(f"/tickets/{t['id']}/approve", json={}, headers=auth(users[name]))
        assert r.status_code == 403, name

    r = client.post(f"/tickets/{t['id']}/approve", json={}, headers=auth(users["first"]))
    assert r.status_code == 200
    assert r.json()["result"] == "passed_to_next_level"
    assert stored(db, "tickets", id=t["id"])["next_admin_order"] == 1

    r = client.post(f"/tickets/{t['id']}/approve", json={}, headers=auth(users["second"]))
    assert r.json()["result"] == "approved"
    assert stored(db, "tickets", id=t["id"])["status"] == "approved"


def test_reject_requires_reason(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])
    r = client.post(f"/tickets/{t['id']}/reject", json={"reason": ""}, headers=auth(users["first"]))
    assert r.status_code == 422
    r = client.post(f"/tickets/{t['id']}/reject", json={"reason": "Duplicate"}, headers=auth(users["first"]))
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
    # rechazado es terminal
    r = client.post(f"/tickets/{t['id']}/approve", json={}, headers=auth(users["first"]))
    assert r.status_code == 400


def test_pending_approvals_and_detail(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])

    r = client.get("/tickets/pending-approvals", headers=auth(users["first"]))
    assert r.json()["count"] == 1
    assert r.json()["items"][0]["id"] == t["id"]
    assert client.get("/tickets/pending-approvals", headers=auth(users["second"])).json()["count"] == 0

    detail = client.get(f"/tickets/{t['id']}", headers=auth(users["first"])).json()
    assert detail["approval"]["can_approve"] is True
    assert detail["approval"]["current_level"] == 0
    detail = client.get(f"/tickets/{t['id']}", headers=auth(users["creator"])).json()
    assert detail["approval"]["can_approve"] is False

    assert client.get(f"/tickets/{t['id']}", headers=auth(users["outsider"])).status_code == 403


def test_list_tickets_is_scoped_for_employees(client, roster):
    db, dept, users = roster
    _create(client, dept, users["creator"])
    assert client.get("/tickets", headers=auth(users["outsider"])).json()["items"] == []
    assert len(client.get("/tickets", headers=auth(users["first"])).json()["items"]) == 1
    assert len(client.get("/tickets", headers=auth(users["boss"])).json()["items"]) == 1


# ============================
#   Enlaces de acción por correo
# ============================

def _action(client, ticket_id, action, token=None, **extra):
    params = {"ticketId": ticket_id, "action": action,
              "token": token or generate_action_token(ticket_id, action), **extra}
    r = client.get("/handle-ticket-action", params=params)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    return r.text


def test_email_link_with_bad_token_shows_error_page(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])
    html = _action(client, t["id"], "approve", token="bogus")
    assert "رابط غير صالح" in html
    assert stored(db, "tickets", id=t["id"])["next_admin_order"] == 0


def test_email_link_missing_params(client, fake_db):
    r = client.get("/handle-ticket-action")
    assert r.status_code == 200
    assert "رابط غير صالح" in r.text


def test_email_link_approves_through_every_level(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])

    assert "تم التمرير للمستوى التالي" in _action(client, t["id"], "approve")
    assert "تمت الموافقة النهائية" in _action(client, t["id"], "approve")
    doc = stored(db, "tickets", id=t["id"])
    assert doc["status"] == "approved"
    assert doc["approved_by"] is None

    # el mismo enlace otra vez
    assert "بالفعل" in _action(client, t["id"], "approve")
    types = [a["activity_type"] for a in db.ticket_activity_logs.docs if a["ticket_id"] == t["id"]]
    assert types.count("approved_by_email") == 2


def test_email_link_reject(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])
    assert "تم رفض" in _action(client, t["id"], "reject")
    assert stored(db, "tickets", id=t["id"])["status"] == "rejected"
    assert "مرفوضة بالفعل" in _action(client, t["id"], "approve")


def test_email_link_asks_for_cost_center(client, fake_db):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    approver = make_user(db, "approver")
    make_admin(db, dept, approver, 0, requires_cost_center=True)
    cc = make_cost_center(db)
    t = _create(client, dept, creator, is_purchase_ticket=True, qty=2, uom="box")

    html = _action(client, t["id"], "approve")
    assert 'name="costCenterId"' in html
    assert cc["cost_center_code"] in html
    assert stored(db, "tickets", id=t["id"])["status"] == "pending"

    html = _action(client, t["id"], "approve", costCenterId=cc["id"])
    assert "تمت الموافقة النهائية" in html
    doc = stored(db, "tickets", id=t["id"])
    assert doc["status"] == "approved"
    assert doc["cost_center_id"] == cc["id"]


def test_email_link_walks_purchase_phase_at_each_level(client, fake_db):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    for name, order, purchase in (("reg0", 0, False), ("reg1", 1, False), ("pur1", 1, True), ("pur2", 2, True)):
        make_admin(db, dept, make_user(db, name), order, purchase=purchase)
    t = _create(client, dept, creator, is_purchase_ticket=True, qty=1, uom="unit")

    for order, phase in ((1, False), (1, True), (2, False)):
        assert "تم التمرير للمستوى التالي" in _action(client, t["id"], "approve")
        doc = stored(db, "tickets", id=t["id"])
        assert (doc["next_admin_order"], doc["is_purchase_phase"], doc["status"]) == (order, phase, "pending")

    assert "تمت الموافقة النهائية" in _action(client, t["id"], "approve")
    assert stored(db, "tickets", id=t["id"])["status"] == "approved"


def test_cost_center_required_but_none_active(client, fake_db):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    approver = make_user(db, "approver")
    make_admin(db, dept, approver, 0, requires_cost_center=True)
    make_cost_center(db, active=False)
    t = _create(client, dept, creator, is_purchase_ticket=True, qty=1, uom="unit")

    # en la app sigue siendo obligatorio
    r = client.post(f"/tickets/{t['id']}/approve", json={}, headers=auth(approver))
    assert r.status_code == 422
    assert stored(db, "tickets", id=t["id"])["status"] == "pending"

    # por correo no hay nada que elegir y se aprueba sin centro de costo
    html = _action(client, t["id"], "approve")
    assert "تمت الموافقة النهائية" in html
    doc = stored(db, "tickets", id=t["id"])
    assert doc["status"] == "approved"
    assert doc["cost_center_id"] is None


def test_email_link_unknown_action(client, roster):
    db, dept, users = roster
    t = _create(client, dept, users["creator"])
    assert "إجراء غير معروف" in _action(client, t["id"], "delete")
    assert stored(db, "tickets", id=t["id"])["status"] == "pending"


def test_email_link_ticket_not_found(client, fake_db):
    assert "لم يتم العثور على التذكرة" in _action(client, "no-such-ticket", "approve")


def test_email_link_invalid_cost_center_shows_error_page(client, fake_db):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    approver = make_user(db, "approver")
    make_admin(db, dept, approver, 0, requires_cost_center=True)
    make_cost_center(db)
    t = _create(client, dept, creator, is_purchase_ticket=True, qty=1, uom="unit")

    html = _action(client, t["id"], "approve", costCenterId="does-not-exist")
    assert "تعذر تنفيذ الإجراء" in html
    doc = stored(db, "tickets", id=t["id"])
    assert doc["status"] == "pending"
    assert doc["cost_center_id"] is None
