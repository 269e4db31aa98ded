from urllib.parse import parse_qs, urlparse

import pytest

from conftest import run, make_user, make_department, make_admin
from edara.core.security import verify_action_token
from edara.services import notification_service as notify


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def capture(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(notify, "send_email", capture)
    return sent


def _ticket(dept, creator, **extra):
    return {"id": "t-1", "ticket_number": "TKT-000007", "subject": "طابعة", "description": "لا تعمل",
            "user_id": creator["id"], "user_name": creator["full_name"], "department_id": dept["id"],
            "status": "pending", "next_admin_order": 0, "is_purchase_ticket": False, **extra}


def test_approval_request_email_is_arabic_with_action_links(fake_db, outbox):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    approver = make_user(db, "approver", email="approver@example.com")
    make_admin(db, dept, approver, 0)

    run(notify.notify_tier(_ticket(dept, creator)))

    assert len(outbox) == 1
    mail = outbox[0]
    assert mail["to"] == "approver@example.com"
    assert mail["subject"] == "تذكرة الدعم بانتظار الموافقة: TKT-000007"
    assert 'dir="rtl"' in mail["html"]
    assert "رقم التذكرة" in mail["html"]

    links = [part.split('"')[0] for part in mail["html"].split('href="')[1:]]
    for link, action in zip(links, ("approve", "reject")):
        query = parse_qs(urlparse(link.replace("&amp;", "&")).query)
        assert query["action"] == [action]
        assert verify_action_token("t-1", action, query["token"][0])
    assert [n["title"] for n in db.notifications.docs] == ["تذكرة الدعم بانتظار الموافقة"]


def test_purchase_phase_email_goes_to_purchase_admins(fake_db, outbox):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    make_admin(db, dept, make_user(db, "regular", email="regular@example.com"), 0)
    make_admin(db, dept, make_user(db, "buyer", email="buyer@example.com"), 0, purchase=True)

    run(notify.notify_tier(_ticket(dept, creator, is_purchase_ticket=True, is_purchase_phase=True)))

    assert [m["to"] for m in outbox] == ["buyer@example.com"]
    assert "كمسؤول مشتريات" in outbox[0]["html"]


def test_rejection_email_to_creator_includes_reason(fake_db, outbox):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator", email="creator@example.com")

    run(notify.notify_creator(_ticket(dept, creator, status="rejected"), "ticket_rejected", "الميزانية غير كافية"))

    assert outbox[0]["subject"] == "تم رفض تذكرة الدعم: TKT-000007"
    assert "الميزانية غير كافية" in outbox[0]["html"]
    assert db.notifications.docs[0]["type"] == "ticket_rejected"


def test_stalled_tier_sends_nothing(fake_db, outbox):
    db = fake_db
    dept = make_department(db)
    creator = make_user(db, "creator")
    make_admin(db, dept, make_user(db, "late", email="late@example.com"), 2)

    run(notify.notify_tier(_ticket(dept, creator)))
    assert outbox == []
    assert db.notifications.docs == []
