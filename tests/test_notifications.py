import smtplib
from datetime import datetime
from decimal import Decimal

import notifications
from notifications import (
    borrow_notice,
    display_name,
    purchase_notice,
    registration_notice,
    send_admin_notification,
)
from settings import Settings


def _settings(**overrides):
    values = dict(
        database_url="sqlite://",
        session_secret="test",
        session_max_age=60,
        log_level="INFO",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user=None,
        smtp_password=None,
        smtp_from="Workshop <workshop@example.com>",
        smtp_starttls=False,
        default_admin_username="",
        default_admin_password="",
        default_admin_email=None,
    )
    values.update(overrides)
    return Settings(**values)


WHEN = datetime(2024, 5, 1, 14, 30)


def test_borrow_notice_body():
    notice = borrow_notice(item_name="Drill", borrower_name="Alice Smith", borrower_email="a@example.com", borrowed_at=WHEN)
    assert notice.subject == "Workshop Alert: Item Borrowed - Drill"
    assert "Borrowed by: Alice Smith" in notice.body
    assert "Email: a@example.com" in notice.body
    assert "Date: 2024-05-01 14:30" in notice.body


def test_purchase_notice_formats_total():
    notice = purchase_notice(
        item_name="Screws",
        buyer_name="bob",
        buyer_email=None,
        quantity=4,
        total_price=Decimal("1"),
        purchased_at=WHEN,
    )
    assert "Total Price: EUR 1.00" in notice.body
    assert "Email:" not in notice.body


def test_registration_notice():
    notice = registration_notice(username="newbie", full_name=None, email=None, registered_at=WHEN)
    assert notice.subject.endswith("newbie")
    assert "waiting for approval" in notice.body


def test_display_name_falls_back_to_username():
    assert display_name("alice", None, None) == "alice"
    assert display_name("alice", "Alice", None) == "Alice"
    assert display_name("alice", "Alice", "Smith") == "Alice Smith"


def test_send_is_skipped_without_recipients():
    notice = borrow_notice(item_name="Drill", borrower_name="x", borrower_email=None, borrowed_at=WHEN)
    assert send_admin_notification(notice, [], _settings()) is False
    assert send_admin_notification(notice, ["  "], _settings()) is False


def test_send_is_skipped_without_smtp_host():
    notice = borrow_notice(item_name="Drill", borrower_name="x", borrower_email=None, borrowed_at=WHEN)
    assert send_admin_notification(notice, ["admin@example.com"], _settings(smtp_host=None)) is False


def test_send_failure_is_swallowed(monkeypatch):
    class BrokenSMTP:
        def __init__(self, *args, **kwargs):
            raise smtplib.SMTPConnectError(421, "unavailable")

    monkeypatch.setattr(notifications.smtplib, "SMTP", BrokenSMTP)
    notice = borrow_notice(item_name="Drill", borrower_name="x", borrower_email=None, borrowed_at=WHEN)
    assert send_admin_notification(notice, ["admin@example.com"], _settings()) is False


def test_send_delivers_message(monkeypatch):
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, user, password):
            pass

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    notice = purchase_notice(
        item_name="Glue", buyer_name="bob", buyer_email=None, quantity=1, total_price=Decimal("3"), purchased_at=WHEN
    )
    assert send_admin_notification(notice, ["admin@example.com", "boss@example.com"], _settings()) is True
    assert len(sent) == 1
    assert sent[0]["To"] == "admin@example.com, boss@example.com"
    assert sent[0]["Subject"] == "Workshop Alert: Item Purchased - Glue"
