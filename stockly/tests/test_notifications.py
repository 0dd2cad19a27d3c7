import smtplib

import requests

from stockly.config import settings
from stockly.notifications import mail, messaging


class DummySMTP:
    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, username, password):
        pass

    def send_message(self, msg):
        DummySMTP.sent.append(msg)


def test_send_email_skipped_without_server(app):
    assert mail.send_email("a@example.com", "Subject", "Body") is False


def test_send_email_uses_smtp(app, monkeypatch):
    DummySMTP.sent = []
    monkeypatch.setattr(settings, "SMTP_SERVER", "smtp.example.com")
    monkeypatch.setattr(mail.smtplib, "SMTP", DummySMTP)
    assert mail.send_email("a@example.com", "Subject", "Body") is True
    assert DummySMTP.sent[0]["To"] == "a@example.com"


def test_send_email_failure_returns_false(app, monkeypatch):
    def _refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "busy")

    monkeypatch.setattr(settings, "SMTP_SERVER", "smtp.example.com")
    monkeypatch.setattr(mail.smtplib, "SMTP", _refuse)
    assert mail.send_email("a@example.com", "Subject", "Body") is False


def test_invite_email_can_be_disabled(app, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_INVITE_EMAILS", "0")
    monkeypatch.setattr(mail, "send_email", lambda *args: True)
    link = "http://stockly.test/accept-invite?token=t"
    assert mail.send_invite_email("a@example.com", "A", link) is False


def test_invite_email_sends_link_not_password(app, monkeypatch):
    captured = {}

    def _capture(recipient, subject, body):
        captured.update(recipient=recipient, subject=subject, body=body)
        return True

    monkeypatch.setattr(mail, "send_email", _capture)
    link = "http://stockly.test/accept-invite?token=abc.def.ghi"
    assert mail.send_invite_email("cook@harbour.example", "Cook", link) is True
    assert captured["recipient"] == "cook@harbour.example"
    assert link in captured["body"]
    assert "password below" not in captured["body"]
    assert "expires after 7 days" in captured["body"]


def test_purchase_order_email_body(app, monkeypatch):
    captured = {}

    def _capture(recipient, subject, body):
        captured.update(recipient=recipient, subject=subject, body=body)
        return True

    monkeypatch.setattr(mail, "send_email", _capture)
    order = {
        "order_number": "PO-20261019-0001",
        "order_date": "2026-10-19",
        "expected_delivery": None,
        "supplier": {"order_email": "orders@supplier.example"},
        "lines": [
            {"item_name": "Flour", "product_variant_id": 1, "quantity_ordered": 2.0, "unit_price": 12.5}
        ],
        "subtotal": 25.0,
        "tax": 5.0,
        "total": 30.0,
    }
    assert mail.send_purchase_order_email(order) is True
    assert captured["recipient"] == "orders@supplier.example"
    assert "Flour: 2 x 12.50" in captured["body"]
    assert "Total: 30.00" in captured["body"]


class DummyResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_channel_skipped_when_not_configured(app):
    assert messaging.ensure_user_channel(1, "A", "a@example.com") is False


def test_channel_created(app, monkeypatch):
    calls = []
    monkeypatch.setattr(settings, "MESSAGING_API_URL", "https://chat.example/api/")
    monkeypatch.setattr(settings, "MESSAGING_API_TOKEN", "tok")
    monkeypatch.setattr(
        messaging.requests,
        "post",
        lambda url, **kwargs: calls.append((url, kwargs)) or DummyResponse(201),
    )
    assert messaging.ensure_user_channel(7, "A", "a@example.com") is True
    url, kwargs = calls[0]
    assert url == "https://chat.example/api/users"
    assert kwargs["json"]["id"] == "7"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"


def test_channel_failure_returns_false(app, monkeypatch):
    monkeypatch.setattr(settings, "MESSAGING_API_URL", "https://chat.example/api")
    monkeypatch.setattr(settings, "MESSAGING_API_TOKEN", "tok")

    def _down(*args, **kwargs):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(messaging.requests, "post", _down)
    assert messaging.ensure_user_channel(7, "A", "a@example.com") is False

    monkeypatch.setattr(messaging.requests, "post", lambda *a, **k: DummyResponse(500, "oops"))
    assert messaging.ensure_user_channel(7, "A", "a@example.com") is False
