"""Unit tests for the SMTP mailer with a mocked SMTP connection"""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from labor.adapters.mailer import (
    AuthenticationError,
    InternalError,
    SendError,
    SendSuccess,
    SmtpMailer,
)

MAIL_CONFIG = dict(
    host="mail.test",
    port=2525,
    username=None,
    password=None,
    use_tls=False,
    sender="Theo@Test.de",
    recipient="max@test.de",
    timeout=1,
)


@pytest.fixture
def mailer():
    return SmtpMailer(MAIL_CONFIG)


@pytest.fixture
def saved_labor(labor_factory):
    return labor_factory(id="00000000-0000-0000-0000-000000000000")


def test_message_has_subject_with_id_and_name_in_body(mailer, saved_labor):
    msg = mailer.build_message(saved_labor)

    assert msg["Subject"] == "Neues Labor 00000000-0000-0000-0000-000000000000"
    assert msg["To"] == "max@test.de"
    assert msg.get_content_type() == "text/html"
    assert "Chicken" in msg.get_payload(decode=True).decode("utf-8")


def test_sender_domain_is_normalized(mailer):
    assert mailer.sender == "Theo@test.de"


@patch("labor.adapters.mailer.smtplib.SMTP")
def test_send_success(mock_smtp, mailer, saved_labor):
    server = MagicMock()
    mock_smtp.return_value.__enter__.return_value = server

    result = mailer.send(saved_labor)

    assert result == SendSuccess()
    mock_smtp.assert_called_once_with("mail.test", 2525, timeout=1)
    server.sendmail.assert_called_once()
    assert server.sendmail.call_args[0][1] == ["max@test.de"]
    server.login.assert_not_called()


@patch("labor.adapters.mailer.smtplib.SMTP")
def test_login_with_credentials(mock_smtp, saved_labor):
    server = MagicMock()
    mock_smtp.return_value.__enter__.return_value = server
    mailer = SmtpMailer(dict(MAIL_CONFIG, username="theo", password="geheim"))

    mailer.send(saved_labor)

    server.login.assert_called_once_with("theo", "geheim")


@patch("labor.adapters.mailer.smtplib.SMTP")
def test_rejected_credentials(mock_smtp, saved_labor):
    server = MagicMock()
    server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
    mock_smtp.return_value.__enter__.return_value = server
    mailer = SmtpMailer(dict(MAIL_CONFIG, username="theo", password="falsch"))

    result = mailer.send(saved_labor)

    assert isinstance(result, AuthenticationError)


@patch("labor.adapters.mailer.smtplib.SMTP")
def test_unreachable_server(mock_smtp, mailer, saved_labor):
    mock_smtp.side_effect = ConnectionRefusedError("connection refused")

    result = mailer.send(saved_labor)

    assert isinstance(result, SendError)


@patch("labor.adapters.mailer.smtplib.SMTP")
def test_unexpected_error(mock_smtp, mailer, saved_labor):
    server = MagicMock()
    server.sendmail.side_effect = ValueError("broken")
    mock_smtp.return_value.__enter__.return_value = server

    result = mailer.send(saved_labor)

    assert isinstance(result, InternalError)
