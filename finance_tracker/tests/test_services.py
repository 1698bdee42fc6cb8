# finance_tracker/tests/test_services.py
# Tests for the LLM client wrapper and SMTP email service

import smtplib
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import APIConnectionError

from finance_tracker.email_service import EmailService
from finance_tracker.llm import LLMClient, LLMError, extract_text

# ===== LLM =====

def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client_with(response=None, error=None):
    llm = LLMClient(api_key="test-key", model="test-model")
    sdk = MagicMock()
    if error is not None:
        sdk.chat.completions.create.side_effect = error
    else:
        sdk.chat.completions.create.return_value = response
    llm._client = sdk
    return llm, sdk


def test_extract_text():
    assert extract_text("hello") == "hello"
    assert extract_text(None) == ""
    assert extract_text([{"text": "a"}, SimpleNamespace(text="b"), {"type": "image"}]) == "ab"


def test_complete_returns_text_and_passes_options():
    llm, sdk = _client_with(_completion("Save more."))
    messages = [{"role": "user", "content": "Tips?"}]

    assert llm.complete(messages, temperature=0.2, max_tokens=50) == "Save more."
    sdk.chat.completions.create.assert_called_once_with(
        model="test-model", messages=messages, temperature=0.2, max_tokens=50
    )


def test_complete_raises_on_empty_reply():
    llm, _ = _client_with(_completion(""))
    with pytest.raises(LLMError):
        llm.complete([{"role": "user", "content": "Hi"}])

    llm, _ = _client_with(SimpleNamespace(choices=[]))
    with pytest.raises(LLMError):
        llm.complete([{"role": "user", "content": "Hi"}])


def test_complete_wraps_sdk_errors():
    llm, _ = _client_with(error=APIConnectionError(request=MagicMock()))
    with pytest.raises(LLMError):
        llm.complete([{"role": "user", "content": "Hi"}])


def test_unconfigured_client_raises():
    llm = LLMClient(api_key="")
    assert llm.is_configured is False
    with pytest.raises(LLMError):
        llm.complete([{"role": "user", "content": "Hi"}])

# ===== EMAIL =====

def _configured_service():
    return EmailService(
        smtp_server="smtp.example.com", smtp_port=587,
        smtp_user="bot@example.com", smtp_password="secret",
    )


def test_unconfigured_email_is_skipped():
    service = EmailService()
    service.smtp_server = None
    with patch("finance_tracker.email_service.smtplib.SMTP") as smtp:
        assert service.send_otp("a@example.com", "123456") is False
        smtp.assert_not_called()


def test_send_otp_uses_starttls():
    with patch("finance_tracker.email_service.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        assert _configured_service().send_otp("a@example.com", "123456", 10) is True

        smtp.assert_called_once_with("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot@example.com", "secret")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "a@example.com"
        assert "123456" in message.as_string()


def test_password_reset_link_includes_token():
    with patch("finance_tracker.email_service.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        _configured_service().send_password_reset("a@example.com", "tok123", "https://app.test/reset")
        body = server.send_message.call_args.args[0].as_string()
        assert "https://app.test/reset?token=tok123" in body


def test_smtp_failure_returns_false():
    with patch("finance_tracker.email_service.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"no")
        assert _configured_service().send_otp("a@example.com", "123456") is False
