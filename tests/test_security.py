"""
Unit tests for bearer tokens and log sanitizing.
"""
import logging
import pytest
from datetime import timedelta
from jose import JWTError

from leadengine.core import security
from leadengine.core.logging_config import REDACTED, sanitize_log_data, setup_logging
from leadengine.core.security import TokenConfigError, create_access_token, decode_access_token


def test_access_token_carries_subject():
    token = create_access_token({"sub": "contractor@example.com"}, expires_delta=timedelta(minutes=5))
    payload = decode_access_token(token)

    assert payload["sub"] == "contractor@example.com"
    assert "exp" in payload


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "contractor@example.com"}, expires_delta=timedelta(minutes=-5))

    with pytest.raises(JWTError):
        decode_access_token(token)


def test_tampered_token_is_rejected():
    token = create_access_token({"sub": "contractor@example.com"})

    with pytest.raises(JWTError):
        decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_tokens_refused_without_signing_key(monkeypatch):
    token = create_access_token({"sub": "contractor@example.com"})
    monkeypatch.setattr(security, "SECRET_KEY", None)

    with pytest.raises(TokenConfigError):
        create_access_token({"sub": "contractor@example.com"})
    with pytest.raises(TokenConfigError):
        decode_access_token(token)


def test_sanitize_log_data_redacts_secrets():
    data = {"error": "validation_error", "password": "hunter2", "access_token": "abc"}

    sanitized = sanitize_log_data(data)

    assert sanitized["error"] == "validation_error"
    assert sanitized["password"] == REDACTED
    assert sanitized["access_token"] == REDACTED
    assert data["password"] == "hunter2"


def test_sanitize_log_data_walks_nested_details():
    data = {
        "error": "limit_exceeded",
        "reasons": ["access_delayed", "outside_radius"],
        "context": {"authorization": "Bearer abc", "job_id": 7},
        "attempts": [{"secret_key": "x", "bid_id": 3}],
    }

    sanitized = sanitize_log_data(data)

    assert sanitized["reasons"] == ["access_delayed", "outside_radius"]
    assert sanitized["context"] == {"authorization": REDACTED, "job_id": 7}
    assert sanitized["attempts"] == [{"secret_key": REDACTED, "bid_id": 3}]


def test_sanitize_log_data_keeps_engine_keys():
    data = {"reset_date": "2026-02-15", "leads_limit": 25, "cache_key": "plans"}

    assert sanitize_log_data(data) == data


def test_setup_logging_writes_rotating_file(tmp_path):
    root = setup_logging("debug", log_dir=str(tmp_path / "logs"), log_file="engine.log")
    try:
        logging.getLogger("leadengine.test").info("hello")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert "hello" in (tmp_path / "logs" / "engine.log").read_text()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        setup_logging(log_dir=None)


def test_setup_logging_console_only():
    root = setup_logging("nonsense", log_dir=None)

    assert root.level == logging.INFO
    assert len(root.handlers) == 1
