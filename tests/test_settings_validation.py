from __future__ import annotations

import pytest

from settings import settings, validate_env_settings


def test_validate_env_allows_dev_missing(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "dev", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "", raising=False)
    monkeypatch.setattr(settings, "PAYOUT_STORE", "memory", raising=False)
    validate_env_settings()


def test_validate_env_staging_fails_on_memory_store(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "staging", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://example", raising=False)
    monkeypatch.setattr(settings, "PAYOUT_STORE", "memory", raising=False)

    with pytest.raises(RuntimeError) as exc:
        validate_env_settings()

    assert "PAYOUT_STORE" in str(exc.value)


def test_validate_env_prod_fails_on_missing(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "", raising=False)
    monkeypatch.setattr(settings, "PAYOUT_STORE", "memory", raising=False)

    with pytest.raises(RuntimeError) as exc:
        validate_env_settings()

    message = str(exc.value)
    assert "DATABASE_URL" in message
    assert "PAYOUT_STORE" in message


def test_validate_env_prod_passes_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://example", raising=False)
    monkeypatch.setattr(settings, "PAYOUT_STORE", "postgres", raising=False)
    validate_env_settings()
