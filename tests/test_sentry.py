"""Tests for the Sentry setup."""

from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from webstudio.config import Settings
from webstudio.integrations import sentry


def test_disabled_without_dsn(monkeypatch):
    calls = []
    monkeypatch.setattr(sentry.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    assert sentry.init_sentry(Settings(sentry_dsn="")) is False
    assert calls == []


def test_registers_web_and_logging_integrations(monkeypatch):
    calls = []
    monkeypatch.setattr(sentry.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    assert sentry.init_sentry(Settings(sentry_dsn="https://key@example.invalid/1")) is True

    kinds = {type(integration) for integration in calls[0]["integrations"]}
    assert kinds == {FastApiIntegration, StarletteIntegration, LoggingIntegration}


def test_health_transactions_are_dropped():
    assert sentry._filter_transactions({"transaction": "/health"}, {}) is None
    assert sentry._filter_transactions({"transaction": "/pages"}, {}) == {"transaction": "/pages"}
