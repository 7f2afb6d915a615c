"""Pytest configuration and fixtures shared across all test modules.

This file is loaded by pytest before any test module, so the environment is
set before ``mailgate.core.config`` builds the global settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mailgate.core.app_factory import create_app
from mailgate.core.config import AppSettings, LogSettings, Settings


def build_settings(**app_overrides) -> Settings:
    """Settings with explicit app overrides, independent of the environment."""
    return Settings(app=AppSettings(**app_overrides), log=LogSettings())


@pytest.fixture
def make_app():
    """Factory fixture returning a fresh app (and limiter state) per call."""

    def _make(**app_overrides) -> FastAPI:
        return create_app(build_settings(**app_overrides))

    return _make


@pytest.fixture
def client(make_app) -> TestClient:
    return TestClient(make_app())
