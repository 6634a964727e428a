"""Shared fixtures for all tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure repo root is on sys.path so tests can import the `wts` package
# when running pytest from the repository root without an editable install.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from tests.helpers import FakeFfmpeg, FakeOpenAI  # noqa: E402
from wts.config import Settings  # noqa: E402
from wts.main import create_app  # noqa: E402


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    return Settings(openai_api_key="sk-test", upload_dir=upload_dir)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch) -> FakeFfmpeg:
    fake = FakeFfmpeg()
    monkeypatch.setattr("wts.media.subprocess.run", fake)
    return fake


@pytest.fixture
def client(settings: Settings, fake_openai: FakeOpenAI) -> TestClient:
    return TestClient(create_app(settings=settings, openai_client=fake_openai))