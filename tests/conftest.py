import os
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

# Deterministic, offline tests: no Gemini key and no pacing delay.
os.environ["GEMINI_API_KEY"] = ""
os.environ["FALLBACK_TOKEN_DELAY_MS"] = "0"
os.environ["PROVIDERS_CONFIG_PATH"] = str(ROOT / "config" / "providers.yaml")


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
