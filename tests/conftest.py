"""Shared pytest fixtures for AI Visibility Core tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Ensure project root is on sys.path so 'ai_visibility' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from ai_visibility.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from ai_visibility.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


@pytest.fixture()
def business():
    from ai_visibility.models import BusinessContext
    return BusinessContext(
        business_name="Charcoal N Chill",
        city="Alpharetta",
        state="GA",
        categories=("hookah bar", "lounge"),
        amenities={"has_outdoor_seating": True, "serves_alcohol": True, "has_tv": False},
    )


@pytest.fixture()
def mock_llm_client():
    """Return a mock LLMClient with every provider credentialed."""
    from ai_visibility.integrations.llm_client import Completion

    client = MagicMock()
    client.has_credential = MagicMock(return_value=True)
    client.complete = AsyncMock(return_value=Completion(
        text="Mock LLM response text.", provider="openai", model="gpt-4o-mini",
    ))
    client.generate_text = AsyncMock(return_value="Mock LLM response text.")
    client.generate_json = AsyncMock(return_value={"score": 75})
    return client


@pytest.fixture()
def make_completion():
    """Factory for canned Completion objects."""
    from ai_visibility.integrations.llm_client import Completion

    def _make(text: str, provider: str = "openai", citations=None):
        return Completion(text=text, provider=provider, model="mock", citations=list(citations or []))
    return _make


@pytest.fixture()
def html_transport():
    """Factory for an httpx.MockTransport serving fixed HTML."""

    def _make(html: str, status: int = 200):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text=html, headers={"content-type": "text/html"})
        return httpx.MockTransport(handler)
    return _make
