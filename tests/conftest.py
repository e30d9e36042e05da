import pytest
from fastapi.testclient import TestClient

from sitegen.analytics import AnalyticsRecorder
from sitegen.main import create_app
from sitegen.providers import ProviderKind, ProviderRegistry


@pytest.fixture
def make_client():
    """Build a TestClient around a fresh app; returns (client, server state)."""

    def _make(*providers, current_provider=ProviderKind.OPENAI):
        app = create_app(
            registry=ProviderRegistry(providers),
            analytics=AnalyticsRecorder(),
            current_provider=current_provider,
        )
        return TestClient(app), app.state.server

    return _make
