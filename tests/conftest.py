"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock, patch
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "anthropic")
os.environ.setdefault("LLM_MODEL", "claude-sonnet-4-20250514")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("AGENTGPT_BASE_URL", "http://agentgpt.test")
os.environ.setdefault("FIRECRAWL_API_KEY", "test-firecrawl-key")

from src.models.buyer import Buyer
from src.models.conversation import WorkspaceConversation
from src.models.session import SessionContext


@pytest.fixture
def agent_session():
    """Agent who owns the test buyer."""
    return SessionContext(user_id="agent-1", role="agent", name="Alex Agent")


@pytest.fixture
def broker_session():
    return SessionContext(user_id="broker-1", role="broker")


@pytest.fixture
def buyer_session():
    """Portal session for the test buyer."""
    return SessionContext(user_id="buyer-user-1", role="buyer", buyer_id="buyer-1")


@pytest.fixture
def sample_buyer():
    """Buyer sitting in stage 2."""
    return Buyer(
        id="buyer-1",
        agent_id="agent-1",
        name="Jordan Rivera",
        email="jordan@example.com",
        current_stage=2,
        buyer_type="first-time",
        budget_min=500000,
        budget_max=750000,
        pre_approval_status="Pre-Approved",
        pre_approval_amount=720000,
        preferred_cities=["Austin", "Round Rock"],
        agent_notes="Prefers weekend showings",
        financing_confirmed=True,
        market_context="Austin suburbs",
    )


@pytest.fixture
def sample_conversation(sample_buyer):
    return WorkspaceConversation.build(sample_buyer.id, sample_buyer.current_stage, [])


@pytest.fixture
def mock_supabase_client():
    """
    Supabase client whose query builders chain back to themselves.

    Set `client.query.execute.return_value` to control results.
    """
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "neq", "is_", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[], count=None)
    client.table.return_value = query
    client.query = query
    return client


@pytest.fixture
def patched_supabase(mock_supabase_client):
    """Route every helper in src.services.supabase_client to the mock client."""
    with patch('src.services.supabase_client.SupabaseClient') as mock_client_class:
        mock_client_class.return_value.__aenter__.return_value = mock_supabase_client
        mock_client_class.return_value.__aexit__.return_value = False
        yield mock_supabase_client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
