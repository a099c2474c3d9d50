"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("STORAGE_BUCKET", "listing-images")
os.environ.setdefault("GEOCODE_API_KEY", "test-geocode-key")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.user import AuthenticatedUser  # noqa: E402
from src.utils.settings import Settings  # noqa: E402
from tests.utils.factories import create_image_files, create_listing_row  # noqa: E402


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Pin the settings tests rely on, whatever the developer's environment says."""
    monkeypatch.setattr(Settings, "SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setattr(Settings, "STORAGE_BUCKET", "listing-images")
    monkeypatch.setattr(Settings, "GEOCODE_API_KEY", "test-geocode-key")
    monkeypatch.setattr(Settings, "ENFORCE_IMAGE_LIMIT", True)
    monkeypatch.setattr(Settings, "LISTING_WRITE_MODE", "overwrite")
    monkeypatch.setattr(Settings, "LISTINGS_PAGE_SIZE", 10)


@pytest.fixture
def owner():
    """The signed-in user who owns the sample listing."""
    return AuthenticatedUser(
        user_id="owner-uid-0001",
        name="Jane Owner",
        email="jane@example.com",
        access_token="owner-token",
    )


@pytest.fixture
def stranger():
    """A signed-in user who owns nothing."""
    return AuthenticatedUser(
        user_id="stranger-uid-0002",
        name="Sam Stranger",
        email="sam@example.com",
        access_token="stranger-token",
    )


@pytest.fixture
def listing_row(owner):
    """A stored rent listing owned by the owner fixture."""
    return create_listing_row(
        listing_id="01HZXLISTING000000000000001",
        user_ref=owner.user_id,
        listing_type="rent",
        offer=False,
    )


@pytest.fixture
def image_files():
    return create_image_files(3)


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builders chain back to themselves."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "order", "range"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    client.query = query
    return client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
