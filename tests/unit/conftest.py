"""Shared fixtures for unit tests.

Unit tests never reach the network: the generation service is replaced by
FakeGenerationClient, which replays canned responses or raises canned errors.
"""

import base64
import json

import pytest

from fridge_chef.storage.favorites import FavoritesStore
from tests.factories import PNG_BYTES, make_payload


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.fixture
def valid_response_text() -> str:
    return json.dumps(make_payload(3))


@pytest.fixture
def favorites_path(tmp_path):
    return tmp_path / "favorites.json"


@pytest.fixture
def favorites_store(favorites_path) -> FavoritesStore:
    return FavoritesStore(path=favorites_path)
