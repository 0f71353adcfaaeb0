"""Pytest configuration and fixtures for integration tests.

Integration tests call the real Gemini API. They need GEMINI_API_KEY and a real
fridge photo at FRIDGE_TEST_IMAGE (JPEG, PNG or WebP); without both, every test
in this directory is skipped.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env from the project root before collection."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests require a valid GEMINI_API_KEY and FRIDGE_TEST_IMAGE")
    print(f"Environment loaded from: {env_path}")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_environment():
    """Skip the integration session when credentials or the test photo are missing."""
    missing = []
    if not os.getenv("GEMINI_API_KEY"):
        missing.append("GEMINI_API_KEY")
    image_path = os.getenv("FRIDGE_TEST_IMAGE")
    if not image_path or not Path(image_path).is_file():
        missing.append("FRIDGE_TEST_IMAGE")

    if missing:
        pytest.skip(
            f"Integration tests skipped. Missing: {', '.join(missing)}. Please set these in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture(scope="session")
def fridge_image() -> bytes:
    return Path(os.environ["FRIDGE_TEST_IMAGE"]).read_bytes()


@pytest.fixture
def favorites_path(tmp_path):
    return tmp_path / "favorites.json"
