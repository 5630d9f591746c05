"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from linstor_volume.api.services.placement import resolve_params
from linstor_volume.client.client import LinstorClient


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for testing."""
    with patch("subprocess.run") as mock:
        yield mock


@pytest.fixture
def mock_client():
    """LINSTOR client double with the real client's interface."""
    return MagicMock(spec=LinstorClient)


@pytest.fixture
def params():
    """Parameters of a volume created with default options."""
    return resolve_params("vol1")


@pytest.fixture
def clean_env(monkeypatch, temp_dir):
    """Point the config loader at a missing file and clear LS_* overrides."""
    monkeypatch.setenv("LINSTOR_DOCKER_VOLUME_CONFIG", str(temp_dir / "missing.conf"))
    for suffix in ("CONTROLLERS", "USERNAME", "PASSWORD", "CERT_FILE", "KEY_FILE", "CA_FILE"):
        monkeypatch.delenv("LS_" + suffix, raising=False)
