"""Shared test fixtures for JsonDB tests."""

import shutil
import tempfile

import pytest

import jsondb
from jsondb.config import config


@pytest.fixture(autouse=True)
def isolated_defaults(monkeypatch):
    """Keep environment defaults from leaking into tests."""
    monkeypatch.setattr(config, '_location', None)
    monkeypatch.setattr(config, '_compact', False)
    monkeypatch.setattr(config, '_one_indexed', False)


@pytest.fixture
def temp_dir():
    """Create a temporary storage directory for testing."""
    path = tempfile.mkdtemp(prefix='jsondb-')

    yield path

    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def db(temp_dir):
    """A database with 'users' and 'posts' tables."""
    return jsondb.connect(['users', 'posts'], 'app', location=temp_dir)
