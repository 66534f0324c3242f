"""Pytest configuration and fixtures for bodycapture tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from tests.utils import FakeRequest, FakeResponse


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def original_cwd() -> Generator[str, None, None]:
    """Save and restore the current working directory."""
    cwd = os.getcwd()
    yield cwd
    os.chdir(cwd)


@pytest.fixture
def fake_response() -> FakeResponse:
    return FakeResponse()


@pytest.fixture
def hello_request() -> FakeRequest:
    """A POST request carrying ``hello world``."""
    return FakeRequest(b"hello world")
