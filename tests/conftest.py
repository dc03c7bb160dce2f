"""
Test Configuration
==================

Shared fixtures for the warranty lifecycle tests.
"""

import pytest

from fakes import RecordingBackend, StaticProvider


@pytest.fixture
def provider() -> StaticProvider:
    return StaticProvider()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
