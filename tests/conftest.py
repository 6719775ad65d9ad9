"""Shared fixtures for dataknobs-structured tests."""

import pytest

from dataknobs_structured.extraction import ExtractionClient, ExtractionConfig, ExtractionTracker
from dataknobs_structured.testing import ScriptedGenerator


@pytest.fixture
def generator():
    """Scripted generator with an empty script."""
    return ScriptedGenerator()


@pytest.fixture
def tracker():
    """Extraction tracker."""
    return ExtractionTracker()


@pytest.fixture
def make_client(generator, tracker):
    """Factory for clients wired to the scripted generator and tracker."""

    def _make(**config):
        return ExtractionClient(generator, ExtractionConfig(**config), tracker=tracker)

    return _make
