"""Shared test fixtures for the megaverse test suite."""

from __future__ import annotations

import pytest

from megaverse.config import MegaverseConfig


@pytest.fixture
def config() -> MegaverseConfig:
    """Fast test configuration: no retry pause, dummy candidate id."""
    return MegaverseConfig(candidate_id="cand-test-1234", rate_limit_retry_delay=0.0)
