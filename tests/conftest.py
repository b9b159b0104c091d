"""
Shared fixtures for clawtop tests.

Commands are never executed here: collectors get an OpenClawClient mock
whose run/run_json/run_text answers come from per-test tables.
"""

from typing import Any, Dict, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from clawtop._types import (
    AgentsCard,
    BoardCards,
    ChannelsCard,
    CronCard,
    GatewayCard,
    RepoDriftCard,
    SecurityCard,
    SessionsCard,
    VersionDriftCard,
    known_metric,
    unknown_metric,
)
from clawtop.collectors import reset_compatibility_cache
from clawtop.config import BoardConfig
from clawtop.openclaw import OpenClawClient
from clawtop.schemas import OpenClawConfig, StatusSource
from clawtop.utils import CommandResult, validate_payload


@pytest.fixture(autouse=True)
def clear_compatibility_cache():
    """The compatibility check is memoized per process; isolate every test."""
    reset_compatibility_cache()
    yield
    reset_compatibility_cache()


@pytest.fixture
def healthy_cards() -> BoardCards:
    """Cards that derive GREEN: every watched metric known and benign."""
    return BoardCards(
        security=SecurityCard(critical=known_metric(0), warning=known_metric(0), info=known_metric(2)),
        cron=CronCard(enabled_count=known_metric(3), failing_or_recent_error_count=known_metric(0)),
        channels=ChannelsCard(configured_count=known_metric(2), connected_count=known_metric(2)),
        agents=AgentsCard(configured_count=known_metric(1)),
        sessions=SessionsCard(active_count=known_metric(4), active_window_minutes=60),
        gateway=GatewayCard(reachable=known_metric(True), error=unknown_metric("gateway error not provided")),
        version_drift=VersionDriftCard(
            installed_version=known_metric("2026.2.9"),
            latest_version=known_metric("2026.2.9"),
            update_available=known_metric(False)
        ),
        repo_drift=RepoDriftCard(
            clean=known_metric(True),
            ahead_count=known_metric(0),
            behind_count=known_metric(0),
            dirty_count=known_metric(0),
            repository_count=known_metric(1)
        )
    )


def command_failure(args: Sequence[str]) -> Any:
    """Unknown metric shaped like the bridge's answer for a missing binary."""
    return unknown_metric(f"openclaw {' '.join(args)}: openclaw not found")


def make_client(
    json_responses: Optional[Dict[Tuple[str, ...], Any]] = None,
    text_responses: Optional[Dict[Tuple[str, ...], Any]] = None,
    run_results: Optional[Dict[Tuple[str, ...], CommandResult]] = None,
    config: Optional[BoardConfig] = None
) -> MagicMock:
    """
    Build an OpenClawClient mock.

    json_responses map argument tuples to raw payloads (validated through
    the real schema) or to ready-made Metrics. Anything not listed fails
    the way a missing binary would.
    """
    json_responses = json_responses or {}
    text_responses = text_responses or {}
    run_results = run_results or {}

    client = MagicMock(spec=OpenClawClient)
    client.config = config or BoardConfig()
    client.binary = "openclaw"
    client.label.side_effect = lambda args: " ".join(["openclaw", *args])

    async def run_json(args, schema, label=None, timeout=None):
        key = tuple(args)
        if key not in json_responses:
            return command_failure(args)
        response = json_responses[key]
        if hasattr(response, "known"):
            return response
        return known_metric(validate_payload(response, schema))

    async def run_text(args, label=None, timeout=None):
        key = tuple(args)
        if key not in text_responses:
            return command_failure(args)
        response = text_responses[key]
        if hasattr(response, "known"):
            return response
        return known_metric(response)

    async def run(args, timeout=None):
        key = tuple(args)
        if key not in run_results:
            return CommandResult(["openclaw", *args], None, reason="openclaw not found")
        return run_results[key]

    client.run_json = AsyncMock(side_effect=run_json)
    client.run_text = AsyncMock(side_effect=run_text)
    client.run = AsyncMock(side_effect=run)
    client.read_config = AsyncMock(return_value=unknown_metric("openclaw config not found or unreadable"))
    return client


def status_source(payload: Dict[str, Any]):
    """Known status-source metric from a camelCase payload."""
    return known_metric(StatusSource.model_validate(payload))


def openclaw_config(payload: Dict[str, Any]):
    """Known openclaw.json metric from a payload."""
    return known_metric(OpenClawConfig.model_validate(payload))


@pytest.fixture
def client_factory():
    return make_client
