"""
Tests for the active sessions collector.
"""

import pytest

from clawtop.collectors.sessions import collect_sessions_card


@pytest.mark.asyncio
async def test_count_field_wins(client_factory):
    client = client_factory({("sessions", "--json", "--active", "60"): {"count": 5, "sessions": [{}]}})

    output = await collect_sessions_card(client)

    assert output.card.active_count.value == 5
    assert output.card.active_window_minutes == 60
    assert output.warnings == ()


@pytest.mark.asyncio
async def test_window_passed_to_command(client_factory):
    client = client_factory({("sessions", "--json", "--active", "120"): {"sessions": [{}, {}]}})

    output = await collect_sessions_card(client, 120)

    assert output.card.active_count.value == 2
    assert output.card.active_window_minutes == 120
    client.run_json.assert_awaited_once()
    assert client.run_json.await_args.args[0] == ["sessions", "--json", "--active", "120"]


@pytest.mark.asyncio
async def test_payload_without_count_or_list_is_zero(client_factory):
    client = client_factory({("sessions", "--json", "--active", "60"): {}})

    output = await collect_sessions_card(client)

    assert output.card.active_count.value == 0


@pytest.mark.asyncio
async def test_failure_is_unknown_with_advisory(client_factory):
    client = client_factory()

    output = await collect_sessions_card(client, 30)

    assert output.card.active_count.known is False
    assert output.card.active_window_minutes == 30
    assert [w.code for w in output.warnings] == ["sessions_active_unknown"]
