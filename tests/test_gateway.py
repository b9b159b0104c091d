"""
Tests for the gateway collector.
"""

from clawtop._types import WarningSeverity, unknown_metric
from clawtop.collectors.gateway import collect_gateway_card

from conftest import status_source


def test_reachable_gateway():
    output = collect_gateway_card(status_source({"gateway": {"reachable": True}}))

    assert output.card.reachable.value is True
    assert output.card.error.reason == "gateway error not provided"
    assert output.warnings == ()


def test_unreachable_gateway_is_error_advisory():
    output = collect_gateway_card(status_source({"gateway": {"reachable": False, "error": "ECONNREFUSED"}}))

    assert output.card.reachable.value is False
    assert output.card.error.value == "ECONNREFUSED"
    assert [(w.code, w.severity) for w in output.warnings] == [
        ("gateway_unreachable", WarningSeverity.ERROR)
    ]


def test_missing_reachability():
    output = collect_gateway_card(status_source({"gateway": {}}))

    assert output.card.reachable.reason == "gateway reachability unavailable"
    assert output.card.error.reason == "gateway state unavailable"
    assert [w.code for w in output.warnings] == ["gateway_reachability_unknown"]


def test_error_without_reachability_keeps_error():
    output = collect_gateway_card(status_source({"gateway": {"error": "token expired"}}))

    assert output.card.reachable.known is False
    assert output.card.error.value == "token expired"


def test_status_source_unknown_propagates_reason():
    output = collect_gateway_card(unknown_metric("openclaw status --json: timed out"))

    assert output.card.reachable.reason == "openclaw status --json: timed out"
    assert output.card.error.reason == "openclaw status --json: timed out"
    assert output.warnings[0].code == "gateway_reachability_unknown"
