"""
Gateway collector.

Reads the gateway sub-object of the shared status source; there is no
command of its own. An unreachable gateway is the one condition that
raises an error-severity advisory, because it turns the board RED.
"""

from typing import Tuple

from .._types import (
    BoardWarning,
    CollectorOutput,
    GatewayCard,
    Metric,
    WarningSeverity,
    build_warning,
    known_metric,
    unknown_metric,
)
from ..schemas import StatusSource

SOURCE = "gateway"


def gateway_from_status(status: StatusSource) -> GatewayCard:
    gateway = status.gateway
    reachable = gateway.reachable if gateway is not None else None
    error = gateway.error if gateway is not None else None

    if reachable is not None:
        return GatewayCard(
            reachable=known_metric(reachable),
            error=known_metric(error) if error is not None else unknown_metric("gateway error not provided")
        )

    return GatewayCard(
        reachable=unknown_metric("gateway reachability unavailable"),
        error=known_metric(error) if error is not None else unknown_metric("gateway state unavailable")
    )


def warnings_for_reachability(reachable: Metric[bool]) -> Tuple[BoardWarning, ...]:
    if not reachable.known:
        return (build_warning(SOURCE, "gateway_reachability_unknown", reachable.reason),)

    if reachable.value is False:
        return (build_warning(SOURCE, "gateway_unreachable", "gateway unreachable", WarningSeverity.ERROR),)

    return ()


def collect_gateway_card(status_source: Metric[StatusSource]) -> CollectorOutput[GatewayCard]:
    if status_source.known:
        card = gateway_from_status(status_source.value)
    else:
        card = GatewayCard(
            reachable=unknown_metric(status_source.reason),
            error=unknown_metric(status_source.reason)
        )

    return CollectorOutput(card=card, warnings=warnings_for_reachability(card.reachable))
