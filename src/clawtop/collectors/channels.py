"""
Messaging channels collector.

`channels status --json` reports per-channel configured/connected flags.
Not every provider exposes a connected flag; when none do, the connected
count is unknown with an info advisory, since that is expected behaviour
rather than a fault. If the status command fails, the configured count
falls back to the number of channel keys in openclaw.json.
"""

import logging

from .._types import (
    ChannelsCard,
    CollectorOutput,
    Metric,
    WarningSeverity,
    build_warning,
    first_known,
    known_metric,
    unknown_metric,
)
from ..openclaw import OpenClawClient
from ..schemas import ChannelsStatus, OpenClawConfig

logger = logging.getLogger(__name__)

SOURCE = "channels"


def configured_count_from_config(config: Metric[OpenClawConfig]) -> Metric[int]:
    if not config.known:
        return unknown_metric(config.reason)
    return known_metric(len(config.value.channels or {}))


def connected_count(status: ChannelsStatus) -> Metric[int]:
    reporting = [entry for entry in status.channels.values() if entry.connected is not None]
    if not reporting:
        return unknown_metric("channel providers did not expose connected state")
    return known_metric(sum(1 for entry in reporting if entry.connected))


async def collect_channels_card(
    client: OpenClawClient,
    config: Metric[OpenClawConfig]
) -> CollectorOutput[ChannelsCard]:
    channels = await client.run_json(["channels", "status", "--json"], ChannelsStatus)

    if channels.known:
        entries = channels.value.channels.values()
        connected = connected_count(channels.value)

        warnings = ()
        if not connected.known:
            warnings = (build_warning(
                SOURCE,
                "channels_connected_unknown",
                connected.reason,
                WarningSeverity.INFO
            ),)

        return CollectorOutput(
            card=ChannelsCard(
                configured_count=known_metric(sum(1 for entry in entries if entry.configured is True)),
                connected_count=connected
            ),
            warnings=warnings
        )

    logger.info(f"Channels status unavailable, falling back to openclaw.json: {channels.reason}")
    configured = configured_count_from_config(config)
    if not configured.known:
        # Both unknown: chain the reasons
        configured = first_known(channels, config)

    return CollectorOutput(
        card=ChannelsCard(
            configured_count=configured,
            connected_count=unknown_metric(channels.reason)
        ),
        warnings=(build_warning(SOURCE, "channels_status_unavailable", channels.reason),)
    )
