"""
Agents collector.

Fallback chain: `agents list --json` length, then the status source's
agent array, then the agent list in openclaw.json. Any fallback that
answers still carries an advisory citing why the primary failed.
"""

import logging

from .._types import (
    AgentsCard,
    CollectorOutput,
    Metric,
    build_warning,
    first_known,
    known_metric,
    unknown_metric,
)
from ..openclaw import OpenClawClient
from ..schemas import AgentsList, OpenClawConfig, StatusSource

logger = logging.getLogger(__name__)

SOURCE = "agents"


def count_from_status(status_source: Metric[StatusSource]) -> Metric[int]:
    if not status_source.known:
        return unknown_metric(status_source.reason)

    agents = status_source.value.agents
    if agents is None or agents.agents is None:
        return unknown_metric("status source did not list agents")

    return known_metric(len(agents.agents))


def count_from_config(config: Metric[OpenClawConfig]) -> Metric[int]:
    if not config.known:
        return unknown_metric(config.reason)

    agents = config.value.agents
    if agents is None or agents.agent_list is None:
        return unknown_metric("openclaw config has no agents.list")

    return known_metric(len(agents.agent_list))


async def collect_agents_card(
    client: OpenClawClient,
    status_source: Metric[StatusSource],
    config: Metric[OpenClawConfig]
) -> CollectorOutput[AgentsCard]:
    agents_list = await client.run_json(["agents", "list", "--json"], AgentsList)

    if agents_list.known:
        return CollectorOutput(card=AgentsCard(configured_count=known_metric(len(agents_list.value))))

    configured = first_known(count_from_status(status_source), count_from_config(config))

    if configured.known:
        logger.info(f"Agents list unavailable, using fallback count: {agents_list.reason}")
        return CollectorOutput(
            card=AgentsCard(configured_count=configured),
            warnings=(build_warning(SOURCE, "agents_list_unavailable", agents_list.reason),)
        )

    reason = first_known(agents_list, configured).reason
    return CollectorOutput(
        card=AgentsCard(configured_count=unknown_metric(reason)),
        warnings=(build_warning(SOURCE, "agents_unknown", reason),)
    )
