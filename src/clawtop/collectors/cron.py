"""
Cron health collector.

`cron list --all --json` gives exact enabled and failing counts;
`cron status --json` is coarser and only yields the enabled count.
Both run concurrently and the list wins when both succeed.
"""

import asyncio
import logging

from .._types import (
    CollectorOutput,
    CronCard,
    build_warning,
    first_known,
    known_metric,
    unknown_metric,
)
from ..openclaw import OpenClawClient
from ..schemas import CronList, CronStatus

logger = logging.getLogger(__name__)

SOURCE = "cron"


def count_enabled(cron_list: CronList) -> int:
    return sum(1 for job in cron_list.jobs if job.enabled is True)


def count_failing(cron_list: CronList) -> int:
    """Enabled jobs with consecutive errors or a last status other than 'ok'."""
    return sum(1 for job in cron_list.jobs if job.enabled is True and job.is_failing)


async def collect_cron_card(client: OpenClawClient) -> CollectorOutput[CronCard]:
    cron_status, cron_list = await asyncio.gather(
        client.run_json(["cron", "status", "--json"], CronStatus),
        client.run_json(["cron", "list", "--all", "--json"], CronList)
    )

    if cron_list.known:
        warnings = ()
        if not cron_status.known:
            warnings = (build_warning(SOURCE, "cron_status_unavailable", cron_status.reason),)

        return CollectorOutput(
            card=CronCard(
                enabled_count=known_metric(count_enabled(cron_list.value)),
                failing_or_recent_error_count=known_metric(count_failing(cron_list.value))
            ),
            warnings=warnings
        )

    if cron_status.known:
        logger.info(f"Cron list unavailable, falling back to cron status: {cron_list.reason}")
        status = cron_status.value
        return CollectorOutput(
            card=CronCard(
                enabled_count=known_metric(status.jobs if status.enabled else 0),
                failing_or_recent_error_count=unknown_metric(cron_list.reason)
            ),
            warnings=(build_warning(SOURCE, "cron_list_unavailable", cron_list.reason),)
        )

    reason = first_known(cron_list, cron_status).reason
    return CollectorOutput(
        card=CronCard(
            enabled_count=unknown_metric(reason),
            failing_or_recent_error_count=unknown_metric(reason)
        ),
        warnings=(build_warning(SOURCE, "cron_unknown", reason),)
    )
