"""
Shared `openclaw status --json` query.

Collected once per snapshot, before the collector fan-out, and handed
read-only to every collector that uses it as a secondary source.
"""

from .._types import Metric
from ..openclaw import OpenClawClient
from ..schemas import StatusSource

STATUS_ARGS = ["status", "--json"]


async def collect_status_source(client: OpenClawClient) -> Metric[StatusSource]:
    return await client.run_json(STATUS_ARGS, StatusSource)
