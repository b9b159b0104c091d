"""
Version drift collector.

Installed version comes from `openclaw --version`. Latest version comes
from the status source's update registry, else from the first state root
holding a usable update-check.json. Both sides are normalized to their
first dotted-numeric token before comparison.
"""

import logging
from typing import List, Optional

from .._types import (
    BoardWarning,
    CollectorOutput,
    Metric,
    VersionDriftCard,
    WarningSeverity,
    build_warning,
    known_metric,
    unknown_metric,
)
from ..config import OpenClawEnvironment, resolve_openclaw_state_roots
from ..openclaw import OpenClawClient
from ..schemas import StatusSource, UpdateCheck
from ..utils import compare_dot_versions, normalize_version, read_json_file_with_schema

logger = logging.getLogger(__name__)

SOURCE = "version"
UPDATE_CHECK_FILE = "update-check.json"


def normalize_version_metric(metric: Metric[str]) -> Metric[str]:
    if not metric.known:
        return metric
    return known_metric(normalize_version(metric.value))


def latest_version_from_status(status_source: Metric[StatusSource]) -> Metric[str]:
    if not status_source.known:
        return unknown_metric(status_source.reason)

    update = status_source.value.update
    latest = update.registry.latest_version if update and update.registry else None
    if latest:
        return known_metric(latest)

    return unknown_metric("latest version unavailable from status source")


async def latest_version_from_state(env: Optional[OpenClawEnvironment] = None) -> Metric[str]:
    """Scan state roots in priority order for update-check.json."""
    for state_root in resolve_openclaw_state_roots(env):
        parsed = await read_json_file_with_schema(state_root / UPDATE_CHECK_FILE, UpdateCheck)
        if not parsed.known:
            continue

        raw_version = parsed.value.any_version
        if raw_version:
            logger.debug(f"Latest version {raw_version} from {state_root / UPDATE_CHECK_FILE}")
            return known_metric(raw_version)

    return unknown_metric(f"latest version unavailable from state {UPDATE_CHECK_FILE}")


def derive_update_available(installed: Metric[str], latest: Metric[str]) -> Metric[bool]:
    """Known only when both ends are known; true iff latest > installed."""
    if not installed.known:
        return unknown_metric(f"installed version unknown: {installed.reason}")

    if not latest.known:
        return unknown_metric(f"latest version unknown: {latest.reason}")

    return known_metric(compare_dot_versions(latest.value, installed.value) > 0)


async def collect_version_drift_card(
    client: OpenClawClient,
    status_source: Metric[StatusSource],
    env: Optional[OpenClawEnvironment] = None
) -> CollectorOutput[VersionDriftCard]:
    installed = normalize_version_metric(await client.run_text(["--version"]))

    warnings: List[BoardWarning] = []
    latest = latest_version_from_status(status_source)

    if not latest.known:
        from_state = await latest_version_from_state(env)
        if from_state.known:
            warnings.append(build_warning(SOURCE, "latest_version_fallback_state", latest.reason))
            latest = from_state
        else:
            latest = unknown_metric(f"{latest.reason}; {from_state.reason}")

    latest = normalize_version_metric(latest)
    update_available = derive_update_available(installed, latest)

    if not installed.known:
        warnings.append(build_warning(SOURCE, "installed_version_unknown", installed.reason))
    if not latest.known:
        warnings.append(build_warning(SOURCE, "latest_version_unknown", latest.reason))
    if not update_available.known:
        warnings.append(build_warning(
            SOURCE,
            "update_availability_unknown",
            update_available.reason,
            WarningSeverity.INFO
        ))

    return CollectorOutput(
        card=VersionDriftCard(
            installed_version=installed,
            latest_version=latest,
            update_available=update_available
        ),
        warnings=tuple(warnings)
    )
