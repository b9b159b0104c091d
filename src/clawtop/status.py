"""
Board snapshot orchestration and overall status derivation.

Collection order:
1. Shared inputs - `openclaw status --json` and openclaw.json, once
2. Fan-out - every collector concurrently, inputs passed read-only
3. Fan-in - warnings de-duplicated, timestamp stamped, verdict derived

derive_overall_card is pure. RED is evaluated first and short-circuits
AMBER; unknown values never trigger RED on their own.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ._types import (
    AgentsCard,
    BoardCards,
    BoardSnapshot,
    BoardWarning,
    ChannelsCard,
    CollectorOutput,
    CronCard,
    Metric,
    OverallCard,
    SecurityCard,
    SessionsCard,
    StatusLevel,
    VersionDriftCard,
    WarningSeverity,
    build_warning,
    now_utc,
    unknown_metric,
)
from .collectors import (
    collect_agents_card,
    collect_channels_card,
    collect_compatibility_warnings,
    collect_cron_card,
    collect_gateway_card,
    collect_repo_drift_card,
    collect_security_card,
    collect_sessions_card,
    collect_status_source,
    collect_version_drift_card,
)
from .collectors.repo_drift import aggregate_repo_drift
from .config import BoardConfig, OpenClawEnvironment
from .openclaw import OpenClawClient

logger = logging.getLogger(__name__)

UNKNOWN_CRITICAL_REASON = "unknown state in critical cards"
HEALTHY_REASON = "all health checks passed"


# =============================================================================
# Overall status
# =============================================================================


def _greater_than(metric: Metric[Any], threshold: int) -> bool:
    return metric.known and metric.value > threshold


def _is_false(metric: Metric[bool]) -> bool:
    return metric.known and metric.value is False


def watch_list(cards: BoardCards) -> Tuple[Metric[Any], ...]:
    """Metrics whose unknown state alone forces AMBER."""
    return (
        cards.security.critical,
        cards.security.warning,
        cards.cron.failing_or_recent_error_count,
        cards.channels.configured_count,
        cards.gateway.reachable,
        cards.repo_drift.clean,
        cards.repo_drift.behind_count,
        cards.version_drift.installed_version,
        cards.version_drift.latest_version,
    )


def derive_overall_card(cards: BoardCards) -> OverallCard:
    """
    Fold every card into one verdict with ranked reasons.

    RED: critical security findings, failing cron jobs, or a known
    unreachable gateway; all matching reasons are kept.
    AMBER (only when nothing is RED): warning findings, a dirty or behind
    repository, or any watch-list metric unknown (reported once).
    GREEN otherwise.
    """
    red_reasons = []
    if _greater_than(cards.security.critical, 0):
        red_reasons.append("critical security findings > 0")
    if _greater_than(cards.cron.failing_or_recent_error_count, 0):
        red_reasons.append("failing cron jobs > 0")
    if _is_false(cards.gateway.reachable):
        red_reasons.append("gateway unreachable")

    if red_reasons:
        return OverallCard(level=StatusLevel.RED, reasons=tuple(red_reasons))

    amber_reasons = []
    if _greater_than(cards.security.warning, 0):
        amber_reasons.append("warning findings > 0")
    if any(not metric.known for metric in watch_list(cards)):
        amber_reasons.append(UNKNOWN_CRITICAL_REASON)
    if _is_false(cards.repo_drift.clean):
        amber_reasons.append("repo drift: dirty repository")
    if _greater_than(cards.repo_drift.behind_count, 0):
        amber_reasons.append("repo drift: behind upstream")

    if amber_reasons:
        return OverallCard(level=StatusLevel.AMBER, reasons=tuple(amber_reasons))

    return OverallCard(level=StatusLevel.GREEN, reasons=(HEALTHY_REASON,))


def unique_warnings(warnings: Iterable[BoardWarning]) -> Tuple[BoardWarning, ...]:
    """Collapse warnings equal in source, code, reason and context; first wins."""
    seen: Dict[Tuple[str, str, str, str], BoardWarning] = {}
    for warning in warnings:
        seen.setdefault(warning.key, warning)
    return tuple(seen.values())


# =============================================================================
# Collector failure containment
# =============================================================================


def _unknown_security(reason: str) -> SecurityCard:
    return SecurityCard(critical=unknown_metric(reason), warning=unknown_metric(reason), info=unknown_metric(reason))


def _unknown_cron(reason: str) -> CronCard:
    return CronCard(enabled_count=unknown_metric(reason), failing_or_recent_error_count=unknown_metric(reason))


def _unknown_channels(reason: str) -> ChannelsCard:
    return ChannelsCard(configured_count=unknown_metric(reason), connected_count=unknown_metric(reason))


def _unknown_agents(reason: str) -> AgentsCard:
    return AgentsCard(configured_count=unknown_metric(reason))


def _unknown_version(reason: str) -> VersionDriftCard:
    return VersionDriftCard(
        installed_version=unknown_metric(reason),
        latest_version=unknown_metric(reason),
        update_available=unknown_metric(reason)
    )


def _settle(
    source: str,
    result: Any,
    unknown_card: Callable[[str], Any]
) -> CollectorOutput[Any]:
    """Turn an unexpected collector exception into an all-unknown card."""
    if isinstance(result, BaseException):
        logger.error(f"Collector {source} failed with exception: {result}", exc_info=result)
        reason = f"{source} collector failed: {result}"
        return CollectorOutput(
            card=unknown_card(reason),
            warnings=(build_warning(source, "collector_failed", reason, WarningSeverity.ERROR),)
        )
    return result


# =============================================================================
# Orchestrator
# =============================================================================


class SnapshotCollector:
    """
    Collects one BoardSnapshot per call.

    Usage:
        collector = SnapshotCollector(BoardConfig())
        snapshot = await collector.collect()
        print(snapshot.overall.level)
    """

    def __init__(
        self,
        config: Optional[BoardConfig] = None,
        client: Optional[OpenClawClient] = None,
        env: Optional[OpenClawEnvironment] = None
    ):
        self.config = config or BoardConfig()
        self.client = client or OpenClawClient(self.config)
        self.env = env

    async def collect(self, active_window_minutes: Optional[int] = None) -> BoardSnapshot:
        window = active_window_minutes or self.config.active_window_minutes
        logger.info("Starting snapshot collection")

        status_source, openclaw_config = await asyncio.gather(
            collect_status_source(self.client),
            self.client.read_config(self.env)
        )

        gateway = collect_gateway_card(status_source)

        results = await asyncio.gather(
            collect_compatibility_warnings(self.client),
            collect_security_card(self.client, status_source),
            collect_cron_card(self.client),
            collect_channels_card(self.client, openclaw_config),
            collect_agents_card(self.client, status_source, openclaw_config),
            collect_sessions_card(self.client, window),
            collect_repo_drift_card(status_source, openclaw_config, self.config),
            collect_version_drift_card(self.client, status_source, self.env),
            return_exceptions=True
        )

        compatibility = results[0]
        if isinstance(compatibility, BaseException):
            logger.error(f"Compatibility check failed with exception: {compatibility}")
            compatibility = (build_warning(
                "compatibility", "collector_failed", f"compatibility check failed: {compatibility}",
                WarningSeverity.ERROR
            ),)

        security = _settle("security", results[1], _unknown_security)
        cron = _settle("cron", results[2], _unknown_cron)
        channels = _settle("channels", results[3], _unknown_channels)
        agents = _settle("agents", results[4], _unknown_agents)
        sessions = _settle(
            "sessions", results[5],
            lambda reason: SessionsCard(active_count=unknown_metric(reason), active_window_minutes=window)
        )
        repo_drift = _settle("repoDrift", results[6], lambda reason: aggregate_repo_drift([], reason))
        version_drift = _settle("version", results[7], _unknown_version)

        cards = BoardCards(
            security=security.card,
            cron=cron.card,
            channels=channels.card,
            agents=agents.card,
            sessions=sessions.card,
            gateway=gateway.card,
            version_drift=version_drift.card,
            repo_drift=repo_drift.card
        )

        outputs: Sequence[CollectorOutput[Any]] = (
            gateway, security, cron, channels, agents, sessions, repo_drift, version_drift
        )
        warnings: List[BoardWarning] = list(compatibility)
        for output in outputs:
            warnings.extend(output.warnings)

        snapshot = BoardSnapshot(
            cards=cards,
            overall=derive_overall_card(cards),
            generated_at=now_utc(),
            warnings=unique_warnings(warnings)
        )

        logger.info(
            f"Snapshot collected: level={snapshot.overall.level.value}, "
            f"warnings={len(snapshot.warnings)}"
        )
        return snapshot


async def collect_board_snapshot(
    config: Optional[BoardConfig] = None,
    active_window_minutes: Optional[int] = None
) -> BoardSnapshot:
    """Collect one snapshot with a fresh collector."""
    return await SnapshotCollector(config).collect(active_window_minutes)
