"""
Security findings collector.

Primary source is `openclaw security audit --json`; the status source's
embedded audit summary is the only fallback.
"""

import logging

from .._types import (
    CollectorOutput,
    Metric,
    SecurityCard,
    build_warning,
    first_known,
    known_metric,
    unknown_metric,
)
from ..openclaw import OpenClawClient
from ..schemas import SecurityAudit, SecuritySummary, StatusSource

logger = logging.getLogger(__name__)

SOURCE = "security"


def _card_from_summary(summary: SecuritySummary) -> SecurityCard:
    return SecurityCard(
        critical=known_metric(summary.critical),
        warning=known_metric(summary.warn),
        info=known_metric(summary.info)
    )


def _unknown_card(reason: str) -> SecurityCard:
    return SecurityCard(
        critical=unknown_metric(reason),
        warning=unknown_metric(reason),
        info=unknown_metric(reason)
    )


def summary_from_status(status_source: Metric[StatusSource]) -> Metric[SecuritySummary]:
    if not status_source.known:
        return unknown_metric(status_source.reason)

    audit = status_source.value.security_audit
    if audit is None or audit.summary is None:
        return unknown_metric("status source has no security audit summary")

    return known_metric(audit.summary)


async def collect_security_card(
    client: OpenClawClient,
    status_source: Metric[StatusSource]
) -> CollectorOutput[SecurityCard]:
    audit = await client.run_json(["security", "audit", "--json"], SecurityAudit)

    if audit.known:
        return CollectorOutput(card=_card_from_summary(audit.value.summary))

    fallback = summary_from_status(status_source)

    if fallback.known:
        logger.info(f"Security audit unavailable, using status source summary: {audit.reason}")
        return CollectorOutput(
            card=_card_from_summary(fallback.value),
            warnings=(build_warning(SOURCE, "security_audit_fallback_status", audit.reason),)
        )

    reason = first_known(audit, fallback).reason
    return CollectorOutput(
        card=_unknown_card(reason),
        warnings=(build_warning(SOURCE, "security_summary_unknown", reason),)
    )
