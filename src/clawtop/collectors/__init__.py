"""Per-domain collectors. Each returns a CollectorOutput and never raises for source faults."""

from .agents import collect_agents_card
from .channels import collect_channels_card
from .compatibility import collect_compatibility_warnings, reset_compatibility_cache
from .cron import collect_cron_card
from .gateway import collect_gateway_card
from .repo_drift import aggregate_repo_drift, collect_repo_drift_card
from .security import collect_security_card
from .sessions import collect_sessions_card
from .status_source import collect_status_source
from .version_drift import collect_version_drift_card, derive_update_available

__all__ = [
    "aggregate_repo_drift",
    "collect_agents_card",
    "collect_channels_card",
    "collect_compatibility_warnings",
    "collect_cron_card",
    "collect_gateway_card",
    "collect_repo_drift_card",
    "collect_security_card",
    "collect_sessions_card",
    "collect_status_source",
    "collect_version_drift_card",
    "derive_update_available",
    "reset_compatibility_cache",
]
