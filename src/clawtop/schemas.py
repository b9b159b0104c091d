"""
Payload schemas for everything clawtop reads from OpenClaw.

Every model accepts extra keys (payloads are partial and grow over time)
and maps the tool's camelCase JSON onto snake_case attributes. Booleans
and counts are strict so that a provider reporting "yes", 1 or "3" is a
schema mismatch rather than a silently coerced value.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel


class OpenClawPayload(BaseModel):
    """Base for OpenClaw JSON payloads."""

    model_config = ConfigDict(
        extra='allow',
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True
    )


# ============================================================================
# openclaw security audit --json
# ============================================================================


class SecuritySummary(OpenClawPayload):
    critical: StrictInt
    info: StrictInt
    warn: StrictInt


class SecurityAudit(OpenClawPayload):
    summary: SecuritySummary


# ============================================================================
# openclaw cron status --json / cron list --all --json
# ============================================================================


class CronStatus(OpenClawPayload):
    enabled: StrictBool
    jobs: StrictInt


class CronJobState(OpenClawPayload):
    consecutive_errors: Optional[Union[StrictInt, StrictFloat]] = None
    last_status: Optional[str] = None


class CronJob(OpenClawPayload):
    id: str
    enabled: Optional[StrictBool] = None
    state: Optional[CronJobState] = None

    @property
    def is_failing(self) -> bool:
        """Positive consecutive errors, or a last status other than 'ok'."""
        if self.state is None:
            return False
        has_consecutive_errors = (self.state.consecutive_errors or 0) > 0
        has_non_ok_last_status = self.state.last_status is not None and self.state.last_status != "ok"
        return has_consecutive_errors or has_non_ok_last_status


class CronList(OpenClawPayload):
    jobs: List[CronJob]


# ============================================================================
# openclaw channels status --json
# ============================================================================


class ChannelEntry(OpenClawPayload):
    configured: Optional[StrictBool] = None
    connected: Optional[StrictBool] = None
    running: Optional[StrictBool] = None


class ChannelsStatus(OpenClawPayload):
    channels: Dict[str, ChannelEntry]


# ============================================================================
# openclaw agents list --json
# ============================================================================


class AgentEntry(OpenClawPayload):
    id: Optional[str] = None
    name: Optional[str] = None


AgentsList = List[AgentEntry]


# ============================================================================
# openclaw sessions --json --active <minutes>
# ============================================================================


class SessionsPayload(OpenClawPayload):
    count: Optional[StrictInt] = None
    sessions: Optional[List[Any]] = None

    @property
    def active_count(self) -> int:
        if self.count is not None:
            return self.count
        if self.sessions is not None:
            return len(self.sessions)
        return 0


# ============================================================================
# openclaw status --json (shared status source)
# ============================================================================


class StatusAgentEntry(OpenClawPayload):
    id: Optional[str] = None
    workspace_dir: Optional[str] = None


class StatusAgents(OpenClawPayload):
    agents: Optional[List[StatusAgentEntry]] = None
    default_id: Optional[str] = None


class StatusGateway(OpenClawPayload):
    error: Optional[str] = None
    reachable: Optional[StrictBool] = None


class StatusSecurityAudit(OpenClawPayload):
    summary: Optional[SecuritySummary] = None


class StatusSessions(OpenClawPayload):
    count: Optional[StrictInt] = None


class UpdateRegistry(OpenClawPayload):
    latest_version: Optional[str] = None


class StatusUpdate(OpenClawPayload):
    registry: Optional[UpdateRegistry] = None


class StatusSource(OpenClawPayload):
    """Parsed `openclaw status --json`; every section is optional."""

    agents: Optional[StatusAgents] = None
    gateway: Optional[StatusGateway] = None
    security_audit: Optional[StatusSecurityAudit] = None
    sessions: Optional[StatusSessions] = None
    update: Optional[StatusUpdate] = None


# ============================================================================
# Local files: openclaw.json and update-check.json
# ============================================================================


class ConfigAgentEntry(OpenClawPayload):
    id: Optional[str] = None
    workspace: Optional[str] = None
    workspace_dir: Optional[str] = None


class ConfigAgents(OpenClawPayload):
    agent_list: Optional[List[ConfigAgentEntry]] = Field(default=None, alias="list")


class OpenClawConfig(OpenClawPayload):
    agents: Optional[ConfigAgents] = None
    channels: Optional[Dict[str, Any]] = None


class UpdateCheck(OpenClawPayload):
    latest: Optional[str] = None
    latest_version: Optional[str] = None
    version: Optional[str] = None

    @property
    def any_version(self) -> Optional[str]:
        """First non-empty of latestVersion, latest, version."""
        for candidate in (self.latest_version, self.latest, self.version):
            if candidate:
                return candidate
        return None
