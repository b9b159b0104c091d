"""
Repository drift detection for agent workspaces.

Each workspace is inspected with three sequential git steps:
1. Repository root - rev-parse --show-toplevel
2. Cleanliness - status --porcelain (untracked files included)
3. Ahead/behind - resolve @{upstream}, then rev-list --left-right --count

A failing step marks the later metrics of that workspace unknown while
keeping whatever was already computed. Workspaces are inspected
concurrently and folded into a single RepoDriftCard by
aggregate_repo_drift, which is pure and order-insensitive.

Git failures are classified by substring matching on the lowercased
reason and first stderr line. This depends on git's English messages and
is kept as-is rather than hardened.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .._types import (
    BoardWarning,
    CollectorOutput,
    Metric,
    RepoDriftCard,
    RepoWorkspaceDrift,
    WarningSeverity,
    build_warning,
    known_metric,
    unknown_metric,
)
from ..config import BoardConfig
from ..schemas import OpenClawConfig, StatusSource
from ..utils import CommandResult, run_command

logger = logging.getLogger(__name__)

SOURCE = "repoDrift"

NOT_A_REPOSITORY_PATTERNS = (
    "not a git repository",
    "not in a git directory",
)

UPSTREAM_MISSING_PATTERNS = (
    "no upstream configured",
    "no upstream branch",
    "does not point to a branch",
    "has no upstream branch",
    "no such branch",
)


@dataclass(frozen=True)
class GitFailure:
    """Classified git failure: a warning for the board and a reason for metrics."""
    warning: BoardWarning
    reason: str


def _unique(values: Sequence[str]) -> List[str]:
    unique: List[str] = []
    for value in values:
        if value and value not in unique:
            unique.append(value)
    return unique


def _first_line(value: str) -> str:
    for line in value.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""


def workspace_paths_from_status(status_source: Metric[StatusSource]) -> List[str]:
    if not status_source.known or status_source.value.agents is None:
        return []
    entries = status_source.value.agents.agents or []
    return _unique([entry.workspace_dir or "" for entry in entries])


def workspace_paths_from_config(config: Metric[OpenClawConfig]) -> List[str]:
    if not config.known or config.value.agents is None:
        return []
    entries = config.value.agents.agent_list or []
    return _unique([entry.workspace_dir or entry.workspace or "" for entry in entries])


def discover_workspaces(
    status_source: Metric[StatusSource],
    config: Metric[OpenClawConfig]
) -> List[str]:
    """Union of workspace directories from the status source and openclaw.json."""
    return _unique([
        os.path.abspath(os.path.expanduser(workspace))
        for workspace in _unique(
            workspace_paths_from_status(status_source) + workspace_paths_from_config(config)
        )
    ])


def classify_git_failure(
    workspace_path: str,
    result_reason: str,
    stderr: str,
    repository_root: Optional[str] = None
) -> GitFailure:
    """
    Classify a git failure, checked in priority order:
    binary missing, not a repository, upstream missing, anything else.
    """
    stderr_line = _first_line(stderr)
    searchable = f"{result_reason.lower()} {stderr_line.lower()}"
    context_path = repository_root or workspace_path

    if "not found" in searchable:
        reason = f"git binary not found while checking {context_path}"
        return GitFailure(
            build_warning(SOURCE, "git_not_found", reason, WarningSeverity.ERROR, context_path),
            reason
        )

    if any(pattern in searchable for pattern in NOT_A_REPOSITORY_PATTERNS):
        reason = f"workspace is not a git repository: {workspace_path}"
        return GitFailure(
            build_warning(SOURCE, "workspace_not_git_repo", reason, WarningSeverity.WARN, workspace_path),
            reason
        )

    if any(pattern in searchable for pattern in UPSTREAM_MISSING_PATTERNS):
        reason = f"upstream is not configured for repository: {context_path}"
        return GitFailure(
            build_warning(SOURCE, "repo_upstream_missing", reason, WarningSeverity.INFO, context_path),
            reason
        )

    detail = f"{result_reason} ({stderr_line})" if stderr_line else result_reason
    reason = f"git command failed for {context_path}: {detail}"
    return GitFailure(
        build_warning(SOURCE, "git_command_failed", reason, WarningSeverity.WARN, context_path),
        reason
    )


def parse_ahead_behind(raw_value: str) -> Optional[Tuple[int, int]]:
    """Parse `rev-list --left-right --count` output, e.g. '2\\t0'."""
    parts = raw_value.split()
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


class WorkspaceInspector:
    """Runs the git steps for one workspace."""

    def __init__(self, config: Optional[BoardConfig] = None):
        self.config = config or BoardConfig()

    async def _git(self, *args: str) -> CommandResult:
        return await run_command(
            ["git", *args],
            timeout=self.config.git_timeout,
            kill_grace=self.config.kill_grace
        )

    def _failure(
        self,
        workspace_path: str,
        result: CommandResult,
        repository_root: Optional[str] = None
    ) -> GitFailure:
        return classify_git_failure(workspace_path, result.failure_reason, result.stderr, repository_root)

    async def inspect(self, workspace_path: str) -> RepoWorkspaceDrift:
        root_result = await self._git("-C", workspace_path, "rev-parse", "--show-toplevel")

        if not root_result.success:
            failure = self._failure(workspace_path, root_result)
            return RepoWorkspaceDrift(
                workspace_path=workspace_path,
                repository_root=unknown_metric(failure.reason),
                clean=unknown_metric(failure.reason),
                ahead_count=unknown_metric(failure.reason),
                behind_count=unknown_metric(failure.reason),
                diagnostics=(failure.warning,)
            )

        repository_root = root_result.stdout.strip()
        diagnostics: List[BoardWarning] = []

        status_result = await self._git(
            "-C", repository_root, "status", "--porcelain", "--untracked-files=normal"
        )
        if status_result.success:
            clean = known_metric(not status_result.stdout.strip())
        else:
            failure = self._failure(workspace_path, status_result, repository_root)
            clean = unknown_metric(failure.reason)
            diagnostics.append(failure.warning)

        ahead, behind = await self._ahead_behind(workspace_path, repository_root, diagnostics)

        return RepoWorkspaceDrift(
            workspace_path=workspace_path,
            repository_root=known_metric(repository_root),
            clean=clean,
            ahead_count=ahead,
            behind_count=behind,
            diagnostics=tuple(diagnostics)
        )

    async def _ahead_behind(
        self,
        workspace_path: str,
        repository_root: str,
        diagnostics: List[BoardWarning]
    ) -> Tuple[Metric[int], Metric[int]]:
        upstream_result = await self._git(
            "-C", repository_root, "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"
        )
        if not upstream_result.success:
            failure = self._failure(workspace_path, upstream_result, repository_root)
            diagnostics.append(failure.warning)
            return unknown_metric(failure.reason), unknown_metric(failure.reason)

        count_result = await self._git(
            "-C", repository_root, "rev-list", "--left-right", "--count", "HEAD...@{upstream}"
        )
        if not count_result.success:
            failure = self._failure(workspace_path, count_result, repository_root)
            diagnostics.append(failure.warning)
            return unknown_metric(failure.reason), unknown_metric(failure.reason)

        parsed = parse_ahead_behind(count_result.stdout)
        if parsed is None:
            reason = f"invalid ahead/behind value for {repository_root}"
            diagnostics.append(build_warning(
                SOURCE, "repo_ahead_behind_parse_failed", reason, WarningSeverity.WARN, repository_root
            ))
            return unknown_metric(reason), unknown_metric(reason)

        return known_metric(parsed[0]), known_metric(parsed[1])


# =============================================================================
# Aggregation
# =============================================================================


def _aggregate_clean(metrics: Sequence[Metric[bool]]) -> Metric[bool]:
    """Any known-dirty workspace decides False; else unknown if any unknown; else True."""
    if any(metric.known and metric.value is False for metric in metrics):
        return known_metric(False)
    for metric in metrics:
        if not metric.known:
            return unknown_metric(metric.reason)
    return known_metric(True)


def _aggregate_count(metrics: Sequence[Metric[int]]) -> Metric[int]:
    """Sum only when every workspace's count is known; else the first unknown reason."""
    for metric in metrics:
        if not metric.known:
            return unknown_metric(metric.reason)
    return known_metric(sum(metric.value for metric in metrics))


def aggregate_repo_drift(
    workspace_drifts: Sequence[RepoWorkspaceDrift],
    missing_workspace_reason: str
) -> RepoDriftCard:
    """
    Fold per-workspace drift into one card.

    An empty list makes every metric unknown with the supplied reason.
    Otherwise:
    - clean: known False if any workspace is known-dirty, even when others
      are unknown; unknown if any is unknown; True otherwise
    - dirty_count: known only if every workspace's cleanliness is known
    - ahead/behind: summed only if every workspace's count is known
    - repository_count: workspaces whose root resolved; never unknown
    """
    if not workspace_drifts:
        return RepoDriftCard(
            clean=unknown_metric(missing_workspace_reason),
            ahead_count=unknown_metric(missing_workspace_reason),
            behind_count=unknown_metric(missing_workspace_reason),
            dirty_count=unknown_metric(missing_workspace_reason),
            repository_count=unknown_metric(missing_workspace_reason),
            workspaces=()
        )

    if all(workspace.clean.known for workspace in workspace_drifts):
        dirty_count = known_metric(sum(1 for workspace in workspace_drifts if workspace.clean.value is False))
    else:
        dirty_count = unknown_metric("dirty count unavailable from one or more repositories")

    return RepoDriftCard(
        clean=_aggregate_clean([workspace.clean for workspace in workspace_drifts]),
        ahead_count=_aggregate_count([workspace.ahead_count for workspace in workspace_drifts]),
        behind_count=_aggregate_count([workspace.behind_count for workspace in workspace_drifts]),
        dirty_count=dirty_count,
        repository_count=known_metric(
            sum(1 for workspace in workspace_drifts if workspace.repository_root.known)
        ),
        workspaces=tuple(workspace_drifts)
    )


async def collect_repo_drift_card(
    status_source: Metric[StatusSource],
    config: Metric[OpenClawConfig],
    board_config: Optional[BoardConfig] = None
) -> CollectorOutput[RepoDriftCard]:
    workspaces = discover_workspaces(status_source, config)

    if not workspaces:
        reason = next(
            (source.reason for source in (status_source, config) if not source.known),
            "no OpenClaw workspaces discovered"
        )
        return CollectorOutput(
            card=aggregate_repo_drift([], reason),
            warnings=(build_warning(SOURCE, "repo_workspaces_missing", reason),)
        )

    inspector = WorkspaceInspector(board_config)
    drifts = await asyncio.gather(*(inspector.inspect(workspace) for workspace in workspaces))
    logger.debug(f"Inspected {len(drifts)} workspaces for repo drift")

    return CollectorOutput(
        card=aggregate_repo_drift(drifts, "no repositories discovered"),
        warnings=tuple(warning for drift in drifts for warning in drift.diagnostics)
    )
