"""
Tests for repository drift detection.

Git is never executed: run_command is patched with a table of canned
results keyed by the git subcommand.
"""

from typing import Dict, Optional
from unittest.mock import AsyncMock, patch

import pytest

from clawtop._types import RepoWorkspaceDrift, WarningSeverity, known_metric, unknown_metric
from clawtop.collectors.repo_drift import (
    aggregate_repo_drift,
    classify_git_failure,
    collect_repo_drift_card,
    discover_workspaces,
    parse_ahead_behind,
)
from clawtop.config import BoardConfig
from clawtop.utils import CommandResult

from conftest import openclaw_config, status_source


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(["git"], 0, stdout=stdout)


def _fail(stderr: str, code: int = 128) -> CommandResult:
    return CommandResult(["git"], code, stderr=stderr, reason=f"git exited with code {code}")


def fake_git(repos: Dict[str, Dict[str, CommandResult]]):
    """
    Build a run_command replacement.

    repos maps a workspace path to results keyed by step name:
    toplevel, status, upstream, count.
    """
    def step_name(args) -> Optional[str]:
        if "--show-toplevel" in args:
            return "toplevel"
        if "status" in args:
            return "status"
        if "--symbolic-full-name" in args:
            return "upstream"
        if "rev-list" in args:
            return "count"
        return None

    async def run(cmd, timeout=None, cwd=None, kill_grace=0.25):
        path = cmd[2]
        for workspace, steps in repos.items():
            if path == workspace or path == steps.get("toplevel", _ok()).stdout.strip():
                return steps[step_name(cmd)]
        raise AssertionError(f"unexpected git call: {cmd}")

    return AsyncMock(side_effect=run)


def _healthy_repo(path: str, porcelain: str = "", counts: str = "0\t0\n") -> Dict[str, CommandResult]:
    return {
        "toplevel": _ok(f"{path}\n"),
        "status": _ok(porcelain),
        "upstream": _ok("origin/main\n"),
        "count": _ok(counts),
    }


def _drift(clean, ahead, behind, root=known_metric("/r")) -> RepoWorkspaceDrift:
    return RepoWorkspaceDrift(
        workspace_path="/w",
        repository_root=root,
        clean=clean,
        ahead_count=ahead,
        behind_count=behind
    )


# =============================================================================
# Workspace discovery
# =============================================================================


def test_discover_workspaces_unions_and_dedupes(tmp_path):
    a = str(tmp_path / "a")
    b = str(tmp_path / "b")
    status = status_source({"agents": {"agents": [{"workspaceDir": a}, {"workspaceDir": a}, {"id": "none"}]}})
    config = openclaw_config({"agents": {"list": [{"workspace": b}, {"workspaceDir": a}]}})

    assert discover_workspaces(status, config) == [a, b]


def test_discover_workspaces_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    config = openclaw_config({"agents": {"list": [{"workspace": "~/agent"}]}})

    assert discover_workspaces(unknown_metric("down"), config) == [str(tmp_path / "agent")]


# =============================================================================
# Parsing and classification
# =============================================================================


@pytest.mark.parametrize("raw,expected", [
    ("2\t3\n", (2, 3)),
    ("0 0", (0, 0)),
    ("2", None),
    ("a\tb", None),
    ("", None),
])
def test_parse_ahead_behind(raw, expected):
    assert parse_ahead_behind(raw) == expected


def test_classify_git_not_found():
    failure = classify_git_failure("/w", "git not found", "")
    assert failure.warning.code == "git_not_found"
    assert failure.warning.severity == WarningSeverity.ERROR


def test_classify_not_a_repository():
    failure = classify_git_failure(
        "/w", "git exited with code 128", "fatal: not a git repository (or any of the parent directories): .git"
    )
    assert failure.warning.code == "workspace_not_git_repo"
    assert failure.reason == "workspace is not a git repository: /w"


def test_classify_upstream_missing_uses_first_stderr_line():
    failure = classify_git_failure(
        "/w", "git exited with code 128", "\nfatal: no upstream configured for branch 'main'\nhint: x", "/repo"
    )
    assert failure.warning.code == "repo_upstream_missing"
    assert failure.warning.severity == WarningSeverity.INFO
    assert failure.warning.context == "/repo"


def test_classify_other_failure_includes_stderr():
    failure = classify_git_failure("/w", "git exited with code 1", "fatal: index corrupt", "/repo")
    assert failure.warning.code == "git_command_failed"
    assert failure.reason == "git command failed for /repo: git exited with code 1 (fatal: index corrupt)"


# =============================================================================
# Aggregation
# =============================================================================


def test_aggregate_empty_makes_everything_unknown():
    card = aggregate_repo_drift([], "no OpenClaw workspaces discovered")

    for metric in (card.clean, card.ahead_count, card.behind_count, card.dirty_count, card.repository_count):
        assert metric.reason == "no OpenClaw workspaces discovered"


def test_aggregate_all_known():
    card = aggregate_repo_drift([
        _drift(known_metric(True), known_metric(1), known_metric(0)),
        _drift(known_metric(False), known_metric(2), known_metric(3)),
    ], "none")

    assert card.clean.value is False
    assert card.dirty_count.value == 1
    assert card.ahead_count.value == 3
    assert card.behind_count.value == 3
    assert card.repository_count.value == 2


def test_aggregate_dirty_wins_over_unknown():
    card = aggregate_repo_drift([
        _drift(unknown_metric("status failed"), known_metric(0), known_metric(0)),
        _drift(known_metric(False), known_metric(0), known_metric(0)),
    ], "none")

    assert card.clean == known_metric(False)
    assert card.dirty_count.known is False


def test_aggregate_unknown_clean_without_dirty():
    card = aggregate_repo_drift([
        _drift(known_metric(True), known_metric(0), known_metric(0)),
        _drift(unknown_metric("status failed"), known_metric(0), known_metric(0)),
    ], "none")

    assert card.clean.reason == "status failed"


def test_aggregate_counts_unknown_if_any_unknown():
    card = aggregate_repo_drift([
        _drift(known_metric(True), known_metric(1), known_metric(1)),
        _drift(known_metric(True), unknown_metric("no upstream"), unknown_metric("no upstream")),
    ], "none")

    assert card.ahead_count.reason == "no upstream"
    assert card.behind_count.reason == "no upstream"


def test_aggregate_is_order_insensitive():
    drifts = [
        _drift(known_metric(True), known_metric(1), known_metric(0)),
        _drift(known_metric(False), known_metric(0), known_metric(2), root=unknown_metric("x")),
        _drift(unknown_metric("u"), known_metric(4), known_metric(1)),
    ]

    forward = aggregate_repo_drift(drifts, "none")
    backward = aggregate_repo_drift(list(reversed(drifts)), "none")

    assert forward.clean == backward.clean
    assert forward.ahead_count == backward.ahead_count
    assert forward.behind_count == backward.behind_count
    assert forward.dirty_count.known == backward.dirty_count.known
    assert forward.repository_count == backward.repository_count


# =============================================================================
# collect_repo_drift_card
# =============================================================================


@pytest.mark.asyncio
async def test_no_workspaces_reports_missing():
    output = await collect_repo_drift_card(status_source({}), openclaw_config({}))

    assert output.card.clean.reason == "no OpenClaw workspaces discovered"
    assert [w.code for w in output.warnings] == ["repo_workspaces_missing"]


@pytest.mark.asyncio
async def test_no_workspaces_prefers_source_failure_reason():
    output = await collect_repo_drift_card(unknown_metric("openclaw status --json: timed out"), openclaw_config({}))

    assert output.card.clean.reason == "openclaw status --json: timed out"


@pytest.mark.asyncio
async def test_clean_repo_in_sync():
    git = fake_git({"/ws/main": _healthy_repo("/ws/main")})
    status = status_source({"agents": {"agents": [{"workspaceDir": "/ws/main"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(status, unknown_metric("no config"), BoardConfig(git_timeout=1.5))

    assert output.card.clean.value is True
    assert output.card.ahead_count.value == 0
    assert output.card.behind_count.value == 0
    assert output.card.repository_count.value == 1
    assert output.warnings == ()
    assert git.await_args.kwargs["timeout"] == 1.5


@pytest.mark.asyncio
async def test_dirty_and_behind_repo():
    git = fake_git({"/ws/main": _healthy_repo("/ws/main", porcelain=" M README.md\n?? new.txt\n", counts="1\t4\n")})
    status = status_source({"agents": {"agents": [{"workspaceDir": "/ws/main"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(status, unknown_metric("no config"))

    assert output.card.clean.value is False
    assert output.card.dirty_count.value == 1
    assert output.card.ahead_count.value == 1
    assert output.card.behind_count.value == 4


@pytest.mark.asyncio
async def test_not_a_repository_marks_everything_unknown():
    git = fake_git({"/ws/plain": {"toplevel": _fail("fatal: not a git repository (or any parent)")}})
    status = status_source({"agents": {"agents": [{"workspaceDir": "/ws/plain"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(status, unknown_metric("no config"))

    assert output.card.clean.reason == "workspace is not a git repository: /ws/plain"
    assert output.card.repository_count.value == 0
    assert [w.code for w in output.warnings] == ["workspace_not_git_repo"]
    assert output.card.workspaces[0].diagnostics == output.warnings


@pytest.mark.asyncio
async def test_missing_upstream_keeps_cleanliness():
    repo = _healthy_repo("/ws/main")
    repo["upstream"] = _fail("fatal: no upstream configured for branch 'main'")
    git = fake_git({"/ws/main": repo})
    status = status_source({"agents": {"agents": [{"workspaceDir": "/ws/main"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(status, unknown_metric("no config"))

    assert output.card.clean.value is True
    assert output.card.behind_count.known is False
    assert output.card.behind_count.reason == "upstream is not configured for repository: /ws/main"
    assert [(w.code, w.severity) for w in output.warnings] == [
        ("repo_upstream_missing", WarningSeverity.INFO)
    ]


@pytest.mark.asyncio
async def test_unparseable_counts():
    git = fake_git({"/ws/main": _healthy_repo("/ws/main", counts="garbage\n")})
    status = status_source({"agents": {"agents": [{"workspaceDir": "/ws/main"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(status, unknown_metric("no config"))

    assert output.card.ahead_count.reason == "invalid ahead/behind value for /ws/main"
    assert [w.code for w in output.warnings] == ["repo_ahead_behind_parse_failed"]


@pytest.mark.asyncio
async def test_multiple_workspaces_aggregate():
    git = fake_git({
        "/ws/a": _healthy_repo("/ws/a", counts="2\t0\n"),
        "/ws/b": _healthy_repo("/ws/b", porcelain="?? x\n", counts="0\t1\n"),
    })
    config = openclaw_config({"agents": {"list": [{"workspaceDir": "/ws/a"}, {"workspace": "/ws/b"}]}})

    with patch("clawtop.collectors.repo_drift.run_command", git):
        output = await collect_repo_drift_card(unknown_metric("status down"), config)

    assert output.card.repository_count.value == 2
    assert output.card.dirty_count.value == 1
    assert output.card.ahead_count.value == 2
    assert output.card.behind_count.value == 1
    assert [w.workspace_path for w in output.card.workspaces] == ["/ws/a", "/ws/b"]
