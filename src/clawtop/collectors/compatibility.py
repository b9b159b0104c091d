"""
OpenClaw compatibility check.

Runs once per process, not per refresh: the first caller starts the
check and every later caller awaits the same task. Checks that the
subcommands clawtop depends on appear in `openclaw --help` and that
`openclaw --version` is at or above the supported minimum.
"""

import asyncio
import logging
import re
from typing import List, Optional, Tuple

from .._types import BoardWarning, WarningSeverity, build_warning
from ..openclaw import OpenClawClient
from ..utils import compare_dot_versions, parse_version_token

logger = logging.getLogger(__name__)

SOURCE = "compatibility"

REQUIRED_TOP_LEVEL_COMMANDS = (
    "status",
    "security",
    "cron",
    "channels",
    "agents",
    "sessions",
)

# Two-space indented subcommand name at the start of a help line
COMMAND_LINE_PATTERN = re.compile(r"^\s{2}([a-z][a-z0-9-]*)\s+")

_compatibility_task: Optional["asyncio.Future[Tuple[BoardWarning, ...]]"] = None


def parse_command_names(help_output: str) -> List[str]:
    names = []
    for line in help_output.splitlines():
        match = COMMAND_LINE_PATTERN.match(line)
        if match:
            names.append(match.group(1))
    return names


async def check_openclaw_version(
    client: OpenClawClient,
    minimum_version: str
) -> Tuple[BoardWarning, ...]:
    result = await client.run(["--version"])

    if not result.success:
        return (build_warning(SOURCE, "openclaw_version_unavailable", result.failure_reason),)

    raw_version = result.stdout.strip()
    parsed_version = parse_version_token(raw_version)

    if parsed_version is None:
        return (build_warning(
            SOURCE,
            "openclaw_version_parse_failed",
            f"unable to parse openclaw version from '{raw_version}'"
        ),)

    if compare_dot_versions(parsed_version, minimum_version) >= 0:
        return ()

    return (build_warning(
        SOURCE,
        "openclaw_version_unsupported",
        f"detected OpenClaw {parsed_version}; clawtop expects >= {minimum_version}"
    ),)


async def check_compatibility(
    client: OpenClawClient,
    minimum_version: Optional[str] = None
) -> Tuple[BoardWarning, ...]:
    """Uncached compatibility check."""
    minimum_version = minimum_version or client.config.minimum_openclaw_version
    help_result = await client.run(["--help"])

    if not help_result.success:
        logger.warning(f"OpenClaw binary unavailable: {help_result.failure_reason}")
        return (build_warning(
            SOURCE,
            "openclaw_binary_unavailable",
            help_result.failure_reason,
            WarningSeverity.ERROR
        ),)

    available = parse_command_names(help_result.stdout)
    missing_warnings = tuple(
        build_warning(
            SOURCE,
            "openclaw_command_missing",
            f"openclaw command not found in --help output: {command}",
            WarningSeverity.WARN,
            command
        )
        for command in REQUIRED_TOP_LEVEL_COMMANDS
        if command not in available
    )

    version_warnings = await check_openclaw_version(client, minimum_version)
    return missing_warnings + version_warnings


async def collect_compatibility_warnings(client: OpenClawClient) -> Tuple[BoardWarning, ...]:
    """Memoized compatibility check; concurrent first calls share one run."""
    global _compatibility_task

    if _compatibility_task is None:
        _compatibility_task = asyncio.ensure_future(check_compatibility(client))

    # Shielded so a cancelled caller does not cancel the shared check
    return await asyncio.shield(_compatibility_task)


def reset_compatibility_cache() -> None:
    """Forget the memoized result (tests, or a changed OpenClaw binary)."""
    global _compatibility_task
    _compatibility_task = None
