"""
OpenClaw CLI client.

Thin wrapper over utils.run_command that knows the OpenClaw binary name
and the per-kind timeouts, plus the reader for the local openclaw.json.
Every call resolves to a Metric; nothing here raises for an unreachable
or misbehaving tool.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ._types import Metric, known_metric, unknown_metric
from .config import BoardConfig, OpenClawEnvironment, resolve_openclaw_config_paths
from .schemas import OpenClawConfig
from .utils import (
    CommandResult,
    json_metric_from_command,
    read_json_file_with_schema,
    run_command,
    text_metric_from_command,
)

logger = logging.getLogger(__name__)


class OpenClawClient:
    """
    Runs OpenClaw subcommands and converts their output to metrics.

    Usage:
        client = OpenClawClient(BoardConfig())
        status = await client.run_json(["status", "--json"], StatusSource, "openclaw status --json")
        if status.known:
            print(status.value.gateway)
    """

    def __init__(self, config: Optional[BoardConfig] = None):
        self.config = config or BoardConfig()

    @property
    def binary(self) -> str:
        return self.config.openclaw_bin

    def label(self, args: Sequence[str]) -> str:
        """Display form of a command, used as the prefix of unknown reasons."""
        return " ".join([self.binary, *args])

    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        return await run_command(
            [self.binary, *args],
            timeout=timeout or self.config.text_timeout,
            kill_grace=self.config.kill_grace
        )

    async def run_json(
        self,
        args: Sequence[str],
        schema: Any,
        label: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> Metric[Any]:
        result = await self.run(args, timeout=timeout or self.config.json_timeout)
        return json_metric_from_command(result, schema, label or self.label(args))

    async def run_text(
        self,
        args: Sequence[str],
        label: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> Metric[str]:
        result = await self.run(args, timeout=timeout or self.config.text_timeout)
        return text_metric_from_command(result, label or self.label(args))

    async def read_config(
        self,
        env: Optional[OpenClawEnvironment] = None
    ) -> Metric[OpenClawConfig]:
        return await read_openclaw_config(resolve_openclaw_config_paths(env))


async def read_openclaw_config(candidates: List[Path]) -> Metric[OpenClawConfig]:
    """
    Read the first usable openclaw.json from the candidate list.

    Missing, unreadable, malformed or mismatched candidates are skipped.
    """
    for candidate in candidates:
        parsed = await read_json_file_with_schema(candidate, OpenClawConfig)
        if parsed.known:
            logger.debug(f"Using OpenClaw config: {candidate}")
            return known_metric(parsed.value)
        logger.debug(f"Skipping OpenClaw config candidate: {parsed.reason}")

    return unknown_metric("openclaw config not found or unreadable")
