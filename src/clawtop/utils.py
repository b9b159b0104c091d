"""
Utility functions for clawtop.

Includes:
- Process execution helpers (the external-command bridge)
- Metric conversion for text and JSON command output
- JSON file reading with schema validation
- Dotted-numeric version helpers
- Logging setup
"""

import asyncio
import functools
import json
import logging
import math
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from ._types import Metric, known_metric, unknown_metric

logger = logging.getLogger(__name__)

# Grace period between SIGTERM and SIGKILL for timed-out commands
DEFAULT_KILL_GRACE_SEC = 0.25

VERSION_TOKEN_PATTERN = re.compile(r"([0-9]+(?:\.[0-9]+)+)")


class CommandResult:
    """Result of a command execution."""

    def __init__(
        self,
        cmd: List[str],
        exit_code: Optional[int],
        stdout: str = "",
        stderr: str = "",
        duration_sec: float = 0.0,
        reason: Optional[str] = None
    ):
        self.cmd = list(cmd)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.duration_sec = duration_sec
        self.reason = reason
        self.success = exit_code == 0 and reason is None

    @property
    def command(self) -> str:
        return self.cmd[0] if self.cmd else ""

    @property
    def failure_reason(self) -> str:
        """Human-readable cause of failure (not found, exit code, timeout)."""
        if self.reason is not None:
            return self.reason

        stderr_snippet = self.stderr.strip()
        stderr_text = f" ({stderr_snippet})" if stderr_snippet else ""
        return f"{self.command} exited with code {self.exit_code}{stderr_text}"

    def __repr__(self):
        return f"CommandResult(cmd={self.cmd!r}, exit_code={self.exit_code}, success={self.success})"


async def _terminate(process: asyncio.subprocess.Process, kill_grace: float) -> None:
    """SIGTERM first, SIGKILL if the process outlives the grace window."""
    try:
        process.terminate()
    except ProcessLookupError:
        return

    try:
        await asyncio.wait_for(process.wait(), timeout=kill_grace)
    except asyncio.TimeoutError:
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


async def run_command(
    cmd: List[str],
    timeout: Optional[float] = None,
    cwd: Optional[Union[str, Path]] = None,
    kill_grace: float = DEFAULT_KILL_GRACE_SEC
) -> CommandResult:
    """
    Run a command asynchronously and classify the outcome.

    Never raises for spawn failures, non-zero exits or timeouts; those
    come back as an unsuccessful CommandResult with a reason. There are
    no retries at this layer.

    Args:
        cmd: Command and arguments as list
        timeout: Timeout in seconds (None = no timeout)
        cwd: Working directory for the child process
        kill_grace: Seconds to wait after SIGTERM before SIGKILL

    Returns:
        CommandResult with exit code, stdout, stderr, duration and reason
    """
    command = cmd[0]
    start_time = datetime.now(timezone.utc)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            env=os.environ.copy(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError:
        logger.debug(f"Command not found: {command}")
        return CommandResult(cmd, None, reason=f"{command} not found")
    except OSError as e:
        logger.debug(f"Command failed to start: {command}: {e}")
        return CommandResult(cmd, None, reason=f"{command} failed: {e}")

    try:
        if timeout:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        else:
            stdout, stderr = await process.communicate()
    except asyncio.TimeoutError:
        await _terminate(process, kill_grace)
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.debug(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        return CommandResult(
            cmd,
            process.returncode,
            duration_sec=duration,
            reason=f"{command} timed out after {timeout:g}s"
        )

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()

    result = CommandResult(
        cmd,
        process.returncode,
        stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
        stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
        duration_sec=duration,
        reason=None if process.returncode == 0 else f"{command} exited with code {process.returncode}"
    )

    logger.debug(
        f"Command finished: {' '.join(cmd)} exit_code={result.exit_code} "
        f"duration={duration:.3f}s"
    )
    return result


@functools.lru_cache(maxsize=None)
def _adapter(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def validate_payload(payload: Any, schema: Any) -> Any:
    """Validate parsed JSON against a pydantic model or type."""
    return _adapter(schema).validate_python(payload)


def json_metric_from_command(result: CommandResult, schema: Any, label: str) -> Metric[Any]:
    """
    Parse and validate a command's stdout as JSON.

    Command failure, empty output, malformed JSON and schema mismatch each
    collapse to an unknown metric with a distinct reason.
    """
    if not result.success:
        return unknown_metric(f"{label}: {result.failure_reason}")

    trimmed_output = result.stdout.strip()
    if not trimmed_output:
        return unknown_metric(f"{label}: empty output")

    try:
        parsed = json.loads(trimmed_output)
    except json.JSONDecodeError as e:
        return unknown_metric(f"{label}: invalid json ({e.msg})")

    try:
        return known_metric(validate_payload(parsed, schema))
    except ValidationError:
        return unknown_metric(f"{label}: schema mismatch")


def text_metric_from_command(result: CommandResult, label: str) -> Metric[str]:
    """Trimmed stdout as a known metric; empty output counts as failure."""
    if not result.success:
        return unknown_metric(f"{label}: {result.failure_reason}")

    value = result.stdout.strip()
    if not value:
        return unknown_metric(f"{label}: empty output")

    return known_metric(value)


async def read_json_file_with_schema(path: Path, schema: Any) -> Metric[Any]:
    """
    Read a JSON file (async) and validate it against a schema.

    Missing, unreadable (including non-UTF-8), malformed and mismatched
    files all return an unknown metric; nothing is raised.
    """
    path = Path(path)
    try:
        raw_value = await asyncio.to_thread(_read_file_sync, path)
    except FileNotFoundError:
        return unknown_metric(f"{path} not found")
    except OSError as e:
        return unknown_metric(f"{path} unreadable: {e.strerror or e}")
    except UnicodeDecodeError as e:
        return unknown_metric(f"{path} unreadable: not utf-8 ({e.reason})")

    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        return unknown_metric(f"{path} contains invalid json")

    try:
        return known_metric(validate_payload(parsed, schema))
    except ValidationError:
        return unknown_metric(f"{path} schema mismatch")


def _read_file_sync(path: Path) -> str:
    """Synchronous file read helper."""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def parse_version_token(raw_value: str) -> Optional[str]:
    """First dotted-numeric token anywhere in the text, e.g. 'v2026.2.9-beta' -> '2026.2.9'."""
    match = VERSION_TOKEN_PATTERN.search(raw_value)
    return match.group(1) if match else None


def normalize_version(raw_value: str) -> str:
    return parse_version_token(raw_value) or raw_value.strip()


def _version_part(part: str) -> float:
    try:
        number = float(part)
    except ValueError:
        return 0
    return number if math.isfinite(number) else 0


def compare_dot_versions(left: str, right: str) -> int:
    """
    Compare two dotted-numeric versions component by component.

    Non-numeric components count as 0 and missing trailing components
    are padded with 0. No pre-release or build metadata handling.

    Returns:
        -1 if left < right, 0 if equal, 1 if left > right
    """
    left_parts = [_version_part(part) for part in left.split(".")]
    right_parts = [_version_part(part) for part in right.split(".")]

    for index in range(max(len(left_parts), len(right_parts))):
        left_part = left_parts[index] if index < len(left_parts) else 0
        right_part = right_parts[index] if index < len(right_parts) else 0

        if left_part > right_part:
            return 1
        if left_part < right_part:
            return -1

    return 0


def setup_logging(log_level: str = 'WARNING') -> None:
    """
    Configure logging for clawtop.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
