# src/workbench_agent/tools/process.py

"""
Process-backed tools.

- shell: `sh -c <command>`, combined stdout+stderr, success = exit status 0.
- claude_code: delegates a task to the coding-assistant CLI, streams its combined
  output through a reader thread and enforces a hard wall-clock timeout.
  On timeout the whole process group is killed and the partial output is returned.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
import time
from pathlib import Path

from .base import (
    TOOL_CLAUDE_CODE,
    TOOL_SHELL,
    BaseTool,
    ToolArgs,
    ToolDefinition,
    ToolResult,
    object_schema,
    resolve_path,
)

logger = logging.getLogger(__name__)

DEFAULT_CODING_CLI = "claude"
DEFAULT_CODING_CLI_TIMEOUT_SECONDS = 600.0
# How long the output reader may lag behind process exit.
READER_GRACE_SECONDS = 5.0


def _run_dir(args: ToolArgs, working_dir: Path) -> Path:
    if args.working_dir:
        return resolve_path(args.working_dir, working_dir)
    return working_dir


class ShellTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_SHELL,
        description="Run a shell command. Use it for builds, tests, installing dependencies and similar operations.",
        kind="builtin",
        schema=object_schema(
            {
                "command": {"type": "string", "description": "Command to run"},
                "working_dir": {"type": "string", "description": "Working directory"},
            },
            required=["command"],
        ),
    )

    def __init__(self, shell: str = "sh") -> None:
        self._shell = shell

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        command = args.command.strip()
        if not command:
            return ToolResult.failure("command is required")

        cwd = _run_dir(args, working_dir)
        logger.info("shell: running in %s: %s", cwd, command)

        try:
            proc = subprocess.run(
                [self._shell, "-c", command],
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            return ToolResult.failure(f"failed to start command: {e}")

        output = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            return ToolResult.failure(f"command failed with exit status {proc.returncode}", output=output)
        return ToolResult(success=True, output=output)


class ClaudeCodeTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_CLAUDE_CODE,
        description=(
            "Call the Claude Code CLI to carry out complex coding work. "
            "Suited for tasks that need reading or changing code, or multi-step development work."
        ),
        kind="cli",
        schema=object_schema(
            {
                "task": {"type": "string", "description": "Description of the task to complete"},
                "working_dir": {"type": "string", "description": "Working directory"},
            },
            required=["task"],
        ),
    )

    def __init__(
        self,
        cli: str = DEFAULT_CODING_CLI,
        *,
        timeout_seconds: float = DEFAULT_CODING_CLI_TIMEOUT_SECONDS,
        reader_grace_seconds: float = READER_GRACE_SECONDS,
    ) -> None:
        self._cli = cli
        self._timeout_s = max(0.1, float(timeout_seconds))
        self._grace_s = max(0.0, float(reader_grace_seconds))

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        cli_path = shutil.which(self._cli)
        if cli_path is None:
            return ToolResult.failure(
                f"tool unavailable: {self._cli!r} was not found on PATH, install the Claude Code CLI first"
            )

        task = args.task.strip()
        if not task:
            return ToolResult.failure("task is required")

        cwd = _run_dir(args, working_dir)
        argv = [cli_path, "-p", task, "--output-format", "text"]
        logger.info("claude_code: starting %s in %s (timeout=%.0fs)", self._cli, cwd, self._timeout_s)

        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            return ToolResult.failure(f"failed to start {self._cli}: {e}")

        chunks: list[str] = []

        def _pump() -> None:
            assert proc.stdout is not None
            try:
                for line in proc.stdout:
                    chunks.append(line)
            except (OSError, ValueError):
                logger.debug("claude_code: output pipe closed (pid=%s)", proc.pid)

        reader = threading.Thread(target=_pump, name=f"claude-code-{proc.pid}", daemon=True)
        reader.start()

        t0 = time.monotonic()
        try:
            returncode = proc.wait(timeout=self._timeout_s)
        except subprocess.TimeoutExpired:
            self._kill(proc)
            self._finish_reader(proc, reader)
            logger.warning("claude_code: timed out after %.0fs (pid=%s)", self._timeout_s, proc.pid)
            return ToolResult.failure(
                f"command timed out after {self._timeout_s:.0f} seconds",
                output="".join(chunks),
            )

        reader.join(timeout=self._grace_s)
        if reader.is_alive():
            # Leftover children still hold the pipe open.
            logger.warning("claude_code: output still open after exit, killing process group (pid=%s)", proc.pid)
            self._kill(proc)
        self._finish_reader(proc, reader)
        output = "".join(chunks)
        logger.info("claude_code: exited with %s after %.1fs", returncode, time.monotonic() - t0)

        if returncode != 0:
            return ToolResult.failure(f"command failed with exit status {returncode}", output=output)
        return ToolResult(success=True, output=output)

    def _finish_reader(self, proc: subprocess.Popen[str], reader: threading.Thread) -> None:
        reader.join(timeout=self._grace_s)
        if not reader.is_alive() and proc.stdout is not None:
            proc.stdout.close()

    @staticmethod
    def _kill(proc: subprocess.Popen[str]) -> None:
        try:
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass
        proc.wait()
