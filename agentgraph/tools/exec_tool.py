"""
Shell execution tool. Runs one command through the platform shell with a
timeout and returns labelled stdout/stderr sections. The child process is
killed on timeout and when the surrounding execution is cancelled.
"""

import asyncio
import logging
import os
import sys
from typing import Optional

from agentgraph.shared.config import ToolConfig
from agentgraph.tools.base import FunctionTool
from agentgraph.tools.tool_schemas import ExecArgs

logger = logging.getLogger(__name__)


def _shell_command(command: str) -> list[str]:
    if sys.platform == "win32":
        return ["powershell.exe", "-NoProfile", "-Command", command]
    return ["/bin/bash", "-c", command]


def format_output(stdout: str, stderr: str, returncode: Optional[int]) -> str:
    output = ""
    if stdout:
        output += f"[STDOUT]\n{stdout}"
    if stderr:
        output += f"\n[STDERR]\n{stderr}"
    if returncode:
        return f"Command failed (exit code {returncode})\n{output}".rstrip()
    if not output.strip():
        return "Command succeeded with no output"
    return output


class ExecTool:

    def __init__(
        self,
        timeout_seconds: float = 60.0,
        working_dir: str = "",
        max_output_chars: int = 20_000,
    ):
        self.timeout = timeout_seconds
        self.working_dir = working_dir or os.getcwd()
        self.max_output_chars = max_output_chars

    async def run(self, command: str, env: Optional[dict] = None, timeout: Optional[float] = None) -> str:
        limit = timeout or self.timeout
        logger.info(f"exec: {command!r} (cwd={self.working_dir}, timeout={limit}s)")
        try:
            proc = await asyncio.create_subprocess_exec(
                *_shell_command(command),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.working_dir,
                env={**os.environ, **(env or {})},
            )
        except OSError as e:
            return f"Failed to start command: {e}"

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            await self._kill(proc)
            return f"Command timed out after {limit}s and was terminated"
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        output = format_output(
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
            proc.returncode,
        )
        # Truncate to prevent token overflow
        if len(output) > self.max_output_chars:
            output = output[:self.max_output_chars] + f"\n... [truncated {len(output) - self.max_output_chars} chars]"
        return output

    @staticmethod
    async def _kill(proc) -> None:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    def as_tool(self) -> FunctionTool:
        shell = "powershell.exe" if sys.platform == "win32" else "/bin/bash"
        return FunctionTool(
            "exec",
            f"Run a shell command or script with {shell}. Use syntax valid for the current system.",
            self.run,
            ExecArgs,
        )


def create_exec_tool(config: ToolConfig) -> FunctionTool:
    return ExecTool(
        timeout_seconds=config.exec_timeout_seconds,
        working_dir=config.exec_working_dir,
        max_output_chars=config.exec_max_output_chars,
    ).as_tool()
