"""Cursor CLI agent implementation."""

import logging
import re
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Optional

from .client import Agent, AgentResult, AgentStatus, RunOptions
from ..core.exceptions import AgentError, AgentTimeoutError, AgentUnavailableError

logger = logging.getLogger(__name__)

CURSOR_EXECUTABLE = "agent"
DEFAULT_TIMEOUT = 300

# Status markers are only looked for near the end of the output.
STATUS_SCAN_LINES = 10

_SESSION_ID_PATTERN = re.compile(r"session[_-]?id[:\s]+([a-zA-Z0-9_-]+)")


def parse_task_status(output: str) -> AgentStatus:
    """
    Find the status marker in agent output.

    Scans the last lines from the bottom up and returns the first line
    starting with DONE, NEXT, ERROR or FIXED.
    """
    lines = output.strip().split("\n")
    for line in reversed(lines[-STATUS_SCAN_LINES:]):
        line = line.strip()
        for status in (AgentStatus.DONE, AgentStatus.NEXT, AgentStatus.ERROR, AgentStatus.FIXED):
            if line.startswith(status.value):
                return status
    return AgentStatus.UNKNOWN


def extract_session_id(output: str) -> str:
    """Return the first session ID marker in output, or an empty string."""
    match = _SESSION_ID_PATTERN.search(output)
    return match.group(1) if match else ""


class CursorCLIAgent(Agent):
    """Agent that runs prompts through the Cursor CLI."""

    def __init__(self, default_model: str = "", executable: str = CURSOR_EXECUTABLE):
        """
        Initialize Cursor CLI agent.

        Args:
            default_model: Model used when a run does not specify one
            executable: CLI executable name or path
        """
        self.default_model = default_model
        self.executable = executable
        self._last_session_id = ""

    @property
    def name(self) -> str:
        return "cursor"

    @property
    def description(self) -> str:
        return "Cursor CLI agent"

    @property
    def last_session_id(self) -> str:
        return self._last_session_id

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def build_command(self, prompt: str, options: RunOptions) -> list:
        cmd = [self.executable, '--print']
        if options.force:
            cmd.append('--force')
        model = options.model or self.default_model
        if model:
            cmd.extend(['--model', model])
        cmd.append(prompt)
        return cmd

    def run(self, prompt: str, options: Optional[RunOptions] = None) -> AgentResult:
        """
        Execute a prompt via the Cursor CLI.

        Output is streamed line by line into options.log_stream (if given)
        while being collected for the result.

        Raises:
            AgentUnavailableError: If the CLI or the working directory is missing
            AgentTimeoutError: If the run exceeds options.timeout
            AgentError: On other failures to start the process
        """
        options = options or RunOptions()
        cmd = self.build_command(prompt, options)
        timeout = options.timeout or DEFAULT_TIMEOUT
        log_stream = options.log_stream

        work_dir = Path(options.work_dir).resolve() if options.work_dir else None
        if work_dir is not None and not work_dir.is_dir():
            raise AgentUnavailableError(
                self.name, NotADirectoryError(f"Working directory does not exist: {work_dir}")
            )

        start = time.monotonic()
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(work_dir) if work_dir else None,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise AgentUnavailableError(self.name, e)
        except OSError as e:
            raise AgentError(f"Unexpected error starting Cursor CLI: {e}", retryable=True, original_error=e)

        collected_output = []
        collected_errors = []

        def _reader():
            """Read stdout line by line and stream to log."""
            if process.stdout is None:
                return
            for line in process.stdout:
                collected_output.append(line)
                if log_stream is not None:
                    try:
                        log_stream.write(line)
                    except OSError as log_error:
                        logger.debug("Agent log stream write failed: %s", log_error)

        def _stderr_reader():
            if process.stderr is None:
                return
            for line in process.stderr:
                collected_errors.append(line)

        readers = [
            threading.Thread(target=_reader, daemon=True),
            threading.Thread(target=_stderr_reader, daemon=True),
        ]
        for reader in readers:
            reader.start()

        try:
            returncode = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.wait()
            if log_stream is not None:
                log_stream.write("\n[Cursor CLI timed out]\n")
            raise AgentTimeoutError(timeout, e)
        finally:
            for reader in readers:
                reader.join(timeout=5)

        output = ''.join(collected_output)
        session_id = extract_session_id(output)
        self._last_session_id = session_id

        result = AgentResult(
            output=output,
            exit_code=returncode,
            status=parse_task_status(output),
            session_id=session_id,
            duration=time.monotonic() - start,
        )
        if returncode != 0:
            result.error = ''.join(collected_errors).strip() or f"agent exited with code {returncode}"

        logger.debug(
            "Cursor CLI finished: exit=%d status=%s duration=%.2fs",
            result.exit_code, result.status.value, result.duration,
        )
        return result
