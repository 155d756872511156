"""Logging utilities for the task loop system."""

import json
import logging
import os
import traceback
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..hooks.base import HookResult
    from ..models.task import Task, Iteration


LOGGER_NAME = "taskloop"


class TaskLogger:
    """Logger for task loop execution."""

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        sync: bool = False,
        console: bool = True,
    ):
        """
        Initialize logger.

        Args:
            log_dir: Directory for log files
            log_level: Log level (DEBUG, INFO, WARNING, ERROR)
            max_bytes: Maximum size of log file before rotation (default: 10MB)
            backup_count: Number of backup files to keep (default: 5)
            sync: Flush and fsync JSONL records after every write
            console: Also log to stderr
        """
        self.log_dir = Path(log_dir)
        # Needed when logs are tailed from another process (e.g. the dashboard).
        self.sync = sync
        self.log_dir.mkdir(parents=True, exist_ok=True)
        level = getattr(logging, log_level.upper(), logging.INFO)

        self.log_file = self.log_dir / f"execution_{datetime.now().strftime('%Y%m%d')}.log"

        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)

        # Replace handlers from an earlier TaskLogger so records are not duplicated.
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.addHandler(file_handler)

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
            )
            self.logger.addHandler(console_handler)

        self.logger.propagate = False

    def close(self) -> None:
        """Detach and close all handlers."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def _flush_and_sync(self, file_obj) -> None:
        if not self.sync:
            return
        try:
            file_obj.flush()
            os.fsync(file_obj.fileno())
        except OSError:
            # Some filesystems do not support fsync.
            pass

    def _append_jsonl(self, prefix: str, entry: Dict[str, Any]) -> Path:
        log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.jsonl"
        with open(log_file, 'a', encoding='utf-8') as f:
            f.write(json.dumps(entry, ensure_ascii=False) + '\n')
            self._flush_and_sync(f)
        return log_file

    def log_iteration(self, task: "Task", iteration: "Iteration", **kwargs) -> None:
        """
        Log a finished (or abandoned) iteration.

        Args:
            task: Task the iteration belongs to
            iteration: Iteration record
            **kwargs: Additional metadata
        """
        duration = iteration.duration()
        entry = {
            'timestamp': datetime.now().isoformat(),
            'task_id': task.id,
            'task_status': getattr(task.status, 'value', task.status),
            'iteration': iteration.number,
            'result': iteration.result,
            'output_length': len(iteration.agent_output),
            'session_id': iteration.session_id,
            'duration_seconds': round(duration.total_seconds(), 3),
            **kwargs
        }
        self._append_jsonl("iterations", entry)

        self.logger.info(
            f"[{task.id}] Iteration {iteration.number} ended with "
            f"{iteration.result or 'no result'} in {duration.total_seconds():.2f}s"
        )

    def log_hook_result(self, phase: str, hook_name: str, result: "HookResult") -> None:
        """
        Log the outcome of a hook execution.

        Args:
            phase: Hook phase ("pre" or "post")
            hook_name: Name of the hook
            result: Hook result
        """
        entry = {
            'timestamp': datetime.now().isoformat(),
            'phase': phase,
            'hook': hook_name,
            'success': result.is_success(),
            'exit_code': result.exit_code,
            'failure_mode': result.failure_mode.value,
            'error': result.error,
            'output_length': len(result.output),
        }
        self._append_jsonl("hooks", entry)

        if result.is_success():
            self.logger.info(f"[hook {hook_name}] {phase}-task hook succeeded")
        elif result.should_warn_and_continue():
            self.logger.warning(
                f"[hook {hook_name}] {phase}-task hook failed (exit {result.exit_code}), continuing: {result.error}"
            )
        else:
            self.logger.error(
                f"[hook {hook_name}] {phase}-task hook failed (exit {result.exit_code}, "
                f"mode {result.failure_mode.value}): {result.error}"
            )

    def log_error_with_traceback(
        self,
        source: str,
        error: Exception,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log error with full traceback and context.

        Args:
            source: Component where the error occurred
            error: Exception that occurred
            context: Additional context information
        """
        error_entry = {
            'timestamp': datetime.now().isoformat(),
            'source': source,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': traceback.format_exc(),
            'context': context or {}
        }
        self._append_jsonl("errors", error_entry)

        self.logger.error(f"[{source}] Error: {type(error).__name__}: {error}")
        self.logger.debug(f"[{source}] Traceback:\n{traceback.format_exc()}")

    def log_progress(
        self,
        completed_tasks: int,
        total_tasks: int,
        remaining_tasks: int,
        failed_tasks: int = 0,
        skipped_tasks: int = 0,
    ) -> None:
        """
        Log progress summary.

        Args:
            completed_tasks: Number of completed tasks
            total_tasks: Total number of tasks
            remaining_tasks: Number of non-terminal tasks
            failed_tasks: Number of failed tasks
            skipped_tasks: Number of skipped tasks
        """
        progress_entry = {
            'timestamp': datetime.now().isoformat(),
            'total_tasks': total_tasks,
            'completed_tasks': completed_tasks,
            'remaining_tasks': remaining_tasks,
            'failed_tasks': failed_tasks,
            'skipped_tasks': skipped_tasks,
            'completion_rate': round(completed_tasks / total_tasks * 100, 2) if total_tasks > 0 else 0
        }
        self._append_jsonl("progress", progress_entry)

        self.logger.info(
            f"[Progress] {completed_tasks}/{total_tasks} completed, "
            f"{remaining_tasks} remaining, {failed_tasks} failed, {skipped_tasks} skipped"
        )

    def info(self, message: str) -> None:
        """Log info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log debug message."""
        self.logger.debug(message)

    def exception(self, message: str, exc_info: bool = True) -> None:
        """Log exception with traceback."""
        self.logger.exception(message, exc_info=exc_info)

    def start_agent_command_stream(
        self,
        agent_name: str,
        command: Optional[str] = None
    ) -> "_AgentCommandLogStream":
        """
        Start a streaming log file for agent command output.
        Returns a stream object that can be written to incrementally.
        """
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
        safe_agent_name = "".join(c if c.isalnum() or c in ('-', '_') else '_' for c in agent_name)
        log_file = self.log_dir / f"agent_{safe_agent_name}_{timestamp}.log"

        stream = _AgentCommandLogStream(log_file=log_file, logger=self)

        stream.write("Agent Command Output Log\n")
        stream.write(f"{'=' * 60}\n")
        stream.write(f"Agent: {agent_name}\n")
        stream.write(f"Timestamp: {datetime.now().isoformat()}\n")
        if command:
            stream.write(f"Command: {command}\n")
        stream.write(f"{'=' * 60}\n\n")

        return stream


class _AgentCommandLogStream:
    """Streaming writer for agent command log files."""

    def __init__(self, log_file: Path, logger: TaskLogger):
        self.log_file = log_file
        self._logger = logger
        self._file = open(log_file, 'w', encoding='utf-8')
        self._closed = False

    def write(self, text: str) -> None:
        if self._closed:
            return
        self._file.write(text)
        self._logger._flush_and_sync(self._file)

    def close(self) -> None:
        if self._closed:
            return
        self._file.write(f"{'=' * 60}\n")
        self._file.write("End of log\n")
        self._logger._flush_and_sync(self._file)
        self._file.close()
        self._closed = True
