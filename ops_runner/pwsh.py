"""Thin wrapper around the PowerShell 7 executable."""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ops_common.config.env import parse_float_env
from ops_common.errors import ToolNotFoundError, ToolTimeoutError

logger = logging.getLogger(__name__)

PWSH_ARGS = ("-NoLogo", "-NoProfile", "-NonInteractive", "-Command")
OUTPUT_DRAIN_SECONDS = 5.0


def _default_timeout() -> float | None:
    return parse_float_env(os.environ.get("OPS_PWSH_TIMEOUT"))


def ps_quote(value: str | Path) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def ps_array(values: list[str] | tuple[str, ...]) -> str:
    return "@(" + ", ".join(ps_quote(v) for v in values) + ")"


@dataclass
class PwshExecutor:
    """Run PowerShell script text through ``pwsh -Command``."""

    executable: str = "pwsh"
    workdir: Path | None = None
    timeout_seconds: float | None = field(default_factory=_default_timeout)
    env: dict[str, str] = field(default_factory=dict)

    def resolve(self) -> str:
        path = shutil.which(self.executable)
        if path is None:
            raise ToolNotFoundError(
                f"{self.executable} not found in PATH; install PowerShell 7.",
                context={"executable": self.executable},
            )
        return path

    def build_command(self, script: str) -> list[str]:
        return [self.resolve(), *PWSH_ARGS, script]

    def run(self, script: str, *, capture: bool = True) -> subprocess.CompletedProcess[str]:
        cmd = self.build_command(script)
        kwargs: dict[str, Any] = {"check": False, "text": True, "timeout": self.timeout_seconds}
        if capture:
            kwargs["stdout"] = subprocess.PIPE
            kwargs["stderr"] = subprocess.PIPE
        if self.workdir is not None:
            kwargs["cwd"] = self.workdir
        if self.env:
            kwargs["env"] = {**os.environ, **self.env}
        logger.debug("Running pwsh script (%d chars)", len(script))
        try:
            return subprocess.run(cmd, **kwargs)
        except subprocess.TimeoutExpired as exc:
            raise self._timed_out(exc) from exc

    def require_module(self, module: str) -> None:
        """Fail early when a PowerShell module is not installed."""
        result = self.run(
            f"if (Get-Module -ListAvailable -Name {ps_quote(module)}) {{ exit 0 }} else {{ exit 3 }}"
        )
        if result.returncode != 0:
            raise ToolNotFoundError(
                f"PowerShell module {module} is not installed.",
                context={"module": module, "returncode": result.returncode},
            )

    def stream(self, script: str, on_line: Callable[[str], None]) -> int:
        """Run a script, forwarding each stdout/stderr line as it arrives.

        The whole process group is killed when ``timeout_seconds`` elapses,
        whether or not the script is still printing.
        """
        cmd = self.build_command(script)
        kwargs: dict[str, Any] = {
            "stdout": subprocess.PIPE,
            "stderr": subprocess.STDOUT,
            "text": True,
            "bufsize": 1,
            "start_new_session": True,
        }
        if self.workdir is not None:
            kwargs["cwd"] = self.workdir
        if self.env:
            kwargs["env"] = {**os.environ, **self.env}
        proc = subprocess.Popen(cmd, **kwargs)
        failures: list[Exception] = []

        def _pump() -> None:
            try:
                for line in proc.stdout or ():
                    on_line(line.rstrip("\r\n"))
            except Exception as exc:
                failures.append(exc)
                _kill_process_group(proc)

        reader = threading.Thread(target=_pump, name="pwsh-output", daemon=True)
        reader.start()
        try:
            returncode = proc.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired as exc:
            logger.warning("pwsh exceeded %ss; killing process group %s", self.timeout_seconds, proc.pid)
            _kill_process_group(proc)
            proc.wait()
            raise self._timed_out(exc) from exc
        except BaseException:
            _kill_process_group(proc)
            proc.wait()
            raise
        finally:
            reader.join(timeout=OUTPUT_DRAIN_SECONDS)
            if not reader.is_alive() and proc.stdout is not None:
                proc.stdout.close()
        if failures:
            raise failures[0]
        return returncode

    def _timed_out(self, exc: subprocess.TimeoutExpired) -> ToolTimeoutError:
        return ToolTimeoutError(
            f"{self.executable} timed out after {self.timeout_seconds}s",
            context={"executable": self.executable, "timeout_seconds": self.timeout_seconds},
            cause=exc,
        )


def _kill_process_group(proc: subprocess.Popen[str]) -> None:
    if proc.poll() is not None:
        return
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
    except (AttributeError, ProcessLookupError, PermissionError):
        proc.kill()
