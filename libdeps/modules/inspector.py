# libdeps/modules/inspector.py
import collections
import os
import subprocess
import time
from datetime import datetime
from typing import List, Optional

from libdeps.modules import logger
from libdeps.modules.config import config
from libdeps.modules.descriptor import LibDepsError

DEFAULT_LDD = "/usr/bin/ldd"
DEFAULT_TIMEOUT = 30
# inspection results kept for debugging
HISTORY_SIZE = 16


class InspectionFailed(LibDepsError):
    def __init__(self, path, reason, result=None):
        self.path = path
        self.reason = reason
        self.result = result
        super().__init__(f"Inspection of {path} failed: {reason}")


class InspectionTimeout(InspectionFailed):
    pass


class InspectionResult:
    """Outcome of one ldd run."""

    def __init__(self, command, returncode, stdout, stderr, duration):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.duration = duration
        self.timestamp = datetime.now().isoformat()

    def ok(self):
        return self.returncode == 0

    def lines(self) -> List[str]:
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class LddInspector:
    """
    Runs ldd on one file and returns its report, one line per dependency.

    Instances are callables (path -> list of lines), which is all the
    resolution cache needs; tests swap in a plain function.
    """

    def __init__(self, command: Optional[str] = None, timeout: Optional[float] = None,
                 keep_path: Optional[bool] = None):
        self.command = command or config.get("ldd", "command", fallback=DEFAULT_LDD)
        if timeout is None:
            timeout = config.getfloat("ldd", "timeout", fallback=DEFAULT_TIMEOUT)
        self.timeout = timeout if timeout and timeout > 0 else None
        if keep_path is None:
            keep_path = config.getboolean("ldd", "keep_path", fallback=False)
        self.keep_path = keep_path
        self.log = logger.Logger("inspector")
        self.history = collections.deque(maxlen=HISTORY_SIZE)

    def _environment(self):
        env = os.environ.copy()
        if not self.keep_path:
            # ldd is called by absolute path, nothing should come from PATH
            env.pop("PATH", None)
        return env

    def run(self, path: str) -> InspectionResult:
        command = [self.command, path]
        self.log.debug(f"Running: {' '.join(command)}")

        start = time.time()
        try:
            proc = subprocess.Popen(
                command,
                env=self._environment(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="surrogateescape",
            )
        except OSError as e:
            raise InspectionFailed(path, f"could not run {self.command}: {e}") from e

        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            proc.communicate()
            self.log.error(f"Timeout after {self.timeout}s: {' '.join(command)}")
            raise InspectionTimeout(path, f"timed out after {self.timeout} seconds") from e

        result = InspectionResult(command, proc.returncode, stdout, stderr, time.time() - start)
        self.history.append(result)
        return result

    def __call__(self, path: str) -> List[str]:
        result = self.run(path)
        if not result.ok():
            reason = result.stderr.strip() or result.stdout.strip() or f"exit status {result.returncode}"
            raise InspectionFailed(path, reason, result)
        lines = result.lines()
        if not lines:
            raise InspectionFailed(path, "no output", result)
        self.log.debug(f"{path}: {len(lines)} lines in {result.duration:.3f}s")
        return lines
