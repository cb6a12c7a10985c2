"""Starts and stops a cell representative binary for integration tests."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import threading
from typing import IO, Optional, TextIO

from cellrep.config import RepConfig

STDOUT_PREFIX = "\x1b[32m[o]\x1b[32m[rep]\x1b[0m "
STDERR_PREFIX = "\x1b[91m[e]\x1b[32m[rep]\x1b[0m "

_WAIT_SECONDS = 5.0


class RunnerError(RuntimeError):
    """Raised when the representative process cannot be managed."""


class Runner:
    """Runs a representative binary with a configuration written to a temp file."""

    def __init__(self, bin_path: str, rep_config: RepConfig, writer: Optional[TextIO] = None):
        self.bin_path = bin_path
        self.rep_config = rep_config
        self.session: Optional[subprocess.Popen] = None
        self.config_path: Optional[str] = None
        self._writer = writer if writer is not None else sys.stdout
        self._lock = threading.Lock()
        self._lines: list[str] = []
        self._pumps: list[threading.Thread] = []

    @property
    def output(self) -> str:
        """Everything the process has written so far, without prefixes."""
        with self._lock:
            return "".join(self._lines)

    def _pump(self, stream: IO[bytes], prefix: str) -> None:
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace")
                if not line.endswith("\n"):
                    line += "\n"
                with self._lock:
                    self._lines.append(line)
                    self._writer.write(prefix + line)
        finally:
            stream.close()

    def start(self) -> None:
        """Write the configuration and launch the binary with ``--config``."""
        if self.session is not None and self.session.poll() is None:
            raise RunnerError("starting more than one rep!!!")

        fd, path = tempfile.mkstemp(prefix="rep")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(self.rep_config.to_dict(), handle)
            handle.write("\n")
        self.config_path = path

        try:
            session = subprocess.Popen(
                [self.bin_path, "--config", path],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise RunnerError(f"failed to start {self.bin_path}: {exc}") from exc

        self._pumps = [
            threading.Thread(target=self._pump, args=(session.stdout, STDOUT_PREFIX), daemon=True),
            threading.Thread(target=self._pump, args=(session.stderr, STDERR_PREFIX), daemon=True),
        ]
        for pump in self._pumps:
            pump.start()
        self.session = session

    def _remove_config(self) -> None:
        if not self.config_path:
            return
        try:
            os.remove(self.config_path)
        except FileNotFoundError:
            pass

    def _wait(self) -> None:
        assert self.session is not None
        try:
            self.session.wait(timeout=_WAIT_SECONDS)
        except subprocess.TimeoutExpired as exc:
            raise RunnerError("rep did not exit in time") from exc
        for pump in self._pumps:
            pump.join(timeout=_WAIT_SECONDS)

    def stop(self) -> None:
        """Remove the config file and interrupt the process, waiting for it."""
        self._remove_config()
        if self.session is not None:
            self.session.send_signal(_interrupt_signal())
            self._wait()

    def kill_with_fire(self) -> None:
        """Remove the config file and kill the process, waiting for it."""
        self._remove_config()
        if self.session is not None:
            self.session.kill()
            self._wait()


def _interrupt_signal() -> int:
    import signal

    return signal.SIGINT