"""Helpers for signalling processes, detaching from the terminal and running
work in the background."""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Any, Callable

log = logging.getLogger(__name__)


def process_is_alive(pid: int) -> bool:
    """Return True if a signal can be delivered to pid."""
    if pid < 1:
        return False
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def process_send_signal(pid: int, sig: int) -> bool:
    """Send sig to pid. Return False if pid is not a real process id."""
    if pid < 1:
        return False
    log.debug("pid = %i, signal = %i", pid, sig)
    os.kill(pid, sig)
    return True


def pidgrp_send_signal(pid: int, sig: int) -> bool:
    """Send sig to the process group of pid.

    Return False when pid is invalid or its group cannot be found.
    """
    if pid < 1:
        return False
    try:
        gpid = os.getpgid(pid)
    except OSError as exc:
        log.debug("pid = %i: unable to retrieve gpid: %s", pid, exc)
        return False
    log.debug("pid = %i: gpid = %i, signal = %i", pid, gpid, sig)
    os.killpg(gpid, sig)
    return True


def process_daemonize() -> int:
    """Detach the current process into its own session and return 0.

    Starts a new session, moves to the root directory and points the
    standard streams at the null device. Raises OSError if a new session
    cannot be started.
    """
    os.setsid()

    try:
        os.chdir("/")
    except OSError:
        pass

    try:
        fd = os.open(os.devnull, os.O_RDWR)
    except OSError:
        return 0
    sys.stdout.flush()
    sys.stderr.flush()
    for target in (0, 1, 2):
        os.dup2(fd, target)
    if fd > 2:
        os.close(fd)
    return 0


class _Child(threading.Thread):
    """Background runner whose exit code is set when it finishes."""

    def __init__(self, child_run: Callable[[Any], int | None], data: Any) -> None:
        super().__init__(daemon=True)
        self._child_run = child_run
        self._data = data
        self.exitcode: int | None = None

    def run(self) -> None:
        code = 1
        try:
            result = self._child_run(self._data)
            code = 0 if result is None else int(result)
        except Exception:
            log.exception("child run failed")
        finally:
            self.exitcode = code


def process_create_child(child_run: Callable[[Any], int | None], data: Any) -> _Child:
    """Run child_run(data) in the background and return its started runner.

    After join(), the runner's exitcode holds the result (0 for None, 1 if
    child_run raised).
    """
    child = _Child(child_run, data)
    child.start()
    return child