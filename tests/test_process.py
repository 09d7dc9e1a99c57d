import os
from unittest import mock

import pytest

from edgemq.process import (
    pidgrp_send_signal,
    process_create_child,
    process_daemonize,
    process_is_alive,
    process_send_signal,
)


def test_own_process_is_alive():
    assert process_is_alive(os.getpid()) is True


@pytest.mark.parametrize("pid", [0, -1, -100])
def test_invalid_pid_is_not_alive(pid):
    assert process_is_alive(pid) is False


@pytest.mark.parametrize("pid", [0, -5])
def test_send_signal_invalid_pid(pid):
    assert process_send_signal(pid, 0) is False
    assert pidgrp_send_signal(pid, 0) is False


def test_send_signal_zero_to_self():
    assert process_send_signal(os.getpid(), 0) is True


def test_group_signal_zero_to_self():
    assert pidgrp_send_signal(os.getpid(), 0) is True


def test_create_child_exit_code():
    child = process_create_child(lambda value: value * 2, 7)
    child.join(timeout=5)
    assert child.exitcode == 14


def test_create_child_none_result_exits_zero():
    child = process_create_child(lambda value: None, None)
    child.join(timeout=5)
    assert child.exitcode == 0


def test_create_child_failure_exits_one():
    def boom(value):
        raise RuntimeError(value)

    child = process_create_child(boom, "bad")
    child.join(timeout=5)
    assert child.exitcode == 1


def test_missing_process_is_not_alive():
    with mock.patch("os.kill", side_effect=ProcessLookupError):
        assert process_is_alive(4321) is False
        with pytest.raises(ProcessLookupError):
            process_send_signal(4321, 0)


def test_group_signal_missing_group():
    with mock.patch("os.getpgid", side_effect=ProcessLookupError):
        assert pidgrp_send_signal(4321, 0) is False


def test_daemonize_redirects_streams():
    with mock.patch("os.setsid") as setsid, mock.patch(
        "os.chdir"
    ) as chdir, mock.patch("os.open", return_value=9), mock.patch(
        "os.dup2"
    ) as dup2, mock.patch("os.close") as close:
        result = process_daemonize()
    assert result == 0
    setsid.assert_called_once_with()
    chdir.assert_called_once_with("/")
    assert dup2.call_args_list == [mock.call(9, 0), mock.call(9, 1), mock.call(9, 2)]
    close.assert_called_once_with(9)


def test_daemonize_without_null_device():
    with mock.patch("os.setsid"), mock.patch("os.chdir"), mock.patch(
        "os.open", side_effect=OSError
    ), mock.patch("os.dup2") as dup2:
        result = process_daemonize()
    assert result == 0
    dup2.assert_not_called()


def test_daemonize_setsid_failure():
    with mock.patch("os.setsid", side_effect=PermissionError):
        with pytest.raises(OSError):
            process_daemonize()