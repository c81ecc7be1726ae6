import pytest

import adb_shell
import bounded_process
from adb_shell import AdbAddress
from tv_errors import (
    AdbConnectError,
    CommandFailedError,
    CommandTimeoutError,
    ConfigError,
    ToolNotFoundError,
)

TV = AdbAddress("192.0.2.10")


@pytest.fixture
def adb_calls(monkeypatch):
    calls = []
    failures = {}

    def fake_run(args, **kwargs):
        calls.append((list(args), kwargs))
        error = failures.get(args[1])
        if error is not None:
            raise error

    monkeypatch.setattr(bounded_process, "run", fake_run)
    return calls, failures


@pytest.mark.parametrize(
    "text, expected",
    [
        ("192.0.2.10:5555", AdbAddress("192.0.2.10", 5555)),
        ("192.0.2.10", AdbAddress("192.0.2.10", 5555)),
        ("tv.lan:5556", AdbAddress("tv.lan", 5556)),
        ("[fe80::1]:5555", AdbAddress("fe80::1", 5555)),
    ],
)
def test_parse_address(text, expected):
    assert adb_shell.parse_address(text) == expected


@pytest.mark.parametrize("text", ["", "tv:port", "tv:70000", "[fe80::1"])
def test_parse_address_rejects(text):
    with pytest.raises(ConfigError):
        adb_shell.parse_address(text)


def test_address_str():
    assert str(AdbAddress("192.0.2.10")) == "192.0.2.10:5555"
    assert str(AdbAddress("fe80::1", 5555)) == "[fe80::1]:5555"


def test_send_keycode_connects_first(adb_calls):
    calls, _ = adb_calls
    adb_shell.send_keycode(TV, adb_shell.KEYCODE_POWER)
    assert [args for args, _ in calls] == [
        ["adb", "connect", "192.0.2.10:5555"],
        ["adb", "-s", "192.0.2.10:5555", "shell", "input", "keyevent", "26"],
    ]
    assert all(kwargs["timeout"] is None for _, kwargs in calls)


def test_deadline_is_shared_by_connect_and_shell(adb_calls):
    calls, _ = adb_calls
    adb_shell.send_keycode(TV, adb_shell.KEYCODE_WAKEUP, timeout=5)
    connect_timeout = calls[0][1]["timeout"]
    shell_timeout = calls[1][1]["timeout"]
    assert connect_timeout == 5
    assert 0 <= shell_timeout <= 5


def test_send_keycodes_uses_one_session(adb_calls):
    calls, _ = adb_calls
    adb_shell.send_keycodes(TV, [3, 4])
    assert calls[-1][0][-1] == "input keyevent 3 && input keyevent 4"


def test_connect_failure(adb_calls):
    calls, failures = adb_calls
    failures["connect"] = CommandFailedError("adb exited with status 1", 1)
    with pytest.raises(AdbConnectError, match="failed"):
        adb_shell.send_keycode(TV, adb_shell.KEYCODE_POWER)
    assert len(calls) == 1


def test_connect_timeout(adb_calls):
    _, failures = adb_calls
    failures["connect"] = CommandTimeoutError("adb timed out after 1s", -9)
    with pytest.raises(AdbConnectError, match="timed out"):
        adb_shell.send_keycode(TV, adb_shell.KEYCODE_POWER, timeout=1)


def test_missing_adb_keeps_hint(adb_calls):
    _, failures = adb_calls
    failures["connect"] = ToolNotFoundError("adb")
    with pytest.raises(ToolNotFoundError) as excinfo:
        adb_shell.send_keycode(TV, adb_shell.KEYCODE_POWER)
    assert excinfo.value.hint == "Make sure that adb is installed"


def test_shell_failure_propagates(adb_calls):
    _, failures = adb_calls
    failures["-s"] = CommandFailedError("adb shell exited with status 1", 1)
    with pytest.raises(CommandFailedError):
        adb_shell.send_keycode(TV, adb_shell.KEYCODE_POWER)
