import pytest

import display_outputs
import tv_power
from adb_shell import AdbAddress
from tv_config import CONFIG_KEYS
from tv_errors import CommandFailedError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("TV_POWER_CONFIG", str(tmp_path / "tv-power.conf"))
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "tv-power.conf"


@pytest.fixture
def calls(monkeypatch):
    seen = []
    monkeypatch.setattr(tv_power, "turn_on", lambda identity, **kw: seen.append(("on", identity, kw)))
    monkeypatch.setattr(tv_power, "turn_off", lambda identity: seen.append(("off", identity)))
    return seen


def test_on_uses_mac_and_optional_addr(calls):
    assert tv_power.main(["on", "--mac", "aa:bb:cc:dd:ee:ff"]) == 0
    (_, identity, kwargs), = calls
    assert identity.mac == "AA:BB:CC:DD:EE:FF"
    assert identity.addr is None
    assert kwargs == {"broadcast": None}


def test_off_reads_address_from_config_file(calls, isolated_config):
    isolated_config.write_text("ADDR=192.0.2.10:5556\n")
    assert tv_power.main(["off"]) == 0
    assert calls == [("off", tv_power.TvIdentity(mac=None, addr=AdbAddress("192.0.2.10", 5556)))]


def test_environment_overrides_config_file(calls, isolated_config, monkeypatch):
    isolated_config.write_text("ADDR=192.0.2.10\n")
    monkeypatch.setenv("ADDR", "192.0.2.99")
    assert tv_power.main(["off"]) == 0
    assert calls[0][1].addr == AdbAddress("192.0.2.99")


def test_missing_mac_is_a_config_error(calls):
    assert tv_power.main(["on"]) == tv_power.EXIT_CONFIG
    assert calls == []


def test_bad_mac_is_a_config_error(calls):
    assert tv_power.main(["on", "--mac", "not-a-mac"]) == tv_power.EXIT_CONFIG


def test_actuation_failure_exits_nonzero(monkeypatch):
    def failing(identity):
        raise CommandFailedError("adb shell exited with status 1", 1)

    monkeypatch.setattr(tv_power, "turn_off", failing)
    assert tv_power.main(["off", "--addr", "192.0.2.10"]) == tv_power.EXIT_FAILURE


def test_keycodes(monkeypatch):
    sent = []
    monkeypatch.setattr(
        tv_power.adb_shell, "send_keycodes", lambda addr, codes: sent.append((addr, codes))
    )
    assert tv_power.main(["keycodes", "--addr", "192.0.2.10", "3", "4"]) == 0
    assert sent == [(AdbAddress("192.0.2.10"), [3, 4])]


def test_list_outputs(drm_tree, monkeypatch, capsys):
    monkeypatch.setattr(display_outputs, "DRM_ROOT", drm_tree({"card0-HDMI-A-1": "connected"}))
    assert tv_power.main(["list-outputs"]) == 0
    assert capsys.readouterr().out == "card0-HDMI-A-1 connected\n"


def test_unreadable_config_setting_exits_with_config_code(isolated_config):
    isolated_config.write_text("RETRY_DELAY_MS=soon\n")
    assert tv_power.main(["list-outputs"]) == tv_power.EXIT_CONFIG
