import threading
import time

import pytest

import daemon_status


def wait_for(predicate, timeout=3.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def statuses(monkeypatch):
    """Capture systemd STATUS= updates instead of sending them."""
    seen = []
    lock = threading.Lock()

    def record(status):
        with lock:
            seen.append(status)

    monkeypatch.setattr(daemon_status, "notify_status", record)
    return seen


@pytest.fixture
def drm_tree(tmp_path):
    """Build a fake /sys/class/drm from {name: status} pairs."""

    def build(outputs):
        root = tmp_path / "drm"
        root.mkdir(exist_ok=True)
        (root / "card0").mkdir(exist_ok=True)
        (root / "version").write_text("drm 1.1.0\n")
        for name, status in outputs.items():
            d = root / name
            d.mkdir(exist_ok=True)
            (d / "status").write_text(status + "\n")
        return root

    return build
