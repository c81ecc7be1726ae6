import pytest

from presence_status import PresenceStatus, make_status_handler
from tv_errors import UnknownPresenceStatus, WorkerDiedError


@pytest.mark.parametrize(
    "raw, status, active",
    [
        (0, PresenceStatus.AVAILABLE, True),
        (1, PresenceStatus.INVISIBLE, True),
        (2, PresenceStatus.BUSY, True),
        (3, PresenceStatus.IDLE, False),
    ],
)
def test_parse_known_statuses(raw, status, active):
    parsed = PresenceStatus.parse(raw)
    assert parsed is status
    assert parsed.is_active is active


def test_parse_unknown_status():
    with pytest.raises(UnknownPresenceStatus) as excinfo:
        PresenceStatus.parse(7)
    assert excinfo.value.value == 7
    assert str(excinfo.value) == "Unknown presence status: 7"


class RecordingManager:
    def __init__(self, dead=False):
        self.requests = []
        self.dead = dead

    def request_power(self, power_on):
        if self.dead:
            raise WorkerDiedError("Failed to send message to worker thread. Did it die?")
        self.requests.append(power_on)


def test_handler_translates_statuses():
    manager = RecordingManager()
    handler = make_status_handler(manager, on_fatal=pytest.fail)
    for raw in (3, 0, 2, 3):
        handler(raw)
    assert manager.requests == [False, True, True, False]


def test_handler_drops_unknown_statuses():
    manager = RecordingManager()
    handler = make_status_handler(manager, on_fatal=pytest.fail)
    handler(42)
    handler(1)
    assert manager.requests == [True]


def test_handler_reports_dead_worker():
    fatal = []
    handler = make_status_handler(RecordingManager(dead=True), on_fatal=fatal.append)
    handler(0)
    assert len(fatal) == 1
    assert isinstance(fatal[0], WorkerDiedError)
