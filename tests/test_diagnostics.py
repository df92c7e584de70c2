from __future__ import annotations

import logging

import pytest

from emitter import Emitter, EmitterSettings, FailureLog, ListenerError


class Boom(RuntimeError):
    pass


def _crash(amount: int) -> None:
    raise Boom(f"bad amount {amount}")


def test_failure_log_records_and_logs(bus: Emitter, caplog: pytest.LogCaptureFixture):
    log = FailureLog().attach(bus)
    bus.on("counter:increment", _crash)

    with caplog.at_level(logging.ERROR, logger="emitter.diagnostics"):
        assert bus.emit("counter:increment", 3) is True

    assert len(log) == 1
    record = log.last
    assert isinstance(record, ListenerError)
    assert isinstance(record.error, Boom)
    assert record.__cause__ is record.error
    assert record.key == "counter:increment"
    assert record.listener is _crash
    assert record.event_args == (3,)

    assert "Error in listener" in caplog.text
    assert "counter:increment" in caplog.text
    assert caplog.records[0].exc_info is not None
    assert caplog.records[0].exc_info[1] is record.error


def test_failure_log_history_is_bounded():
    bus = Emitter()
    log = FailureLog(maxlen=2).attach(bus)
    bus.on("x", _crash)

    for amount in range(5):
        bus.emit("x", amount)

    assert log.total == 5
    assert [f.event_args for f in log.failures] == [(3,), (4,)]

    log.clear()
    assert log.failures == ()
    assert log.last is None


def test_failure_log_sized_from_settings():
    settings = EmitterSettings(failure_history=0)
    bus = Emitter(settings)
    log = FailureLog.for_settings(settings).attach(bus)
    bus.on("x", _crash)

    bus.emit("x", 1)

    assert log.total == 1
    assert len(log) == 0


def test_failure_log_uses_configured_error_key():
    bus = Emitter(EmitterSettings(error_key="failure"))
    log = FailureLog().attach(bus)

    assert bus.listeners("failure") == [log]
    bus.on("x", _crash)
    bus.emit("x", 1)
    assert len(log) == 1


def test_failure_log_detach_restores_propagation(bus: Emitter):
    log = FailureLog().attach(bus)
    bus.on("x", _crash)
    log.detach(bus)

    with pytest.raises(Boom):
        bus.emit("x", 1)
    assert len(log) == 0


def test_failure_log_custom_logger(bus: Emitter, caplog: pytest.LogCaptureFixture):
    FailureLog(log=logging.getLogger("game.events")).attach(bus)
    bus.on("x", _crash)

    with caplog.at_level(logging.ERROR, logger="game.events"):
        bus.emit("x", 1)

    assert [r.name for r in caplog.records] == ["game.events"]


def test_failure_log_rejects_negative_size():
    with pytest.raises(ValueError):
        FailureLog(maxlen=-1)
