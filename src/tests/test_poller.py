"""Unit tests for poller.py and scheduler.py."""

import logging
import threading
import time
from pathlib import Path

import pytest
from prometheus_client import REGISTRY

from pdns_exporter.scheduler import Scheduler


def sample(name, labels):
    """Return the current value of an internal metric or 0."""
    return REGISTRY.get_sample_value(name, labels) or 0


def test_configure(poller, fake_server, fake_recursor):
    """All valid declarations are added in order."""
    assert poller.configure(
        declarations=[
            {"dialect": "server", "instance": "auth", "socket": fake_server.path},
            {"dialect": "recursor", "instance": "rec", "socket": fake_recursor.path},
        ]
    )
    assert [t.instance for t in poller.registry] == ["auth", "rec"]


def test_configure_rejects_bad_declarations(poller, caplog):
    """Bad declarations are rejected but the rest are still added."""
    assert not poller.configure(
        declarations=[
            {"dialect": "server", "instance": "auth"},
            {"dialect": "server"},
            {"dialect": "recursor", "instance": "auth"},
            {"dialect": "recursor", "instance": "rec", "bogus": 1},
            {"dialect": "recursor", "instance": "rec2"},
        ]
    )
    assert [t.instance for t in poller.registry] == ["auth", "rec2"]
    assert "Rejecting target declaration 2" in caplog.text
    assert "A target with instance name auth already exists" in caplog.text


def test_configure_local_socket(poller, sockdir, caplog):
    """The local socket can be set by configure(), invalid paths are rejected."""
    assert poller.configure(declarations=[], local_socket=str(sockdir / "other.sock"))
    assert poller.local_socket == str(sockdir / "other.sock")
    assert not poller.configure(declarations=[], local_socket="")
    assert poller.local_socket == str(sockdir / "other.sock")


def test_read_tick(poller, fake_server, fake_recursor):
    """Both dialects are read and the observations published."""
    poller.configure(
        declarations=[
            {"dialect": "server", "instance": "auth", "socket": fake_server.path, "timeout": 5},
            {
                "dialect": "recursor",
                "instance": "rec",
                "socket": fake_recursor.path,
                "command": "get cache-hits qa-latency unknown-thing",
                "timeout": 5,
            },
        ]
    )
    poller.read_tick()

    auth = {(o.metric_type, o.sub_dimension): o.value for o in poller.sink.observations("auth")}
    assert auth[("dns_question", "udp")] == 101
    assert auth[("cache_size", "packet")] == 17
    assert auth[("latency", None)] == 12.0
    # io_packets has two values and is refused
    assert ("io_packets", "corrupt") not in auth

    rec = poller.sink.observations("rec")
    assert [(o.metric_type, o.sub_dimension, o.value) for o in rec] == [
        ("cache_result", "hit", 1000),
        ("latency", None, 1532.0),
    ]
    assert all(o.instance == "rec" for o in rec)


def test_read_tick_missing_socket(poller, fake_recursor, sockdir, caplog):
    """A target with a missing socket gives no observations and the following targets are still read."""
    before = sample("pdns_exporter_read_failures_total", {"server": "gone", "reason": "connect"})
    poller.configure(
        declarations=[
            {"dialect": "server", "instance": "gone", "socket": str(sockdir / "missing.sock")},
            {"dialect": "recursor", "instance": "rec", "socket": fake_recursor.path, "timeout": 5},
        ]
    )
    poller.read_tick()
    assert poller.sink.observations("gone") == []
    assert len(poller.sink.observations("rec")) > 0
    assert len(fake_recursor.requests) == 1
    assert "Unable to read server target gone" in caplog.text
    assert sample("pdns_exporter_read_failures_total", {"server": "gone", "reason": "connect"}) == before + 1


def test_read_tick_datagram_leaves_no_local_socket(poller, fake_recursor, sockdir):
    """The local socket is gone after both successful and failed recursor reads."""
    poller.configure(
        declarations=[
            {"dialect": "recursor", "instance": "rec", "socket": fake_recursor.path, "timeout": 5},
            {"dialect": "recursor", "instance": "gone", "socket": str(sockdir / "missing.sock")},
        ]
    )
    poller.read_tick()
    assert not Path(poller.local_socket).exists()


def test_failed_read_clears_old_observations(poller, fake_server):
    """When a target stops answering its old observations are not exported anymore."""
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    poller.read_tick()
    assert poller.sink.observations("auth")
    fake_server.close()
    Path(fake_server.path).unlink()
    poller.read_tick()
    assert poller.sink.observations("auth") == []


def test_read_tick_never_raises(poller, fake_server, mocker, caplog):
    """Unexpected exceptions are logged and counted, the read continues."""
    mocker.patch("pdns_exporter.poller.parser.decode", side_effect=ZeroDivisionError("mocked"))
    before = sample("pdns_exporter_read_failures_total", {"server": "auth", "reason": "other_failure"})
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    poller.read_tick()
    assert "Caught an unknown exception while reading target auth" in caplog.text
    assert sample("pdns_exporter_read_failures_total", {"server": "auth", "reason": "other_failure"}) == before + 1
    assert poller.sink.observations("auth") == []


def test_dropped_statistics_counted(poller, fake_server):
    """Unknown statistics are counted but not logged as errors."""
    before = sample("pdns_exporter_statistics_dropped_total", {"server": "auth", "reason": "unknown_statistic"})
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    poller.read_tick()
    after = sample("pdns_exporter_statistics_dropped_total", {"server": "auth", "reason": "unknown_statistic"})
    # brand-new-statistic
    assert after == before + 1


def test_shutdown_twice(poller, fake_server):
    """shutdown() can be called twice and leaves the registry empty."""
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    poller.read_tick()
    poller.shutdown()
    poller.shutdown()
    assert len(poller.registry) == 0
    assert poller.sink.observations("auth") == []


def test_shutdown_before_configure(poller):
    """shutdown() before configure() is fine."""
    poller.shutdown()
    assert len(poller.registry) == 0


def test_scheduler(poller, fake_server, caplog):
    """The scheduler reads right away, keeps reading, and shuts down the poller when stopped."""
    caplog.set_level(logging.DEBUG)
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    scheduler = Scheduler(poller=poller, interval=0.05)
    scheduler.start()
    deadline = time.time() + 5
    while len(fake_server.requests) < 2 and time.time() < deadline:
        time.sleep(0.01)
    scheduler.stop()
    assert len(fake_server.requests) >= 2
    assert scheduler.thread is None
    assert len(poller.registry) == 0
    assert "The read loop thread exited cleanly." in caplog.text


def test_scheduler_invalid_interval(poller):
    """The interval must be positive."""
    with pytest.raises(ValueError, match="Invalid interval"):
        Scheduler(poller=poller, interval=0)


def test_scheduler_stop_does_not_wait_forever(poller, fake_server, mocker, caplog):
    """A read which never finishes does not block stop() longer than stop_timeout."""
    poller.configure(declarations=[{"dialect": "server", "instance": "auth", "socket": fake_server.path}])
    release = threading.Event()
    started = threading.Event()

    def hung_read():
        started.set()
        release.wait(timeout=10)

    mocker.patch.object(poller, "read_tick", side_effect=hung_read)
    scheduler = Scheduler(poller=poller, interval=60, stop_timeout=0.1)
    scheduler.start()
    assert started.wait(timeout=5)
    before = time.time()
    scheduler.stop()
    assert time.time() - before < 5
    assert "still waiting for a read after 0.1 seconds" in caplog.text
    assert scheduler.thread is None
    # the poller was left alone while the read is in progress
    assert len(poller.registry) == 1
    release.set()
