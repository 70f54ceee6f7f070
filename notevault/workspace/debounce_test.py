import threading
import time

import pytest

from notevault.workspace.debounce import DebouncedWriter


class Recorder:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on
        self.written = threading.Event()

    def __call__(self, key, value):
        if value == self.fail_on:
            raise RuntimeError(f"cannot write {value}")
        self.calls.append((key, value))
        self.written.set()


@pytest.fixture
def recorder():
    return Recorder()


def test_rapid_submits_coalesce_to_last_value(recorder):
    writer = DebouncedWriter(recorder, delay=60)

    for value in ["a", "ab", "abc"]:
        writer.submit("file-1", value)

    assert recorder.calls == []
    assert writer.pending_value("file-1") == "abc"
    writer.flush()
    assert recorder.calls == [("file-1", "abc")]
    assert not writer.has_pending()


def test_keys_are_independent(recorder):
    writer = DebouncedWriter(recorder, delay=60)
    writer.submit("file-1", "one")
    writer.submit("file-2", "two")

    writer.flush("file-1")

    assert recorder.calls == [("file-1", "one")]
    assert writer.has_pending("file-2")
    assert not writer.has_pending("file-1")
    writer.close()
    assert recorder.calls == [("file-1", "one"), ("file-2", "two")]


def test_timer_fires_after_quiet_period(recorder):
    writer = DebouncedWriter(recorder, delay=0.05)
    writer.submit("file-1", "draft")

    assert recorder.written.wait(timeout=5)
    assert recorder.calls == [("file-1", "draft")]
    assert not writer.has_pending()


def test_discard_drops_pending_write(recorder):
    writer = DebouncedWriter(recorder, delay=60)
    writer.submit("file-1", "draft")

    assert writer.discard("file-1") is True
    assert writer.discard("file-1") is False
    writer.flush()
    assert recorder.calls == []


def test_flush_with_nothing_pending_is_noop(recorder):
    writer = DebouncedWriter(recorder, delay=60)
    writer.flush()
    writer.flush("unknown")
    assert recorder.calls == []


def test_failed_write_is_recorded_then_cleared():
    recorder = Recorder(fail_on="bad")
    writer = DebouncedWriter(recorder, delay=60)

    writer.submit("file-1", "bad")
    writer.flush()
    assert isinstance(writer.failures["file-1"], RuntimeError)
    assert not writer.has_pending()

    writer.submit("file-1", "good")
    writer.flush()
    assert "file-1" not in writer.failures
    assert recorder.calls == [("file-1", "good")]


def test_writes_for_same_key_never_overlap():
    active = 0
    max_active = 0
    guard = threading.Lock()

    def slow_write(key, value):
        nonlocal active, max_active
        with guard:
            active += 1
            max_active = max(max_active, active)
        time.sleep(0.02)
        with guard:
            active -= 1

    writer = DebouncedWriter(slow_write, delay=0)
    threads = []
    for i in range(5):
        writer.submit("file-1", str(i))
        thread = threading.Thread(target=writer.flush, args=("file-1",))
        thread.start()
        threads.append(thread)
    for thread in threads:
        thread.join()
    writer.close()

    assert max_active == 1


def test_value_stays_visible_while_being_written():
    started = threading.Event()
    release = threading.Event()

    def blocking_write(key, value):
        started.set()
        release.wait(timeout=5)

    writer = DebouncedWriter(blocking_write, delay=60)
    writer.submit("file-1", "draft")
    flusher = threading.Thread(target=writer.flush)
    flusher.start()
    assert started.wait(timeout=5)

    assert writer.pending_value("file-1") == "draft"
    assert not writer.has_pending("file-1")

    release.set()
    flusher.join(timeout=5)
    assert writer.pending_value("file-1") is None


def test_newer_submit_wins_over_in_flight_value():
    started = threading.Event()
    release = threading.Event()

    def blocking_write(key, value):
        started.set()
        release.wait(timeout=5)

    writer = DebouncedWriter(blocking_write, delay=60)
    writer.submit("file-1", "old")
    flusher = threading.Thread(target=writer.flush)
    flusher.start()
    assert started.wait(timeout=5)

    writer.submit("file-1", "new")
    assert writer.pending_value("file-1") == "new"

    release.set()
    flusher.join(timeout=5)
    writer.discard("file-1")


def test_key_locks_are_released_after_writes(recorder):
    writer = DebouncedWriter(recorder, delay=60)
    for i in range(20):
        writer.submit(f"file-{i}", "text")
    writer.flush()

    assert len(recorder.calls) == 20
    assert len(writer._key_locks) == 0
