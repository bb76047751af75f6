import os

import pytest

from quectelat.commands import AtCommand, SuppressError
from quectelat.queue import (
    TIMEOUT_MEDIUM,
    TIMEOUT_SHORT,
    CommandQueue,
    QueueError,
    QueuedCommand,
    Response,
)


class Sink:
    def __init__(self, failures=0, error=InterruptedError, short=False):
        self.chunks = []
        self.failures = failures
        self.error = error
        self.short = short

    def write(self, data):
        if self.failures:
            self.failures -= 1
            raise self.error()
        if self.short:
            return 0
        self.chunks.append(bytes(data))
        return len(data)

    @property
    def output(self):
        return b"".join(self.chunks)


class Clock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def make_queue(sink=None, clock=None):
    return CommandQueue(sink if sink is not None else Sink(), device="dev", clock=clock or Clock())


def at():
    return QueuedCommand.static(AtCommand.AT, "AT\r")


def clcc():
    return QueuedCommand.static(AtCommand.AT_CLCC, "AT+CLCC\r")


def test_insert_writes_only_head_command():
    sink = Sink()
    queue = make_queue(sink)
    queue.insert("owner", [at(), clcc()])
    assert sink.output == b"AT\r"
    assert queue.pending_cmds == 2
    assert not queue.head_cmd().pending


def test_second_task_waits_for_first():
    sink = Sink()
    queue = make_queue(sink)
    queue.insert("a", [at()])
    queue.insert("b", [clcc()])
    assert sink.output == b"AT\r"
    queue.handle_result(Response.OK)
    assert queue.head_cmd().cmd == AtCommand.AT_CLCC
    queue.run()
    assert sink.output == b"AT\rAT+CLCC\r"


def test_matching_response_advances_within_task():
    queue = make_queue()
    queue.insert("a", [at(), clcc()])
    queue.handle_result(Response.OK)
    assert queue.pending_tasks == 1
    assert queue.head_cmd().cmd == AtCommand.AT_CLCC
    queue.handle_result(Response.OK)
    assert queue.pending_tasks == 0
    assert queue.head_cmd() is None


def test_mismatch_drops_whole_task():
    queue = make_queue()
    queue.insert("a", [at(), clcc()])
    queue.handle_result(Response.ERROR)
    assert queue.pending_tasks == 0


def test_ignore_flag_keeps_task_on_mismatch():
    queue = make_queue()
    first = QueuedCommand.static(AtCommand.AT_CREG_INIT, "AT+CREG=2\r", ignore=True)
    queue.insert("a", [first, clcc()])
    queue.handle_result(Response.ERROR)
    assert queue.pending_tasks == 1
    assert queue.head_cmd().cmd == AtCommand.AT_CLCC


def test_at_head_inserts_after_current_task():
    queue = make_queue()
    queue.insert("a", [at()])
    queue.insert("b", [clcc()])
    urgent = queue.insert("c", [QueuedCommand.static(AtCommand.AT_CHUP, "AT+CHUP\r")], at_head=True)
    assert [task.owner for task in queue.tasks] == ["a", "c", "b"]
    assert queue.tasks[1] is urgent


def test_at_head_on_empty_queue_appends():
    queue = make_queue()
    task = queue.insert("a", [at()], at_head=True, uid=7)
    assert queue.head_task() is task
    assert task.uid == 7


def test_insert_copies_templates():
    template = at()
    queue = make_queue()
    queue.insert("a", [template])
    assert template.data == b"AT\r"
    assert template.deadline is None
    assert queue.head_cmd() is not template


def test_empty_insert_rejected():
    queue = make_queue()
    with pytest.raises(ValueError):
        queue.insert("a", [])
    assert queue.pending_tasks == 0


def test_write_failure_cancels_and_raises():
    queue = make_queue(Sink(short=True))
    with pytest.raises(QueueError):
        queue.insert("a", [at(), clcc()])
    assert queue.pending_tasks == 0


def test_write_retries_interrupted_calls():
    sink = Sink(failures=3)
    queue = make_queue(sink)
    queue.write(b"AT\r")
    assert sink.output == b"AT\r"
    assert queue.written_bytes == 3


def test_write_gives_up_after_repeated_interrupts():
    sink = Sink(failures=20, error=BlockingIOError)
    queue = make_queue(sink)
    with pytest.raises(QueueError):
        queue.write(b"AT\r")
    assert sink.output == b""


def test_write_to_file_descriptor():
    read_fd, write_fd = os.pipe()
    try:
        queue = make_queue(write_fd)
        queue.insert("a", [QueuedCommand.static(AtCommand.AT_CSQ, "AT+CSQ\r")])
        assert os.read(read_fd, 100) == b"AT+CSQ\r"
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_timeout_ms_counts_down_from_write():
    clock = Clock(100.0)
    queue = make_queue(clock=clock)
    assert queue.timeout_ms() == -1
    queue.insert("a", [at()])
    assert queue.timeout_ms() == int(TIMEOUT_MEDIUM * 1000)
    clock.now += 2.0
    assert queue.timeout_ms() == 3000


def test_timeout_ms_short_timeout():
    clock = Clock(10.0)
    queue = make_queue(clock=clock)
    queue.insert("a", [QueuedCommand.static(AtCommand.AT, "AT\r", timeout=TIMEOUT_SHORT)])
    assert queue.head_cmd().deadline == 10.0 + TIMEOUT_SHORT


def test_unwritten_head_has_no_timeout():
    queue = make_queue()
    queue.insert("a", [at()])
    queue.insert("b", [clcc()])
    queue.handle_result(Response.OK)
    assert queue.head_cmd().pending
    assert queue.timeout_ms() == -1


def test_flush_clears_everything():
    queue = make_queue()
    queue.insert("a", [at(), clcc()])
    queue.insert("b", [clcc()])
    queue.flush()
    assert queue.pending_tasks == 0
    assert queue.pending_cmds == 0
    assert queue.total_tasks == 2
    assert queue.total_cmds == 3


def test_dynamic_command_and_suppress_mode():
    cmd = QueuedCommand.dynamic(AtCommand.AT_CMGR, "AT+CMGR=3\r", res=Response.CMGR)
    assert cmd.data == b"AT+CMGR=3\r"
    assert cmd.res is Response.CMGR
    assert cmd.suppress_error_mode() is SuppressError.DISABLED
    cmd.suppress_error = True
    assert cmd.suppress_error_mode() is SuppressError.ENABLED


def test_dynamic_without_data_is_not_written():
    sink = Sink()
    queue = make_queue(sink)
    queue.insert("a", [QueuedCommand.dynamic(AtCommand.AT_A)])
    assert sink.output == b""
    assert queue.pending_cmds == 1


def test_remove_cmd_on_empty_queue_is_harmless():
    queue = make_queue()
    queue.remove_cmd(Response.OK)
    assert queue.head_task() is None


def test_task_current_after_last_command():
    queue = make_queue()
    task = queue.insert("a", [at()])
    queue.handle_result(Response.OK)
    assert task.current() is None
    assert task.remaining == 0