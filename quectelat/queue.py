"""Queue of AT command tasks waiting to be written to the modem."""

from __future__ import annotations

import enum
import logging
import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from .commands import AtCommand, SuppressError, at_cmd2str

log = logging.getLogger(__name__)

TIMEOUT_SHORT = 1.0
TIMEOUT_MEDIUM = 5.0
TIMEOUT_LONG = 40.0

_WRITE_RETRIES = 10


class Response(enum.Enum):
    """Kind of response line received from the modem."""

    UNKNOWN = "UNKNOWN"
    OK = "OK"
    ERROR = "ERROR"
    SMS_PROMPT = "> "
    CMGR = "+CMGR"
    CSSI = "+CSSI"


class QueueError(Exception):
    """A command could not be queued or written to the device."""


def _to_bytes(data: bytes | str | None) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


@dataclass
class QueuedCommand:
    """One AT command and the response expected for it.

    ``data`` holds the bytes still to be written; once written it is emptied
    and ``deadline`` holds the clock time by which the response is due.
    """

    cmd: AtCommand
    res: Response = Response.OK
    data: bytes = b""
    ignore: bool = False
    suppress_error: bool = False
    timeout: float = TIMEOUT_MEDIUM
    deadline: float | None = None

    def __post_init__(self) -> None:
        self.data = _to_bytes(self.data)

    @classmethod
    def static(
        cls,
        cmd: AtCommand,
        data: bytes | str,
        ignore: bool = False,
        timeout: float = TIMEOUT_MEDIUM,
        res: Response = Response.OK,
    ) -> QueuedCommand:
        """Build a command whose text is fixed in advance."""
        return cls(cmd=cmd, res=res, data=_to_bytes(data), ignore=ignore, timeout=timeout)

    @classmethod
    def dynamic(
        cls,
        cmd: AtCommand,
        data: bytes | str | None = None,
        ignore: bool = False,
        timeout: float = TIMEOUT_MEDIUM,
        res: Response = Response.OK,
    ) -> QueuedCommand:
        """Build a command whose text is formatted at run time."""
        return cls(cmd=cmd, res=res, data=_to_bytes(data), ignore=ignore, timeout=timeout)

    @property
    def pending(self) -> bool:
        """True while the command still has data to write."""
        return bool(self.data)

    def suppress_error_mode(self) -> SuppressError:
        """Return whether errors of this command are to be suppressed."""
        return SuppressError.ENABLED if self.suppress_error else SuppressError.DISABLED


@dataclass
class Task:
    """A group of commands executed one after another for one owner."""

    owner: Any
    cmds: list[QueuedCommand]
    uid: int = 0
    cindex: int = 0

    def current(self) -> QueuedCommand | None:
        """Return the command now in progress, if any is left."""
        if self.cindex < len(self.cmds):
            return self.cmds[self.cindex]
        return None

    @property
    def remaining(self) -> int:
        return len(self.cmds) - self.cindex


@dataclass
class CommandQueue:
    """Ordered tasks of AT commands for one device.

    ``sink`` is either a file descriptor or an object with a ``write`` method.
    """

    sink: Any
    device: str = ""
    clock: Callable[[], float] = time.monotonic
    tasks: list[Task] = field(default_factory=list)
    total_tasks: int = 0
    total_cmds: int = 0
    written_bytes: int = 0

    @property
    def pending_tasks(self) -> int:
        return len(self.tasks)

    @property
    def pending_cmds(self) -> int:
        return sum(task.remaining for task in self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def _write_once(self, chunk: memoryview) -> int:
        if isinstance(self.sink, int):
            return os.write(self.sink, chunk)
        piece = bytes(chunk)
        written = self.sink.write(piece)
        return len(piece) if written is None else written

    def _write_all(self, data: bytes) -> int:
        view = memoryview(data)
        total = 0
        errors_left = _WRITE_RETRIES
        while view:
            try:
                count = self._write_once(view)
            except (InterruptedError, BlockingIOError):
                errors_left -= 1
                if errors_left:
                    continue
                break
            except OSError as exc:
                log.debug("[%s] write() error: %s", self.device, exc)
                break
            if count <= 0:
                break
            errors_left = _WRITE_RETRIES
            view = view[count:]
            total += count
        return total

    def write(self, data: bytes | str) -> None:
        """Write all of ``data`` to the device, raising QueueError if cut short."""
        payload = _to_bytes(data)
        log.debug("[%s] [%r]", self.device, payload)
        written = self._write_all(payload)
        self.written_bytes += written
        if written != len(payload):
            raise QueueError(
                f"[{self.device}] wrote {written} of {len(payload)} bytes"
            )

    def insert(
        self,
        owner: Any,
        cmds: Iterable[QueuedCommand],
        at_head: bool = False,
        uid: int = 0,
    ) -> Task:
        """Queue a task and try to write the head command.

        With ``at_head`` the task goes right after the task in progress.
        """
        copies = [replace(cmd) for cmd in cmds]
        if not copies:
            raise ValueError("a task needs at least one command")
        task = Task(owner=owner, cmds=copies, uid=uid)
        if at_head and self.tasks:
            self.tasks.insert(1, task)
        else:
            self.tasks.append(task)
        self.total_tasks += 1
        self.total_cmds += len(copies)
        log.debug(
            "[%s] insert task with %d commands begin with '%s' expected response '%s' %s of queue",
            self.device,
            len(copies),
            at_cmd2str(copies[0].cmd),
            copies[0].res.name,
            "after head" if at_head else "at tail",
        )
        self.run()
        return task

    def run(self) -> None:
        """Write the head command if it has not been written yet."""
        cmd = self.head_cmd()
        if cmd is None or not cmd.pending:
            return
        log.debug(
            "[%s] write command '%s' expected response '%s' length %d",
            self.device,
            at_cmd2str(cmd.cmd),
            cmd.res.name,
            len(cmd.data),
        )
        try:
            self.write(cmd.data)
        except QueueError:
            log.error(
                "[%s] Error write command '%s' expected response '%s' length %d, cancel",
                self.device,
                at_cmd2str(cmd.cmd),
                cmd.res.name,
                len(cmd.data),
            )
            self.remove_cmd(None)
            raise
        cmd.deadline = self.clock() + cmd.timeout
        cmd.data = b""

    def _remove_head(self) -> None:
        if self.tasks:
            task = self.tasks.pop(0)
            log.debug(
                "[%s] remove task with %d command(s) begin with '%s' from queue",
                self.device,
                len(task.cmds),
                at_cmd2str(task.cmds[0].cmd),
            )

    def remove_cmd(self, res: Response | None) -> None:
        """Finish the head command with response ``res``.

        The whole task is dropped when it has no commands left, or when the
        response differs from the expected one and the command does not
        ignore mismatches. ``None`` stands for a response that matches nothing.
        """
        task = self.head_task()
        if task is None:
            return
        cmd = task.cmds[task.cindex]
        task.cindex += 1
        log.debug(
            "[%s] remove command '%s' expected response '%s' real '%s' cmd %d/%d from queue",
            self.device,
            at_cmd2str(cmd.cmd),
            cmd.res.name,
            res.name if res is not None else "NONE",
            task.cindex,
            len(task.cmds),
        )
        if task.cindex >= len(task.cmds) or (cmd.res != res and not cmd.ignore):
            self._remove_head()

    def handle_result(self, res: Response | None) -> None:
        """Advance the queue after a response has been received."""
        self.remove_cmd(res)

    def flush(self) -> None:
        """Drop every queued task."""
        while self.tasks:
            self._remove_head()

    def head_task(self) -> Task | None:
        return self.tasks[0] if self.tasks else None

    def head_cmd(self) -> QueuedCommand | None:
        task = self.head_task()
        return task.current() if task is not None else None

    def timeout_ms(self) -> int:
        """Milliseconds left until the written head command expires, or -1."""
        cmd = self.head_cmd()
        if cmd is None or cmd.pending or cmd.deadline is None:
            return -1
        return int((cmd.deadline - self.clock()) * 1000)