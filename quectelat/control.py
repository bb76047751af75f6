"""Queueing of SMS retrieval, hangup and call control commands."""

from __future__ import annotations

import logging

from .commands import SMS_INDEX_MAX, AtCommand, SuppressError
from .enqueue import Call, CallDirection, CallState
from .queue import QueueError, QueuedCommand, Response, Task

log = logging.getLogger(__name__)

_CMD_CLCC = "AT+CLCC\r"
_CMD_CHUP = "AT+CHUP\r"
_CMD_CHLD3 = "AT+CHLD=3\r"
_CMD_CLVL1 = "AT+CLVL=1\r"
_CMD_CLVL5 = "AT+CLVL=5\r"


def _chld1x(call_idx: int) -> str:
    return f"AT+CHLD=1{call_idx}\r"


def retrieve_next_sms(
    call: Call, suppress_error: SuppressError = SuppressError.DISABLED
) -> Task | None:
    """Finish the SMS being read and start reading the next one in the inbox.

    Returns the queued task, or None when the inbox is empty or the read
    could not be queued; the device is then free to change state.
    """
    device = call.device
    if device.incoming_sms_index is not None:
        finished = device.incoming_sms_index
        device.incoming_sms_index = None
        device.sms_inbox.discard(finished)

    if not device.sms_inbox:
        return None
    index = min(device.sms_inbox)
    try:
        return enqueue_retrieve_sms(call, index, suppress_error)
    except (QueueError, ValueError) as exc:
        log.debug("[%s] cannot retrieve SMS %d: %s", device.id, index, exc)
        return None


def enqueue_retrieve_sms(
    call: Call, index: int, suppress_error: SuppressError = SuppressError.DISABLED
) -> Task | None:
    """Mark SMS ``index`` as wanted and queue its reading.

    Returns None when another message is already being read; that one is
    followed by this one later. Raises ValueError for an index out of range
    and QueueError when the command cannot be written.
    """
    device = call.device
    if not 0 <= index < SMS_INDEX_MAX:
        raise ValueError(f"SMS index {index} is out of range 0..{SMS_INDEX_MAX - 1}")
    device.sms_inbox.add(index)

    if device.incoming_sms_index is not None:
        log.debug(
            "[%s] SMS retrieve of [%d] already in progress",
            device.id,
            device.incoming_sms_index,
        )
        return None

    device.incoming_sms_index = index
    cmd = QueuedCommand.dynamic(AtCommand.AT_CMGR, f"AT+CMGR={index}\r", res=Response.CMGR)
    cmd.suppress_error = suppress_error is SuppressError.ENABLED
    try:
        return device.queue.insert(call, [cmd])
    except QueueError as exc:
        log.warning("[%s] SMS command error %s", device.id, exc)
        device.incoming_sms_index = None
        raise


def enqueue_delete_sms(call: Call, index: int) -> Task:
    """Queue deletion of the SMS stored at ``index``."""
    cmd = QueuedCommand.dynamic(AtCommand.AT_CMGD, f"AT+CMGD={index}\r")
    return call.device.queue.insert(call, [cmd])


def enqueue_hangup(call: Call, call_idx: int) -> Task:
    """Queue the hangup of a call followed by a refresh of the call list.

    ``AT+CHUP`` is used unless several channels exist and the call is the
    system channel, incoming, or past dialing; then ``AT+CHLD=1x`` ends only
    the given call.
    """
    device = call.device
    first = QueuedCommand.static(AtCommand.AT_CHUP, _CMD_CHUP)
    if (
        call is device.sys_chan
        or call.direction == CallDirection.INCOMING
        or call.state not in (CallState.INIT, CallState.DIALING)
    ):
        if device.chansno > 1:
            first = QueuedCommand.dynamic(AtCommand.AT_CHLD_1X, _chld1x(call_idx))

    # a hangup before the dial is confirmed may never see the call end
    if call.state == CallState.INIT:
        device.last_dialed = None

    cmds = [first, QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC)]
    return device.queue.insert(call, cmds, at_head=True)


def enqueue_volsync(call: Call) -> Task:
    """Queue the volume synchronization commands."""
    cmds = [
        QueuedCommand.static(AtCommand.AT_CLVL, _CMD_CLVL1),
        QueuedCommand.static(AtCommand.AT_CLVL, _CMD_CLVL5),
    ]
    return call.device.queue.insert(call, cmds, at_head=True)


def enqueue_clcc(call: Call) -> Task:
    """Queue a query of the current call list."""
    cmd = QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC)
    return call.device.queue.insert(call, [cmd], at_head=True)


def enqueue_conference(call: Call) -> Task:
    """Queue joining of all calls into a conference."""
    cmds = [
        QueuedCommand.static(AtCommand.AT_CHLD_3, _CMD_CHLD3),
        QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC),
    ]
    return call.device.queue.insert(call, cmds, at_head=True)


def hangup_immediately(call: Call) -> None:
    """Write the hangup of this call to the device at once, bypassing the queue."""
    call.device.queue.write(_chld1x(call.call_idx))