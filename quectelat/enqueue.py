"""Building and queueing of AT command sequences for calls and the device."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from .commands import CCWA_CLASS_VOICE, AtCommand
from .queue import TIMEOUT_MEDIUM, TIMEOUT_SHORT, CommandQueue, QueuedCommand, Task

log = logging.getLogger(__name__)

_CMD_CLCC = "AT+CLCC\r"
_CMD_CHLD2 = "AT+CHLD=2\r"


class CallState(enum.IntEnum):
    """State of a call as reported by the modem."""

    ACTIVE = 0
    ONHOLD = 1
    DIALING = 2
    ALERTING = 3
    INCOMING = 4
    WAITING = 5
    RELEASED = 6
    INIT = 7


class CallDirection(enum.IntEnum):
    OUTGOING = 0
    INCOMING = 1


class CallWaiting(enum.IntEnum):
    DISALLOWED = 0
    ALLOWED = 1
    AUTO = 2


class InvalidDigit(ValueError):
    """A DTMF digit that cannot be sent."""


@dataclass(eq=False)
class Device:
    """State of one modem that the command builders need."""

    queue: CommandQueue
    id: str = ""
    imsi: str = ""
    is_simcom: bool = False
    quec_uac: str = "0"
    resetquectel: bool = False
    u2diag: int = -1
    callwaiting: CallWaiting = CallWaiting.AUTO
    chansno: int = 0
    chan_count: dict[CallState, int] = field(
        default_factory=lambda: {state: 0 for state in CallState}
    )
    incoming_sms_index: int | None = None
    sms_inbox: set[int] = field(default_factory=set)
    last_dialed: Call | None = field(default=None, repr=False)
    sys_chan: Call = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.sys_chan = Call(self)


@dataclass(eq=False)
class Call:
    """One call (or the device's own system channel) on a device."""

    device: Device = field(repr=False)
    state: CallState = CallState.INIT
    direction: CallDirection = CallDirection.OUTGOING
    call_idx: int = 0
    hold_other: bool = False
    need_hangup: bool = False


# (command, text or None when formatted at run time, ignore response mismatch)
_INIT_SEQUENCE: tuple[tuple[AtCommand, str | None, bool], ...] = (
    (AtCommand.AT, "AT\r", False),
    (AtCommand.AT_Z, "AT^DSCI=1\r", False),
    (AtCommand.AT_E, "ATE0\r", False),
    (AtCommand.AT_U2DIAG, None, False),
    (AtCommand.AT_CGMI, "AT+CGMI\r", False),
    (AtCommand.AT_CGMM, "AT+CGMM\r", False),
    (AtCommand.AT_CGMR, "AT+CGMR\r", False),
    (AtCommand.AT_CMEE, "AT+CMEE=0\r", False),
    (AtCommand.AT_CGSN, "AT+CGSN\r", False),
    (AtCommand.AT_CIMI, "AT+CIMI\r", False),
    (AtCommand.AT_CPIN, "AT+CPIN?\r", False),
    (AtCommand.AT_COPS_INIT, "AT+COPS=0,0\r", False),
    (AtCommand.AT_CREG_INIT, "AT+CREG=2\r", True),
    (AtCommand.AT_CREG, "AT+CREG?\r", False),
    (AtCommand.AT_CEREG_INIT, "AT+CEREG=2\r", True),
    (AtCommand.AT_CEREG, "AT+CEREG?\r", False),
    (AtCommand.AT_CNUM, "AT+CNUM\r", True),
    (AtCommand.AT_CVOICE, "AT+QPCMV?\r", True),
    (AtCommand.AT_CVOICE2, "AT+CPCMREG?\r", True),
    (AtCommand.AT_CSCA, "AT+CSCA?\r", False),
    (AtCommand.AT_CSSN, "AT+CSSN=1,1\r", False),
    (AtCommand.AT_CMGF, "AT+CMGF=0\r", False),
    (AtCommand.AT_CSCS, 'AT+CSCS="UCS2"\r', True),
    (AtCommand.AT_CPMS, 'AT+CPMS="SM","SM","SM"\r', False),
    (AtCommand.AT_CNMI, "AT+CNMI=2,1,0,2,0\r", False),
    (AtCommand.AT_CSQ, "AT+CSQ\r", False),
)


def enqueue_initialization(call: Call, from_command: AtCommand) -> Task | None:
    """Queue the initialization sequence starting at ``from_command``.

    Returns the queued task, or None if nothing was left to queue.
    """
    device = call.device
    cmds: list[QueuedCommand] = []
    started = False
    for cmd, text, ignore in _INIT_SEQUENCE:
        if not started:
            if cmd != from_command:
                continue
            started = True
        if cmd == AtCommand.AT_Z and not device.resetquectel:
            continue
        if cmd == AtCommand.AT_U2DIAG and device.u2diag == -1:
            continue
        if text is None:
            cmds.append(QueuedCommand.dynamic(cmd, f"AT^U2DIAG={device.u2diag}\r"))
        else:
            cmds.append(QueuedCommand.static(cmd, text, ignore=ignore))
    if not cmds:
        return None
    return device.queue.insert(call, cmds)


def enqueue_ping(call: Call) -> Task:
    """Queue a bare ``AT`` with a short timeout right after the current task."""
    cmd = QueuedCommand.static(AtCommand.AT, "AT\r", ignore=True, timeout=TIMEOUT_SHORT)
    return call.device.queue.insert(call, [cmd], at_head=True)


def enqueue_cops(call: Call) -> Task:
    """Queue a query of the current operator."""
    cmd = QueuedCommand.static(AtCommand.AT_COPS, "AT+COPS?\r")
    return call.device.queue.insert(call, [cmd])


def enqueue_cereg(call: Call) -> Task:
    """Queue a query of the LTE registration state."""
    cmd = QueuedCommand.static(AtCommand.AT_CEREG, "AT+CEREG?\r")
    return call.device.queue.insert(call, [cmd])


def enqueue_dtmf(call: Call, digit: str) -> Task:
    """Queue sending of one DTMF digit; raise InvalidDigit for others."""
    if len(digit) == 1 and digit in "0123456789*#":
        cmd = QueuedCommand.dynamic(AtCommand.AT_DTMF, f"AT+VTS={digit}\r")
        return call.device.queue.insert(call, [cmd], at_head=True)
    if len(digit) == 1 and digit in "abcdABCD":
        raise InvalidDigit(f"DTMF digit {digit!r} is not supported by the device")
    raise InvalidDigit(f"invalid DTMF digit {digit!r}")


def enqueue_set_ccwa(call: Call, call_waiting: CallWaiting | int) -> Task:
    """Set call waiting on or off, or only query it for any other value."""
    cmds: list[QueuedCommand] = []
    if call_waiting in (CallWaiting.DISALLOWED, CallWaiting.ALLOWED):
        value = CallWaiting(call_waiting)
        flag = 1 if value is CallWaiting.ALLOWED else 0
        cmds.append(
            QueuedCommand.dynamic(
                AtCommand.AT_CCWA_SET,
                f"AT+CCWA={flag},{flag},{CCWA_CLASS_VOICE}\r",
                ignore=True,
                timeout=TIMEOUT_MEDIUM,
            )
        )
    else:
        value = CallWaiting.AUTO
    cmds.append(
        QueuedCommand.static(
            AtCommand.AT_CCWA_STATUS,
            "AT+CCWA=1,2,1\r",
            ignore=True,
            timeout=TIMEOUT_MEDIUM,
        )
    )
    call.device.callwaiting = value
    return call.device.queue.insert(call, cmds)


def enqueue_reset(call: Call) -> Task:
    """Queue a reset of the device."""
    cmd = QueuedCommand.static(AtCommand.AT_CFUN, "AT+CFUN=1,1\r")
    return call.device.queue.insert(call, [cmd])


def _voice_prefix(device: Device) -> str:
    if device.is_simcom:
        return "AT+CPCMREG=0;"
    if device.quec_uac == "1":
        return "AT+QPCMV=0;+QPCMV=1,2;"
    return "AT+QPCMV=0;+QPCMV=1,0;"


def enqueue_dial(call: Call, number: str, clir: int | None = None) -> Task:
    """Queue the commands that dial ``number``; ``clir`` sets CLIR first."""
    device = call.device
    cmds: list[QueuedCommand] = []
    if device.chan_count[CallState.ACTIVE] > 0 and call.hold_other:
        cmds.append(QueuedCommand.static(AtCommand.AT_CHLD_2, _CMD_CHLD2))
    if clir is not None and clir != -1:
        cmds.append(QueuedCommand.dynamic(AtCommand.AT_CLIR, f"AT+CLIR={clir}\r", ignore=True))
    cmds.append(
        QueuedCommand.dynamic(AtCommand.AT_D, f"{_voice_prefix(device)}D{number};\r", ignore=True)
    )
    cmds.append(QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC))
    task = device.queue.insert(call, cmds, at_head=True)
    # the dial may still be queued when a local hangup arrives
    call.need_hangup = True
    return task


def enqueue_answer(call: Call) -> Task:
    """Queue answering of an incoming or waiting call."""
    device = call.device
    if call.state == CallState.INCOMING:
        cmd = QueuedCommand.dynamic(AtCommand.AT_A, f"{_voice_prefix(device)}A\r")
    elif call.state == CallState.WAITING:
        cmd = QueuedCommand.dynamic(AtCommand.AT_CHLD_2X, f"AT+CHLD=2{call.call_idx}\r")
    else:
        log.error(
            "[%s] Request answer for call idx %d with state '%s'",
            device.id,
            call.call_idx,
            call.state.name,
        )
        raise ValueError(f"cannot answer call {call.call_idx} in state {call.state.name}")
    return device.queue.insert(call, [cmd], at_head=True)


def enqueue_activate(call: Call) -> Task | None:
    """Put active calls on hold and activate this one; None if already active."""
    if call.state == CallState.ACTIVE:
        return None
    if call.state not in (CallState.ONHOLD, CallState.WAITING):
        log.error(
            "[%s] Imposible activate call idx %d from state '%s'",
            call.device.id,
            call.call_idx,
            call.state.name,
        )
        raise ValueError(f"cannot activate call {call.call_idx} in state {call.state.name}")
    cmds = [
        QueuedCommand.dynamic(AtCommand.AT_CHLD_2X, f"AT+CHLD=2{call.call_idx}\r"),
        QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC),
    ]
    return call.device.queue.insert(call, cmds, at_head=True)


def enqueue_flip_hold(call: Call) -> Task:
    """Put active calls on hold and activate the waiting or held call."""
    cmds = [
        QueuedCommand.static(AtCommand.AT_CHLD_2, _CMD_CHLD2),
        QueuedCommand.static(AtCommand.AT_CLCC, _CMD_CLCC),
    ]
    return call.device.queue.insert(call, cmds, at_head=True)


def enqueue_user_cmd(call: Call, text: str) -> Task:
    """Queue a command typed by the user."""
    cmd = QueuedCommand.dynamic(AtCommand.USER, f"{text}\r")
    return call.device.queue.insert(call, [cmd], at_head=True)