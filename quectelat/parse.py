"""Parsers for responses and unsolicited result codes sent by the modem."""

from __future__ import annotations

import re
from dataclasses import dataclass


class ParseError(ValueError):
    """A modem response line could not be parsed."""


@dataclass(frozen=True)
class Registration:
    """Network registration state reported by +CREG or +CEREG."""

    registered: bool
    status: int
    lac: str | None = None
    ci: str | None = None


@dataclass(frozen=True)
class UssdReply:
    """Contents of a +CUSD response."""

    type: int
    text: str
    dcs: int = -1


@dataclass(frozen=True)
class CallEntry:
    """One line of a +CLCC call list."""

    index: int
    direction: int
    state: int
    mode: int
    mpty: int
    number: str
    toa: int


_UINT = re.compile(r"\s*\+?(\d+)")
_LONG = re.compile(r"\s*([+-]?\d+)")
_CMTI = re.compile(r"\+CMTI:\s*[^,\s][^,]*,\s*\+?(\d+)")
_CDSI = re.compile(r"\+CDSI:\s*[^,\s][^,]*,\s*\+?(\d+)")
_CMGS = re.compile(r"\+CMGS:\s*([+-]?\d+)")
_CSQ = re.compile(r"\+CSQ:\s*(\d{1,2}|[+-]\d)")
_RSSI = re.compile(r"\^RSSI:\s*([+-]?\d+)")
_MODE = re.compile(r"\^MODE:\s*([+-]?\d+),\s*([+-]?\d+)")

_CPIN_STATES = ("READY", "SIM PIN", "SIM PUK")


def _mark_line(line: str, delimiters: str) -> list[int]:
    """Return positions of the delimiters, found one after another in order."""
    marks: list[int] = []
    for pos, char in enumerate(line):
        if len(marks) == len(delimiters):
            break
        if char == delimiters[len(marks)]:
            marks.append(pos)
    return marks


def _scan_uint(text: str) -> int | None:
    match = _UINT.match(text)
    return int(match.group(1)) if match else None


def _strtol(text: str) -> int | None:
    match = _LONG.match(text)
    return int(match.group(1)) if match else None


def _field(line: str, start: int, end: int) -> str:
    """Text between two delimiters with one surrounding quote removed each side."""
    if start < len(line) and line[start] == '"':
        start += 1
    if end > 0 and line[end - 1] == '"':
        end -= 1
    if end < start:
        return line[start:]
    return line[start:end]


def parse_cnum(line: str) -> str:
    """Return the subscriber number of a ``+CNUM: <name>,<number>,<type>`` line."""
    marks = _mark_line(line, ":,,")
    if len(marks) != 3:
        raise ParseError(f"malformed +CNUM line: {line!r}")
    return _field(line, marks[1] + 1, marks[2])


def parse_cops(line: str) -> str:
    """Return the operator name of a ``+COPS: <mode>,<format>,<oper>,<act>`` line.

    Trailing control characters, '@' and non-ASCII characters are dropped.
    """
    marks = _mark_line(line, ":,,,")
    if len(marks) != 4:
        raise ParseError(f"malformed +COPS line: {line!r}")
    name = _field(line, marks[2] + 1, marks[3])
    while name and (ord(name[-1]) < 32 or name[-1] == "@" or ord(name[-1]) >= 128):
        name = name[:-1]
    return name


def _parse_registration(line: str, what: str) -> Registration:
    chars = list(line)
    state = 0
    p1 = p2 = p3 = p4 = None

    for pos, char in enumerate(line):
        if state >= 9:
            break
        if state == 0:
            if char == ":":
                state = 1
        elif state in (1, 2):
            if state == 1 and char not in ' "':
                p1 = pos
                state = 2
            if char == ",":
                chars[pos] = "\0"
                state += 1
        elif state in (3, 4):
            if state == 3 and char not in ' "':
                p2 = pos
                state = 4
            if char == '"':
                chars[pos] = "\0"
            elif char == ",":
                chars[pos] = "\0"
                state += 1
        elif state in (5, 6):
            if state == 5 and char not in ' "':
                p3 = pos
                state = 6
            if char == '"':
                chars[pos] = "\0"
            elif char == ",":
                chars[pos] = "\0"
                state += 1
        elif state == 7:
            if char not in ' "':
                p4 = pos
                state = 8
        elif state == 8:
            if char == '"':
                chars[pos] = "\0"
                state = 9

    if state < 2:
        raise ParseError(f"malformed {what} line: {line!r}")

    text = "".join(chars)

    def token(start: int | None) -> str | None:
        if start is None:
            return None
        return text[start:].split("\0", 1)[0]

    t1, t2, t3, t4 = token(p1), token(p2), token(p3), token(p4)
    lac = ci = None

    if (t2 is not None and t3 is None and t4 is None) or (
        t2 is not None and t3 is not None and t4 is not None
    ):
        if _strtol(t2) in (1, 5):
            t1 = t2
            if t3 is not None and t4 is not None:
                lac, ci = t3, t4
    elif t2 is not None and t3 is not None:
        lac, ci = t2, t3

    status = -1
    registered = False
    if t1 is not None:
        value = _strtol(t1)
        if value is None:
            raise ParseError(f"malformed {what} status: {t1!r}")
        status = value
        registered = status in (1, 5)

    return Registration(registered=registered, status=status, lac=lac, ci=ci)


def parse_creg(line: str) -> Registration:
    """Parse ``+CREG: [<n>,]<stat>[,<lac>,<ci>]``."""
    return _parse_registration(line, "+CREG")


def parse_cereg(line: str) -> Registration:
    """Parse ``+CEREG: [<n>,]<stat>[,<tac>,<ci>]``."""
    return _parse_registration(line, "+CEREG")


def parse_cmti(line: str) -> int:
    """Return the storage index announced by ``+CMTI: <mem>,<index>``."""
    match = _CMTI.match(line)
    if not match:
        raise ParseError(f"malformed +CMTI line: {line!r}")
    return int(match.group(1))


def parse_cdsi(line: str) -> int:
    """Return the storage index announced by ``+CDSI: <mem>,<index>``."""
    match = _CDSI.match(line)
    if not match:
        raise ParseError(f"malformed +CDSI line: {line!r}")
    return int(match.group(1))


def parse_cmgs(line: str) -> int:
    """Return the message reference of ``+CMGS: <mr>[,<scts>]``."""
    match = _CMGS.match(line)
    if not match:
        raise ParseError(f"malformed +CMGS line: {line!r}")
    return int(match.group(1))


def parse_cusd(line: str) -> UssdReply:
    """Parse ``+CUSD: <m>[,<str>,<dcs>]``."""
    marks = _mark_line(line, ":,,")
    if not marks:
        raise ParseError(f"malformed +CUSD line: {line!r}")
    ussd_type = _scan_uint(line[marks[0] + 1:])
    if ussd_type is None:
        raise ParseError(f"malformed +CUSD type: {line!r}")

    text = ""
    dcs = -1
    if len(marks) > 1:
        start = marks[1] + 1
        if start < len(line) and line[start] == '"':
            start += 1
        if len(marks) > 2:
            scanned = _scan_uint(line[marks[2] + 1:])
            if scanned is not None:
                dcs = scanned
            end = marks[2]
            if line[end - 1] == '"':
                end -= 1
            text = line[start:] if end < start else line[start:end]
        else:
            text = line[start:]
            if text.endswith('"'):
                text = text[:-1]
    return UssdReply(type=ussd_type, text=text, dcs=dcs)


def parse_cpin(line: str) -> int:
    """Return 0 when the SIM is ready, 1 when a PIN and 2 when a PUK is required."""
    for index, value in enumerate(_CPIN_STATES):
        if value in line:
            return index
    raise ParseError(f"unknown +CPIN state: {line!r}")


def parse_csq(line: str) -> int:
    """Return the RSSI value of ``+CSQ: <rssi>,<ber>``."""
    match = _CSQ.match(line)
    if not match:
        raise ParseError(f"malformed +CSQ line: {line!r}")
    return int(match.group(1))


def parse_rssi(line: str) -> int:
    """Return the value of a ``^RSSI:<rssi>`` notification."""
    match = _RSSI.match(line)
    if not match:
        raise ParseError(f"malformed ^RSSI line: {line!r}")
    return int(match.group(1))


def parse_mode(line: str) -> tuple[int, int]:
    """Return ``(mode, submode)`` of a ``^MODE:<mode>,<submode>`` notification."""
    match = _MODE.match(line)
    if not match:
        raise ParseError(f"malformed ^MODE line: {line!r}")
    return int(match.group(1)), int(match.group(2))


def parse_csca(line: str) -> str:
    """Return the service centre address of ``+CSCA: "<sca>",<tosca>``."""
    marks = _mark_line(line, '""')
    if len(marks) != 2:
        raise ParseError(f"malformed +CSCA line: {line!r}")
    return line[marks[0] + 1:marks[1]]


def parse_clcc(line: str) -> CallEntry:
    """Parse ``+CLCC: <id>,<dir>,<stat>,<mode>,<mpty>,<number>,<type>``."""
    marks = _mark_line(line, ":,,,,,,")
    if len(marks) != 7:
        raise ParseError(f"malformed +CLCC line: {line!r}")
    values = [_scan_uint(line[marks[n] + 1:]) for n in (0, 1, 2, 3, 4, 6)]
    if any(value is None for value in values):
        raise ParseError(f"malformed +CLCC values: {line!r}")
    index, direction, state, mode, mpty, toa = values
    number = _field(line, marks[5] + 1, marks[6])
    return CallEntry(
        index=index,
        direction=direction,
        state=state,
        mode=mode,
        mpty=mpty,
        number=number,
        toa=toa,
    )


def parse_ccwa(line: str) -> int:
    """Return the class of a ``+CCWA: <number>,<type>,<class>,...`` notification."""
    marks = _mark_line(line, ":,,")
    if len(marks) == 3:
        value = _scan_uint(line[marks[2] + 1:])
        if value is not None:
            return value
    raise ParseError(f"malformed +CCWA line: {line!r}")