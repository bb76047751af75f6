"""AT command identifiers and helpers for turning enum values into names."""

from __future__ import annotations

import enum
from collections.abc import Sequence

CCWA_CLASS_VOICE = 1
SMS_INDEX_MAX = 256  # exclusive upper bound of SMS storage indexes


class AtCommand(enum.IntEnum):
    """Identifier of an AT command sent to the modem."""

    USER = 0
    AT = 1
    AT_A = 2
    AT_CCWA_STATUS = 3
    AT_CCWA_SET = 4
    AT_CFUN = 5
    AT_CGMI = 6
    AT_CGMM = 7
    AT_CGMR = 8
    AT_CGSN = 9
    AT_CHUP = 10
    AT_CIMI = 11
    AT_CVOICE2 = 12
    AT_CLIR = 13
    AT_CLVL = 14
    AT_CMGD = 15
    AT_CMGF = 16
    AT_CMGR = 17
    AT_CMGS = 18
    AT_SMSTEXT = 19
    AT_CNMI = 20
    AT_CNUM = 21
    AT_COPS = 22
    AT_COPS_INIT = 23
    AT_CPIN = 24
    AT_CPMS = 25
    AT_CREG = 26
    AT_CREG_INIT = 27
    AT_CEREG = 28
    AT_CEREG_INIT = 29
    AT_CSCS = 30
    AT_CSQ = 31
    AT_CSSN = 32
    AT_CUSD = 33
    AT_CVOICE = 34
    AT_D = 35
    AT_DDSETEX = 36
    AT_DDSETEX0 = 37
    AT_DTMF = 38
    AT_E = 39
    AT_U2DIAG = 40
    AT_Z = 41
    AT_CMEE = 42
    AT_CSCA = 43
    AT_CHLD_1X = 44
    AT_CHLD_2X = 45
    AT_CHLD_2 = 46
    AT_CHLD_3 = 47
    AT_CLCC = 48

    @property
    def text(self) -> str:
        """Human readable form of the command."""
        return at_cmd2str(self)


_COMMAND_TEXTS: tuple[str, ...] = (
    "USER'S",
    "AT",
    "at+qpcmv=0;+qpcmv=1,0;a",
    "AT+CCWA?",
    "AT+CCWA=",
    "AT+CFUN",
    "AT+CGMI",
    "AT+CGMM",
    "AT+CGMR",
    "AT+CGSN",
    "AT+CHUP",
    "AT+CIMI",
    "AT+CPCMREG?",
    "AT+CLIR",
    "AT+CLVL",
    "AT+CMGD",
    "AT+CMGF",
    "AT+CMGR",
    "AT+CMGS",
    "SMSTEXT",
    "AT+CNMI",
    "AT+CNUM",
    "AT+COPS?",
    "AT+COPS=",
    "AT+CPIN?",
    "AT+CPMS",
    "AT+CREG?",
    "AT+CREG=",
    "AT+CEREG?",
    "AT+CEREG=",
    "AT+CSCS",
    "AT+CSQ",
    "AT+CSSN",
    "AT+CUSD",
    "AT+QPCMV?",
    "AT+CPCMREG=0;D",
    "AT+CPCMREG=1",
    "AT+CPCMREG=0",
    "AT^DTMF",
    "ATE",
    "AT^U2DIAG",
    "ATZ",
    "AT+CMEE",
    "AT+CSCA",
    "AT+CHLD=1x",
    "AT+CHLD=2x",
    "AT+CHLD=2",
    "AT+CHLD=3",
    "AT+CLCC",
)


class SuppressError(enum.Enum):
    """Whether a failing command should be reported."""

    DISABLED = 0
    ENABLED = 1


def enum2str(value: int, names: Sequence[str], default: str = "unknown") -> str:
    """Return ``names[value]``, or ``default`` when the value is out of range."""
    if 0 <= value < len(names):
        return names[value]
    return default


def str2enum(value: str, options: Sequence[str]) -> int:
    """Return the index of ``value`` in ``options``, compared without case.

    Raises ValueError when no option matches.
    """
    wanted = value.lower()
    for index, option in enumerate(options):
        if option.lower() == wanted:
            return index
    raise ValueError(f"{value!r} is not one of {list(options)!r}")


def at_cmd2str(cmd: int) -> str:
    """Return the text describing an AT command, or ``"UNDEFINED"``."""
    return enum2str(int(cmd), _COMMAND_TEXTS, "UNDEFINED")