# quectelat

A pure-Python library for the AT command channel of Quectel and SIMCom
cellular modems. It has no runtime dependencies.

## Modules

- **`quectelat.commands`** – the `AtCommand` enumeration of every command
  sent to the modem (each member has a `text` property), `SuppressError`,
  the constants `CCWA_CLASS_VOICE` and `SMS_INDEX_MAX`, and the lookup
  helpers `at_cmd2str`, `enum2str` and `str2enum` (the latter compares
  without case and raises `ValueError` when nothing matches).
- **`quectelat.queue`** – `CommandQueue`, a per-device list of `Task`
  objects, each holding one or more `QueuedCommand` entries and the
  `Response` expected for each. Write failures raise `QueueError`.
- **`quectelat.reader`** – `ResponseReader`, which buffers raw bytes from the
  modem, splits them into complete results (including multi-line replies
  such as `+CMGR:`, `+CLCC:` and `+CNUM:`, and the `> ` SMS prompt) and
  classifies each one as a `Response`.
- **`quectelat.parse`** – parsers for replies and unsolicited notifications:
  `parse_cnum`, `parse_cops`, `parse_creg`, `parse_cereg`, `parse_cmti`,
  `parse_cdsi`, `parse_cmgs`, `parse_cusd`, `parse_cpin`, `parse_csq`,
  `parse_rssi`, `parse_mode`, `parse_csca`, `parse_clcc` and `parse_ccwa`.
  Structured results come back as `Registration`, `UssdReply` and
  `CallEntry`; malformed input raises `ParseError` (a `ValueError`).
- **`quectelat.enqueue`** and **`quectelat.control`** – operations that build
  and queue the command sequences for a `Device` and its `Call` objects.

## Installation

```
pip install quectelat
```

## Parsing modem output

```python
from quectelat.parse import parse_cops, parse_cmti, parse_cpin, parse_creg

parse_cops('+COPS: 0,0,"TELE2",0')   # 'TELE2'
parse_cmti('+CMTI: "ME",41')          # 41 – storage index of the new SMS
parse_cpin("+CPIN: READY")            # 0 – ready; 1 PIN, 2 PUK required
parse_creg("+CREG: 2,1,9110,7E6")     # Registration(registered=True, status=1, lac='9110', ci='7E6')
```

## Reading results

Feed bytes into a `ResponseReader` as they arrive (or let it read from a
file descriptor with `read_from`) and take `(Response, line)` pairs out with
`next_result`, or iterate over `results()`:

```python
from quectelat.reader import ResponseReader

reader = ResponseReader()
reader.feed(b"\r\nOK\r\n")
for res, line in reader.results():
    print(res, line)        # Response.OK b'OK'
```

`feed` raises `BufferError` when the data does not fit in the buffer's
`capacity` (4096 bytes by default).

## Queueing commands

`CommandQueue` takes a sink – a file descriptor or any object with a
`write` method. Build entries with `QueuedCommand.static` or
`QueuedCommand.dynamic` and `insert` them as a task; `insert` places the task
at the tail, or right after the task in progress with `at_head=True`, and
then writes the head command if it has not been written yet.

When a response arrives, pass it to `handle_result`. This finishes the head
command; the whole task is dropped when it has no commands left, or when the
response differs from the expected one and the command does not ignore
mismatches. Call `run()` afterwards to write the next command. `timeout_ms`
tells how long the command in flight may still wait for its answer (-1 when
nothing is waiting), and `flush` discards every task.

```python
import io
from quectelat.commands import AtCommand
from quectelat.queue import CommandQueue, QueuedCommand, Response

sink = io.BytesIO()
queue = CommandQueue(sink, device="modem0")
queue.insert("owner", [QueuedCommand.static(AtCommand.AT_CSQ, "AT+CSQ\r")])
sink.getvalue()                 # b'AT+CSQ\r'
queue.handle_result(Response.OK)
queue.run()
```

## Device operations

`Device` holds the queue and the state the operations need; each `Call`
belongs to a device, and `Device.sys_chan` is the device's own channel.

`quectelat.enqueue` offers `enqueue_initialization`, `enqueue_ping`,
`enqueue_cops`, `enqueue_cereg`, `enqueue_dtmf`, `enqueue_set_ccwa`,
`enqueue_reset`, `enqueue_dial`, `enqueue_answer`, `enqueue_activate`,
`enqueue_flip_hold` and `enqueue_user_cmd`. `quectelat.control` offers
`retrieve_next_sms`, `enqueue_retrieve_sms`, `enqueue_delete_sms`,
`enqueue_hangup`, `enqueue_volsync`, `enqueue_clcc`, `enqueue_conference`
and `hangup_immediately`, which writes the hangup straight to the device.

Each returns the queued `Task` (or `None` where there is nothing to queue).
An unsupported DTMF digit raises `InvalidDigit`; answering or activating a
call in the wrong `CallState` raises `ValueError`.

## What the package does not do

It does not open or configure serial ports, carry call audio, or run a
device event loop: the caller reads from the modem, feeds the reader and
reports results to the queue. It does not encode or decode SMS PDUs, so it
cannot send SMS or USSD messages or decode the body of a `+CMGR:` reply,
and it keeps no message store. There is no command-line program.

## Running the tests

```
pip install "quectelat[test]"
pytest
```