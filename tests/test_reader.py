import os

import pytest

from quectelat.queue import Response
from quectelat.reader import ResponseReader


def test_ok_response():
    reader = ResponseReader()
    reader.feed(b"\r\nOK\r\n")
    assert reader.next_result() == (Response.OK, b"OK")
    assert reader.next_result() is None
    assert len(reader) == 0


def test_error_response():
    reader = ResponseReader()
    reader.feed(b"\r\nERROR\r\n")
    res, line = reader.next_result()
    assert res is Response.ERROR
    assert line == b"ERROR"


def test_partial_data_waits():
    reader = ResponseReader()
    reader.feed(b"\r\nO")
    assert reader.next_result() is None
    reader.feed(b"K\r\n")
    assert reader.next_result() == (Response.OK, b"OK")


def test_garbage_before_result_is_skipped():
    reader = ResponseReader()
    reader.feed(b"garbage\r\r\nOK\r\n")
    assert list(reader.results()) == [(Response.OK, b"OK")]


def test_sms_prompt():
    reader = ResponseReader()
    reader.feed(b"\r\n> ")
    assert reader.next_result() == (Response.SMS_PROMPT, b"> ")
    assert len(reader) == 0


def test_unsolicited_line_is_unknown():
    reader = ResponseReader()
    line = b"+CSQ: 20,99"
    reader.feed(b"\r\n" + line + b"\r\n")
    assert reader.next_result() == (Response.UNKNOWN, line)


def test_cmgr_consumes_trailing_ok():
    reader = ResponseReader()
    body = b"+CMGR: 0,,3\r\nABCDEF"
    reader.feed(b"\r\n" + body + b"\r\n\r\nOK\r\n")
    res, line = reader.next_result()
    assert res is Response.CMGR
    assert line == body
    assert reader.next_result() is None
    assert len(reader) == 0


def test_cmgr_waits_for_final_ok():
    reader = ResponseReader()
    reader.feed(b"\r\n+CMGR: 0,,3\r\nABCDEF\r\n")
    assert reader.next_result() is None


def test_cnum_leaves_ok_for_next_result():
    reader = ResponseReader()
    body = b'+CNUM: "","+100",145'
    reader.feed(b"\r\n" + body + b"\r\n\r\nOK\r\n")
    items = list(reader.results())
    assert items == [(Response.UNKNOWN, body), (Response.OK, b"OK")]


def test_cssi_fixed_length():
    reader = ResponseReader()
    reader.feed(b"\r\n+CSSI: 1\r\n")
    res, line = reader.next_result()
    assert res is Response.CSSI
    assert line == b"+CSSI: 1"
    assert reader.next_result() is None


def test_feed_overflow_raises():
    reader = ResponseReader(capacity=4)
    with pytest.raises(BufferError):
        reader.feed(b"12345")
    assert len(reader) == 0


def test_invalid_capacity():
    with pytest.raises(ValueError):
        ResponseReader(capacity=0)


def test_read_from_pipe():
    read_fd, write_fd = os.pipe()
    try:
        os.write(write_fd, b"\r\nOK\r\n")
        reader = ResponseReader()
        assert reader.read_from(read_fd) == 6
        assert reader.next_result() == (Response.OK, b"OK")
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_read_from_full_buffer_raises():
    read_fd, write_fd = os.pipe()
    try:
        reader = ResponseReader(capacity=2)
        reader.feed(b"ab")
        with pytest.raises(BufferError):
            reader.read_from(read_fd)
    finally:
        os.close(read_fd)
        os.close(write_fd)