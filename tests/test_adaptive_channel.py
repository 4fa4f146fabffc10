"""Tests for AdaptiveReadChannel."""

import logging

import pytest

from obspec_adaptive.channels import AdaptiveReadChannel
from obspec_adaptive.errors import (
    ClosedChannelError,
    InvalidPositionError,
    ReadChannelError,
    TransportOpenError,
    UnexpectedEndOfStreamError,
)
from obspec_adaptive.metrics import ReadMetrics
from obspec_adaptive.options import AccessPattern, ReadOptions
from obspec_adaptive.protocols import END_OF_STREAM, ReadableFile, ReadChannel

from .mocks import FakeTransport, make_object

DATA = bytes(range(256)) * 40
SIZE = len(DATA)


def make_channel(
    pattern=AccessPattern.AUTO,
    *,
    data=DATA,
    min_range_request_size=100,
    inplace_seek_limit=50,
    sequential_range_read_threshold=1,
    recorder=None,
    **transport_options,
):
    transport = FakeTransport(data, **transport_options)
    options = ReadOptions(
        access_pattern=pattern,
        min_range_request_size=min_range_request_size,
        inplace_seek_limit=inplace_seek_limit,
        sequential_range_read_threshold=sequential_range_read_threshold,
    )
    channel = AdaptiveReadChannel(
        transport, make_object(data), options, recorder=recorder
    )
    return channel, transport


def read_exactly(channel, n):
    buffer = bytearray(n)
    assert channel.readinto(buffer) == n
    return bytes(buffer)


def test_implements_protocols():
    channel, _ = make_channel()

    assert isinstance(channel, ReadChannel)
    assert isinstance(channel, ReadableFile)
    assert channel.size == SIZE
    assert channel.object.path == "test.bin"


# =============================================================================
# Reading
# =============================================================================


@pytest.mark.parametrize("pattern", list(AccessPattern))
@pytest.mark.parametrize("chunk_size", [1, 7, 100, 1_000, SIZE, SIZE + 10])
def test_read_in_chunks_reconstructs_object(pattern, chunk_size):
    channel, _ = make_channel(pattern)

    result = bytearray()
    while True:
        buffer = bytearray(chunk_size)
        n = channel.readinto(buffer)
        if n == END_OF_STREAM:
            break
        result += buffer[:n]

    assert bytes(result) == DATA
    assert channel.tell() == SIZE


def test_read_in_chunks_with_short_transport_reads():
    channel, _ = make_channel(AccessPattern.RANDOM, max_read=13)

    assert read_exactly(channel, 250) == DATA[:250]
    assert read_exactly(channel, 1_000) == DATA[250:1_250]


def test_read_fills_buffer_and_advances_position():
    channel, transport = make_channel()

    assert read_exactly(channel, 10) == DATA[:10]
    assert channel.tell() == 10
    assert read_exactly(channel, 20) == DATA[10:30]
    assert channel.tell() == 30
    assert transport.ranges == [(0, SIZE)]


def test_read_into_memoryview():
    channel, _ = make_channel()
    buffer = bytearray(20)

    assert channel.readinto(memoryview(buffer)[5:15]) == 10
    assert bytes(buffer[5:15]) == DATA[:10]
    assert bytes(buffer[:5]) == b"\x00" * 5


def test_read_full_object_in_one_call():
    channel, transport = make_channel(AccessPattern.SEQUENTIAL)

    assert channel.read() == DATA
    assert transport.ranges == [(0, SIZE)]


def test_zero_length_buffer_returns_zero():
    channel, transport = make_channel()

    assert channel.readinto(bytearray()) == 0
    assert transport.handles == []
    assert channel.tell() == 0


def test_read_at_end_returns_end_of_stream():
    channel, _ = make_channel()

    assert channel.readinto(bytearray(SIZE + 100)) == SIZE
    assert channel.readinto(bytearray(10)) == END_OF_STREAM
    assert channel.readinto(bytearray(10)) == END_OF_STREAM
    assert channel.tell() == SIZE


def test_read_after_seek_to_end_returns_end_of_stream():
    channel, _ = make_channel()

    channel.seek(SIZE)

    assert channel.readinto(bytearray(10)) == END_OF_STREAM
    assert channel.read(10) == b""


def test_empty_object():
    channel, _ = make_channel(data=b"")

    assert channel.readinto(bytearray(10)) == END_OF_STREAM
    assert channel.read() == b""


def test_read_past_end_returns_remaining_bytes():
    channel, _ = make_channel()
    channel.seek(-10, 2)

    assert channel.read(100) == DATA[-10:]
    assert channel.read(1) == b""


# =============================================================================
# Range sizing
# =============================================================================


def test_sequential_reads_until_end():
    channel, transport = make_channel(AccessPattern.SEQUENTIAL)

    read_exactly(channel, 10)
    channel.seek(5_000)
    read_exactly(channel, 10)

    assert transport.ranges == [(0, SIZE), (5_000, SIZE)]


def test_sequential_does_not_switch_to_random_on_backward_seek():
    channel, transport = make_channel(AccessPattern.SEQUENTIAL)

    read_exactly(channel, 100)
    channel.seek(20)
    assert read_exactly(channel, 10) == DATA[20:30]

    assert transport.ranges == [(0, SIZE), (20, SIZE)]
    assert transport.handles[0].closed


def test_random_reads_minimum_range():
    channel, transport = make_channel(AccessPattern.RANDOM)

    read_exactly(channel, 10)
    channel.seek(5_000)
    read_exactly(channel, 200)

    assert transport.ranges == [(0, 100), (5_000, 5_200)]


def test_auto_starts_sequential():
    channel, transport = make_channel(AccessPattern.AUTO)

    read_exactly(channel, 10)

    assert transport.ranges == [(0, SIZE)]


def test_auto_switches_to_random_on_large_forward_seek():
    channel, transport = make_channel(AccessPattern.AUTO)

    read_exactly(channel, 10)
    channel.seek(5_000)
    assert read_exactly(channel, 10) == DATA[5_000:5_010]

    assert transport.ranges == [(0, SIZE), (5_000, 5_100)]
    assert transport.handles[0].closed


def test_auto_switches_to_random_on_backward_seek():
    channel, transport = make_channel(AccessPattern.AUTO)

    read_exactly(channel, 30)
    channel.seek(0)
    assert read_exactly(channel, 10) == DATA[:10]

    assert transport.ranges == [(0, SIZE), (0, 100)]


def test_auto_stays_random_after_switch():
    channel, transport = make_channel(AccessPattern.AUTO)

    read_exactly(channel, 10)
    channel.seek(5_000)
    read_exactly(channel, 10)
    channel.seek(8_000)
    read_exactly(channel, 10)
    channel.seek(1_000)
    read_exactly(channel, 10)

    assert transport.ranges == [
        (0, SIZE),
        (5_000, 5_100),
        (8_000, 8_100),
        (1_000, 1_100),
    ]


def test_auto_returns_to_sequential_after_continuations():
    channel, transport = make_channel(
        AccessPattern.AUTO, sequential_range_read_threshold=1
    )

    read_exactly(channel, 10)
    channel.seek(5_000)
    assert read_exactly(channel, 300) == DATA[5_000:5_300]

    assert transport.ranges == [
        (0, SIZE),
        (5_000, 5_300),
    ]

    channel.seek(9_000)
    read_exactly(channel, 50)
    read_exactly(channel, 100)
    read_exactly(channel, 100)
    assert transport.ranges[2:] == [(9_000, 9_100), (9_100, 9_200), (9_200, SIZE)]


def test_capped_range_continues_transparently():
    channel, transport = make_channel(AccessPattern.RANDOM)

    assert read_exactly(channel, 100) == DATA[:100]
    assert read_exactly(channel, 150) == DATA[100:250]

    assert transport.ranges == [(0, 100), (100, 250)]
    assert transport.handles[0].closed
    assert channel.tell() == 250


def test_continuation_within_one_read_call():
    channel, transport = make_channel(AccessPattern.RANDOM)
    channel.seek(50)
    read_exactly(channel, 10)

    # range 50-150 is partially consumed; the rest of this call needs a new one
    assert read_exactly(channel, 200) == DATA[60:260]
    assert transport.ranges == [(50, 150), (150, 260)]


# =============================================================================
# Seeking
# =============================================================================


def test_seek_in_place_reuses_open_range():
    channel, transport = make_channel(AccessPattern.AUTO)

    read_exactly(channel, 10)
    channel.seek(40)
    assert read_exactly(channel, 10) == DATA[40:50]

    assert transport.ranges == [(0, SIZE)]
    assert transport.handles[0].bytes_read == 50


def test_seek_beyond_inplace_limit_opens_new_range():
    channel, transport = make_channel(AccessPattern.SEQUENTIAL)

    read_exactly(channel, 10)
    channel.seek(61)
    assert read_exactly(channel, 10) == DATA[61:71]

    assert transport.ranges == [(0, SIZE), (61, SIZE)]


def test_seek_in_place_larger_than_skip_buffer():
    channel, transport = make_channel(
        AccessPattern.AUTO, inplace_seek_limit=AdaptiveReadChannel.SKIP_BUFFER_SIZE * 2
    )

    read_exactly(channel, 10)
    target = 10 + AdaptiveReadChannel.SKIP_BUFFER_SIZE + 5
    channel.seek(target)
    assert read_exactly(channel, 10) == DATA[target : target + 10]
    assert len(transport.handles) == 1


def test_seek_to_same_position_is_noop():
    channel, transport = make_channel()

    read_exactly(channel, 10)
    consumed = transport.handles[0].bytes_read
    assert channel.seek(10) == 10
    assert channel.seek(0, 1) == 10

    assert transport.handles[0].bytes_read == consumed
    assert read_exactly(channel, 10) == DATA[10:20]
    assert len(transport.handles) == 1


def test_seek_is_lazy():
    channel, transport = make_channel()

    channel.seek(100)
    channel.seek(5_000)

    assert transport.handles == []
    assert channel.tell() == 5_000


def test_seek_whence():
    channel, _ = make_channel()

    assert channel.seek(100) == 100
    assert channel.seek(-50, 1) == 50
    assert channel.seek(-10, 2) == SIZE - 10
    assert channel.read() == DATA[-10:]


@pytest.mark.parametrize("position", [-1, SIZE + 1])
def test_seek_out_of_bounds_raises(position):
    channel, _ = make_channel()
    channel.seek(10)

    with pytest.raises(InvalidPositionError):
        channel.seek(position)
    assert channel.tell() == 10


def test_seek_invalid_whence_raises():
    channel, _ = make_channel()

    with pytest.raises(ValueError, match="whence"):
        channel.seek(0, 3)


# =============================================================================
# Errors
# =============================================================================


def test_unexpected_end_of_stream_raises():
    channel, transport = make_channel(AccessPattern.SEQUENTIAL, eof_at=50)

    with pytest.raises(UnexpectedEndOfStreamError):
        channel.readinto(bytearray(100))

    assert transport.handles[0].closed
    assert not channel.closed
    assert channel.tell() == 0


def test_transport_open_failure_is_wrapped():
    channel, transport = make_channel(fail_open=True)

    with pytest.raises(TransportOpenError) as excinfo:
        channel.readinto(bytearray(10))

    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert isinstance(excinfo.value, ReadChannelError)
    assert transport.handles == []
    assert not channel.closed


def test_pin_failure_closes_handle():
    channel, transport = make_channel(fail_pin=True)

    with pytest.raises(TransportOpenError):
        channel.readinto(bytearray(10))

    assert transport.handles[0].closed


def test_read_error_closes_range():
    channel, transport = make_channel(script={0: {"fail_read_at": 30}})

    with pytest.raises(OSError, match="connection reset"):
        channel.readinto(bytearray(100))

    assert transport.handles[0].closed
    assert channel.tell() == 0

    # retry from the same position with a fresh range
    assert read_exactly(channel, 100) == DATA[:100]
    assert len(transport.handles) == 2


def test_skip_in_place_eof_closes_range():
    channel, transport = make_channel(script={0: {"eof_at": 20}})

    read_exactly(channel, 10)
    channel.seek(40)
    assert read_exactly(channel, 10) == DATA[40:50]

    assert transport.handles[0].closed
    assert transport.ranges == [(0, SIZE), (40, SIZE)]


def test_skip_in_place_error_closes_range():
    channel, transport = make_channel(script={0: {"fail_read_at": 20}})

    read_exactly(channel, 10)
    channel.seek(40)
    with pytest.raises(OSError):
        channel.readinto(bytearray(10))

    assert transport.handles[0].closed
    assert channel.tell() == 40
    assert read_exactly(channel, 10) == DATA[40:50]


def test_skip_in_place_success_updates_physical_position():
    channel, transport = make_channel()

    read_exactly(channel, 10)
    channel.seek(30)
    read_exactly(channel, 5)

    assert transport.handles[0].position == 35
    assert channel.tell() == 35


# =============================================================================
# Lifecycle
# =============================================================================


def test_is_open_until_closed():
    channel, _ = make_channel()

    assert not channel.closed
    channel.close()
    assert channel.closed


def test_close_closes_open_range():
    channel, transport = make_channel()
    read_exactly(channel, 10)

    channel.close()

    assert transport.handles[0].closed


def test_close_is_idempotent():
    channel, _ = make_channel()

    channel.close()
    channel.close()

    assert channel.closed


def test_close_failure_is_logged_and_ignored(caplog):
    channel, _ = make_channel(fail_close=True)
    read_exactly(channel, 10)

    with caplog.at_level(logging.DEBUG, logger="obspec_adaptive"):
        channel.close()

    assert channel.closed
    assert "ignoring it" in caplog.text


@pytest.mark.parametrize(
    "operation",
    [
        lambda c: c.readinto(bytearray(10)),
        lambda c: c.read(10),
        lambda c: c.seek(0),
        lambda c: c.tell(),
    ],
)
def test_operations_on_closed_channel_raise(operation):
    channel, _ = make_channel()
    channel.close()

    with pytest.raises(ClosedChannelError):
        operation(channel)


def test_context_manager_closes():
    channel, transport = make_channel()

    with channel as c:
        assert c.read(5) == DATA[:5]

    assert channel.closed
    assert transport.handles[0].closed


def test_recorder_receives_bytes_read():
    metrics = ReadMetrics()
    channel, _ = make_channel(recorder=metrics)

    read_exactly(channel, 10)
    channel.seek(40)
    read_exactly(channel, 20)
    channel.seek(SIZE)
    channel.readinto(bytearray(10))

    assert metrics.bytes_read == 30
    assert metrics.read_calls == 2


def test_switch_to_random_is_logged(caplog):
    channel, _ = make_channel()
    read_exactly(channel, 10)
    channel.seek(0)

    with caplog.at_level(logging.DEBUG, logger="obspec_adaptive"):
        read_exactly(channel, 10)

    assert "switching to random IO" in caplog.text
