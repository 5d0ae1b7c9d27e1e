"""Tests for the upload pipeline and its publish window."""

import pytest

from jsxfer.errors import PublishError, SourceFileError, StreamExistsError
from jsxfer.file import CHUNK_SIZE
from jsxfer.transfer import FileUploader, PublishWindow, upload

from fakes import FakeBroker


class ExplodingBroker(FakeBroker):
    """Raises a non-transfer exception from publish."""

    async def publish(self, subject, payload):
        raise RuntimeError("socket closed")


class ReorderingBroker(FakeBroker):
    """Acknowledges every chunk with the wrong sequence."""

    async def publish(self, subject, payload):
        return await super().publish(subject, payload) + 1


@pytest.mark.asyncio
async def test_upload_stores_chunks_in_order(broker, config, make_file):
    path = make_file('video.mp4', CHUNK_SIZE * 3 + 17)

    session = await FileUploader(broker, config).upload(path)

    stream = broker.streams['video_mp4']
    assert b''.join(stream.messages) == path.read_bytes()
    assert [len(m) for m in stream.messages] == [CHUNK_SIZE, CHUNK_SIZE, CHUNK_SIZE, 17]
    assert session.bytes_transferred == path.stat().st_size
    assert session.chunks == 4
    assert session.end_time is not None


@pytest.mark.asyncio
async def test_upload_uses_fresh_inbox_subject(broker, config, make_file):
    first = make_file('a.txt', 10)
    second = make_file('b.txt', 10)

    await upload(broker, first, config)
    await upload(broker, second, config)

    subjects_a = broker.streams['a_txt'].subjects
    subjects_b = broker.streams['b_txt'].subjects
    assert len(subjects_a) == 1
    assert subjects_a[0].startswith('_INBOX.')
    assert subjects_a != subjects_b


@pytest.mark.asyncio
async def test_upload_empty_file_creates_empty_stream(broker, config, make_file):
    path = make_file('empty', 0)

    session = await upload(broker, path, config)

    assert broker.streams['empty'].messages == []
    assert session.bytes_transferred == 0
    assert broker.publish_calls == 0


@pytest.mark.asyncio
async def test_upload_refuses_existing_stream(broker, config, make_file):
    broker.add_stream('data_bin', [b'original'])
    path = make_file('data.bin', 1000)

    with pytest.raises(StreamExistsError):
        await upload(broker, path, config)

    assert broker.streams['data_bin'].messages == [b'original']
    assert broker.publish_calls == 0


@pytest.mark.asyncio
async def test_upload_missing_file_touches_nothing(broker, config, tmp_path):
    with pytest.raises(SourceFileError):
        await upload(broker, tmp_path / 'missing.bin', config)

    assert broker.streams == {}


@pytest.mark.asyncio
async def test_upload_never_exceeds_window(config, make_file):
    broker = FakeBroker(publish_delay=20)
    path = make_file('big.bin', CHUNK_SIZE * 40)

    await upload(broker, path, config)

    assert 1 <= broker.max_in_flight <= 8
    assert len(broker.streams['big_bin'].messages) == 40


@pytest.mark.asyncio
async def test_upload_aborts_on_publish_failure(config, make_file):
    broker = FakeBroker(fail_publish_at=5)
    path = make_file('doomed.bin', CHUNK_SIZE * 64)
    progress = []

    with pytest.raises(PublishError):
        await upload(broker, path, config, progress_callback=lambda s: progress.append(s.chunks))

    # Stopped reading well before the end; stream left for external cleanup
    assert broker.publish_calls < 64
    assert 'doomed_bin' in broker.streams
    assert broker.in_flight == 0


@pytest.mark.asyncio
async def test_upload_reports_progress(broker, config, make_file):
    path = make_file('p.bin', CHUNK_SIZE * 2 + 1)
    seen = []

    await upload(broker, path, config, progress_callback=lambda s: seen.append(s.bytes_transferred))

    assert seen == [CHUNK_SIZE, CHUNK_SIZE * 2, CHUNK_SIZE * 2 + 1]


@pytest.mark.asyncio
async def test_uploader_stats(broker, config, make_file):
    uploader = FileUploader(broker, config)

    await uploader.upload(make_file('x', 5))
    await uploader.upload(make_file('y', 7))

    assert uploader.get_stats() == {'files_uploaded': 2, 'total_bytes': 12}


@pytest.mark.asyncio
async def test_window_fills_to_max_pending():
    broker = FakeBroker(publish_delay=50)
    await broker.create_stream('s', ['subj'])
    window = PublishWindow(broker, 'subj', max_pending=8)

    for i in range(20):
        await window.submit(bytes([i]))
        assert window.in_flight <= 8
    await window.drain()

    assert window.max_in_flight == 8
    assert broker.max_in_flight == 8
    assert window.acked == 20
    assert broker.streams['s'].messages == [bytes([i]) for i in range(20)]


@pytest.mark.asyncio
async def test_window_respects_smaller_limit():
    broker = FakeBroker(publish_delay=10)
    await broker.create_stream('s', ['subj'])
    window = PublishWindow(broker, 'subj', max_pending=3)

    for i in range(10):
        await window.submit(b'x')
    await window.drain()

    assert broker.max_in_flight == 3


@pytest.mark.asyncio
async def test_window_first_error_wins():
    broker = FakeBroker(publish_delay=5, fail_publish_at=2)
    await broker.create_stream('s', ['subj'])
    window = PublishWindow(broker, 'subj', max_pending=4)

    with pytest.raises(PublishError, match='chunk 2'):
        for i in range(50):
            await window.submit(b'x')
        await window.drain()
    await window.cancel()

    assert window.failed
    assert broker.publish_calls < 50


@pytest.mark.asyncio
async def test_window_wraps_unexpected_errors():
    broker = ExplodingBroker()
    await broker.create_stream('s', ['subj'])
    window = PublishWindow(broker, 'subj')

    await window.submit(b'x')
    with pytest.raises(PublishError, match='socket closed'):
        await window.drain()


@pytest.mark.asyncio
async def test_window_detects_out_of_order_storage():
    broker = ReorderingBroker()
    await broker.create_stream('s', ['subj'])
    window = PublishWindow(broker, 'subj')

    await window.submit(b'x')
    with pytest.raises(PublishError, match='out of order'):
        await window.drain()


def test_window_rejects_empty_window(broker):
    with pytest.raises(ValueError):
        PublishWindow(broker, 'subj', max_pending=0)
