"""Tests for the finalize pipeline and chunk intake."""

import asyncio
import io

import pytest

from uploader.exceptions import (
    ChunksNotFoundError,
    ChunkTooLargeError,
    InvalidIdentifierError,
    InvalidSessionError,
    RemoteBackendError
)
from uploader.orchestrator import UploadOrchestrator
from uploader.session_registry import UploadMetadata

METADATA = UploadMetadata(email='jane@example.com', phone='600 111 222', data_origin='Field survey')
FOLDER = '1700000000-jane_at_example_com-600111222'
NOTE = f'{FOLDER}/descripcion.txt'


@pytest.fixture
def orchestrator(chunk_store, fake_storage, registry):
    return UploadOrchestrator(chunk_store=chunk_store, storage=fake_storage, registry=registry)


async def send_chunks(orchestrator, upload_id, chunks):
    for index, data in enumerate(chunks):
        await orchestrator.store_chunk(upload_id, str(index), io.BytesIO(data), size=len(data))


class TestStoreChunk:
    """Test chunk intake through the orchestrator."""

    @pytest.mark.asyncio
    async def test_stores_chunk(self, orchestrator, scratch_dir):
        await orchestrator.store_chunk('u1', '0', io.BytesIO(b'data'))

        assert (scratch_dir / 'u1' / '0').read_bytes() == b'data'

    @pytest.mark.asyncio
    async def test_rejects_oversized_chunk(self, chunk_store, fake_storage, registry, scratch_dir):
        orchestrator = UploadOrchestrator(chunk_store, fake_storage, registry, max_chunk_size=4)

        with pytest.raises(ChunkTooLargeError):
            await orchestrator.store_chunk('u1', '0', io.BytesIO(b'12345'), size=5)

        assert not scratch_dir.exists()

    @pytest.mark.asyncio
    async def test_concurrent_chunk_writes(self, orchestrator, chunk_store):
        chunks = [bytes([i]) * 1000 for i in range(10)]

        await asyncio.gather(*(
            orchestrator.store_chunk('u1', str(i), io.BytesIO(data))
            for i, data in reversed(list(enumerate(chunks)))
        ))

        assert [c.index for c in chunk_store.list_chunks('u1')] == list(range(10))


class TestOpenSession:
    """Test session registration through the orchestrator."""

    @pytest.mark.asyncio
    async def test_registers(self, orchestrator, registry):
        await orchestrator.open_session('s1', 2, METADATA)

        assert registry.get('s1').expected_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize('session_id, total', [('', 2), ('s1', 0), ('s1', -1)])
    async def test_rejects_malformed(self, orchestrator, registry, session_id, total):
        with pytest.raises(InvalidSessionError):
            await orchestrator.open_session(session_id, total, METADATA)

        assert len(registry) == 0


class TestFinalize:
    """Test the finalize pipeline."""

    @pytest.mark.asyncio
    async def test_single_file_without_session(self, orchestrator, fake_storage, scratch_dir, fixed_time):
        await send_chunks(orchestrator, 'u1', [b'hello ', b'world'])

        result = await orchestrator.finalize('u1', 'greeting.txt', METADATA)

        assert result.folder_name == FOLDER
        assert result.file_name == 'greeting.txt'
        assert result.description_uploaded is True
        assert fake_storage.files[f'{FOLDER}/greeting.txt'] == b'hello world'
        note = fake_storage.files[NOTE].decode('utf-8')
        assert 'Original Filename: greeting.txt' in note
        assert 'Teléfono: 600 111 222' in note
        assert 'Field survey' in note
        assert not (scratch_dir / 'u1').exists()

    @pytest.mark.asyncio
    async def test_pipeline_order(self, orchestrator, fake_storage, fixed_time):
        await send_chunks(orchestrator, 'u1', [b'x'])

        await orchestrator.finalize('u1', 'x.bin', METADATA)

        assert fake_storage.calls == [
            ('ensure_folder', FOLDER),
            ('put_file', f'{FOLDER}/x.bin'),
            ('file_exists', NOTE),
            ('put_file', NOTE),
        ]

    @pytest.mark.asyncio
    async def test_file_name_reduced_to_base_name(self, orchestrator, fake_storage, fixed_time):
        await send_chunks(orchestrator, 'u1', [b'x'])

        result = await orchestrator.finalize('u1', 'C-drive/docs/report.pdf', METADATA)

        assert result.file_name == 'report.pdf'
        assert f'{FOLDER}/report.pdf' in fake_storage.files

    @pytest.mark.asyncio
    async def test_two_file_session_writes_one_note(self, orchestrator, fake_storage, fixed_time):
        await orchestrator.open_session('batch', 2, METADATA)
        await send_chunks(orchestrator, 'f1', [b'first'])
        await send_chunks(orchestrator, 'f2', [b'second'])

        first = await orchestrator.finalize('f1', 'one.txt', METADATA, session_id='batch')
        assert first.description_uploaded is False
        assert NOTE not in fake_storage.files

        second = await orchestrator.finalize('f2', 'two.txt', METADATA, session_id='batch')
        assert second.description_uploaded is True
        assert 'Original Filename: two.txt' in fake_storage.files[NOTE].decode('utf-8')
        assert [c for c in fake_storage.calls if c == ('put_file', NOTE)] == [('put_file', NOTE)]

    @pytest.mark.asyncio
    async def test_concurrent_session_finalizes_write_one_note(self, orchestrator, fake_storage, fixed_time):
        total = 6
        await orchestrator.open_session('batch', total, METADATA)
        for i in range(total):
            await send_chunks(orchestrator, f'f{i}', [f'file {i}'.encode()])

        results = await asyncio.gather(*(
            orchestrator.finalize(f'f{i}', f'file{i}.txt', METADATA, session_id='batch')
            for i in range(total)
        ))

        assert sum(r.description_uploaded for r in results) == 1
        assert sum(1 for c in fake_storage.calls if c == ('put_file', NOTE)) == 1

    @pytest.mark.asyncio
    async def test_unknown_session_writes_note(self, orchestrator, fake_storage, fixed_time):
        await send_chunks(orchestrator, 'u1', [b'x'])

        result = await orchestrator.finalize('u1', 'x.bin', METADATA, session_id='ghost')

        assert result.description_uploaded is True
        assert NOTE in fake_storage.files

    @pytest.mark.asyncio
    async def test_existing_note_is_not_overwritten(self, orchestrator, fake_storage, fixed_time):
        fake_storage.files[NOTE] = b'earlier note'
        await send_chunks(orchestrator, 'u1', [b'x'])

        result = await orchestrator.finalize('u1', 'x.bin', METADATA)

        assert result.description_uploaded is False
        assert fake_storage.files[NOTE] == b'earlier note'
        assert ('put_file', NOTE) not in fake_storage.calls

    @pytest.mark.asyncio
    @pytest.mark.parametrize('upload_id', ['../u1', '/tmp/u1', '..', ''])
    async def test_invalid_upload_id(self, orchestrator, fake_storage, upload_id):
        with pytest.raises(InvalidIdentifierError):
            await orchestrator.finalize(upload_id, 'x.bin', METADATA)

        assert fake_storage.calls == []

    @pytest.mark.asyncio
    async def test_invalid_file_name(self, orchestrator, fake_storage, scratch_dir):
        await send_chunks(orchestrator, 'u1', [b'x'])

        with pytest.raises(InvalidIdentifierError):
            await orchestrator.finalize('u1', '../../etc/passwd', METADATA)

        assert fake_storage.calls == []
        assert not (scratch_dir / 'u1').exists()

    @pytest.mark.asyncio
    async def test_folder_failure_purges_chunks(self, orchestrator, fake_storage, scratch_dir):
        fake_storage.fail_ensure_folder = True
        await send_chunks(orchestrator, 'u1', [b'x'])

        with pytest.raises(RemoteBackendError):
            await orchestrator.finalize('u1', 'x.bin', METADATA)

        assert not (scratch_dir / 'u1').exists()
        assert [name for name, _ in fake_storage.calls] == ['ensure_folder']

    @pytest.mark.asyncio
    async def test_missing_chunks(self, orchestrator, fake_storage):
        with pytest.raises(ChunksNotFoundError):
            await orchestrator.finalize('never-sent', 'x.bin', METADATA)

        assert [name for name, _ in fake_storage.calls] == ['ensure_folder']

    @pytest.mark.asyncio
    async def test_file_upload_failure_purges_and_skips_session(
        self, orchestrator, fake_storage, registry, scratch_dir
    ):
        await orchestrator.open_session('batch', 1, METADATA)
        fake_storage.fail_put_for.add('x.bin')
        await send_chunks(orchestrator, 'u1', [b'x'])

        with pytest.raises(RemoteBackendError):
            await orchestrator.finalize('u1', 'x.bin', METADATA, session_id='batch')

        assert not (scratch_dir / 'u1').exists()
        assert registry.get('batch').completed_count == 0

    @pytest.mark.asyncio
    async def test_note_failure_keeps_uploaded_file(self, orchestrator, fake_storage, fixed_time):
        fake_storage.fail_put_for.add('descripcion.txt')
        await send_chunks(orchestrator, 'u1', [b'payload'])

        with pytest.raises(RemoteBackendError):
            await orchestrator.finalize('u1', 'x.bin', METADATA)

        assert fake_storage.files[f'{FOLDER}/x.bin'] == b'payload'
        assert [c for c in fake_storage.calls if c[0] == 'put_file'] == [
            ('put_file', f'{FOLDER}/x.bin'),
            ('put_file', NOTE),
        ]
