"""Helpers for multipart uploads: size checks and reading into memory."""

from __future__ import annotations

from os import SEEK_END

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from caseportal.services.storage_service import IncomingFile


MULTIPART_OVERHEAD_BYTES = 64 * 1024
MAX_FILES_PER_REQUEST = 10


def content_length_exceeds_limit(
    content_length_header: str | None,
    *,
    max_size_bytes: int,
    overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
) -> bool:
    """Return True when Content-Length clearly exceeds the allowed request size."""
    if not content_length_header:
        return False
    try:
        content_length = int(content_length_header)
    except (TypeError, ValueError):
        return False
    return content_length > (max_size_bytes + overhead_bytes)


async def get_upload_file_size(file: UploadFile) -> int:
    """Read size from the underlying file object without loading into memory."""

    def _get_size() -> int:
        stream = file.file
        original_pos = stream.tell()
        try:
            stream.seek(0, SEEK_END)
            return stream.tell()
        finally:
            stream.seek(original_pos)

    return await run_in_threadpool(_get_size)


async def read_uploads(
    files: list[UploadFile],
    *,
    max_file_bytes: int,
) -> tuple[list[IncomingFile], list[str]]:
    """
    Read uploaded files into memory.

    Files larger than max_file_bytes are not read; their names are returned
    as skipped.
    """
    incoming: list[IncomingFile] = []
    skipped: list[str] = []
    for upload in files:
        filename = upload.filename or "upload"
        if await get_upload_file_size(upload) > max_file_bytes:
            skipped.append(filename)
            continue
        data = await upload.read()
        incoming.append(
            IncomingFile(
                filename=filename,
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            )
        )
    return incoming, skipped
