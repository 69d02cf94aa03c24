"""
Upload normalisation for the cover-letter endpoints.

A request carries its file in one of three encodings, picked solely from the
declared Content-Type (parameters such as ``charset`` are ignored):

  multipart/form-data       form field ``file``; name from the uploaded file
  application/octet-stream  raw body; name from the ``filename`` query param
  application/json          ``{"filename": ..., "data": <base64>}``

Whatever the encoding, the decoded bytes are handed to ``LocalUploadStorage``
and the response echoes the stored name, byte size and path.
"""

import base64
import binascii
import json
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from resume_service.errors import (
    InternalError,
    PayloadTooLarge,
    ServiceError,
    UnsupportedMediaType,
    ValidationError,
)
from resume_service.logger import get_logger
from resume_service.models import UploadResponse
from resume_service.storage import LocalUploadStorage

logger = get_logger(__name__)

MULTIPART = "multipart/form-data"
OCTET_STREAM = "application/octet-stream"
JSON = "application/json"

CHUNK_SIZE = 1024 * 1024
MULTIPART_OVERHEAD_BYTES = 64 * 1024

_ENCODING_LABELS = {
    MULTIPART: "multipart",
    OCTET_STREAM: "octet-stream",
    JSON: "base64 JSON",
}


@dataclass(frozen=True)
class UploadEndpoint:
    accepted: tuple[str, ...]
    default_prefix: str
    message_prefix: str

    def unsupported_message(self) -> str:
        names = [f"{name} with base64 data" if name == JSON else name for name in self.accepted]
        if len(names) > 2:
            listed = ", ".join(names[:-1]) + f", or {names[-1]}"
        else:
            listed = " or ".join(names)
        return f"Unsupported Content-Type. Use {listed}."


COVERLETTER_UPLOAD = UploadEndpoint(
    accepted=(MULTIPART, OCTET_STREAM, JSON),
    default_prefix="upload-",
    message_prefix="Uploaded",
)
COVERLETTER_FILE = UploadEndpoint(
    accepted=(OCTET_STREAM, JSON),
    default_prefix="file-",
    message_prefix="File received",
)


def media_type_of(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


def decode_base64(data: str) -> bytes:
    """Decode standard or URL-safe base64, tolerating whitespace and missing padding."""
    compact = "".join(data.split()).replace("-", "+").replace("_", "/")
    compact += "=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Invalid base64 `data` field", details=str(exc)) from exc


class UploadHandler:
    def __init__(
        self,
        storage: LocalUploadStorage,
        *,
        max_size_bytes: int,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.max_size_bytes = max_size_bytes
        self.clock = clock

    def _timestamp(self) -> int:
        return int(self.clock() * 1000)

    def _too_large(self) -> PayloadTooLarge:
        return PayloadTooLarge(
            "Payload too large",
            details=f"uploads are limited to {self.max_size_bytes} bytes",
        )

    async def _read_body(self, request: Request) -> bytes:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size_bytes:
            raise self._too_large()

        chunks = []
        total = 0
        async for chunk in request.stream():
            total += len(chunk)
            if total > self.max_size_bytes:
                raise self._too_large()
            chunks.append(chunk)
        return b"".join(chunks)

    async def _read_upload(self, upload: UploadFile) -> bytes:
        chunks = []
        total = 0
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > self.max_size_bytes:
                raise self._too_large()
            chunks.append(chunk)
        return b"".join(chunks)

    async def _from_multipart(self, request: Request, endpoint: UploadEndpoint) -> tuple[str, bytes]:
        # Form parsing spools the whole body, so refuse oversized requests up front.
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size_bytes + MULTIPART_OVERHEAD_BYTES:
            raise self._too_large()

        try:
            form = await request.form()
        except Exception as exc:  # noqa: BLE001
            raise ValidationError("Upload error", details=str(exc)) from exc

        try:
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                raise ValidationError("No file uploaded (field name: file)")
            data = await self._read_upload(upload)
            filename = upload.filename or f"{endpoint.default_prefix}{self._timestamp()}"
        finally:
            await form.close()

        if not data:
            raise ValidationError("Empty file upload (field name: file)")
        return filename, data

    async def _from_octet_stream(self, request: Request, endpoint: UploadEndpoint) -> tuple[str, bytes]:
        filename = request.query_params.get("filename") or f"{endpoint.default_prefix}{self._timestamp()}.bin"
        data = await self._read_body(request)
        if not data:
            raise ValidationError("Empty binary body")
        return filename, data

    async def _from_json(self, request: Request, endpoint: UploadEndpoint) -> tuple[str, bytes]:
        raw = await self._read_body(request)
        try:
            body = json.loads(raw) if raw else None
        except ValueError as exc:
            raise ValidationError("Invalid JSON body", details=str(exc)) from exc

        if not isinstance(body, dict) or not isinstance(body.get("data"), str) or not body["data"]:
            raise ValidationError("JSON must include base64 `data` field")

        filename = body.get("filename")
        if filename is not None and not isinstance(filename, str):
            raise ValidationError("`filename` must be a string")

        data = decode_base64(body["data"])
        if not data:
            raise ValidationError("Decoded `data` field is empty")
        return filename or f"{endpoint.default_prefix}{self._timestamp()}", data

    async def store(self, request: Request, endpoint: UploadEndpoint) -> UploadResponse:
        media_type = media_type_of(request)
        if media_type not in endpoint.accepted:
            raise UnsupportedMediaType(endpoint.unsupported_message())

        readers = {
            MULTIPART: self._from_multipart,
            OCTET_STREAM: self._from_octet_stream,
            JSON: self._from_json,
        }
        try:
            filename, data = await readers[media_type](request, endpoint)
            path, size = await run_in_threadpool(self.storage.save_bytes, filename, data)
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Upload to %s failed", request.url.path)
            raise InternalError("Server error", details=str(exc)) from exc

        logger.info("Stored %s (%d bytes) via %s", path.name, size, _ENCODING_LABELS[media_type])
        return UploadResponse(
            message=f"{endpoint.message_prefix} ({_ENCODING_LABELS[media_type]})",
            filename=filename,
            size=size,
            path=str(path),
        )
