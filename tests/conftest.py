import io
import json
import struct
import threading
import zlib
from collections.abc import Generator

import pytest
from PIL import Image

from metadata_pipeline.exceptions import QueueSendError, StoreError, StoreErrorKind
from metadata_pipeline.handlers import ingest as ingest_handler
from metadata_pipeline.handlers import process as process_handler


class InMemoryObjectStore:
    """Thread-safe ObjectStore with call recording and fault injection."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.puts: list[tuple[str, str, bytes]] = []
        # (operation, key) -> kind of StoreError to raise
        self.failures: dict[tuple[str, str], StoreErrorKind] = {}
        self.exists_barrier: threading.Barrier | None = None
        self._lock = threading.Lock()

    def add(self, bucket: str, key: str, content: bytes, content_type: str = "image/png") -> None:
        self.objects[(bucket, key)] = (content, content_type)

    def fail(self, operation: str, key: str, kind: StoreErrorKind = StoreErrorKind.TRANSIENT) -> None:
        self.failures[(operation, key)] = kind

    def _record(self, operation: str, bucket: str, key: str) -> None:
        with self._lock:
            self.calls.append((operation, bucket, key))
        kind = self.failures.get((operation, key))
        if kind is not None:
            raise StoreError(kind, operation=operation, bucket=bucket, key=key, detail="injected")

    def fetch(self, bucket: str, key: str) -> tuple[bytes, int]:
        self._record("fetch", bucket, key)
        with self._lock:
            if (bucket, key) not in self.objects:
                raise StoreError(StoreErrorKind.NOT_FOUND, operation="fetch", bucket=bucket, key=key)
            content, _ = self.objects[(bucket, key)]
        return content, len(content)

    def exists(self, bucket: str, key: str) -> bool:
        self._record("exists", bucket, key)
        with self._lock:
            found = (bucket, key) in self.objects
        if self.exists_barrier is not None:
            self.exists_barrier.wait(timeout=5)
        return found

    def put(self, bucket: str, key: str, content: bytes, content_type: str) -> None:
        self._record("put", bucket, key)
        with self._lock:
            self.objects[(bucket, key)] = (content, content_type)
            self.puts.append((bucket, key, content))


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 3)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 10, 10)).save(buf, format=fmt)
    return buf.getvalue()


def sqs_record(message_id: str, bucket: str, key: str, etag: str | None = "abc123") -> dict:
    body = {"bucket": bucket, "key": key}
    if etag is not None:
        body["etag"] = etag
    return {"messageId": message_id, "body": json.dumps(body), "eventSource": "aws:sqs"}


def s3_record(bucket: str, key: str, etag: str = "abc123") -> dict:
    return {
        "eventSource": "aws:s3",
        "s3": {"bucket": {"name": bucket}, "object": {"key": key, "eTag": etag}},
    }


class RecordingQueue:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.sent = []
        self.fail_on = fail_on or set()

    def send(self, message) -> str:
        if message.key in self.fail_on:
            raise QueueSendError("https://sqs.test/queue", message.key, "injected")
        self.sent.append(message)
        return f"msg-{len(self.sent)}"


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def png() -> bytes:
    return image_bytes("PNG", (640, 480))


@pytest.fixture
def jpeg() -> bytes:
    return image_bytes("JPEG", (1024, 768))


@pytest.fixture(autouse=True)
def reset_handlers() -> Generator[None, None, None]:
    yield
    ingest_handler.reset()
    process_handler.reset()


def large_png(width: int = 20000, height: int = 10000) -> bytes:
    """A valid 1-bit greyscale PNG, written row by row without building the image in memory."""
    def chunk(tag: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data))

    row = b"\x00" + b"\x00" * ((width + 7) // 8)
    compressor = zlib.compressobj()
    idat = b"".join(compressor.compress(row) for _ in range(height)) + compressor.flush()
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0))
        + chunk(b"IDAT", idat)
        + chunk(b"IEND", b"")
    )
