"""
Chunked transfer of one object using the destination's multipart upload protocol.

The source body is read as a forward-only stream and cut into fixed-size
parts. Each part is handed to a worker pool as soon as it is cut, so reading
never waits on the network round trip of earlier parts. Part numbers follow
read order; the completion manifest is built from part numbers, never from
the order in which uploads finish.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from config import DEFAULT_PART_UPLOAD_WORKERS, MAX_PARTS, MIN_CHUNK_SIZE
from migration_errors import MultipartUploadError
from migration_utils import format_size
from storage_gateway import ObjectStream


@dataclass(frozen=True)
class Part:
    """A part accepted by the destination."""

    part_number: int
    etag: str
    size: int


@dataclass
class UploadSession:
    """State of one multipart upload, owned by a single transfer."""

    bucket: str
    key: str
    upload_id: str
    parts: list[Part] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(part.size for part in self.parts)

    def manifest(self) -> list[dict]:
        """
        Return the completion manifest ordered by part number.

        Raises:
            ValueError: If part numbers are not contiguous from 1
        """
        ordered = sorted(self.parts, key=lambda part: part.part_number)
        numbers = [part.part_number for part in ordered]
        if numbers != list(range(1, len(ordered) + 1)):
            raise ValueError(f"Parts for {self.bucket}/{self.key} are not contiguous: {numbers}")
        return [{"PartNumber": part.part_number, "ETag": part.etag} for part in ordered]


def iter_parts(chunks: Iterable[bytes], chunk_size: int) -> Iterator[tuple[int, bytes]]:
    """
    Re-cut a byte stream into numbered parts of exactly chunk_size bytes.

    The final part carries whatever remains and may be shorter. An empty
    stream yields nothing.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive (got {chunk_size})")
    buffer = bytearray()
    part_number = 0
    for chunk in chunks:
        buffer.extend(chunk)
        while len(buffer) >= chunk_size:
            part_number += 1
            yield part_number, bytes(buffer[:chunk_size])
            del buffer[:chunk_size]
    if buffer:
        part_number += 1
        yield part_number, bytes(buffer)


class MultipartTransfer:
    """Drives initiate, upload parts and complete for one object at a time."""

    def __init__(
        self,
        dest,
        chunk_size: int = MIN_CHUNK_SIZE,
        max_workers: int = DEFAULT_PART_UPLOAD_WORKERS,
        abort_on_failure: bool = False,
    ):
        self.dest = dest
        self.chunk_size = chunk_size
        self.max_workers = max_workers
        self.abort_on_failure = abort_on_failure

    def part_size_for(self, content_length: int) -> int:
        """Configured chunk size, grown when needed to stay within MAX_PARTS parts."""
        return max(self.chunk_size, math.ceil(content_length / MAX_PARTS))

    @property
    def max_in_flight(self) -> int:
        """Parts buffered in memory before the read loop waits for a worker."""
        return self.max_workers * 2

    def transfer(self, bucket: str, key: str, stream: ObjectStream) -> UploadSession:
        """
        Upload the stream to bucket/key and complete the upload.

        Raises:
            MultipartUploadError: If any part upload or the completion fails
        """
        try:
            upload_id = self.dest.create_multipart_upload(bucket, key)
        except Exception:
            stream.close()
            raise
        session = UploadSession(bucket=bucket, key=key, upload_id=upload_id)
        logging.info("Started multipart upload %s for %s/%s", upload_id, bucket, key)
        part_size = self.part_size_for(stream.content_length)
        if part_size != self.chunk_size:
            logging.info(
                "Using %s parts for %s/%s to stay within %d parts", format_size(part_size), bucket, key, MAX_PARTS
            )
        try:
            session.parts = self._upload_parts(session, stream.chunks, part_size)
            if session.total_bytes != stream.content_length:
                raise ValueError(
                    f"uploaded {session.total_bytes} bytes but source reported {stream.content_length}"
                )
            self.dest.complete_multipart_upload(bucket, key, upload_id, session.manifest())
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logging.error("Multipart upload %s for %s/%s failed: %s", upload_id, bucket, key, exc)
            if self.abort_on_failure:
                self._abort(session)
            raise MultipartUploadError(bucket, key, upload_id, str(exc)) from exc
        finally:
            stream.close()
        logging.info(
            "Completed multipart upload for %s/%s: %d part(s), %s",
            bucket,
            key,
            len(session.parts),
            format_size(session.total_bytes),
        )
        return session

    def _upload_parts(self, session: UploadSession, chunks: Iterable[bytes], part_size: int) -> list[Part]:
        """Dispatch every part to the worker pool and join on all of them."""
        in_flight = threading.BoundedSemaphore(self.max_in_flight)
        failed = threading.Event()
        futures: list[Future] = []

        def _on_done(future: Future) -> None:
            if not future.cancelled() and future.exception() is not None:
                failed.set()
            in_flight.release()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="part-upload") as executor:
            parts = iter_parts(chunks, part_size)
            # An empty body still needs one part to complete the upload
            first = next(parts, (1, b""))
            for part_number, payload in itertools.chain([first], parts):
                in_flight.acquire()  # pylint: disable=consider-using-with
                if failed.is_set():
                    in_flight.release()
                    break
                future = executor.submit(self._upload_part, session, part_number, payload)
                future.add_done_callback(_on_done)
                futures.append(future)
            if failed.is_set():
                for future in futures:
                    future.cancel()

        errors = [f.exception() for f in futures if not f.cancelled() and f.exception() is not None]
        if errors:
            raise errors[0]
        return [future.result() for future in futures]

    def _upload_part(self, session: UploadSession, part_number: int, payload: bytes) -> Part:
        etag = self.dest.upload_part(session.bucket, session.key, session.upload_id, part_number, payload)
        logging.debug(
            "Uploaded part %d of %s/%s (%s)", part_number, session.bucket, session.key, format_size(len(payload))
        )
        return Part(part_number=part_number, etag=etag, size=len(payload))

    def _abort(self, session: UploadSession) -> None:
        try:
            self.dest.abort_multipart_upload(session.bucket, session.key, session.upload_id)
        except Exception as abort_exc:  # pylint: disable=broad-exception-caught
            logging.error("Could not abort multipart upload %s: %s", session.upload_id, abort_exc)
            return
        logging.info("Aborted multipart upload %s for %s/%s", session.upload_id, session.bucket, session.key)


__all__ = ["MultipartTransfer", "Part", "UploadSession", "iter_parts"]
