"""File-backed, read-only store of city records."""

import os
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing
from pathlib import Path

import anyio

from cities_api.errors import StoreError, StoreFormatError
from cities_api.logging_config import logger
from cities_api.store.json_stream import DEFAULT_MAX_ELEMENT_SIZE, JSONArrayDecoder
from cities_api.store.query import Predicate, where

DEFAULT_CHUNK_SIZE = 64 * 1024


class FileBasedStore:
    """Stream records out of a JSON array file and filter them on the fly."""

    def __init__(
        self,
        path: str | Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_record_size: int = DEFAULT_MAX_ELEMENT_SIZE,
    ):
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.max_record_size = max_record_size

    def is_available(self) -> bool:
        """Return True when the backing file exists and is readable."""
        return self.path.is_file() and os.access(self.path, os.R_OK)

    async def iter_records(self) -> AsyncIterator[dict]:
        """Yield every record of the backing file in file order.

        Single pass; call again to rescan. The blocking file reads run on
        anyio's worker threads, decoding and filtering stay on the event loop.

        Raises:
            StoreError: If the file cannot be read.
            StoreFormatError: If the file is not a JSON array.
        """
        decoder = JSONArrayDecoder(max_element_size=self.max_record_size)
        try:
            async with await anyio.open_file(self.path, "r", encoding="utf-8") as fh:
                while chunk := await fh.read(self.chunk_size):
                    for record in decoder.feed(chunk):
                        yield record
        except StoreFormatError as exc:
            logger.error("STORE_PARSE_FAILED", path=str(self.path), error=str(exc))
            raise
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("STORE_READ_FAILED", path=str(self.path), error=str(exc))
            raise StoreError(f"Could not read {self.path}") from exc

        try:
            for record in decoder.close():
                yield record
        except StoreFormatError as exc:
            logger.error("STORE_PARSE_FAILED", path=str(self.path), error=str(exc))
            raise

    async def filter(self, predicate: Predicate) -> list[dict]:
        """Return the records matching `predicate`, in file order.

        Args:
            predicate: Function called with each parsed record.

        Returns:
            Matching records.
        """
        return [record async for record in self.iter_records() if predicate(record)]

    async def find(self, guid: str) -> dict | None:
        """Return the first record with the given guid, or None."""
        matches = where({"guid": {"equals": guid}})
        async with aclosing(self.iter_records()) as records:
            async for record in records:
                if matches(record):
                    return record
        return None

    async def find_many(self, guids: Iterable[str]) -> dict[str, dict]:
        """Look up several records in one scan, keyed by guid.

        Unknown ids are simply absent from the result. The first record wins
        if the file repeats a guid.
        """
        wanted = list(guids)
        found = {}
        for record in await self.filter(where({"guid": {"in": wanted}})):
            found.setdefault(record["guid"], record)
        return found

    async def open_stream(self) -> AsyncIterator[bytes]:
        """Yield the raw bytes of the backing file chunk by chunk."""
        try:
            async with await anyio.open_file(self.path, "rb") as fh:
                while chunk := await fh.read(self.chunk_size):
                    yield chunk
        except OSError as exc:
            logger.error("STORE_READ_FAILED", path=str(self.path), error=str(exc))
            raise StoreError(f"Could not read {self.path}") from exc
