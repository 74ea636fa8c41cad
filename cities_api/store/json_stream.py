"""Incremental decoder for a top-level JSON array.

Text is fed in arbitrary chunks and complete array elements are handed back as
soon as they are fully available, so only the element currently being decoded
has to be buffered.
"""

import json
from typing import Any

from cities_api.errors import StoreFormatError

_WHITESPACE = " \t\n\r"
_DELIMITERS = ",]" + _WHITESPACE
_VALUE_START = "{[\"-0123456789tfnNI"
DEFAULT_MAX_ELEMENT_SIZE = 1024 * 1024


class JSONArrayDecoder:
    """Pull elements out of a JSON array one chunk of text at a time.

    An element still incomplete after `max_element_size` characters is
    treated as malformed rather than buffered further.
    """

    def __init__(self, max_element_size: int = DEFAULT_MAX_ELEMENT_SIZE):
        self.max_element_size = max_element_size
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._state = "start"

    @property
    def finished(self) -> bool:
        return self._state == "end"

    def feed(self, text: str) -> list[Any]:
        """Add text and return every element completed by it.

        Args:
            text: Next chunk of the document.

        Returns:
            Decoded elements, in document order.

        Raises:
            StoreFormatError: If the text cannot be part of a JSON array.
        """
        self._buffer += text
        return self._drain(final=False)

    def close(self) -> list[Any]:
        """Signal end of input and return any element still held back.

        Raises:
            StoreFormatError: If the document is incomplete.
        """
        items = self._drain(final=True)
        if self._state != "end":
            raise StoreFormatError("Unexpected end of JSON array")
        return items

    def _drain(self, final: bool) -> list[Any]:
        items = []
        pos = 0
        buffer = self._buffer
        while True:
            pos = _skip_whitespace(buffer, pos)
            if pos == len(buffer):
                break
            char = buffer[pos]

            if self._state == "start":
                if char != "[":
                    raise StoreFormatError(f"Expected '[' at document start, got {char!r}")
                pos += 1
                self._state = "first"
            elif self._state == "first" and char == "]":
                pos += 1
                self._state = "end"
            elif self._state in ("first", "value"):
                if char not in _VALUE_START:
                    raise StoreFormatError(f"Expected a JSON value, got {char!r}")
                try:
                    item, end = self._decoder.raw_decode(buffer, pos)
                except json.JSONDecodeError as exc:
                    if final:
                        raise StoreFormatError(f"Invalid JSON element: {exc}") from exc
                    break
                # A number is only complete once a delimiter follows it.
                if not final and _is_number(item) and not _is_delimited(buffer, end):
                    break
                items.append(item)
                pos = end
                self._state = "separator"
            elif self._state == "separator":
                if char == ",":
                    self._state = "value"
                elif char == "]":
                    self._state = "end"
                else:
                    raise StoreFormatError(f"Expected ',' or ']', got {char!r}")
                pos += 1
            else:
                raise StoreFormatError(f"Unexpected data after JSON array: {char!r}")

        self._buffer = buffer[pos:]
        if self._state in ("first", "value") and len(self._buffer) > self.max_element_size:
            raise StoreFormatError(
                f"JSON element exceeds {self.max_element_size} characters without completing"
            )
        return items


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_delimited(text: str, end: int) -> bool:
    return end < len(text) and text[end] in _DELIMITERS


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos
