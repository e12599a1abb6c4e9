"""
JSON encoder/decoder for the relay wire format.

Every message is one JSON object on one line. A single WebSocket text frame
may carry several lines; split_lines() yields them one at a time.
"""

import json
from collections.abc import Iterator
from typing import Any


class DecodeError(Exception):
    """Error raised when a line is not a valid JSON object."""


# Size limits to prevent resource exhaustion from malicious payloads.
MAX_FRAME_LEN = 16 * 1024  # 16KB per frame
MAX_LINE_LEN = 4 * 1024  # 4KB per message; a FEN is under 100 characters


def encode(data: dict[str, Any]) -> str:
    """
    Encode a dict as a single line of compact JSON.
    """
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def decode(line: str) -> dict[str, Any]:
    """
    Decode one line of JSON into a dict.

    Raises DecodeError if the line is invalid, not an object, or too long.
    """
    if len(line) > MAX_LINE_LEN:
        raise DecodeError(f"message too large: {len(line)} characters (max {MAX_LINE_LEN})")
    try:
        result = json.loads(line)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"failed to decode JSON message: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected object, got {type(result).__name__}")

    return result


def split_lines(frame: str) -> Iterator[str]:
    """
    Yield the non-blank lines of a frame.

    Raises DecodeError before yielding anything if the frame is too large.
    """
    if len(frame) > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {len(frame)} characters (max {MAX_FRAME_LEN})")
    for line in frame.splitlines():
        if line.strip():
            yield line
