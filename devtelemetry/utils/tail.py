# devtelemetry/utils/tail.py
"""
Read the last N lines of a log file without reading the whole file.

The file is read backward from EOF in fixed-size chunks. Each chunk is
prepended to the carry-over fragment of the previous one, split on newlines,
and the complete lines are scanned closest-to-EOF first until enough matching
lines are collected or the start of the file is reached.

Work happens on bytes and each line is decoded on its own, so a multi-byte
character split across two chunks is never mangled. Undecodable bytes (a
half-written line from a concurrent writer) are replaced, not raised.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass(frozen=True)
class TailLine:
    """A trimmed line plus the byte offset where it starts in the file."""
    text: str
    offset: int


def _read_chunk(handle: BinaryIO, position: int, size: int) -> bytes:
    handle.seek(position)
    return handle.read(size)


def _accept(raw: bytes, needle: Optional[str]) -> Optional[str]:
    """Decode + trim a line; None if it is blank or fails the filter."""
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    if needle and needle not in text.lower():
        return None
    return text


def tail_file(
    path: str,
    max_lines: int,
    filter_text: Optional[str] = None,
    *,
    chunk_size: int = CHUNK_SIZE,
) -> List[TailLine]:
    """
    Return the last `max_lines` non-empty lines of `path`, oldest first.

    Args:
        path: file to read.
        max_lines: maximum number of lines to return; <= 0 returns [].
        filter_text: optional case-insensitive substring every returned line
            must contain. Blank lines never count toward `max_lines`.
        chunk_size: bytes read per backward step (capped at the file size).

    A missing or unreadable file yields [] rather than an error.
    """
    if max_lines <= 0:
        return []

    needle = filter_text.lower() if filter_text else None
    collected: List[TailLine] = []

    try:
        with open(path, "rb") as handle:
            handle.seek(0, os.SEEK_END)
            file_size = handle.tell()
            if file_size == 0:
                return []

            step = max(1, min(chunk_size, file_size))
            position = file_size
            carry = b""

            while position > 0 and len(collected) < max_lines:
                read_size = min(step, position)
                position -= read_size
                buffer = _read_chunk(handle, position, read_size) + carry

                parts = buffer.split(b"\n")
                carry = parts[0]

                # Byte offset of each complete line, for provenance.
                offsets = []
                cursor = position + len(carry) + 1
                for part in parts[1:]:
                    offsets.append(cursor)
                    cursor += len(part) + 1

                for index in range(len(parts) - 1, 0, -1):
                    text = _accept(parts[index], needle)
                    if text is None:
                        continue
                    collected.append(TailLine(text=text, offset=offsets[index - 1]))
                    if len(collected) >= max_lines:
                        break

            # Start of file reached: the carry is the first line of the file.
            if position == 0 and len(collected) < max_lines:
                text = _accept(carry, needle)
                if text is not None:
                    collected.append(TailLine(text=text, offset=0))
    except OSError as exc:
        logger.debug("Cannot tail %s: %s", path, exc)
        return []

    collected.reverse()
    return collected
