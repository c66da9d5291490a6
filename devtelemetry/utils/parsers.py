# devtelemetry/utils/parsers.py
"""
Heuristic parsing of unstructured log lines.

A line is mined for four things:
    timestamp, level, message, context (source file/line, calling function)

Nothing here raises on malformed input. In the worst case every field falls
back to its default and `message` is the (nearly) raw line.

Timestamp:
- `[YYYY-MM-DD(T| )HH:MM:SS[.fraction][Z]]` first, then a bare
  `YYYY-MM-DD HH:MM:SS`. No match -> None; callers substitute "now" when
  they need something to display.

Level:
- Case-insensitive *substring* search over LEVELS, in list order. A line
  mentioning "info.txt" before an ERROR keyword still reports ERROR because
  ERROR is checked first, but a line with only "see info.txt" reports INFO.
  Known false-positive source; kept as is.

Context:
- `path/name.ext[:line]` -> file (+ line)
- `->name(`              -> function
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Pattern, Sequence, Union

LEVELS = ("ERROR", "WARNING", "WARN", "INFO", "DEBUG", "TRACE")
DEFAULT_LEVEL = "INFO"

BRACKETED_TIMESTAMP = re.compile(r"\[(\d{4}-\d{2}-\d{2}[T\s]\d{2}:\d{2}:\d{2}[.\d]*Z?)\]")
BARE_TIMESTAMP = re.compile(r"(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})")

_LEVEL_WORDS = re.compile(r"\b(?:" + "|".join(LEVELS) + r")\b", re.IGNORECASE)
_FUNCTION = re.compile(r"->(\w+)\(")

# Extension must start with a letter so "05.123Z" in a timestamp is not a file.
_ANY_EXTENSION = r"[A-Za-z]\w*"


@dataclass(frozen=True)
class LogContext:
    """Where a log line came from, as far as the line itself tells."""
    file: Optional[str] = None
    line: Optional[int] = None
    function: Optional[str] = None

    def as_dict(self) -> Dict[str, Union[str, int]]:
        """Only the fields that were found."""
        out: Dict[str, Union[str, int]] = {}
        if self.file is not None:
            out["file"] = self.file
        if self.line is not None:
            out["line"] = self.line
        if self.function is not None:
            out["function"] = self.function
        return out


@dataclass(frozen=True)
class LogLine:
    """In-memory representation of one parsed log line."""
    raw: str
    timestamp: Optional[str]
    level: str
    message: str
    context: LogContext = field(default_factory=LogContext)
    source_file: str = ""


def now_iso() -> str:
    """Current UTC time, used in place of a missing timestamp."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


# ----------------------------
# Field extractors
# ----------------------------
def extract_timestamp(line: str) -> Optional[str]:
    for pattern in (BRACKETED_TIMESTAMP, BARE_TIMESTAMP):
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


def extract_level(line: str) -> str:
    upper = line.upper()
    for level in LEVELS:
        if level in upper:
            return level
    return DEFAULT_LEVEL


def extract_message(line: str) -> str:
    """The line with timestamps and whole-word level keywords removed."""
    line = BRACKETED_TIMESTAMP.sub("", line)
    line = BARE_TIMESTAMP.sub("", line)
    line = _LEVEL_WORDS.sub("", line)
    return line.strip()


def _source_pattern(extensions: Sequence[str]) -> Pattern[str]:
    if extensions:
        ext = "(?:" + "|".join(re.escape(e) for e in extensions) + r")\b"
    else:
        ext = _ANY_EXTENSION
    return re.compile(r"([/\w]+\.(?:" + ext + r"))(?::(\d+))?")


def extract_context(line: str, source_pattern: Pattern[str]) -> LogContext:
    file_name = None
    line_no = None
    function = None

    match = source_pattern.search(line)
    if match:
        file_name = match.group(1)
        if match.group(2) is not None:
            line_no = int(match.group(2))

    match = _FUNCTION.search(line)
    if match:
        function = match.group(1)

    return LogContext(file=file_name, line=line_no, function=function)


# ----------------------------
# Parser
# ----------------------------
class LogLineParser:
    """
    Reusable parser. `source_extensions` restricts which extensions count as
    a source file in the context (e.g. ("py",)); empty accepts any.
    """

    def __init__(self, source_extensions: Sequence[str] = ()):
        self._source_pattern = _source_pattern(tuple(source_extensions))

    def parse(self, raw: str, source_file: str = "") -> LogLine:
        line = raw or ""
        return LogLine(
            raw=line,
            timestamp=extract_timestamp(line),
            level=extract_level(line),
            message=extract_message(line),
            context=extract_context(line, self._source_pattern),
            source_file=source_file,
        )


_default_parser = LogLineParser()


def parse_log_line(raw: str, source_file: str = "") -> LogLine:
    """Parse one raw line with the default (any extension) parser."""
    return _default_parser.parse(raw, source_file)
