"""Log processor — raw job trace bytes to cached, display-ready lines.

Processing runs once per trace load.  A timestamp mode change only
relabels the already-extracted timestamps, and a new search query only
rebuilds the match index; scrolling and match navigation never touch the
cache at all.

Leading provider noise is removed by a tolerant prefix scanner driven by
an ordered tuple of ``PrefixRule`` objects.  The scanner stops at the
first position no rule recognises, so unknown tokens stay in the line as
genuine content.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict
from rich.text import Text

from peeplab.models.state import (
    LogCache,
    ProcessedLine,
    SearchMatch,
    StyleSpan,
    TimestampMode,
)

logger = logging.getLogger(__name__)


class PrefixRule(BaseModel):
    """One known token shape that may lead a log line.

    Parameters
    ----------
    name:
        Identifier, used in logs and tests.
    pattern:
        Regex applied with ``Pattern.match`` at the current scan position.
    captures_timestamp:
        The rule's ``ts`` group is the line's timestamp.  Only the first
        timestamp in a prefix is captured.
    marks_section:
        The token is a collapsible-section marker.  Lines that contain
        nothing else are dropped.
    once:
        The rule may fire at most once per line.  Later text of the same
        shape is content.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    pattern: re.Pattern[str]
    captures_timestamp: bool = False
    marks_section: bool = False
    once: bool = False


DEFAULT_PREFIX_RULES: tuple[PrefixRule, ...] = (
    PrefixRule(
        name="timestamp",
        pattern=re.compile(
            r"(?P<ts>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?"
            r"(?:Z|[+-]\d{2}:?\d{2})?)(?:[ \t]+|$)"
        ),
        captures_timestamp=True,
        once=True,
    ),
    PrefixRule(
        name="stream",
        pattern=re.compile(r"[0-9A-Fa-f]{2}[OE]\+?(?:[ \t]+|(?=\x1b)|(?=\[0K)|$)"),
        once=True,
    ),
    PrefixRule(name="erase", pattern=re.compile(r"\x1b\[0?K|\[0K")),
    PrefixRule(
        name="section",
        pattern=re.compile(
            r"section_(?:start|end):\d+:[A-Za-z0-9_.\-]+(?:\[[^\]\s]*\])?"
        ),
        marks_section=True,
    ),
    PrefixRule(name="control", pattern=re.compile(r"\x1b\[[0-9;?]*[A-Za-ln-z]")),
    PrefixRule(name="nul", pattern=re.compile(r"\x00+")),
    PrefixRule(name="carriage_return", pattern=re.compile(r"\r+")),
)

_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b")


# ------------------------------------------------------------------
# Line processing
# ------------------------------------------------------------------


def strip_prefix(
    line: str,
    rules: Sequence[PrefixRule] = DEFAULT_PREFIX_RULES,
) -> tuple[str, str | None, bool]:
    """Strip known leading tokens from *line*.

    Returns ``(rest, timestamp, saw_section_marker)``.
    """
    pos = 0
    timestamp: str | None = None
    saw_section = False
    fired: set[str] = set()
    progressed = True
    while progressed and pos < len(line):
        progressed = False
        for rule in rules:
            if rule.once and rule.name in fired:
                continue
            match = rule.pattern.match(line, pos)
            if match is None or match.end() == pos:
                continue
            fired.add(rule.name)
            if rule.captures_timestamp and timestamp is None:
                timestamp = match.group("ts")
            if rule.marks_section:
                saw_section = True
            pos = match.end()
            progressed = True
            break
    return line[pos:], timestamp, saw_section


def format_timestamp(timestamp: str | None, mode: TimestampMode) -> str | None:
    """Render an extracted timestamp for the given display mode."""
    if timestamp is None or mode is TimestampMode.HIDDEN:
        return None
    if mode is TimestampMode.DATE_ONLY:
        return timestamp[:10]
    return timestamp


def style_line(content: str) -> tuple[str, list[StyleSpan]]:
    """Decode embedded SGR sequences into plain text plus style spans.

    A decoding failure degrades this line to unstyled text with the
    escape sequences removed.
    """
    try:
        decoded = Text.from_ansi(content)
    except Exception:  # noqa: BLE001
        logger.debug("ANSI decoding failed, falling back to plain text", exc_info=True)
        return _ESCAPE_RE.sub("", content), []

    spans: list[StyleSpan] = []
    for span in decoded.spans:
        style = str(span.style)
        if not style or style == "none" or span.end <= span.start:
            continue
        spans.append(StyleSpan(start=span.start, end=span.end, style=style))
    return decoded.plain, spans


def process_line(
    line: str,
    mode: TimestampMode,
    rules: Sequence[PrefixRule] = DEFAULT_PREFIX_RULES,
) -> ProcessedLine | None:
    """Process a single decoded line.  ``None`` means the line is dropped."""
    content, timestamp, saw_section = strip_prefix(line, rules)
    if saw_section and not _ESCAPE_RE.sub("", content).strip():
        return None
    text, spans = style_line(content)
    return ProcessedLine(
        text=text,
        timestamp=timestamp,
        label=format_timestamp(timestamp, mode),
        spans=spans,
        length=len(text),
    )


def process(
    raw: bytes,
    mode: TimestampMode,
    rules: Sequence[PrefixRule] = DEFAULT_PREFIX_RULES,
) -> list[ProcessedLine]:
    """Turn a raw trace into processed lines.

    Pure function of ``(raw, mode, rules)``; invalid UTF-8 is replaced
    rather than rejected.
    """
    if not raw:
        return []
    decoded = raw.decode("utf-8", errors="replace")
    raw_lines = decoded.split("\n")
    if raw_lines and raw_lines[-1] == "":
        raw_lines.pop()

    lines: list[ProcessedLine] = []
    for raw_line in raw_lines:
        processed = process_line(raw_line.removesuffix("\r"), mode, rules)
        if processed is not None:
            lines.append(processed)
    return lines


def relabel(lines: list[ProcessedLine], mode: TimestampMode) -> list[ProcessedLine]:
    """Re-derive timestamp labels for *mode* without re-parsing the text."""
    return [
        line.model_copy(update={"label": format_timestamp(line.timestamp, mode)})
        for line in lines
    ]


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


def find_matches(lines: Sequence[ProcessedLine], query: str) -> list[SearchMatch]:
    """Every case-insensitive occurrence of *query*, overlaps included.

    Matches are returned in document order.  An empty query matches
    nothing.
    """
    if not query:
        return []
    pattern = re.compile("(?=(" + re.escape(query) + "))", re.IGNORECASE)
    matches: list[SearchMatch] = []
    for index, line in enumerate(lines):
        for found in pattern.finditer(line.text):
            matches.append(
                SearchMatch(line=index, column=found.start(), length=len(found.group(1)))
            )
    return matches


def index_by_line(matches: Sequence[SearchMatch]) -> dict[int, list[SearchMatch]]:
    """Group matches by line for render-time lookup."""
    grouped: dict[int, list[SearchMatch]] = {}
    for match in matches:
        grouped.setdefault(match.line, []).append(match)
    return grouped


# ------------------------------------------------------------------
# Cache transitions: each returns a new LogCache
# ------------------------------------------------------------------


def load_trace(
    cache: LogCache,
    raw: bytes,
    mode: TimestampMode,
    rules: Sequence[PrefixRule] = DEFAULT_PREFIX_RULES,
) -> LogCache:
    """Populate *cache* with a freshly fetched trace."""
    lines = process(raw, mode, rules)
    logger.debug(
        "Processed trace for job %s: %d bytes -> %d lines",
        cache.job_id,
        len(raw),
        len(lines),
    )
    return cache.model_copy(
        update={
            "raw": raw,
            "mode": mode,
            "lines": lines,
            "query": "",
            "matches": [],
            "by_line": {},
        }
    )


def with_mode(cache: LogCache, mode: TimestampMode) -> LogCache:
    """Return *cache* relabelled for *mode*; unchanged if already valid."""
    if cache.mode is mode:
        return cache
    return cache.model_copy(update={"mode": mode, "lines": relabel(cache.lines, mode)})


def with_query(cache: LogCache, query: str) -> LogCache:
    """Return *cache* with the match index rebuilt for *query*."""
    if cache.query == query:
        return cache
    matches = find_matches(cache.lines, query)
    return cache.model_copy(
        update={"query": query, "matches": matches, "by_line": index_by_line(matches)}
    )
