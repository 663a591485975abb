"""
Tolerant parser for schedule text produced by a text-recognition engine.

The parser works in three passes over the text:

1. Normalize each line (dash variants, connector words, ``HHhMM`` times,
   character-recognition confusions inside time-shaped substrings) and
   tokenize it into dates, free-day markers, time ranges and loose times.
2. Pair loose times (a dangling ``HH:MM-`` or a bare ``HH:MM``) with the
   next bare time when it sits close enough.
3. Fold the token stream through an explicit ``ParseState`` that carries the
   current date, emitting shifts and issues.

Parsing never raises; everything that cannot become a shift is reported as
a ``ParseIssue``.
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

import pendulum
from pendulum import Date

from .exceptions import InvalidFormat
from .models import DetectedShift, ParseIssue, ParseResult
from .time_utils import MINUTES_PER_DAY, to_date, to_minutes

logger = logging.getLogger(__name__)


DEFAULT_FREE_DAY_KEYWORDS = (
    "día libre",
    "dia libre",
    "libre",
    "descanso",
    "sin trabajo",
    "no trabajo",
    "day off",
    "rest day",
    "free day",
)

DEFAULT_RANGE_CONNECTORS = ("a", "to", "hasta", "until", "bis")

DEFAULT_LOOKAHEAD_LINES = 2

EXPLICIT_RANGE_CONFIDENCE = 1.0
DANGLING_RANGE_CONFIDENCE = 0.8
LOOSE_TIMES_CONFIDENCE = 0.6

REASON_EMPTY = "empty text"
REASON_NO_DATE = "time range without an associated date"
REASON_INCOMPLETE = "incomplete time range"

_DASHES = re.compile("[‐‑‒–—―−﹘﹣－]")
_SPACES = re.compile(r"\s+")
_OCR_TIME = re.compile(r"(?<![A-Za-z0-9])([0-9OoIl|]{1,2}):([0-9OoIl|]{2})(?![A-Za-z0-9])")
_OCR_DIGITS = str.maketrans("OoIl|", "00111")
_H_TIME = re.compile(r"(?<![A-Za-z0-9:])(\d{1,2})[hH]([0-9Oo]{2})(?![A-Za-z0-9])")
_LOOSE_RANGE = re.compile(r"(?<![\d:])(\d{1,2}):(\d{2}) ?- ?(\d{1,2}):(\d{2})(?![\d:])")

_RANGE = re.compile(r"(?<![\d:])(\d{2}:\d{2})-(\d{2}:\d{2})(?![\d:])")
_DANGLING = re.compile(r"(?<![\d:])(\d{1,2}:\d{2}) ?-\s*$")
_TIME = re.compile(r"(?<![\d:])(\d{1,2}:\d{2})(?![\d:])")
_DATE = re.compile(r"(?<![\d:])(\d{1,2})[/.\-](\d{1,2})(?:[/.\-](\d{4}|\d{2}))?(?!\d)")


class TokenKind(Enum):
    DATE = "date"
    FREE_DAY = "free_day"
    RANGE = "range"
    DANGLING = "dangling"
    TIME = "time"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class Line:
    """A retained line: its position, original text and normalized text."""
    number: int
    raw: str
    text: str


@dataclass(frozen=True)
class Token:
    """
    One recognized piece of a line.

    ``values`` holds ``(day, month, year)`` for dates (year may be None),
    clock strings for times and ranges, and nothing for free-day markers.
    """
    kind: TokenKind
    line_no: int
    line: str
    position: int
    values: Tuple = ()
    confidence: float = EXPLICIT_RANGE_CONFIDENCE


@dataclass(frozen=True)
class ParseState:
    """
    Date context carried from token to token.

    ``rejected`` marks that the last date seen was outside the planning
    range; ranges belonging to it are skipped because the date was already
    reported.
    """
    current_date: Optional[Date] = None
    rejected: bool = False

    @property
    def has_date_context(self) -> bool:
        return self.current_date is not None


NO_DATE_CONTEXT = ParseState()
REJECTED_DATE_CONTEXT = ParseState(rejected=True)

Step = Tuple[ParseState, Optional[DetectedShift], Optional[ParseIssue]]


def _phrase_pattern(phrases: Iterable[str]) -> str:
    return "|".join(
        r"\s+".join(re.escape(word) for word in phrase.split())
        for phrase in phrases
        if phrase.strip()
    )


class ScheduleTextParser:
    """
    Turns noisy recognized schedule text into shift candidates.

    Instances hold only compiled vocabulary, so one parser can be shared
    freely between callers.
    """

    def __init__(
        self,
        free_day_keywords: Sequence[str] = DEFAULT_FREE_DAY_KEYWORDS,
        range_connectors: Sequence[str] = DEFAULT_RANGE_CONNECTORS,
        lookahead_lines: int = DEFAULT_LOOKAHEAD_LINES
    ):
        self.lookahead_lines = max(0, lookahead_lines)

        free_day = _phrase_pattern(free_day_keywords)
        self._free_day = (
            re.compile(rf"(?<!\w)(?:{free_day})(?!\w)", re.IGNORECASE) if free_day else None
        )

        connectors = _phrase_pattern(range_connectors)
        self._connector = (
            re.compile(rf"(\d{{1,2}}:\d{{2}}) (?:{connectors}) (\d{{1,2}}:\d{{2}})", re.IGNORECASE)
            if connectors else None
        )

    def parse(self, text, planning_start, planning_end) -> ParseResult:
        """
        Parse recognized text into shifts within the planning range.

        Args:
            text: Raw recognized text; None and bytes are accepted
            planning_start: First date of the closed planning range
            planning_end: Last date of the closed planning range

        Returns:
            ParseResult with the detected shifts and the parse issues
        """
        text = self._coerce_text(text)

        if not text.strip():
            return ParseResult(issues=[ParseIssue(line="", reason=REASON_EMPTY)])

        start = to_date(planning_start)
        end = to_date(planning_end)

        lines = self.normalize(text)
        tokens = self.pair_loose_times(self.tokenize(lines))
        result = self.resolve(tokens, start, end)

        logger.debug(
            "Parsed %d lines into %d tokens: %d shifts, %d issues",
            len(lines), len(tokens), len(result.shifts), len(result.issues)
        )

        return result

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, text: str) -> List[Line]:
        """Normalize every line and drop the blank ones."""
        lines: List[Line] = []

        for raw in text.splitlines():
            normalized = self.normalize_line(raw)
            if normalized:
                lines.append(Line(number=len(lines), raw=raw.strip(), text=normalized))

        return lines

    def normalize_line(self, raw: str) -> str:
        """
        Bring time ranges on one line into the canonical ``HH:MM-HH:MM`` shape.

        Example: "de 9hOO a 1I:3O" -> "de 09:00-11:30"
        """
        line = _DASHES.sub("-", raw)
        line = _SPACES.sub(" ", line).strip()
        line = _H_TIME.sub(r"\1:\2", line)
        line = _OCR_TIME.sub(self._fix_ocr_digits, line)

        if self._connector is not None:
            line = self._connector.sub(r"\1-\2", line)

        return _LOOSE_RANGE.sub(self._canonical_range, line)

    @staticmethod
    def _fix_ocr_digits(match: re.Match) -> str:
        token = match.group(0)
        # Letter-only matches such as "lo:Ol" are left alone.
        if not any(char.isdigit() for char in token):
            return token
        return token.translate(_OCR_DIGITS)

    @staticmethod
    def _canonical_range(match: re.Match) -> str:
        sh, sm, eh, em = match.groups()
        return f"{int(sh):02d}:{sm}-{int(eh):02d}:{em}"

    # ------------------------------------------------------------------
    # Tokenization
    # ------------------------------------------------------------------

    def tokenize(self, lines: Iterable[Line]) -> List[Token]:
        """Tokenize all lines, keeping line order."""
        tokens: List[Token] = []
        for line in lines:
            tokens.extend(self.tokenize_line(line))
        return tokens

    def tokenize_line(self, line: Line) -> List[Token]:
        """
        Tokenize one normalized line.

        Dates come first so that a range on the same line resolves against
        that line's date; the remaining tokens keep their position order.
        """
        tokens: List[Token] = []

        def record(kind: TokenKind):
            def _replace(match: re.Match) -> str:
                tokens.append(Token(
                    kind=kind,
                    line_no=line.number,
                    line=line.raw,
                    position=match.start(),
                    values=match.groups()
                ))
                return " " * (match.end() - match.start())
            return _replace

        masked = _RANGE.sub(record(TokenKind.RANGE), line.text)
        has_range = bool(tokens)
        masked = _DANGLING.sub(record(TokenKind.DANGLING), masked)
        masked = _TIME.sub(record(TokenKind.TIME), masked)

        for match in _DATE.finditer(masked):
            day, month = int(match.group(1)), int(match.group(2))
            if not 1 <= day <= 31 or not 1 <= month <= 12:
                continue

            year = match.group(3)
            if year is not None:
                year = int(year) + (2000 if len(year) == 2 else 0)

            tokens.append(Token(
                kind=TokenKind.DATE,
                line_no=line.number,
                line=line.raw,
                position=match.start(),
                values=(day, month, year)
            ))

        if not has_range and self._free_day is not None:
            match = self._free_day.search(masked)
            if match:
                tokens.append(Token(
                    kind=TokenKind.FREE_DAY,
                    line_no=line.number,
                    line=line.raw,
                    position=match.start()
                ))

        tokens.sort(key=lambda t: (t.kind is not TokenKind.DATE, t.position))
        return tokens

    def pair_loose_times(self, tokens: Sequence[Token]) -> List[Token]:
        """
        Pair dangling ranges and bare times with the bare time that follows.

        The partner must be the very next token and sit at most
        ``lookahead_lines`` lines further down. Tokens left without a
        partner become INCOMPLETE.
        """
        paired: List[Token] = []
        index = 0

        while index < len(tokens):
            token = tokens[index]

            if token.kind not in (TokenKind.DANGLING, TokenKind.TIME):
                paired.append(token)
                index += 1
                continue

            following = tokens[index + 1] if index + 1 < len(tokens) else None

            if (
                following is not None
                and following.kind is TokenKind.TIME
                and following.line_no - token.line_no <= self.lookahead_lines
            ):
                confidence = (
                    DANGLING_RANGE_CONFIDENCE
                    if token.kind is TokenKind.DANGLING
                    else LOOSE_TIMES_CONFIDENCE
                )
                paired.append(replace(
                    token,
                    kind=TokenKind.RANGE,
                    values=token.values + following.values,
                    confidence=confidence
                ))
                index += 2
                continue

            paired.append(replace(token, kind=TokenKind.INCOMPLETE))
            index += 1

        return paired

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, tokens: Iterable[Token], planning_start: Date, planning_end: Date) -> ParseResult:
        """Fold the token stream through the date-context state machine."""
        result = ParseResult()
        state = NO_DATE_CONTEXT

        for token in tokens:
            state, shift, issue = self.transition(state, token, planning_start, planning_end)
            if shift is not None:
                result.shifts.append(shift)
            if issue is not None:
                result.issues.append(issue)

        return result

    def transition(
        self,
        state: ParseState,
        token: Token,
        planning_start: Date,
        planning_end: Date
    ) -> Step:
        """Apply one token to the parse state."""
        if token.kind is TokenKind.FREE_DAY:
            return NO_DATE_CONTEXT, None, None

        if token.kind is TokenKind.DATE:
            day, month, year = token.values
            resolved = resolve_date(day, month, year, planning_start, planning_end)
            if resolved is None:
                reason = (
                    f"date {day:02d}/{month:02d} outside planning range "
                    f"({planning_start.to_date_string()} - {planning_end.to_date_string()})"
                )
                return REJECTED_DATE_CONTEXT, None, ParseIssue(line=token.line, reason=reason)
            return ParseState(current_date=resolved), None, None

        if state.rejected:
            return state, None, None

        if token.kind is TokenKind.INCOMPLETE:
            return state, None, ParseIssue(line=token.line, reason=REASON_INCOMPLETE)

        if token.kind is TokenKind.RANGE:
            if not state.has_date_context:
                return state, None, ParseIssue(line=token.line, reason=REASON_NO_DATE)
            shift, issue = build_shift(token, state.current_date)
            return state, shift, issue

        return state, None, None

    @staticmethod
    def _coerce_text(text) -> str:
        if text is None:
            return ""
        if isinstance(text, (bytes, bytearray)):
            return bytes(text).decode("utf-8", errors="replace")
        if not isinstance(text, str):
            return str(text)
        return text


def resolve_date(
    day: int,
    month: int,
    year: Optional[int],
    planning_start: Date,
    planning_end: Date
) -> Optional[Date]:
    """
    Give a day/month its year from the planning range.

    Candidate years are every year the range spans plus one on each side
    (only the written year when the text carries one). The first candidate
    that is a real calendar date inside the closed range wins.
    """
    if year is not None:
        candidates = [year]
    else:
        candidates = range(planning_start.year - 1, planning_end.year + 2)

    for candidate_year in candidates:
        try:
            candidate = pendulum.date(candidate_year, month, day)
        except ValueError:
            continue
        if planning_start <= candidate <= planning_end:
            return candidate

    return None


def build_shift(token: Token, day: Date) -> Tuple[Optional[DetectedShift], Optional[ParseIssue]]:
    """
    Turn a resolved range token into a shift on ``day``.

    An end time of 00:00 (or 24:00) means the end of the day.
    """
    start_text, end_text = token.values[0], token.values[-1]

    try:
        start_min = to_minutes(start_text)
        if end_text in ("00:00", "0:00", "24:00"):
            end_min = MINUTES_PER_DAY
        else:
            end_min = to_minutes(end_text)
    except InvalidFormat:
        reason = f"invalid hour or minute values: {start_text} - {end_text}"
        return None, ParseIssue(line=token.line, reason=reason)

    shift = DetectedShift(
        date=day,
        start_min=start_min,
        end_min=end_min,
        crosses_midnight=end_min < start_min or end_min >= MINUTES_PER_DAY,
        confidence=token.confidence
    )
    return shift, None


_default_parser = ScheduleTextParser()


def parse_schedule_text(text, planning_start, planning_end) -> ParseResult:
    """Parse recognized text with the default vocabulary."""
    return _default_parser.parse(text, planning_start, planning_end)
