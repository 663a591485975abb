"""
Tests for the schedule-text parser.
"""

import pendulum
import pytest

from groupslot.domain.models import ParseResult
from groupslot.domain.schedule_parser import (
    NO_DATE_CONTEXT,
    REASON_EMPTY,
    REASON_INCOMPLETE,
    REASON_NO_DATE,
    REJECTED_DATE_CONTEXT,
    ParseState,
    ScheduleTextParser,
    Token,
    TokenKind,
    parse_schedule_text,
    resolve_date,
)

JANUARY = ("2024-01-01", "2024-01-31")


def _parse(text, start="2024-01-01", end="2024-01-31"):
    return parse_schedule_text(text, start, end)


def _times(result):
    return [(s.start_min, s.end_min) for s in result.shifts]


class TestParseBasics:
    """Tests for plain date/range layouts."""

    def test_date_then_range(self):
        """A date line followed by a range line gives one shift."""
        result = _parse("15/01\n11:00 - 17:00")

        assert len(result.shifts) == 1
        shift = result.shifts[0]
        assert shift.date == pendulum.date(2024, 1, 15)
        assert shift.start_min == 660
        assert shift.end_min == 1020
        assert shift.crosses_midnight is False
        assert shift.confidence == 1.0
        assert result.issues == []

    def test_date_outside_range_is_reported_once(self):
        result = _parse("15/12\n11:00 - 17:00")

        assert result.shifts == []
        assert len(result.issues) == 1
        assert "planning range" in result.issues[0].reason
        assert result.issues[0].line == "15/12"

    def test_midnight_end_means_end_of_day(self):
        result = _parse("15/01\n16:00 - 00:00")

        assert _times(result) == [(960, 1440)]
        assert result.shifts[0].crosses_midnight is True

    def test_24_00_end_means_end_of_day(self):
        result = _parse("15/01\n16:00 - 24:00")

        assert _times(result) == [(960, 1440)]
        assert result.shifts[0].crosses_midnight is True

    def test_overnight_shift(self):
        result = _parse("15/01\n22:00 - 01:00")

        assert _times(result) == [(1320, 60)]
        assert result.shifts[0].crosses_midnight is True

    def test_several_days(self):
        text = "15/01\n09:00 - 17:00\n16/01\n10:00 - 18:00\n17/01\n07:30 - 15:30"

        result = _parse(text)

        assert [s.date.day for s in result.shifts] == [15, 16, 17]
        assert _times(result) == [(540, 1020), (600, 1080), (450, 930)]
        assert result.issues == []

    def test_two_shifts_on_one_day(self):
        result = _parse("15/01\n08:00-12:00\n16:00-20:00")

        assert _times(result) == [(480, 720), (960, 1200)]
        assert all(s.date == pendulum.date(2024, 1, 15) for s in result.shifts)

    def test_date_and_range_on_one_line(self):
        result = _parse("26/01 17:00 - 20:00 COC")

        assert len(result.shifts) == 1
        assert result.shifts[0].date == pendulum.date(2024, 1, 26)
        assert _times(result) == [(1020, 1200)]

    def test_range_without_date(self):
        result = _parse("11:00 - 17:00")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_NO_DATE]

    def test_surrounding_noise_is_ignored(self):
        text = "Horario semanal\nLunes 15/01\nOficina centro\n09:00 - 17:00\nFirma:"

        result = _parse(text)

        assert _times(result) == [(540, 1020)]
        assert result.issues == []

    @pytest.mark.parametrize("text", ["15.01.2024", "15-01-2024", "15/01/24", "15/1"])
    def test_date_separators_and_years(self, text):
        result = _parse(f"{text}\n09:00 - 17:00")

        assert [s.date for s in result.shifts] == [pendulum.date(2024, 1, 15)]


class TestNormalization:
    """Tests for recognition noise handling."""

    @pytest.mark.parametrize("line", [
        "11:OO - 17:OO",
        "1I:00 - 17:00",
        "11:00 – 17:00",
        "11:00 — 17:00",
        "11:00    -     17:00",
        "11:00-17:00",
        "11h00 - 17h00",
        "11:00 a 17:00",
        "11:00 to 17:00",
        "11:00 hasta 17:00",
    ])
    def test_range_variants(self, line):
        result = _parse(f"15/01\n{line}")

        assert _times(result) == [(660, 1020)]
        assert result.issues == []

    def test_h_notation_with_connector(self):
        result = _parse("15/01\n9h00 a 13h30")

        assert _times(result) == [(540, 810)]

    def test_normalize_line_fixes_every_confusion(self):
        parser = ScheduleTextParser()

        assert parser.normalize_line("de 9hOO a 1I:3O") == "de 09:00-11:30"

    def test_normalize_line_keeps_words(self):
        parser = ScheduleTextParser()

        assert parser.normalize_line("Oficina Lobby 1O:3O") == "Oficina Lobby 10:30"
        assert parser.normalize_line("  Oficina   Lobby  ") == "Oficina Lobby"

    def test_blank_lines_are_dropped(self):
        parser = ScheduleTextParser()

        lines = parser.normalize("15/01\n\n   \n09:00 - 17:00\n")

        assert [line.text for line in lines] == ["15/01", "09:00-17:00"]
        assert [line.number for line in lines] == [0, 1]

    def test_custom_connectors(self):
        parser = ScheduleTextParser(range_connectors=["till"])

        result = parser.parse("15/01\n09:00 till 13:00", *JANUARY)

        assert _times(result) == [(540, 780)]


class TestFreeDays:
    """Tests for free-day markers."""

    @pytest.mark.parametrize("marker", ["Día libre", "DIA LIBRE", "Libre", "Descanso", "Day off"])
    def test_marker_clears_date_context(self, marker):
        text = f"15/01\n09:00 - 13:00\n{marker}\n15:00 - 18:00"

        result = _parse(text)

        assert _times(result) == [(540, 780)]
        assert [i.reason for i in result.issues] == [REASON_NO_DATE]

    def test_marker_on_date_line(self):
        result = _parse("16/01 Libre\n10:00 - 12:00")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_NO_DATE]

    def test_new_date_after_free_day(self):
        result = _parse("15/01\nLibre\n16/01\n10:00 - 12:00")

        assert [s.date.day for s in result.shifts] == [16]
        assert result.issues == []

    def test_word_inside_other_word_is_not_a_marker(self):
        result = _parse("15/01\nLibreria\n10:00 - 12:00")

        assert _times(result) == [(600, 720)]

    def test_custom_keywords(self):
        parser = ScheduleTextParser(free_day_keywords=["franco"])

        result = parser.parse("15/01\nFranco\n10:00 - 12:00", *JANUARY)

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_NO_DATE]


class TestLooseTimes:
    """Tests for ranges split over several lines."""

    def test_dangling_range_pairs_with_next_time(self):
        result = _parse("15/01\n09:00 -\n17:00")

        assert _times(result) == [(540, 1020)]
        assert result.shifts[0].confidence == 0.8

    def test_bare_times_pair(self):
        result = _parse("15/01\n09:00\n17:00")

        assert _times(result) == [(540, 1020)]
        assert result.shifts[0].confidence == 0.6

    def test_lone_dangling_range_is_incomplete(self):
        result = _parse("15/01\n09:00 -")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_INCOMPLETE]

    def test_lone_time_is_incomplete(self):
        result = _parse("15/01\nEntrada 09:00")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_INCOMPLETE]

    def test_partner_too_far_away(self):
        result = _parse("15/01\n09:00 -\nOficina\nLobby\n17:00")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_INCOMPLETE, REASON_INCOMPLETE]

    def test_wider_lookahead_reaches_partner(self):
        parser = ScheduleTextParser(lookahead_lines=3)

        result = parser.parse("15/01\n09:00 -\nOficina\nLobby\n17:00", *JANUARY)

        assert _times(result) == [(540, 1020)]

    def test_date_between_times_breaks_pair(self):
        result = _parse("15/01\n09:00\n16/01\n17:00")

        assert result.shifts == []
        assert len(result.issues) == 2


class TestInvalidInput:
    """Tests for input that cannot become shifts."""

    @pytest.mark.parametrize("text", ["", "   \n\t\n", None, b""])
    def test_empty_text(self, text):
        result = _parse(text)

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_EMPTY]

    def test_bytes_are_decoded(self):
        result = _parse("15/01\n11:00 - 17:00".encode("utf-8"))

        assert _times(result) == [(660, 1020)]

    def test_binary_garbage_does_not_raise(self):
        result = _parse(bytes(range(256)) * 4)

        assert isinstance(result, ParseResult)
        assert result.shifts == []

    def test_large_text(self):
        noise = ("Texto sin horarios " * 50 + "\n") * 2000
        result = _parse(noise + "15/01\n09:00 - 17:00")

        assert _times(result) == [(540, 1020)]

    def test_out_of_range_hour(self):
        result = _parse("15/01\n25:00 - 17:00")

        assert result.shifts == []
        assert len(result.issues) == 1
        assert "invalid hour or minute" in result.issues[0].reason

    def test_out_of_range_minute(self):
        result = _parse("15/01\n09:75 - 17:00")

        assert result.shifts == []
        assert "invalid hour or minute" in result.issues[0].reason

    def test_impossible_day_month_is_not_a_date(self):
        result = _parse("45/13\n09:00 - 17:00")

        assert result.shifts == []
        assert [i.reason for i in result.issues] == [REASON_NO_DATE]

    def test_ranges_under_rejected_date_are_skipped(self):
        result = _parse("15/12\n09:00 - 12:00\n14:00 - 18:00\n16/01\n10:00 - 11:00")

        assert [s.date.day for s in result.shifts] == [16]
        assert len(result.issues) == 1


class TestDateResolution:
    """Tests for giving a day/month its year."""

    def test_datetime_range_bounds(self):
        result = parse_schedule_text(
            "15/01\n11:00 - 17:00\n31/01\n09:00 - 10:00",
            pendulum.datetime(2024, 1, 1),
            pendulum.datetime(2024, 1, 31, 8, 0),
        )

        assert [s.date for s in result.shifts] == [
            pendulum.date(2024, 1, 15),
            pendulum.date(2024, 1, 31),
        ]
        assert result.issues == []

    def test_year_wrap(self):
        result = parse_schedule_text(
            "28/12\n09:00 - 17:00\n02/01\n09:00 - 17:00",
            "2024-12-20",
            "2025-01-10"
        )

        assert [s.date for s in result.shifts] == [
            pendulum.date(2024, 12, 28),
            pendulum.date(2025, 1, 2),
        ]

    def test_leap_day_in_leap_year(self):
        result = parse_schedule_text("29/02\n09:00 - 17:00", "2024-02-01", "2024-03-31")

        assert [s.date for s in result.shifts] == [pendulum.date(2024, 2, 29)]

    def test_leap_day_in_common_year(self):
        result = parse_schedule_text("29/02\n09:00 - 17:00", "2023-02-01", "2023-03-31")

        assert result.shifts == []
        assert "planning range" in result.issues[0].reason

    def test_explicit_year_must_match(self):
        result = _parse("15/01/2025\n09:00 - 17:00")

        assert result.shifts == []
        assert len(result.issues) == 1

    def test_resolve_date_first_candidate_in_range(self):
        start, end = pendulum.date(2024, 1, 1), pendulum.date(2024, 1, 31)

        assert resolve_date(15, 1, None, start, end) == pendulum.date(2024, 1, 15)
        assert resolve_date(15, 2, None, start, end) is None
        assert resolve_date(31, 4, None, start, end) is None


class TestTransitions:
    """Tests for single state-machine steps."""

    START = pendulum.date(2024, 1, 1)
    END = pendulum.date(2024, 1, 31)

    def _token(self, kind, values=(), line="x"):
        return Token(kind=kind, line_no=0, line=line, position=0, values=values)

    def test_date_sets_context(self):
        parser = ScheduleTextParser()

        state, shift, issue = parser.transition(
            NO_DATE_CONTEXT, self._token(TokenKind.DATE, (15, 1, None)), self.START, self.END
        )

        assert state == ParseState(current_date=pendulum.date(2024, 1, 15))
        assert shift is None and issue is None

    def test_date_outside_range_rejects(self):
        parser = ScheduleTextParser()

        state, shift, issue = parser.transition(
            NO_DATE_CONTEXT, self._token(TokenKind.DATE, (15, 12, None)), self.START, self.END
        )

        assert state == REJECTED_DATE_CONTEXT
        assert not state.has_date_context
        assert "2024-01-01 - 2024-01-31" in issue.reason

    def test_free_day_clears_context(self):
        parser = ScheduleTextParser()
        dated = ParseState(current_date=pendulum.date(2024, 1, 15))

        state, shift, issue = parser.transition(
            dated, self._token(TokenKind.FREE_DAY), self.START, self.END
        )

        assert state == NO_DATE_CONTEXT
        assert shift is None and issue is None

    def test_range_with_context_emits_shift(self):
        parser = ScheduleTextParser()
        dated = ParseState(current_date=pendulum.date(2024, 1, 15))

        state, shift, issue = parser.transition(
            dated, self._token(TokenKind.RANGE, ("09:00", "17:00")), self.START, self.END
        )

        assert state == dated
        assert (shift.date, shift.start_min, shift.end_min) == (pendulum.date(2024, 1, 15), 540, 1020)
        assert issue is None

    def test_range_under_rejected_date_is_silent(self):
        parser = ScheduleTextParser()

        state, shift, issue = parser.transition(
            REJECTED_DATE_CONTEXT, self._token(TokenKind.RANGE, ("09:00", "17:00")), self.START, self.END
        )

        assert state == REJECTED_DATE_CONTEXT
        assert shift is None and issue is None

    def test_range_without_context_reports_issue(self):
        parser = ScheduleTextParser()

        state, shift, issue = parser.transition(
            NO_DATE_CONTEXT, self._token(TokenKind.RANGE, ("09:00", "17:00"), line="09:00 - 17:00"),
            self.START, self.END
        )

        assert state == NO_DATE_CONTEXT
        assert shift is None
        assert issue.line == "09:00 - 17:00"
        assert issue.reason == REASON_NO_DATE
