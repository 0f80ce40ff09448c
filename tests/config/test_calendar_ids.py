import logging

import pytest

from cronus.config.calendar_ids import parse_calendar_ids, resolve_calendar_ids


@pytest.mark.parametrize("value", ["", None, "   ", []])
def test_empty_input_yields_no_ids(value):
    assert parse_calendar_ids(value) == []


def test_parses_comma_separated_values():
    assert parse_calendar_ids("one,two , three") == ["one", "two", "three"]


def test_parses_json_array_strings():
    assert parse_calendar_ids('["one","two"]') == ["one", "two"]


def test_handles_lists_as_input():
    assert parse_calendar_ids(["one", " two ", "", 3]) == ["one", "two", "3"]


def test_single_id_is_kept_as_is():
    assert parse_calendar_ids("  team@group.calendar.google.com ") == ["team@group.calendar.google.com"]


def test_malformed_json_falls_back_to_comma_split(caplog):
    with caplog.at_level(logging.WARNING):
        ids = parse_calendar_ids('["one", "two",]')
    assert ids == ['["one"', '"two"', "]"]
    assert "Falling back to comma separation" in caplog.text


def test_json_array_entries_are_trimmed_and_filtered():
    assert parse_calendar_ids('[" one ", "", "two"]') == ["one", "two"]


def test_resolve_deduplicates_in_first_seen_order():
    assert resolve_calendar_ids("b, a, b, c, a") == ["b", "a", "c"]


def test_resolve_defaults_to_primary():
    assert resolve_calendar_ids("") == ["primary"]
    assert resolve_calendar_ids(" , ") == ["primary"]
