"""Tests for phone number parsing."""
from ketchupsoon.utils.phone_numbers import parse_phone_number, standardize_phone_number


def test_us_ten_digit_number():
    parts = parse_phone_number("(555) 123-4567")
    assert parts.country_code == "1"
    assert parts.formatted == "(555) 123-4567"
    assert parts.standardized == "15551234567"


def test_us_eleven_digit_number_with_leading_one():
    parts = parse_phone_number("1-555-123-4567")
    assert (parts.area_code, parts.middle, parts.last) == ("555", "123", "4567")


def test_international_number_keeps_country_code():
    parts = parse_phone_number("+44 207 946 0958")
    assert parts.country_code == "44"
    assert parts.formatted == "+44 207 946 0958"
    assert parts.standardized == "442079460958"


def test_invalid_numbers_return_none():
    assert parse_phone_number("") is None
    assert parse_phone_number("12345") is None
    assert parse_phone_number("25551234567") is None
    assert parse_phone_number("+1234") is None


def test_standardize_falls_back_to_stripped_input():
    assert standardize_phone_number("555.123.4567") == "15551234567"
    assert standardize_phone_number("  ext 12 ") == "ext 12"
    assert standardize_phone_number(None) is None
