import pytest

from nvdpconfig.duration import Duration, format_duration, parse_duration


def test_parse_seconds():
    assert parse_duration("5s") == 5 * 1_000_000_000


def test_parse_zero_forms():
    assert parse_duration("0") == 0
    assert parse_duration("0s") == 0


def test_format_zero_and_nanoseconds():
    assert format_duration(0) == "0s"
    assert format_duration(5) == "5ns"


@pytest.mark.parametrize(
    "text",
    ["1h2m3.5s", "1.5\u00b5s", "2.25ms", "1m0s", "-3s", "999ns", "2h0m0s", "45s"],
)
def test_round_trip(text):
    assert format_duration(parse_duration(text)) == text


def test_unit_relations():
    assert parse_duration("1h") == 60 * parse_duration("1m")
    assert parse_duration("1m") == 60 * parse_duration("1s")
    assert parse_duration("1.5s") == parse_duration("1500ms")
    assert parse_duration("1us") == parse_duration("1\u00b5s") == parse_duration("1\u03bcs")


def test_sign_handling():
    assert parse_duration("-1.5h") == -parse_duration("1.5h")
    assert parse_duration("+5s") == parse_duration("5s")


def test_compound_is_sum_of_parts():
    assert parse_duration("1h30m") == parse_duration("1h") + parse_duration("30m")


def test_leading_and_trailing_point():
    assert parse_duration(".5s") == parse_duration("500ms")
    assert parse_duration("1.s") == parse_duration("1s")


@pytest.mark.parametrize("text", ["", "5", "abc", "1x", ".s", "-", "s", "1.2.3s"])
def test_parse_errors(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_parse_overflow():
    with pytest.raises(ValueError):
        parse_duration("9999999999h")


def test_duration_from_json_number_is_nanoseconds():
    assert Duration.from_json(0) == 0
    assert Duration.from_json(5) == 5
    assert Duration.from_json(5.9) == 5


def test_duration_from_json_string():
    assert Duration.from_json("0s") == 0
    assert Duration.from_json("5s") == 5 * 1_000_000_000


@pytest.mark.parametrize("value", [True, None, [1], {"a": 1}, float("nan"), "bogus"])
def test_duration_from_json_rejects(value):
    with pytest.raises(ValueError):
        Duration.from_json(value)


def test_duration_to_json():
    assert Duration(0).to_json() == "0s"
    assert Duration(5).to_json() == "5ns"
    assert str(Duration(5 * 1_000_000_000)) == "5s"


def test_duration_json_round_trip():
    original = Duration(parse_duration("1h2m3.5s"))
    assert Duration.from_json(original.to_json()) == original