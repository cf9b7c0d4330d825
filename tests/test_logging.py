from corsgate.core.logging import MAX_LOGGED_VALUE, escape_untrusted, untrusted_value_escaper


def test_control_characters_are_escaped():
    assert escape_untrusted("https://a.test\r\nforged") == "https://a.test\\x0d\\x0aforged"


def test_long_values_are_truncated_only_on_request():
    value = "x" * (MAX_LOGGED_VALUE + 10)
    assert escape_untrusted(value, truncate=True) == "x" * MAX_LOGGED_VALUE + "..."
    assert escape_untrusted(value) == value


def test_processor_leaves_event_name_and_non_strings_alone():
    event = untrusted_value_escaper(
        None,
        "debug",
        {"event": "CORS origin rejected", "origin": "a\nb", "keys": ["c\td"], "count": 2},
    )
    assert event == {
        "event": "CORS origin rejected",
        "origin": "a\\x0ab",
        "keys": ["c\\x09d"],
        "count": 2,
    }


def test_processor_truncates_origin_but_not_configured_patterns():
    long_origin = "https://" + "a" * MAX_LOGGED_VALUE + ".test"
    long_pattern = r"^https://(" + "|".join(f"tenant{i}" for i in range(60)) + r")\.example\.com$"

    event = untrusted_value_escaper(
        None,
        "info",
        {"event": "CORS middleware configured", "origin": long_origin, "patterns": [long_pattern]},
    )

    assert event["origin"] == long_origin[:MAX_LOGGED_VALUE] + "..."
    assert event["patterns"] == [long_pattern]
