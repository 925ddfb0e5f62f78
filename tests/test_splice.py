from __future__ import annotations

import pytest


def test_splice_string_cases() -> None:
    from cdinjector.text import splice_string

    # insert by shifting
    assert splice_string("foofoo", 3, 3, "bar") == "foobarfoo"
    # replace the same amount
    assert splice_string("foobarfoo", 3, 6, "BAR") == "fooBARfoo"
    # replace with more characters
    assert splice_string("foobarfoo", 3, 6, "BARBAR") == "fooBARBARfoo"
    # replace with fewer characters
    assert splice_string("foobarfoo", 3, 6, "B") == "fooBfoo"
    assert splice_string("foobar", 0, 0, ":-)") == ":-)foobar"
    assert splice_string("foobar", 6, 6, "8-D") == "foobar8-D"
    assert splice_string("foo\n\n\nbar", 5, 5, "hello") == "foo\n\nhello\nbar"


def test_splice_string_round_trip() -> None:
    from cdinjector.text import splice_string

    s = "console.info('Hello');"
    a, b, r = 8, 12, "warn"
    out = splice_string(s, a, b, r)
    assert out == "console.warn('Hello');"
    assert splice_string(out, a, a + len(r), s[a:b]) == s


@pytest.mark.parametrize("start,end", [(-1, 2), (3, 2), (0, 99)])
def test_splice_string_rejects_bad_ranges(start: int, end: int) -> None:
    from cdinjector.text import splice_string

    with pytest.raises(ValueError):
        splice_string("foobar", start, end, "x")
