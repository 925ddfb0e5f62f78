from __future__ import annotations

import asyncio
import logging

import pytest
from fakes import FakeFetch


def _expand(body, fetch, **kwargs):  # noqa: ANN001,ANN202
    from cdinjector.includes import expand_includes

    return asyncio.run(expand_includes(body, fetch, **kwargs))


def test_include_directive_is_replaced_by_file_contents() -> None:
    fetch = FakeFetch(files={"foo.js": "// foo"})
    body = "console.info('Hello');\n// @include foo.js\nconsole.info('world');"

    out = _expand(body, fetch)

    assert out == "console.info('Hello');\n// foo\nconsole.info('world');"
    assert fetch.calls == ["foo.js"]


def test_none_body_stays_none() -> None:
    fetch = FakeFetch()
    assert _expand(None, fetch) is None
    assert fetch.calls == []


def test_missing_include_is_removed() -> None:
    fetch = FakeFetch()
    out = _expand("a();\n// @include nope.js\nb();", fetch)
    assert out == "a();\n\nb();"
    assert fetch.calls == ["nope.js"]


def test_nested_includes_resolve_depth_first_in_source_order() -> None:
    fetch = FakeFetch(
        files={
            "a.js": "// a start\n// @include c.js\n// a end",
            "b.js": "// b",
            "c.js": "// c",
        }
    )
    body = "// @include a.js\n// @include b.js"

    out = _expand(body, fetch)

    assert out == "// a start\n// c\n// a end\n// b"
    assert fetch.calls == ["a.js", "c.js", "b.js"]


def test_quoted_names_indentation_and_block_comment_form() -> None:
    fetch = FakeFetch(files={"lib/x.js": "X", "theme.css": "body{}"})
    body = '  // @include "lib/x.js"\n/* @include theme.css */\n'

    out = _expand(body, fetch)

    assert out == "X\nbody{}\n"
    assert fetch.calls == ["lib/x.js", "theme.css"]


def test_directive_without_name_is_left_untouched() -> None:
    fetch = FakeFetch(default="SHOULD NOT APPEAR")
    body = "// @include\n// @include   \nfoo(); // @include bar.js"

    assert _expand(body, fetch) == body
    assert fetch.calls == []


def test_included_content_is_not_rescanned_by_outer_scan() -> None:
    # The included file's own directive is expanded by recursion exactly once.
    fetch = FakeFetch(files={"a.js": "// @include b.js", "b.js": "B"})
    out = _expand("// @include a.js\nrest", fetch)
    assert out == "B\nrest"
    assert fetch.calls == ["a.js", "b.js"]


def test_include_cycle_is_truncated_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    fetch = FakeFetch(files={"a.js": "A1\n// @include b.js\nA2", "b.js": "B1\n// @include a.js\nB2"})

    with caplog.at_level(logging.WARNING, logger="cdinjector.includes"):
        out = _expand(fetch.files["a.js"], fetch, origin="a.js")

    assert out == "A1\nB1\n\nB2\nA2"
    assert fetch.calls == ["b.js"]
    assert any("cycle" in rec.getMessage() for rec in caplog.records)


def test_self_include_without_origin_stops_after_one_level() -> None:
    fetch = FakeFetch(files={"a.js": "x\n// @include a.js"})
    out = _expand("// @include a.js", fetch)
    assert out == "x\n"
    assert fetch.calls == ["a.js"]


def test_depth_limit_truncates_long_chains() -> None:
    files = {f"f{i}.js": f"{i}\n// @include f{i + 1}.js" for i in range(10)}
    fetch = FakeFetch(files=files)

    out = _expand("// @include f0.js", fetch, max_depth=3)

    assert out == "0\n1\n2\n"
    assert fetch.calls == ["f0.js", "f1.js", "f2.js"]


def test_on_include_callback_sees_resolved_names_only() -> None:
    from cdinjector.includes import IncludeExpander

    seen: list[str] = []
    fetch = FakeFetch(files={"a.js": "A"})
    expander = IncludeExpander(fetch, on_include=seen.append)

    out = asyncio.run(expander.expand("// @include a.js\n// @include missing.js"))

    assert out == "A\n"
    assert seen == ["a.js"]
