from __future__ import annotations

from storybundle.modules.typegen.script_scan import iter_runtime_calls


def _calls(script: str) -> list[tuple[str, tuple[str, ...]]]:
    return [(call.method, call.args) for call in iter_runtime_calls(script)]


def test_scan_reports_calls_in_source_order() -> None:
    script = "runtime.setFlag('a')\nif (runtime.hasFlag(\"b\")) { runtime.setVariable('x', 1) }"
    assert _calls(script) == [
        ("setFlag", ("'a'",)),
        ("hasFlag", ('"b"',)),
        ("setVariable", ("'x'", "1")),
    ]


def test_scan_balances_nested_brackets_in_arguments() -> None:
    script = "runtime.setVariable('inv', [1, {a: (2, 3)}, 'x)'])"
    assert _calls(script) == [("setVariable", ("'inv'", "[1, {a: (2, 3)}, 'x)']"))]


def test_scan_reports_nested_runtime_calls() -> None:
    script = "runtime.setVariable('gold', runtime.getVariable('gold') + 10)"
    assert _calls(script) == [
        ("setVariable", ("'gold'", "runtime.getVariable('gold') + 10")),
        ("getVariable", ("'gold'",)),
    ]


def test_scan_skips_comments_and_string_literals() -> None:
    script = (
        "// runtime.setFlag('commented')\n"
        "/* runtime.setFlag('blocked') */\n"
        "const s = \"runtime.setFlag('quoted')\"\n"
        "const t = `runtime.setFlag('template')`\n"
        "runtime.setFlag('live')"
    )
    assert _calls(script) == [("setFlag", ("'live'",))]


def test_scan_allows_whitespace_before_paren_and_multiline_args() -> None:
    script = "runtime.setVariable  (\n  'hp',\n  100\n)"
    assert _calls(script) == [("setVariable", ("'hp'", "100"))]


def test_scan_ignores_other_receivers_and_unterminated_calls() -> None:
    script = "rt.setFlag('a'); myruntime.setFlag('b'); runtime .setFlag('c'); runtime.setFlag('d'"
    assert _calls(script) == []


def test_scan_accepts_member_access_on_receiver() -> None:
    assert _calls("this.runtime.clearFlag('x')") == [("clearFlag", ("'x'",))]


def test_scan_empty_argument_list() -> None:
    assert _calls("runtime.getPlayTime()") == [("getPlayTime", ())]
    assert _calls("") == []
    assert list(iter_runtime_calls(None)) == []


def test_scan_reads_template_interpolations_as_code() -> None:
    script = "runtime.setVariable('greeting', `Hi ${runtime.getVariable('playerName')}!`)"
    assert _calls(script) == [
        ("setVariable", ("'greeting'", "`Hi ${runtime.getVariable('playerName')}!`")),
        ("getVariable", ("'playerName'",)),
    ]


def test_scan_handles_nested_templates_and_braces_in_interpolations() -> None:
    script = (
        "const s = `a ${ {k: `b ${runtime.hasFlag('inner')}`}.k } runtime.setFlag('text') ${x}`\n"
        "runtime.setFlag('after')"
    )
    assert _calls(script) == [("hasFlag", ("'inner'",)), ("setFlag", ("'after'",))]


def test_scan_skips_regex_literals() -> None:
    script = "const clean = name.replace(/'/g, ''); runtime.setFlag('named')"
    assert _calls(script) == [("setFlag", ("'named'",))]


def test_scan_regex_literal_with_slash_in_class_and_flags() -> None:
    script = "if (/[/'\"]+/gi.test(s)) { runtime.clearFlag('dirty') }"
    assert _calls(script) == [("clearFlag", ("'dirty'",))]


def test_scan_division_is_not_a_regex_literal() -> None:
    script = "runtime.setVariable('half', runtime.getVariable('hp') / 2); const r = a / b; runtime.setFlag('x')"
    assert _calls(script) == [
        ("setVariable", ("'half'", "runtime.getVariable('hp') / 2")),
        ("getVariable", ("'hp'",)),
        ("setFlag", ("'x'",)),
    ]


def test_scan_many_unterminated_calls_drops_only_those() -> None:
    script = "runtime.setFlag(" * 2000 + "\nruntime.setFlag('ok')"
    assert _calls(script) == [("setFlag", ("'ok'",))]
