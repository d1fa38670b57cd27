# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from repackage.errors import ScanError
from repackage.scan import COMMENT, IDENT, OTHER, STRING, SourceSpans, scan_spans


def _kinds(text: str) -> list[tuple[str, str]]:
	return [(t.type, str(t)) for t in scan_spans(text) if not (t.type == OTHER and t.isspace())]


def test_spans_cover_input_exactly_once() -> None:
	text = 'use foo::bar; // c\n/* a /* b */ c */ let s = r#"x"y"#; \'a\' 1u32\n'
	spans = list(scan_spans(text))
	assert "".join(spans) == text
	pos = 0
	for s in spans:
		assert s.start_pos == pos
		assert s.end_pos == pos + len(s)
		pos = s.end_pos
	assert pos == len(text)


def test_identifiers_and_punctuation() -> None:
	assert _kinds("foo::bar_2(x)") == [
		(IDENT, "foo"),
		(OTHER, ":"),
		(OTHER, ":"),
		(IDENT, "bar_2"),
		(OTHER, "("),
		(IDENT, "x"),
		(OTHER, ")"),
	]


def test_string_with_escaped_quote_is_one_span() -> None:
	assert _kinds(r'"a \" foo::x" foo') == [(STRING, r'"a \" foo::x"'), (IDENT, "foo")]


def test_raw_strings_use_hash_delimiters() -> None:
	text = 'r#"he said "foo::x""# br##"a"#b"## foo'
	assert _kinds(text) == [(STRING, 'r#"he said "foo::x""#'), (STRING, 'br##"a"#b"##'), (IDENT, "foo")]


def test_byte_and_c_strings() -> None:
	assert _kinds('b"foo" c"foo" bar') == [(STRING, 'b"foo"'), (STRING, 'c"foo"'), (IDENT, "bar")]


def test_nested_block_comments() -> None:
	assert _kinds("/* a /* foo::x */ b */ foo") == [(COMMENT, "/* a /* foo::x */ b */"), (IDENT, "foo")]


def test_line_comment_stops_at_newline() -> None:
	spans = list(scan_spans("/// foo::x\nfoo"))
	assert (spans[0].type, str(spans[0])) == (COMMENT, "/// foo::x")
	assert (spans[1].type, str(spans[1])) == (OTHER, "\n")
	assert (spans[2].type, str(spans[2])) == (IDENT, "foo")


def test_char_literal_quote_does_not_open_a_string() -> None:
	assert _kinds("let q = '\"'; foo") == [
		(IDENT, "let"),
		(IDENT, "q"),
		(OTHER, "="),
		(STRING, "'\"'"),
		(OTHER, ";"),
		(IDENT, "foo"),
	]


def test_escaped_char_literals() -> None:
	assert _kinds(r"'\'' '\\' '\u{1F600}' b'x'") == [
		(STRING, r"'\''"),
		(STRING, r"'\\'"),
		(STRING, r"'\u{1F600}'"),
		(STRING, "b'x'"),
	]


def test_lifetimes_are_not_literals() -> None:
	assert _kinds("fn f<'a>(x: &'a str)") == [
		(IDENT, "fn"),
		(IDENT, "f"),
		(OTHER, "<"),
		(OTHER, "'"),
		(IDENT, "a"),
		(OTHER, ">"),
		(OTHER, "("),
		(IDENT, "x"),
		(OTHER, ":"),
		(OTHER, "&"),
		(OTHER, "'"),
		(IDENT, "a"),
		(IDENT, "str"),
		(OTHER, ")"),
	]


def test_numeric_literals_are_not_identifiers() -> None:
	assert _kinds("1foo 0xff") == [(OTHER, "1foo"), (OTHER, "0xff")]


def test_raw_identifier_is_one_span() -> None:
	assert _kinds("r#foo::x") == [(IDENT, "r#foo"), (OTHER, ":"), (OTHER, ":"), (IDENT, "x")]


def test_whitespace_runs_collapse() -> None:
	spans = list(scan_spans("a \t\n b"))
	assert [(s.type, str(s)) for s in spans] == [(IDENT, "a"), (OTHER, " \t\n "), (IDENT, "b")]


def test_positions_track_lines_and_columns() -> None:
	spans = [s for s in scan_spans("a\n  foo") if s.type == IDENT]
	assert (spans[1].line, spans[1].column) == (2, 3)


@pytest.mark.parametrize(
	"text, offset",
	[
		('let s = "never closed;', 8),
		("x /* a /* b */", 2),
		('let s = r#"open"; ', 8),
		("let c = '\\", 8),
	],
)
def test_unterminated_tokens_raise(text: str, offset: int) -> None:
	with pytest.raises(ScanError) as excinfo:
		list(scan_spans(text, path="examples/bad.rs"))
	assert excinfo.value.offset == offset
	assert excinfo.value.path == "examples/bad.rs"
	assert excinfo.value.reason_code == "SCAN_UNTERMINATED"


def test_source_spans_are_restartable() -> None:
	spans = SourceSpans("use foo::x; // y\n")
	first = [(s.type, str(s), s.start_pos) for s in spans]
	second = [(s.type, str(s), s.start_pos) for s in spans]
	assert first == second
	assert first
