# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from repackage.errors import ScanError
from repackage.identity import make_identity
from repackage.rewrite import find_references, rewrite_source
from repackage.scan import SourceSpans

FOO_BAR = make_identity("foo", "bar")


def _rw(text: str, old: str = "foo", new: str = "bar") -> str:
	return rewrite_source(text, make_identity(old, new))


def test_end_to_end_example_line() -> None:
	src = 'use foo::Thing; extern crate foo as f; let s = "foo is great";'
	assert _rw(src) == 'use bar::Thing; extern crate bar as f; let s = "foo is great";'


def test_no_partial_identifier_matches() -> None:
	src = "use old_name_extended::x;\nmy_old_name::y();\nlet v = old_name2::z;\n"
	assert _rw(src, "old_name", "new_name") == src


def test_strings_and_comments_are_immune() -> None:
	src = '// foo::bar\n/* use foo::x; */\nlet s = "foo::bar";\nlet r = r#"extern crate foo;"#;\n'
	assert _rw(src) == src


@pytest.mark.parametrize(
	"src",
	[
		"let x = a::foo::y;",
		"let x = crate::foo::y;",
		"let x = self::foo::y;",
		"let x = <T as Tr>::foo::y;",
		"let n = v.foo::<u8>();",
		"let n = foo::<u8>();",
		"macro_rules! m { ($foo:ident) => { $foo::x } }",
		"let foo = 1; let y = foo + 1;",
		"struct S { foo: u32 }",
	],
)
def test_non_crate_positions_are_left_alone(src: str) -> None:
	assert _rw(src) == src


@pytest.mark.parametrize(
	"src, expected",
	[
		("foo::run();", "bar::run();"),
		("let x = ::foo::y;", "let x = ::bar::y;"),
		("it.any(foo::is_x)", "it.any(bar::is_x)"),
		("#[foo::main]\nfn main() {}", "#[bar::main]\nfn main() {}"),
		("impl ::foo::Tr for S {}", "impl ::bar::Tr for S {}"),
		("let v: Vec<foo::T> = x;", "let v: Vec<bar::T> = x;"),
		("let t: foo::T = x;", "let t: bar::T = x;"),
		("foo :: run();", "bar :: run();"),
		("foo /* c */ ::run();", "bar /* c */ ::run();"),
		("extern crate foo;", "extern crate bar;"),
		("foo::m!(x);", "bar::m!(x);"),
		("for i in 0..foo::N {}", "for i in 0..bar::N {}"),
		("let t = &s[..foo::LEN];", "let t = &s[..bar::LEN];"),
		("let r = 1..=foo::MAX;", "let r = 1..=bar::MAX;"),
	],
)
def test_crate_paths_are_rewritten(src: str, expected: str) -> None:
	assert _rw(src) == expected


@pytest.mark.parametrize(
	"src, expected",
	[
		("use foo;", "use bar;"),
		("use foo as f;", "use bar as f;"),
		("pub use ::foo::X;", "pub use ::bar::X;"),
		("use {foo::a, other};", "use {bar::a, other};"),
		("use {other, foo};", "use {other, bar};"),
		("use foo::{self, a::b};", "use bar::{self, a::b};"),
		("use other::{foo::x, foo};", "use other::{foo::x, foo};"),
		("use self::foo::x;", "use self::foo::x;"),
		("use other::foo;", "use other::foo;"),
	],
)
def test_use_declarations(src: str, expected: str) -> None:
	assert _rw(src) == expected


def test_use_state_ends_at_semicolon() -> None:
	src = "use other::{a, b};\nfn f() { foo::x(); }\n"
	assert _rw(src) == "use other::{a, b};\nfn f() { bar::x(); }\n"


def test_rewrite_is_idempotent() -> None:
	src = (
		"//! docs for foo\n"
		"extern crate foo;\n"
		"use foo::{A, B};\n"
		"fn main() { let foo = foo::make(); println!(\"{}\", \"foo::x\"); }\n"
	)
	once = rewrite_source(src, FOO_BAR)
	twice = rewrite_source(once, FOO_BAR)
	assert once == twice
	assert once == (
		"//! docs for foo\n"
		"extern crate bar;\n"
		"use bar::{A, B};\n"
		"fn main() { let foo = bar::make(); println!(\"{}\", \"foo::x\"); }\n"
	)


def test_hyphenated_names_use_identifier_form() -> None:
	src = "use foo_bar::x;\nfoo_bar::run();\n"
	assert _rw(src, "foo-bar", "baz-qux") == "use baz_qux::x;\nbaz_qux::run();\n"


def test_find_references_reports_positions() -> None:
	text = "use foo::x;\nlet foo = foo::y;\n"
	refs = find_references(SourceSpans(text), "foo")
	assert [(r.line, r.column) for r in refs] == [(1, 5), (2, 11)]
	assert all(text[r.start_pos : r.end_pos] == "foo" for r in refs)


def test_malformed_file_is_not_partially_rewritten() -> None:
	with pytest.raises(ScanError) as excinfo:
		rewrite_source('use foo::x;\nlet s = "oops;\n', FOO_BAR, path="tests/t.rs")
	assert excinfo.value.path == "tests/t.rs"
	assert excinfo.value.offset == 20
