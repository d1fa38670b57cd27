# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from repackage.errors import InvalidName
from repackage.identity import infer_name_from_filename, make_identity, renamed_file_name, validate_name


def test_identity_exposes_identifier_forms() -> None:
	ident = make_identity("foo-bar", "baz_qux")
	assert ident.old_ident == "foo_bar"
	assert ident.new_ident == "baz_qux"


def test_same_name_is_a_usage_error() -> None:
	with pytest.raises(InvalidName) as excinfo:
		make_identity("foo", "foo")
	assert excinfo.value.reason_code == "SAME_NAME"


@pytest.mark.parametrize("name", ["", "1foo", "-foo", "foo.bar", "foo bar", "fn", "self", "x" * 65, "naïve"])
def test_invalid_names(name: str) -> None:
	with pytest.raises(InvalidName) as excinfo:
		validate_name(name, field="new_name")
	assert excinfo.value.field == "new_name"


@pytest.mark.parametrize("name", ["foo", "foo-bar", "foo_bar", "_x", "serde2", "x" * 64])
def test_valid_names(name: str) -> None:
	assert validate_name(name) == name


@pytest.mark.parametrize(
	"file_name, expected",
	[
		("foo-0.1.0.crate", "foo"),
		("foo-bar-12.0.3.crate", "foo-bar"),
		("netscape-0.1.0.crate", "netscape"),
		("foo-x.crate", None),
		("foo.crate", None),
		("-0.1.0.crate", None),
		("foo-0", None),
	],
)
def test_infer_name_from_filename(file_name: str, expected: str | None) -> None:
	assert infer_name_from_filename(file_name) == expected


def test_renamed_file_name() -> None:
	assert renamed_file_name("foo-0.1.0.crate", "foo", "bar") == "bar-0.1.0.crate"
	assert renamed_file_name("foo-foo-0.1.0.crate", "foo-foo", "bar") == "bar-0.1.0.crate"
	assert renamed_file_name("download.crate", "foo", "bar") is None
