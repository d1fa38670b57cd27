# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Package identity: the {old name, new name} pair a rename operates on.

Names follow Cargo's package-name rules: ASCII letters, digits, `-` and `_`,
not starting with a digit or `-`, at most 64 characters, and not a Rust
keyword. In source code a package is referred to by its identifier form,
where every `-` becomes `_`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from repackage.errors import InvalidName

MAX_NAME_LEN = 64

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

RUST_KEYWORDS = frozenset(
	{
		"abstract", "as", "async", "await", "become", "box", "break", "const", "continue",
		"crate", "do", "dyn", "else", "enum", "extern", "false", "final", "fn", "for", "if",
		"impl", "in", "let", "loop", "macro", "match", "mod", "move", "mut", "override",
		"priv", "pub", "ref", "return", "self", "Self", "static", "struct", "super", "trait",
		"true", "try", "type", "typeof", "unsafe", "unsized", "use", "virtual", "where",
		"while", "yield",
	}
)


def ident_form(name: str) -> str:
	"""Return the identifier Rust code uses to name package `name`."""
	return name.replace("-", "_")


def validate_name(name: str, *, field: str = "name") -> str:
	if not isinstance(name, str) or not name:
		raise InvalidName(f"{field} must be a non-empty string", field=field)
	if len(name) > MAX_NAME_LEN:
		raise InvalidName(f"{field} '{name}' is longer than {MAX_NAME_LEN} characters", field=field)
	if not _NAME_RE.match(name):
		raise InvalidName(
			f"{field} '{name}' is not a valid package name (letters, digits, '-' and '_'; must not start with a digit or '-')",
			field=field,
		)
	if name in RUST_KEYWORDS or ident_form(name) in RUST_KEYWORDS:
		raise InvalidName(f"{field} '{name}' is a Rust keyword", field=field)
	return name


@dataclass(frozen=True)
class PackageIdentity:
	old_name: str
	new_name: str

	@property
	def old_ident(self) -> str:
		return ident_form(self.old_name)

	@property
	def new_ident(self) -> str:
		return ident_form(self.new_name)


def make_identity(old_name: str, new_name: str) -> PackageIdentity:
	"""Validate both names and build the identity; renaming to the same name is a usage error."""
	validate_name(old_name, field="old_name")
	validate_name(new_name, field="new_name")
	if old_name == new_name:
		raise InvalidName(f"old and new name are both '{old_name}'; nothing to rename", reason_code="SAME_NAME", field="new_name")
	return PackageIdentity(old_name=old_name, new_name=new_name)


def infer_name_from_filename(file_name: str) -> str | None:
	"""
	Infer the package name from a `.crate` file name such as `foo-bar-0.1.0.crate`.

	Package names cannot contain `.`, so we look for the first `.` and walk
	backwards to the closest `-`. What follows that dash must be the all-digit
	major version; otherwise nothing is inferred. This keeps `netscape-0.1.0`
	from being taken for a crate called `net`.
	"""
	dot = file_name.find(".")
	if dot < 0:
		return None
	dash = file_name.rfind("-", 0, dot)
	if dash < 0:
		return None
	name = file_name[:dash]
	major = file_name[dash + 1 : dot]
	if not name or not major or not major.isdigit() or not major.isascii():
		return None
	return name


def root_dir_name(name: str, version: str) -> str:
	"""Conventional package root directory inside an archive: `<name>-<version>`."""
	return f"{name}-{version}"


def renamed_file_name(file_name: str, old_name: str, new_name: str) -> str | None:
	"""`foo-0.1.0.crate` -> `bar-0.1.0.crate`; None when the file is not named after `old_name`."""
	if not file_name.startswith(old_name + "-"):
		return None
	return new_name + file_name[len(old_name) :]
