# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Cargo manifest editing.

`tomllib` tells us what the manifest *means*; the edit itself is done on the
raw lines so that comments, spacing, key order and line endings survive
untouched. Only the `name` key of the `[package]` table is ever changed.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass
from typing import Any

from repackage.errors import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
ORIG_MANIFEST_NAME = "Cargo.toml.orig"

# `[table]` header (array-of-tables `[[x]]` is matched separately).
_TABLE_RE = re.compile(r"^\s*\[\s*([^\[\]]+?)\s*\]\s*(?:#.*)?$")
_ARRAY_TABLE_RE = re.compile(r"^\s*\[\[\s*([^\[\]]+?)\s*\]\]\s*(?:#.*)?$")

# `<key> = "<value>"` where the value is a single-line basic or literal string.
_NAME_VALUE = r"(?P<value>\"(?:[^\"\\\r\n]|\\.)*\"|'[^'\r\n]*')"
_PACKAGE_NAME_RE = re.compile(r"^(?P<lead>\s*(?:name|\"name\"|'name')\s*=\s*)" + _NAME_VALUE + r"(?P<rest>.*)$", re.DOTALL)
_DOTTED_NAME_RE = re.compile(
	r"^(?P<lead>\s*(?:package|\"package\"|'package')\s*\.\s*(?:name|\"name\"|'name')\s*=\s*)" + _NAME_VALUE + r"(?P<rest>.*)$",
	re.DOTALL,
)

_ML_DELIMS = ('"""', "'''")


@dataclass(frozen=True)
class ManifestInfo:
	name: str
	version: str | None
	lib_name: str | None


def _load(text: str, path: str | None) -> dict[str, Any]:
	try:
		return tomllib.loads(text)
	except tomllib.TOMLDecodeError as err:
		raise ManifestError(f"manifest is not valid TOML: {err}", reason_code="MANIFEST_MALFORMED", path=path) from err


def read_manifest(text: str, path: str | None = None) -> ManifestInfo:
	data = _load(text, path)
	package = data.get("package")
	if package is None:
		if "workspace" in data:
			raise ManifestError(
				"manifest is a virtual workspace, which is never packaged",
				reason_code="MANIFEST_WORKSPACE",
				path=path,
			)
		raise ManifestError("manifest has no [package] table", reason_code="MANIFEST_NO_PACKAGE", path=path)
	if not isinstance(package, dict):
		raise ManifestError("manifest 'package' must be a table", reason_code="MANIFEST_NO_PACKAGE", path=path, field="package")
	name = package.get("name")
	if not isinstance(name, str) or not name:
		raise ManifestError(
			"manifest [package] table has no string 'name' field",
			reason_code="MANIFEST_NAME_MISSING",
			path=path,
			field="package.name",
		)
	version = package.get("version")
	lib = data.get("lib")
	lib_name = lib.get("name") if isinstance(lib, dict) else None
	return ManifestInfo(
		name=name,
		version=version if isinstance(version, str) else None,
		lib_name=lib_name if isinstance(lib_name, str) else None,
	)


def _decode_toml_string(token: str) -> str:
	return tomllib.loads(f"v = {token}")["v"]


def _table_key(header: str) -> str:
	parts = [p.strip().strip("\"'") for p in header.split(".")]
	return ".".join(parts)


def _basic_string_end(line: str, quote: int) -> int:
	"""Offset just past a single-line basic string opened at `quote` (or the line end)."""
	j = quote + 1
	n = len(line)
	while j < n:
		if line[j] == "\\":
			j += 2
		elif line[j] == '"':
			return j + 1
		else:
			j += 1
	return n


def _closing_delim(line: str, start: int, delim: str) -> int:
	"""Offset of the delimiter closing a multi-line string, or -1 if it stays open."""
	j = start
	while True:
		j = line.find(delim, j)
		if j < 0:
			return -1
		if delim == '"""':
			backslashes = 0
			while j - backslashes - 1 >= start and line[j - backslashes - 1] == "\\":
				backslashes += 1
			if backslashes % 2 == 1:
				j += 1
				continue
		return j


def _multiline_state(line: str, open_delim: str | None) -> str | None:
	"""
	Return the multi-line string delimiter still open after `line`.

	Delimiters inside single-line strings and comments do not count.
	"""
	n = len(line)
	i = 0
	while i < n:
		if open_delim is not None:
			j = _closing_delim(line, i, open_delim)
			if j < 0:
				return open_delim
			# Up to two quotes right before the delimiter belong to the string.
			i = j + 3
			extra = 0
			while i < n and extra < 2 and line[i] == open_delim[0]:
				i += 1
				extra += 1
			open_delim = None
			continue
		ch = line[i]
		if ch == "#":
			break
		if line.startswith(_ML_DELIMS, i):
			open_delim = line[i : i + 3]
			i += 3
		elif ch == '"':
			i = _basic_string_end(line, i)
		elif ch == "'":
			j = line.find("'", i + 1)
			i = n if j < 0 else j + 1
		else:
			i += 1
	return open_delim


def _name_lines(lines: list[str]) -> list[tuple[int, re.Match[str]]]:
	"""Locate every line that assigns the package name, skipping multi-line string bodies."""
	found: list[tuple[int, re.Match[str]]] = []
	table: str | None = None
	open_delim: str | None = None
	for idx, line in enumerate(lines):
		if open_delim is not None:
			open_delim = _multiline_state(line, open_delim)
			continue
		m = _ARRAY_TABLE_RE.match(line)
		if m:
			table = "[[" + _table_key(m.group(1)) + "]]"
			continue
		m = _TABLE_RE.match(line)
		if m:
			table = _table_key(m.group(1))
			continue
		if table == "package":
			m = _PACKAGE_NAME_RE.match(line)
			if m:
				found.append((idx, m))
		elif table is None:
			m = _DOTTED_NAME_RE.match(line)
			if m:
				found.append((idx, m))
		open_delim = _multiline_state(line, None)
	return found


def _line_list(found: list[tuple[int, re.Match[str]]]) -> str:
	return ", ".join(str(idx + 1) for idx, _ in found)


def rename_manifest(text: str, new_name: str, old_name: str | None = None, path: str | None = None) -> str:
	"""
	Return `text` with the `[package]` name set to `new_name`.

	Exactly one line changes. Fields that merely contain the old name (dependency
	keys, `[lib]`/`[[bin]]` names, descriptions) are left alone.
	"""
	info = read_manifest(text, path)
	if old_name is not None and info.name != old_name:
		raise ManifestError(
			f"package name in manifest ('{info.name}') does not match the expected name ('{old_name}')",
			reason_code="MANIFEST_NAME_MISMATCH",
			path=path,
			field="package.name",
		)

	lines = text.splitlines(keepends=True)
	found = _name_lines(lines)
	if not found:
		raise ManifestError(
			"could not find an editable 'name = \"...\"' line in the [package] table",
			reason_code="MANIFEST_NAME_MISSING",
			path=path,
			field="package.name",
		)
	# Bracketed array values that span lines can look like table headers, so
	# a candidate must also hold the decoded name.
	candidates = [(idx, m) for idx, m in found if _decode_toml_string(m.group("value")) == info.name]
	if not candidates:
		raise ManifestError(
			f"no name line in the [package] table holds the package name '{info.name}' (checked lines {_line_list(found)})",
			reason_code="MANIFEST_NAME_UNLOCATED",
			path=path,
			field="package.name",
		)
	if len(candidates) > 1:
		raise ManifestError(
			f"found {len(candidates)} lines that could declare the package name (lines {_line_list(candidates)})",
			reason_code="MANIFEST_NAME_DUPLICATE",
			path=path,
			field="package.name",
		)

	idx, m = candidates[0]
	value = m.group("value")
	quote = value[0]
	lines[idx] = f"{m.group('lead')}{quote}{new_name}{quote}{m.group('rest')}"
	logger.debug("manifest %s: name %r -> %r on line %d", path or "<text>", info.name, new_name, idx + 1)
	return "".join(lines)
