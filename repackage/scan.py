# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lexical scanner for Rust source text.

This is not a Rust lexer. It only answers one question for every
character of a file: is it part of an identifier, a string/char literal, a
comment, or something else? That is all the reference rewriter needs to avoid
touching literal or comment content.

Spans are `lark.Token` instances so they carry the same position data
(`start_pos`, `end_pos`, `line`, `column`, ...) as tokens elsewhere in the
toolchain. Token types:

- `IDENT`   maximal run of identifier characters not starting with a digit
            (raw identifiers `r#name` included, prefix and all)
- `STRING`  "..." / b"..." / c"..." strings, raw strings r#"..."#, char and
            byte-char literals
- `COMMENT` `// ...` to end of line, `/* ... */` with nesting
- `OTHER`   whitespace runs, numeric literals, single punctuation characters

Classification is decided by the lexical state reached so far (inside a
quote, comment depth); lookahead never goes past the end of the current token.
"""

from __future__ import annotations

from typing import Iterator

from lark import Token

from repackage.errors import ScanError

IDENT = "IDENT"
STRING = "STRING"
COMMENT = "COMMENT"
OTHER = "OTHER"

_RAW_STRING_PREFIXES = frozenset({"r", "br", "cr"})
_STRING_PREFIXES = frozenset({"b", "c"})

# Longest char escape is `\u{10FFFF}`.
_MAX_CHAR_ESCAPE_LEN = 10


def is_ident_start(ch: str) -> bool:
	return ch == "_" or ch.isalpha()


def is_ident_char(ch: str) -> bool:
	return ch == "_" or ch.isalnum()


def _ident_run_end(text: str, pos: int) -> int:
	end = pos
	n = len(text)
	while end < n and is_ident_char(text[end]):
		end += 1
	return end


def _quoted_end(text: str, quote: int) -> int:
	"""End offset of a "..." literal whose opening quote is at `quote`, or -1."""
	n = len(text)
	j = quote + 1
	while j < n:
		ch = text[j]
		if ch == "\\":
			j += 2
			continue
		if ch == '"':
			return j + 1
		j += 1
	return -1


def _raw_string_end(text: str, hashes_start: int) -> int | None:
	"""
	End offset of a raw string body starting at `hashes_start` (just after the
	`r`/`br`/`cr` prefix).

	Returns None when the text is not a raw string opener (e.g. `r#ident`),
	and -1 when the opener is there but the closing `"###` never is.
	"""
	n = len(text)
	j = hashes_start
	while j < n and text[j] == "#":
		j += 1
	if j >= n or text[j] != '"':
		return None
	closing = '"' + "#" * (j - hashes_start)
	k = text.find(closing, j + 1)
	if k < 0:
		return -1
	return k + len(closing)


def _char_literal_end(text: str, quote: int) -> int | None:
	"""
	End offset of a char literal opening at `quote`, or None if the quote
	starts a lifetime/label instead. -1 means an escape that never closes.
	"""
	n = len(text)
	if quote + 1 >= n:
		return None
	ch = text[quote + 1]
	if ch == "\\":
		k = text.find("'", quote + 3, quote + 3 + _MAX_CHAR_ESCAPE_LEN)
		return k + 1 if k >= 0 else -1
	if ch != "'" and quote + 2 < n and text[quote + 2] == "'":
		return quote + 3
	return None


def _block_comment_end(text: str, start: int) -> int:
	n = len(text)
	depth = 0
	j = start
	while j < n:
		if text.startswith("/*", j):
			depth += 1
			j += 2
		elif text.startswith("*/", j):
			depth -= 1
			j += 2
			if depth == 0:
				return j
		else:
			j += 1
	return -1


def scan_spans(text: str, path: str | None = None) -> Iterator[Token]:
	"""
	Lazily tokenize `text` into spans that cover it exactly once, in order.

	Raises ScanError at the first unterminated string, char literal or block
	comment; spans already yielded stay valid but callers must not rewrite a
	file that failed to scan.
	"""
	n = len(text)
	pos = 0
	line = 1
	column = 1

	def _span(kind: str, start: int, end: int) -> Token:
		nonlocal line, column
		value = text[start:end]
		start_line, start_column = line, column
		newlines = value.count("\n")
		if newlines:
			line += newlines
			column = len(value) - value.rfind("\n")
		else:
			column += len(value)
		return Token(
			kind,
			value,
			start_pos=start,
			line=start_line,
			column=start_column,
			end_line=line,
			end_column=column,
			end_pos=end,
		)

	def _unterminated(what: str, start: int) -> ScanError:
		return ScanError(f"unterminated {what} starting at line {line}, column {column}", path=path, offset=start)

	while pos < n:
		ch = text[pos]
		kind = OTHER
		end = pos + 1

		if ch.isspace():
			while end < n and text[end].isspace():
				end += 1
		elif text.startswith("//", pos):
			kind = COMMENT
			end = text.find("\n", pos)
			if end < 0:
				end = n
		elif text.startswith("/*", pos):
			kind = COMMENT
			end = _block_comment_end(text, pos)
			if end < 0:
				raise _unterminated("block comment", pos)
		elif ch == '"':
			kind = STRING
			end = _quoted_end(text, pos)
			if end < 0:
				raise _unterminated("string literal", pos)
		elif ch == "'":
			lit_end = _char_literal_end(text, pos)
			if lit_end is not None:
				if lit_end < 0:
					raise _unterminated("char literal", pos)
				kind = STRING
				end = lit_end
		elif is_ident_start(ch):
			kind = IDENT
			end = _ident_run_end(text, pos)
			word = text[pos:end]
			nxt = text[end] if end < n else ""
			if word in _RAW_STRING_PREFIXES and nxt in ('"', "#"):
				lit_end = _raw_string_end(text, end)
				if lit_end is not None:
					if lit_end < 0:
						raise _unterminated("raw string literal", pos)
					kind = STRING
					end = lit_end
				elif word == "r" and nxt == "#" and end + 1 < n and is_ident_start(text[end + 1]):
					end = _ident_run_end(text, end + 1)
			elif word in _STRING_PREFIXES and nxt == '"':
				lit_end = _quoted_end(text, end)
				if lit_end < 0:
					raise _unterminated("string literal", pos)
				kind = STRING
				end = lit_end
			elif word == "b" and nxt == "'":
				lit_end = _char_literal_end(text, end)
				if lit_end is not None:
					if lit_end < 0:
						raise _unterminated("byte literal", pos)
					kind = STRING
					end = lit_end
		elif ch.isdigit():
			end = _ident_run_end(text, pos)

		yield _span(kind, pos, end)
		pos = end


class SourceSpans:
	"""Restartable span sequence: every iteration rescans `text` from the start."""

	def __init__(self, text: str, path: str | None = None) -> None:
		self.text = text
		self.path = path

	def __iter__(self) -> Iterator[Token]:
		return scan_spans(self.text, self.path)
