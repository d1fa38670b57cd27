# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Rewrite references to a package's old identifier in Rust source.

Only identifiers that denote the package itself are rewritten. Without name
resolution that is approximated structurally:

- `old::...` where `old` starts the path (not `a::old::...`, `x.old::<T>()`,
  `$old::...`, nor a turbofish `old::<T>`),
- `extern crate old` (with or without `as alias`),
- inside `use`, a root-level path starting with `old` that continues with `::`
  or is the whole path (`use old;`, `use old as o;`, `use {old, other};`).

String literals and comments are never touched, so a doc comment mentioning the
old name keeps mentioning it. Bare identifiers elsewhere (`let old = 1;`) are
left alone too.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from lark import Token

from repackage.identity import RUST_KEYWORDS, PackageIdentity
from repackage.scan import COMMENT, IDENT, OTHER, SourceSpans, is_ident_char

logger = logging.getLogger(__name__)

# Path roots that a following `::` continues rather than starts.
_PATH_ROOT_KEYWORDS = frozenset({"crate", "self", "super", "Self"})
_STARTING_KEYWORDS = RUST_KEYWORDS - _PATH_ROOT_KEYWORDS

# Tokens after a use-path segment that end the whole path.
_USE_PATH_ENDERS = frozenset({";", ",", "}"})


def _is_significant(span: Token) -> bool:
	if span.type == COMMENT:
		return False
	return not (span.type == OTHER and span.isspace())


def _is_punct(span: Token | None, ch: str) -> bool:
	return span is not None and span.type == OTHER and span == ch


def _at(sig: Sequence[Token], k: int) -> Token | None:
	if 0 <= k < len(sig):
		return sig[k]
	return None


def _is_sep(sig: Sequence[Token], first: int) -> bool:
	"""True when sig[first] and sig[first + 1] form an adjacent `::`."""
	a = _at(sig, first)
	b = _at(sig, first + 1)
	return _is_punct(a, ":") and _is_punct(b, ":") and a.end_pos == b.start_pos


def _sep_after(sig: Sequence[Token], k: int) -> bool:
	return _is_sep(sig, k + 1) and not _is_punct(_at(sig, k + 3), "<")


def _continues_path(before: Token | None) -> bool:
	"""Does a `::` preceded by `before` continue an existing path?"""
	if before is None:
		return False
	if before.type == IDENT:
		return before not in _STARTING_KEYWORDS
	return _is_punct(before, ">")


def _starts_path(sig: Sequence[Token], k: int) -> bool:
	prev = _at(sig, k - 1)
	if prev is None:
		return True
	if prev.type == OTHER and prev in ("$", "'"):
		return False
	if _is_sep(sig, k - 2):
		return not _continues_path(_at(sig, k - 3))
	return True


def _is_extern_crate_arg(sig: Sequence[Token], k: int) -> bool:
	crate_kw = _at(sig, k - 1)
	extern_kw = _at(sig, k - 2)
	return (
		crate_kw is not None
		and extern_kw is not None
		and crate_kw.type == IDENT
		and crate_kw == "crate"
		and extern_kw.type == IDENT
		and extern_kw == "extern"
	)


def _starts_use_path(sig: Sequence[Token], k: int) -> bool:
	j = k - 1
	if _is_sep(sig, k - 2):
		# leading `::old`
		j = k - 3
	prev = _at(sig, j)
	if prev is None:
		return False
	if prev.type == IDENT:
		return prev == "use"
	return prev.type == OTHER and prev in ("{", ",")


def _ends_use_path(sig: Sequence[Token], k: int) -> bool:
	nxt = _at(sig, k + 1)
	if nxt is None:
		return False
	if nxt.type == IDENT:
		return nxt == "as"
	return nxt.type == OTHER and nxt in _USE_PATH_ENDERS


def find_references(spans: Iterable[Token], old_ident: str) -> list[Token]:
	"""Return the IDENT spans that refer to the package named `old_ident`, in order."""
	all_spans = list(spans)
	sig_index = [i for i, s in enumerate(all_spans) if _is_significant(s)]
	sig = [all_spans[i] for i in sig_index]

	found: list[Token] = []
	in_use = False
	# One entry per open `{` of the current use tree: does it continue a prefix?
	groups: list[bool] = []

	for k, tok in enumerate(sig):
		if tok.type == OTHER:
			if in_use:
				if tok == ";":
					in_use = False
					groups.clear()
				elif tok == "{":
					groups.append(_is_sep(sig, k - 2))
				elif tok == "}" and groups:
					groups.pop()
			continue
		if tok.type != IDENT:
			continue
		if tok == "use" and not in_use and not _is_punct(_at(sig, k - 1), "."):
			in_use = True
			groups.clear()
			continue
		if tok != old_ident:
			continue

		i = sig_index[k]
		before = all_spans[i - 1] if i > 0 else None
		after = all_spans[i + 1] if i + 1 < len(all_spans) else None
		if before is not None and is_ident_char(before[-1]):
			continue
		if after is not None and is_ident_char(after[0]):
			continue

		if _is_extern_crate_arg(sig, k):
			found.append(tok)
		elif in_use:
			if any(groups) or not _starts_use_path(sig, k):
				continue
			if _sep_after(sig, k) or _ends_use_path(sig, k):
				found.append(tok)
		elif _sep_after(sig, k) and _starts_path(sig, k):
			found.append(tok)
	return found


def rewrite_spans(spans: Iterable[Token], old_ident: str, new_ident: str) -> str:
	"""Reassemble `spans` with every qualifying `old_ident` replaced by `new_ident`."""
	all_spans = list(spans)
	hits = {t.start_pos for t in find_references(all_spans, old_ident)}
	if not hits:
		return "".join(all_spans)
	return "".join(new_ident if s.start_pos in hits else s for s in all_spans)


def rewrite_source(text: str, identity: PackageIdentity, path: str | None = None) -> str:
	"""
	Rewrite one auxiliary source file.

	The whole file is scanned even when the old name does not occur in it, so a
	malformed file is reported the same way regardless of its content.
	"""
	spans = list(SourceSpans(text, path))
	out = rewrite_spans(spans, identity.old_ident, identity.new_ident)
	if out != text:
		logger.debug("rewrote references to %s in %s", identity.old_ident, path or "<text>")
	return out
