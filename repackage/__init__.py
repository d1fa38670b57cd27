# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
repackage: rename a packaged Rust crate (`.crate` archive).

The `name` in `Cargo.toml` is replaced, and references to the old name in the
`.rs` files that live outside `src/` (tests, examples, benches, build scripts)
are rewritten. Files in `src/` refer to their own crate as `crate::` and are
left alone.

Rewriting .rs files is best effort: it relies on a lexical scan plus a few
structural rules (`old::path`, `extern crate old`, `use old`) rather than name
resolution. Strings and comments are never rewritten.
"""

from __future__ import annotations

from repackage.dot_crate import RepackageOptions, RepackageResult, repackage_dot_crate
from repackage.errors import (
	ArchiveError,
	IntegrityMismatch,
	InvalidName,
	ManifestError,
	RepackageError,
	ScanError,
)
from repackage.identity import PackageIdentity, make_identity
from repackage.transform import RenameReport, TransformOptions, transform_entries, transform_stream

__all__ = [
	"ArchiveError",
	"IntegrityMismatch",
	"InvalidName",
	"ManifestError",
	"PackageIdentity",
	"RenameReport",
	"RepackageError",
	"RepackageOptions",
	"RepackageResult",
	"ScanError",
	"TransformOptions",
	"make_identity",
	"repackage_dot_crate",
	"transform_entries",
	"transform_stream",
]
