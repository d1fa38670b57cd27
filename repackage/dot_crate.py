# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Repackage a `.crate` file on disk under a different package name.

If you rename `foo` to `bar` and pass `baz/foo-0.1.0.crate`, the result is
written to `baz/bar-0.1.0.crate` unless an explicit output path is given.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from repackage.archive import decode_entries, encode_to_bytes
from repackage.errors import InvalidName
from repackage.identity import infer_name_from_filename, renamed_file_name
from repackage.transform import RenameReport, TransformOptions, transform_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepackageOptions:
	crate_path: Path
	new_name: str
	old_name: str | None = None
	out_path: Path | None = None
	transform: TransformOptions = field(default_factory=TransformOptions)


@dataclass(frozen=True)
class RepackageResult:
	out_path: Path
	report: RenameReport

	def to_dict(self) -> dict[str, Any]:
		return {"out_path": str(self.out_path), **self.report.to_dict()}


def write_atomic(path: Path, data: bytes) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
	try:
		tmp.write_bytes(data)
		os.replace(tmp, path)
	except BaseException:
		tmp.unlink(missing_ok=True)
		raise


def _default_out_path(crate_path: Path, report: RenameReport) -> Path:
	name = renamed_file_name(crate_path.name, report.old_name, report.new_name)
	if name is None:
		name = f"{report.new_root}.crate" if report.new_root != report.old_root else f"{report.new_name}.crate"
	return crate_path.with_name(name)


def resolve_old_name(crate_path: Path, old_name: str | None) -> str | None:
	"""
	Settle the old name before the archive is read.

	A given name must agree with one inferred from the file name
	(`foo-0.1.0.crate`); with no given name the inferred one is used. None
	leaves the choice to the manifest.
	"""
	inferred = infer_name_from_filename(crate_path.name)
	if old_name is not None and inferred is not None and inferred != old_name:
		raise InvalidName(
			f".crate file '{crate_path}' does not match given old name '{old_name}'",
			reason_code="FILENAME_MISMATCH",
			path=str(crate_path),
			field="old_name",
		)
	return old_name if old_name is not None else inferred


def repackage_dot_crate(opts: RepackageOptions) -> RepackageResult:
	"""
	Repackage the crate in `opts.crate_path` as `opts.new_name`.

	The old name comes from `resolve_old_name`, or else from the manifest; either
	way the manifest must agree with it.
	"""
	crate_path = opts.crate_path
	old_name = resolve_old_name(crate_path, opts.old_name)

	with crate_path.open("rb") as f:
		entries = decode_entries(f)
	out_entries, report = transform_entries(entries, opts.new_name, old_name=old_name, options=opts.transform)
	data = encode_to_bytes(out_entries)

	out_path = opts.out_path if opts.out_path is not None else _default_out_path(crate_path, report)
	write_atomic(out_path, data)
	logger.info("wrote %s", out_path)
	return RepackageResult(out_path=out_path, report=report)
