# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Archive transformer: the rename pipeline over decoded `.crate` entries.

decode -> per-entry routing (manifest editor | reference rewriter |
pass-through) -> checksum regeneration -> encode.

The transform is a pure function from one entry list to another. Nothing is
written until the whole output archive has been built, so any error leaves the
destination untouched.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, BinaryIO, Sequence

from repackage.archive import Entry, decode_entries, encode_to_bytes
from repackage.checksum import (
	CHECKSUM_NAME,
	IntegrityFinding,
	IntegrityRecord,
	build_record,
	parse_record,
	serialize_record,
)
from repackage.errors import ArchiveError, ManifestError, ScanError
from repackage.identity import make_identity, root_dir_name
from repackage.manifest import MANIFEST_NAME, ORIG_MANIFEST_NAME, read_manifest, rename_manifest
from repackage.rewrite import rewrite_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformOptions:
	manifest_name: str = MANIFEST_NAME
	extra_manifest_names: tuple[str, ...] = (ORIG_MANIFEST_NAME,)
	primary_dir: str = "src"
	source_suffixes: tuple[str, ...] = (".rs",)
	checksum_name: str = CHECKSUM_NAME
	# Fail on a prior checksum that disagrees with the input bytes (otherwise: warn and recompute).
	strict_integrity: bool = True
	rename_root: bool = True


class Route(str, enum.Enum):
	MANIFEST = "manifest"
	PRIMARY = "primary"
	AUXILIARY = "auxiliary"
	PASS = "pass"
	RECORD = "record"


@dataclass(frozen=True)
class RenameReport:
	old_name: str
	new_name: str
	old_root: str
	new_root: str
	manifests: list[str]
	rewritten: list[str]
	checksum_regenerated: bool
	findings: list[IntegrityFinding] = field(default_factory=list)

	def to_dict(self) -> dict[str, Any]:
		return {
			"old_name": self.old_name,
			"new_name": self.new_name,
			"old_root": self.old_root,
			"new_root": self.new_root,
			"manifests": list(self.manifests),
			"rewritten": list(self.rewritten),
			"checksum_regenerated": self.checksum_regenerated,
			"findings": [f.to_dict() for f in self.findings],
		}


def classify(rel_path: str, options: TransformOptions) -> Route:
	"""Route a regular file by its path relative to the package root."""
	if rel_path == options.manifest_name or rel_path in options.extra_manifest_names:
		return Route.MANIFEST
	if rel_path == options.checksum_name:
		return Route.RECORD
	primary = options.primary_dir.strip("/")
	if primary and (rel_path == primary or rel_path.startswith(primary + "/")):
		return Route.PRIMARY
	if PurePosixPath(rel_path).suffix in options.source_suffixes:
		return Route.AUXILIARY
	return Route.PASS


def _package_root(entries: Sequence[Entry]) -> str:
	roots = sorted({e.path.split("/", 1)[0] for e in entries})
	if len(roots) != 1:
		raise ArchiveError(
			f"archive must have exactly one top-level directory, found {len(roots)}: {', '.join(roots[:5])}",
			reason_code="ROOT_NOT_UNIQUE",
		)
	root = roots[0]
	for e in entries:
		if e.path == root and e.is_file:
			raise ArchiveError("archive entries must live under a top-level directory", reason_code="ROOT_NOT_UNIQUE", path=e.path)
	return root


def _check_unique_paths(entries: Sequence[Entry]) -> None:
	seen: set[str] = set()
	for e in entries:
		if e.path in seen:
			raise ArchiveError("archive contains the same path twice", reason_code="DUPLICATE_ENTRY", path=e.path)
		seen.add(e.path)


def _relative(path: str, root: str) -> str:
	if path == root:
		return ""
	return path[len(root) + 1 :]


def _manifest_text(entry: Entry) -> str:
	try:
		return entry.data.decode("utf-8")
	except UnicodeDecodeError as err:
		raise ManifestError("manifest is not valid UTF-8", reason_code="MANIFEST_MALFORMED", path=entry.path, offset=err.start) from err


def _source_text(entry: Entry) -> str:
	try:
		return entry.data.decode("utf-8")
	except UnicodeDecodeError as err:
		raise ScanError("source file is not valid UTF-8", reason_code="SOURCE_NOT_UTF8", path=entry.path, offset=err.start) from err


def transform_entries(
	entries: Sequence[Entry],
	new_name: str,
	old_name: str | None = None,
	options: TransformOptions | None = None,
) -> tuple[list[Entry], RenameReport]:
	"""
	Rename the package held in `entries` to `new_name`.

	`old_name` defaults to the name declared in the root manifest; when given,
	the manifest must agree with it. Returns the new entries (same order, same
	metadata) and a report of what changed.
	"""
	opts = options or TransformOptions()
	if not entries:
		raise ArchiveError("archive is empty", reason_code="ARCHIVE_EMPTY")
	root = _package_root(entries)
	_check_unique_paths(entries)

	manifest_path = f"{root}/{opts.manifest_name}"
	manifest_entry = next((e for e in entries if e.path == manifest_path and e.is_file), None)
	if manifest_entry is None:
		raise ArchiveError(f"archive has no {opts.manifest_name} at its root", reason_code="MANIFEST_MISSING", path=manifest_path)
	info = read_manifest(_manifest_text(manifest_entry), path=manifest_entry.path)
	if old_name is None:
		logger.info("inferred old package name '%s' from %s", info.name, manifest_entry.path)
		old_name = info.name
	identity = make_identity(old_name, new_name)
	if info.name != identity.old_name:
		raise ManifestError(
			f"package name in manifest ('{info.name}') does not match the given name ('{identity.old_name}')",
			reason_code="MANIFEST_NAME_MISMATCH",
			path=manifest_entry.path,
			field="package.name",
		)

	new_root = root
	if opts.rename_root:
		if info.version is not None and root == root_dir_name(identity.old_name, info.version):
			new_root = root_dir_name(identity.new_name, info.version)
		else:
			logger.info("package root '%s' does not follow <name>-<version>; keeping it", root)

	rewrite_code = info.lib_name is None
	if not rewrite_code:
		logger.info("[lib] name '%s' is set explicitly; source references are unaffected by the rename", info.lib_name)

	out: list[Entry] = []
	manifests: list[str] = []
	rewritten: list[str] = []
	hashed: list[tuple[str, bytes, bytes]] = []
	prior: IntegrityRecord | None = None
	record_slot: int | None = None

	for e in entries:
		rel = _relative(e.path, root)
		new_path = new_root if rel == "" else f"{new_root}/{rel}"
		route = classify(rel, opts) if e.is_file and rel else Route.PASS
		data = e.data

		if route is Route.RECORD:
			prior = parse_record(e.data, path=e.path)
			record_slot = len(out)
			out.append(e.with_path(new_path))
			continue

		if route is Route.MANIFEST:
			text = _manifest_text(e)
			data = rename_manifest(text, identity.new_name, old_name=identity.old_name, path=e.path).encode("utf-8")
			manifests.append(rel)
		elif route is Route.AUXILIARY and rewrite_code:
			text = _source_text(e)
			new_text = rewrite_source(text, identity, path=e.path)
			if new_text != text:
				data = new_text.encode("utf-8")
				rewritten.append(rel)

		if e.is_file:
			hashed.append((rel, e.data, data))
		out.append(e.with_path(new_path).with_data(data))

	findings: list[IntegrityFinding] = []
	if prior is not None and record_slot is not None:
		record_entry = out[record_slot]
		record, findings = build_record(hashed, prior, strict=opts.strict_integrity, record_path=record_entry.path)
		out[record_slot] = record_entry.with_data(serialize_record(record))
	else:
		logger.debug("no %s in archive; not generating one", opts.checksum_name)

	report = RenameReport(
		old_name=identity.old_name,
		new_name=identity.new_name,
		old_root=root,
		new_root=new_root,
		manifests=manifests,
		rewritten=rewritten,
		checksum_regenerated=prior is not None,
		findings=findings,
	)
	logger.info(
		"renamed %s -> %s: %d manifest(s), %d source file(s) rewritten",
		identity.old_name,
		identity.new_name,
		len(manifests),
		len(rewritten),
	)
	return out, report


def transform_stream(
	src: BinaryIO,
	dst: BinaryIO,
	new_name: str,
	old_name: str | None = None,
	options: TransformOptions | None = None,
) -> RenameReport:
	"""Decode `src`, rename, and write the new archive to `dst` in one write."""
	entries = decode_entries(src)
	out, report = transform_entries(entries, new_name, old_name=old_name, options=options)
	dst.write(encode_to_bytes(out))
	return report
