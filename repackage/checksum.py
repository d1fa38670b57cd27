# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Integrity record (`.cargo-checksum.json`) verification and regeneration.

The record maps root-relative file paths to sha256 hex digests. Two shapes are
accepted and preserved on output:

- flat: `{"<path>": "<hex>", ...}`
- Cargo vendor: `{"files": {"<path>": "<hex>", ...}, "package": "<hex>" | null}`

`package` is the hash of the whole `.crate` file, which a rename necessarily
changes, so it is always written back as null.

"No record in the archive" is `None` throughout and is never turned into an
empty record: archives without one are left without one.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable

from repackage.errors import ArchiveError, IntegrityMismatch

logger = logging.getLogger(__name__)

CHECKSUM_NAME = ".cargo-checksum.json"

_HEX_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")


def sha256_hex(data: bytes) -> str:
	"""Return sha256 hex digest for `data`."""
	return hashlib.sha256(data).hexdigest()


def canonical_json_bytes(obj: Any) -> bytes:
	"""
	Render JSON deterministically.

	Rules:
	- UTF-8
	- no insignificant whitespace
	- stable key ordering
	"""
	return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class IntegrityRecord:
	files: dict[str, str]
	wrapped: bool = False


@dataclass(frozen=True)
class IntegrityFinding:
	"""Something about the prior record that was tolerated rather than fatal."""

	kind: str  # "unrecorded" | "stale" | "mismatch"
	path: str
	sha256_expected: str | None = None
	sha256_got: str | None = None

	def to_dict(self) -> dict[str, Any]:
		return {
			"kind": self.kind,
			"path": self.path,
			"sha256_expected": self.sha256_expected,
			"sha256_got": self.sha256_got,
		}


def parse_record(data: bytes, path: str | None = None) -> IntegrityRecord:
	try:
		obj = json.loads(data.decode("utf-8"))
	except (UnicodeDecodeError, json.JSONDecodeError) as err:
		raise ArchiveError(f"checksum record is not valid JSON: {err}", reason_code="CHECKSUM_MALFORMED", path=path) from err
	if not isinstance(obj, dict):
		raise ArchiveError("checksum record must be a JSON object", reason_code="CHECKSUM_MALFORMED", path=path)

	wrapped = isinstance(obj.get("files"), dict)
	if wrapped:
		unknown = sorted(set(obj.keys()) - {"files", "package"})
		if unknown:
			raise ArchiveError(
				f"checksum record has unknown top-level fields: {', '.join(unknown)}",
				reason_code="CHECKSUM_MALFORMED",
				path=path,
			)
		files_obj = obj["files"]
	else:
		files_obj = obj

	files: dict[str, str] = {}
	for rel, digest in files_obj.items():
		if not isinstance(rel, str) or not rel:
			raise ArchiveError("checksum record keys must be non-empty strings", reason_code="CHECKSUM_MALFORMED", path=path)
		if not isinstance(digest, str) or not _HEX_SHA256_RE.match(digest):
			raise ArchiveError(
				f"checksum record entry for '{rel}' is not a sha256 hex digest",
				reason_code="CHECKSUM_MALFORMED",
				path=path,
				field=rel,
			)
		files[rel] = digest
	return IntegrityRecord(files=files, wrapped=wrapped)


def serialize_record(record: IntegrityRecord) -> bytes:
	files = dict(sorted(record.files.items()))
	if record.wrapped:
		return canonical_json_bytes({"files": files, "package": None})
	return canonical_json_bytes(files)


def build_record(
	files: Iterable[tuple[str, bytes, bytes]],
	prior: IntegrityRecord,
	*,
	strict: bool = True,
	record_path: str | None = None,
) -> tuple[IntegrityRecord, list[IntegrityFinding]]:
	"""
	Regenerate the record for the final archive contents.

	`files` yields `(rel_path, input_bytes, output_bytes)` for every regular
	file except the record itself. Input bytes are checked against the prior
	hash first: a mismatch means the archive was already inconsistent before we
	touched it, which is fatal in strict mode.
	"""
	out: dict[str, str] = {}
	findings: list[IntegrityFinding] = []
	for rel, before, after in files:
		expected = prior.files.get(rel)
		got = sha256_hex(before)
		if expected is None:
			findings.append(IntegrityFinding(kind="unrecorded", path=rel, sha256_got=got))
			logger.warning("checksum record has no entry for %s; adding one", rel)
		elif expected != got:
			if strict:
				raise IntegrityMismatch(
					f"recorded checksum for '{rel}' does not match its contents; the input archive looks corrupt",
					path=record_path,
					field=rel,
					sha256_expected=expected,
					sha256_got=got,
				)
			findings.append(IntegrityFinding(kind="mismatch", path=rel, sha256_expected=expected, sha256_got=got))
			logger.warning("recorded checksum for %s does not match its contents; recomputing", rel)
		if before is after or before == after:
			out[rel] = got
		else:
			out[rel] = sha256_hex(after)

	for rel in sorted(set(prior.files) - set(out)):
		findings.append(IntegrityFinding(kind="stale", path=rel, sha256_expected=prior.files[rel]))
		logger.warning("checksum record lists %s, which is not in the archive; dropping it", rel)

	return IntegrityRecord(files=out, wrapped=prior.wrapped), findings
