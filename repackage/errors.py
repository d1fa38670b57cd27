# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RepackageError(Exception):
	"""
	A structured, serializable error raised while renaming a package archive.

	Every error carries enough context (entry path, offset, manifest field,
	hashes) to diagnose the failure without rerunning with extra verbosity.
	"""

	message: str
	reason_code: str = "REPACKAGE_ERROR"
	path: str | None = None
	offset: int | None = None
	field: str | None = None
	sha256_expected: str | None = None
	sha256_got: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"path": self.path,
			"offset": self.offset,
			"field": self.field,
			"sha256_expected": self.sha256_expected,
			"sha256_got": self.sha256_got,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.path:
			parts.append(f"path={self.path}")
		if self.offset is not None:
			parts.append(f"offset={self.offset}")
		if self.field:
			parts.append(f"field={self.field}")
		if self.sha256_expected or self.sha256_got:
			parts.append(f"sha256_expected={self.sha256_expected}")
			parts.append(f"sha256_got={self.sha256_got}")
		return " ".join(parts)


@dataclass(frozen=True)
class InvalidName(RepackageError):
	"""Old/new package name fails validation, or the rename is a no-op."""

	reason_code: str = "INVALID_NAME"


@dataclass(frozen=True)
class ScanError(RepackageError):
	"""Source text could not be tokenized (unterminated literal or comment)."""

	reason_code: str = "SCAN_UNTERMINATED"


@dataclass(frozen=True)
class ManifestError(RepackageError):
	reason_code: str = "MANIFEST_MALFORMED"


@dataclass(frozen=True)
class ArchiveError(RepackageError):
	reason_code: str = "ARCHIVE_MALFORMED"


@dataclass(frozen=True)
class IntegrityMismatch(RepackageError):
	"""A prior checksum record disagrees with the bytes actually in the archive."""

	reason_code: str = "INTEGRITY_MISMATCH"
