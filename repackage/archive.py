# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
`.crate` archive codec (gzip-compressed tar).

This is the only module that knows about tar and gzip. Everything else works
on the ordered `Entry` list it decodes to and encodes from.

Output is deterministic: GNU tar headers, gzip level 9 (what Cargo uses) with a
zero gzip timestamp and no embedded file name. Entry order and the per-entry
header fields (mode, mtime, owner, type) are carried over unchanged.
"""

from __future__ import annotations

import gzip
import io
import tarfile
import zlib
from dataclasses import dataclass, replace
from pathlib import PurePosixPath
from typing import BinaryIO, Iterable

from repackage.errors import ArchiveError

GZIP_LEVEL = 9


@dataclass(frozen=True)
class Entry:
	"""One archive member. `path` is the full archive path, POSIX separators."""

	path: str
	data: bytes
	mode: int = 0o644
	mtime: int = 0
	uid: int = 0
	gid: int = 0
	uname: str = ""
	gname: str = ""
	kind: bytes = tarfile.REGTYPE
	linkname: str = ""

	@property
	def is_file(self) -> bool:
		return self.kind in (tarfile.REGTYPE, tarfile.AREGTYPE)

	def with_data(self, data: bytes) -> Entry:
		return replace(self, data=data)

	def with_path(self, path: str) -> Entry:
		return replace(self, path=path)


def normalize_entry_path(name: str) -> str:
	p = PurePosixPath(name.replace("\\", "/"))
	if p.is_absolute():
		raise ArchiveError(f"archive entry has an absolute path: {name}", reason_code="UNSAFE_PATH", path=name)
	if not p.parts or str(p) == ".":
		raise ArchiveError("archive entry has an empty path", reason_code="UNSAFE_PATH", path=name)
	if any(part in (".", "..") for part in p.parts):
		raise ArchiveError(f"archive entry path must not contain '.' or '..': {name}", reason_code="UNSAFE_PATH", path=name)
	return str(p)


def decode_entries(stream: BinaryIO) -> list[Entry]:
	"""Read a gzip'd tar stream fully into an ordered list of entries."""
	entries: list[Entry] = []
	try:
		with tarfile.open(fileobj=stream, mode="r:gz") as tf:
			for member in tf:
				path = normalize_entry_path(member.name)
				data = b""
				if member.isfile():
					f = tf.extractfile(member)
					if f is None:
						raise ArchiveError("could not read archive entry", path=path)
					data = f.read()
					if len(data) != member.size:
						raise ArchiveError("archive entry is truncated", path=path)
				elif not (member.isdir() or member.issym() or member.islnk()):
					raise ArchiveError(f"unsupported archive entry type {member.type!r}", path=path)
				entries.append(
					Entry(
						path=path,
						data=data,
						mode=member.mode,
						mtime=int(member.mtime),
						uid=member.uid,
						gid=member.gid,
						uname=member.uname,
						gname=member.gname,
						kind=member.type,
						linkname=member.linkname,
					)
				)
	except (tarfile.TarError, EOFError, gzip.BadGzipFile, zlib.error) as err:
		raise ArchiveError(f"malformed .crate archive: {err}") from err
	return entries


def encode_entries(entries: Iterable[Entry], stream: BinaryIO) -> None:
	"""Write `entries`, in order, as a gzip'd tar stream."""
	with gzip.GzipFile(filename="", mode="wb", fileobj=stream, compresslevel=GZIP_LEVEL, mtime=0) as gz:
		with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tf:
			for e in entries:
				info = tarfile.TarInfo(name=e.path)
				info.size = len(e.data) if e.is_file else 0
				info.mode = e.mode
				info.mtime = e.mtime
				info.uid = e.uid
				info.gid = e.gid
				info.uname = e.uname
				info.gname = e.gname
				info.type = e.kind
				info.linkname = e.linkname
				tf.addfile(info, io.BytesIO(e.data) if e.is_file else None)


def encode_to_bytes(entries: Iterable[Entry]) -> bytes:
	buf = io.BytesIO()
	encode_entries(entries, buf)
	return buf.getvalue()


def decode_from_bytes(data: bytes) -> list[Entry]:
	return decode_entries(io.BytesIO(data))
