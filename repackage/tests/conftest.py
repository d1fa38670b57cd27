# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import hashlib
import io
import json
import tarfile
from typing import Callable

import pytest

DEMO_MANIFEST = """\
# THIS FILE IS AUTOMATICALLY GENERATED BY CARGO
[package]
edition = "2021"
name = "foo"
version = "0.1.0"
description = "foo does foo things"

[dependencies.foo-macros]
version = "0.1"
"""

DEMO_LIB = """\
pub struct Thing;

pub fn make() -> crate::Thing {
	Thing
}
"""

DEMO_EXAMPLE = 'use foo::Thing; extern crate foo as f; let s = "foo is great";\n'


def _crate_bytes(files: list[tuple[str, str | bytes]], root: str = "foo-0.1.0", mtime: int = 1_600_000_000) -> bytes:
	buf = io.BytesIO()
	with tarfile.open(fileobj=buf, mode="w:gz", format=tarfile.GNU_FORMAT) as tf:
		for rel, content in files:
			data = content.encode("utf-8") if isinstance(content, str) else content
			info = tarfile.TarInfo(name=f"{root}/{rel}" if root else rel)
			info.size = len(data)
			info.mode = 0o644
			info.mtime = mtime
			tf.addfile(info, io.BytesIO(data))
	return buf.getvalue()


def _checksum_json(files: list[tuple[str, str | bytes]]) -> str:
	record = {}
	for rel, content in files:
		data = content.encode("utf-8") if isinstance(content, str) else content
		record[rel] = hashlib.sha256(data).hexdigest()
	return json.dumps({"files": record, "package": "0" * 64})


@pytest.fixture
def make_crate() -> Callable[..., bytes]:
	return _crate_bytes


@pytest.fixture
def checksum_json() -> Callable[[list[tuple[str, str | bytes]]], str]:
	return _checksum_json


@pytest.fixture
def demo_files() -> list[tuple[str, str | bytes]]:
	"""The end-to-end `foo` crate: manifest, library, one example, one binary asset."""
	return [
		("Cargo.toml", DEMO_MANIFEST),
		("src/lib.rs", DEMO_LIB),
		("examples/demo.rs", DEMO_EXAMPLE),
		("LICENSE", "MIT, foo::everything\n"),
		("assets/logo.png", b"\x89PNG\r\n\x1a\n\x00\xff foo::"),
	]
