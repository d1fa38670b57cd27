# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import io
import json
import logging
import sys
from pathlib import Path
from typing import Any

from repackage.dot_crate import RepackageOptions, repackage_dot_crate, resolve_old_name, write_atomic
from repackage.errors import RepackageError
from repackage.transform import TransformOptions, transform_stream

_LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="repackage", description="Repackage a .crate file under a different package name")
	p.add_argument("crate", type=str, help="Path to the .crate file, or '-' to read it from stdin")
	p.add_argument("new_name", type=str, help="New package name")
	p.add_argument(
		"--old-name",
		type=str,
		default=None,
		help="Current package name; checked against the file name and Cargo.toml (default: inferred)",
	)
	p.add_argument(
		"--out",
		type=str,
		default=None,
		help="Output path, or '-' for stdout (default: <new-name>-<version>.crate next to the input; stdout when reading stdin)",
	)
	p.add_argument("--primary-dir", type=str, default="src", help="Directory whose files are never rewritten (default: src)")
	p.add_argument(
		"--lenient-integrity",
		action="store_true",
		help="Warn and recompute instead of failing when .cargo-checksum.json disagrees with the archive",
	)
	p.add_argument(
		"--keep-root",
		action="store_true",
		help="Keep the archive's top-level directory name instead of renaming <old>-<version>/",
	)
	p.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")
	p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")
	return p


def _emit(obj: dict[str, Any], *, as_json: bool, stream) -> None:
	if as_json:
		print(json.dumps(obj, sort_keys=True, separators=(",", ":")), file=stream)
		return
	line = f"repackaged {obj['old_name']} -> {obj['new_name']}"
	if obj.get("out_path"):
		line += f": {obj['out_path']}"
	print(line, file=stream)
	for finding in obj.get("findings") or []:
		print(f"- checksum {finding['kind']}: {finding['path']}", file=stream)


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	logging.basicConfig(
		level=_LOG_LEVELS[min(args.verbose, len(_LOG_LEVELS) - 1)],
		format="%(levelname)s %(name)s: %(message)s",
		stream=sys.stderr,
	)

	transform_opts = TransformOptions(
		primary_dir=args.primary_dir,
		strict_integrity=not args.lenient_integrity,
		rename_root=not args.keep_root,
	)
	to_stdout = args.out == "-" or (args.crate == "-" and args.out is None)
	report_stream = sys.stderr if to_stdout else sys.stdout

	try:
		if args.crate != "-" and not to_stdout:
			opts = RepackageOptions(
				crate_path=Path(args.crate),
				new_name=args.new_name,
				old_name=args.old_name,
				out_path=Path(args.out) if args.out is not None else None,
				transform=transform_opts,
			)
			result = repackage_dot_crate(opts)
			obj = result.to_dict()
		else:
			buf = io.BytesIO()
			if args.crate == "-":
				report = transform_stream(sys.stdin.buffer, buf, args.new_name, old_name=args.old_name, options=transform_opts)
			else:
				crate_path = Path(args.crate)
				old_name = resolve_old_name(crate_path, args.old_name)
				with crate_path.open("rb") as src:
					report = transform_stream(src, buf, args.new_name, old_name=old_name, options=transform_opts)
			obj = report.to_dict()
			if to_stdout:
				sys.stdout.buffer.write(buf.getvalue())
				sys.stdout.buffer.flush()
				obj["out_path"] = None
			else:
				write_atomic(Path(args.out), buf.getvalue())
				obj["out_path"] = args.out
	except RepackageError as err:
		if args.json:
			print(json.dumps({"ok": False, "error": err.to_dict()}, sort_keys=True, separators=(",", ":")), file=report_stream)
		else:
			print(err.format_human(), file=sys.stderr)
		return 2
	except OSError as err:
		print(f"[IO_ERROR] {err}", file=sys.stderr)
		return 2

	_emit({"ok": True, **obj}, as_json=args.json, stream=report_stream)
	return 0
