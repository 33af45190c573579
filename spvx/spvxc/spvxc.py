# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
spvxc driver: serialize a described program variant into an SPVX-EXE file.

	python -m spvx.spvxc variant.json -o out.spvx [--target rdna3] [--debug-level 3]

The variant description format is documented in `spvx.spvxc.ir.manifest`.
With --json, diagnostics are printed as structured records
(phase/code/message/severity/file/line/column).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from spvx.spvxc.core.diagnostics import Diagnostic
from spvx.spvxc.core.errors import SerializationError
from spvx.spvxc.core.log import configure_logging
from spvx.spvxc.ir.manifest import load_variant_description
from spvx.spvxc.ir.model import SerializationOptions
from spvx.spvxc.packages.serializer import Artifact, serialize_variant
from spvx.spvxc.target.vulkan import DEFAULT_TARGET, VulkanTargetOptions, executable_target


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="spvxc", description="Serialize a SPIR-V program variant into an SPVX-EXE container")
	p.add_argument("description", type=Path, help="Path to the variant description (JSON)")
	p.add_argument("-o", "--output", type=Path, required=True, help="Path to the output container")
	p.add_argument(
		"--target",
		type=str,
		default=DEFAULT_TARGET,
		help="Vulkan target: 'gfx*'/'sm_*', an architecture ('rdna3', 'ampere', ...), a product ('rtx4090', ...) "
		f"or a profile (default: {DEFAULT_TARGET})",
	)
	p.add_argument("--indirect-bindings", action="store_true", help="Force indirect bindings for all variants")
	p.add_argument("--debug-level", type=int, default=0, help="0: no debug info, 1: source locations, 3: also stage locations")
	p.add_argument("--dump-intermediates", type=Path, default=None, help="Directory for module assembly dumps")
	p.add_argument("--dump-binaries", type=Path, default=None, help="Directory for module binary dumps")
	p.add_argument("--dump-base-name", type=str, default="module", help="Base file name for dumps (default: module)")
	p.add_argument("--json", action="store_true", help="Emit diagnostics as JSON")
	p.add_argument("--print-summary", action="store_true", help="Print the decoded container as JSON")
	p.add_argument(
		"--log-level",
		choices=("debug", "info", "warning", "error"),
		default="warning",
		help="Log level for stderr events (default: warning)",
	)
	return p


def _summary(artifact: Artifact) -> dict[str, Any]:
	return {
		"name": artifact.name,
		"format": artifact.format,
		"mime_type": artifact.mime_type,
		"size": len(artifact.data),
		"executable": artifact.executable.to_json(),
	}


def _report(diag: Diagnostic, *, as_json: bool) -> None:
	if as_json:
		print(json.dumps({"exit_code": 1, "diagnostics": [diag.to_json()]}))
	else:
		print(diag.format_human(), file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
	"""
	CLI entry point. Returns 0 on success and 1 on any serialization error.
	"""
	args = _build_parser().parse_args(argv)
	configure_logging(args.log_level)
	source = str(args.description)

	try:
		options = SerializationOptions(
			debug_level=args.debug_level,
			dump_intermediates_path=args.dump_intermediates,
			dump_binaries_path=args.dump_binaries,
			dump_base_name=args.dump_base_name,
		)
		target = executable_target(VulkanTargetOptions(target=args.target, indirect_bindings=args.indirect_bindings))
		variant = load_variant_description(args.description, default_format=target.format, options=options)
		artifact = serialize_variant(variant)
	except SerializationError as err:
		_report(Diagnostic.from_error(err, file=source), as_json=args.json)
		return 1

	try:
		artifact.write_to(args.output)
	except OSError as err:
		_report(
			Diagnostic(message=f"cannot write '{args.output}': {err.strerror}", code="write-failed", phase="emit", file=source),
			as_json=args.json,
		)
		return 1

	if args.json:
		payload: dict[str, Any] = {"exit_code": 0, "diagnostics": []}
		if args.print_summary:
			payload["artifact"] = _summary(artifact)
		print(json.dumps(payload))
	elif args.print_summary:
		print(json.dumps(_summary(artifact), indent=2))
	return 0


if __name__ == "__main__":
	sys.exit(main())
