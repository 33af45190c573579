# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Variant serialization entry point.

`serialize_variant` picks one of two paths per variant:
- external: the variant carries a pre-built object, embedded verbatim with no
  debug attachments;
- generated: the variant carries shader modules; ordinals are resolved, every
  module is encoded and debug attachments are collected.

Both paths end in the same SPVX-EXE container. Serialization is a pure
function of the variant (dumps aside), so callers may serialize different
variants concurrently. Any error aborts the variant; no partial artifact is
ever returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from spvx.spvxc.core.errors import EncodingError, InputShapeError, SerializationError
from spvx.spvxc.ir.model import ProgramVariant, SerializationOptions
from spvx.spvxc.packages.debug_info import collect_source_files, collect_source_location, collect_stage_locations
from spvx.spvxc.packages.module_encoder import encode_external_variant, encode_generated_module, load_external_binary
from spvx.spvxc.packages.ordinals import resolve_ordinals
from spvx.spvxc.packages.spvx_exe_v0 import MIME_TYPE, ContainerFormatError, ExecutableBuilder, ExecutableDef, encode_executable_v0

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Artifact:
	"""Serialized executable ready to be attached to the enclosing build product."""

	name: str
	format: str
	mime_type: str
	data: bytes
	executable: ExecutableDef

	def write_to(self, path: Path) -> None:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(self.data)


def check_variant_inputs(variant: ProgramVariant) -> None:
	"""Reject variants that carry both or neither kind of input."""
	if variant.is_external and variant.modules:
		raise InputShapeError(
			"mixed-inputs",
			"variant carries both shader modules and external objects",
			variant=variant.name,
		)
	if not variant.is_external and not variant.modules:
		raise InputShapeError("no-inputs", "variant should contain some shader modules", variant=variant.name)


def _serialize_external(variant: ProgramVariant) -> ExecutableDef:
	data = load_external_binary(variant)
	return encode_external_variant(variant, data).finish()


def _serialize_generated(variant: ProgramVariant, options: SerializationOptions) -> ExecutableDef:
	ordinals = resolve_ordinals(variant.entry_points, variant=variant.name)
	exports = {ep.name: ep for ep in variant.entry_points}
	builder = ExecutableBuilder(ordinals.count, variant=variant.name)

	for module in variant.modules:
		encoded = encode_generated_module(module, ordinals, builder, options, variant=variant.name)
		collect_source_location(
			builder,
			encoded.ordinal,
			encoded.entry_point,
			exports.get(encoded.entry_point.fn),
			options.debug_level,
		)
	collect_stage_locations(builder, ordinals, variant.entry_points, options.debug_level)
	collect_source_files(builder, variant.sources)
	return builder.finish()


def serialize_variant(variant: ProgramVariant, options: Optional[SerializationOptions] = None) -> Artifact:
	"""
	Serialize `variant` into an `Artifact`.

	`options` overrides the variant's own serialization options when given.
	Raises a `SerializationError` subclass on any input/encoding failure.
	"""
	opts = options if options is not None else variant.options
	try:
		check_variant_inputs(variant)
		if variant.is_external:
			logger.debug("serialize_variant", variant=variant.name, path="external")
			defn = _serialize_external(variant)
		else:
			logger.debug("serialize_variant", variant=variant.name, path="generated", modules=len(variant.modules))
			defn = _serialize_generated(variant, opts)
		try:
			data = encode_executable_v0(defn)
		except ContainerFormatError as err:
			raise EncodingError("container-encode-failed", f"failed to encode executable: {err}") from err
	except SerializationError as err:
		raise err.with_variant(variant.name)
	return Artifact(name=variant.name, format=variant.format, mime_type=MIME_TYPE, data=data, executable=defn)


__all__ = ["Artifact", "check_variant_inputs", "serialize_variant"]
