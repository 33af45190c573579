# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shader module encoding.

Two production paths feed the same container:
- generated modules are serialized by their backend hook, one entry point per
  module, and bound to the entry point's ordinal;
- an external variant embeds exactly one pre-built SPIR-V object verbatim, and
  every entry point maps to that single module.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

import structlog

from spvx.spvxc.core.errors import EncodingError, InputShapeError, LoadError
from spvx.spvxc.ir.model import BackendFailure, ModuleEntryPoint, ProgramVariant, SerializationOptions, ShaderModule, words_to_bytes
from spvx.spvxc.packages.dump import BINARY_SUFFIX, INTERMEDIATE_SUFFIX, dump_data_to_path
from spvx.spvxc.packages.ordinals import OrdinalMap
from spvx.spvxc.packages.spvx_exe_v0 import U32_MAX, ExecutableBuilder

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EncodedModule:
	"""Where a generated module landed in the container."""

	ordinal: int
	module_index: int
	entry_point: ModuleEntryPoint


def single_entry_point(module: ShaderModule, *, variant: str | None = None) -> ModuleEntryPoint:
	"""Return the module's only entry point or fail."""
	if len(module.entry_points) != 1:
		raise InputShapeError(
			"module-entry-count",
			f"module '{module.name}' expected to contain exactly one entry point, found {len(module.entry_points)}",
			variant=variant,
			module=module.name,
		)
	return module.entry_points[0]


def _serialize_words(module: ShaderModule, entry: str, *, variant: str | None) -> list[int]:
	try:
		words = module.serialize()
	except BackendFailure as err:
		raise EncodingError(
			"serialize-failed",
			f"failed to serialize module '{module.name}': {err}",
			variant=variant,
			entry=entry,
			module=module.name,
		) from err
	if not words:
		raise EncodingError(
			"serialize-failed",
			f"failed to serialize module '{module.name}': backend produced an empty binary",
			variant=variant,
			entry=entry,
			module=module.name,
		)
	return words


def encode_generated_module(
	module: ShaderModule,
	ordinals: OrdinalMap,
	builder: ExecutableBuilder,
	options: SerializationOptions,
	*,
	variant: str | None = None,
) -> EncodedModule:
	"""
	Serialize one generated module into `builder`.

	Records the module blob, binds its index and entry point name to the entry
	point's ordinal and records the entry's subgroup size hint (0 when absent).
	"""
	ep = single_entry_point(module, variant=variant)
	ordinal = ordinals.ordinal_of(ep.fn)
	if ordinal is None:
		raise InputShapeError(
			"unknown-entry",
			f"module '{module.name}' entry point '{ep.fn}' is not exported by the variant",
			variant=variant,
			entry=ep.fn,
			module=module.name,
		)
	if ep.subgroup_size is not None and not 0 <= ep.subgroup_size <= U32_MAX:
		raise InputShapeError(
			"invalid-subgroup-size",
			f"module '{module.name}' entry point '{ep.fn}' subgroup size {ep.subgroup_size} does not fit in u32",
			variant=variant,
			entry=ep.fn,
			module=module.name,
		)

	if options.dump_intermediates_path is not None and module.assembly is not None:
		dump_data_to_path(options.dump_intermediates_path, options.dump_base_name, ep.fn, INTERMEDIATE_SUFFIX, module.assembly)

	words = _serialize_words(module, ep.fn, variant=variant)
	try:
		code = words_to_bytes(words)
	except struct.error as err:
		raise EncodingError(
			"serialize-failed",
			f"failed to serialize module '{module.name}': {err}",
			variant=variant,
			entry=ep.fn,
			module=module.name,
		) from err

	if options.dump_binaries_path is not None:
		dump_data_to_path(options.dump_binaries_path, options.dump_base_name, ep.fn, BINARY_SUFFIX, code)

	module_index = builder.add_shader_module(code)
	builder.set_entry_point(ordinal, ep.fn, module_index)
	builder.set_subgroup_size(ordinal, ep.subgroup_size)
	logger.debug("module_encoded", variant=variant, module=module.name, entry=ep.fn, ordinal=ordinal, words=len(words))
	return EncodedModule(ordinal=ordinal, module_index=module_index, entry_point=ep)


def load_external_binary(variant: ProgramVariant) -> bytes:
	"""
	Load the single external object of `variant` and check SPIR-V alignment.

	All checks run before anything is added to a container.
	"""
	objects = variant.objects or ()
	if not objects:
		raise InputShapeError("object-count", "no objects defined for external variant", variant=variant.name)
	if len(objects) != 1:
		raise InputShapeError(
			"object-count",
			f"only one object reference is supported for external variants, found {len(objects)}",
			variant=variant.name,
		)
	obj = objects[0]
	try:
		data = obj.load_data()
	except OSError as err:
		raise LoadError("object-load-failed", f"object file could not be loaded: {obj}: {err}", variant=variant.name) from err
	if data is None:
		raise LoadError("object-load-failed", f"object file could not be loaded: {obj}", variant=variant.name)
	if len(data) % 4 != 0:
		raise EncodingError(
			"misaligned-object",
			f"object file is not 4-byte aligned as expected for SPIR-V ({len(data)} bytes)",
			variant=variant.name,
		)
	return data


def encode_external_variant(variant: ProgramVariant, data: bytes) -> ExecutableBuilder:
	"""
	Populate a builder for an external variant.

	Entry point names are taken verbatim in declaration order; there is only one
	object so every entry point uses shader module index 0.
	"""
	builder = ExecutableBuilder(len(variant.entry_points), variant=variant.name)
	module_index = builder.add_shader_module(data)
	for position, ep in enumerate(variant.entry_points):
		builder.set_entry_point(position, ep.name, module_index)
	logger.debug("external_encoded", variant=variant.name, entries=len(variant.entry_points), words=len(data) // 4)
	return builder


__all__ = [
	"EncodedModule",
	"encode_external_variant",
	"encode_generated_module",
	"load_external_binary",
	"single_entry_point",
]
