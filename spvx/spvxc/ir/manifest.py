# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
JSON variant descriptions.

The CLI consumes program variants described as JSON:

	{
	  "name": "dispatch_0",
	  "format": "vulkan-spirv-fb",            (optional)
	  "entry_points": [
	    {"name": "main_0", "ordinal": 0, "loc": "\"a.mlir\":3:1",
	     "source_locs": {"0.input": "\"a.mlir\":3:1"}}
	  ],
	  "modules": [
	    {"name": "m0", "entry_points": [{"fn": "main_0", "subgroup_size": 64}],
	     "spirv": "m0.spv" | "words": [...], "assembly": "..."}
	  ],
	  "objects": [{"path": "prebuilt.spv"} | {"data_hex": "..."}],
	  "sources": [{"path": "a.mlir", "content": "..." | "content_hex": "..." | "file": "a.mlir"}]
	}

Relative paths resolve against the description's directory. Location strings
use the syntax accepted by `spvx.spvxc.core.loc_text`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Optional

from spvx.spvxc.core.errors import InputShapeError
from spvx.spvxc.core.loc_text import LocationSyntaxError, parse_location
from spvx.spvxc.core.location import Location
from spvx.spvxc.ir.model import (
	BackendFailure,
	EntryPoint,
	ExternalObject,
	ModuleEntryPoint,
	ProgramVariant,
	SerializationOptions,
	ShaderModule,
	SourceFile,
	words_from_bytes,
)


_U32_MAX = 0xFFFFFFFF


def _invalid(message: str, *, variant: str | None = None) -> InputShapeError:
	return InputShapeError("invalid-variant-description", message, variant=variant)


class SpirvFileBackend:
	"""Backend hook reading pre-serialized SPIR-V words from a `.spv` file."""

	def __init__(self, path: Path) -> None:
		self.path = path

	def __call__(self) -> list[int]:
		try:
			data = self.path.read_bytes()
		except OSError as err:
			raise BackendFailure(f"cannot read '{self.path}': {err.strerror}") from err
		try:
			return words_from_bytes(data)
		except ValueError as err:
			raise BackendFailure(f"'{self.path}': {err}") from err


def _loc(value: Any, what: str, variant: str | None) -> Optional[Location]:
	if value is None:
		return None
	if not isinstance(value, str):
		raise _invalid(f"{what} must be a location string", variant=variant)
	try:
		return parse_location(value)
	except LocationSyntaxError as err:
		raise _invalid(f"{what}: {err}", variant=variant) from err


def _resolve_path(base_dir: Path, value: Any, what: str, variant: str | None) -> Path:
	if not isinstance(value, str) or not value:
		raise _invalid(f"{what} must be a non-empty path string", variant=variant)
	p = Path(value)
	return p if p.is_absolute() else base_dir / p


def _hex(value: Any, what: str, variant: str | None) -> bytes:
	if not isinstance(value, str):
		raise _invalid(f"{what} must be a hex string", variant=variant)
	try:
		return bytes.fromhex(value)
	except ValueError as err:
		raise _invalid(f"{what} is not valid hex", variant=variant) from err


def _parse_entry_point(obj: Any, variant: str | None) -> EntryPoint:
	if not isinstance(obj, dict):
		raise _invalid("entry point must be a JSON object", variant=variant)
	name = obj.get("name")
	if not isinstance(name, str) or not name:
		raise _invalid("entry point missing 'name'", variant=variant)
	ordinal = obj.get("ordinal")
	if ordinal is not None and (not isinstance(ordinal, int) or isinstance(ordinal, bool)):
		raise _invalid(f"entry point '{name}' ordinal must be an integer", variant=variant)
	source_locs_obj = obj.get("source_locs") or {}
	if not isinstance(source_locs_obj, dict):
		raise _invalid(f"entry point '{name}' source_locs must be an object", variant=variant)
	source_locs: list[tuple[str, Location]] = []
	for stage, text in source_locs_obj.items():
		loc = _loc(text, f"entry point '{name}' stage '{stage}'", variant)
		if loc is not None:
			source_locs.append((str(stage), loc))
	return EntryPoint(
		name=name,
		ordinal=ordinal,
		loc=_loc(obj.get("loc"), f"entry point '{name}' loc", variant),
		source_locs=tuple(source_locs),
	)


def _parse_module_entry(obj: Any, module: str, variant: str | None) -> ModuleEntryPoint:
	if isinstance(obj, str):
		return ModuleEntryPoint(fn=obj)
	if not isinstance(obj, dict) or not isinstance(obj.get("fn"), str):
		raise _invalid(f"module '{module}' entry point must be a name or an object with 'fn'", variant=variant)
	size = obj.get("subgroup_size")
	if size is not None and (not isinstance(size, int) or isinstance(size, bool) or not 0 <= size <= _U32_MAX):
		raise _invalid(f"module '{module}' subgroup_size must be an integer in [0, 2**32)", variant=variant)
	return ModuleEntryPoint(fn=obj["fn"], subgroup_size=size, loc=_loc(obj.get("loc"), f"module '{module}' loc", variant))


def _parse_module(obj: Any, index: int, base_dir: Path, variant: str | None) -> ShaderModule:
	if not isinstance(obj, dict):
		raise _invalid("module must be a JSON object", variant=variant)
	name = obj.get("name") or f"module_{index}"
	eps_obj = obj.get("entry_points")
	if not isinstance(eps_obj, list):
		raise _invalid(f"module '{name}' missing 'entry_points' list", variant=variant)
	eps = tuple(_parse_module_entry(e, name, variant) for e in eps_obj)
	assembly = obj.get("assembly")
	if assembly is not None and not isinstance(assembly, str):
		raise _invalid(f"module '{name}' assembly must be a string", variant=variant)
	if "spirv" in obj:
		spv_path = _resolve_path(base_dir, obj["spirv"], f"module '{name}' spirv", variant)
		return ShaderModule(name=name, entry_points=eps, serializer=SpirvFileBackend(spv_path), assembly=assembly)
	words = obj.get("words")
	if not isinstance(words, list) or not all(isinstance(w, int) and not isinstance(w, bool) for w in words):
		raise _invalid(f"module '{name}' needs 'spirv' (path) or 'words' (integer list)", variant=variant)
	return ShaderModule.from_words(name, eps, words, assembly=assembly)


def _parse_object(obj: Any, base_dir: Path, variant: str | None) -> ExternalObject:
	if not isinstance(obj, dict):
		raise _invalid("object must be a JSON object", variant=variant)
	if "path" in obj:
		return ExternalObject(path=_resolve_path(base_dir, obj["path"], "object path", variant))
	if "data_hex" in obj:
		return ExternalObject(data=_hex(obj["data_hex"], "object data_hex", variant))
	raise _invalid("object needs 'path' or 'data_hex'", variant=variant)


def _parse_source(obj: Any, base_dir: Path, variant: str | None) -> SourceFile:
	if not isinstance(obj, dict) or not isinstance(obj.get("path"), str):
		raise _invalid("source must be an object with 'path'", variant=variant)
	path = obj["path"]
	if isinstance(obj.get("content"), str):
		return SourceFile(path=path, content=obj["content"].encode("utf-8"))
	if "content_hex" in obj:
		return SourceFile(path=path, content=_hex(obj["content_hex"], f"source '{path}' content_hex", variant))
	if "file" in obj:
		file_path = _resolve_path(base_dir, obj["file"], f"source '{path}' file", variant)
		try:
			return SourceFile(path=path, content=file_path.read_bytes())
		except OSError as err:
			raise _invalid(f"source '{path}' could not be read: {err.strerror}", variant=variant) from err
	raise _invalid(f"source '{path}' needs 'content', 'content_hex' or 'file'", variant=variant)


def parse_variant_description(
	obj: Mapping[str, Any],
	*,
	base_dir: Path,
	default_format: str,
	options: SerializationOptions | None = None,
) -> ProgramVariant:
	"""Build a `ProgramVariant` from a decoded JSON description."""
	if not isinstance(obj, dict):
		raise _invalid("variant description must be a JSON object")
	name = obj.get("name")
	if not isinstance(name, str) or not name:
		raise _invalid("variant description missing 'name'")
	fmt = obj.get("format", default_format)
	if not isinstance(fmt, str) or not fmt:
		raise _invalid("variant 'format' must be a non-empty string", variant=name)
	eps_obj = obj.get("entry_points")
	if not isinstance(eps_obj, list):
		raise _invalid("variant description missing 'entry_points' list", variant=name)
	modules_obj = obj.get("modules") or []
	if not isinstance(modules_obj, list):
		raise _invalid("'modules' must be a list", variant=name)
	objects_obj = obj.get("objects")
	if objects_obj is not None and not isinstance(objects_obj, list):
		raise _invalid("'objects' must be a list", variant=name)
	sources_obj = obj.get("sources") or []
	if not isinstance(sources_obj, list):
		raise _invalid("'sources' must be a list", variant=name)

	return ProgramVariant(
		name=name,
		format=fmt,
		entry_points=tuple(_parse_entry_point(e, name) for e in eps_obj),
		modules=tuple(_parse_module(m, i, base_dir, name) for i, m in enumerate(modules_obj)),
		objects=tuple(_parse_object(o, base_dir, name) for o in objects_obj) if objects_obj is not None else None,
		sources=tuple(_parse_source(s, base_dir, name) for s in sources_obj),
		options=options if options is not None else SerializationOptions(),
	)


def load_variant_description(
	path: Path,
	*,
	default_format: str,
	options: SerializationOptions | None = None,
) -> ProgramVariant:
	"""Load a variant description from a JSON file."""
	try:
		obj = json.loads(path.read_text(encoding="utf-8"))
	except OSError as err:
		raise _invalid(f"cannot read variant description '{path}': {err.strerror}") from err
	except json.JSONDecodeError as err:
		raise _invalid(f"variant description '{path}' is not valid JSON: {err.msg}") from err
	return parse_variant_description(obj, base_dir=path.parent, default_format=default_format, options=options)


__all__ = ["SpirvFileBackend", "load_variant_description", "parse_variant_description"]
