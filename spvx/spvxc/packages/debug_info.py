# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Optional debug attachments for generated executables.

Gated by the variant's debug level:
- >= 1: the primary source location of each entry point,
- >= 3: per-stage source locations of each entry point.
Embedded source files are copied whenever the variant carries them.
"""

from __future__ import annotations

from typing import Optional, Sequence

from spvx.spvxc.core.errors import EncodingError
from spvx.spvxc.core.location import Location, find_first_file_loc
from spvx.spvxc.ir.model import EntryPoint, ModuleEntryPoint, SourceFile
from spvx.spvxc.packages.ordinals import OrdinalMap
from spvx.spvxc.packages.spvx_exe_v0 import U32_MAX, ExecutableBuilder, FileLineLoc, StageLocation

DEBUG_LEVEL_SOURCE_LOCATIONS = 1
DEBUG_LEVEL_STAGE_LOCATIONS = 3


def resolve_file_line(loc: Optional[Location], *, entry: str | None = None) -> Optional[FileLineLoc]:
	"""
	Resolve `loc` to its first file-backed `file:line`, if any.

	Raises `EncodingError` when the line cannot be stored as a u32.
	"""
	found = find_first_file_loc(loc)
	if found is None:
		return None
	if not 0 <= found.line <= U32_MAX:
		raise EncodingError(
			"invalid-source-line",
			f"source location '{found.filename}' line {found.line} does not fit in u32",
			entry=entry,
		)
	return FileLineLoc(filename=found.filename, line=found.line)


def collect_source_location(
	builder: ExecutableBuilder,
	ordinal: int,
	module_entry: ModuleEntryPoint,
	export: Optional[EntryPoint],
	debug_level: int,
) -> Optional[FileLineLoc]:
	"""
	Record the primary source location of one entry point.

	The module's own entry point location wins; the exported entry point's
	location is the fallback.
	"""
	if debug_level < DEBUG_LEVEL_SOURCE_LOCATIONS:
		return None
	loc = module_entry.loc
	if loc is None and export is not None:
		loc = export.loc
	resolved = resolve_file_line(loc, entry=module_entry.fn)
	if resolved is not None:
		builder.set_source_location(ordinal, resolved)
	return resolved


def collect_stage_locations(
	builder: ExecutableBuilder,
	ordinals: OrdinalMap,
	entry_points: Sequence[EntryPoint],
	debug_level: int,
) -> int:
	"""
	Record per-stage locations; returns how many entry points got any.

	An entry point is only recorded when at least one of its stages resolves to
	a file-backed location.
	"""
	if debug_level < DEBUG_LEVEL_STAGE_LOCATIONS:
		return 0
	recorded = 0
	for ep in entry_points:
		stages: list[StageLocation] = []
		for stage_name, loc in ep.source_locs:
			resolved = resolve_file_line(loc, entry=ep.name)
			if resolved is not None:
				stages.append(StageLocation(stage=stage_name, loc=resolved))
		if not stages:
			continue
		builder.set_stage_locations(ordinals.ordinals[ep.name], stages)
		recorded += 1
	return recorded


def collect_source_files(builder: ExecutableBuilder, sources: Sequence[SourceFile]) -> None:
	"""Embed source files in their original attachment order."""
	for source in sources:
		builder.add_source_file(source.path, source.content)


__all__ = [
	"DEBUG_LEVEL_SOURCE_LOCATIONS",
	"DEBUG_LEVEL_STAGE_LOCATIONS",
	"collect_source_files",
	"collect_source_location",
	"collect_stage_locations",
	"resolve_file_line",
]
