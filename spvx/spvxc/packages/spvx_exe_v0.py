# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
SPVX-EXE container (v0).

A flat, deterministic binary document holding one serialized executable:
entry point names, per-entry module indices, the SPIR-V shader modules and
optional debug attachments. The runtime addresses everything by entry point
ordinal, so every ordinal-indexed list has exactly one element per entry point.

Field order is part of the compatibility surface; fields are written in
ascending id order and the reader rejects anything else.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import structlog

from spvx.spvxc.core.errors import InputShapeError

logger = structlog.get_logger(__name__)

MAGIC = b"SPVXEXE\0"
VERSION = 0
MIME_TYPE = "application/x-spvx-executable"

# Header layout:
# magic(8), version(u16), flags(u16), present_mask(u32), total_len(u32)
_HEADER_STRUCT = struct.Struct("<8sHHII")
HEADER_SIZE_V0 = _HEADER_STRUCT.size

# Field record layout: field_id(u16), reserved(u16), payload_len(u32)
_FIELD_STRUCT = struct.Struct("<HHI")
FIELD_HEADER_SIZE_V0 = _FIELD_STRUCT.size

FIELD_ENTRY_POINTS = 0
FIELD_SUBGROUP_SIZES = 1
FIELD_SHADER_MODULE_INDICES = 2
FIELD_SHADER_MODULES = 3
FIELD_SOURCE_LOCATIONS = 4
FIELD_STAGE_LOCATIONS = 5
FIELD_SOURCE_FILES = 6

FIELD_NAMES = {
	FIELD_ENTRY_POINTS: "entry_points",
	FIELD_SUBGROUP_SIZES: "subgroup_sizes",
	FIELD_SHADER_MODULE_INDICES: "shader_module_indices",
	FIELD_SHADER_MODULES: "shader_modules",
	FIELD_SOURCE_LOCATIONS: "source_locations",
	FIELD_STAGE_LOCATIONS: "stage_locations",
	FIELD_SOURCE_FILES: "source_files",
}
_REQUIRED_FIELDS = (FIELD_ENTRY_POINTS, FIELD_SHADER_MODULE_INDICES, FIELD_SHADER_MODULES)
U32_MAX = 0xFFFFFFFF


class ContainerFormatError(ValueError):
	"""Raised for malformed container bytes (reader) or inconsistent definitions (writer)."""


@dataclass(frozen=True)
class FileLineLoc:
	"""A `file:line` record as stored in the container."""

	filename: str
	line: int


@dataclass(frozen=True)
class StageLocation:
	"""Location of an entry point at a named compilation stage."""

	stage: str
	loc: FileLineLoc


@dataclass(frozen=True)
class SourceFileDef:
	"""Embedded source file contents."""

	path: str
	content: bytes


@dataclass(frozen=True)
class ExecutableDef:
	"""
	Decoded/encodable executable.

	`shader_modules` holds raw SPIR-V bytes (word-aligned). Optional fields are
	None when absent. Within `source_locations` a None element is an ordinal
	with no resolved location; within `stage_locations` an empty tuple is an
	ordinal with no stage locations.
	"""

	entry_points: tuple[str, ...]
	shader_module_indices: tuple[int, ...]
	shader_modules: tuple[bytes, ...]
	subgroup_sizes: Optional[tuple[int, ...]] = None
	source_locations: Optional[tuple[Optional[FileLineLoc], ...]] = None
	stage_locations: Optional[tuple[tuple[StageLocation, ...], ...]] = None
	source_files: Optional[tuple[SourceFileDef, ...]] = None

	@property
	def entry_count(self) -> int:
		return len(self.entry_points)

	def present_fields(self) -> list[str]:
		return [FIELD_NAMES[fid] for fid, _ in _field_values(self)]

	def shader_module_words(self, index: int) -> list[int]:
		code = self.shader_modules[index]
		return list(struct.unpack(f"<{len(code) // 4}I", code))

	def to_json(self) -> dict[str, object]:
		"""Summary suitable for printing (module bytes are reported by size)."""
		out: dict[str, object] = {
			"entry_points": list(self.entry_points),
			"shader_module_indices": list(self.shader_module_indices),
			"shader_modules": [{"words": len(m) // 4} for m in self.shader_modules],
		}
		if self.subgroup_sizes is not None:
			out["subgroup_sizes"] = list(self.subgroup_sizes)
		if self.source_locations is not None:
			out["source_locations"] = [
				{"filename": l.filename, "line": l.line} if l is not None else None for l in self.source_locations
			]
		if self.stage_locations is not None:
			out["stage_locations"] = [
				[{"stage": s.stage, "filename": s.loc.filename, "line": s.loc.line} for s in locs]
				for locs in self.stage_locations
			]
		if self.source_files is not None:
			out["source_files"] = [{"path": f.path, "size": len(f.content)} for f in self.source_files]
		return out


class ExecutableBuilder:
	"""
	Accumulates per-ordinal executable data.

	Every ordinal-indexed list is pre-sized to `entry_count`; optional slots
	track presence explicitly so `finish` can decide which optional fields to
	emit. A field is emitted only when at least one real value exists.
	"""

	def __init__(self, entry_count: int, *, variant: str | None = None) -> None:
		self.entry_count = entry_count
		self.variant = variant
		self._names: list[Optional[str]] = [None] * entry_count
		self._module_indices: list[Optional[int]] = [None] * entry_count
		self._subgroup_sizes: list[int] = [0] * entry_count
		self._source_locations: list[Optional[FileLineLoc]] = [None] * entry_count
		self._stage_locations: list[tuple[StageLocation, ...]] = [()] * entry_count
		self._shader_modules: list[bytes] = []
		self._source_files: list[SourceFileDef] = []
		self.has_any_subgroup_sizes = False

	def _check_ordinal(self, ordinal: int) -> None:
		if not 0 <= ordinal < self.entry_count:
			raise InputShapeError(
				"ordinal-out-of-range",
				f"ordinal {ordinal} is outside [0, {self.entry_count})",
				variant=self.variant,
			)

	def add_shader_module(self, code: bytes) -> int:
		"""Append a shader module and return its module index."""
		if len(code) % 4 != 0:
			raise ContainerFormatError("shader module byte length is not a multiple of 4")
		self._shader_modules.append(bytes(code))
		return len(self._shader_modules) - 1

	def set_entry_point(self, ordinal: int, name: str, module_index: int) -> None:
		self._check_ordinal(ordinal)
		if self._names[ordinal] is not None:
			raise InputShapeError(
				"duplicate-module-entry",
				f"entry point '{name}' is provided by more than one module",
				variant=self.variant,
				entry=name,
			)
		self._names[ordinal] = name
		self._module_indices[ordinal] = module_index

	def set_subgroup_size(self, ordinal: int, size: int | None) -> None:
		self._check_ordinal(ordinal)
		if size is not None and not 0 <= size <= U32_MAX:
			raise InputShapeError(
				"invalid-subgroup-size",
				f"subgroup size {size} for ordinal {ordinal} does not fit in u32",
				variant=self.variant,
				entry=self._names[ordinal],
			)
		if size:
			self._subgroup_sizes[ordinal] = int(size)
			self.has_any_subgroup_sizes = True
		else:
			self._subgroup_sizes[ordinal] = 0

	def set_source_location(self, ordinal: int, loc: FileLineLoc) -> None:
		self._check_ordinal(ordinal)
		self._source_locations[ordinal] = loc

	def set_stage_locations(self, ordinal: int, locs: Sequence[StageLocation]) -> None:
		self._check_ordinal(ordinal)
		self._stage_locations[ordinal] = tuple(locs)

	def add_source_file(self, path: str, content: bytes) -> None:
		self._source_files.append(SourceFileDef(path=path, content=bytes(content)))

	def finish(self) -> ExecutableDef:
		"""Validate that every ordinal is populated and produce the definition."""
		for ordinal, name in enumerate(self._names):
			if name is None or self._module_indices[ordinal] is None:
				raise InputShapeError(
					"missing-module",
					f"no shader module provides the entry point with ordinal {ordinal}",
					variant=self.variant,
				)
		has_source_locations = any(l is not None for l in self._source_locations)
		has_stage_locations = any(self._stage_locations)
		logger.debug(
			"executable_fields",
			variant=self.variant,
			entry_count=self.entry_count,
			subgroup_sizes=self.has_any_subgroup_sizes,
			source_locations=has_source_locations,
			stage_locations=has_stage_locations,
			source_files=len(self._source_files),
		)
		return ExecutableDef(
			entry_points=tuple(n for n in self._names if n is not None),
			shader_module_indices=tuple(i for i in self._module_indices if i is not None),
			shader_modules=tuple(self._shader_modules),
			subgroup_sizes=tuple(self._subgroup_sizes) if self.has_any_subgroup_sizes else None,
			source_locations=tuple(self._source_locations) if has_source_locations else None,
			stage_locations=tuple(self._stage_locations) if has_stage_locations else None,
			source_files=tuple(self._source_files) if self._source_files else None,
		)


class _Writer:
	def __init__(self) -> None:
		self.buf = bytearray()

	def u32(self, value: int) -> None:
		if not 0 <= int(value) <= U32_MAX:
			raise ContainerFormatError(f"value {value} does not fit in u32")
		self.buf += struct.pack("<I", int(value))

	def raw(self, data: bytes) -> None:
		self.buf += data
		pad = (-len(data)) % 4
		if pad:
			self.buf += b"\0" * pad

	def blob(self, data: bytes) -> None:
		self.u32(len(data))
		self.raw(data)

	def string(self, text: str) -> None:
		try:
			data = text.encode("utf-8")
		except UnicodeEncodeError as err:
			raise ContainerFormatError(f"string {text!r} is not encodable as UTF-8") from err
		self.blob(data)

	def file_line(self, loc: FileLineLoc) -> None:
		self.string(loc.filename)
		self.u32(loc.line)


def _field_values(defn: ExecutableDef) -> list[tuple[int, object]]:
	fields: list[tuple[int, object]] = [(FIELD_ENTRY_POINTS, defn.entry_points)]
	if defn.subgroup_sizes is not None:
		fields.append((FIELD_SUBGROUP_SIZES, defn.subgroup_sizes))
	fields.append((FIELD_SHADER_MODULE_INDICES, defn.shader_module_indices))
	fields.append((FIELD_SHADER_MODULES, defn.shader_modules))
	if defn.source_locations is not None:
		fields.append((FIELD_SOURCE_LOCATIONS, defn.source_locations))
	if defn.stage_locations is not None:
		fields.append((FIELD_STAGE_LOCATIONS, defn.stage_locations))
	if defn.source_files is not None:
		fields.append((FIELD_SOURCE_FILES, defn.source_files))
	return fields


def _encode_field(fid: int, value: object) -> bytes:
	w = _Writer()
	if fid == FIELD_ENTRY_POINTS:
		w.u32(len(value))
		for name in value:
			w.string(name)
	elif fid in (FIELD_SUBGROUP_SIZES, FIELD_SHADER_MODULE_INDICES):
		w.u32(len(value))
		for v in value:
			w.u32(v)
	elif fid == FIELD_SHADER_MODULES:
		w.u32(len(value))
		for code in value:
			# Length-prefixed word vector.
			w.u32(len(code) // 4)
			w.raw(code)
	elif fid == FIELD_SOURCE_LOCATIONS:
		w.u32(len(value))
		for loc in value:
			if loc is None:
				w.u32(0)
			else:
				w.u32(1)
				w.file_line(loc)
	elif fid == FIELD_STAGE_LOCATIONS:
		w.u32(len(value))
		for locs in value:
			w.u32(len(locs))
			for s in locs:
				w.string(s.stage)
				w.file_line(s.loc)
	elif fid == FIELD_SOURCE_FILES:
		w.u32(len(value))
		for f in value:
			w.string(f.path)
			w.blob(f.content)
	else:
		raise ContainerFormatError(f"unknown field id {fid}")
	return bytes(w.buf)


def _validate_def(defn: ExecutableDef) -> None:
	n = defn.entry_count
	if len(defn.shader_module_indices) != n:
		raise ContainerFormatError(f"shader_module_indices has {len(defn.shader_module_indices)} elements, expected {n}")
	for opt_name in ("subgroup_sizes", "source_locations", "stage_locations"):
		value = getattr(defn, opt_name)
		if value is not None and len(value) != n:
			raise ContainerFormatError(f"{opt_name} has {len(value)} elements, expected {n}")
	for idx in defn.shader_module_indices:
		if not 0 <= idx < len(defn.shader_modules):
			raise ContainerFormatError(f"shader module index {idx} out of range ({len(defn.shader_modules)} modules)")
	for code in defn.shader_modules:
		if len(code) % 4 != 0:
			raise ContainerFormatError("shader module byte length is not a multiple of 4")


def encode_executable_v0(defn: ExecutableDef) -> bytes:
	"""
	Encode `defn` into SPVX-EXE v0 bytes.

	The definition is validated first; nothing is produced for an inconsistent
	definition.
	"""
	_validate_def(defn)
	mask = 0
	body = bytearray()
	for fid, value in _field_values(defn):
		payload = _encode_field(fid, value)
		mask |= 1 << fid
		body += _FIELD_STRUCT.pack(fid, 0, len(payload))
		body += payload
	total = HEADER_SIZE_V0 + len(body)
	header = _HEADER_STRUCT.pack(MAGIC, VERSION, 0, mask, total)
	return header + bytes(body)


def write_executable_v0(path: Path, defn: ExecutableDef) -> None:
	"""Write an encoded executable to `path`."""
	data = encode_executable_v0(defn)
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_bytes(data)


class _Reader:
	def __init__(self, data: bytes, start: int, end: int, field_name: str) -> None:
		self.data = data
		self.pos = start
		self.end = end
		self.field_name = field_name

	def _take(self, n: int) -> bytes:
		if self.pos + n > self.end:
			raise ContainerFormatError(f"unexpected end of field '{self.field_name}'")
		chunk = self.data[self.pos : self.pos + n]
		self.pos += n
		return chunk

	def u32(self) -> int:
		return struct.unpack("<I", self._take(4))[0]

	def raw(self, n: int) -> bytes:
		chunk = self._take(n)
		self._take((-n) % 4)
		return chunk

	def blob(self) -> bytes:
		return self.raw(self.u32())

	def string(self) -> str:
		raw = self.blob()
		try:
			return raw.decode("utf-8")
		except UnicodeDecodeError as err:
			raise ContainerFormatError(f"invalid UTF-8 string in field '{self.field_name}'") from err

	def file_line(self) -> FileLineLoc:
		filename = self.string()
		return FileLineLoc(filename=filename, line=self.u32())

	def count(self) -> int:
		n = self.u32()
		# Every element occupies at least 4 bytes.
		if n * 4 > self.end - self.pos:
			raise ContainerFormatError(f"element count {n} exceeds field '{self.field_name}' size")
		return n

	def done(self) -> None:
		if self.pos != self.end:
			raise ContainerFormatError(f"trailing bytes in field '{self.field_name}'")


def _decode_field(fid: int, r: _Reader) -> object:
	if fid == FIELD_ENTRY_POINTS:
		return tuple(r.string() for _ in range(r.count()))
	if fid in (FIELD_SUBGROUP_SIZES, FIELD_SHADER_MODULE_INDICES):
		return tuple(r.u32() for _ in range(r.count()))
	if fid == FIELD_SHADER_MODULES:
		modules: list[bytes] = []
		for _ in range(r.count()):
			modules.append(r.raw(r.u32() * 4))
		return tuple(modules)
	if fid == FIELD_SOURCE_LOCATIONS:
		locs: list[Optional[FileLineLoc]] = []
		for _ in range(r.count()):
			present = r.u32()
			if present not in (0, 1):
				raise ContainerFormatError(f"invalid presence flag {present} in 'source_locations'")
			locs.append(r.file_line() if present else None)
		return tuple(locs)
	if fid == FIELD_STAGE_LOCATIONS:
		per_entry: list[tuple[StageLocation, ...]] = []
		for _ in range(r.count()):
			stages: list[StageLocation] = []
			for _ in range(r.count()):
				stage = r.string()
				stages.append(StageLocation(stage=stage, loc=r.file_line()))
			per_entry.append(tuple(stages))
		return tuple(per_entry)
	if fid == FIELD_SOURCE_FILES:
		files: list[SourceFileDef] = []
		for _ in range(r.count()):
			path = r.string()
			files.append(SourceFileDef(path=path, content=r.blob()))
		return tuple(files)
	raise ContainerFormatError(f"unknown field id {fid}")


def decode_executable_v0(data: bytes) -> ExecutableDef:
	"""
	Decode and validate SPVX-EXE v0 bytes.

	Verification steps:
	- header magic/version/flags and total length
	- field records appear in strictly ascending id order and match the mask
	- required fields are present
	- ordinal-indexed lists match the entry point count
	- module indices are in range
	"""
	data = bytes(data)
	if len(data) < HEADER_SIZE_V0:
		raise ContainerFormatError("unexpected EOF while reading executable header")
	magic, version, flags, mask, total = _HEADER_STRUCT.unpack_from(data, 0)
	if magic != MAGIC:
		raise ContainerFormatError("invalid executable magic")
	if version != VERSION:
		raise ContainerFormatError(f"unsupported executable version {version}")
	if flags != 0:
		raise ContainerFormatError("unsupported executable flags")
	if total != len(data):
		raise ContainerFormatError(f"executable length mismatch (header says {total}, got {len(data)})")

	values: dict[str, object] = {}
	seen_mask = 0
	last_fid = -1
	pos = HEADER_SIZE_V0
	while pos < len(data):
		if pos + FIELD_HEADER_SIZE_V0 > len(data):
			raise ContainerFormatError("unexpected EOF while reading field header")
		fid, reserved, length = _FIELD_STRUCT.unpack_from(data, pos)
		pos += FIELD_HEADER_SIZE_V0
		if fid not in FIELD_NAMES:
			raise ContainerFormatError(f"unknown field id {fid}")
		if reserved != 0:
			raise ContainerFormatError(f"non-zero reserved bits in field '{FIELD_NAMES[fid]}'")
		if fid <= last_fid:
			raise ContainerFormatError(f"field '{FIELD_NAMES[fid]}' out of order")
		if length % 4 != 0 or pos + length > len(data):
			raise ContainerFormatError(f"invalid length {length} for field '{FIELD_NAMES[fid]}'")
		r = _Reader(data, pos, pos + length, FIELD_NAMES[fid])
		values[FIELD_NAMES[fid]] = _decode_field(fid, r)
		r.done()
		seen_mask |= 1 << fid
		last_fid = fid
		pos += length

	if seen_mask != mask:
		raise ContainerFormatError(f"field mask mismatch (header {mask:#x}, records {seen_mask:#x})")
	for fid in _REQUIRED_FIELDS:
		if FIELD_NAMES[fid] not in values:
			raise ContainerFormatError(f"missing required field '{FIELD_NAMES[fid]}'")

	defn = ExecutableDef(**values)  # type: ignore[arg-type]
	_validate_def(defn)
	return defn


def load_executable_v0(path: Path) -> ExecutableDef:
	"""Read and decode an executable container from `path`."""
	return decode_executable_v0(path.read_bytes())


__all__ = [
	"ContainerFormatError",
	"ExecutableBuilder",
	"ExecutableDef",
	"FileLineLoc",
	"MIME_TYPE",
	"SourceFileDef",
	"StageLocation",
	"U32_MAX",
	"decode_executable_v0",
	"encode_executable_v0",
	"load_executable_v0",
	"write_executable_v0",
]
