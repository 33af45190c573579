# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Data model for a program variant handed to the serializer.

A variant carries either compiler-produced shader modules (the *generated*
path) or external pre-built objects (the *external* path), never both.
Every generated `ShaderModule` must declare exactly one entry point; this is
checked by the encoder, not here, so that the error can name the module.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from spvx.spvxc.core.errors import ConfigError
from spvx.spvxc.core.location import Location


class BackendFailure(Exception):
	"""Raised by a module backend when it cannot produce a binary."""


@dataclass(frozen=True)
class SerializationOptions:
	"""
	Per-variant serialization knobs.

	`debug_level` thresholds: >= 1 records primary source locations, >= 3 also
	records per-stage locations. Level 2 behaves as 1.
	Dump paths are best-effort diagnostics; None disables them.
	"""

	debug_level: int = 0
	dump_intermediates_path: Optional[Path] = None
	dump_binaries_path: Optional[Path] = None
	dump_base_name: str = "module"

	def __post_init__(self) -> None:
		if not isinstance(self.debug_level, int) or self.debug_level < 0:
			raise ConfigError("invalid-debug-level", f"debug level must be a non-negative integer, got {self.debug_level!r}")


@dataclass(frozen=True)
class EntryPoint:
	"""
	An exported entry point of a variant.

	`ordinal` may only be omitted when the variant has a single entry point.
	`source_locs` holds named per-stage locations in declaration order.
	"""

	name: str
	ordinal: Optional[int] = None
	loc: Optional[Location] = None
	source_locs: tuple[tuple[str, Location], ...] = ()


@dataclass(frozen=True)
class ModuleEntryPoint:
	"""An entry point as declared inside a shader module."""

	fn: str
	subgroup_size: Optional[int] = None
	loc: Optional[Location] = None


@dataclass(frozen=True)
class ShaderModule:
	"""
	One compiled shader module.

	`serializer` is the backend hook producing the module's SPIR-V words. It may
	raise `BackendFailure` or return an empty result to report failure.
	`assembly` is the human-readable intermediate form used for dumps.
	"""

	name: str
	entry_points: tuple[ModuleEntryPoint, ...]
	serializer: Callable[[], Sequence[int]]
	assembly: Optional[str] = None

	@classmethod
	def from_words(
		cls,
		name: str,
		entry_points: Sequence[ModuleEntryPoint],
		words: Sequence[int],
		*,
		assembly: str | None = None,
	) -> "ShaderModule":
		"""Wrap an already-serialized word sequence as a module."""
		frozen = tuple(int(w) for w in words)
		return cls(name=name, entry_points=tuple(entry_points), serializer=lambda: frozen, assembly=assembly)

	def serialize(self) -> list[int]:
		return list(self.serializer())


@dataclass(frozen=True)
class ExternalObject:
	"""
	Reference to a pre-built SPIR-V object.

	Either `path` or inline `data` is set. `load_data` raises OSError when the
	bytes cannot be read and returns None when the reference carries nothing.
	"""

	path: Optional[Path] = None
	data: Optional[bytes] = None

	def load_data(self) -> bytes | None:
		if self.data is not None:
			return bytes(self.data)
		if self.path is None:
			return None
		return Path(self.path).read_bytes()

	def __str__(self) -> str:
		if self.path is not None:
			return f"object(path={self.path})"
		size = len(self.data) if self.data is not None else 0
		return f"object(data=<{size} bytes>)"


@dataclass(frozen=True)
class SourceFile:
	"""An embedded source file attachment (path + raw bytes)."""

	path: str
	content: bytes


@dataclass(frozen=True)
class ProgramVariant:
	"""
	One compilation unit to serialize.

	`objects` is None for generated variants. An external variant sets it (even
	to an empty tuple, which the external path reports as an error).
	"""

	name: str
	format: str
	entry_points: tuple[EntryPoint, ...]
	modules: tuple[ShaderModule, ...] = ()
	objects: Optional[tuple[ExternalObject, ...]] = None
	sources: tuple[SourceFile, ...] = ()
	options: SerializationOptions = field(default_factory=SerializationOptions)

	@property
	def is_external(self) -> bool:
		return self.objects is not None


def words_from_bytes(data: bytes) -> list[int]:
	"""Reinterpret little-endian bytes as 32-bit words (length must be word-aligned)."""
	if len(data) % 4 != 0:
		raise ValueError("byte length is not a multiple of 4")
	return list(struct.unpack(f"<{len(data) // 4}I", data))


def words_to_bytes(words: Sequence[int]) -> bytes:
	"""Pack 32-bit words as little-endian bytes."""
	return struct.pack(f"<{len(words)}I", *words)
