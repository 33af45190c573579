# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source location provenance used by debug attachments.

A location is a small recursive sum type:
- `FileLineColLoc`: a concrete file-backed position (the only resolvable leaf),
- `FusedLoc`: several locations merged into one (composite),
- `NameLoc`: a named alias wrapping an optional child location,
- `CallSiteLoc`: a callee location inlined at a caller location,
- `UnknownLoc`: no information.

`find_first_file_loc` walks a location depth-first (pre-order) and returns the
first file-backed leaf, or None.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class FileLineColLoc:
	"""A concrete `file:line[:col]` position."""

	filename: str
	line: int
	column: int = 0

	def __str__(self) -> str:
		return f"\"{self.filename}\":{self.line}:{self.column}"


@dataclass(frozen=True)
class FusedLoc:
	"""Composite of several locations (e.g. after op folding)."""

	locations: tuple["Location", ...] = field(default_factory=tuple)
	metadata: Optional[str] = None


@dataclass(frozen=True)
class NameLoc:
	"""Named alias for a location; `child` may be omitted."""

	name: str
	child: Optional["Location"] = None


@dataclass(frozen=True)
class CallSiteLoc:
	"""Callee location inlined at `caller`."""

	callee: "Location"
	caller: "Location"


@dataclass(frozen=True)
class UnknownLoc:
	"""Location with no provenance."""


Location = Union[FileLineColLoc, FusedLoc, NameLoc, CallSiteLoc, UnknownLoc]


def _children(loc: Location) -> tuple[Location, ...]:
	if isinstance(loc, FusedLoc):
		return loc.locations
	if isinstance(loc, NameLoc):
		return (loc.child,) if loc.child is not None else ()
	if isinstance(loc, CallSiteLoc):
		return (loc.callee, loc.caller)
	return ()


def walk_locations(loc: Location) -> Iterator[Location]:
	"""Yield `loc` and all nested locations in depth-first pre-order."""
	stack: list[Location] = [loc]
	while stack:
		cur = stack.pop()
		yield cur
		# Reverse so the first child is visited first.
		stack.extend(reversed(_children(cur)))


def find_first_file_loc(loc: Optional[Location]) -> Optional[FileLineColLoc]:
	"""
	Return the first file-backed leaf found walking `loc` depth-first.

	Returns None when `loc` is None or contains no file-backed location.
	"""
	if loc is None:
		return None
	for cur in walk_locations(loc):
		if isinstance(cur, FileLineColLoc):
			return cur
	return None


__all__ = [
	"CallSiteLoc",
	"FileLineColLoc",
	"FusedLoc",
	"Location",
	"NameLoc",
	"UnknownLoc",
	"find_first_file_loc",
	"walk_locations",
]
