# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Executable packaging.

This package turns a program variant into an SPVX-EXE container: a flat,
ordinal-indexed binary document read by the runtime loader.

Pinned model:
- the runtime addresses entry points by ordinal, never by name lookup,
- every ordinal-indexed list has exactly one element per entry point,
- optional debug fields are written only when they carry real data,
- generated and external variants produce the same container shape.
"""

from __future__ import annotations

__all__ = [
	"serializer",
	"spvx_exe_v0",
]
