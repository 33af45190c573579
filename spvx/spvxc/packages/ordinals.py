# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Entry point ordinal resolution.

The runtime addresses entry points by a dense zero-based ordinal instead of by
name. Ordinals come from upstream linking; for a variant with a single entry
point linking does not run at all, so the ordinal may be missing and defaults
to 0. Upstream data is untrusted: duplicates and holes are rejected here so
every ordinal-indexed list built later is fully populated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from spvx.spvxc.core.errors import InputShapeError
from spvx.spvxc.ir.model import EntryPoint


@dataclass(frozen=True)
class OrdinalMap:
	"""Resolved entry point ordinals: name -> ordinal, plus the list length."""

	ordinals: dict[str, int]
	count: int

	def ordinal_of(self, name: str) -> int | None:
		return self.ordinals.get(name)

	def names_by_ordinal(self) -> list[str]:
		names = [""] * self.count
		for name, ordinal in self.ordinals.items():
			names[ordinal] = name
		return names


def resolve_ordinals(entry_points: Sequence[EntryPoint], *, variant: str | None = None) -> OrdinalMap:
	"""
	Assign/validate an ordinal for every entry point.

	Rules:
	- a lone entry point without an ordinal gets ordinal 0,
	- with more than one entry point every one must carry an ordinal,
	- names and ordinals must be unique,
	- ordinals must cover `[0, max+1)` without holes.
	"""
	ordinals: dict[str, int] = {}
	owner_by_ordinal: dict[int, str] = {}
	single = len(entry_points) == 1
	for ep in entry_points:
		if ep.name in ordinals:
			raise InputShapeError("duplicate-entry", f"entry point '{ep.name}' is declared more than once", variant=variant, entry=ep.name)
		if ep.ordinal is None:
			if not single:
				raise InputShapeError("missing-ordinal", f"entry point '{ep.name}' should have an ordinal", variant=variant, entry=ep.name)
			ordinal = 0
		else:
			ordinal = int(ep.ordinal)
		if ordinal < 0:
			raise InputShapeError("invalid-ordinal", f"entry point '{ep.name}' has negative ordinal {ordinal}", variant=variant, entry=ep.name)
		other = owner_by_ordinal.get(ordinal)
		if other is not None:
			raise InputShapeError(
				"duplicate-ordinal",
				f"ordinal {ordinal} is used by both '{other}' and '{ep.name}'",
				variant=variant,
				entry=ep.name,
			)
		ordinals[ep.name] = ordinal
		owner_by_ordinal[ordinal] = ep.name

	count = max(owner_by_ordinal) + 1 if owner_by_ordinal else 0
	if count != len(ordinals):
		missing = next(i for i in range(count) if i not in owner_by_ordinal)
		raise InputShapeError("ordinal-gap", f"no entry point has ordinal {missing} (ordinal count {count})", variant=variant)
	return OrdinalMap(ordinals=ordinals, count=count)


__all__ = ["OrdinalMap", "resolve_ordinals"]
