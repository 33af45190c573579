# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Serialization error taxonomy.

Every error is fatal to the variant being serialized: no partial container is
ever returned. Errors carry a stable `reason_code` plus the variant/entry/module
context needed to locate the offending input.
"""

from __future__ import annotations

from typing import Any


class SerializationError(Exception):
	"""A structured, serializable error raised while building an executable."""

	def __init__(
		self,
		reason_code: str,
		message: str,
		*,
		variant: str | None = None,
		entry: str | None = None,
		module: str | None = None,
	) -> None:
		super().__init__(message)
		self.reason_code = reason_code
		self.message = message
		self.variant = variant
		self.entry = entry
		self.module = module

	def __str__(self) -> str:
		return self.format_human()

	def with_variant(self, variant: str) -> "SerializationError":
		"""Attach the variant name if the raising site did not know it."""
		if self.variant is None:
			self.variant = variant
		return self

	def to_dict(self) -> dict[str, Any]:
		return {
			"kind": type(self).__name__,
			"reason_code": self.reason_code,
			"message": self.message,
			"variant": self.variant,
			"entry": self.entry,
			"module": self.module,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.variant:
			parts.append(f"variant={self.variant}")
		if self.entry:
			parts.append(f"entry={self.entry}")
		if self.module:
			parts.append(f"module={self.module}")
		return " ".join(parts)


class InputShapeError(SerializationError):
	"""Input does not have the shape the container requires (ordinals, entry counts, objects)."""


class EncodingError(SerializationError):
	"""Backend serialization failed or produced bytes the container cannot carry."""


class LoadError(SerializationError):
	"""An external object's bytes could not be read."""


class ConfigError(SerializationError):
	"""Unrecognized target/profile or invalid serialization option."""


__all__ = [
	"ConfigError",
	"EncodingError",
	"InputShapeError",
	"LoadError",
	"SerializationError",
]
