"""
Common diagnostic structure for the serializer driver.

A diagnostic is a message plus optional location/metadata. The CLI renders
them as text or as JSON records (phase/message/severity/file/line/column).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import SerializationError


@dataclass
class Diagnostic:
	"""Represents a serializer diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	phase: str | None = None
	severity: str = "error"
	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	notes: list[str] = field(default_factory=list)

	@classmethod
	def from_error(cls, err: SerializationError, *, phase: str = "serialize", file: str | None = None) -> "Diagnostic":
		notes: list[str] = []
		if err.variant:
			notes.append(f"variant: {err.variant}")
		if err.entry:
			notes.append(f"entry point: {err.entry}")
		if err.module:
			notes.append(f"module: {err.module}")
		return cls(message=err.message, code=err.reason_code, phase=phase, file=file, notes=notes)

	def to_json(self) -> dict[str, Any]:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.file,
			"line": self.line,
			"column": self.column,
			"notes": list(self.notes),
		}

	def format_human(self) -> str:
		prefix = f"{self.file}: " if self.file else ""
		text = f"{prefix}{self.severity}: {self.message}"
		for note in self.notes:
			text += f"\n  note: {note}"
		return text
