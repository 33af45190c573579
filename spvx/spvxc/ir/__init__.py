# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Program-variant model consumed by the serializer.

The upstream pipeline hands over one `ProgramVariant` per target; the
serializer only queries it (entry points, modules, attachments) and never
mutates it. `manifest` loads variants from JSON descriptions for the CLI.
"""

from .model import (
	BackendFailure,
	EntryPoint,
	ExternalObject,
	ModuleEntryPoint,
	ProgramVariant,
	SerializationOptions,
	ShaderModule,
	SourceFile,
)

__all__ = [
	"BackendFailure",
	"EntryPoint",
	"ExternalObject",
	"ModuleEntryPoint",
	"ProgramVariant",
	"SerializationOptions",
	"ShaderModule",
	"SourceFile",
]
