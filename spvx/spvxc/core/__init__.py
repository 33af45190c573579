"""
spvx.spvxc.core: shared core types used across the serializer.

Modules:
  - diagnostics: Diagnostic records rendered by the CLI
  - errors: serialization error taxonomy
  - location: source location sum type + first-file-location resolver
  - loc_text: textual location parser (lark)
  - log: structlog configuration for the driver
"""

__all__ = [
    "diagnostics",
    "errors",
    "location",
    "loc_text",
    "log",
]
