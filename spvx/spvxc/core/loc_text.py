# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parser for the textual location syntax used in variant descriptions.

Accepted forms (optionally wrapped in `loc(...)`):

	"file.mlir":12:3             file/line/column
	"file.mlir":12               file/line
	fused["a":1:2, "b":3:4]      composite
	fused<"tag">[...]            composite with metadata
	"name"("file":1:1)           named alias of a child location
	"name"                       named alias without a child
	callsite("a":1:1 at "b":2:2) callee inlined at caller
	unknown

The grammar is small enough to live inline; it is compiled once at import.
"""

from __future__ import annotations

import codecs

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from .location import CallSiteLoc, FileLineColLoc, FusedLoc, Location, NameLoc, UnknownLoc

_LOC_GRAMMAR = r"""
?start: "loc" "(" loc ")"
      | loc

?loc: file_loc
    | fused_loc
    | name_loc
    | callsite_loc
    | unknown_loc

file_loc: STRING ":" INT (":" INT)?
fused_loc: "fused" fused_meta? "[" [loc ("," loc)*] "]"
fused_meta: "<" STRING ">"
name_loc: STRING "(" loc ")"
        | STRING
callsite_loc: "callsite" "(" loc "at" loc ")"
unknown_loc: "unknown"

%import common.ESCAPED_STRING -> STRING
%import common.INT
%import common.WS
%ignore WS
"""

_LOC_PARSER = Lark(
	_LOC_GRAMMAR,
	parser="lalr",
	lexer="basic",
	start="start",
	maybe_placeholders=False,
)


class LocationSyntaxError(ValueError):
	"""Raised when a location string cannot be parsed."""

	def __init__(self, message: str, *, text: str) -> None:
		super().__init__(message)
		self.text = text


def _decode_string_token(tok: Token) -> str:
	"""
	Decode STRING tokens, including \\xHH hex byte escapes. Escapes are
	interpreted Python-style, then the code points are reinterpreted as raw
	bytes (latin-1) and decoded as UTF-8.
	"""
	content = tok.value[1:-1]
	unescaped = codecs.decode(content, "unicode_escape")
	return unescaped.encode("latin-1").decode("utf-8")


def _build_loc(node: Tree) -> Location:
	kind = node.data
	if kind == "file_loc":
		tokens = [c for c in node.children if isinstance(c, Token)]
		filename = _decode_string_token(tokens[0])
		line = int(tokens[1])
		column = int(tokens[2]) if len(tokens) > 2 else 0
		return FileLineColLoc(filename=filename, line=line, column=column)
	if kind == "fused_loc":
		metadata = None
		locs: list[Location] = []
		for child in node.children:
			if isinstance(child, Tree) and child.data == "fused_meta":
				metadata = _decode_string_token(child.children[0])
			elif isinstance(child, Tree):
				locs.append(_build_loc(child))
		return FusedLoc(locations=tuple(locs), metadata=metadata)
	if kind == "name_loc":
		name = _decode_string_token(node.children[0])
		child = _build_loc(node.children[1]) if len(node.children) > 1 else None
		return NameLoc(name=name, child=child)
	if kind == "callsite_loc":
		return CallSiteLoc(callee=_build_loc(node.children[0]), caller=_build_loc(node.children[1]))
	if kind == "unknown_loc":
		return UnknownLoc()
	raise ValueError(f"unexpected location node '{kind}'")


def parse_location(text: str) -> Location:
	"""
	Parse a textual location into a `Location` value.

	Raises `LocationSyntaxError` for malformed input.
	"""
	try:
		tree = _LOC_PARSER.parse(text)
	except UnexpectedInput as err:
		raise LocationSyntaxError(f"invalid location '{text}' (column {err.column})", text=text) from err
	return _build_loc(tree)


def format_location(loc: Location) -> str:
	"""Render `loc` back into the textual syntax accepted by `parse_location`."""
	if isinstance(loc, FileLineColLoc):
		return str(loc)
	if isinstance(loc, FusedLoc):
		meta = f"<\"{loc.metadata}\">" if loc.metadata is not None else ""
		return "fused" + meta + "[" + ", ".join(format_location(l) for l in loc.locations) + "]"
	if isinstance(loc, NameLoc):
		if loc.child is None:
			return f"\"{loc.name}\""
		return f"\"{loc.name}\"({format_location(loc.child)})"
	if isinstance(loc, CallSiteLoc):
		return f"callsite({format_location(loc.callee)} at {format_location(loc.caller)})"
	return "unknown"


__all__ = ["LocationSyntaxError", "format_location", "parse_location"]
