# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Provenance locations attached to operations and block arguments.

Locations are plain frozen values rather than interned handles: they never
reference a context, so they can be copied between modules freely. Every
operation carries one; `UnknownLoc()` is the explicit "no information" value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Location:
	"""Base class for all location kinds."""

	@property
	def is_unknown(self) -> bool:
		return False


@dataclass(frozen=True)
class UnknownLoc(Location):
	"""Location with no provenance information."""

	@property
	def is_unknown(self) -> bool:
		return True


@dataclass(frozen=True)
class FileLineColLoc(Location):
	"""A `file:line:column` position."""

	file: str
	line: int
	column: int


@dataclass(frozen=True)
class NameLoc(Location):
	"""A named location, optionally wrapping a more precise child location."""

	name: str
	child: Location = field(default_factory=UnknownLoc)


def from_loc(loc: Any) -> Location:
	"""
	Normalize `loc` into a Location.

	`None` maps to UnknownLoc, Location instances pass through unchanged, and
	parser objects exposing file/line/column attributes (lark tokens, spans)
	become FileLineColLoc.
	"""
	if loc is None:
		return UnknownLoc()
	if isinstance(loc, Location):
		return loc
	line = getattr(loc, "line", None)
	if line is None:
		return UnknownLoc()
	file = getattr(loc, "file", None) or getattr(loc, "filename", None) or "-"
	return FileLineColLoc(file=str(file), line=int(line), column=int(getattr(loc, "column", 0) or 0))


__all__ = ["FileLineColLoc", "Location", "NameLoc", "UnknownLoc", "from_loc"]
