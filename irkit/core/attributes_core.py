# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural attribute specs, interned per context like types.

Float payloads compare by their bit pattern (via `float.hex`) so that `0.0`
and `-0.0` stay distinct and NaN interns to a single handle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Tuple


class AttrKind(Enum):
	INTEGER = auto()
	FLOAT = auto()
	STRING = auto()
	BOOL = auto()
	UNIT = auto()
	TYPE = auto()
	ARRAY = auto()
	DICT = auto()
	SYMBOL_REF = auto()
	OPAQUE = auto()


@dataclass(frozen=True)
class AttrSpec:
	@property
	def kind(self) -> AttrKind:
		raise NotImplementedError

	def children(self) -> Tuple[Any, ...]:
		"""Interned children (types and attributes) referenced by this spec."""
		return ()


@dataclass(frozen=True)
class IntegerAttrSpec(AttrSpec):
	value: int
	type: Any

	def __post_init__(self) -> None:
		if isinstance(self.value, bool) or not isinstance(self.value, int):
			raise TypeError(f"integer attribute needs an int, got {type(self.value).__name__}")

	@property
	def kind(self) -> AttrKind:
		return AttrKind.INTEGER

	def children(self) -> Tuple[Any, ...]:
		return (self.type,)


@dataclass(frozen=True, eq=False)
class FloatAttrSpec(AttrSpec):
	value: float
	type: Any

	def __post_init__(self) -> None:
		object.__setattr__(self, "value", float(self.value))

	def _key(self) -> tuple:
		return (self.value.hex(), self.type)

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, FloatAttrSpec):
			return NotImplemented
		return self._key() == other._key()

	def __hash__(self) -> int:
		return hash(("float", self._key()))

	@property
	def kind(self) -> AttrKind:
		return AttrKind.FLOAT

	def children(self) -> Tuple[Any, ...]:
		return (self.type,)


@dataclass(frozen=True)
class StringAttrSpec(AttrSpec):
	value: str

	@property
	def kind(self) -> AttrKind:
		return AttrKind.STRING


@dataclass(frozen=True)
class BoolAttrSpec(AttrSpec):
	value: bool

	def __post_init__(self) -> None:
		object.__setattr__(self, "value", bool(self.value))

	@property
	def kind(self) -> AttrKind:
		return AttrKind.BOOL


@dataclass(frozen=True)
class UnitAttrSpec(AttrSpec):
	@property
	def kind(self) -> AttrKind:
		return AttrKind.UNIT


@dataclass(frozen=True)
class TypeAttrSpec(AttrSpec):
	type: Any

	@property
	def kind(self) -> AttrKind:
		return AttrKind.TYPE

	def children(self) -> Tuple[Any, ...]:
		return (self.type,)


@dataclass(frozen=True)
class ArrayAttrSpec(AttrSpec):
	elements: Tuple[Any, ...]

	def __post_init__(self) -> None:
		object.__setattr__(self, "elements", tuple(self.elements))

	@property
	def kind(self) -> AttrKind:
		return AttrKind.ARRAY

	def children(self) -> Tuple[Any, ...]:
		return self.elements


@dataclass(frozen=True)
class DictAttrSpec(AttrSpec):
	"""Entries are kept sorted by key; keys must be unique."""

	entries: Tuple[Tuple[str, Any], ...]

	def __post_init__(self) -> None:
		items = sorted(tuple(self.entries), key=lambda kv: kv[0])
		keys = [k for k, _ in items]
		if len(set(keys)) != len(keys):
			raise ValueError("dictionary attribute has duplicate keys")
		object.__setattr__(self, "entries", tuple((str(k), v) for k, v in items))

	@property
	def kind(self) -> AttrKind:
		return AttrKind.DICT

	def children(self) -> Tuple[Any, ...]:
		return tuple(v for _, v in self.entries)


@dataclass(frozen=True)
class SymbolRefAttrSpec(AttrSpec):
	name: str

	def __post_init__(self) -> None:
		if not self.name:
			raise ValueError("symbol references need a name")

	@property
	def kind(self) -> AttrKind:
		return AttrKind.SYMBOL_REF


@dataclass(frozen=True)
class OpaqueAttrSpec(AttrSpec):
	"""Dialect attribute carried as an uninterpreted payload, e.g. `#foo<"...">`."""

	dialect: str
	data: str

	@property
	def kind(self) -> AttrKind:
		return AttrKind.OPAQUE


__all__ = [
	"ArrayAttrSpec",
	"AttrKind",
	"AttrSpec",
	"BoolAttrSpec",
	"DictAttrSpec",
	"FloatAttrSpec",
	"IntegerAttrSpec",
	"OpaqueAttrSpec",
	"StringAttrSpec",
	"SymbolRefAttrSpec",
	"TypeAttrSpec",
	"UnitAttrSpec",
]
