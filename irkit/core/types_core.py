# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural type specs.

A spec is the content a context interns: two equal specs always intern to
the same handle. Specs are frozen dataclasses so equality and hashing are
structural. Composite specs hold already-interned child `Type` wrappers,
whose own equality is handle identity, so hashing a key costs O(size of
one TypeSpec) rather than O(size of the whole type tree).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional, Tuple


class TypeKind(Enum):
	"""Kinds of types understood by the core (dialect types are OPAQUE)."""

	INTEGER = auto()
	INDEX = auto()
	FLOAT = auto()
	NONE = auto()
	FUNCTION = auto()
	TENSOR = auto()
	VECTOR = auto()
	MEMREF = auto()
	OPAQUE = auto()


class Signedness(Enum):
	SIGNLESS = ""
	SIGNED = "s"
	UNSIGNED = "u"


FLOAT_WIDTHS = {"bf16": 16, "f16": 16, "f32": 32, "f64": 64}


@dataclass(frozen=True)
class TypeSpec:
	"""Base class for structural type descriptions."""

	@property
	def kind(self) -> TypeKind:
		raise NotImplementedError

	def children(self) -> Tuple[Any, ...]:
		"""Child types referenced by this spec (already interned)."""
		return ()


@dataclass(frozen=True)
class IntegerSpec(TypeSpec):
	width: int
	signedness: Signedness = Signedness.SIGNLESS

	def __post_init__(self) -> None:
		if not isinstance(self.width, int) or self.width <= 0:
			raise ValueError(f"integer width must be a positive int, got {self.width!r}")

	@property
	def kind(self) -> TypeKind:
		return TypeKind.INTEGER


@dataclass(frozen=True)
class IndexSpec(TypeSpec):
	@property
	def kind(self) -> TypeKind:
		return TypeKind.INDEX


@dataclass(frozen=True)
class NoneSpec(TypeSpec):
	@property
	def kind(self) -> TypeKind:
		return TypeKind.NONE


@dataclass(frozen=True)
class FloatSpec(TypeSpec):
	name: str

	def __post_init__(self) -> None:
		if self.name not in FLOAT_WIDTHS:
			raise ValueError(f"unknown float type '{self.name}'")

	@property
	def width(self) -> int:
		return FLOAT_WIDTHS[self.name]

	@property
	def kind(self) -> TypeKind:
		return TypeKind.FLOAT


@dataclass(frozen=True)
class FunctionSpec(TypeSpec):
	inputs: Tuple[Any, ...]
	results: Tuple[Any, ...]

	def __post_init__(self) -> None:
		object.__setattr__(self, "inputs", tuple(self.inputs))
		object.__setattr__(self, "results", tuple(self.results))

	@property
	def kind(self) -> TypeKind:
		return TypeKind.FUNCTION

	def children(self) -> Tuple[Any, ...]:
		return self.inputs + self.results


def _normalize_shape(shape: Any, *, allow_dynamic: bool) -> Tuple[Optional[int], ...]:
	dims = tuple(shape)
	for d in dims:
		if d is None:
			if not allow_dynamic:
				raise ValueError("dynamic dimensions are not allowed here")
			continue
		if not isinstance(d, int) or d < 0:
			raise ValueError(f"invalid dimension {d!r}")
	return dims


@dataclass(frozen=True)
class TensorSpec(TypeSpec):
	"""Ranked tensor; `None` marks a dynamic dimension."""

	shape: Tuple[Optional[int], ...]
	element: Any

	def __post_init__(self) -> None:
		object.__setattr__(self, "shape", _normalize_shape(self.shape, allow_dynamic=True))

	@property
	def kind(self) -> TypeKind:
		return TypeKind.TENSOR

	def children(self) -> Tuple[Any, ...]:
		return (self.element,)


@dataclass(frozen=True)
class VectorSpec(TypeSpec):
	shape: Tuple[int, ...]
	element: Any

	def __post_init__(self) -> None:
		dims = _normalize_shape(self.shape, allow_dynamic=False)
		if not dims:
			raise ValueError("vector types need at least one dimension")
		object.__setattr__(self, "shape", dims)

	@property
	def kind(self) -> TypeKind:
		return TypeKind.VECTOR

	def children(self) -> Tuple[Any, ...]:
		return (self.element,)


@dataclass(frozen=True)
class MemRefSpec(TypeSpec):
	shape: Tuple[Optional[int], ...]
	element: Any

	def __post_init__(self) -> None:
		object.__setattr__(self, "shape", _normalize_shape(self.shape, allow_dynamic=True))

	@property
	def kind(self) -> TypeKind:
		return TypeKind.MEMREF

	def children(self) -> Tuple[Any, ...]:
		return (self.element,)


@dataclass(frozen=True)
class OpaqueTypeSpec(TypeSpec):
	"""
	Dialect-owned type the core does not interpret, e.g. `!llvm.ptr`.

	`data` is an uninterpreted payload string carried verbatim.
	"""

	dialect: str
	name: str
	data: str = ""

	def __post_init__(self) -> None:
		if not self.dialect or not self.name:
			raise ValueError("opaque types need a dialect and a name")

	@property
	def kind(self) -> TypeKind:
		return TypeKind.OPAQUE


__all__ = [
	"FLOAT_WIDTHS",
	"FloatSpec",
	"FunctionSpec",
	"IndexSpec",
	"IntegerSpec",
	"MemRefSpec",
	"NoneSpec",
	"OpaqueTypeSpec",
	"Signedness",
	"TensorSpec",
	"TypeKind",
	"TypeSpec",
	"VectorSpec",
]
