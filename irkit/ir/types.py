# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Interned type wrappers.

Types are borrowed handles into their context's type interner. Two wrappers
compare equal exactly when they hold the same handle, which for interned
values is the same as structural equality. `Type._wrap` picks the subclass
matching the TypeSpec kind, so `isinstance(t, IntegerType)` works on any type
obtained from the IR.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Type as PyType, Union

from irkit.core.handles import HandleKind, RawHandle
from irkit.core.ownership import BorrowedHandle
from irkit.core.types_core import (
	FloatSpec,
	FunctionSpec,
	IndexSpec,
	IntegerSpec,
	MemRefSpec,
	NoneSpec,
	OpaqueTypeSpec,
	Signedness,
	TensorSpec,
	TypeKind,
	TypeSpec,
	VectorSpec,
)

if TYPE_CHECKING:
	from irkit.ir.context import Context


class Type(BorrowedHandle):
	_kind = HandleKind.TYPE

	@staticmethod
	def _wrap(context: "Context", raw: RawHandle) -> "Type":
		spec = context._types.lookup(raw)
		cls = _CLASS_BY_KIND.get(spec.kind, Type)
		return cls(context, raw)

	@classmethod
	def parse(cls, context: "Context", text: str) -> "Type":
		return context.parse_type(text)

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def spec(self) -> TypeSpec:
		return self._resolve()

	@property
	def kind(self) -> TypeKind:
		return self.spec.kind

	def __str__(self) -> str:
		from irkit.asm.printer import format_type

		return format_type(self)

	def __repr__(self) -> str:
		if not self.is_valid:
			return f"<{type(self).__name__} (invalid)>"
		return f"{type(self).__name__}({self})"


class IntegerType(Type):
	@classmethod
	def get(cls, context: "Context", width: int, signedness: Union[Signedness, str] = Signedness.SIGNLESS) -> "IntegerType":
		return context.get_type(IntegerSpec(width, Signedness(signedness)))

	@property
	def width(self) -> int:
		return self.spec.width

	@property
	def signedness(self) -> Signedness:
		return self.spec.signedness

	@property
	def is_signless(self) -> bool:
		return self.signedness is Signedness.SIGNLESS


class IndexType(Type):
	@classmethod
	def get(cls, context: "Context") -> "IndexType":
		return context.get_type(IndexSpec())


class NoneType(Type):
	@classmethod
	def get(cls, context: "Context") -> "NoneType":
		return context.get_type(NoneSpec())


class FloatType(Type):
	@classmethod
	def get(cls, context: "Context", name: str = "f32") -> "FloatType":
		return context.get_type(FloatSpec(name))

	@property
	def name(self) -> str:
		return self.spec.name

	@property
	def width(self) -> int:
		return self.spec.width


class FunctionType(Type):
	@classmethod
	def get(cls, context: "Context", inputs: Sequence[Type] = (), results: Sequence[Type] = ()) -> "FunctionType":
		return context.get_type(FunctionSpec(tuple(inputs), tuple(results)))

	@property
	def inputs(self) -> List[Type]:
		return list(self.spec.inputs)

	@property
	def results(self) -> List[Type]:
		return list(self.spec.results)


class ShapedType(Type):
	"""Common accessors for tensor, vector and memref types."""

	@property
	def shape(self) -> Tuple[Optional[int], ...]:
		return self.spec.shape

	@property
	def element_type(self) -> Type:
		return self.spec.element

	@property
	def rank(self) -> int:
		return len(self.shape)

	@property
	def has_static_shape(self) -> bool:
		return all(d is not None for d in self.shape)


class TensorType(ShapedType):
	@classmethod
	def get(cls, context: "Context", shape: Sequence[Optional[int]], element: Type) -> "TensorType":
		return context.get_type(TensorSpec(tuple(shape), element))


class VectorType(ShapedType):
	@classmethod
	def get(cls, context: "Context", shape: Sequence[int], element: Type) -> "VectorType":
		return context.get_type(VectorSpec(tuple(shape), element))


class MemRefType(ShapedType):
	@classmethod
	def get(cls, context: "Context", shape: Sequence[Optional[int]], element: Type) -> "MemRefType":
		return context.get_type(MemRefSpec(tuple(shape), element))


class OpaqueType(Type):
	"""Dialect type carried verbatim, e.g. `!llvm.ptr`."""

	@classmethod
	def get(cls, context: "Context", dialect: str, name: str, data: str = "") -> "OpaqueType":
		return context.get_type(OpaqueTypeSpec(dialect, name, data))

	@property
	def dialect(self) -> str:
		return self.spec.dialect

	@property
	def name(self) -> str:
		return self.spec.name

	@property
	def data(self) -> str:
		return self.spec.data


_CLASS_BY_KIND: Dict[TypeKind, PyType[Type]] = {
	TypeKind.INTEGER: IntegerType,
	TypeKind.INDEX: IndexType,
	TypeKind.NONE: NoneType,
	TypeKind.FLOAT: FloatType,
	TypeKind.FUNCTION: FunctionType,
	TypeKind.TENSOR: TensorType,
	TypeKind.VECTOR: VectorType,
	TypeKind.MEMREF: MemRefType,
	TypeKind.OPAQUE: OpaqueType,
}


__all__ = [
	"FloatType",
	"FunctionType",
	"IndexType",
	"IntegerType",
	"MemRefType",
	"NoneType",
	"OpaqueType",
	"ShapedType",
	"TensorType",
	"Type",
	"VectorType",
]
