# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Interned attribute wrappers; same handle-identity rules as types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Type as PyType

from irkit.core.attributes_core import (
	ArrayAttrSpec,
	AttrKind,
	AttrSpec,
	BoolAttrSpec,
	DictAttrSpec,
	FloatAttrSpec,
	IntegerAttrSpec,
	OpaqueAttrSpec,
	StringAttrSpec,
	SymbolRefAttrSpec,
	TypeAttrSpec,
	UnitAttrSpec,
)
from irkit.core.handles import HandleKind, RawHandle
from irkit.core.ownership import BorrowedHandle

if TYPE_CHECKING:
	from irkit.ir.context import Context
	from irkit.ir.types import Type


class Attribute(BorrowedHandle):
	_kind = HandleKind.ATTRIBUTE

	@staticmethod
	def _wrap(context: "Context", raw: RawHandle) -> "Attribute":
		spec = context._attributes.lookup(raw)
		cls = _CLASS_BY_KIND.get(spec.kind, Attribute)
		return cls(context, raw)

	@classmethod
	def parse(cls, context: "Context", text: str) -> "Attribute":
		return context.parse_attribute(text)

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def spec(self) -> AttrSpec:
		return self._resolve()

	@property
	def kind(self) -> AttrKind:
		return self.spec.kind

	def __str__(self) -> str:
		from irkit.asm.printer import format_attribute

		return format_attribute(self)

	def __repr__(self) -> str:
		if not self.is_valid:
			return f"<{type(self).__name__} (invalid)>"
		return f"{type(self).__name__}({self})"


class IntegerAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", value: int, type: "Type") -> "IntegerAttr":
		return context.get_attribute(IntegerAttrSpec(value, type))

	@property
	def value(self) -> int:
		return self.spec.value

	@property
	def type(self) -> "Type":
		return self.spec.type


class FloatAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", value: float, type: "Type") -> "FloatAttr":
		return context.get_attribute(FloatAttrSpec(value, type))

	@property
	def value(self) -> float:
		return self.spec.value

	@property
	def type(self) -> "Type":
		return self.spec.type


class StringAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", value: str) -> "StringAttr":
		return context.get_attribute(StringAttrSpec(str(value)))

	@property
	def value(self) -> str:
		return self.spec.value


class BoolAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", value: bool) -> "BoolAttr":
		return context.get_attribute(BoolAttrSpec(value))

	@property
	def value(self) -> bool:
		return self.spec.value


class UnitAttr(Attribute):
	@classmethod
	def get(cls, context: "Context") -> "UnitAttr":
		return context.get_attribute(UnitAttrSpec())


class TypeAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", type: "Type") -> "TypeAttr":
		return context.get_attribute(TypeAttrSpec(type))

	@property
	def value(self) -> "Type":
		return self.spec.type


class ArrayAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", elements: Sequence[Attribute] = ()) -> "ArrayAttr":
		return context.get_attribute(ArrayAttrSpec(tuple(elements)))

	@property
	def value(self) -> List[Attribute]:
		return list(self.spec.elements)

	def __len__(self) -> int:
		return len(self.spec.elements)

	def __getitem__(self, index: int) -> Attribute:
		return self.spec.elements[index]

	def __iter__(self) -> Iterator[Attribute]:
		return iter(self.spec.elements)

	def __bool__(self) -> bool:
		return True


class DictAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", entries: Mapping[str, Attribute] | None = None) -> "DictAttr":
		return context.get_attribute(DictAttrSpec(tuple((entries or {}).items())))

	@property
	def value(self) -> Dict[str, Attribute]:
		return dict(self.spec.entries)

	def items(self) -> Tuple[Tuple[str, Attribute], ...]:
		return self.spec.entries

	def __contains__(self, key: object) -> bool:
		return any(k == key for k, _ in self.spec.entries)

	def __getitem__(self, key: str) -> Attribute:
		for k, v in self.spec.entries:
			if k == key:
				return v
		raise KeyError(key)

	def __len__(self) -> int:
		return len(self.spec.entries)

	def __bool__(self) -> bool:
		return True


class SymbolRefAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", name: str) -> "SymbolRefAttr":
		return context.get_attribute(SymbolRefAttrSpec(name))

	@property
	def value(self) -> str:
		return self.spec.name


class OpaqueAttr(Attribute):
	@classmethod
	def get(cls, context: "Context", dialect: str, data: str) -> "OpaqueAttr":
		return context.get_attribute(OpaqueAttrSpec(dialect, data))

	@property
	def dialect(self) -> str:
		return self.spec.dialect

	@property
	def data(self) -> str:
		return self.spec.data


_CLASS_BY_KIND: Dict[AttrKind, PyType[Attribute]] = {
	AttrKind.INTEGER: IntegerAttr,
	AttrKind.FLOAT: FloatAttr,
	AttrKind.STRING: StringAttr,
	AttrKind.BOOL: BoolAttr,
	AttrKind.UNIT: UnitAttr,
	AttrKind.TYPE: TypeAttr,
	AttrKind.ARRAY: ArrayAttr,
	AttrKind.DICT: DictAttr,
	AttrKind.SYMBOL_REF: SymbolRefAttr,
	AttrKind.OPAQUE: OpaqueAttr,
}


def attribute_value(attr: Attribute) -> Any:
	"""Python value of a scalar attribute (None for unit/opaque)."""
	return getattr(attr, "value", None)


__all__ = [
	"ArrayAttr",
	"Attribute",
	"BoolAttr",
	"DictAttr",
	"FloatAttr",
	"IntegerAttr",
	"OpaqueAttr",
	"StringAttr",
	"SymbolRefAttr",
	"TypeAttr",
	"UnitAttr",
	"attribute_value",
]
