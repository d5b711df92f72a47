# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Generic textual form printer.

Every operation is printed in the generic form

    %0, %1 = "dialect.op"(%a, %b) [^bb1] ({...}) {attr = value} : (ta, tb) -> (t0, t1) loc(...)

which `irkit.asm.parser` reads back. Values are numbered in pre-order across
the whole printed tree (`%N` for results, `%argN` for block arguments);
blocks are numbered per region (`^bbN`) and their labels are always printed.
Attribute dictionaries are sorted by key, so printing is deterministic.
"""

from __future__ import annotations

import json
import math
import re
from typing import TYPE_CHECKING, Dict, List, Sequence

from irkit.core.attributes_core import (
	ArrayAttrSpec,
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
from irkit.core.location import FileLineColLoc, Location, NameLoc, UnknownLoc
from irkit.core.types_core import (
	FloatSpec,
	FunctionSpec,
	IndexSpec,
	IntegerSpec,
	MemRefSpec,
	NoneSpec,
	OpaqueTypeSpec,
	TensorSpec,
	TypeSpec,
	VectorSpec,
)
from irkit.native.records import BlockRecord, OpRecord, ValueRecord

if TYPE_CHECKING:
	from irkit.ir.attributes import Attribute
	from irkit.ir.context import Context
	from irkit.ir.types import Type

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_$.\-]*\Z")
_INDENT = "  "


# ---- types ----


def _shape(dims: Sequence) -> str:
	return "".join(("?" if d is None else str(d)) + "x" for d in dims)


def signature(inputs: Sequence[str], results: Sequence[str]) -> str:
	"""`(a, b) -> c`; results are parenthesized unless there is one non-function result."""
	head = "(" + ", ".join(inputs) + ")"
	if len(results) == 1 and not results[0].startswith("("):
		return f"{head} -> {results[0]}"
	return f"{head} -> (" + ", ".join(results) + ")"


def format_type_spec(spec: TypeSpec) -> str:
	if isinstance(spec, IntegerSpec):
		return f"{spec.signedness.value}i{spec.width}"
	if isinstance(spec, IndexSpec):
		return "index"
	if isinstance(spec, NoneSpec):
		return "none"
	if isinstance(spec, FloatSpec):
		return spec.name
	if isinstance(spec, FunctionSpec):
		return signature([format_type(t) for t in spec.inputs], [format_type(t) for t in spec.results])
	if isinstance(spec, TensorSpec):
		return f"tensor<{_shape(spec.shape)}{format_type(spec.element)}>"
	if isinstance(spec, VectorSpec):
		return f"vector<{_shape(spec.shape)}{format_type(spec.element)}>"
	if isinstance(spec, MemRefSpec):
		return f"memref<{_shape(spec.shape)}{format_type(spec.element)}>"
	if isinstance(spec, OpaqueTypeSpec):
		body = f"!{spec.dialect}.{spec.name}"
		return f"{body}<{json.dumps(spec.data)}>" if spec.data else body
	raise TypeError(f"cannot print type spec {type(spec).__name__}")


def format_type(t: "Type") -> str:
	return format_type_spec(t.spec)


# ---- attributes ----


def format_float(value: float) -> str:
	if math.isnan(value):
		return "nan"
	if math.isinf(value):
		return "inf" if value > 0 else "-inf"
	return repr(value)


def _format_key(key: str) -> str:
	return key if _IDENT.match(key) else json.dumps(key)


def format_attr_dict(entries: Sequence) -> str:
	"""`{a = 1 : i32, flag}` from (name, Attribute) pairs, sorted by name."""
	parts = []
	for key, attr in sorted(entries, key=lambda kv: kv[0]):
		if isinstance(attr.spec, UnitAttrSpec):
			parts.append(_format_key(key))
		else:
			parts.append(f"{_format_key(key)} = {format_attribute(attr)}")
	return "{" + ", ".join(parts) + "}"


def format_attr_spec(spec: AttrSpec) -> str:
	if isinstance(spec, IntegerAttrSpec):
		return f"{spec.value} : {format_type(spec.type)}"
	if isinstance(spec, FloatAttrSpec):
		return f"{format_float(spec.value)} : {format_type(spec.type)}"
	if isinstance(spec, StringAttrSpec):
		return json.dumps(spec.value)
	if isinstance(spec, BoolAttrSpec):
		return "true" if spec.value else "false"
	if isinstance(spec, UnitAttrSpec):
		return "unit"
	if isinstance(spec, TypeAttrSpec):
		return format_type(spec.type)
	if isinstance(spec, ArrayAttrSpec):
		return "[" + ", ".join(format_attribute(a) for a in spec.elements) + "]"
	if isinstance(spec, DictAttrSpec):
		return format_attr_dict(spec.entries)
	if isinstance(spec, SymbolRefAttrSpec):
		return "@" + (spec.name if _IDENT.match(spec.name) else json.dumps(spec.name))
	if isinstance(spec, OpaqueAttrSpec):
		return f"#{spec.dialect}<{json.dumps(spec.data)}>"
	raise TypeError(f"cannot print attribute spec {type(spec).__name__}")


def format_attribute(attr: "Attribute") -> str:
	return format_attr_spec(attr.spec)


# ---- locations ----


def location_syntax(loc: Location) -> str:
	"""Body of a `loc(...)` clause."""
	if isinstance(loc, FileLineColLoc):
		return f"{json.dumps(loc.file)}:{loc.line}:{loc.column}"
	if isinstance(loc, NameLoc):
		if loc.child.is_unknown:
			return json.dumps(loc.name)
		return f"{json.dumps(loc.name)}({location_syntax(loc.child)})"
	return "unknown"


def format_location(loc: Location) -> str:
	"""Human-readable location for diagnostics, e.g. `add.ir:3:5`."""
	if isinstance(loc, FileLineColLoc):
		return f"{loc.file}:{loc.line}:{loc.column}"
	if isinstance(loc, NameLoc):
		if loc.child.is_unknown:
			return loc.name
		return f"{loc.name}({format_location(loc.child)})"
	return "<unknown>"


# ---- operations ----


class Printer:
	def __init__(self, context: "Context", *, with_locations: bool = False) -> None:
		self.context = context
		self.with_locations = with_locations
		self._values: Dict[int, str] = {}
		self._blocks: Dict[int, str] = {}
		self._next_result = 0
		self._next_arg = 0
		self._next_external = 0
		self._types: Dict[object, str] = {}

	def number(self, root: OpRecord) -> None:
		"""Assign value and block names for the whole tree before printing."""
		for op in root.walk():
			for result in op.results:
				self._values[id(result)] = f"%{self._next_result}"
				self._next_result += 1
			for region in op.regions:
				for i, block in enumerate(region.blocks):
					self._blocks[id(block)] = f"^bb{i}"
					for arg in block.arguments:
						self._values[id(arg)] = f"%arg{self._next_arg}"
						self._next_arg += 1

	def value_name(self, value: ValueRecord) -> str:
		name = self._values.get(id(value))
		if name is None:
			# Defined outside the printed tree.
			name = f"%ext{self._next_external}"
			self._next_external += 1
			self._values[id(value)] = name
		return name

	def block_name(self, block: BlockRecord) -> str:
		name = self._blocks.get(id(block))
		if name is None:
			name = f"^ext{len(self._blocks)}"
			self._blocks[id(block)] = name
		return name

	def type_text(self, raw) -> str:
		text = self._types.get(raw)
		if text is None:
			text = format_type_spec(self.context._types.lookup(raw))
			self._types[raw] = text
		return text

	def _loc(self, loc: Location) -> str:
		if not self.with_locations:
			return ""
		return f" loc({location_syntax(loc or UnknownLoc())})"

	def _block_header(self, block: BlockRecord) -> str:
		label = self.block_name(block)
		if not block.arguments:
			return f"{label}:"
		args = ", ".join(
			f"{self.value_name(a)}: {self.type_text(a.type)}{self._loc(a.location)}" for a in block.arguments
		)
		return f"{label}({args}):"

	def op_lines(self, op: OpRecord, indent: str = "") -> List[str]:
		from irkit.ir.attributes import Attribute

		head = indent
		if op.results:
			head += ", ".join(self.value_name(r) for r in op.results) + " = "
		head += json.dumps(op.name)
		head += "(" + ", ".join(self.value_name(v) for v in op.operands) + ")"
		if op.successors:
			head += " [" + ", ".join(self.block_name(b) for b in op.successors) + "]"

		tail = ""
		if op.attributes:
			entries = [(k, Attribute._wrap(self.context, raw)) for k, raw in op.attributes.items()]
			tail += " " + format_attr_dict(entries)
		tail += " : " + signature(
			[self.type_text(v.type) for v in op.operands],
			[self.type_text(r.type) for r in op.results],
		)
		tail += self._loc(op.location)

		if not op.regions:
			return [head + tail]
		lines: List[str] = []
		current = head + " ("
		for i, region in enumerate(op.regions):
			current += "{"
			lines.append(current)
			for block in region.blocks:
				lines.append(indent + self._block_header(block))
				for nested in block.operations:
					lines.extend(self.op_lines(nested, indent + _INDENT))
			current = indent + "}"
			if i < len(op.regions) - 1:
				current += ", "
		lines.append(current + ")" + tail)
		return lines


def print_operation(op, *, with_locations: bool = False) -> str:
	"""Text of one operation (Operation, OperationRef or Module) and its regions."""
	record = op._resolve()
	printer = Printer(op._context, with_locations=with_locations)
	printer.number(record)
	return "\n".join(printer.op_lines(record))


def print_module(module, *, with_locations: bool = False) -> str:
	return print_operation(module, with_locations=with_locations) + "\n"


__all__ = [
	"Printer",
	"format_attr_dict",
	"format_attr_spec",
	"format_attribute",
	"format_float",
	"format_location",
	"format_type",
	"format_type_spec",
	"location_syntax",
	"print_module",
	"print_operation",
	"signature",
]
