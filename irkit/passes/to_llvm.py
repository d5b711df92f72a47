# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
convert-to-llvm: rewrite func, arith and cf ops into the llvm dialect.

The conversion is one op for one op. `index` becomes `i64` and signed or
unsigned integers become signless, on every value, in function types and in
typed attributes. `arith.index_cast` turns into `llvm.sext`/`llvm.trunc`, or
disappears when both sides end up with the same width. Any op outside the
supported dialects is reported as an error and fails the pass.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from irkit.core.diagnostics import DiagnosticCollector
from irkit.ir.attributes import ArrayAttr, Attribute, IntegerAttr, TypeAttr
from irkit.ir.operation import Operation, OperationRef
from irkit.ir.types import FunctionType, IndexType, IntegerType, Type
from irkit.ir.walk import walk

if TYPE_CHECKING:
	from irkit.ir.context import Context
	from irkit.ir.module import Module

logger = logging.getLogger(__name__)

OP_MAP: Dict[str, str] = {
	"func.func": "llvm.func",
	"func.return": "llvm.return",
	"func.call": "llvm.call",
	"arith.constant": "llvm.mlir.constant",
	"arith.addi": "llvm.add",
	"arith.subi": "llvm.sub",
	"arith.muli": "llvm.mul",
	"arith.divsi": "llvm.sdiv",
	"arith.divui": "llvm.udiv",
	"arith.remsi": "llvm.srem",
	"arith.remui": "llvm.urem",
	"arith.andi": "llvm.and",
	"arith.ori": "llvm.or",
	"arith.xori": "llvm.xor",
	"arith.shli": "llvm.shl",
	"arith.shrsi": "llvm.ashr",
	"arith.addf": "llvm.fadd",
	"arith.subf": "llvm.fsub",
	"arith.mulf": "llvm.fmul",
	"arith.divf": "llvm.fdiv",
	"arith.cmpi": "llvm.icmp",
	"arith.cmpf": "llvm.fcmp",
	"arith.select": "llvm.select",
	"arith.extsi": "llvm.sext",
	"arith.extui": "llvm.zext",
	"arith.trunci": "llvm.trunc",
	"arith.sitofp": "llvm.sitofp",
	"arith.fptosi": "llvm.fptosi",
	"cf.br": "llvm.br",
	"cf.cond_br": "llvm.cond_br",
}

# Ops that already have their final form.
_LEGAL_DIALECTS = ("builtin", "llvm")


class TypeConverter:
	def __init__(self, context: "Context") -> None:
		self.context = context
		self._cache: Dict[Type, Type] = {}

	def convert(self, t: Type) -> Type:
		cached = self._cache.get(t)
		if cached is not None:
			return cached
		if isinstance(t, IndexType):
			out: Type = IntegerType.get(self.context, 64)
		elif isinstance(t, IntegerType) and not t.is_signless:
			out = IntegerType.get(self.context, t.width)
		elif isinstance(t, FunctionType):
			out = FunctionType.get(
				self.context,
				[self.convert(i) for i in t.inputs],
				[self.convert(r) for r in t.results],
			)
		else:
			out = t
		self._cache[t] = out
		return out

	def convert_attribute(self, attr: Attribute) -> Attribute:
		if isinstance(attr, TypeAttr):
			return TypeAttr.get(self.context, self.convert(attr.value))
		if isinstance(attr, IntegerAttr):
			return IntegerAttr.get(self.context, attr.value, self.convert(attr.type))
		if isinstance(attr, ArrayAttr):
			return ArrayAttr.get(self.context, [self.convert_attribute(a) for a in attr])
		return attr


def _retype_values(module: "Module", converter: TypeConverter) -> None:
	for op in walk(module):
		for result in op.results:
			result.set_type(converter.convert(result.type))
		for region in op.regions:
			for block in region.blocks:
				for arg in block.arguments:
					arg.set_type(converter.convert(arg.type))


def _convert_index_cast(op: OperationRef) -> None:
	source = op.operands[0]
	result = op.result
	src_t, dst_t = source.type, result.type
	if src_t == dst_t:
		op.replace_all_uses_with([source])
		op.erase()
		return
	name = "llvm.sext" if src_t.width < dst_t.width else "llvm.trunc"
	_replace(op, name, {})


def _replace(op: OperationRef, name: str, attributes: Mapping[str, Attribute]) -> OperationRef:
	new = Operation.create(
		op.context,
		name,
		operands=op.operands,
		results=[r.type for r in op.results],
		attributes=attributes,
		regions=op.num_regions,
		successors=op.successors,
		location=op.location,
	)
	ref = op.parent_block.insert_before(op, new)
	for source, dest in zip(op.regions, ref.regions):
		dest.take_body(source)
	op.replace_all_uses_with(ref)
	op.erase()
	return ref


def convert_to_llvm(module: "Module", diagnostics: DiagnosticCollector, options: Mapping[str, object]) -> None:
	ops: List[OperationRef] = [op for op in walk(module) if op.is_attached]
	illegal = [
		op for op in ops
		if op.name not in OP_MAP and op.name != "arith.index_cast" and op.dialect_name not in _LEGAL_DIALECTS
	]
	for op in illegal:
		diagnostics.error("no conversion to the llvm dialect", op.location, op_name=op.name)
	if illegal:
		return

	converter = TypeConverter(module.context)
	_retype_values(module, converter)
	converted = 0
	for op in ops:
		if op.name == "arith.index_cast":
			_convert_index_cast(op)
			converted += 1
			continue
		target: Optional[str] = OP_MAP.get(op.name)
		if target is None:
			attrs = op.attributes
			for key in list(attrs):
				attrs[key] = converter.convert_attribute(attrs[key])
			continue
		attributes = {key: converter.convert_attribute(attr) for key, attr in op.attributes.items()}
		_replace(op, target, attributes)
		converted += 1
	logger.debug("convert-to-llvm rewrote %d op(s)", converted)


__all__ = ["OP_MAP", "TypeConverter", "convert_to_llvm"]
