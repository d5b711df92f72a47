# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
llvm dialect → llvmlite IR.

Each `llvm.func` becomes an `ir.Function`; a function whose region is empty
is a declaration. Blocks are emitted in reverse post-order from the entry so
every dominating definition is translated before its uses; non-entry block
arguments become phi nodes whose incoming edges are filled in once every
block has been emitted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Tuple

from llvmlite import ir  # type: ignore

from irkit.core.errors import JitRuntimeError
from irkit.ir.attributes import BoolAttr, FloatAttr, IntegerAttr, StringAttr, SymbolRefAttr, TypeAttr
from irkit.ir.block import BlockRef
from irkit.ir.operation import OperationRef
from irkit.ir.types import FloatType, FunctionType, IntegerType, Type
from irkit.ir.value import Value

if TYPE_CHECKING:
	from irkit.ir.module import Module

_BINARY = {
	"llvm.add": "add",
	"llvm.sub": "sub",
	"llvm.mul": "mul",
	"llvm.sdiv": "sdiv",
	"llvm.udiv": "udiv",
	"llvm.srem": "srem",
	"llvm.urem": "urem",
	"llvm.and": "and_",
	"llvm.or": "or_",
	"llvm.xor": "xor",
	"llvm.shl": "shl",
	"llvm.ashr": "ashr",
	"llvm.fadd": "fadd",
	"llvm.fsub": "fsub",
	"llvm.fmul": "fmul",
	"llvm.fdiv": "fdiv",
}
_CASTS = {
	"llvm.sext": "sext",
	"llvm.zext": "zext",
	"llvm.trunc": "trunc",
	"llvm.sitofp": "sitofp",
	"llvm.fptosi": "fptosi",
}
# predicate -> (signed, llvmlite comparison)
_ICMP: Dict[str, Tuple[bool, str]] = {
	"eq": (True, "=="),
	"ne": (True, "!="),
	"slt": (True, "<"),
	"sle": (True, "<="),
	"sgt": (True, ">"),
	"sge": (True, ">="),
	"ult": (False, "<"),
	"ule": (False, "<="),
	"ugt": (False, ">"),
	"uge": (False, ">="),
}
# predicate -> (ordered, llvmlite comparison)
_FCMP: Dict[str, Tuple[bool, str]] = {
	"oeq": (True, "=="),
	"one": (True, "!="),
	"olt": (True, "<"),
	"ole": (True, "<="),
	"ogt": (True, ">"),
	"oge": (True, ">="),
	"ord": (True, "ord"),
	"ueq": (False, "=="),
	"une": (False, "!="),
	"ult": (False, "<"),
	"ule": (False, "<="),
	"ugt": (False, ">"),
	"uge": (False, ">="),
	"uno": (False, "uno"),
}
_FLOATS = {"f16": ir.HalfType, "f32": ir.FloatType, "f64": ir.DoubleType}
# Operand and successor counts the builder calls below rely on.
_OPERAND_COUNTS: Dict[str, int] = {
	**{name: 2 for name in _BINARY},
	**{name: 1 for name in _CASTS},
	"llvm.icmp": 2,
	"llvm.fcmp": 2,
	"llvm.select": 3,
	"llvm.cond_br": 1,
}
_SUCCESSOR_COUNTS: Dict[str, int] = {"llvm.br": 1, "llvm.cond_br": 2}


def llvm_type(t: Type) -> ir.Type:
	if isinstance(t, IntegerType):
		return ir.IntType(t.width)
	if isinstance(t, FloatType) and t.name in _FLOATS:
		return _FLOATS[t.name]()
	raise JitRuntimeError(f"type {t} has no LLVM equivalent")


def _signature(op: OperationRef) -> FunctionType:
	attr = op.attributes.get("function_type")
	if not isinstance(attr, TypeAttr) or not isinstance(attr.value, FunctionType):
		raise JitRuntimeError(f"'{op.name}' has no function type")
	return attr.value


def _symbol(op: OperationRef) -> str:
	attr = op.attributes.get("sym_name")
	if not isinstance(attr, StringAttr):
		raise JitRuntimeError(f"'{op.name}' has no symbol name")
	return attr.value


def function_type(sig: FunctionType) -> ir.FunctionType:
	results = sig.results
	if len(results) > 1:
		raise JitRuntimeError("functions with more than one result cannot be compiled")
	ret = llvm_type(results[0]) if results else ir.VoidType()
	return ir.FunctionType(ret, [llvm_type(t) for t in sig.inputs])


def _reverse_post_order(blocks: List[BlockRef]) -> List[BlockRef]:
	seen = set()
	order: List[BlockRef] = []

	def visit(block: BlockRef) -> None:
		seen.add(block)
		for succ in block.successors:
			if succ not in seen:
				visit(succ)
		order.append(block)

	visit(blocks[0])
	order.reverse()
	# Unreachable blocks still get emitted (after the reachable ones).
	order.extend(b for b in blocks if b not in seen)
	return order


class _FunctionTranslator:
	def __init__(self, translator: "ModuleTranslator", op: OperationRef, fn: ir.Function) -> None:
		self.translator = translator
		self.op = op
		self.fn = fn
		self.values: Dict[Value, ir.Value] = {}
		self.blocks: Dict[BlockRef, ir.Block] = {}
		self.phis: Dict[BlockRef, List[ir.PhiInstr]] = {}
		self.incoming: List[Tuple[ir.PhiInstr, Value, ir.Block]] = []

	def value(self, v: Value) -> ir.Value:
		out = self.values.get(v)
		if out is None:
			raise JitRuntimeError(f"value of type {v.type} is used before it is defined")
		return out

	def translate(self) -> None:
		blocks = self.op.regions[0].blocks
		for i, block in enumerate(blocks):
			self.blocks[block] = self.fn.append_basic_block(name=f"bb{i}")
		entry = blocks[0]
		for arg, param in zip(entry.arguments, self.fn.args):
			self.values[arg] = param
		for block in blocks[1:]:
			builder = ir.IRBuilder(self.blocks[block])
			phis = []
			for arg in block.arguments:
				phi = builder.phi(llvm_type(arg.type))
				self.values[arg] = phi
				phis.append(phi)
			self.phis[block] = phis
		for block in _reverse_post_order(blocks):
			builder = ir.IRBuilder(self.blocks[block])
			for op in block.operations:
				self.emit(builder, op)
		for phi, v, pred in self.incoming:
			phi.add_incoming(self.value(v), pred)

	def emit(self, builder: ir.IRBuilder, op: OperationRef) -> None:
		name = op.name
		args = [self.value(v) for v in op.operands]
		expected = _OPERAND_COUNTS.get(name)
		if expected is not None and len(args) != expected:
			raise JitRuntimeError(f"'{name}' takes {expected} operand(s), got {len(args)}")
		expected = _SUCCESSOR_COUNTS.get(name)
		if expected is not None and len(op.successors) != expected:
			raise JitRuntimeError(f"'{name}' takes {expected} successor(s), got {len(op.successors)}")
		if name == "llvm.mlir.constant":
			self._define(op, self._constant(op))
		elif name in _BINARY:
			self._define(op, getattr(builder, _BINARY[name])(args[0], args[1]))
		elif name in _CASTS:
			self._define(op, getattr(builder, _CASTS[name])(args[0], llvm_type(op.result.type)))
		elif name == "llvm.icmp":
			signed, cmp = self._predicate(op, _ICMP)
			emit = builder.icmp_signed if signed else builder.icmp_unsigned
			self._define(op, emit(cmp, args[0], args[1]))
		elif name == "llvm.fcmp":
			ordered, cmp = self._predicate(op, _FCMP)
			emit = builder.fcmp_ordered if ordered else builder.fcmp_unordered
			self._define(op, emit(cmp, args[0], args[1]))
		elif name == "llvm.select":
			self._define(op, builder.select(args[0], args[1], args[2]))
		elif name == "llvm.call":
			callee = op.attributes.get("callee")
			if not isinstance(callee, SymbolRefAttr):
				raise JitRuntimeError("'llvm.call' needs a symbol callee")
			result = builder.call(self.translator.function(callee.value), args)
			if op.num_results:
				self._define(op, result)
		elif name == "llvm.return":
			if args:
				builder.ret(args[0])
			else:
				builder.ret_void()
		elif name == "llvm.br":
			target = op.successors[0]
			for phi, v in zip(self.phis.get(target, []), op.operands):
				self.incoming.append((phi, v, builder.block))
			builder.branch(self.blocks[target])
		elif name == "llvm.cond_br":
			then, other = op.successors
			builder.cbranch(args[0], self.blocks[then], self.blocks[other])
		else:
			raise JitRuntimeError(f"cannot translate '{name}'")

	def _define(self, op: OperationRef, value: ir.Value) -> None:
		self.values[op.result] = value

	@staticmethod
	def _predicate(op: OperationRef, table: Dict[str, Tuple[bool, str]]) -> Tuple[bool, str]:
		attr = op.attributes.get("predicate")
		if not isinstance(attr, StringAttr):
			raise JitRuntimeError(f"'{op.name}' needs a string predicate")
		entry = table.get(attr.value)
		if entry is None:
			raise JitRuntimeError(f"'{op.name}' has unsupported predicate '{attr.value}'")
		return entry

	@staticmethod
	def _constant(op: OperationRef) -> ir.Constant:
		attr = op.attributes.get("value")
		ty = llvm_type(op.result.type)
		if isinstance(attr, (IntegerAttr, FloatAttr)):
			return ir.Constant(ty, attr.value)
		if isinstance(attr, BoolAttr):
			return ir.Constant(ty, int(attr.value))
		raise JitRuntimeError("'llvm.mlir.constant' needs an integer, float or bool value")


class ModuleTranslator:
	def __init__(self, module: "Module", name: str = "irkit") -> None:
		self.module = module
		self.ir_module = ir.Module(name=name)
		self.functions: Dict[str, ir.Function] = {}
		self.signatures: Dict[str, FunctionType] = {}

	def function(self, symbol: str) -> ir.Function:
		fn = self.functions.get(symbol)
		if fn is None:
			raise JitRuntimeError(f"call to unknown function '{symbol}'")
		return fn

	def translate(self) -> ir.Module:
		funcs = [op for op in self.module.body.operations if op.name == "llvm.func"]
		# Declare everything first so calls may refer forward.
		for op in funcs:
			symbol = _symbol(op)
			sig = _signature(op)
			self.signatures[symbol] = sig
			self.functions[symbol] = ir.Function(self.ir_module, function_type(sig), name=symbol)
		for op in funcs:
			if op.regions[0].num_blocks:
				_FunctionTranslator(self, op, self.functions[_symbol(op)]).translate()
		return self.ir_module


def translate_module(module: "Module") -> ModuleTranslator:
	translator = ModuleTranslator(module)
	translator.translate()
	return translator


__all__ = ["ModuleTranslator", "function_type", "llvm_type", "translate_module"]
