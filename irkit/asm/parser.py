# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Textual form parser.

The lark LALR grammar in `grammar.lark` produces a parse tree; the builder
below turns it into native records in two passes:

  A. create every region, block, block argument and operation (with its
     results) and register value names and per-region block labels;
  B. resolve operands and successors, which may refer forward (a block later
     in the region, a value defined in a dominating block printed after the
     use).

Any failure surfaces as `ParseError` with the 1-based line and column of the
offending token; records already created for the failed input are released.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from irkit.core.attributes_core import (
	ArrayAttrSpec,
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
from irkit.core.errors import ParseError
from irkit.core.location import FileLineColLoc, Location, NameLoc, UnknownLoc
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
	VectorSpec,
)
from irkit.native.records import BlockRecord, OpRecord, RegionRecord, ValueRecord

if TYPE_CHECKING:
	from irkit.ir.attributes import Attribute
	from irkit.ir.context import Context
	from irkit.ir.module import Module
	from irkit.ir.types import Type

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

# The contextual lexer keeps keywords such as `index` usable as attribute
# names and lets `inf`/`nan` be float literals only where a value is expected.
_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="contextual",
	start=["toplevel", "type_only", "attribute_only"],
	propagate_positions=True,
	maybe_placeholders=False,
)


def _name(node: Tree) -> str:
	return str(node.data)


def _decode_string(text: str) -> str:
	"""STRING tokens use JSON escapes (the printer writes them with json.dumps)."""
	return json.loads(text)


def _position(node) -> tuple:
	if isinstance(node, Token):
		return node.line, node.column
	meta = getattr(node, "meta", None)
	if meta is None or getattr(meta, "empty", True):
		return None, None
	return meta.line, meta.column


def _lark_error(exc: UnexpectedInput, source: Optional[str]) -> ParseError:
	line = getattr(exc, "line", None)
	column = getattr(exc, "column", None)
	if line is not None and line < 1:
		line, column = None, None
	if isinstance(exc, UnexpectedToken):
		if exc.token.type == "$END":
			reason = "unexpected end of input"
		else:
			reason = f"unexpected {exc.token.type} {str(exc.token)!r}"
		expected = sorted(exc.expected)
		if expected:
			reason += f" (expected one of: {', '.join(expected[:8])}{', ...' if len(expected) > 8 else ''})"
	elif isinstance(exc, UnexpectedCharacters):
		reason = f"unexpected character {exc.char!r}"
	elif isinstance(exc, UnexpectedEOF):
		reason = "unexpected end of input"
	else:
		reason = str(exc).splitlines()[0]
	return ParseError(reason, line=line, column=column, source=source)


def _parse_tree(text: str, start: str, source: Optional[str]) -> Tree:
	if not isinstance(text, str):
		raise TypeError(f"expected text, got {type(text).__name__}")
	try:
		return _PARSER.parse(text, start=start)
	except UnexpectedInput as exc:
		raise _lark_error(exc, source) from None


@dataclass
class _PendingRefs:
	op: OpRecord
	operands: List[Token]
	input_types: List[object]
	successors: List[Token]
	blocks: Optional[Dict[str, BlockRecord]]


class _IRBuilder:
	def __init__(self, context: "Context", source: Optional[str] = None) -> None:
		self.context = context
		self.source = source
		self.store = context._store
		self.values: Dict[str, ValueRecord] = {}
		self.pending: List[_PendingRefs] = []
		self.top_level: List[OpRecord] = []
		self.regions: List[RegionRecord] = []

	def error(self, message: str, node) -> ParseError:
		line, column = _position(node)
		return ParseError(message, line=line, column=column, source=self.source)

	def string(self, tok: Token, text: Optional[str] = None) -> str:
		try:
			return _decode_string(str(tok) if text is None else text)
		except ValueError as exc:
			raise self.error(f"invalid string literal {tok}: {getattr(exc, 'msg', exc)}", tok) from None

	# ---- types ----

	def type(self, node: Tree) -> "Type":
		try:
			return self.context.get_type(self._type_spec(node))
		except (ValueError, TypeError) as exc:
			raise self.error(str(exc), node) from None

	def _type_spec(self, node: Tree):
		kind = _name(node)
		children = node.children
		if kind == "int_type":
			text = str(children[0])
			sign = text[0] if text[0] in "su" else ""
			return IntegerSpec(int(text.lstrip("su")[1:]), Signedness(sign))
		if kind == "float_type":
			return FloatSpec(str(children[0]))
		if kind == "index_type":
			return IndexSpec()
		if kind == "none_type":
			return NoneSpec()
		if kind in ("tensor_type", "vector_type", "memref_type"):
			shape: tuple = ()
			if isinstance(children[0], Token) and children[0].type == "SHAPE":
				dims = str(children[0]).split("x")[:-1]
				shape = tuple(None if d == "?" else int(d) for d in dims)
			element = self.type(children[-1])
			spec_cls = {"tensor_type": TensorSpec, "vector_type": VectorSpec, "memref_type": MemRefSpec}[kind]
			return spec_cls(shape, element)
		if kind == "opaque_type":
			dialect, name = str(children[0])[1:].split(".", 1)
			data = self.string(children[1]) if len(children) > 1 else ""
			return OpaqueTypeSpec(dialect, name, data)
		if kind == "function_type":
			inputs = tuple(self.type(c) for c in children[:-1])
			result_node = children[-1]
			if _name(result_node) == "single_result":
				results = (self.type(result_node.children[0]),)
			else:
				results = tuple(self.type(c) for c in result_node.children)
			return FunctionSpec(inputs, results)
		raise self.error(f"unsupported type syntax '{kind}'", node)

	# ---- attributes ----

	def attribute(self, node: Tree) -> "Attribute":
		try:
			return self.context.get_attribute(self._attr_spec(node))
		except (ValueError, TypeError) as exc:
			raise self.error(str(exc), node) from None

	def _attr_spec(self, node: Tree):
		from irkit.ir.types import FloatType, IntegerType

		kind = _name(node)
		children = node.children
		if kind == "int_attr":
			attr_type = self.type(children[1]) if len(children) > 1 else IntegerType.get(self.context, 64)
			return IntegerAttrSpec(int(str(children[0])), attr_type)
		if kind == "float_attr":
			attr_type = self.type(children[1]) if len(children) > 1 else FloatType.get(self.context, "f64")
			return FloatAttrSpec(float(str(children[0])), attr_type)
		if kind == "string_attr":
			return StringAttrSpec(self.string(children[0]))
		if kind == "true_attr":
			return BoolAttrSpec(True)
		if kind == "false_attr":
			return BoolAttrSpec(False)
		if kind == "unit_attr":
			return UnitAttrSpec()
		if kind == "type_attr":
			return TypeAttrSpec(self.type(children[0]))
		if kind == "array_attr":
			return ArrayAttrSpec(tuple(self.attribute(c) for c in children))
		if kind == "dict_attr":
			return DictAttrSpec(tuple(self.attr_entries(children[0]).items()))
		if kind == "symbol_attr":
			body = str(children[0])[1:]
			return SymbolRefAttrSpec(self.string(children[0], body) if body.startswith('"') else body)
		if kind == "opaque_attr":
			return OpaqueAttrSpec(str(children[0])[1:], self.string(children[1]))
		raise self.error(f"unsupported attribute syntax '{kind}'", node)

	def attr_entries(self, node: Tree) -> Dict[str, "Attribute"]:
		from irkit.ir.attributes import UnitAttr

		entries: Dict[str, Attribute] = {}
		for entry in node.children:
			key_tok = entry.children[0].children[0]
			key = self.string(key_tok) if key_tok.type == "STRING" else str(key_tok)
			if key in entries:
				raise self.error(f"duplicate attribute '{key}'", key_tok)
			if _name(entry) == "attr_pair":
				entries[key] = self.attribute(entry.children[1])
			else:
				entries[key] = UnitAttr.get(self.context)
		return entries

	# ---- locations ----

	def location(self, node: Tree) -> Location:
		return self._loc_body(node.children[0])

	def _loc_body(self, node: Tree) -> Location:
		kind = _name(node)
		children = node.children
		if kind == "loc_unknown":
			return UnknownLoc()
		if kind == "loc_file":
			return FileLineColLoc(self.string(children[0]), int(str(children[1])), int(str(children[2])))
		child = self._loc_body(children[1]) if len(children) > 1 else UnknownLoc()
		return NameLoc(self.string(children[0]), child)

	# ---- IR ----

	def define(self, tok: Token, value: ValueRecord) -> None:
		name = str(tok)
		if name in self.values:
			raise self.error(f"redefinition of value {name}", tok)
		self.values[name] = value

	def operation(self, node: Tree, blocks: Optional[Dict[str, BlockRecord]]) -> OpRecord:
		name_tok: Optional[Token] = None
		result_toks: List[Token] = []
		operand_toks: List[Token] = []
		successor_toks: List[Token] = []
		region_nodes: List[Tree] = []
		attributes: Dict[str, "Attribute"] = {}
		signature_node: Optional[Tree] = None
		loc: Location = UnknownLoc()
		for child in node.children:
			if isinstance(child, Token):
				name_tok = child
				continue
			kind = _name(child)
			if kind == "op_results":
				result_toks = list(child.children)
			elif kind == "operands":
				operand_toks = list(child.children)
			elif kind == "successors":
				successor_toks = list(child.children)
			elif kind == "regions":
				region_nodes = list(child.children)
			elif kind == "attr_dict":
				attributes = self.attr_entries(child)
			elif kind == "function_type":
				signature_node = child
			elif kind == "location":
				loc = self.location(child)

		op_name = self.string(name_tok)
		if "." not in op_name:
			raise self.error(f"operation name '{op_name}' must be 'dialect.op'", name_tok)
		signature = self.type(signature_node).spec
		if len(signature.inputs) != len(operand_toks):
			raise self.error(
				f"'{op_name}' has {len(operand_toks)} operand(s) but its signature lists {len(signature.inputs)}",
				signature_node,
			)
		if len(signature.results) != len(result_toks):
			raise self.error(
				f"'{op_name}' defines {len(result_toks)} result name(s) but its signature lists {len(signature.results)}",
				name_tok,
			)
		regions = [self.region(r) for r in region_nodes]
		op = self.store.create_op(
			op_name,
			loc,
			result_types=[t._raw for t in signature.results],
			attributes={k: a._raw for k, a in attributes.items()},
			regions=regions,
		)
		for tok, result in zip(result_toks, op.results):
			self.define(tok, result)
		self.pending.append(
			_PendingRefs(op, operand_toks, [t._raw for t in signature.inputs], successor_toks, blocks)
		)
		return op

	def region(self, node: Tree) -> RegionRecord:
		region = self.store.create_region()
		self.regions.append(region)
		labels: Dict[str, BlockRecord] = {}
		for block_node in node.children:
			label_tok = block_node.children[0]
			arg_nodes: List[Tree] = []
			op_nodes: List[Tree] = []
			for child in block_node.children[1:]:
				if _name(child) == "block_args":
					arg_nodes = list(child.children)
				else:
					op_nodes.append(child)
			arg_types = []
			arg_locs = []
			for arg in arg_nodes:
				arg_types.append(self.type(arg.children[1])._raw)
				arg_locs.append(self.location(arg.children[2]) if len(arg.children) > 2 else UnknownLoc())
			block = self.store.create_block(arg_types, arg_locs)
			region.insert(len(region.blocks), block)
			label = str(label_tok)
			if label in labels:
				raise self.error(f"redefinition of block {label}", label_tok)
			labels[label] = block
			for arg, value in zip(arg_nodes, block.arguments):
				self.define(arg.children[0], value)
			for op_node in op_nodes:
				block.insert(len(block.operations), self.operation(op_node, labels))
		return region

	def resolve(self) -> None:
		from irkit.asm.printer import format_type_spec

		for refs in self.pending:
			for tok, expected in zip(refs.operands, refs.input_types):
				value = self.values.get(str(tok))
				if value is None:
					raise self.error(f"use of undefined value {tok}", tok)
				if value.type != expected:
					found = format_type_spec(self.context._types.lookup(value.type))
					wanted = format_type_spec(self.context._types.lookup(expected))
					raise self.error(f"{tok} has type {found} but '{refs.op.name}' expects {wanted}", tok)
				refs.op.append_operand(value)
			for tok in refs.successors:
				block = refs.blocks.get(str(tok)) if refs.blocks is not None else None
				if block is None:
					raise self.error(f"reference to undefined block {tok}", tok)
				refs.op.add_successor(block)

	def build_toplevel(self, tree: Tree) -> List[OpRecord]:
		for node in tree.children:
			self.top_level.append(self.operation(node, None))
		self.resolve()
		return self.top_level

	def discard(self) -> None:
		"""Release everything created so far (after a failure)."""
		for op in self.top_level:
			self.store.release_op(op)
		for region in self.regions:
			if region.parent is None:
				self.store.release_region(region)


def parse_module(context: "Context", text: str, *, source: Optional[str] = None) -> "Module":
	"""
	Parse a module.

	The text is either a single `builtin.module` operation or a sequence of
	operations, which are wrapped into a fresh module in order.
	"""
	from irkit.ir.module import MODULE_OP, Module

	context._check_live()
	tree = _parse_tree(text, "toplevel", source)
	builder = _IRBuilder(context, source)
	try:
		ops = builder.build_toplevel(tree)
	except Exception:
		builder.discard()
		raise
	if len(ops) == 1 and ops[0].name == MODULE_OP and len(ops[0].regions) == 1 and len(ops[0].regions[0].blocks) == 1:
		return Module(context, ops[0].handle)
	module = Module.create(context)
	body = module._resolve().regions[0].blocks[0]
	for op in ops:
		body.insert(len(body.operations), op)
	return module


def parse_type(context: "Context", text: str) -> "Type":
	context._check_live()
	tree = _parse_tree(text, "type_only", None)
	return _IRBuilder(context).type(tree.children[0])


def parse_attribute(context: "Context", text: str) -> "Attribute":
	context._check_live()
	tree = _parse_tree(text, "attribute_only", None)
	return _IRBuilder(context).attribute(tree.children[0])


__all__ = ["parse_attribute", "parse_module", "parse_type"]
