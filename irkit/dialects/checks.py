# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Reusable building blocks for dialect verifier hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, Optional

from irkit.ir.attributes import StringAttr, SymbolRefAttr, TypeAttr
from irkit.ir.types import FunctionType, IntegerType, Type

if TYPE_CHECKING:
	from irkit.core.diagnostics import DiagnosticCollector
	from irkit.ir.operation import OperationRef


def _error(op: "OperationRef", diags: "DiagnosticCollector", message: str) -> None:
	diags.error(message, op.location, op_name=op.name)


def all_types_match(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Every operand and result has the same type (binary arithmetic)."""
	types = [v.type for v in op.operands] + [v.type for v in op.results]
	if types and any(t != types[0] for t in types[1:]):
		_error(op, diags, "operand and result types must all match, got " + ", ".join(str(t) for t in types))


def string_enum(attr_name: str, allowed: Iterable[str]) -> Callable[["OperationRef", "DiagnosticCollector"], None]:
	allowed = tuple(allowed)

	def check(op: "OperationRef", diags: "DiagnosticCollector") -> None:
		attr = op.attributes.get(attr_name)
		if attr is None:
			return
		if not isinstance(attr, StringAttr) or attr.value not in allowed:
			_error(op, diags, f"attribute '{attr_name}' must be one of {', '.join(allowed)}")

	return check


def both(*checks: Callable[["OperationRef", "DiagnosticCollector"], None]) -> Callable[["OperationRef", "DiagnosticCollector"], None]:
	def check(op: "OperationRef", diags: "DiagnosticCollector") -> None:
		for c in checks:
			c(op, diags)

	return check


def compare_operands(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Two operands of one type producing an i1."""
	lhs, rhs = (v.type for v in op.operands)
	if lhs != rhs:
		_error(op, diags, f"compared operands must have the same type, got {lhs} and {rhs}")
	result = op.results[0].type
	if not (isinstance(result, IntegerType) and result.width == 1):
		_error(op, diags, f"comparison result must be i1, got {result}")


def select_operands(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	cond, lhs, rhs = (v.type for v in op.operands)
	if not (isinstance(cond, IntegerType) and cond.width == 1):
		_error(op, diags, f"select condition must be i1, got {cond}")
	result = op.results[0].type
	if not (lhs == rhs == result):
		_error(op, diags, "select operands and result must share one type")


def cast_operand(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Single operand, single result, distinct types."""
	if op.operands[0].type == op.results[0].type:
		_error(op, diags, "cast between identical types")


def typed_value(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""`value` attribute's type equals the single result type."""
	attr = op.attributes.get("value")
	result = op.results[0].type
	attr_type: Optional[Type] = getattr(attr, "type", None)
	if attr_type is not None and attr_type != result:
		_error(op, diags, f"'value' attribute type {attr_type} does not match result type {result}")


def function_like(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""`function_type` is a function type matching the entry block's arguments."""
	attr = op.attributes.get("function_type")
	if not isinstance(attr, TypeAttr) or not isinstance(attr.value, FunctionType):
		_error(op, diags, "'function_type' must be a type attribute holding a function type")
		return
	if not isinstance(op.attributes.get("sym_name"), StringAttr):
		_error(op, diags, "'sym_name' must be a string attribute")
	entry = op.regions[0].entry_block
	if entry is None:
		return
	arg_types = [a.type for a in entry.arguments]
	if arg_types != attr.value.inputs:
		_error(op, diags, "entry block arguments do not match the function type inputs")


def returns_match_parent(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Returned operand types equal the enclosing function's result types."""
	parent = op.parent_op
	if parent is None:
		return
	attr = parent.attributes.get("function_type")
	if not isinstance(attr, TypeAttr) or not isinstance(attr.value, FunctionType):
		return
	returned = [v.type for v in op.operands]
	if returned != attr.value.results:
		_error(op, diags, "returned values do not match the function result types")


def callee_symbol(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	if not isinstance(op.attributes.get("callee"), SymbolRefAttr):
		_error(op, diags, "'callee' must be a symbol reference")


def branch_arguments(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Unconditional branch: operands forward to the successor's arguments."""
	target = op.successors[0]
	expected = [a.type for a in target.arguments]
	passed = [v.type for v in op.operands]
	if expected != passed:
		_error(op, diags, f"branch passes {len(passed)} operand(s) that do not match the {len(expected)} successor argument(s)")


def conditional_branch(op: "OperationRef", diags: "DiagnosticCollector") -> None:
	"""Conditional branch on an i1; successors take no arguments."""
	cond = op.operands[0].type
	if not (isinstance(cond, IntegerType) and cond.width == 1):
		_error(op, diags, f"branch condition must be i1, got {cond}")
	for i, succ in enumerate(op.successors):
		if succ.num_arguments:
			_error(op, diags, f"successor #{i} of a conditional branch must not take arguments")


__all__ = [
	"all_types_match",
	"both",
	"branch_arguments",
	"callee_symbol",
	"cast_operand",
	"compare_operands",
	"conditional_branch",
	"function_like",
	"returns_match_parent",
	"select_operands",
	"string_enum",
	"typed_value",
]
