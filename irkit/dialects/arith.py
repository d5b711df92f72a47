# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
arith dialect: integer and float arithmetic on scalars.

Comparison predicates are string attributes ("slt", "oeq", ...). The
canonicalization patterns here are identity folds only.
"""

from __future__ import annotations

from irkit.dialects import COMMUTATIVE, CONSTANT_LIKE, PURE, Dialect, OpDefinition, register_available_dialect
from irkit.dialects.checks import (
	all_types_match,
	both,
	cast_operand,
	compare_operands,
	select_operands,
	string_enum,
	typed_value,
)
from irkit.passes.patterns import Capture, ConstantInt, OpMatch, Pattern, ReplaceWithCapture

CMPI_PREDICATES = ("eq", "ne", "slt", "sle", "sgt", "sge", "ult", "ule", "ugt", "uge")
CMPF_PREDICATES = ("oeq", "one", "olt", "ole", "ogt", "oge", "ueq", "une", "ult", "ule", "ugt", "uge", "ord", "uno")


def _identity(op_name: str, neutral: int) -> Pattern:
	"""`op(x, neutral) -> x`; commutative ops also match `op(neutral, x)`."""
	return Pattern(
		match=OpMatch(op_name, operands=(Capture("x"), ConstantInt(neutral))),
		replace=ReplaceWithCapture("x"),
		name=f"{op_name.split('.')[1]}-identity",
	)


def _binary(name: str, *, commutative: bool = False, patterns=()) -> OpDefinition:
	traits = {PURE, COMMUTATIVE} if commutative else {PURE}
	return OpDefinition(
		name,
		num_operands=2,
		num_results=1,
		traits=traits,
		verifier=all_types_match,
		canonical_patterns=patterns,
	)


def _cast(name: str) -> OpDefinition:
	return OpDefinition(name, num_operands=1, num_results=1, traits={PURE}, verifier=cast_operand)


DIALECT = Dialect.from_ops(
	"arith",
	[
		OpDefinition(
			"arith.constant",
			num_operands=0,
			num_results=1,
			required_attributes=("value",),
			traits={PURE, CONSTANT_LIKE},
			verifier=typed_value,
		),
		_binary("arith.addi", commutative=True, patterns=(_identity("arith.addi", 0),)),
		_binary("arith.subi", patterns=(_identity("arith.subi", 0),)),
		_binary("arith.muli", commutative=True, patterns=(_identity("arith.muli", 1),)),
		_binary("arith.divsi", patterns=(_identity("arith.divsi", 1),)),
		_binary("arith.divui", patterns=(_identity("arith.divui", 1),)),
		_binary("arith.remsi"),
		_binary("arith.remui"),
		_binary("arith.andi", commutative=True),
		_binary("arith.ori", commutative=True, patterns=(_identity("arith.ori", 0),)),
		_binary("arith.xori", commutative=True, patterns=(_identity("arith.xori", 0),)),
		_binary("arith.shli", patterns=(_identity("arith.shli", 0),)),
		_binary("arith.shrsi", patterns=(_identity("arith.shrsi", 0),)),
		_binary("arith.addf", commutative=True),
		_binary("arith.subf"),
		_binary("arith.mulf", commutative=True),
		_binary("arith.divf"),
		OpDefinition(
			"arith.cmpi",
			num_operands=2,
			num_results=1,
			required_attributes=("predicate",),
			traits={PURE},
			verifier=both(string_enum("predicate", CMPI_PREDICATES), compare_operands),
		),
		OpDefinition(
			"arith.cmpf",
			num_operands=2,
			num_results=1,
			required_attributes=("predicate",),
			traits={PURE},
			verifier=both(string_enum("predicate", CMPF_PREDICATES), compare_operands),
		),
		OpDefinition("arith.select", num_operands=3, num_results=1, traits={PURE}, verifier=select_operands),
		_cast("arith.extsi"),
		_cast("arith.extui"),
		_cast("arith.trunci"),
		_cast("arith.sitofp"),
		_cast("arith.fptosi"),
		_cast("arith.index_cast"),
	],
	description="Scalar integer and floating point arithmetic.",
)

register_available_dialect("arith", lambda: DIALECT)
