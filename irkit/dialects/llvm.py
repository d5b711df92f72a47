# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
llvm dialect: the executable subset handed to the execution engine.

Each op maps 1:1 onto an llvmlite builder call (see
`irkit.execution.translate`). Only scalar integer and float types are
supported there.
"""

from __future__ import annotations

from irkit.dialects import (
	CONSTANT_LIKE,
	ISOLATED_FROM_ABOVE,
	PURE,
	SYMBOL,
	TERMINATOR,
	Dialect,
	OpDefinition,
	register_available_dialect,
)
from irkit.dialects.arith import CMPF_PREDICATES, CMPI_PREDICATES
from irkit.dialects.checks import (
	all_types_match,
	both,
	branch_arguments,
	callee_symbol,
	cast_operand,
	compare_operands,
	conditional_branch,
	function_like,
	returns_match_parent,
	select_operands,
	string_enum,
	typed_value,
)

BINARY_OPS = (
	"add", "sub", "mul", "sdiv", "udiv", "srem", "urem",
	"and", "or", "xor", "shl", "ashr",
	"fadd", "fsub", "fmul", "fdiv",
)
CAST_OPS = ("sext", "zext", "trunc", "sitofp", "fptosi")

DIALECT = Dialect.from_ops(
	"llvm",
	[
		OpDefinition(
			"llvm.func",
			num_regions=1,
			num_operands=0,
			num_results=0,
			required_attributes=("sym_name", "function_type"),
			traits={ISOLATED_FROM_ABOVE, SYMBOL},
			verifier=function_like,
		),
		OpDefinition("llvm.return", num_results=0, traits={TERMINATOR}, verifier=returns_match_parent),
		OpDefinition("llvm.call", required_attributes=("callee",), verifier=callee_symbol),
		OpDefinition(
			"llvm.mlir.constant",
			num_operands=0,
			num_results=1,
			required_attributes=("value",),
			traits={PURE, CONSTANT_LIKE},
			verifier=typed_value,
		),
		*[
			OpDefinition(f"llvm.{name}", num_operands=2, num_results=1, traits={PURE}, verifier=all_types_match)
			for name in BINARY_OPS
		],
		*[
			OpDefinition(f"llvm.{name}", num_operands=1, num_results=1, traits={PURE}, verifier=cast_operand)
			for name in CAST_OPS
		],
		OpDefinition(
			"llvm.icmp",
			num_operands=2,
			num_results=1,
			required_attributes=("predicate",),
			traits={PURE},
			verifier=both(string_enum("predicate", CMPI_PREDICATES), compare_operands),
		),
		OpDefinition(
			"llvm.fcmp",
			num_operands=2,
			num_results=1,
			required_attributes=("predicate",),
			traits={PURE},
			verifier=both(string_enum("predicate", CMPF_PREDICATES), compare_operands),
		),
		OpDefinition("llvm.select", num_operands=3, num_results=1, traits={PURE}, verifier=select_operands),
		OpDefinition("llvm.br", num_results=0, num_successors=1, traits={TERMINATOR}, verifier=branch_arguments),
		OpDefinition(
			"llvm.cond_br",
			num_operands=1,
			num_results=0,
			num_successors=2,
			traits={TERMINATOR},
			verifier=conditional_branch,
		),
	],
	description="LLVM IR operations.",
)

register_available_dialect("llvm", lambda: DIALECT)
