# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""func dialect: functions, calls and returns."""

from __future__ import annotations

from irkit.dialects import ISOLATED_FROM_ABOVE, SYMBOL, TERMINATOR, Dialect, OpDefinition, register_available_dialect
from irkit.dialects.checks import callee_symbol, function_like, returns_match_parent

DIALECT = Dialect.from_ops(
	"func",
	[
		OpDefinition(
			"func.func",
			num_regions=1,
			num_operands=0,
			num_results=0,
			required_attributes=("sym_name", "function_type"),
			traits={ISOLATED_FROM_ABOVE, SYMBOL},
			verifier=function_like,
		),
		OpDefinition("func.return", num_results=0, traits={TERMINATOR}, verifier=returns_match_parent),
		OpDefinition("func.call", required_attributes=("callee",), verifier=callee_symbol),
	],
	description="Function definitions and calls.",
)

register_available_dialect("func", lambda: DIALECT)
