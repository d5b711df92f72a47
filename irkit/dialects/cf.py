# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""cf dialect: unstructured branches between blocks of one region."""

from __future__ import annotations

from irkit.dialects import TERMINATOR, Dialect, OpDefinition, register_available_dialect
from irkit.dialects.checks import branch_arguments, conditional_branch

DIALECT = Dialect.from_ops(
	"cf",
	[
		OpDefinition("cf.br", num_results=0, num_successors=1, traits={TERMINATOR}, verifier=branch_arguments),
		OpDefinition(
			"cf.cond_br",
			num_operands=1,
			num_results=0,
			num_successors=2,
			traits={TERMINATOR},
			verifier=conditional_branch,
		),
	],
	description="Control flow between blocks.",
)

register_available_dialect("cf", lambda: DIALECT)
