# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""builtin dialect: the module container and the conversion cast placeholder."""

from __future__ import annotations

from irkit.dialects import ISOLATED_FROM_ABOVE, NO_TERMINATOR, PURE, SYMBOL, Dialect, OpDefinition, register_available_dialect

DIALECT = Dialect.from_ops(
	"builtin",
	[
		OpDefinition(
			"builtin.module",
			num_regions=1,
			num_operands=0,
			num_results=0,
			traits={ISOLATED_FROM_ABOVE, NO_TERMINATOR, SYMBOL},
		),
		OpDefinition("builtin.unrealized_conversion_cast", traits={PURE}),
	],
	description="Top-level container operations.",
)

register_available_dialect("builtin", lambda: DIALECT)
