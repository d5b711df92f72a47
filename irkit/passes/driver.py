# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Greedy pattern driver.

Each iteration walks the tree post-order, erasing trivially dead ops and
offering every remaining op to the patterns (highest benefit first) until one
applies. The driver stops at the first iteration that changes nothing, or
after `max_iterations`; hitting the cap is a warning, or an error in strict
mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from irkit.core.diagnostics import DiagnosticCollector
from irkit.dialects import PURE, TERMINATOR
from irkit.ir.operation import OperationRef
from irkit.ir.walk import walk
from irkit.passes.patterns import RewritePattern, sort_patterns
from irkit.passes.rewriter import PatternRewriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GreedyRewriteConfig:
	# None takes the context's `max_rewrite_iterations`.
	max_iterations: Optional[int] = None
	strict: bool = False
	remove_dead: bool = True


def is_trivially_dead(op: OperationRef) -> bool:
	"""Pure, region-free, not a terminator, and no result is used."""
	if op.num_regions or not op.has_trait(PURE) or op.has_trait(TERMINATOR):
		return False
	return not any(r.has_uses for r in op.results)


def apply_patterns_greedily(
	root,
	patterns: Sequence,
	diagnostics: DiagnosticCollector,
	config: GreedyRewriteConfig = GreedyRewriteConfig(),
) -> bool:
	"""Rewrite everything nested under `root`; returns True on convergence."""
	context = root._context
	limit = config.max_iterations or context.config.max_rewrite_iterations
	if limit < 1:
		raise ValueError("max_iterations must be at least 1")
	ordered: Sequence[RewritePattern] = sort_patterns(patterns)
	rewriter = PatternRewriter(context, diagnostics)
	root_record = root._resolve()

	for iteration in range(1, limit + 1):
		changed = False
		for op in list(walk(root, order="post")):
			if not op.is_valid or op._resolve() is root_record:
				continue
			if config.remove_dead and is_trivially_dead(op):
				rewriter.erase_op(op)
				changed = True
				continue
			name = op.name
			for pattern in ordered:
				if pattern.root is not None and pattern.root != name:
					continue
				rewriter.reset()
				if pattern.match_and_rewrite(op, rewriter):
					logger.debug("applied %s to '%s'", pattern.name, name)
					changed = True
					break
		logger.debug("greedy rewrite iteration %d: %s", iteration, "changed" if changed else "fixpoint")
		if not changed:
			return True

	message = f"greedy rewrite did not converge within {limit} iteration(s)"
	if config.strict:
		diagnostics.error(message, root.location)
	else:
		diagnostics.warning(message, root.location)
	return False


__all__ = ["GreedyRewriteConfig", "apply_patterns_greedily", "is_trivially_dead"]
