# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Built-in module transforms: canonicalize, cse, dce, strip-debuginfo.

Each takes the module, the pass's diagnostic collector and its options, and
reports failure through error diagnostics.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Tuple

from irkit.core.diagnostics import DiagnosticCollector
from irkit.core.errors import OperationInUse
from irkit.core.location import UnknownLoc
from irkit.dialects import ISOLATED_FROM_ABOVE, PURE
from irkit.ir.block import RegionRef
from irkit.ir.operation import OperationRef
from irkit.ir.walk import walk
from irkit.passes.driver import GreedyRewriteConfig, apply_patterns_greedily, is_trivially_dead

if TYPE_CHECKING:
	from irkit.ir.module import Module

logger = logging.getLogger(__name__)


def canonicalize(module: "Module", diagnostics: DiagnosticCollector, options: Mapping[str, object]) -> None:
	"""Dialect canonicalization patterns plus trivially-dead op removal."""
	max_iterations = options.get("max_iterations")
	config = GreedyRewriteConfig(
		max_iterations=int(max_iterations) if max_iterations is not None else None,
		strict=bool(options.get("strict", False)),
	)
	apply_patterns_greedily(module, module.context.canonical_patterns(), diagnostics, config)


# ---- cse ----

_Key = Tuple[object, ...]


def _cse_key(op: OperationRef) -> Optional[_Key]:
	if op.num_regions or op.successors or not op.has_trait(PURE) or not op.num_results:
		return None
	return (
		op.name,
		tuple(op.operands),
		tuple(sorted(op.attributes.items(), key=lambda kv: kv[0])),
		tuple(r.type for r in op.results),
	)


def _cse_region(region: RegionRef, scope: Dict[_Key, OperationRef]) -> int:
	removed = 0
	for block in region.blocks:
		# Earlier ops of this block and of enclosing blocks dominate later ones.
		known = dict(scope)
		for op in block.operations:
			key = _cse_key(op)
			if key is not None:
				existing = known.get(key)
				if existing is not None:
					op.replace_all_uses_with(existing)
					op.erase()
					removed += 1
					continue
				known[key] = op
			for nested in op.regions:
				removed += _cse_region(nested, {} if op.has_trait(ISOLATED_FROM_ABOVE) else known)
	return removed


def cse(module: "Module", diagnostics: DiagnosticCollector, options: Mapping[str, object]) -> None:
	removed = 0
	for region in module.operation.regions:
		removed += _cse_region(region, {})
	logger.debug("cse removed %d op(s)", removed)


# ---- dce ----


def _erase_unreachable_blocks(region: RegionRef) -> int:
	erased = 0
	progress = True
	while progress:
		progress = False
		for block in region.blocks[1:]:
			if block.predecessors:
				continue
			try:
				block.erase()
			except OperationInUse:
				# Its values are still used by another block; try again once that one is gone.
				continue
			erased += 1
			progress = True
	return erased


def dce(module: "Module", diagnostics: DiagnosticCollector, options: Mapping[str, object]) -> None:
	"""Erase trivially dead ops and blocks nothing branches to, until nothing changes."""
	erased = 0
	changed = True
	while changed:
		changed = False
		for op in list(walk(module, order="post")):
			if op.is_valid and op.is_attached and is_trivially_dead(op):
				op.erase()
				erased += 1
				changed = True
		for op in list(walk(module)):
			if not op.is_valid:
				continue
			for region in op.regions:
				if _erase_unreachable_blocks(region):
					changed = True
	logger.debug("dce erased %d op(s)", erased)


# ---- strip-debuginfo ----


def strip_debuginfo(module: "Module", diagnostics: DiagnosticCollector, options: Mapping[str, object]) -> None:
	"""Reset every op and block argument location to unknown."""
	unknown = UnknownLoc()
	for op in walk(module):
		op.location = unknown
		for region in op.regions:
			for block in region.blocks:
				for arg in block.arguments:
					arg.location = unknown


__all__ = ["canonicalize", "cse", "dce", "strip_debuginfo"]
