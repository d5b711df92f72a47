# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dominance for operand visibility.

Block dominance inside one region is the classic iterative dataflow over the
successor CFG:
  - dom(entry) = {entry}
  - dom(b) = all blocks initially
  - dom(b) = {b} ∪ (⋂_{p ∈ preds(b)} dom(p)) until fixed point
Unreachable blocks are dominated only by themselves.

Value visibility then follows the nesting rules: a use sees a value if some
ancestor of the user (or the user itself) sits in the region that defines the
value, after the definition in the same block or in a block the defining block
dominates, and no isolated-from-above op lies in between.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from irkit.native.records import BlockRecord, OpRecord, RegionRecord, ValueRecord


@dataclass
class DominatorInfo:
	"""
	Dominator sets and immediate dominators for one region, keyed by block
	position in the region.
	"""

	dom: Dict[int, Set[int]] = field(default_factory=dict)
	idom: Dict[int, Optional[int]] = field(default_factory=dict)

	def dominates(self, a: int, b: int) -> bool:
		return a in self.dom.get(b, {b})


class DominatorAnalysis:
	"""Compute block dominators for a region's CFG."""

	def compute(self, region: RegionRecord) -> DominatorInfo:
		blocks = list(region.blocks)
		if not blocks:
			return DominatorInfo()
		index = {id(b): i for i, b in enumerate(blocks)}
		all_ids = set(range(len(blocks)))
		entry = 0

		# 1. Predecessor map; successors outside this region are ignored here
		# (the verifier reports them separately).
		preds: Dict[int, Set[int]] = {i: set() for i in all_ids}
		for i, block in enumerate(blocks):
			for succ in block.successors():
				j = index.get(id(succ))
				if j is not None:
					preds[j].add(i)

		# 2. Iterate dom sets to a fixed point.
		dom: Dict[int, Set[int]] = {i: set(all_ids) for i in all_ids}
		dom[entry] = {entry}
		reachable = self._reachable(blocks, index)

		changed = True
		while changed:
			changed = False
			for b in range(len(blocks)):
				if b == entry:
					continue
				live_preds = [p for p in preds[b] if p in reachable]
				if b not in reachable or not live_preds:
					new_dom = {b}
				else:
					inter = dom[live_preds[0]].copy()
					for p in live_preds[1:]:
						inter &= dom[p]
					new_dom = inter | {b}
				if new_dom != dom[b]:
					dom[b] = new_dom
					changed = True

		# 3. idom(b): the dominator of b (other than b) dominated by every other one.
		idom: Dict[int, Optional[int]] = {entry: None}
		for b in range(len(blocks)):
			if b == entry:
				continue
			candidates = dom[b] - {b}
			idom[b] = None
			for c in candidates:
				if all((c == d) or (c not in dom[d]) for d in candidates):
					idom[b] = c
					break
		return DominatorInfo(dom=dom, idom=idom)

	@staticmethod
	def _reachable(blocks: List[BlockRecord], index: Dict[int, int]) -> Set[int]:
		seen = {0}
		work = [blocks[0]]
		while work:
			block = work.pop()
			for succ in block.successors():
				j = index.get(id(succ))
				if j is not None and j not in seen:
					seen.add(j)
					work.append(succ)
		return seen


class DominanceInfo:
	"""Answers "is this value visible at this use?" for ops in one tree."""

	def __init__(self, is_isolated: Callable[[OpRecord], bool]) -> None:
		self._is_isolated = is_isolated
		self._analysis = DominatorAnalysis()
		self._cache: Dict[int, DominatorInfo] = {}

	def _region_info(self, region: RegionRecord) -> DominatorInfo:
		info = self._cache.get(id(region))
		if info is None:
			info = self._analysis.compute(region)
			self._cache[id(region)] = info
		return info

	def block_dominates(self, a: BlockRecord, b: BlockRecord) -> bool:
		if a is b:
			return True
		if a.parent is None or a.parent is not b.parent:
			return False
		region = a.parent
		return self._region_info(region).dominates(region.index_of(a), region.index_of(b))

	def value_visible(self, value: ValueRecord, user: OpRecord) -> bool:
		if value.is_block_argument:
			def_block: Optional[BlockRecord] = value.owner
			def_op: Optional[OpRecord] = None
		else:
			def_op = value.owner
			def_block = def_op.parent
		if def_block is None or def_block.parent is None:
			# Defined by a floating op or in a floating block: only visible to
			# uses nested in that same floating tree, which we treat as invisible.
			return False
		def_region = def_block.parent

		# Climb from the user to its ancestor living directly in def_region.
		cur = user
		while cur.parent is None or cur.parent.parent is not def_region:
			parent = cur.parent_op
			if parent is None:
				return False
			if self._is_isolated(parent):
				return False
			cur = parent

		if cur.parent is def_block:
			if def_op is None:
				return True
			if cur is def_op:
				return False
			return def_block.index_of(def_op) < def_block.index_of(cur)
		return self.block_dominates(def_block, cur.parent)


__all__ = ["DominanceInfo", "DominatorAnalysis", "DominatorInfo"]
