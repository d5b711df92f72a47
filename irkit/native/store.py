# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-context native store: the handle table, creation/release helpers and the
accounting of owned roots used by context teardown.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from irkit.core.handles import HandleKind, HandleTable, RawHandle
from irkit.core.location import Location, UnknownLoc
from irkit.native.records import BlockRecord, OpRecord, RegionRecord, UseRecord, ValueRecord


class Store:
	def __init__(self, guard: AbstractContextManager) -> None:
		self.table = HandleTable(guard)
		self._roots: Dict[RawHandle, HandleKind] = {}

	# --- owned roots ---

	def add_root(self, raw: RawHandle, kind: HandleKind) -> None:
		self._roots[raw] = kind

	def remove_root(self, raw: RawHandle) -> None:
		self._roots.pop(raw, None)

	def live_roots(self) -> Dict[str, int]:
		"""Count of still-live owned roots by owner kind."""
		counts: Dict[str, int] = {}
		for raw, kind in list(self._roots.items()):
			if not self.table.is_live(raw):
				del self._roots[raw]
				continue
			label = kind.name.lower()
			counts[label] = counts.get(label, 0) + 1
		return counts

	# --- creation ---

	def create_value(self, type_raw: RawHandle, owner, index: int, location: Optional[Location] = None) -> ValueRecord:
		value = ValueRecord(type=type_raw, owner=owner, index=index, location=location)
		value.handle = self.table.acquire(HandleKind.VALUE, value)
		return value

	def create_op(
		self,
		name: str,
		location: Location,
		operands: Sequence[ValueRecord] = (),
		result_types: Sequence[RawHandle] = (),
		attributes: Optional[Mapping[str, RawHandle]] = None,
		regions: Sequence[RegionRecord] = (),
		successors: Sequence[BlockRecord] = (),
	) -> OpRecord:
		op = OpRecord(name=name, location=location)
		op.handle = self.table.acquire(HandleKind.OPERATION, op)
		for value in operands:
			op.append_operand(value)
		op.results = [self.create_value(t, op, i) for i, t in enumerate(result_types)]
		op.attributes = dict(attributes or {})
		for region in regions:
			region.parent = op
			op.regions.append(region)
		for block in successors:
			op.add_successor(block)
		return op

	def create_block(self, arg_types: Sequence[RawHandle] = (), arg_locations: Optional[Sequence[Location]] = None) -> BlockRecord:
		block = BlockRecord()
		block.handle = self.table.acquire(HandleKind.BLOCK, block)
		locs = list(arg_locations) if arg_locations is not None else [UnknownLoc()] * len(arg_types)
		for t, loc in zip(arg_types, locs):
			self.add_block_argument(block, t, loc)
		return block

	def add_block_argument(self, block: BlockRecord, type_raw: RawHandle, location: Optional[Location] = None) -> ValueRecord:
		arg = self.create_value(type_raw, block, len(block.arguments), location or UnknownLoc())
		block.arguments.append(arg)
		return arg

	def create_region(self) -> RegionRecord:
		region = RegionRecord()
		region.handle = self.table.acquire(HandleKind.REGION, region)
		return region

	# --- use analysis ---

	@staticmethod
	def external_uses(ops: Iterable[OpRecord], values: Iterable[ValueRecord]) -> List[UseRecord]:
		"""Uses of `values` whose user is not one of `ops`."""
		inside: Set[int] = {id(op) for op in ops}
		return [use for v in values for use in v.uses if id(use.user) not in inside]

	def op_external_uses(self, op: OpRecord) -> List[UseRecord]:
		return self.external_uses(op.walk(), op.defined_values())

	def block_external_uses(self, block: BlockRecord) -> List[UseRecord]:
		ops = [nested for o in block.operations for nested in o.walk()]
		values: List[ValueRecord] = list(block.arguments)
		for o in block.operations:
			values.extend(o.defined_values())
		return self.external_uses(ops, values)

	def region_external_uses(self, region: RegionRecord) -> List[UseRecord]:
		ops = list(region.walk())
		values: List[ValueRecord] = []
		for block in region.blocks:
			values.extend(block.arguments)
			for o in block.operations:
				values.extend(o.defined_values())
		return self.external_uses(ops, values)

	@staticmethod
	def external_predecessors(ops: Iterable[OpRecord], blocks: Iterable[BlockRecord]) -> List[OpRecord]:
		"""Branches outside `ops` that still name one of `blocks` as a successor."""
		inside: Set[int] = {id(op) for op in ops}
		return [p for b in blocks for p in b.predecessors if id(p) not in inside]

	@staticmethod
	def _nested_blocks(ops: Iterable[OpRecord]) -> List[BlockRecord]:
		return [b for o in ops for r in o.regions for b in r.blocks]

	def op_external_predecessors(self, op: OpRecord) -> List[OpRecord]:
		ops = list(op.walk())
		return self.external_predecessors(ops, self._nested_blocks(ops))

	def block_external_predecessors(self, block: BlockRecord) -> List[OpRecord]:
		ops = [nested for o in block.operations for nested in o.walk()]
		return self.external_predecessors(ops, [block, *self._nested_blocks(ops)])

	def region_external_predecessors(self, region: RegionRecord) -> List[OpRecord]:
		ops = list(region.walk())
		return self.external_predecessors(ops, [*region.blocks, *self._nested_blocks(ops)])

	# --- release ---

	def release_op(self, op: OpRecord) -> None:
		"""Release `op` and everything it owns. The caller detaches it first."""
		self._release_ops(list(op.walk()))

	def release_block(self, block: BlockRecord) -> None:
		self._release_ops([nested for o in block.operations for nested in o.walk()])
		self._release_block_shell(block)

	def release_region(self, region: RegionRecord) -> None:
		self._release_ops(list(region.walk()))
		for block in region.blocks:
			self._release_block_shell(block)
		if region.handle is not None and self.table.is_live(region.handle):
			self.table.release(region.handle)

	def _release_ops(self, ops: List[OpRecord]) -> None:
		for o in ops:
			o.drop_operand_uses()
			o.drop_successor_refs()
		for o in ops:
			self._release_handles(o)

	def _release_handles(self, op: OpRecord) -> None:
		# Nested ops are released by their own call; see the walks above.
		for region in op.regions:
			for block in region.blocks:
				self._release_block_shell(block)
			if region.handle is not None and self.table.is_live(region.handle):
				self.table.release(region.handle)
		for value in op.results:
			if value.handle is not None and self.table.is_live(value.handle):
				self.table.release(value.handle)
		if op.handle is not None and self.table.is_live(op.handle):
			self.table.release(op.handle)

	def _release_block_shell(self, block: BlockRecord) -> None:
		for arg in block.arguments:
			if arg.handle is not None and self.table.is_live(arg.handle):
				self.table.release(arg.handle)
		if block.handle is not None and self.table.is_live(block.handle):
			self.table.release(block.handle)

	def close(self) -> None:
		self._roots.clear()
		self.table.close()


__all__ = ["Store"]
