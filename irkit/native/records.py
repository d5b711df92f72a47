# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Unchecked native IR records.

Module → Region → Block → Operation → Value, linked by direct references.
Parents own children through plain lists; values keep a use-list of
`UseRecord(user, index)` entries that the mutation helpers below keep in sync
with every operand list. These helpers never validate anything: calling them
on released records or across contexts is undefined, which is exactly what the
safe layer exists to prevent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from irkit.core.handles import RawHandle
from irkit.core.location import Location, UnknownLoc


@dataclass(eq=False)
class UseRecord:
	"""`user.operands[index]` refers to the value holding this record."""

	user: "OpRecord"
	index: int


@dataclass(eq=False)
class ValueRecord:
	"""An operation result or a block argument."""

	type: RawHandle
	owner: Union["OpRecord", "BlockRecord"]
	index: int
	location: Optional[Location] = None
	uses: List[UseRecord] = field(default_factory=list)
	handle: Optional[RawHandle] = None

	@property
	def is_block_argument(self) -> bool:
		return isinstance(self.owner, BlockRecord)

	def add_use(self, user: "OpRecord", index: int) -> None:
		self.uses.append(UseRecord(user, index))

	def remove_use(self, user: "OpRecord", index: int) -> None:
		for i, use in enumerate(self.uses):
			if use.user is user and use.index == index:
				del self.uses[i]
				return


@dataclass(eq=False)
class OpRecord:
	name: str
	location: Location = field(default_factory=UnknownLoc)
	operands: List[ValueRecord] = field(default_factory=list)
	results: List[ValueRecord] = field(default_factory=list)
	attributes: Dict[str, RawHandle] = field(default_factory=dict)
	regions: List["RegionRecord"] = field(default_factory=list)
	successors: List["BlockRecord"] = field(default_factory=list)
	parent: Optional["BlockRecord"] = None
	handle: Optional[RawHandle] = None

	def append_operand(self, value: ValueRecord) -> None:
		self.operands.append(value)
		value.add_use(self, len(self.operands) - 1)

	def set_operand(self, index: int, value: ValueRecord) -> None:
		old = self.operands[index]
		old.remove_use(self, index)
		self.operands[index] = value
		value.add_use(self, index)

	def erase_operand(self, index: int) -> None:
		self.operands[index].remove_use(self, index)
		del self.operands[index]
		# Later operands shift down by one; their use entries must follow.
		for j in range(index, len(self.operands)):
			for use in self.operands[j].uses:
				if use.user is self and use.index == j + 1:
					use.index = j
					break

	def drop_operand_uses(self) -> None:
		for i, value in enumerate(self.operands):
			value.remove_use(self, i)

	def add_successor(self, block: "BlockRecord") -> None:
		self.successors.append(block)
		block.predecessors.append(self)

	def set_successor(self, index: int, block: "BlockRecord") -> None:
		self.successors[index].remove_predecessor(self)
		self.successors[index] = block
		block.predecessors.append(self)

	def drop_successor_refs(self) -> None:
		for block in self.successors:
			block.remove_predecessor(self)

	@property
	def parent_region(self) -> Optional["RegionRecord"]:
		return self.parent.parent if self.parent is not None else None

	@property
	def parent_op(self) -> Optional["OpRecord"]:
		region = self.parent_region
		return region.parent if region is not None else None

	def walk(self) -> Iterator["OpRecord"]:
		"""Pre-order walk of this op and every op nested in its regions."""
		yield self
		for region in self.regions:
			for block in region.blocks:
				for op in list(block.operations):
					yield from op.walk()

	def walk_post(self) -> Iterator["OpRecord"]:
		for region in self.regions:
			for block in region.blocks:
				for op in list(block.operations):
					yield from op.walk_post()
		yield self

	def is_proper_ancestor_of(self, other: "OpRecord") -> bool:
		cur = other.parent_op
		while cur is not None:
			if cur is self:
				return True
			cur = cur.parent_op
		return False

	def defined_values(self) -> Iterator[ValueRecord]:
		"""Results of this op and of nested ops, plus nested block arguments."""
		for op in self.walk():
			yield from op.results
			for region in op.regions:
				for block in region.blocks:
					yield from block.arguments


@dataclass(eq=False)
class BlockRecord:
	arguments: List[ValueRecord] = field(default_factory=list)
	operations: List[OpRecord] = field(default_factory=list)
	parent: Optional["RegionRecord"] = None
	handle: Optional[RawHandle] = None
	# One entry per successor slot naming this block.
	predecessors: List[OpRecord] = field(default_factory=list)

	def remove_predecessor(self, op: OpRecord) -> None:
		for i, candidate in enumerate(self.predecessors):
			if candidate is op:
				del self.predecessors[i]
				return

	def index_of(self, op: OpRecord) -> int:
		for i, candidate in enumerate(self.operations):
			if candidate is op:
				return i
		raise LookupError(f"operation '{op.name}' is not in this block")

	def insert(self, index: int, op: OpRecord) -> None:
		self.operations.insert(index, op)
		op.parent = self

	def remove(self, op: OpRecord) -> None:
		del self.operations[self.index_of(op)]
		op.parent = None

	@property
	def parent_op(self) -> Optional[OpRecord]:
		return self.parent.parent if self.parent is not None else None

	@property
	def terminator(self) -> Optional[OpRecord]:
		return self.operations[-1] if self.operations else None

	def successors(self) -> List["BlockRecord"]:
		"""Successor blocks named by any operation in this block (CFG edges)."""
		out: List[BlockRecord] = []
		for op in self.operations:
			for succ in op.successors:
				if not any(s is succ for s in out):
					out.append(succ)
		return out


@dataclass(eq=False)
class RegionRecord:
	blocks: List[BlockRecord] = field(default_factory=list)
	parent: Optional[OpRecord] = None
	handle: Optional[RawHandle] = None

	def index_of(self, block: BlockRecord) -> int:
		for i, candidate in enumerate(self.blocks):
			if candidate is block:
				return i
		raise LookupError("block is not in this region")

	def insert(self, index: int, block: BlockRecord) -> None:
		self.blocks.insert(index, block)
		block.parent = self

	def remove(self, block: BlockRecord) -> None:
		del self.blocks[self.index_of(block)]
		block.parent = None

	def walk(self) -> Iterator[OpRecord]:
		for block in self.blocks:
			for op in list(block.operations):
				yield from op.walk()


def replace_all_uses(old: ValueRecord, new: ValueRecord) -> int:
	"""Point every operand that references `old` at `new`; returns the count."""
	if old is new:
		return 0
	moved = list(old.uses)
	for use in moved:
		use.user.operands[use.index] = new
		new.uses.append(use)
	old.uses.clear()
	return len(moved)


__all__ = [
	"BlockRecord",
	"OpRecord",
	"RegionRecord",
	"UseRecord",
	"ValueRecord",
	"replace_all_uses",
]
