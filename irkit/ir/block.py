# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Blocks and regions.

Like operations, both come in an owned floating flavour (`Block`, `Region`)
and a borrowed flavour (`BlockRef`, `RegionRef`) for objects owned by a
parent. Inserting an owned operation, block or region into a parent consumes
the owned wrapper.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Union

from irkit.core.errors import InvalidHandle, OperationInUse
from irkit.core.handles import HandleKind
from irkit.core.location import Location, from_loc
from irkit.core.ownership import BorrowedHandle, Lifetime, OwnedHandle
from irkit.ir.operation import Operation, OperationRef, _OperationView
from irkit.ir.types import Type
from irkit.ir.value import Value
from irkit.native.records import BlockRecord, OpRecord, RegionRecord

if TYPE_CHECKING:
	from irkit.ir.context import Context


def _contains_block(op: OpRecord, block: BlockRecord) -> bool:
	cur: Optional[BlockRecord] = block
	while cur is not None:
		owner = cur.parent_op
		if owner is None:
			return False
		if owner is op:
			return True
		cur = owner.parent
	return False


class OperationSequence(Sequence):
	"""
	Lazy view of a block's operations, forward or reversed.

	Each iteration snapshots the block at its start and yields refs on demand,
	so it is restartable and finite even while the caller erases the op it
	was just handed. Ops removed from the block mid-iteration are skipped.
	"""

	def __init__(self, context: "Context", block_raw, scope: Optional[Lifetime], reverse: bool = False) -> None:
		self._context = context
		self._block_raw = block_raw
		self._scope = scope
		self._reverse = reverse

	def _block(self) -> BlockRecord:
		if self._scope is not None and not self._scope.alive:
			raise InvalidHandle("operation sequence used after its borrow scope ended", kind=HandleKind.BLOCK.name)
		return self._context._resolve(self._block_raw, HandleKind.BLOCK)

	def _ordered(self) -> List[OpRecord]:
		ops = list(self._block().operations)
		if self._reverse:
			ops.reverse()
		return ops

	def __iter__(self) -> Iterator[OperationRef]:
		block = self._block()
		for op in self._ordered():
			if op.parent is not block:
				continue
			yield OperationRef(self._context, op.handle, self._scope)

	def __reversed__(self) -> "OperationSequence":
		return OperationSequence(self._context, self._block_raw, self._scope, reverse=not self._reverse)

	def __len__(self) -> int:
		return len(self._block().operations)

	def __getitem__(self, index):
		ops = self._ordered()
		if isinstance(index, slice):
			return [OperationRef(self._context, op.handle, self._scope) for op in ops[index]]
		return OperationRef(self._context, ops[index].handle, self._scope)

	def __repr__(self) -> str:
		direction = "reversed " if self._reverse else ""
		return f"<OperationSequence {direction}len={len(self)}>"


class _BlockView:
	_context: "Context"
	_raw: object
	_scope: Optional[Lifetime]

	@property
	def context(self) -> "Context":
		return self._context

	# --- arguments ---

	@property
	def arguments(self) -> List[Value]:
		return [Value._from_record(self._context, a, self._scope) for a in self._resolve().arguments]

	@property
	def num_arguments(self) -> int:
		return len(self._resolve().arguments)

	def add_argument(self, type: Type, location: Optional[Location] = None) -> Value:
		if not isinstance(type, Type):
			raise TypeError(f"expected a Type, got {type.__class__.__name__}")
		self._context._check_same(type, what="argument type")
		record = self._context._store.add_block_argument(self._resolve(), type._raw, from_loc(location))
		return Value._from_record(self._context, record, self._scope)

	def erase_argument(self, index: int) -> None:
		block = self._resolve()
		arg = block.arguments[index]
		if arg.uses:
			raise OperationInUse(f"block argument #{index} still has {len(arg.uses)} use(s)", use_count=len(arg.uses))
		del block.arguments[index]
		for i, other in enumerate(block.arguments):
			other.index = i
		self._context._store.table.release(arg.handle)

	# --- operations ---

	@property
	def operations(self) -> OperationSequence:
		return OperationSequence(self._context, self._raw, self._scope)

	@property
	def terminator(self) -> Optional[OperationRef]:
		op = self._resolve().terminator
		return OperationRef(self._context, op.handle, self._scope) if op is not None else None

	def _insert(self, index: Optional[int], op: Operation) -> OperationRef:
		if isinstance(op, OperationRef):
			raise TypeError("only a floating Operation can be inserted; detach() the OperationRef first")
		if not isinstance(op, Operation):
			raise TypeError(f"expected an Operation, got {type(op).__name__}")
		self._context._check_same(op, what="operation")
		block = self._resolve()
		if _contains_block(op._resolve(), block):
			raise ValueError(f"cannot insert '{op.name}' into a block nested inside itself")
		record = op._take()
		block.insert(len(block.operations) if index is None else index, record)
		return OperationRef(self._context, record.handle, self._scope)

	def append_operation(self, op: Operation) -> OperationRef:
		return self._insert(None, op)

	def insert_operation(self, index: int, op: Operation) -> OperationRef:
		count = len(self._resolve().operations)
		if not 0 <= index <= count:
			raise IndexError(f"insertion index {index} out of range (block has {count} operations)")
		return self._insert(index, op)

	def _anchor_index(self, anchor: _OperationView) -> int:
		self._context._check_same(anchor, what="anchor operation")
		record = anchor._resolve()
		block = self._resolve()
		if record.parent is not block:
			raise ValueError(f"anchor '{record.name}' is not in this block")
		return block.index_of(record)

	def insert_before(self, anchor: _OperationView, op: Operation) -> OperationRef:
		return self._insert(self._anchor_index(anchor), op)

	def insert_after(self, anchor: _OperationView, op: Operation) -> OperationRef:
		return self._insert(self._anchor_index(anchor) + 1, op)

	# --- structure ---

	@property
	def parent_region(self) -> Optional["RegionRef"]:
		region = self._resolve().parent
		return RegionRef(self._context, region.handle, self._scope) if region is not None else None

	@property
	def parent_op(self) -> Optional[OperationRef]:
		op = self._resolve().parent_op
		return OperationRef(self._context, op.handle, self._scope) if op is not None else None

	@property
	def successors(self) -> List["BlockRef"]:
		return [BlockRef(self._context, b.handle, self._scope) for b in self._resolve().successors()]

	@property
	def predecessors(self) -> List[OperationRef]:
		"""Distinct operations branching to this block."""
		out: List[OpRecord] = []
		for op in self._resolve().predecessors:
			if not any(o is op for o in out):
				out.append(op)
		return [OperationRef(self._context, op.handle, self._scope) for op in out]

	def _check_releasable(self, block: BlockRecord) -> None:
		store = self._context._store
		uses = store.block_external_uses(block)
		if uses:
			raise OperationInUse(f"block values still have {len(uses)} use(s) outside the block", use_count=len(uses))
		preds = store.block_external_predecessors(block)
		if preds:
			raise OperationInUse(
				f"block is still a successor of {len(preds)} operation(s)",
				op_name=preds[0].name,
				use_count=len(preds),
			)


class Block(_BlockView, OwnedHandle):
	"""Owned handle to a floating block."""

	_kind = HandleKind.BLOCK
	_owner_kind = HandleKind.BLOCK

	@classmethod
	def create(
		cls,
		context: "Context",
		arg_types: Sequence[Type] = (),
		arg_locations: Optional[Sequence[Location]] = None,
	) -> "Block":
		context._check_live()
		for t in arg_types:
			if not isinstance(t, Type):
				raise TypeError(f"argument types must be Types, got {type(t).__name__}")
		context._check_same(*arg_types, what="argument type")
		locations = [from_loc(l) for l in arg_locations] if arg_locations is not None else None
		if locations is not None and len(locations) != len(arg_types):
			raise ValueError("arg_locations must match arg_types in length")
		record = context._store.create_block([t._raw for t in arg_types], locations)
		return cls(context, record.handle)

	def _release(self, record: BlockRecord) -> None:
		self._check_releasable(record)
		self._context._store.release_block(record)

	def _make_ref(self, scope: Optional[Lifetime]) -> "BlockRef":
		return BlockRef(self._context, self._raw, scope)

	def __repr__(self) -> str:
		if not self.is_live:
			return f"<Block ({self.state.name.lower()})>"
		return f"<Block floating args={self.num_arguments} ops={len(self.operations)}>"


class BlockRef(_BlockView, BorrowedHandle):
	_kind = HandleKind.BLOCK

	@property
	def index(self) -> int:
		"""Position of this block in its parent region."""
		block = self._resolve()
		if block.parent is None:
			raise ValueError("block is not in a region")
		return block.parent.index_of(block)

	def erase(self) -> None:
		block = self._resolve()
		if block.parent is None:
			raise ValueError("block is not in a region; destroy its owning wrapper instead")
		self._check_releasable(block)
		block.parent.remove(block)
		self._context._store.release_block(block)

	def detach(self) -> Block:
		block = self._resolve()
		if block.parent is None:
			raise ValueError("block is not in a region")
		block.parent.remove(block)
		return Block(self._context, block.handle)

	def __repr__(self) -> str:
		if not self.is_valid:
			return "<BlockRef (invalid)>"
		return f"<BlockRef args={self.num_arguments} ops={len(self.operations)}>"


class _RegionView:
	_context: "Context"
	_scope: Optional[Lifetime]

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def blocks(self) -> List[BlockRef]:
		return [BlockRef(self._context, b.handle, self._scope) for b in self._resolve().blocks]

	@property
	def num_blocks(self) -> int:
		return len(self._resolve().blocks)

	@property
	def entry_block(self) -> Optional[BlockRef]:
		blocks = self._resolve().blocks
		return BlockRef(self._context, blocks[0].handle, self._scope) if blocks else None

	@property
	def parent_op(self) -> Optional[OperationRef]:
		op = self._resolve().parent
		return OperationRef(self._context, op.handle, self._scope) if op is not None else None

	def insert_block(self, index: int, block: Block) -> BlockRef:
		if isinstance(block, BlockRef):
			raise TypeError("only a floating Block can be inserted; detach() the BlockRef first")
		if not isinstance(block, Block):
			raise TypeError(f"expected a Block, got {type(block).__name__}")
		self._context._check_same(block, what="block")
		region = self._resolve()
		if not 0 <= index <= len(region.blocks):
			raise IndexError(f"block index {index} out of range")
		owner = region.parent
		candidate = block._resolve()
		# The region must not live inside one of the block's own operations.
		while owner is not None:
			if owner.parent is candidate:
				raise ValueError("cannot insert a block into a region nested inside itself")
			owner = owner.parent_op
		record = block._take()
		region.insert(index, record)
		return BlockRef(self._context, record.handle, self._scope)

	def append_block(self, block: Block) -> BlockRef:
		return self.insert_block(len(self._resolve().blocks), block)

	def add_block(self, *arg_types: Type, locations: Optional[Sequence[Location]] = None) -> BlockRef:
		"""Create a block with the given argument types and append it."""
		return self.append_block(Block.create(self._context, arg_types, locations))

	def walk(self, order: str = "pre") -> Iterator[OperationRef]:
		for block in self.blocks:
			for op in block.operations:
				yield from op.walk(order)


class Region(_RegionView, OwnedHandle):
	"""Owned handle to a floating region; consumed by `OperationBuilder.add_regions`."""

	_kind = HandleKind.REGION
	_owner_kind = HandleKind.REGION

	@classmethod
	def create(cls, context: "Context") -> "Region":
		context._check_live()
		return cls(context, context._store.create_region().handle)

	def _release(self, record: RegionRecord) -> None:
		store = self._context._store
		uses = store.region_external_uses(record)
		if uses:
			raise OperationInUse(f"region values still have {len(uses)} use(s) outside the region", use_count=len(uses))
		preds = store.region_external_predecessors(record)
		if preds:
			raise OperationInUse(
				f"a block of the region is still the successor of {len(preds)} outside operation(s)",
				op_name=preds[0].name,
				use_count=len(preds),
			)
		store.release_region(record)

	def _make_ref(self, scope: Optional[Lifetime]) -> "RegionRef":
		return RegionRef(self._context, self._raw, scope)

	def __repr__(self) -> str:
		if not self.is_live:
			return f"<Region ({self.state.name.lower()})>"
		return f"<Region floating blocks={self.num_blocks}>"


class RegionRef(_RegionView, BorrowedHandle):
	_kind = HandleKind.REGION

	def take_body(self, source: Union["RegionRef", Region]) -> None:
		"""Move every block of `source` into this (empty) region, in order."""
		self._context._check_same(source, what="source region")
		dest = self._resolve()
		src = source._resolve()
		if src is dest:
			return
		if dest.blocks:
			raise ValueError("take_body needs an empty destination region")
		for block in list(src.blocks):
			src.remove(block)
			dest.insert(len(dest.blocks), block)

	def __repr__(self) -> str:
		if not self.is_valid:
			return "<RegionRef (invalid)>"
		return f"<RegionRef blocks={self.num_blocks}>"


__all__ = ["Block", "BlockRef", "OperationSequence", "Region", "RegionRef"]
