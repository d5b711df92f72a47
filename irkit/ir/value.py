# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
SSA values: operation results and block arguments.

Values are always borrowed. Their owner (an operation or a block) releases
them, after which every `Value` wrapper to them resolves to InvalidHandle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Union

from irkit.core.handles import HandleKind
from irkit.core.location import Location, UnknownLoc, from_loc
from irkit.core.ownership import BorrowedHandle, Lifetime
from irkit.native.records import ValueRecord, replace_all_uses

if TYPE_CHECKING:
	from irkit.ir.block import BlockRef
	from irkit.ir.context import Context
	from irkit.ir.operation import OperationRef
	from irkit.ir.types import Type


class Value(BorrowedHandle):
	_kind = HandleKind.VALUE

	@staticmethod
	def _from_record(context: "Context", record: ValueRecord, scope: Optional[Lifetime] = None) -> "Value":
		cls = BlockArgument if record.is_block_argument else OpResult
		return cls(context, record.handle, scope)

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def type(self) -> "Type":
		from irkit.ir.types import Type

		return Type._wrap(self._context, self._resolve().type)

	@property
	def location(self) -> Location:
		return self._resolve().location or UnknownLoc()

	@location.setter
	def location(self, loc: Location) -> None:
		self._resolve().location = from_loc(loc)

	def set_type(self, type: "Type") -> None:
		"""Retype in place. Users are not re-verified; run the verifier afterwards."""
		from irkit.ir.types import Type

		if not isinstance(type, Type):
			raise TypeError(f"expected a Type, got {type.__class__.__name__}")
		self._context._check_same(type, what="value type")
		self._resolve().type = type._raw

	@property
	def owner(self) -> Union["OperationRef", "BlockRef"]:
		raise NotImplementedError

	@property
	def is_block_argument(self) -> bool:
		return self._resolve().is_block_argument

	@property
	def uses(self) -> List["OpOperand"]:
		from irkit.ir.operation import OperationRef

		record = self._resolve()
		return [OpOperand(OperationRef(self._context, u.user.handle, self._scope), u.index) for u in record.uses]

	@property
	def users(self) -> List["OperationRef"]:
		"""Distinct operations using this value, in use-list order."""
		from irkit.ir.operation import OperationRef

		seen = []
		for u in self._resolve().uses:
			if not any(s is u.user for s in seen):
				seen.append(u.user)
		return [OperationRef(self._context, op.handle, self._scope) for op in seen]

	@property
	def use_count(self) -> int:
		return len(self._resolve().uses)

	@property
	def has_uses(self) -> bool:
		return bool(self._resolve().uses)

	def replace_all_uses_with(self, new: "Value") -> int:
		"""Point every use of this value at `new`. Returns the number of rewritten operands."""
		if not isinstance(new, Value):
			raise TypeError(f"expected a Value, got {type(new).__name__}")
		self._context._check_same(new, what="replacement value")
		return replace_all_uses(self._resolve(), new._resolve())

	def __repr__(self) -> str:
		if not self.is_valid:
			return f"<{type(self).__name__} (invalid)>"
		record = self._resolve()
		return f"<{type(self).__name__} #{record.index}: {self.type}>"


class OpResult(Value):
	@property
	def owner(self) -> "OperationRef":
		from irkit.ir.operation import OperationRef

		return OperationRef(self._context, self._resolve().owner.handle, self._scope)

	@property
	def result_number(self) -> int:
		return self._resolve().index


class BlockArgument(Value):
	@property
	def owner(self) -> "BlockRef":
		from irkit.ir.block import BlockRef

		return BlockRef(self._context, self._resolve().owner.handle, self._scope)

	@property
	def arg_number(self) -> int:
		return self._resolve().index


@dataclass(frozen=True)
class OpOperand:
	"""One use: operand slot `index` of `owner`."""

	owner: "OperationRef"
	index: int

	def get(self) -> Value:
		return self.owner.operands[self.index]

	def set(self, value: Value) -> None:
		self.owner.set_operand(self.index, value)


__all__ = ["BlockArgument", "OpOperand", "OpResult", "Value"]
