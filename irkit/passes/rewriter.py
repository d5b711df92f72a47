# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Mutation API handed to rewrite patterns."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Sequence

from irkit.core.diagnostics import DiagnosticCollector
from irkit.ir.attributes import Attribute
from irkit.ir.operation import Operation, OperationRef
from irkit.ir.types import Type
from irkit.ir.value import Value

if TYPE_CHECKING:
	from irkit.ir.block import BlockRef
	from irkit.ir.context import Context


class PatternRewriter:
	"""
	Records what a pattern did so the driver can tell whether anything changed
	and which new ops to revisit.
	"""

	def __init__(self, context: "Context", diagnostics: DiagnosticCollector) -> None:
		self.context = context
		self.diagnostics = diagnostics
		self.created: List[OperationRef] = []
		self.erased = 0
		self.modified = 0

	@property
	def changed(self) -> bool:
		return bool(self.created or self.erased or self.modified)

	def reset(self) -> None:
		self.created.clear()
		self.erased = 0
		self.modified = 0

	def create(
		self,
		anchor: OperationRef,
		name: str,
		*,
		operands: Iterable[Value] = (),
		results: Iterable[Type] = (),
		attributes: Optional[Mapping[str, Attribute]] = None,
		successors: Iterable["BlockRef"] = (),
		regions: int = 0,
		location=None,
	) -> OperationRef:
		"""Build a new op and insert it right before `anchor`."""
		block = anchor.parent_block
		if block is None:
			raise ValueError(f"cannot insert next to '{anchor.name}': it is not in a block")
		op = Operation.create(
			self.context,
			name,
			operands=operands,
			results=results,
			attributes=attributes,
			regions=regions,
			successors=successors,
			location=location if location is not None else anchor.location,
		)
		ref = block.insert_before(anchor, op)
		self.created.append(ref)
		return ref

	def replace_op(self, op: OperationRef, values: Sequence[Value]) -> None:
		"""Redirect every use of `op`'s results to `values`, then erase `op`."""
		op.replace_all_uses_with(list(values))
		self.erase_op(op)

	def replace_op_with_new(
		self,
		op: OperationRef,
		name: str,
		*,
		operands: Iterable[Value] = (),
		attributes: Optional[Mapping[str, Attribute]] = None,
		results: Optional[Iterable[Type]] = None,
		successors: Iterable["BlockRef"] = (),
	) -> OperationRef:
		"""Replace `op` with a new op; result types default to `op`'s."""
		result_types = list(results) if results is not None else [r.type for r in op.results]
		new = self.create(
			op,
			name,
			operands=operands,
			results=result_types,
			attributes=attributes,
			successors=successors,
			regions=op.num_regions,
		)
		for source, dest in zip(op.regions, new.regions):
			dest.take_body(source)
		self.replace_op(op, new.results)
		return new

	def erase_op(self, op: OperationRef) -> None:
		op.erase()
		self.erased += 1

	def modify_in_place(self, op: OperationRef) -> OperationRef:
		"""Note an in-place change (attribute, operand, location) to `op`."""
		self.modified += 1
		return op

	def emit_error(self, op: OperationRef, message: str) -> None:
		self.diagnostics.error(message, op.location, op_name=op.name)

	def emit_warning(self, op: OperationRef, message: str) -> None:
		self.diagnostics.warning(message, op.location, op_name=op.name)


__all__ = ["PatternRewriter"]
