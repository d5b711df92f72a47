# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural IR verifier.

Checks, for every operation in the tree:
  - the op is registered (unless the context allows unregistered dialects),
  - region/operand/result/successor counts match the dialect definition,
  - required attributes are present,
  - terminators are last in their block, and blocks of registered ops end
    in a terminator unless the op is `NoTerminator`,
  - successors live in the same region as the branching op,
  - every operand is visible at its use (see `irkit.ir.dom`),
then runs the dialect's opaque verifier hook, if any.

Diagnostics are collected per call. Any error raises `VerificationFailed`
carrying all of them; otherwise the (non-error) diagnostics are returned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from irkit.core.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticHandler
from irkit.core.errors import VerificationFailed
from irkit.dialects import ISOLATED_FROM_ABOVE, NO_TERMINATOR, TERMINATOR, OpDefinition
from irkit.ir.dom import DominanceInfo
from irkit.native.records import OpRecord

if TYPE_CHECKING:
	from irkit.ir.context import Context


def _count_mismatch(what: str, expected: Optional[int], actual: int) -> Optional[str]:
	if expected is None or expected == actual:
		return None
	return f"expects {expected} {what}, got {actual}"


class Verifier:
	def __init__(self, context: "Context", diagnostics: DiagnosticCollector) -> None:
		self.context = context
		self.diagnostics = diagnostics
		self.dominance = DominanceInfo(self._is_isolated)

	def _definition(self, op: OpRecord) -> Optional[OpDefinition]:
		return self.context.lookup_op(op.name)

	def _is_isolated(self, op: OpRecord) -> bool:
		definition = self._definition(op)
		return definition is not None and definition.has_trait(ISOLATED_FROM_ABOVE)

	def _error(self, op: OpRecord, message: str) -> None:
		self.diagnostics.error(message, op.location, op_name=op.name)

	def verify(self, root: OpRecord) -> None:
		for op in root.walk():
			self._verify_op(op)

	def _verify_op(self, op: OpRecord) -> None:
		definition = self._definition(op)
		if definition is None:
			if not self.context.config.allow_unregistered_dialects:
				self._error(op, "unregistered operation (load its dialect or allow unregistered dialects)")
			shape_ok = False
		else:
			shape_ok = self._verify_shape(op, definition)
		self._verify_placement(op, definition)
		self._verify_successors(op)
		self._verify_operands(op)
		# Hooks may index operands and successors freely once the shape is right.
		if shape_ok and definition.verifier is not None:
			from irkit.ir.operation import OperationRef

			definition.verifier(OperationRef(self.context, op.handle), self.diagnostics)

	def _verify_shape(self, op: OpRecord, definition: OpDefinition) -> bool:
		before = len(self.diagnostics.errors())
		for what, expected, actual in (
			("region(s)", definition.num_regions, len(op.regions)),
			("operand(s)", definition.num_operands, len(op.operands)),
			("result(s)", definition.num_results, len(op.results)),
			("successor(s)", definition.num_successors, len(op.successors)),
		):
			problem = _count_mismatch(what, expected, actual)
			if problem:
				self._error(op, problem)
		for name in definition.required_attributes:
			if name not in op.attributes:
				self._error(op, f"requires attribute '{name}'")
		ok = len(self.diagnostics.errors()) == before
		if definition.has_trait(NO_TERMINATOR):
			return ok
		for region in op.regions:
			for block in region.blocks:
				last = block.terminator
				if last is None:
					self._error(op, "region block is empty; it must end with a terminator")
					continue
				last_def = self._definition(last)
				if last_def is not None and not last_def.has_trait(TERMINATOR):
					self._error(last, "block must end with a terminator operation")
		return ok

	def _verify_placement(self, op: OpRecord, definition: Optional[OpDefinition]) -> None:
		if definition is None or not definition.has_trait(TERMINATOR):
			return
		block = op.parent
		if block is not None and block.terminator is not op:
			self._error(op, "terminator must be the last operation in its block")

	def _verify_successors(self, op: OpRecord) -> None:
		region = op.parent_region
		for i, succ in enumerate(op.successors):
			if region is None or succ.parent is not region:
				self._error(op, f"successor #{i} is not a block in the same region")

	def _verify_operands(self, op: OpRecord) -> None:
		for i, value in enumerate(op.operands):
			if not self.dominance.value_visible(value, op):
				kind = "block argument" if value.is_block_argument else "result"
				self._error(op, f"operand #{i} ({kind} #{value.index}) does not dominate this use")


def verify(target, handler: Optional[DiagnosticHandler] = None) -> List[Diagnostic]:
	"""
	Verify a Module, Operation or OperationRef.

	Returns the non-error diagnostics (warnings and notes emitted by dialect
	hooks) on success; raises VerificationFailed with every diagnostic when at
	least one is an error.
	"""
	context = target._context
	root = target._resolve()
	diagnostics = context.diagnostics(handler)
	Verifier(context, diagnostics).verify(root)
	if diagnostics.has_errors():
		raise VerificationFailed(diagnostics.diagnostics)
	return diagnostics.diagnostics


__all__ = ["Verifier", "verify"]
