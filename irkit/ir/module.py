# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Modules.

A `Module` owns one `builtin.module` operation whose single region holds a
single block (the body). It is the unit the parser produces, passes run on,
and the execution engine borrows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List, Optional

from irkit.core.errors import OperationInUse
from irkit.core.handles import HandleKind
from irkit.core.location import Location
from irkit.core.ownership import Lifetime, OwnedHandle
from irkit.ir.attributes import StringAttr
from irkit.ir.block import BlockRef
from irkit.ir.operation import Operation, OperationRef, _check_no_outside_branches
from irkit.native.records import OpRecord

if TYPE_CHECKING:
	from irkit.core.diagnostics import Diagnostic, DiagnosticHandler
	from irkit.ir.context import Context

MODULE_OP = "builtin.module"


class Module(OwnedHandle):
	_kind = HandleKind.OPERATION
	_owner_kind = HandleKind.MODULE

	@classmethod
	def create(cls, context: "Context", location: Optional[Location] = None) -> "Module":
		"""Empty module with one body block."""
		op = Operation.create(context, MODULE_OP, regions=1, location=location)
		op.regions[0].add_block()
		return cls.from_operation(op)

	@classmethod
	def from_operation(cls, op: Operation) -> "Module":
		"""Take ownership of a floating `builtin.module` operation."""
		if not isinstance(op, Operation):
			raise TypeError(f"expected a floating Operation, got {type(op).__name__}")
		record: OpRecord = op._resolve()
		if record.name != MODULE_OP:
			raise ValueError(f"expected a '{MODULE_OP}' operation, got '{record.name}'")
		if len(record.regions) != 1 or len(record.regions[0].blocks) != 1:
			raise ValueError(f"'{MODULE_OP}' needs exactly one region with one block")
		context = op._context
		record = op._take()
		return cls(context, record.handle)

	@classmethod
	def parse(cls, context: "Context", text: str, source: Optional[str] = None) -> "Module":
		from irkit.asm.parser import parse_module

		return parse_module(context, text, source=source)

	@classmethod
	def from_bytecode(cls, context: "Context", data: bytes) -> "Module":
		from irkit.asm.bytecode import read_bytecode

		return read_bytecode(context, data)

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def operation(self) -> OperationRef:
		self._resolve()
		return OperationRef(self._context, self._raw, self._scope)

	@property
	def body(self) -> BlockRef:
		record = self._resolve()
		return BlockRef(self._context, record.regions[0].blocks[0].handle, self._scope)

	@property
	def location(self) -> Location:
		return self._resolve().location

	def walk(self, order: str = "pre") -> Iterator[OperationRef]:
		from irkit.ir.walk import walk

		return walk(self, order=order)

	def lookup_symbol(self, name: str) -> Optional[OperationRef]:
		"""Top-level op whose `sym_name` attribute is `name`."""
		for op in self.body.operations:
			attr = op.attributes.get("sym_name")
			if isinstance(attr, StringAttr) and attr.value == name:
				return op
		return None

	def verify(self, handler: Optional["DiagnosticHandler"] = None) -> List["Diagnostic"]:
		from irkit.ir.verifier import verify

		return verify(self, handler)

	def to_text(self, *, with_locations: bool = False) -> str:
		from irkit.asm.printer import print_module

		return print_module(self, with_locations=with_locations)

	def to_bytecode(self) -> bytes:
		from irkit.asm.bytecode import write_bytecode

		return write_bytecode(self)

	def _release(self, record: OpRecord) -> None:
		store = self._context._store
		uses = store.op_external_uses(record)
		if uses:
			raise OperationInUse(
				f"module values still have {len(uses)} use(s) outside the module",
				op_name=record.name,
				use_count=len(uses),
			)
		_check_no_outside_branches(store, record)
		store.release_op(record)

	def _make_ref(self, scope: Optional[Lifetime]) -> OperationRef:
		return OperationRef(self._context, self._raw, scope)

	def __str__(self) -> str:
		return self.to_text()

	def __repr__(self) -> str:
		if not self.is_live:
			return f"<Module ({self.state.name.lower()})>"
		return f"<Module ops={len(self.body.operations)}>"


__all__ = ["MODULE_OP", "Module"]
