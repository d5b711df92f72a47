# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Error taxonomy for the safe IR layer.

Every failure a caller can recover from is an `IRError` subclass carrying
structured fields (diagnostics, positions, offending names) rather than a bare
message. Plain API misuse that is not about IR state (wrong argument type,
unknown pass name) stays a `TypeError`/`ValueError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Sequence

if TYPE_CHECKING:
	from irkit.core.diagnostics import Diagnostic


class IRError(Exception):
	"""Base class for all recoverable IR failures."""


class InvalidHandle(IRError):
	"""
	A handle was used after its owner released it.

	Raised for destroyed contexts/modules, moved owned wrappers, erased
	operations, stale generation counters and borrows used past their scope.
	"""

	def __init__(self, message: str, *, kind: str | None = None) -> None:
		super().__init__(message)
		self.kind = kind


class CrossContextMismatch(IRError):
	"""Objects from two different contexts were combined in one operation."""


class OperationInUse(IRError):
	"""An erase was attempted while values it defines still have live uses."""

	def __init__(self, message: str, *, op_name: str | None = None, use_count: int = 0) -> None:
		super().__init__(message)
		self.op_name = op_name
		self.use_count = use_count


class VerificationFailed(IRError):
	"""Verification produced at least one error-severity diagnostic."""

	def __init__(self, diagnostics: Sequence["Diagnostic"]) -> None:
		self.diagnostics = list(diagnostics)
		errors = [d for d in self.diagnostics if d.is_error]
		head = str(errors[0]) if errors else "verification failed"
		more = f" (+{len(errors) - 1} more)" if len(errors) > 1 else ""
		super().__init__(f"{head}{more}")


class ParseError(IRError):
	"""Textual or binary deserialization failed."""

	def __init__(self, reason: str, *, line: int | None = None, column: int | None = None, source: str | None = None) -> None:
		self.reason = reason
		self.line = line
		self.column = column
		self.source = source
		where = ""
		if line is not None:
			where = f"{source or '<input>'}:{line}:{column if column is not None else '?'}: "
		super().__init__(f"{where}{reason}")


class UnsupportedVersion(IRError):
	"""A bytecode payload declares a format version this build cannot read."""

	def __init__(self, found: int, expected: int) -> None:
		super().__init__(f"unsupported bytecode version {found} (expected {expected})")
		self.found = found
		self.expected = expected


class PassFailed(IRError):
	"""A pass in a pipeline reported failure; later passes did not run."""

	def __init__(self, pass_name: str, index: int, diagnostics: Sequence["Diagnostic"]) -> None:
		self.pass_name = pass_name
		self.index = index
		self.diagnostics = list(diagnostics)
		errors = [d for d in self.diagnostics if d.is_error]
		detail = f": {errors[0].message}" if errors else ""
		super().__init__(f"pass '{pass_name}' (pipeline index {index}) failed{detail}")


class NotLowered(IRError):
	"""A module handed to the execution layer still contains non-LLVM operations."""

	def __init__(self, op_names: Sequence[str]) -> None:
		self.op_names = sorted(set(op_names))
		super().__init__(
			"module is not lowered to the llvm dialect; found: " + ", ".join(self.op_names)
		)


class JitRuntimeError(IRError, RuntimeError):
	"""JIT compilation or invocation failed."""


class DanglingOwner(IRError):
	"""A context was destroyed while it still rooted live owned objects."""

	def __init__(self, owners: Mapping[str, int]) -> None:
		self.owners = dict(owners)
		desc = ", ".join(f"{count} {kind}" for kind, count in sorted(self.owners.items()))
		super().__init__(f"context still owns live objects: {desc}")


__all__ = [
	"CrossContextMismatch",
	"DanglingOwner",
	"InvalidHandle",
	"IRError",
	"JitRuntimeError",
	"NotLowered",
	"OperationInUse",
	"ParseError",
	"PassFailed",
	"UnsupportedVersion",
	"VerificationFailed",
]
