# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-call diagnostic collection.

Diagnostics emitted while verifying or transforming IR are gathered into a
`DiagnosticCollector` owned by that single call, in emission order, and then
attached to the call's failure. There is no process-global handler, so two
calls on independent contexts never see each other's diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional

from irkit.core.location import Location, UnknownLoc


class Severity(Enum):
	"""Diagnostic severity. Only ERROR turns a call into a failure."""

	NOTE = "note"
	WARNING = "warning"
	ERROR = "error"


@dataclass
class Diagnostic:
	"""A single emitted message with its severity and location."""

	message: str
	severity: Severity = Severity.ERROR
	location: Location = field(default_factory=UnknownLoc)
	notes: list[str] = field(default_factory=list)
	# Name of the operation the message is about, when there is one.
	op_name: str | None = None
	# Pass that emitted the message; None for verification and parsing.
	pass_name: str | None = None

	def __post_init__(self) -> None:
		if self.location is None:  # type: ignore[unreachable]
			self.location = UnknownLoc()

	@property
	def is_error(self) -> bool:
		return self.severity is Severity.ERROR

	def __str__(self) -> str:
		from irkit.asm.printer import format_location

		prefix = ""
		if not self.location.is_unknown:
			prefix = f"{format_location(self.location)}: "
		subject = f"'{self.op_name}' " if self.op_name else ""
		return f"{prefix}{self.severity.value}: {subject}{self.message}"


DiagnosticHandler = Callable[[Diagnostic], None]


class DiagnosticCollector:
	"""
	Ordered diagnostic sink for one call.

	Handlers, when given, observe each diagnostic at emission time; the
	collector keeps its own copy regardless so the call can attach the full
	sequence to its result.
	"""

	def __init__(self, handlers: Iterable[Optional[DiagnosticHandler]] = (), *, pass_name: str | None = None) -> None:
		self._diagnostics: List[Diagnostic] = []
		self._handlers = [h for h in handlers if h is not None]
		self.pass_name = pass_name

	def emit(self, diag: Diagnostic) -> Diagnostic:
		if diag.pass_name is None and self.pass_name is not None:
			diag.pass_name = self.pass_name
		self._diagnostics.append(diag)
		for handler in self._handlers:
			handler(diag)
		return diag

	def error(self, message: str, location: Location | None = None, **kwargs) -> Diagnostic:
		return self.emit(Diagnostic(message, Severity.ERROR, location or UnknownLoc(), **kwargs))

	def warning(self, message: str, location: Location | None = None, **kwargs) -> Diagnostic:
		return self.emit(Diagnostic(message, Severity.WARNING, location or UnknownLoc(), **kwargs))

	def note(self, message: str, location: Location | None = None, **kwargs) -> Diagnostic:
		return self.emit(Diagnostic(message, Severity.NOTE, location or UnknownLoc(), **kwargs))

	def extend(self, diags: Iterable[Diagnostic]) -> None:
		for d in diags:
			self.emit(d)

	@property
	def diagnostics(self) -> list[Diagnostic]:
		return list(self._diagnostics)

	def errors(self) -> list[Diagnostic]:
		return [d for d in self._diagnostics if d.is_error]

	def has_errors(self) -> bool:
		return any(d.is_error for d in self._diagnostics)

	def __len__(self) -> int:
		return len(self._diagnostics)

	def __iter__(self) -> Iterator[Diagnostic]:
		return iter(list(self._diagnostics))


__all__ = ["Diagnostic", "DiagnosticCollector", "DiagnosticHandler", "Severity"]
