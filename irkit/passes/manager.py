# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Pass manager: an ordered, fail-fast pipeline over one module.

A pipeline is built from pass descriptions (`add_pass`) or from its textual
form (`add_pipeline("canonicalize,cse")`). `run()` executes the passes in
order. The first pass that reports an error, raises an `IRError`, or (with
`verify_each`) leaves the module failing verification stops the run with
`PassFailed`; later passes do not run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from irkit.core.diagnostics import Diagnostic, DiagnosticHandler
from irkit.core.errors import IRError, PassFailed, VerificationFailed
from irkit.core.handles import HandleKind
from irkit.core.ownership import Lifetime, OwnedHandle
from irkit.ir.verifier import verify
from irkit.passes.base import CustomPass, NativePass, Pass

if TYPE_CHECKING:
	from irkit.ir.context import Context
	from irkit.ir.module import Module

logger = logging.getLogger(__name__)


@dataclass
class _PipelineRecord:
	passes: List[Pass] = field(default_factory=list)
	verify_each: bool = True


class PassManager(OwnedHandle):
	_kind = HandleKind.PASS_MANAGER
	_owner_kind = HandleKind.PASS_MANAGER

	def __init__(self, context: "Context", *, verify_each: bool = True) -> None:
		context._check_live()
		raw = context._store.table.acquire(HandleKind.PASS_MANAGER, _PipelineRecord(verify_each=verify_each))
		super().__init__(context, raw)

	@classmethod
	def parse(cls, context: "Context", pipeline: str, *, verify_each: bool = True) -> "PassManager":
		pm = cls(context, verify_each=verify_each)
		pm.add_pipeline(pipeline)
		return pm

	@property
	def passes(self) -> List[Pass]:
		return list(self._resolve().passes)

	@property
	def verify_each(self) -> bool:
		return self._resolve().verify_each

	def add_pass(self, p: Union[Pass, str], **options) -> "PassManager":
		"""Append a pass; a string names a native pass (ValueError if unknown)."""
		record = self._resolve()
		if isinstance(p, str):
			p = NativePass(p, options)
		elif options:
			raise TypeError("options are only accepted together with a native pass name")
		if not isinstance(p, (NativePass, CustomPass)):
			raise TypeError(f"expected a NativePass or CustomPass, got {type(p).__name__}")
		record.passes.append(p)
		return self

	def add_pipeline(self, pipeline: str) -> "PassManager":
		"""Append native passes from their textual form, e.g. `"canonicalize,cse"`."""
		names = [n.strip() for n in pipeline.split(",")]
		if any(not n for n in names):
			raise ValueError(f"malformed pipeline '{pipeline}'")
		# Validate every name before adding any.
		parsed = [NativePass(n) for n in names]
		self._resolve().passes.extend(parsed)
		return self

	def run(self, module: "Module", handler: Optional[DiagnosticHandler] = None) -> List[Diagnostic]:
		"""
		Run the pipeline on `module`.

		Returns every non-error diagnostic emitted; raises `PassFailed` with the
		failing pass's name, its pipeline index and the diagnostics collected so
		far.
		"""
		from irkit.ir.module import Module

		record = self._resolve()
		if not isinstance(module, Module):
			raise TypeError(f"expected a Module, got {type(module).__name__}")
		self._context._check_same(module, what="module")
		module._resolve()

		collected: List[Diagnostic] = []
		for index, p in enumerate(record.passes):
			logger.debug("running pass %d '%s'", index, p.name)
			diags = self._context.diagnostics(handler, pass_name=p.name)
			try:
				p.run(module, diags)
			except IRError as exc:
				diags.error(f"pass raised {type(exc).__name__}: {exc}", module.location)
			collected.extend(diags.diagnostics)
			if diags.has_errors():
				logger.debug("pass %d '%s' failed", index, p.name)
				raise PassFailed(p.name, index, collected)
			if record.verify_each:
				try:
					collected.extend(verify(module, handler))
				except VerificationFailed as exc:
					for d in exc.diagnostics:
						d.pass_name = p.name
					collected.extend(exc.diagnostics)
					logger.debug("module failed verification after pass %d '%s'", index, p.name)
					raise PassFailed(p.name, index, collected) from exc
			logger.debug("finished pass %d '%s'", index, p.name)
		return collected

	def _release(self, record: _PipelineRecord) -> None:
		record.passes.clear()
		self._context._store.table.release(self._raw)

	def _make_ref(self, scope: Optional[Lifetime]) -> "PassManager":
		return self

	def __str__(self) -> str:
		return ",".join(p.name for p in self._resolve().passes)

	def __repr__(self) -> str:
		if not self.is_live:
			return f"<PassManager ({self.state.name.lower()})>"
		return f"<PassManager '{self}'>"


__all__ = ["PassManager"]
