# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Context: the root owner.

A context owns the native store (every region, block, operation and value
record), the type and attribute interners, and the dialect registry. All
handles it issued die with it.

Teardown policy: `destroy()` refuses to run while the context still roots
live owned objects (modules, floating operations/blocks/regions, pass
managers) and raises `DanglingOwner` listing them. Destroy those first. On
success the handle table is closed, so every borrowed wrapper still floating
around resolves to `InvalidHandle` from then on.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from irkit.core.attributes_core import AttrSpec, IntegerAttrSpec
from irkit.core.diagnostics import DiagnosticCollector, DiagnosticHandler
from irkit.core.errors import CrossContextMismatch, DanglingOwner, InvalidHandle
from irkit.core.handles import HandleKind, RawHandle
from irkit.core.interner import Interner
from irkit.core.types_core import IntegerSpec, Signedness, TypeSpec
from irkit.dialects import BUILTIN_DIALECT_NAMES, Dialect, OpDefinition, get_available_dialect
from irkit.native.store import Store

if TYPE_CHECKING:
	from irkit.ir.attributes import Attribute
	from irkit.ir.types import Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextConfig:
	"""Creation-time configuration. Fixed for the lifetime of the context."""

	# Guard interning and handle-table access with a lock.
	threading: bool = False
	# Accept (and verify only structurally) ops from dialects that are not loaded.
	allow_unregistered_dialects: bool = False
	# Observes every diagnostic emitted by calls on this context.
	diagnostic_handler: Optional[DiagnosticHandler] = None
	load_builtin_dialects: bool = True
	# Default iteration cap for the greedy rewrite driver.
	max_rewrite_iterations: int = 10

	def __post_init__(self) -> None:
		if self.max_rewrite_iterations < 1:
			raise ValueError("max_rewrite_iterations must be at least 1")


class Context:
	def __init__(self, config: Optional[ContextConfig] = None, **kwargs) -> None:
		if config is not None and kwargs:
			raise TypeError("pass either a ContextConfig or keyword options, not both")
		self._config = config if config is not None else ContextConfig(**kwargs)
		self._guard: AbstractContextManager = threading.RLock() if self._config.threading else nullcontext()
		self._store = Store(self._guard)
		self._types: Interner[TypeSpec] = Interner(self._store.table, HandleKind.TYPE, self._guard)
		self._attributes: Interner[AttrSpec] = Interner(self._store.table, HandleKind.ATTRIBUTE, self._guard)
		self._dialects: Dict[str, Dialect] = {}
		self._live = True
		if self._config.load_builtin_dialects:
			for name in BUILTIN_DIALECT_NAMES:
				self.load_dialect(name)
		logger.debug("created context %#x (threading=%s)", id(self), self._config.threading)

	@property
	def config(self) -> ContextConfig:
		return self._config

	@property
	def is_live(self) -> bool:
		return self._live

	def _check_live(self) -> None:
		if not self._live:
			raise InvalidHandle("context was destroyed", kind=HandleKind.CONTEXT.name)

	def _resolve(self, raw: RawHandle, kind: Optional[HandleKind] = None):
		self._check_live()
		return self._store.table.resolve(raw, kind)

	def _check_same(self, *objects, what: str = "object") -> None:
		"""Every wrapper in `objects` must come from this context."""
		for obj in objects:
			other = getattr(obj, "_context", None)
			if other is None:
				raise TypeError(f"expected an irkit {what}, got {type(obj).__name__}")
			if other is not self:
				raise CrossContextMismatch(f"{what} belongs to a different context")

	# --- dialects ---

	def register_dialect(self, dialect: Dialect) -> None:
		self._check_live()
		if not isinstance(dialect, Dialect):
			raise TypeError(f"expected a Dialect, got {type(dialect).__name__}")
		with self._guard:
			self._dialects[dialect.name] = dialect

	def load_dialect(self, name: str) -> Dialect:
		"""Register one of the available dialects by name."""
		self._check_live()
		with self._guard:
			loaded = self._dialects.get(name)
			if loaded is not None:
				return loaded
			dialect = get_available_dialect(name)
			if dialect is None:
				raise ValueError(f"unknown dialect '{name}'")
			self._dialects[name] = dialect
			return dialect

	@property
	def loaded_dialects(self) -> List[str]:
		return sorted(self._dialects)

	def get_dialect(self, name: str) -> Optional[Dialect]:
		return self._dialects.get(name)

	def lookup_op(self, op_name: str) -> Optional[OpDefinition]:
		dialect = self._dialects.get(op_name.split(".", 1)[0])
		return dialect.lookup(op_name) if dialect is not None else None

	def is_registered_dialect(self, name: str) -> bool:
		return name in self._dialects

	def canonical_patterns(self) -> list:
		out: list = []
		for name in sorted(self._dialects):
			out.extend(self._dialects[name].canonical_patterns())
		return out

	# --- interning ---

	def get_type(self, spec: TypeSpec) -> "Type":
		from irkit.ir.types import Type

		self._check_live()
		if not isinstance(spec, TypeSpec):
			raise TypeError(f"expected a TypeSpec, got {type(spec).__name__}")
		self._check_same(*spec.children(), what="type")
		return Type._wrap(self, self._types.intern(spec))

	def get_attribute(self, spec: AttrSpec) -> "Attribute":
		from irkit.ir.attributes import Attribute

		self._check_live()
		if not isinstance(spec, AttrSpec):
			raise TypeError(f"expected an AttrSpec, got {type(spec).__name__}")
		self._check_same(*spec.children(), what="attribute element")
		if isinstance(spec, IntegerAttrSpec):
			_check_integer_range(spec.value, spec.type.spec)
		return Attribute._wrap(self, self._attributes.intern(spec))

	def parse_type(self, text: str) -> "Type":
		from irkit.asm.parser import parse_type

		return parse_type(self, text)

	def parse_attribute(self, text: str) -> "Attribute":
		from irkit.asm.parser import parse_attribute

		return parse_attribute(self, text)

	# --- diagnostics ---

	def diagnostics(self, handler: Optional[DiagnosticHandler] = None, *, pass_name: Optional[str] = None) -> DiagnosticCollector:
		"""Fresh per-call collector forwarding to `handler` and the configured handler."""
		return DiagnosticCollector((handler, self._config.diagnostic_handler), pass_name=pass_name)

	# --- lifetime ---

	def live_owners(self) -> Dict[str, int]:
		self._check_live()
		with self._guard:
			return self._store.live_roots()

	def stats(self) -> Dict[str, int]:
		self._check_live()
		return self._store.table.stats()

	def destroy(self, *, force: bool = False) -> None:
		"""Tear down; `force` skips the live-owner check and invalidates those owners too."""
		self._check_live()
		owners = self.live_owners()
		if owners and not force:
			raise DanglingOwner(owners)
		self._teardown()

	def _teardown(self) -> None:
		with self._guard:
			self._types.clear()
			self._attributes.clear()
			self._dialects.clear()
			self._store.close()
			self._live = False
		logger.debug("destroyed context %#x", id(self))

	def __enter__(self) -> "Context":
		self._check_live()
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		if not self._live:
			return
		if exc_type is not None:
			# Don't mask the in-flight exception with DanglingOwner; everything
			# the context issued is invalidated either way.
			self._teardown()
			return
		self.destroy()

	def __repr__(self) -> str:
		state = "live" if self._live else "destroyed"
		return f"<Context {state} dialects={self.loaded_dialects}>"


def _check_integer_range(value: int, type_spec: TypeSpec) -> None:
	if not isinstance(type_spec, IntegerSpec):
		return
	width = type_spec.width
	if type_spec.signedness is Signedness.UNSIGNED:
		low, high = 0, (1 << width) - 1
	elif type_spec.signedness is Signedness.SIGNED:
		low, high = -(1 << (width - 1)), (1 << (width - 1)) - 1
	else:
		# signless values may be written in either interpretation
		low, high = -(1 << (width - 1)), (1 << width) - 1
	if not low <= value <= high:
		raise ValueError(f"integer value {value} does not fit in {width} bits ({low}..{high})")


def same_context(objects: Iterable) -> Optional[Context]:
	"""Common context of `objects`; raises CrossContextMismatch when they differ."""
	ctx: Optional[Context] = None
	for obj in objects:
		other = obj._context
		if ctx is None:
			ctx = other
		elif other is not ctx:
			raise CrossContextMismatch("objects from different contexts were combined")
	return ctx


__all__ = ["Context", "ContextConfig", "same_context"]
