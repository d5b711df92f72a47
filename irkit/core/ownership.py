# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Ownership model for native handles.

Every handle kind is either OWNED (someone must destroy it, explicitly or by
destroying its parent) or BORROWED (never destroyed through this handle; only
valid while its owner is alive). Python cannot check lifetimes at compile
time, so the rules are enforced at access time:

  * Owned wrappers are consumed. `destroy()` and ownership transfer (e.g.
	inserting a floating operation into a block) move the wrapper into a
	dead state; any later use raises InvalidHandle.
  * Borrowed wrappers re-resolve their raw handle on every access. The
	handle table's generation counter makes handles to released records
	stale, and a destroyed context closes the table outright.
  * Scoped borrows (`OwnedHandle.borrowed()`) additionally carry a Lifetime
	token that is revoked when the `with` block exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from irkit.core.errors import InvalidHandle
from irkit.core.handles import HandleKind, RawHandle

if TYPE_CHECKING:
	from irkit.ir.context import Context


class Ownership(Enum):
	OWNED = auto()
	BORROWED = auto()


# Operations, blocks and regions are OWNED while floating; once inserted their
# parent owns them and callers only ever see borrowed refs.
OWNERSHIP: Dict[HandleKind, Ownership] = {
	HandleKind.CONTEXT: Ownership.OWNED,
	HandleKind.MODULE: Ownership.OWNED,
	HandleKind.REGION: Ownership.OWNED,
	HandleKind.BLOCK: Ownership.OWNED,
	HandleKind.OPERATION: Ownership.OWNED,
	HandleKind.PASS: Ownership.OWNED,
	HandleKind.PASS_MANAGER: Ownership.OWNED,
	HandleKind.VALUE: Ownership.BORROWED,
	HandleKind.TYPE: Ownership.BORROWED,
	HandleKind.ATTRIBUTE: Ownership.BORROWED,
}


def ownership_of(kind: HandleKind) -> Ownership:
	return OWNERSHIP[kind]


class HandleState(Enum):
	"""Lifecycle of an owned wrapper."""

	LIVE = auto()
	MOVED = auto()
	DESTROYED = auto()


class Lifetime:
	"""Revocable liveness token shared by every ref derived from a scoped borrow."""

	__slots__ = ("_alive", "label")

	def __init__(self, label: str = "borrow") -> None:
		self._alive = True
		self.label = label

	@property
	def alive(self) -> bool:
		return self._alive

	def end(self) -> None:
		self._alive = False


class OwnedHandle:
	"""
	Base class for wrappers that own a native record.

	Subclasses set `_kind` (native record kind used for resolution),
	`_owner_kind` (label used for the context's live-owner accounting) and
	implement `_release(record)` and `_make_ref(scope)`.
	"""

	_kind: HandleKind = HandleKind.OPERATION
	_owner_kind: HandleKind = HandleKind.OPERATION
	_scope: Optional[Lifetime] = None

	def __init__(self, context: "Context", raw: RawHandle) -> None:
		self._context = context
		self._raw = raw
		self._state = HandleState.LIVE
		context._store.add_root(raw, self._owner_kind)

	def _resolve(self) -> Any:
		if self._state is HandleState.MOVED:
			raise InvalidHandle(
				f"{type(self).__name__} was moved into a parent; use the ref returned by the insertion",
				kind=self._owner_kind.name,
			)
		if self._state is HandleState.DESTROYED:
			raise InvalidHandle(f"{type(self).__name__} was destroyed", kind=self._owner_kind.name)
		return self._context._resolve(self._raw, self._kind)

	def _take(self) -> Any:
		"""Transfer ownership out of this wrapper and return the record."""
		record = self._resolve()
		self._state = HandleState.MOVED
		self._context._store.remove_root(self._raw)
		return record

	def _release(self, record: Any) -> None:
		raise NotImplementedError

	def _make_ref(self, scope: Optional[Lifetime]) -> Any:
		raise NotImplementedError

	@property
	def is_live(self) -> bool:
		if self._state is not HandleState.LIVE or not self._context.is_live:
			return False
		return self._context._store.table.is_live(self._raw)

	@property
	def state(self) -> HandleState:
		return self._state

	def destroy(self) -> None:
		"""Release the owned record and everything it transitively owns."""
		record = self._resolve()
		self._release(record)
		self._state = HandleState.DESTROYED
		self._context._store.remove_root(self._raw)

	def borrow(self) -> Any:
		"""Borrowed view valid for as long as this owner stays live."""
		self._resolve()
		return self._make_ref(None)

	@contextmanager
	def borrowed(self) -> Iterator[Any]:
		"""Borrowed view whose validity ends when the `with` block exits."""
		self._resolve()
		scope = Lifetime(type(self).__name__)
		try:
			yield self._make_ref(scope)
		finally:
			scope.end()

	def __enter__(self):
		self._resolve()
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		if self._state is HandleState.LIVE and self._context.is_live:
			self.destroy()


class BorrowedHandle:
	"""
	Base class for non-owning wrappers.

	Equality and hashing are handle identity, which for interned types and
	attributes is also structural equality.
	"""

	_kind: HandleKind = HandleKind.OPERATION

	def __init__(self, context: "Context", raw: RawHandle, scope: Optional[Lifetime] = None) -> None:
		self._context = context
		self._raw = raw
		self._scope = scope

	def _resolve(self) -> Any:
		if self._scope is not None and not self._scope.alive:
			raise InvalidHandle(
				f"{type(self).__name__} used after its {self._scope.label} borrow scope ended",
				kind=self._kind.name,
			)
		return self._context._resolve(self._raw, self._kind)

	@property
	def is_valid(self) -> bool:
		if self._scope is not None and not self._scope.alive:
			return False
		return self._context.is_live and self._context._store.table.is_live(self._raw)

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, BorrowedHandle):
			return NotImplemented
		return self._raw == other._raw

	def __ne__(self, other: object) -> bool:
		result = self.__eq__(other)
		if result is NotImplemented:
			return result
		return not result

	def __hash__(self) -> int:
		return hash(self._raw)


__all__ = [
	"BorrowedHandle",
	"HandleState",
	"Lifetime",
	"OWNERSHIP",
	"OwnedHandle",
	"Ownership",
	"ownership_of",
]
