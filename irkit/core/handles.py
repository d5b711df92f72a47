# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Raw handle layer.

A `RawHandle` is an opaque, non-owning reference into a `HandleTable`: the
slot index plus the generation the slot had when the handle was issued.
Releasing a slot bumps its generation, so every outstanding handle to it
becomes stale at once and resolves to `InvalidHandle` instead of to whatever
record reuses the slot later.

Nothing here decides *who* may release a handle; that is the ownership layer's
job (see `irkit.core.ownership`).
"""

from __future__ import annotations

import itertools
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from irkit.core.errors import InvalidHandle


class HandleKind(Enum):
	"""Kinds of native objects a handle can refer to."""

	CONTEXT = auto()
	MODULE = auto()
	REGION = auto()
	BLOCK = auto()
	OPERATION = auto()
	VALUE = auto()
	TYPE = auto()
	ATTRIBUTE = auto()
	PASS = auto()
	PASS_MANAGER = auto()


@dataclass(frozen=True)
class RawHandle:
	"""Opaque (table, slot, generation) triple. Carries no liveness itself."""

	kind: HandleKind
	index: int
	generation: int
	table_id: int

	def __repr__(self) -> str:
		return f"<{self.kind.name.lower()} #{self.index}.{self.generation}@{self.table_id}>"


_TABLE_IDS = itertools.count(1)


class _Slot:
	__slots__ = ("generation", "kind", "obj")

	def __init__(self) -> None:
		self.generation = 0
		self.kind: HandleKind | None = None
		self.obj: Any = None


class HandleTable:
	"""
	Generation-counted arena mapping raw handles to native records.

	`guard` is entered around every slot mutation and lookup; contexts pass a
	real lock when created thread-capable and a no-op guard otherwise.
	"""

	def __init__(self, guard: AbstractContextManager) -> None:
		self._slots: List[_Slot] = []
		self._free: List[int] = []
		self._guard = guard
		self._closed = False
		self.table_id = next(_TABLE_IDS)

	def acquire(self, kind: HandleKind, obj: Any) -> RawHandle:
		"""Store `obj` in a fresh (or recycled) slot and return its handle."""
		with self._guard:
			if self._closed:
				raise InvalidHandle("handle table is closed (context destroyed)")
			if self._free:
				index = self._free.pop()
				slot = self._slots[index]
			else:
				index = len(self._slots)
				slot = _Slot()
				self._slots.append(slot)
			slot.kind = kind
			slot.obj = obj
			return RawHandle(kind=kind, index=index, generation=slot.generation, table_id=self.table_id)

	def _slot_for(self, raw: RawHandle) -> Optional[_Slot]:
		if self._closed or raw.table_id != self.table_id:
			return None
		if raw.index < 0 or raw.index >= len(self._slots):
			return None
		slot = self._slots[raw.index]
		if slot.generation != raw.generation or slot.obj is None:
			return None
		return slot

	def resolve(self, raw: RawHandle, kind: HandleKind | None = None) -> Any:
		"""Return the record behind `raw` or raise InvalidHandle if it is stale."""
		with self._guard:
			slot = self._slot_for(raw)
			if slot is None:
				if raw.table_id != self.table_id and not self._closed:
					raise InvalidHandle(f"{raw!r} does not belong to this context", kind=raw.kind.name)
				raise InvalidHandle(f"stale {raw.kind.name.lower()} handle {raw!r}", kind=raw.kind.name)
			if kind is not None and slot.kind is not kind:
				raise InvalidHandle(f"{raw!r} is a {slot.kind.name.lower()}, expected {kind.name.lower()}", kind=raw.kind.name)
			return slot.obj

	def is_live(self, raw: RawHandle) -> bool:
		with self._guard:
			return self._slot_for(raw) is not None

	def release(self, raw: RawHandle) -> None:
		"""Free the slot behind `raw`; all handles to it become stale."""
		with self._guard:
			slot = self._slot_for(raw)
			if slot is None:
				raise InvalidHandle(f"double release of {raw!r}", kind=raw.kind.name)
			slot.generation += 1
			slot.obj = None
			slot.kind = None
			self._free.append(raw.index)

	def live_count(self, kind: HandleKind | None = None) -> int:
		with self._guard:
			return sum(
				1 for s in self._slots if s.obj is not None and (kind is None or s.kind is kind)
			)

	def close(self) -> None:
		"""Invalidate every handle issued by this table."""
		with self._guard:
			self._closed = True
			for slot in self._slots:
				slot.generation += 1
				slot.obj = None
				slot.kind = None
			self._slots = []
			self._free = []

	@property
	def closed(self) -> bool:
		return self._closed

	def stats(self) -> Dict[str, int]:
		with self._guard:
			counts: Dict[str, int] = {}
			for s in self._slots:
				if s.kind is not None:
					counts[s.kind.name.lower()] = counts.get(s.kind.name.lower(), 0) + 1
			return counts


__all__ = ["HandleKind", "HandleTable", "RawHandle"]
