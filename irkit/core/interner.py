# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Content-addressed get-or-insert table backing type and attribute uniquing.

The check-then-insert runs under the context's guard, so with a thread-capable
context two racing callers interning equal specs still observe one handle.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Dict, Generic, Hashable, TypeVar

from irkit.core.handles import HandleKind, HandleTable, RawHandle

S = TypeVar("S", bound=Hashable)


class Interner(Generic[S]):
	def __init__(self, table: HandleTable, kind: HandleKind, guard: AbstractContextManager) -> None:
		self._table = table
		self._kind = kind
		self._guard = guard
		self._by_spec: Dict[S, RawHandle] = {}

	def intern(self, spec: S) -> RawHandle:
		with self._guard:
			raw = self._by_spec.get(spec)
			if raw is None:
				raw = self._table.acquire(self._kind, spec)
				self._by_spec[spec] = raw
			return raw

	def lookup(self, raw: RawHandle) -> S:
		return self._table.resolve(raw, self._kind)

	def __contains__(self, spec: object) -> bool:
		with self._guard:
			return spec in self._by_spec

	def __len__(self) -> int:
		with self._guard:
			return len(self._by_spec)

	def clear(self) -> None:
		with self._guard:
			self._by_spec.clear()


__all__ = ["Interner"]
