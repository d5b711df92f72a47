# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Tree traversal yielding borrowed operation refs."""

from __future__ import annotations

from typing import Iterator

from irkit.ir.operation import OperationRef


def walk(target, order: str = "pre") -> Iterator[OperationRef]:
	"""
	Walk `target` (a Module, Operation or OperationRef) and its nested ops.

	Pre-order visits a parent before its regions; post-order after. Ops
	erased by the caller during the walk are skipped.
	"""
	if order not in ("pre", "post"):
		raise ValueError(f"walk order must be 'pre' or 'post', got {order!r}")
	context = target._context
	scope = getattr(target, "_scope", None)
	record = target._resolve()
	table = context._store.table
	records = record.walk() if order == "pre" else record.walk_post()
	for op in records:
		if op.handle is None or not table.is_live(op.handle):
			continue
		yield OperationRef(context, op.handle, scope)


__all__ = ["walk"]
