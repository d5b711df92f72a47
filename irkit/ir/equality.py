# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural equality of IR trees.

Two trees are equal when they have the same shape (names, regions, blocks,
argument/result types, attributes, successors) and their operands refer to
corresponding values. The trees may live in different contexts: types and
attributes are then compared by their textual form. Locations are ignored
unless `compare_locations=True`.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from irkit.core.handles import RawHandle
from irkit.native.records import BlockRecord, OpRecord, RegionRecord, ValueRecord


class _Matcher:
	def __init__(self, ctx_a, ctx_b, compare_locations: bool) -> None:
		self.ctx_a = ctx_a
		self.ctx_b = ctx_b
		self.compare_locations = compare_locations
		self.values: Dict[int, ValueRecord] = {}
		self.blocks: Dict[int, BlockRecord] = {}
		self.pending: List[Tuple[OpRecord, OpRecord]] = []

	def _same_type(self, a: RawHandle, b: RawHandle) -> bool:
		if self.ctx_a is self.ctx_b:
			return a == b
		from irkit.asm.printer import format_type
		from irkit.ir.types import Type

		return format_type(Type._wrap(self.ctx_a, a)) == format_type(Type._wrap(self.ctx_b, b))

	def _same_attr(self, a: RawHandle, b: RawHandle) -> bool:
		if self.ctx_a is self.ctx_b:
			return a == b
		from irkit.asm.printer import format_attribute
		from irkit.ir.attributes import Attribute

		return format_attribute(Attribute._wrap(self.ctx_a, a)) == format_attribute(Attribute._wrap(self.ctx_b, b))

	def _same_values(self, a: List[ValueRecord], b: List[ValueRecord]) -> bool:
		if len(a) != len(b):
			return False
		for va, vb in zip(a, b):
			if not self._same_type(va.type, vb.type):
				return False
			if self.compare_locations and va.location != vb.location:
				return False
			self.values[id(va)] = vb
		return True

	def op(self, a: OpRecord, b: OpRecord) -> bool:
		if a.name != b.name:
			return False
		if self.compare_locations and a.location != b.location:
			return False
		if (len(a.operands), len(a.regions), len(a.successors)) != (len(b.operands), len(b.regions), len(b.successors)):
			return False
		if set(a.attributes) != set(b.attributes):
			return False
		for key, raw in a.attributes.items():
			if not self._same_attr(raw, b.attributes[key]):
				return False
		if not self._same_values(a.results, b.results):
			return False
		for ra, rb in zip(a.regions, b.regions):
			if not self.region(ra, rb):
				return False
		self.pending.append((a, b))
		return True

	def region(self, a: RegionRecord, b: RegionRecord) -> bool:
		if len(a.blocks) != len(b.blocks):
			return False
		for ba, bb in zip(a.blocks, b.blocks):
			self.blocks[id(ba)] = bb
		for ba, bb in zip(a.blocks, b.blocks):
			if not self._same_values(ba.arguments, bb.arguments):
				return False
			if len(ba.operations) != len(bb.operations):
				return False
			for oa, ob in zip(ba.operations, bb.operations):
				if not self.op(oa, ob):
					return False
		return True

	def references(self) -> bool:
		"""Operands and successors, checked once every definition is mapped."""
		for a, b in self.pending:
			for va, vb in zip(a.operands, b.operands):
				mapped = self.values.get(id(va))
				# Values defined outside the compared trees must be the same value.
				if mapped is None:
					if va is not vb:
						return False
				elif mapped is not vb:
					return False
			for sa, sb in zip(a.successors, b.successors):
				mapped_block = self.blocks.get(id(sa))
				if mapped_block is None:
					if sa is not sb:
						return False
				elif mapped_block is not sb:
					return False
		return True


def structurally_equal(a, b, *, compare_locations: bool = False) -> bool:
	"""Compare two Modules, Operations or OperationRefs structurally."""
	matcher = _Matcher(a._context, b._context, compare_locations)
	return matcher.op(a._resolve(), b._resolve()) and matcher.references()


__all__ = ["structurally_equal"]
