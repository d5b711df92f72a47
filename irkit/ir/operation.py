# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Operations.

An operation starts *floating*: `OperationBuilder.build()` returns an owned
`Operation` that no block holds. Inserting it into a block consumes the
wrapper and hands back an `OperationRef`; from then on the block owns the
record and the ref stays valid until the op (or one of its ancestors) is
erased, or the context is destroyed.

Both flavours share the read/mutate surface of `_OperationView`; only the
lifecycle operations differ (`Operation.destroy` vs `OperationRef.erase`).
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

from irkit.core.errors import OperationInUse
from irkit.core.handles import HandleKind
from irkit.core.location import Location, from_loc
from irkit.core.ownership import BorrowedHandle, Lifetime, OwnedHandle
from irkit.ir.attributes import Attribute
from irkit.ir.types import Type
from irkit.ir.value import Value
from irkit.native.records import OpRecord, replace_all_uses

if TYPE_CHECKING:
	from irkit.core.diagnostics import Diagnostic, DiagnosticHandler
	from irkit.dialects import OpDefinition
	from irkit.ir.block import Block, BlockRef, Region, RegionRef
	from irkit.ir.context import Context


class AttributeMap(MutableMapping):
	"""Live `name -> Attribute` view over an operation's attribute dictionary."""

	def __init__(self, view: "_OperationView") -> None:
		self._view = view

	def _attrs(self) -> Dict[str, Any]:
		return self._view._resolve().attributes

	def __getitem__(self, name: str) -> Attribute:
		raw = self._attrs()[name]
		return Attribute._wrap(self._view._context, raw)

	def __setitem__(self, name: str, attr: Attribute) -> None:
		if not isinstance(name, str) or not name:
			raise TypeError("attribute names must be non-empty strings")
		if not isinstance(attr, Attribute):
			raise TypeError(f"expected an Attribute for '{name}', got {type(attr).__name__}")
		self._view._context._check_same(attr, what=f"attribute '{name}'")
		self._attrs()[name] = attr._raw

	def __delitem__(self, name: str) -> None:
		del self._attrs()[name]

	def __iter__(self) -> Iterator[str]:
		return iter(list(self._attrs()))

	def __len__(self) -> int:
		return len(self._attrs())

	def __repr__(self) -> str:
		return "{" + ", ".join(f"{k}: {v}" for k, v in sorted(self.items())) + "}"


def _check_no_outside_branches(store, record: OpRecord) -> None:
	preds = store.op_external_predecessors(record)
	if preds:
		raise OperationInUse(
			f"cannot erase '{record.name}': a block inside it is still the successor of {len(preds)} outside operation(s)",
			op_name=record.name,
			use_count=len(preds),
		)


class _OperationView:
	"""Accessors shared by owned and borrowed operation wrappers."""

	_context: "Context"
	_scope: Optional[Lifetime]

	def _ref_to(self, record: OpRecord) -> "OperationRef":
		return OperationRef(self._context, record.handle, self._scope)

	@property
	def context(self) -> "Context":
		return self._context

	@property
	def name(self) -> str:
		return self._resolve().name

	@property
	def dialect_name(self) -> str:
		return self.name.split(".", 1)[0]

	@property
	def definition(self) -> Optional["OpDefinition"]:
		return self._context.lookup_op(self.name)

	@property
	def is_registered(self) -> bool:
		return self.definition is not None

	def has_trait(self, trait: str) -> bool:
		definition = self.definition
		return definition is not None and definition.has_trait(trait)

	@property
	def location(self) -> Location:
		return self._resolve().location

	@location.setter
	def location(self, loc: Location) -> None:
		self._resolve().location = from_loc(loc)

	# --- operands ---

	@property
	def operands(self) -> List[Value]:
		return [Value._from_record(self._context, v, self._scope) for v in self._resolve().operands]

	@property
	def num_operands(self) -> int:
		return len(self._resolve().operands)

	def set_operand(self, index: int, value: Value) -> None:
		if not isinstance(value, Value):
			raise TypeError(f"expected a Value, got {type(value).__name__}")
		self._context._check_same(value, what="operand")
		record = self._resolve()
		if not -len(record.operands) <= index < len(record.operands):
			raise IndexError(f"operand index {index} out of range for '{record.name}'")
		record.set_operand(index % len(record.operands), value._resolve())

	def append_operand(self, value: Value) -> None:
		if not isinstance(value, Value):
			raise TypeError(f"expected a Value, got {type(value).__name__}")
		self._context._check_same(value, what="operand")
		self._resolve().append_operand(value._resolve())

	def erase_operand(self, index: int) -> None:
		record = self._resolve()
		if not 0 <= index < len(record.operands):
			raise IndexError(f"operand index {index} out of range for '{record.name}'")
		record.erase_operand(index)

	# --- results ---

	@property
	def results(self) -> List[Value]:
		return [Value._from_record(self._context, v, self._scope) for v in self._resolve().results]

	@property
	def num_results(self) -> int:
		return len(self._resolve().results)

	@property
	def result(self) -> Value:
		"""The single result; ValueError unless there is exactly one."""
		results = self._resolve().results
		if len(results) != 1:
			raise ValueError(f"'{self.name}' has {len(results)} results, not exactly one")
		return Value._from_record(self._context, results[0], self._scope)

	def replace_all_uses_with(self, values: Union[Sequence[Value], "_OperationView"]) -> int:
		"""Redirect every use of each result to the matching entry of `values`."""
		if isinstance(values, _OperationView):
			values = values.results
		record = self._resolve()
		values = list(values)
		if len(values) != len(record.results):
			raise ValueError(f"'{record.name}' has {len(record.results)} results but {len(values)} replacements were given")
		for v in values:
			if not isinstance(v, Value):
				raise TypeError(f"expected a Value, got {type(v).__name__}")
		self._context._check_same(*values, what="replacement value")
		return sum(replace_all_uses(old, new._resolve()) for old, new in zip(record.results, values))

	# --- attributes ---

	@property
	def attributes(self) -> AttributeMap:
		return AttributeMap(self)

	# --- regions and successors ---

	@property
	def regions(self) -> List["RegionRef"]:
		from irkit.ir.block import RegionRef

		return [RegionRef(self._context, r.handle, self._scope) for r in self._resolve().regions]

	@property
	def num_regions(self) -> int:
		return len(self._resolve().regions)

	@property
	def successors(self) -> List["BlockRef"]:
		from irkit.ir.block import BlockRef

		return [BlockRef(self._context, b.handle, self._scope) for b in self._resolve().successors]

	def set_successor(self, index: int, block: "BlockRef") -> None:
		self._context._check_same(block, what="successor")
		self._resolve().set_successor(index, block._resolve())

	# --- structure ---

	@property
	def parent_block(self) -> Optional["BlockRef"]:
		from irkit.ir.block import BlockRef

		parent = self._resolve().parent
		return BlockRef(self._context, parent.handle, self._scope) if parent is not None else None

	@property
	def parent_region(self) -> Optional["RegionRef"]:
		from irkit.ir.block import RegionRef

		region = self._resolve().parent_region
		return RegionRef(self._context, region.handle, self._scope) if region is not None else None

	@property
	def parent_op(self) -> Optional["OperationRef"]:
		parent = self._resolve().parent_op
		return self._ref_to(parent) if parent is not None else None

	@property
	def is_attached(self) -> bool:
		return self._resolve().parent is not None

	def is_ancestor_of(self, other: "_OperationView") -> bool:
		return self._resolve().is_proper_ancestor_of(other._resolve())

	def walk(self, order: str = "pre") -> Iterator["OperationRef"]:
		from irkit.ir.walk import walk

		return walk(self, order=order)

	# --- verification and printing ---

	def verify(self, handler: Optional["DiagnosticHandler"] = None) -> List["Diagnostic"]:
		from irkit.ir.verifier import verify

		return verify(self, handler)

	def print(self, *, with_locations: bool = False) -> str:
		from irkit.asm.printer import print_operation

		return print_operation(self, with_locations=with_locations)

	def __str__(self) -> str:
		return self.print()


class Operation(_OperationView, OwnedHandle):
	"""Owned handle to a floating operation."""

	_kind = HandleKind.OPERATION
	_owner_kind = HandleKind.OPERATION

	@classmethod
	def create(
		cls,
		context: "Context",
		name: str,
		*,
		operands: Iterable[Value] = (),
		results: Iterable[Type] = (),
		attributes: Optional[Mapping[str, Attribute]] = None,
		regions: Union[int, Iterable["Region"]] = 0,
		successors: Iterable[Union["BlockRef", "Block"]] = (),
		location: Optional[Location] = None,
	) -> "Operation":
		builder = OperationBuilder(context, name, location)
		builder.add_operands(*operands)
		builder.add_results(*results)
		if attributes:
			builder.add_attributes(attributes)
		if isinstance(regions, int):
			builder.add_regions(regions)
		else:
			builder.add_regions(*regions)
		builder.add_successors(*successors)
		return builder.build()

	def _release(self, record: OpRecord) -> None:
		store = self._context._store
		uses = store.op_external_uses(record)
		if uses:
			raise OperationInUse(
				f"cannot destroy '{record.name}': its values still have {len(uses)} use(s) outside it",
				op_name=record.name,
				use_count=len(uses),
			)
		_check_no_outside_branches(store, record)
		store.release_op(record)

	def _make_ref(self, scope: Optional[Lifetime]) -> "OperationRef":
		return OperationRef(self._context, self._raw, scope)

	def __repr__(self) -> str:
		if not self.is_live:
			return f"<Operation ({self.state.name.lower()})>"
		return f"<Operation '{self.name}' floating>"


class OperationRef(_OperationView, BorrowedHandle):
	"""Borrowed handle to an operation owned by a block (or by an owned wrapper)."""

	_kind = HandleKind.OPERATION

	def erase(self) -> None:
		"""
		Remove this operation from its block and release its subtree.

		Raises OperationInUse while any value defined in the subtree (its
		results, nested results, nested block arguments) is used outside it, or
		while a nested block is still the target of an outside branch.
		"""
		record = self._resolve()
		if record.parent is None:
			raise ValueError(f"'{record.name}' is not attached to a block; destroy its owning wrapper instead")
		store = self._context._store
		uses = store.op_external_uses(record)
		if uses:
			raise OperationInUse(
				f"cannot erase '{record.name}': its values still have {len(uses)} use(s) outside it",
				op_name=record.name,
				use_count=len(uses),
			)
		_check_no_outside_branches(store, record)
		record.parent.remove(record)
		store.release_op(record)

	def detach(self) -> Operation:
		"""Unlink from the parent block; the returned wrapper owns the op again."""
		record = self._resolve()
		if record.parent is None:
			raise ValueError(f"'{record.name}' is not attached to a block")
		record.parent.remove(record)
		return Operation(self._context, record.handle)

	def _move_to(self, anchor: "_OperationView", offset: int) -> None:
		self._context._check_same(anchor, what="anchor operation")
		record = self._resolve()
		target = anchor._resolve()
		if target is record:
			return
		if record.parent is None or target.parent is None:
			raise ValueError("both operations must be attached to move one relative to the other")
		if record.is_proper_ancestor_of(target):
			raise ValueError(f"cannot move '{record.name}' into its own subtree")
		record.parent.remove(record)
		block = target.parent
		block.insert(block.index_of(target) + offset, record)

	def move_before(self, anchor: "_OperationView") -> None:
		self._move_to(anchor, 0)

	def move_after(self, anchor: "_OperationView") -> None:
		self._move_to(anchor, 1)

	def __repr__(self) -> str:
		if not self.is_valid:
			return "<OperationRef (invalid)>"
		return f"<OperationRef '{self.name}'>"


class OperationBuilder:
	"""
	Descriptor for a new operation.

	Collects name, operands, result types, attributes, regions, successors and
	location, then `build()` creates the floating operation. Regions passed
	in as owned `Region` wrappers are consumed by `build()`.
	"""

	def __init__(self, context: "Context", name: str, location: Optional[Location] = None) -> None:
		context._check_live()
		if not isinstance(name, str) or "." not in name:
			raise ValueError(f"operation name '{name}' must be 'dialect.op'")
		self.context = context
		self.name = name
		self.location = from_loc(location)
		self._operands: List[Value] = []
		self._result_types: List[Type] = []
		self._attributes: Dict[str, Attribute] = {}
		self._regions: List[Union[int, "Region"]] = []
		self._successors: List[Any] = []
		self._built = False

	def add_operands(self, *values: Value) -> "OperationBuilder":
		for v in values:
			if not isinstance(v, Value):
				raise TypeError(f"operands must be Values, got {type(v).__name__}")
		self.context._check_same(*values, what="operand")
		self._operands.extend(values)
		return self

	def add_results(self, *types: Type) -> "OperationBuilder":
		for t in types:
			if not isinstance(t, Type):
				raise TypeError(f"result types must be Types, got {type(t).__name__}")
		self.context._check_same(*types, what="result type")
		self._result_types.extend(types)
		return self

	def add_attributes(self, attributes: Optional[Mapping[str, Attribute]] = None, **kwargs: Attribute) -> "OperationBuilder":
		items = dict(attributes or {})
		items.update(kwargs)
		for key, attr in items.items():
			if not isinstance(key, str) or not key:
				raise TypeError("attribute names must be non-empty strings")
			if not isinstance(attr, Attribute):
				raise TypeError(f"attribute '{key}' must be an Attribute, got {type(attr).__name__}")
			self.context._check_same(attr, what=f"attribute '{key}'")
		self._attributes.update(items)
		return self

	def add_regions(self, *regions: Union[int, "Region"]) -> "OperationBuilder":
		"""Add owned floating regions, or an int to add that many empty ones."""
		from irkit.ir.block import Region

		for r in regions:
			if isinstance(r, bool) or not isinstance(r, (int, Region)):
				raise TypeError(f"expected a Region or a count, got {type(r).__name__}")
			if isinstance(r, int):
				if r < 0:
					raise ValueError("region count must be non-negative")
				self._regions.extend([1] * r)
			else:
				self.context._check_same(r, what="region")
				self._regions.append(r)
		return self

	def add_successors(self, *blocks: Union["BlockRef", "Block"]) -> "OperationBuilder":
		from irkit.ir.block import Block, BlockRef

		for b in blocks:
			if not isinstance(b, (Block, BlockRef)):
				raise TypeError(f"successors must be blocks, got {type(b).__name__}")
		self.context._check_same(*blocks, what="successor")
		self._successors.extend(blocks)
		return self

	def build(self) -> Operation:
		if self._built:
			raise ValueError("OperationBuilder.build() may only be called once")
		store = self.context._store
		operands = [v._resolve() for v in self._operands]
		successors = [b._resolve() for b in self._successors]
		regions = []
		for r in self._regions:
			regions.append(store.create_region() if isinstance(r, int) else r._take())
		record = store.create_op(
			self.name,
			self.location,
			operands=operands,
			result_types=[t._raw for t in self._result_types],
			attributes={k: a._raw for k, a in self._attributes.items()},
			regions=regions,
			successors=successors,
		)
		self._built = True
		return Operation(self.context, record.handle)


__all__ = ["AttributeMap", "Operation", "OperationBuilder", "OperationRef"]
