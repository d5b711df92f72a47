# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Ownership and lifetime rules of the safe layer.

Cases:
  - an owned operation is consumed by insertion; the returned ref is live
  - destroying a module invalidates every ref into it
  - a scoped borrow stops working when its `with` block ends
  - destroying a context with live owners raises DanglingOwner unless forced
  - erased operations leave stale refs that never resolve again
  - owned wrappers expose the same views as refs
  - nothing is released while an outside branch still targets one of its blocks
"""

from __future__ import annotations

import pytest

from irkit.core.errors import DanglingOwner, InvalidHandle, OperationInUse
from irkit.core.ownership import HandleState
from irkit.ir import Context, IntegerAttr, IntegerType, Module, Operation, Region


def test_insertion_moves_the_owned_operation(ctx, i32) -> None:
	module = Module.create(ctx)
	op = Operation.create(ctx, "arith.constant", results=[i32], attributes={"value": IntegerAttr.get(ctx, 1, i32)})
	ref = module.body.append_operation(op)
	assert op.state is HandleState.MOVED
	assert not op.is_live
	with pytest.raises(InvalidHandle, match="moved"):
		op.name
	assert ref.name == "arith.constant"
	assert ref.parent_block == module.body
	module.destroy()


def test_moved_operation_cannot_be_inserted_twice(ctx, i32) -> None:
	module = Module.create(ctx)
	op = Operation.create(ctx, "arith.constant", results=[i32], attributes={"value": IntegerAttr.get(ctx, 1, i32)})
	module.body.append_operation(op)
	with pytest.raises(InvalidHandle):
		module.body.append_operation(op)
	module.destroy()


def test_destroyed_module_invalidates_refs(ctx, add_module) -> None:
	func = add_module.body.operations[0]
	entry = func.regions[0].blocks[0]
	arg = entry.arguments[0]
	add_module.destroy()
	assert add_module.state is HandleState.DESTROYED
	assert not func.is_valid
	for use in (lambda: func.name, lambda: len(entry.operations), lambda: arg.type, lambda: add_module.body):
		with pytest.raises(InvalidHandle):
			use()
	with pytest.raises(InvalidHandle):
		add_module.destroy()


def test_scoped_borrow_ends_with_the_block(ctx, add_module) -> None:
	with add_module.borrowed() as op:
		assert op.name == "builtin.module"
		body_op = op.regions[0].blocks[0].operations[0]
		assert body_op.name == "func.func"
	with pytest.raises(InvalidHandle, match="borrow scope"):
		op.name
	with pytest.raises(InvalidHandle, match="borrow scope"):
		body_op.name
	# The module itself is untouched.
	assert add_module.is_live
	assert add_module.body.operations[0].name == "func.func"
	add_module.destroy()


def test_destroy_with_live_owners() -> None:
	ctx = Context()
	module = Module.create(ctx)
	with pytest.raises(DanglingOwner) as err:
		ctx.destroy()
	assert err.value.owners == {"module": 1}
	assert ctx.is_live
	assert module.is_live
	ctx.destroy(force=True)
	assert not ctx.is_live
	assert not module.is_live
	with pytest.raises(InvalidHandle):
		module.body


def test_live_owners_tracks_floating_objects(ctx, i32) -> None:
	op = Operation.create(ctx, "arith.constant", results=[i32], attributes={"value": IntegerAttr.get(ctx, 2, i32)})
	module = Module.create(ctx)
	assert ctx.live_owners() == {"module": 1, "operation": 1}
	module.body.append_operation(op)
	assert ctx.live_owners() == {"module": 1}
	module.destroy()
	assert ctx.live_owners() == {}


def test_context_manager_cleans_up() -> None:
	with Context() as ctx:
		with Module.create(ctx) as module:
			assert module.is_live
		assert module.state is HandleState.DESTROYED
		i32 = IntegerType.get(ctx, 32)
	assert not ctx.is_live
	assert not i32.is_valid


def test_context_manager_does_not_mask_errors() -> None:
	with pytest.raises(KeyError):
		with Context() as ctx:
			Module.create(ctx)
			raise KeyError("boom")
	assert not ctx.is_live


def test_erased_operation_ref_stays_stale(ctx, i32) -> None:
	module = Module.create(ctx)
	value = IntegerAttr.get(ctx, 3, i32)
	ref = module.body.append_operation(Operation.create(ctx, "arith.constant", results=[i32], attributes={"value": value}))
	ref.erase()
	assert not ref.is_valid
	# Fill freed slots again; the old ref must not alias the newcomers.
	fresh = [
		module.body.append_operation(Operation.create(ctx, "arith.constant", results=[i32], attributes={"value": value}))
		for _ in range(4)
	]
	with pytest.raises(InvalidHandle):
		ref.name
	assert all(f.name == "arith.constant" for f in fresh)
	module.destroy()


def test_detach_returns_ownership(ctx, add_module) -> None:
	func = add_module.body.operations[0]
	owned = func.detach()
	assert owned.is_live
	assert len(add_module.body.operations) == 0
	assert owned.parent_block is None
	owned.destroy()
	assert not func.is_valid
	add_module.destroy()


def test_move_within_a_block(add_module) -> None:
	func = add_module.body.operations[0]
	entry = func.regions[0].blocks[0]
	addi, ret = entry.operations
	ret.move_before(addi)
	assert [op.name for op in entry.operations] == ["func.return", "arith.addi"]
	ret.move_after(addi)
	assert [op.name for op in entry.operations] == ["arith.addi", "func.return"]
	assert add_module.verify() == []
	with pytest.raises(ValueError, match="own subtree"):
		func.move_before(addi)


def test_owned_operation_views(ctx) -> None:
	op = Operation.create(ctx, "test.op", regions=1)
	assert op.name == "test.op"
	assert op.num_regions == 1
	block = op.regions[0].add_block()
	assert op.regions[0].blocks == [block]
	op.destroy()
	assert not block.is_valid


def test_erase_keeps_blocks_targeted_from_outside(ctx) -> None:
	module = Module.create(ctx)
	holder = module.body.append_operation(Operation.create(ctx, "test.holder", regions=1))
	inner = holder.regions[0].add_block()
	br = module.body.append_operation(Operation.create(ctx, "test.br", successors=[inner]))
	with pytest.raises(OperationInUse, match="successor of 1 outside operation"):
		holder.erase()
	assert holder.is_valid
	assert br.successors == [inner]
	br.erase()
	holder.erase()
	assert not inner.is_valid
	assert len(module.body.operations) == 0
	module.destroy()


def test_destroy_keeps_blocks_targeted_from_outside(ctx) -> None:
	holder = Operation.create(ctx, "test.holder", regions=1)
	inner = holder.regions[0].add_block()
	br = Operation.create(ctx, "test.br", successors=[inner])
	with pytest.raises(OperationInUse):
		holder.destroy()
	assert holder.is_live
	region = Region.create(ctx)
	other = region.add_block()
	br2 = Operation.create(ctx, "test.br", successors=[other])
	with pytest.raises(OperationInUse, match="successor of 1 outside operation"):
		region.destroy()
	assert region.is_live
	for owner in (br, holder, br2, region):
		owner.destroy()
	assert ctx.live_owners() == {}
