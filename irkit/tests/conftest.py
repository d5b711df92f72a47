# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Shared fixtures: a fresh context per test and the add-function module."""

from __future__ import annotations

import pytest

from irkit.ir import Context, FunctionType, IntegerType, Module, Operation, StringAttr, TypeAttr

ADD_TEXT = '''\
"builtin.module"() ({
^bb0:
  "func.func"() ({
  ^bb0(%arg0: i32, %arg1: i32):
    %0 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32
    "func.return"(%0) : (i32) -> ()
  }) {function_type = (i32, i32) -> i32, sym_name = "add"} : () -> ()
}) : () -> ()
'''


def build_add_module(ctx: Context, name: str = "add") -> Module:
	"""`func.func @add(%a: i32, %b: i32) -> i32 { return %a + %b }` through the builder API."""
	i32 = IntegerType.get(ctx, 32)
	fn_type = FunctionType.get(ctx, [i32, i32], [i32])
	module = Module.create(ctx)
	func = Operation.create(
		ctx,
		"func.func",
		attributes={"sym_name": StringAttr.get(ctx, name), "function_type": TypeAttr.get(ctx, fn_type)},
		regions=1,
	)
	entry = func.regions[0].add_block(i32, i32)
	a, b = entry.arguments
	add = entry.append_operation(Operation.create(ctx, "arith.addi", operands=[a, b], results=[i32]))
	entry.append_operation(Operation.create(ctx, "func.return", operands=[add.result]))
	module.body.append_operation(func)
	return module


@pytest.fixture
def ctx():
	context = Context()
	yield context
	if context.is_live:
		context.destroy(force=True)


@pytest.fixture
def i32(ctx):
	return IntegerType.get(ctx, 32)


@pytest.fixture
def add_module(ctx):
	return build_add_module(ctx)


@pytest.fixture
def make_add_module():
	return build_add_module


@pytest.fixture
def add_text():
	return ADD_TEXT


def assert_use_lists_consistent(module: Module) -> None:
	"""Every operand slot has exactly one matching use, and every use names a live slot."""
	slots = 0
	values = []
	for op in module.walk():
		for index, operand in enumerate(op.operands):
			slots += 1
			assert [(u.owner, u.index) for u in operand.uses].count((op, index)) == 1
		values.extend(op.results)
		for region in op.regions:
			for block in region.blocks:
				values.extend(block.arguments)
	uses = 0
	for value in values:
		for use in value.uses:
			uses += 1
			assert use.owner.operands[use.index] == value
			assert use.get() == value
	assert uses == slots


@pytest.fixture
def check_use_lists():
	return assert_use_lists_consistent
