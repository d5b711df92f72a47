# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""convert-to-llvm: op mapping, type conversion and unsupported ops."""

from __future__ import annotations

import pytest

from irkit.core.errors import PassFailed
from irkit.ir import Context, IntegerType, Module
from irkit.passes import PassManager
from irkit.passes.to_llvm import OP_MAP

CASTS = '''\
"func.func"() ({
^bb0(%arg0: index, %arg1: si32):
  %0 = "arith.index_cast"(%arg1) : (si32) -> index
  %1 = "arith.addi"(%arg0, %0) : (index, index) -> index
  "func.return"(%1) : (index) -> ()
}) {function_type = (index, si32) -> index, sym_name = "widen"} : () -> ()
'''

SAME_WIDTH = '''\
"func.func"() ({
^bb0(%arg0: i64):
  %0 = "arith.index_cast"(%arg0) : (i64) -> index
  "func.return"(%0) : (index) -> ()
}) {function_type = (i64) -> index, sym_name = "noop"} : () -> ()
'''

CONSTANT = '''\
"func.func"() ({
^bb0:
  %0 = "arith.constant"() {value = 7 : index} : () -> index
  "func.return"(%0) : (index) -> ()
}) {function_type = () -> index, sym_name = "seven"} : () -> ()
'''

BRANCHES = '''\
"func.func"() ({
^bb0(%arg0: i1, %arg1: i32):
  "cf.cond_br"(%arg0)[^bb1, ^bb2] : (i1) -> ()
^bb1:
  "cf.br"(%arg1)[^bb3] : (i32) -> ()
^bb2:
  %0 = "arith.constant"() {value = 0 : i32} : () -> i32
  "cf.br"(%0)[^bb3] : (i32) -> ()
^bb3(%arg2: i32):
  "func.return"(%arg2) : (i32) -> ()
}) {function_type = (i1, i32) -> i32, sym_name = "choose"} : () -> ()
'''


def _lower(ctx, module) -> None:
	pm = PassManager.parse(ctx, "convert-to-llvm")
	try:
		pm.run(module)
	finally:
		pm.destroy()


def _names(module):
	return [op.name for op in module.walk()]


def test_add_function(ctx, add_module) -> None:
	_lower(ctx, add_module)
	assert _names(add_module) == ["builtin.module", "llvm.func", "llvm.add", "llvm.return"]
	assert add_module.verify() == []
	func = add_module.lookup_symbol("add")
	assert func.name == "llvm.func"
	assert str(func.attributes["function_type"]) == "(i32, i32) -> i32"


def test_index_and_signed_types(ctx) -> None:
	module = Module.parse(ctx, CASTS)
	_lower(ctx, module)
	assert _names(module) == ["builtin.module", "llvm.func", "llvm.sext", "llvm.add", "llvm.return"]
	func = module.body.operations[0]
	i64 = IntegerType.get(ctx, 64)
	i32 = IntegerType.get(ctx, 32)
	assert [a.type for a in func.regions[0].blocks[0].arguments] == [i64, i32]
	assert str(func.attributes["function_type"]) == "(i64, i32) -> i64"
	assert all(r.type == i64 for op in module.walk() for r in op.results)
	module.destroy()


def test_same_width_cast_disappears(ctx) -> None:
	module = Module.parse(ctx, SAME_WIDTH)
	_lower(ctx, module)
	assert _names(module) == ["builtin.module", "llvm.func", "llvm.return"]
	func = module.body.operations[0]
	entry = func.regions[0].blocks[0]
	assert entry.operations[0].operands == [entry.arguments[0]]
	module.destroy()


def test_index_constant(ctx) -> None:
	module = Module.parse(ctx, CONSTANT)
	_lower(ctx, module)
	const = module.body.operations[0].regions[0].blocks[0].operations[0]
	assert const.name == "llvm.mlir.constant"
	assert str(const.attributes["value"]) == "7 : i64"
	assert const.result.type == IntegerType.get(ctx, 64)
	module.destroy()


def test_branches_keep_successors(ctx) -> None:
	module = Module.parse(ctx, BRANCHES)
	_lower(ctx, module)
	assert _names(module) == [
		"builtin.module", "llvm.func", "llvm.cond_br", "llvm.br",
		"llvm.mlir.constant", "llvm.br", "llvm.return",
	]
	blocks = module.body.operations[0].regions[0].blocks
	cond_br = blocks[0].terminator
	assert cond_br.successors == [blocks[1], blocks[2]]
	assert [op.name for op in blocks[3].predecessors] == ["llvm.br", "llvm.br"]
	assert module.verify() == []
	module.destroy()


def test_unsupported_op_fails_the_pass() -> None:
	ctx = Context(allow_unregistered_dialects=True)
	module = Module.parse(ctx, '"foo.bar"() : () -> ()\n')
	with pytest.raises(PassFailed) as err:
		_lower(ctx, module)
	assert err.value.index == 0
	assert err.value.pass_name == "convert-to-llvm"
	[diag] = err.value.diagnostics
	assert diag.op_name == "foo.bar"
	assert "no conversion" in diag.message
	# Nothing was rewritten.
	assert _names(module) == ["builtin.module", "foo.bar"]
	module.destroy()
	ctx.destroy()


def test_every_mapped_op_lands_in_the_llvm_dialect(ctx) -> None:
	llvm = ctx.get_dialect("llvm")
	for source, target in OP_MAP.items():
		assert llvm.lookup(target) is not None, source
