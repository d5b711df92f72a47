# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Use-def chains.

Cases:
  - uses and users reflect operand slots
  - set_operand / erase_operand keep every use list in sync
  - replace_all_uses_with redirects uses and reports the count
  - erasing an op whose result is used raises OperationInUse
  - blocks that are still branch targets cannot be erased
  - use lists and operand slots agree after a mixed edit sequence
"""

from __future__ import annotations

import pytest

from irkit.core.errors import OperationInUse
from irkit.ir import Module, Operation

BRANCHES = '''\
"func.func"() ({
^entry(%x: i32):
  "cf.br"(%x) [^exit] : (i32) -> ()
^exit(%y: i32):
  "func.return"(%y) : (i32) -> ()
}) {function_type = (i32) -> i32, sym_name = "forward"} : () -> ()
'''


def _parts(module):
	func = module.body.operations[0]
	entry = func.regions[0].blocks[0]
	addi, ret = entry.operations
	return entry, addi, ret


def test_uses_and_users(add_module) -> None:
	entry, addi, ret = _parts(add_module)
	a, b = entry.arguments
	assert a.use_count == 1
	assert a.users == [addi]
	assert [(u.owner, u.index) for u in b.uses] == [(addi, 1)]
	assert addi.result.users == [ret]
	assert addi.result.uses[0].get() == addi.result
	assert a.owner == entry
	assert addi.result.owner == addi


def test_set_operand_moves_the_use(add_module) -> None:
	entry, addi, _ = _parts(add_module)
	a, b = entry.arguments
	addi.set_operand(1, a)
	assert not b.has_uses
	assert a.use_count == 2
	# Distinct users, even with two uses from one op.
	assert a.users == [addi]
	assert sorted(u.index for u in a.uses) == [0, 1]


def test_operand_handle_set(add_module) -> None:
	entry, addi, _ = _parts(add_module)
	a, b = entry.arguments
	b.uses[0].set(a)
	assert addi.operands == [a, a]


def test_erase_operand(add_module) -> None:
	_, addi, ret = _parts(add_module)
	ret.erase_operand(0)
	assert ret.num_operands == 0
	assert not addi.result.has_uses
	with pytest.raises(IndexError):
		ret.erase_operand(0)


def test_replace_all_uses_with(add_module) -> None:
	entry, addi, ret = _parts(add_module)
	a, _ = entry.arguments
	assert addi.result.replace_all_uses_with(a) == 1
	assert ret.operands == [a]
	assert not addi.result.has_uses
	assert a.users == [addi, ret]


def test_erase_in_use_then_after_rauw(add_module) -> None:
	entry, addi, ret = _parts(add_module)
	with pytest.raises(OperationInUse) as err:
		addi.erase()
	assert err.value.use_count == 1
	assert err.value.op_name == "arith.addi"
	# Nothing changed.
	assert len(entry.operations) == 2

	a, _ = entry.arguments
	assert addi.replace_all_uses_with([a]) == 1
	addi.erase()
	assert not addi.is_valid
	assert [op.name for op in entry.operations] == ["func.return"]
	assert ret.operands == [a]
	assert a.users == [ret]
	add_module.verify()


def test_branch_target_cannot_be_erased(ctx) -> None:
	module = Module.parse(ctx, BRANCHES)
	func = module.body.operations[0]
	entry, exit_block = func.regions[0].blocks
	br = entry.operations[0]
	assert br.successors == [exit_block]
	assert exit_block.predecessors == [br]
	with pytest.raises(OperationInUse):
		exit_block.erase()
	assert func.regions[0].num_blocks == 2
	module.verify()
	module.destroy()


def test_use_lists_after_mixed_edits(ctx, i32, add_module, check_use_lists) -> None:
	entry, addi, ret = _parts(add_module)
	a, b = entry.arguments
	check_use_lists(add_module)

	mul = entry.insert_before(ret, Operation.create(ctx, "arith.muli", operands=[addi.result, addi.result], results=[i32]))
	assert addi.result.use_count == 3
	check_use_lists(add_module)

	mul.set_operand(1, a)
	ret.set_operand(0, mul.result)
	assert addi.result.users == [mul]
	check_use_lists(add_module)

	assert addi.result.replace_all_uses_with(b) == 1
	assert mul.operands == [b, a]
	check_use_lists(add_module)

	mul.erase_operand(0)
	assert mul.operands == [a]
	assert [u.index for u in a.uses if u.owner == mul] == [0]
	addi.erase()
	check_use_lists(add_module)

	mul.append_operand(b)
	assert b.replace_all_uses_with(a) == 1
	assert mul.operands == [a, a]
	assert a.use_count == 2
	assert not b.has_uses
	check_use_lists(add_module)
	assert add_module.verify() == []
