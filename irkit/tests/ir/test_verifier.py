# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural verification.

Cases:
  - the add module verifies cleanly
  - a block without a terminator is rejected
  - a use before its definition violates dominance
  - a value from outside an isolated function is not visible inside it
  - unregistered ops fail unless the context allows them
  - cf.cond_br needs an i1 condition
  - required attributes and operand counts come from the dialect
"""

from __future__ import annotations

import pytest

from irkit.core.errors import VerificationFailed
from irkit.ir import Context, ContextConfig, Module


def _func(body: str, signature: str = "(i32) -> i32") -> str:
	return (
		'"func.func"() ({\n'
		+ body
		+ '}) {function_type = ' + signature + ', sym_name = "f"} : () -> ()\n'
	)


def _errors(ctx, text: str):
	module = Module.parse(ctx, text)
	try:
		with pytest.raises(VerificationFailed) as err:
			module.verify()
	finally:
		module.destroy()
	return [d for d in err.value.diagnostics if d.is_error]


def test_add_module_verifies(add_module) -> None:
	assert add_module.verify() == []


def test_handler_sees_failures(ctx) -> None:
	seen = []
	module = Module.parse(ctx, '%0 = "arith.constant"() : () -> i32\n')
	with pytest.raises(VerificationFailed):
		module.verify(seen.append)
	assert [d.op_name for d in seen] == ["arith.constant"]
	module.destroy()


def test_missing_terminator(ctx) -> None:
	errors = _errors(ctx, _func(
		'^bb0(%a: i32):\n'
		'  %0 = "arith.addi"(%a, %a) : (i32, i32) -> i32\n'
	))
	assert any("terminator" in d.message for d in errors)


def test_use_before_definition(ctx) -> None:
	errors = _errors(ctx, _func(
		'^bb0(%a: i32):\n'
		'  %1 = "arith.addi"(%0, %a) : (i32, i32) -> i32\n'
		'  %0 = "arith.addi"(%a, %a) : (i32, i32) -> i32\n'
		'  "func.return"(%1) : (i32) -> ()\n'
	))
	assert len(errors) == 1
	assert errors[0].op_name == "arith.addi"
	assert "does not dominate" in errors[0].message


def test_value_from_outside_isolated_function(ctx) -> None:
	text = (
		'%0 = "arith.constant"() {value = 1 : i32} : () -> i32\n'
		+ _func(
			'^bb0(%a: i32):\n'
			'  "func.return"(%0) : (i32) -> ()\n'
		)
	)
	errors = _errors(ctx, text)
	assert [d.op_name for d in errors] == ["func.return"]


def test_unregistered_operation(ctx) -> None:
	errors = _errors(ctx, '"foo.bar"() : () -> ()\n')
	assert errors[0].op_name == "foo.bar"
	assert "unregistered" in errors[0].message


def test_unregistered_operation_allowed() -> None:
	ctx = Context(ContextConfig(allow_unregistered_dialects=True))
	module = Module.parse(ctx, '"foo.bar"() : () -> ()\n')
	assert module.verify() == []
	module.destroy()
	ctx.destroy()


def test_conditional_branch_needs_i1(ctx) -> None:
	errors = _errors(ctx, _func(
		'^bb0(%c: i32):\n'
		'  "cf.cond_br"(%c) [^bb1, ^bb2] : (i32) -> ()\n'
		'^bb1:\n'
		'  "func.return"() : () -> ()\n'
		'^bb2:\n'
		'  "func.return"() : () -> ()\n',
		signature="(i32) -> ()",
	))
	assert len(errors) == 1
	assert "must be i1" in errors[0].message


def test_missing_required_attribute(ctx) -> None:
	errors = _errors(ctx, '%0 = "arith.constant"() : () -> i32\n')
	assert [d.message for d in errors] == ["requires attribute 'value'"]


def test_operand_count(ctx) -> None:
	errors = _errors(ctx, _func(
		'^bb0(%a: i32):\n'
		'  %0 = "arith.addi"(%a) : (i32) -> i32\n'
		'  "func.return"(%0) : (i32) -> ()\n'
	))
	assert [d.message for d in errors] == ["expects 2 operand(s), got 1"]


def test_return_type_mismatch(ctx) -> None:
	errors = _errors(ctx, _func(
		'^bb0(%a: i32):\n'
		'  "func.return"() : () -> ()\n'
	))
	assert errors[0].op_name == "func.return"
