# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Built-in transforms and the greedy pattern driver.

Cases:
  - canonicalize folds identities, both operand orders for commutative ops
  - declarative patterns can build replacement ops
  - cse merges equal pure ops; dce drops dead ops and unreachable blocks
  - strip-debuginfo resets every location
  - hitting the iteration cap warns, or fails in strict mode
"""

from __future__ import annotations

import pytest

from irkit.core.diagnostics import DiagnosticCollector, Severity
from irkit.core.errors import PassFailed
from irkit.ir import Context, ContextConfig, Module, UnitAttr
from irkit.passes import (
	Capture,
	ConstantInt,
	CustomPass,
	GreedyRewriteConfig,
	OpMatch,
	Pattern,
	PassManager,
	ReplaceWithOp,
	RewritePattern,
	apply_patterns_greedily,
)


def _func(body: str) -> str:
	return (
		'"func.func"() ({\n'
		'^bb0(%arg0: i32):\n'
		+ body
		+ '}) {function_type = (i32) -> i32, sym_name = "f"} : () -> ()\n'
	)


def _run(ctx, text: str, pipeline):
	module = Module.parse(ctx, text)
	pm = PassManager(ctx)
	for p in pipeline:
		pm.add_pass(p)
	diags = pm.run(module)
	pm.destroy()
	return module, diags


def _body_ops(module):
	func = module.body.operations[0]
	return [op.name for op in func.regions[0].blocks[0].operations]


class Toggle(RewritePattern):
	"""Always changes something, so the driver can never settle."""

	root = "arith.addi"

	def match_and_rewrite(self, op, rewriter) -> bool:
		attrs = op.attributes
		if "flag" in attrs:
			del attrs["flag"]
		else:
			attrs["flag"] = UnitAttr.get(op.context)
		rewriter.modify_in_place(op)
		return True


def test_canonicalize_identities(ctx) -> None:
	module, diags = _run(ctx, _func(
		'  %0 = "arith.constant"() {value = 0 : i32} : () -> i32\n'
		'  %1 = "arith.addi"(%arg0, %0) : (i32, i32) -> i32\n'
		'  %2 = "arith.addi"(%0, %1) : (i32, i32) -> i32\n'
		'  "func.return"(%2) : (i32) -> ()\n'
	), ["canonicalize"])
	assert diags == []
	assert module.to_text() == (
		'"builtin.module"() ({\n'
		'^bb0:\n'
		'  "func.func"() ({\n'
		'  ^bb0(%arg0: i32):\n'
		'    "func.return"(%arg0) : (i32) -> ()\n'
		'  }) {function_type = (i32) -> i32, sym_name = "f"} : () -> ()\n'
		'}) : () -> ()\n'
	)
	module.destroy()


def test_canonicalize_keeps_non_commutative_order(ctx) -> None:
	module, _ = _run(ctx, _func(
		'  %0 = "arith.constant"() {value = 0 : i32} : () -> i32\n'
		'  %1 = "arith.subi"(%0, %arg0) : (i32, i32) -> i32\n'
		'  "func.return"(%1) : (i32) -> ()\n'
	), ["canonicalize"])
	assert _body_ops(module) == ["arith.constant", "arith.subi", "func.return"]
	module.destroy()


def test_declarative_replacement(ctx) -> None:
	double = Pattern(
		match=OpMatch("arith.muli", operands=(Capture("x"), ConstantInt(2))),
		replace=ReplaceWithOp("arith.addi", operands=("x", "x")),
		name="mul2-to-add",
	)
	module, _ = _run(ctx, _func(
		'  %0 = "arith.constant"() {value = 2 : i32} : () -> i32\n'
		'  %1 = "arith.muli"(%0, %arg0) : (i32, i32) -> i32\n'
		'  "func.return"(%1) : (i32) -> ()\n'
	), [CustomPass("double", [double])])
	func = module.body.operations[0]
	add, ret = func.regions[0].blocks[0].operations
	arg = func.regions[0].blocks[0].arguments[0]
	assert add.name == "arith.addi"
	assert add.operands == [arg, arg]
	assert ret.operands == [add.result]
	module.destroy()


def test_repeated_capture_must_bind_one_value(ctx) -> None:
	module = Module.parse(ctx, _func(
		'  %0 = "arith.subi"(%arg0, %arg0) : (i32, i32) -> i32\n'
		'  %1 = "arith.subi"(%0, %arg0) : (i32, i32) -> i32\n'
		'  "func.return"(%1) : (i32) -> ()\n'
	))
	same = OpMatch("arith.subi", operands=(Capture("x"), Capture("x")))
	first, second, _ = module.body.operations[0].regions[0].blocks[0].operations
	assert same.match(first, {})
	assert not same.match(second, {})
	module.destroy()


def test_attribute_matching(ctx) -> None:
	module = Module.parse(ctx, _func(
		'  %0 = "arith.cmpi"(%arg0, %arg0) {predicate = "slt"} : (i32, i32) -> i1\n'
		'  "func.return"(%arg0) : (i32) -> ()\n'
	))
	cmp = module.body.operations[0].regions[0].blocks[0].operations[0]
	assert OpMatch("arith.cmpi", attributes={"predicate": "slt"}).match(cmp, {})
	assert not OpMatch("arith.cmpi", attributes={"predicate": "eq"}).match(cmp, {})
	assert not OpMatch("arith.cmpi", attributes={"missing": 1}).match(cmp, {})
	module.destroy()


def test_cse(ctx) -> None:
	module, _ = _run(ctx, _func(
		'  %0 = "arith.addi"(%arg0, %arg0) : (i32, i32) -> i32\n'
		'  %1 = "arith.addi"(%arg0, %arg0) : (i32, i32) -> i32\n'
		'  %2 = "arith.constant"() {value = 3 : i32} : () -> i32\n'
		'  %3 = "arith.constant"() {value = 3 : i32} : () -> i32\n'
		'  %4 = "arith.muli"(%0, %1) : (i32, i32) -> i32\n'
		'  %5 = "arith.muli"(%4, %2) : (i32, i32) -> i32\n'
		'  %6 = "arith.muli"(%5, %3) : (i32, i32) -> i32\n'
		'  "func.return"(%6) : (i32) -> ()\n'
	), ["cse"])
	ops = list(module.body.operations[0].regions[0].blocks[0].operations)
	assert [op.name for op in ops] == [
		"arith.addi", "arith.constant", "arith.muli", "arith.muli", "arith.muli", "func.return",
	]
	add, const, square, times3, again = ops[:5]
	assert square.operands == [add.result, add.result]
	assert again.operands == [times3.result, const.result]
	module.destroy()


def test_cse_does_not_merge_different_attributes(ctx) -> None:
	module, _ = _run(ctx, _func(
		'  %0 = "arith.constant"() {value = 3 : i32} : () -> i32\n'
		'  %1 = "arith.constant"() {value = 4 : i32} : () -> i32\n'
		'  %2 = "arith.addi"(%0, %1) : (i32, i32) -> i32\n'
		'  "func.return"(%2) : (i32) -> ()\n'
	), ["cse"])
	assert _body_ops(module) == ["arith.constant", "arith.constant", "arith.addi", "func.return"]
	module.destroy()


def test_dce(ctx) -> None:
	module, _ = _run(ctx, _func(
		'  %0 = "arith.muli"(%arg0, %arg0) : (i32, i32) -> i32\n'
		'  %1 = "arith.addi"(%0, %arg0) : (i32, i32) -> i32\n'
		'  "func.return"(%arg0) : (i32) -> ()\n'
		'^bb1:\n'
		'  %2 = "arith.constant"() {value = 1 : i32} : () -> i32\n'
		'  "func.return"(%2) : (i32) -> ()\n'
	), ["dce"])
	func = module.body.operations[0]
	assert func.regions[0].num_blocks == 1
	assert _body_ops(module) == ["func.return"]
	module.destroy()


def test_strip_debuginfo(ctx) -> None:
	text = (
		'"func.func"() ({\n'
		'^bb0(%arg0: i32 loc("a.ir":1:2)):\n'
		'  "func.return"(%arg0) : (i32) -> () loc("a.ir":2:3)\n'
		'}) {function_type = (i32) -> i32, sym_name = "f"} : () -> () loc("f")\n'
	)
	module, _ = _run(ctx, text, ["strip-debuginfo"])
	printed = module.to_text(with_locations=True)
	assert 'loc("' not in printed
	assert all(op.location.is_unknown for op in module.walk())
	module.destroy()


def test_non_convergence_warns(ctx, add_module) -> None:
	pm = PassManager(ctx)
	pm.add_pass(CustomPass("toggle", [Toggle()], max_iterations=3))
	diags = pm.run(add_module)
	assert [(d.severity, d.message) for d in diags] == [
		(Severity.WARNING, "greedy rewrite did not converge within 3 iteration(s)"),
	]
	assert diags[0].pass_name == "toggle"
	pm.destroy()


def test_non_convergence_strict(ctx, add_module) -> None:
	pm = PassManager(ctx)
	pm.add_pass(CustomPass("toggle", [Toggle()], max_iterations=2, strict=True))
	with pytest.raises(PassFailed) as err:
		pm.run(add_module)
	assert err.value.pass_name == "toggle"
	assert "2 iteration(s)" in str(err.value)
	pm.destroy()


def test_iteration_cap_comes_from_the_context(make_add_module) -> None:
	ctx = Context(ContextConfig(max_rewrite_iterations=4))
	module = make_add_module(ctx)
	diags = DiagnosticCollector()
	assert not apply_patterns_greedily(module, [Toggle()], diags)
	assert diags.diagnostics[0].message == "greedy rewrite did not converge within 4 iteration(s)"
	assert apply_patterns_greedily(module, [], diags, GreedyRewriteConfig(max_iterations=1))
	module.destroy()
	ctx.destroy()


def test_canonicalize_options(ctx, add_module) -> None:
	pm = PassManager(ctx)
	pm.add_pass("canonicalize", max_iterations=1, strict=True)
	assert pm.run(add_module) == []
	pm.destroy()
