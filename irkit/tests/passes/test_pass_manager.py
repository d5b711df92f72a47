# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Pass manager pipelines.

Cases:
  - pipelines parse from text and print back
  - unknown pass names are rejected up front
  - the first failing pass stops the run; later passes never run
  - verify_each turns a pass that breaks the IR into PassFailed
  - IRError raised inside a pass becomes a diagnostic of that pass
"""

from __future__ import annotations

import pytest

from irkit.core.errors import InvalidHandle, PassFailed
from irkit.core.diagnostics import Severity
from irkit.ir import Module
from irkit.passes import CustomPass, NativePass, PassManager, RewritePattern


class Complain(RewritePattern):
	root = "arith.addi"

	def match_and_rewrite(self, op, rewriter) -> bool:
		rewriter.emit_error(op, "addi is not allowed here")
		return False


class Record(RewritePattern):
	def __init__(self, seen) -> None:
		self.seen = seen

	def match_and_rewrite(self, op, rewriter) -> bool:
		self.seen.append(op.name)
		return False


class DropReturn(RewritePattern):
	root = "func.return"

	def match_and_rewrite(self, op, rewriter) -> bool:
		rewriter.erase_op(op)
		return True


class EraseInUse(RewritePattern):
	root = "arith.addi"

	def match_and_rewrite(self, op, rewriter) -> bool:
		op.erase()
		return True


def test_pipeline_text(ctx) -> None:
	pm = PassManager.parse(ctx, "canonicalize, cse,dce")
	assert str(pm) == "canonicalize,cse,dce"
	pm.add_pass("strip-debuginfo").add_pass(CustomPass("mine", [Complain()]))
	assert [p.name for p in pm.passes] == ["canonicalize", "cse", "dce", "strip-debuginfo", "mine"]
	assert isinstance(pm.passes[0], NativePass)
	pm.destroy()


def test_unknown_pass(ctx) -> None:
	pm = PassManager(ctx)
	with pytest.raises(ValueError, match="unknown pass 'nope'"):
		pm.add_pass("nope")
	with pytest.raises(ValueError):
		pm.add_pipeline("cse,nope")
	# Nothing from the rejected pipeline was added.
	assert pm.passes == []
	with pytest.raises(ValueError, match="malformed"):
		pm.add_pipeline("cse,,dce")
	with pytest.raises(TypeError):
		pm.add_pass(object())
	pm.destroy()


def test_custom_pass_validation() -> None:
	with pytest.raises(ValueError):
		CustomPass("")
	with pytest.raises(TypeError):
		CustomPass("bad", [object()])
	with pytest.raises(ValueError):
		CustomPass("cap", [], max_iterations=0)


def test_empty_pipeline_is_a_no_op(ctx, add_module, add_text) -> None:
	pm = PassManager(ctx)
	assert pm.run(add_module) == []
	assert add_module.to_text() == add_text
	pm.destroy()


def test_fail_fast(ctx, add_module) -> None:
	seen = []
	pm = PassManager(ctx)
	pm.add_pass("canonicalize")
	pm.add_pass(CustomPass("complain", [Complain()]))
	pm.add_pass(CustomPass("record", [Record(seen)]))
	handled = []
	with pytest.raises(PassFailed) as err:
		pm.run(add_module, handled.append)
	assert err.value.pass_name == "complain"
	assert err.value.index == 1
	errors = [d for d in err.value.diagnostics if d.is_error]
	assert [(d.op_name, d.pass_name) for d in errors] == [("arith.addi", "complain")]
	assert [d.message for d in handled] == ["addi is not allowed here"]
	assert seen == []
	pm.destroy()


def test_verify_each_catches_broken_ir(ctx, add_module) -> None:
	pm = PassManager(ctx)
	pm.add_pass("cse")
	pm.add_pass(CustomPass("break-it", [DropReturn()]))
	with pytest.raises(PassFailed) as err:
		pm.run(add_module)
	assert err.value.pass_name == "break-it"
	assert err.value.index == 1
	assert all(d.pass_name == "break-it" for d in err.value.diagnostics if d.is_error)
	pm.destroy()


def test_verify_each_disabled(ctx, add_module) -> None:
	pm = PassManager(ctx, verify_each=False)
	pm.add_pass(CustomPass("break-it", [DropReturn()]))
	assert pm.run(add_module) == []
	assert [op.name for op in add_module.walk()] == ["builtin.module", "func.func"]
	pm.destroy()


def test_ir_error_inside_a_pass(ctx, add_module) -> None:
	pm = PassManager(ctx)
	pm.add_pass(CustomPass("eager", [EraseInUse()]))
	with pytest.raises(PassFailed) as err:
		pm.run(add_module)
	assert "OperationInUse" in err.value.diagnostics[-1].message
	assert err.value.diagnostics[-1].severity is Severity.ERROR
	pm.destroy()


def test_run_rejects_foreign_modules(ctx, add_module) -> None:
	pm = PassManager(ctx)
	with pytest.raises(TypeError):
		pm.run(add_module.operation)
	add_module.destroy()
	with pytest.raises(InvalidHandle):
		pm.run(add_module)
	pm.destroy()
	with pytest.raises(InvalidHandle):
		pm.passes


def test_pass_manager_is_an_owner(ctx) -> None:
	pm = PassManager(ctx)
	assert ctx.live_owners() == {"pass_manager": 1}
	pm.destroy()
	assert ctx.live_owners() == {}
