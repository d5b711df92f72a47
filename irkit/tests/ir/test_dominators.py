# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Block dominator analysis.

Cases:
  - straight line: entry -> b1 -> b2
  - diamond: entry -> then/else -> join
  - simple loop shape: entry -> header -> body -> header/exit
  - unreachable block is dominated only by itself
"""

from __future__ import annotations

from irkit.ir import Module
from irkit.ir.dom import DominatorAnalysis


def _function(blocks: str) -> str:
	return (
		'"func.func"() ({\n'
		+ blocks
		+ '}) {function_type = (i1) -> (), sym_name = "f"} : () -> ()\n'
	)


def _analyze(ctx, blocks: str):
	module = Module.parse(ctx, _function(blocks))
	module.verify()
	region = module.body.operations[0]._resolve().regions[0]
	return module, DominatorAnalysis().compute(region)


def test_dominators_straight_line(ctx):
	module, info = _analyze(
		ctx,
		'^entry(%c: i1):\n'
		'  "cf.br"() [^b1] : () -> ()\n'
		'^b1:\n'
		'  "cf.br"() [^b2] : () -> ()\n'
		'^b2:\n'
		'  "func.return"() : () -> ()\n',
	)
	assert info.idom == {0: None, 1: 0, 2: 1}
	assert info.dom[2] == {0, 1, 2}
	module.destroy()


def test_dominators_diamond(ctx):
	module, info = _analyze(
		ctx,
		'^entry(%c: i1):\n'
		'  "cf.cond_br"(%c) [^then, ^else] : (i1) -> ()\n'
		'^then:\n'
		'  "cf.br"() [^join] : () -> ()\n'
		'^else:\n'
		'  "cf.br"() [^join] : () -> ()\n'
		'^join:\n'
		'  "func.return"() : () -> ()\n',
	)
	assert info.idom[0] is None
	assert info.idom[1] == 0
	assert info.idom[2] == 0
	assert info.idom[3] == 0
	assert not info.dominates(1, 3)
	assert info.dominates(0, 3)
	module.destroy()


def test_dominators_loop_shape(ctx):
	module, info = _analyze(
		ctx,
		'^entry(%c: i1):\n'
		'  "cf.br"() [^loop_header] : () -> ()\n'
		'^loop_header:\n'
		'  "cf.br"() [^loop_body] : () -> ()\n'
		'^loop_body:\n'
		'  "cf.cond_br"(%c) [^loop_header, ^loop_exit] : (i1) -> ()\n'
		'^loop_exit:\n'
		'  "func.return"() : () -> ()\n',
	)
	assert info.idom[0] is None
	assert info.idom[1] == 0
	assert info.idom[2] == 1
	# loop_exit is dominated by loop_body in this simple shape
	assert info.idom[3] == 2
	module.destroy()


def test_unreachable_block(ctx):
	module, info = _analyze(
		ctx,
		'^entry(%c: i1):\n'
		'  "func.return"() : () -> ()\n'
		'^dead:\n'
		'  "func.return"() : () -> ()\n',
	)
	assert info.dom[1] == {1}
	assert info.idom[1] is None
	module.destroy()
