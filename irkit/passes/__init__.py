# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Passes, rewrite patterns and the pass manager."""

from irkit.passes.base import NATIVE_PASSES, CustomPass, NativePass, Pass
from irkit.passes.driver import GreedyRewriteConfig, apply_patterns_greedily, is_trivially_dead
from irkit.passes.manager import PassManager
from irkit.passes.patterns import (
	Capture,
	ConstantInt,
	OpMatch,
	Pattern,
	ReplaceWithCapture,
	ReplaceWithOp,
	RewritePattern,
)
from irkit.passes.rewriter import PatternRewriter

__all__ = [
	"Capture",
	"ConstantInt",
	"CustomPass",
	"GreedyRewriteConfig",
	"NATIVE_PASSES",
	"NativePass",
	"OpMatch",
	"Pass",
	"PassManager",
	"Pattern",
	"PatternRewriter",
	"ReplaceWithCapture",
	"ReplaceWithOp",
	"RewritePattern",
	"apply_patterns_greedily",
	"is_trivially_dead",
]
