# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""JIT execution of llvm-dialect modules (requires llvmlite)."""

from irkit.execution.engine import ExecutionEngine, check_lowered
from irkit.execution.translate import translate_module

__all__ = ["ExecutionEngine", "check_lowered", "translate_module"]
