# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
JIT execution of modules lowered to the llvm dialect.

The engine borrows the module: it keeps a borrowed ref to the module op and
re-checks it on every call, so invoking after the module was destroyed
raises InvalidHandle. The module is verified before translation, so malformed
llvm-dialect IR fails with VerificationFailed. The compiled code itself does
not depend on the IR after construction.
"""

from __future__ import annotations

import ctypes
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List

from llvmlite import binding as llvm  # type: ignore
from llvmlite import ir  # type: ignore

from irkit.core.errors import JitRuntimeError, NotLowered
from irkit.execution.translate import translate_module
from irkit.ir.types import FloatType, FunctionType, IntegerType, Type
from irkit.ir.verifier import verify
from irkit.ir.walk import walk

if TYPE_CHECKING:
	from irkit.ir.module import Module

logger = logging.getLogger(__name__)

_INIT_LOCK = threading.Lock()
_initialized = False


def _initialize_llvm() -> None:
	global _initialized
	with _INIT_LOCK:
		if _initialized:
			return
		llvm.initialize_native_target()
		llvm.initialize_native_asmprinter()
		_initialized = True


def _ctypes_type(t: Type) -> Any:
	if isinstance(t, IntegerType):
		if t.width == 1:
			return ctypes.c_bool
		for width, ctype in ((8, ctypes.c_int8), (16, ctypes.c_int16), (32, ctypes.c_int32), (64, ctypes.c_int64)):
			if t.width == width:
				return ctype
	if isinstance(t, FloatType):
		if t.name == "f32":
			return ctypes.c_float
		if t.name == "f64":
			return ctypes.c_double
	raise JitRuntimeError(f"type {t} cannot be passed through the JIT boundary")


def check_lowered(module: "Module") -> None:
	offending = [
		op.name for op in walk(module)
		if op.name != "builtin.module" and op.dialect_name != "llvm"
	]
	if offending:
		raise NotLowered(offending)


class ExecutionEngine:
	def __init__(self, module: "Module", opt_level: int = 2) -> None:
		if not 0 <= opt_level <= 3:
			raise ValueError(f"opt_level must be between 0 and 3, got {opt_level}")
		check_lowered(module)
		verify(module)
		self._module = module.operation
		self.opt_level = opt_level
		translator = translate_module(module)
		self._signatures: Dict[str, FunctionType] = dict(translator.signatures)
		self._cfuncs: Dict[str, Any] = {}
		self.llvm_ir = str(translator.ir_module)
		self._engine = self._compile(translator.ir_module)

	def _compile(self, ir_module: ir.Module):
		_initialize_llvm()
		target = llvm.Target.from_default_triple()
		tm = target.create_target_machine(opt=self.opt_level)
		try:
			llmod = llvm.parse_assembly(self.llvm_ir)
			llmod.verify()
		except RuntimeError as exc:
			raise JitRuntimeError(f"LLVM rejected the translated module: {exc}") from exc
		if self.opt_level:
			pto = llvm.create_pipeline_tuning_options(speed_level=self.opt_level)
			pb = llvm.create_pass_builder(tm, pto)
			pb.getModulePassManager().run(llmod, pb)
		engine = llvm.create_mcjit_compiler(llmod, tm)
		engine.finalize_object()
		engine.run_static_constructors()
		logger.debug("jit-compiled %d function(s) at -O%d", len(self._signatures), self.opt_level)
		# Keep the module alive as long as the engine.
		self._llmod = llmod
		return engine

	@property
	def symbols(self) -> List[str]:
		return sorted(self._signatures)

	def _function(self, symbol: str):
		cfunc = self._cfuncs.get(symbol)
		if cfunc is not None:
			return cfunc
		sig = self._signatures.get(symbol)
		if sig is None:
			raise JitRuntimeError(f"no function named '{symbol}' in the compiled module")
		address = self._engine.get_function_address(symbol)
		if not address:
			raise JitRuntimeError(f"function '{symbol}' has no compiled body")
		restype = _ctypes_type(sig.results[0]) if sig.results else None
		cfunc = ctypes.CFUNCTYPE(restype, *(_ctypes_type(t) for t in sig.inputs))(address)
		self._cfuncs[symbol] = cfunc
		return cfunc

	def invoke(self, symbol: str, *args: Any) -> Any:
		"""Call a compiled function with Python ints, floats or bools."""
		self._module._resolve()
		sig = self._signatures.get(symbol)
		if sig is None:
			raise JitRuntimeError(f"no function named '{symbol}' in the compiled module")
		if len(args) != len(sig.inputs):
			raise JitRuntimeError(f"'{symbol}' takes {len(sig.inputs)} argument(s), got {len(args)}")
		for value, t in zip(args, sig.inputs):
			if isinstance(t, FloatType) and not isinstance(value, (int, float)):
				raise JitRuntimeError(f"expected a number for {t}, got {type(value).__name__}")
			if isinstance(t, IntegerType) and not isinstance(value, int):
				raise JitRuntimeError(f"expected an int for {t}, got {type(value).__name__}")
		return self._function(symbol)(*args)

	def __repr__(self) -> str:
		return f"<ExecutionEngine -O{self.opt_level} symbols={self.symbols}>"


__all__ = ["ExecutionEngine", "check_lowered"]
