# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Pass descriptions.

A pass is one of two things (and nothing else):

  * `NativePass(name, options)`: a built-in transform looked up by name in
    `NATIVE_PASSES`;
  * `CustomPass(name, patterns, ...)`: a set of rewrite patterns applied by
    the greedy driver.

Both only describe work; `PassManager` runs them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Mapping, Optional, Tuple, Union

from irkit.core.diagnostics import DiagnosticCollector
from irkit.passes.driver import GreedyRewriteConfig, apply_patterns_greedily
from irkit.passes.patterns import Pattern, RewritePattern, as_rewrite_pattern
from irkit.passes.to_llvm import convert_to_llvm
from irkit.passes.transforms import canonicalize, cse, dce, strip_debuginfo

if TYPE_CHECKING:
	from irkit.ir.module import Module

PassFn = Callable[["Module", DiagnosticCollector, Mapping[str, object]], None]

NATIVE_PASSES: Dict[str, PassFn] = {
	"canonicalize": canonicalize,
	"cse": cse,
	"dce": dce,
	"convert-to-llvm": convert_to_llvm,
	"strip-debuginfo": strip_debuginfo,
}


@dataclass(frozen=True)
class NativePass:
	name: str
	options: Mapping[str, object] = field(default_factory=dict)

	def __post_init__(self) -> None:
		if self.name not in NATIVE_PASSES:
			known = ", ".join(sorted(NATIVE_PASSES))
			raise ValueError(f"unknown pass '{self.name}' (known passes: {known})")

	def run(self, module: "Module", diagnostics: DiagnosticCollector) -> None:
		NATIVE_PASSES[self.name](module, diagnostics, self.options)

	def __str__(self) -> str:
		return self.name


@dataclass(frozen=True)
class CustomPass:
	name: str
	patterns: Tuple[Union[Pattern, RewritePattern], ...] = ()
	max_iterations: Optional[int] = None
	strict: bool = False

	def __post_init__(self) -> None:
		if not self.name:
			raise ValueError("a custom pass needs a name")
		object.__setattr__(self, "patterns", tuple(self.patterns))
		for p in self.patterns:
			as_rewrite_pattern(p)
		if self.max_iterations is not None and self.max_iterations < 1:
			raise ValueError("max_iterations must be at least 1")

	def run(self, module: "Module", diagnostics: DiagnosticCollector) -> None:
		config = GreedyRewriteConfig(max_iterations=self.max_iterations, strict=self.strict)
		apply_patterns_greedily(module, self.patterns, diagnostics, config)

	def __str__(self) -> str:
		return self.name


Pass = Union[NativePass, CustomPass]

__all__ = ["CustomPass", "NATIVE_PASSES", "NativePass", "Pass"]
