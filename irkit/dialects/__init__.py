# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dialect registration.

A dialect is a collaborator-supplied description of operation *shapes*: how
many regions, operands, results and successors an op has, which attributes it
requires, which traits it carries, and optionally an opaque verifier hook and
canonicalization patterns. The core never interprets what an op computes.

`available_dialects()` lists dialects that can be loaded by name into a
context; the dialects shipped here (builtin, func, arith, cf, llvm) are
registered at import time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

if TYPE_CHECKING:
	from irkit.core.diagnostics import DiagnosticCollector
	from irkit.ir.operation import OperationRef

# Trait names.
PURE = "Pure"
TERMINATOR = "Terminator"
ISOLATED_FROM_ABOVE = "IsolatedFromAbove"
COMMUTATIVE = "Commutative"
CONSTANT_LIKE = "ConstantLike"
SYMBOL = "Symbol"
NO_TERMINATOR = "NoTerminator"

OpVerifier = Callable[["OperationRef", "DiagnosticCollector"], None]


@dataclass(frozen=True)
class OpDefinition:
	"""
	Shape description for one operation name.

	`None` counts mean "variadic, not checked".
	"""

	name: str
	num_regions: Optional[int] = 0
	num_operands: Optional[int] = None
	num_results: Optional[int] = None
	num_successors: Optional[int] = 0
	required_attributes: Tuple[str, ...] = ()
	traits: frozenset = frozenset()
	verifier: Optional[OpVerifier] = None
	canonical_patterns: Tuple[Any, ...] = ()

	def __post_init__(self) -> None:
		if "." not in self.name:
			raise ValueError(f"operation name '{self.name}' must be 'dialect.op'")
		object.__setattr__(self, "traits", frozenset(self.traits))
		object.__setattr__(self, "required_attributes", tuple(self.required_attributes))
		object.__setattr__(self, "canonical_patterns", tuple(self.canonical_patterns))

	@property
	def dialect(self) -> str:
		return self.name.split(".", 1)[0]

	def has_trait(self, trait: str) -> bool:
		return trait in self.traits


@dataclass(frozen=True)
class Dialect:
	name: str
	ops: Mapping[str, OpDefinition] = field(default_factory=dict)
	description: str = ""

	def __post_init__(self) -> None:
		for op_name, definition in self.ops.items():
			if definition.dialect != self.name or op_name != definition.name:
				raise ValueError(f"op '{op_name}' does not belong to dialect '{self.name}'")

	@classmethod
	def from_ops(cls, name: str, ops: Iterable[OpDefinition], description: str = "") -> "Dialect":
		return cls(name=name, ops={op.name: op for op in ops}, description=description)

	def lookup(self, op_name: str) -> Optional[OpDefinition]:
		return self.ops.get(op_name)

	def canonical_patterns(self) -> list:
		out: list = []
		for definition in self.ops.values():
			out.extend(definition.canonical_patterns)
		return out


_AVAILABLE: Dict[str, Callable[[], Dialect]] = {}


def register_available_dialect(name: str, factory: Callable[[], Dialect]) -> None:
	"""Make a dialect loadable by name (`Context.load_dialect(name)`)."""
	_AVAILABLE[name] = factory


def available_dialects() -> list[str]:
	_ensure_builtin_dialects()
	return sorted(_AVAILABLE)


def get_available_dialect(name: str) -> Optional[Dialect]:
	_ensure_builtin_dialects()
	factory = _AVAILABLE.get(name)
	return factory() if factory is not None else None


BUILTIN_DIALECT_NAMES = ("builtin", "func", "arith", "cf", "llvm")


def _ensure_builtin_dialects() -> None:
	# Imported lazily: the dialect modules reference irkit.ir for verifiers.
	from irkit.dialects import arith, builtin, cf, func, llvm  # noqa: F401


__all__ = [
	"BUILTIN_DIALECT_NAMES",
	"COMMUTATIVE",
	"CONSTANT_LIKE",
	"Dialect",
	"ISOLATED_FROM_ABOVE",
	"NO_TERMINATOR",
	"OpDefinition",
	"OpVerifier",
	"PURE",
	"SYMBOL",
	"TERMINATOR",
	"available_dialects",
	"get_available_dialect",
	"register_available_dialect",
]
