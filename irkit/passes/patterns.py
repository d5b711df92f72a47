# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Rewrite patterns.

Two flavours feed the greedy driver:

  * declarative `Pattern(match=OpMatch(...), replace=...)` values, which
    dialects can attach to op definitions as canonicalizations;
  * imperative `RewritePattern` subclasses overriding `match_and_rewrite`.

`as_rewrite_pattern` turns either into a `RewritePattern`.

Operand matchers:
  None              any value
  Capture("x")      bind the value to `x` (a second `x` must be the same value)
  ConstantInt(n)    a value defined by a constant-like op whose `value` is n
  OpMatch(...)      a value defined by an op matching the nested matcher
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from irkit.dialects import COMMUTATIVE, CONSTANT_LIKE
from irkit.ir.attributes import IntegerAttr, attribute_value
from irkit.ir.value import OpResult, Value

if TYPE_CHECKING:
	from irkit.ir.operation import OperationRef
	from irkit.passes.rewriter import PatternRewriter

Captures = Dict[str, Value]


@dataclass(frozen=True)
class Capture:
	name: str


@dataclass(frozen=True)
class ConstantInt:
	value: int


@dataclass(frozen=True)
class OpMatch:
	"""
	Matches an op by name, operands and attribute values.

	`operands=None` accepts any operand list; a tuple must have one matcher
	per operand. `attributes` maps names to the Python value the attribute
	must hold (`attribute_value`).
	"""

	name: str
	operands: Optional[Tuple[Any, ...]] = None
	attributes: Mapping[str, Any] = field(default_factory=dict)

	def match(self, op: "OperationRef", captures: Captures, *, allow_swap: bool = True) -> bool:
		if op.name != self.name:
			return False
		attrs = op.attributes
		for key, expected in self.attributes.items():
			attr = attrs.get(key)
			if attr is None or attribute_value(attr) != expected:
				return False
		if self.operands is None:
			return True
		operands = op.operands
		if len(operands) != len(self.operands):
			return False
		orders = [operands]
		if allow_swap and len(operands) == 2 and op.has_trait(COMMUTATIVE):
			orders.append([operands[1], operands[0]])
		for candidate in orders:
			trial = dict(captures)
			if all(_match_operand(m, v, trial) for m, v in zip(self.operands, candidate)):
				captures.clear()
				captures.update(trial)
				return True
		return False


def _match_operand(matcher: Any, value: Value, captures: Captures) -> bool:
	if matcher is None:
		return True
	if isinstance(matcher, Capture):
		bound = captures.get(matcher.name)
		if bound is not None:
			return bound == value
		captures[matcher.name] = value
		return True
	if not isinstance(value, OpResult):
		return False
	owner = value.owner
	if isinstance(matcher, ConstantInt):
		if not owner.has_trait(CONSTANT_LIKE):
			return False
		attr = owner.attributes.get("value")
		return isinstance(attr, IntegerAttr) and attr.value == matcher.value
	if isinstance(matcher, OpMatch):
		return matcher.match(owner, captures)
	raise TypeError(f"unsupported operand matcher {matcher!r}")


@dataclass(frozen=True)
class ReplaceWithCapture:
	"""Replace the matched op's single result with a captured value."""

	name: str


@dataclass(frozen=True)
class ReplaceWithOp:
	"""
	Replace the matched op with a new op of the same result types.

	Operands are capture names; attributes of the matched op are copied when
	`copy_attributes` is set.
	"""

	name: str
	operands: Tuple[str, ...] = ()
	copy_attributes: bool = False


Replacement = Union[ReplaceWithCapture, ReplaceWithOp]


@dataclass(frozen=True)
class Pattern:
	match: OpMatch
	replace: Replacement
	benefit: int = 1
	name: str = ""


class RewritePattern:
	"""
	Imperative pattern.

	`root` restricts the op names the driver offers (None offers every op).
	`match_and_rewrite` returns True when it changed the IR, and must make all
	changes through the rewriter.
	"""

	root: Optional[str] = None
	benefit: int = 1

	@property
	def name(self) -> str:
		return type(self).__name__

	def match_and_rewrite(self, op: "OperationRef", rewriter: "PatternRewriter") -> bool:
		raise NotImplementedError


class DeclarativePattern(RewritePattern):
	def __init__(self, pattern: Pattern) -> None:
		self.pattern = pattern
		self.root = pattern.match.name
		self.benefit = pattern.benefit

	@property
	def name(self) -> str:
		return self.pattern.name or self.pattern.match.name

	def match_and_rewrite(self, op: "OperationRef", rewriter: "PatternRewriter") -> bool:
		captures: Captures = {}
		if not self.pattern.match.match(op, captures):
			return False
		replace = self.pattern.replace
		if isinstance(replace, ReplaceWithCapture):
			value = captures.get(replace.name)
			if value is None or op.num_results != 1 or value.type != op.result.type:
				return False
			rewriter.replace_op(op, [value])
			return True
		if isinstance(replace, ReplaceWithOp):
			missing = [n for n in replace.operands if n not in captures]
			if missing:
				raise ValueError(f"pattern '{self.name}' replaces with unbound capture(s): {', '.join(missing)}")
			attributes = dict(op.attributes) if replace.copy_attributes else None
			rewriter.replace_op_with_new(
				op,
				replace.name,
				operands=[captures[n] for n in replace.operands],
				attributes=attributes,
			)
			return True
		raise TypeError(f"unsupported replacement {replace!r}")

	def __repr__(self) -> str:
		return f"<DeclarativePattern {self.name}>"


def as_rewrite_pattern(pattern: Union[Pattern, RewritePattern]) -> RewritePattern:
	if isinstance(pattern, RewritePattern):
		return pattern
	if isinstance(pattern, Pattern):
		return DeclarativePattern(pattern)
	raise TypeError(f"expected a Pattern or RewritePattern, got {type(pattern).__name__}")


def sort_patterns(patterns: Sequence[Union[Pattern, RewritePattern]]) -> list:
	"""Highest benefit first; ties keep their given order."""
	converted = [as_rewrite_pattern(p) for p in patterns]
	return sorted(converted, key=lambda p: -p.benefit)


__all__ = [
	"Capture",
	"ConstantInt",
	"DeclarativePattern",
	"OpMatch",
	"Pattern",
	"ReplaceWithCapture",
	"ReplaceWithOp",
	"RewritePattern",
	"as_rewrite_pattern",
	"sort_patterns",
]
