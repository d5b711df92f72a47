# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type and attribute interning.

Equal specs intern to one handle per context, unequal specs never share one,
and the canonical form survives concurrent interning on a thread-capable
context.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from irkit.core.errors import CrossContextMismatch, InvalidHandle
from irkit.ir import (
	ArrayAttr,
	Context,
	ContextConfig,
	DictAttr,
	FloatAttr,
	FloatType,
	FunctionType,
	IndexType,
	IntegerAttr,
	IntegerType,
	StringAttr,
	TensorType,
	UnitAttr,
)


def test_equal_types_share_a_handle(ctx) -> None:
	a = IntegerType.get(ctx, 32)
	b = IntegerType.get(ctx, 32)
	assert a == b
	assert a._raw == b._raw
	assert hash(a) == hash(b)


def test_unequal_types_differ(ctx) -> None:
	kinds = {
		IntegerType.get(ctx, 32),
		IntegerType.get(ctx, 64),
		IntegerType.get(ctx, 32, "s"),
		FloatType.get(ctx, "f32"),
		IndexType.get(ctx),
	}
	assert len(kinds) == 5


def test_composite_types_intern_structurally(ctx) -> None:
	i32 = IntegerType.get(ctx, 32)
	f1 = FunctionType.get(ctx, [i32, i32], [i32])
	f2 = FunctionType.get(ctx, [IntegerType.get(ctx, 32)] * 2, [i32])
	assert f1 == f2
	assert f1.inputs == [i32, i32]
	t = TensorType.get(ctx, [4, None], i32)
	assert t.shape == (4, None)
	assert not t.has_static_shape
	assert str(t) == "tensor<4x?xi32>"


def test_attribute_interning(ctx) -> None:
	i64 = IntegerType.get(ctx, 64)
	assert IntegerAttr.get(ctx, 7, i64) == IntegerAttr.get(ctx, 7, i64)
	assert IntegerAttr.get(ctx, 7, i64) != IntegerAttr.get(ctx, 8, i64)
	assert StringAttr.get(ctx, "x") == StringAttr.get(ctx, "x")
	assert UnitAttr.get(ctx) == UnitAttr.get(ctx)
	f64 = FloatType.get(ctx, "f64")
	assert FloatAttr.get(ctx, 0.0, f64) != FloatAttr.get(ctx, -0.0, f64)
	arr = ArrayAttr.get(ctx, [StringAttr.get(ctx, "a"), UnitAttr.get(ctx)])
	assert arr == ArrayAttr.get(ctx, [StringAttr.get(ctx, "a"), UnitAttr.get(ctx)])
	assert len(arr) == 2


def test_integer_attribute_must_fit_its_width(ctx) -> None:
	i8 = IntegerType.get(ctx, 8)
	assert IntegerAttr.get(ctx, 255, i8).value == 255
	assert IntegerAttr.get(ctx, -128, i8).value == -128
	with pytest.raises(ValueError, match="does not fit in 8 bits"):
		IntegerAttr.get(ctx, 300, i8)
	with pytest.raises(ValueError):
		IntegerAttr.get(ctx, -129, i8)
	with pytest.raises(ValueError):
		IntegerAttr.get(ctx, 128, IntegerType.get(ctx, 8, "s"))
	with pytest.raises(ValueError):
		IntegerAttr.get(ctx, -1, IntegerType.get(ctx, 8, "u"))
	assert IntegerAttr.get(ctx, 1 << 40, IndexType.get(ctx)).value == 1 << 40

def test_dict_attribute_ignores_entry_order(ctx) -> None:
	a = StringAttr.get(ctx, "a")
	b = StringAttr.get(ctx, "b")
	assert DictAttr.get(ctx, {"x": a, "y": b}) == DictAttr.get(ctx, {"y": b, "x": a})


def test_composite_from_another_context_is_rejected(ctx) -> None:
	other = Context()
	try:
		foreign = IntegerType.get(other, 32)
		with pytest.raises(CrossContextMismatch):
			FunctionType.get(ctx, [foreign], [])
		with pytest.raises(CrossContextMismatch):
			IntegerAttr.get(ctx, 1, foreign)
	finally:
		other.destroy()


def test_types_die_with_their_context() -> None:
	ctx = Context()
	i32 = IntegerType.get(ctx, 32)
	ctx.destroy()
	assert not i32.is_valid
	with pytest.raises(InvalidHandle):
		i32.width


def test_concurrent_interning_is_canonical() -> None:
	ctx = Context(ContextConfig(threading=True))
	try:
		widths = [1 + (i % 16) for i in range(400)]
		with ThreadPoolExecutor(max_workers=8) as pool:
			handles = list(pool.map(lambda w: IntegerType.get(ctx, w)._raw, widths))
		by_width = {}
		for w, raw in zip(widths, handles):
			assert by_width.setdefault(w, raw) == raw
		assert len(set(handles)) == 16
	finally:
		ctx.destroy()
