# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parse failures carry a reason and a position, and leave nothing behind.

Cases:
  - syntax errors report line and column (and the source name)
  - undefined values and blocks, redefinitions, duplicate attributes
  - operand types must match the op's signature
  - a failed parse releases every partially built object
  - malformed string escapes and out-of-range integers are positioned errors
"""

from __future__ import annotations

import pytest

from irkit.core.errors import ParseError
from irkit.ir import Module

HEADER = '"func.func"() ({\n^bb0(%arg0: i32, %arg1: i32):\n'
FOOTER = '}) {function_type = (i32, i32) -> i32, sym_name = "f"} : () -> ()\n'


def _parse_error(ctx, body: str, source=None) -> ParseError:
	with pytest.raises(ParseError) as err:
		Module.parse(ctx, HEADER + body + FOOTER, source=source)
	return err.value


def _ir_counts(ctx) -> dict:
	return {k: v for k, v in ctx.stats().items() if k not in ("type", "attribute")}


def test_syntax_error_position(ctx) -> None:
	err = _parse_error(ctx, '  %0 = "arith.addi"(%arg0 %arg1) : (i32, i32) -> i32\n', source="in.ir")
	assert (err.line, err.column) == (3, 27)
	assert err.source == "in.ir"
	assert str(err).startswith("in.ir:3:27: ")


def test_unexpected_end(ctx) -> None:
	with pytest.raises(ParseError, match="end of input"):
		Module.parse(ctx, HEADER)


def test_undefined_value(ctx) -> None:
	err = _parse_error(ctx, '  "func.return"(%nope) : (i32) -> ()\n')
	assert err.reason == "use of undefined value %nope"
	assert (err.line, err.column) == (3, 17)


def test_undefined_block(ctx) -> None:
	err = _parse_error(ctx, '  "cf.br"() [^missing] : () -> ()\n')
	assert "undefined block ^missing" in err.reason
	assert err.line == 3


def test_value_redefinition(ctx) -> None:
	err = _parse_error(
		ctx,
		'  %0 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32\n'
		'  %0 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32\n'
		'  "func.return"(%0) : (i32) -> ()\n',
	)
	assert err.reason == "redefinition of value %0"
	assert err.line == 4


def test_block_redefinition(ctx) -> None:
	err = _parse_error(ctx, '  "func.return"(%arg0) : (i32) -> ()\n^bb0:\n  "func.return"(%arg0) : (i32) -> ()\n')
	assert err.reason == "redefinition of block ^bb0"


def test_duplicate_attribute(ctx) -> None:
	with pytest.raises(ParseError, match="duplicate attribute 'a'"):
		Module.parse(ctx, '"test.op"() {a = 1, a = 2} : () -> ()\n')


def test_operand_type_mismatch(ctx) -> None:
	err = _parse_error(ctx, '  %0 = "arith.extsi"(%arg0) : (i64) -> i64\n  "func.return"(%arg0) : (i32) -> ()\n')
	assert err.reason == "%arg0 has type i32 but 'arith.extsi' expects i64"


def test_signature_arity(ctx) -> None:
	err = _parse_error(ctx, '  %0 = "arith.addi"(%arg0, %arg1) : (i32) -> i32\n')
	assert "2 operand(s)" in err.reason
	err = _parse_error(ctx, '  %0, %1 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32\n')
	assert "2 result name(s)" in err.reason


def test_bad_operation_name(ctx) -> None:
	with pytest.raises(ParseError, match="must be 'dialect.op'"):
		Module.parse(ctx, '"nodot"() : () -> ()\n')


def test_failed_parse_releases_everything(ctx) -> None:
	before = _ir_counts(ctx)
	_parse_error(
		ctx,
		'  %0 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32\n'
		'  "func.return"(%missing) : (i32) -> ()\n',
	)
	assert _ir_counts(ctx) == before
	assert ctx.live_owners() == {}


def test_bad_type_and_attribute_text(ctx) -> None:
	with pytest.raises(ParseError):
		ctx.parse_type("i32 i32")
	with pytest.raises(ParseError):
		ctx.parse_type("vector<f32>")
	with pytest.raises(ParseError):
		ctx.parse_attribute("{a = 1, a = 2}")


def test_bad_string_escape(ctx) -> None:
	before = _ir_counts(ctx)
	err = _parse_error(
		ctx,
		'  %0 = "arith.addi"(%arg0, %arg1) : (i32, i32) -> i32\n'
		'  "test\\q.op"() : () -> ()\n',
	)
	assert err.reason.startswith('invalid string literal "test\\q.op"')
	assert (err.line, err.column) == (4, 3)
	assert _ir_counts(ctx) == before
	with pytest.raises(ParseError, match="invalid string literal"):
		Module.parse(ctx, '"test.op"() {"k\\q" = 1} : () -> ()\n')
	with pytest.raises(ParseError, match="invalid string literal"):
		ctx.parse_attribute('"bad\\q"')
	assert ctx.live_owners() == {}


def test_integer_out_of_range(ctx) -> None:
	with pytest.raises(ParseError, match="does not fit"):
		ctx.parse_attribute("300 : i8")
	with pytest.raises(ParseError, match="does not fit"):
		Module.parse(ctx, '"test.op"() {v = -129 : i8} : () -> ()\n')
