# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Bytecode container.

Cases:
  - write/read rebuilds a structurally equal module, locations included
  - writing is deterministic
  - other versions raise UnsupportedVersion before any content is trusted
  - bad magic, truncation and corrupted payloads raise ParseError
  - ids and table indices must be non-negative ints; nothing leaks on failure
"""

from __future__ import annotations

import hashlib
import json
import struct

import pytest

from irkit.asm import HEADER_SIZE, MAGIC, VERSION, bytecode_version, canonical_json_bytes, read_bytecode
from irkit.core.errors import ParseError, UnsupportedVersion
from irkit.ir import Context, Module, structurally_equal

BRANCHY = '''\
"func.func"() ({
^bb0(%arg0: i1 loc("b.ir":1:1), %arg1: i64):
  "cf.cond_br"(%arg0) [^bb1, ^bb2] : (i1) -> () loc("b.ir":2:3)
^bb1:
  "cf.br"(%arg1) [^bb3] : (i64) -> ()
^bb2:
  %0 = "arith.constant"() {value = 7 : i64} : () -> i64 loc("seven")
  "cf.br"(%0) [^bb3] : (i64) -> ()
^bb3(%arg2: i64):
  "func.return"(%arg2) : (i64) -> ()
}) {function_type = (i1, i64) -> i64, sym_name = "pick"} : () -> ()
'''


def _rewrap(data: bytes, payload: bytes) -> bytes:
	"""Same header fields around a new payload, with a matching checksum."""
	header = bytearray(data[:HEADER_SIZE])
	struct.pack_into("<Q32s", header, 16, len(payload), hashlib.sha256(payload).digest())
	return bytes(header) + payload


def test_round_trip(ctx, add_module) -> None:
	data = add_module.to_bytecode()
	assert data.startswith(MAGIC)
	assert bytecode_version(data) == VERSION
	loaded = Module.from_bytecode(ctx, data)
	assert structurally_equal(add_module, loaded)
	assert loaded.to_text() == add_module.to_text()
	loaded.destroy()


def test_round_trip_with_branches_and_locations(ctx) -> None:
	module = Module.parse(ctx, BRANCHY)
	other = Context()
	try:
		loaded = read_bytecode(other, module.to_bytecode())
		assert structurally_equal(module, loaded, compare_locations=True)
		loaded.verify()
		loaded.destroy()
	finally:
		other.destroy()
	module.destroy()


def test_deterministic(ctx, add_module, make_add_module) -> None:
	twin = make_add_module(ctx)
	assert add_module.to_bytecode() == twin.to_bytecode()
	twin.destroy()


def test_unsupported_version(ctx, add_module) -> None:
	buf = bytearray(add_module.to_bytecode())
	struct.pack_into("<H", buf, 8, VERSION + 1)
	# Even with a broken payload the version is what gets reported.
	buf[-1] ^= 0xFF
	with pytest.raises(UnsupportedVersion) as err:
		read_bytecode(ctx, bytes(buf))
	assert err.value.found == VERSION + 1
	assert err.value.expected == VERSION
	assert bytecode_version(bytes(buf)) == VERSION + 1


def test_bad_magic(ctx, add_module) -> None:
	data = b"NOTIRKIT" + add_module.to_bytecode()[8:]
	with pytest.raises(ParseError, match="bad magic"):
		read_bytecode(ctx, data)


def test_too_short_and_truncated(ctx, add_module) -> None:
	data = add_module.to_bytecode()
	with pytest.raises(ParseError, match="too short"):
		read_bytecode(ctx, data[:10])
	with pytest.raises(ParseError, match="truncated"):
		read_bytecode(ctx, data[:-5])


def test_checksum_mismatch(ctx, add_module) -> None:
	buf = bytearray(add_module.to_bytecode())
	buf[HEADER_SIZE + 3] ^= 0x01
	with pytest.raises(ParseError, match="checksum"):
		read_bytecode(ctx, bytes(buf))


def test_malformed_payloads(ctx, add_module) -> None:
	data = add_module.to_bytecode()
	payload = json.loads(data[HEADER_SIZE:].decode("utf-8"))
	before = {k: v for k, v in ctx.stats().items() if k not in ("type", "attribute")}

	broken = dict(payload)
	del broken["root"]
	with pytest.raises(ParseError, match="malformed"):
		read_bytecode(ctx, _rewrap(data, canonical_json_bytes(broken)))

	with pytest.raises(ParseError, match="malformed"):
		read_bytecode(ctx, _rewrap(data, canonical_json_bytes(["not", "a", "dict"])))

	with pytest.raises(ParseError, match="not valid JSON"):
		read_bytecode(ctx, _rewrap(data, b"{nope"))

	# An operand naming a value that does not exist: everything built so far is dropped.
	dangling = json.loads(json.dumps(payload))
	func = dangling["root"]["regions"][0][0]["ops"][0]
	func["regions"][0][0]["ops"][1]["operands"] = [999]
	with pytest.raises(ParseError, match="undefined value id 999"):
		read_bytecode(ctx, _rewrap(data, canonical_json_bytes(dangling)))
	assert {k: v for k, v in ctx.stats().items() if k not in ("type", "attribute")} == before


def test_ids_must_be_non_negative_integers(ctx, add_module) -> None:
	data = add_module.to_bytecode()
	payload = json.loads(data[HEADER_SIZE:].decode("utf-8"))
	before = {k: v for k, v in ctx.stats().items() if k not in ("type", "attribute")}

	def body(p):
		return p["root"]["regions"][0][0]["ops"][0]["regions"][0][0]

	for mutate, message in [
		(lambda p: body(p)["ops"][1].__setitem__("operands", [-1]), "value id must be a non-negative integer"),
		(lambda p: body(p)["ops"][1].__setitem__("operands", [1.5]), "value id must be a non-negative integer"),
		(lambda p: body(p)["ops"][0]["results"][0].__setitem__("type", -1), "type index must be"),
		(lambda p: body(p)["ops"][0]["results"][0].__setitem__("type", 10_000), "type index 10000 is out of range"),
		(lambda p: body(p)["ops"][0]["results"][0].__setitem__("id", True), "value id must be"),
		(lambda p: body(p)["ops"][0]["results"][0].__setitem__("id", body(p)["args"][0]["id"]), "defined twice"),
	]:
		broken = json.loads(json.dumps(payload))
		mutate(broken)
		with pytest.raises(ParseError, match=message):
			read_bytecode(ctx, _rewrap(data, canonical_json_bytes(broken)))
		assert {k: v for k, v in ctx.stats().items() if k not in ("type", "attribute")} == before

def test_root_must_be_a_module(ctx, add_module) -> None:
	data = add_module.to_bytecode()
	payload = json.loads(data[HEADER_SIZE:].decode("utf-8"))
	payload["root"] = payload["root"]["regions"][0][0]["ops"][0]
	with pytest.raises(ParseError, match="root operation"):
		read_bytecode(ctx, _rewrap(data, canonical_json_bytes(payload)))
