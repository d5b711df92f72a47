# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Bytecode container (v1).

A fixed little-endian header followed by a canonical JSON payload:

  magic(8) version(u16) flags(u16) header_size(u32) payload_len(u64) payload_sha256(32)

The payload holds a type table and an attribute table (each entry in its
textual form, so the tables are context independent) and the operation tree.
Values are numbered in pre-order (results of an op, then the arguments of
each of its blocks, then nested ops); operands refer to those numbers and
successors to block positions in the enclosing region.

Readers check the magic, the version (`UnsupportedVersion` for any other
version) and the payload hash before trusting any content.
"""

from __future__ import annotations

import hashlib
import json
import logging
import struct
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from irkit.core.errors import ParseError, UnsupportedVersion
from irkit.core.location import FileLineColLoc, Location, NameLoc, UnknownLoc
from irkit.native.records import BlockRecord, OpRecord, RegionRecord, ValueRecord

if TYPE_CHECKING:
	from irkit.ir.context import Context
	from irkit.ir.module import Module

logger = logging.getLogger(__name__)

MAGIC = b"IRKITBC\0"
VERSION = 1

# magic(8), version(u16), flags(u16), header_size(u32), payload_len(u64), payload_sha256(32)
_HEADER_STRUCT = struct.Struct("<8sHHIQ32s")
HEADER_SIZE = _HEADER_STRUCT.size


def canonical_json_bytes(obj: Any) -> bytes:
	"""UTF-8 JSON with sorted keys and no insignificant whitespace."""
	return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _encode_location(loc: Optional[Location]):
	if isinstance(loc, FileLineColLoc):
		return ["file", loc.file, loc.line, loc.column]
	if isinstance(loc, NameLoc):
		return ["name", loc.name, _encode_location(loc.child)]
	return None


def _decode_location(data) -> Location:
	if data is None:
		return UnknownLoc()
	if not isinstance(data, list) or not data:
		raise ValueError(f"bad location {data!r}")
	if data[0] == "file" and len(data) == 4:
		return FileLineColLoc(str(data[1]), int(data[2]), int(data[3]))
	if data[0] == "name" and len(data) == 3:
		return NameLoc(str(data[1]), _decode_location(data[2]))
	raise ValueError(f"bad location {data!r}")


class _Encoder:
	def __init__(self, context: "Context") -> None:
		from irkit.asm.printer import format_attr_spec, format_type_spec

		self._format_type = lambda raw: format_type_spec(context._types.lookup(raw))
		self._format_attr = lambda raw: format_attr_spec(context._attributes.lookup(raw))
		self.types: List[str] = []
		self.attributes: List[str] = []
		self._type_index: Dict[object, int] = {}
		self._attr_index: Dict[object, int] = {}
		self._value_ids: Dict[int, int] = {}

	def type_id(self, raw) -> int:
		index = self._type_index.get(raw)
		if index is None:
			index = len(self.types)
			self.types.append(self._format_type(raw))
			self._type_index[raw] = index
		return index

	def attr_id(self, raw) -> int:
		index = self._attr_index.get(raw)
		if index is None:
			index = len(self.attributes)
			self.attributes.append(self._format_attr(raw))
			self._attr_index[raw] = index
		return index

	def number(self, root: OpRecord) -> None:
		for op in root.walk():
			for result in op.results:
				self._value_ids[id(result)] = len(self._value_ids)
			for region in op.regions:
				for block in region.blocks:
					for arg in block.arguments:
						self._value_ids[id(arg)] = len(self._value_ids)

	def value_id(self, value: ValueRecord) -> int:
		vid = self._value_ids.get(id(value))
		if vid is None:
			raise ValueError("operand refers to a value defined outside the serialized module")
		return vid

	def op(self, op: OpRecord) -> dict:
		region = op.parent_region
		successors = []
		for block in op.successors:
			if region is None or block.parent is not region:
				raise ValueError(f"'{op.name}' branches to a block outside its region")
			successors.append(region.index_of(block))
		return {
			"name": op.name,
			"loc": _encode_location(op.location),
			"operands": [self.value_id(v) for v in op.operands],
			"results": [{"id": self.value_id(r), "type": self.type_id(r.type)} for r in op.results],
			"attributes": [[key, self.attr_id(raw)] for key, raw in sorted(op.attributes.items())],
			"successors": successors,
			"regions": [self.region(r) for r in op.regions],
		}

	def region(self, region: RegionRecord) -> list:
		return [
			{
				"args": [
					{"id": self.value_id(a), "type": self.type_id(a.type), "loc": _encode_location(a.location)}
					for a in block.arguments
				],
				"ops": [self.op(o) for o in block.operations],
			}
			for block in region.blocks
		]


def write_bytecode(module: "Module") -> bytes:
	"""Serialize `module` into a self-checking bytecode buffer."""
	record = module._resolve()
	encoder = _Encoder(module._context)
	encoder.number(record)
	root = encoder.op(record)
	payload = canonical_json_bytes({"types": encoder.types, "attributes": encoder.attributes, "root": root})
	header = _HEADER_STRUCT.pack(MAGIC, VERSION, 0, HEADER_SIZE, len(payload), hashlib.sha256(payload).digest())
	logger.debug("wrote bytecode: %d types, %d attributes, %d payload bytes", len(encoder.types), len(encoder.attributes), len(payload))
	return header + payload


def _read_header(data: bytes) -> Tuple[int, int, int, bytes]:
	if not isinstance(data, (bytes, bytearray, memoryview)):
		raise TypeError(f"expected bytes, got {type(data).__name__}")
	if len(data) < HEADER_SIZE:
		raise ParseError(f"bytecode too short: {len(data)} byte(s), header needs {HEADER_SIZE}")
	magic, version, _flags, header_size, payload_len, digest = _HEADER_STRUCT.unpack_from(data)
	if magic != MAGIC:
		raise ParseError("not an irkit bytecode buffer (bad magic)")
	return version, header_size, payload_len, digest


def bytecode_version(data: bytes) -> int:
	"""Format version declared by a bytecode buffer's header."""
	return _read_header(data)[0]


def _check_id(value, what: str) -> int:
	if isinstance(value, bool) or not isinstance(value, int) or value < 0:
		raise ValueError(f"{what} must be a non-negative integer, got {value!r}")
	return value


class _Decoder:
	def __init__(self, context: "Context", payload: dict) -> None:
		from irkit.asm.parser import parse_attribute, parse_type

		self.context = context
		self.store = context._store
		try:
			self.types = [parse_type(context, text)._raw for text in payload["types"]]
			self.attributes = [parse_attribute(context, text)._raw for text in payload["attributes"]]
		except ParseError as exc:
			raise ParseError(f"bad type/attribute table entry: {exc.reason}") from None
		self.values: Dict[int, ValueRecord] = {}
		self.pending: List[Tuple[OpRecord, List[int], List[int], Optional[RegionRecord]]] = []
		self.created: List[RegionRecord] = []
		self.root: Optional[OpRecord] = None

	def define(self, vid, value: ValueRecord) -> None:
		vid = _check_id(vid, "value id")
		if vid in self.values:
			raise ValueError(f"value id {vid} defined twice")
		self.values[vid] = value

	def entry(self, table: list, index, what: str):
		index = _check_id(index, what)
		if index >= len(table):
			raise IndexError(f"{what} {index} is out of range")
		return table[index]

	def op(self, data: dict, region: Optional[RegionRecord], block: Optional[BlockRecord]) -> OpRecord:
		operands = [_check_id(v, "value id") for v in data["operands"]]
		successors = [_check_id(b, "block index") for b in data["successors"]]
		regions = [self.region(r) for r in data["regions"]]
		op = self.store.create_op(
			str(data["name"]),
			_decode_location(data["loc"]),
			result_types=[self.entry(self.types, r["type"], "type index") for r in data["results"]],
			attributes={str(key): self.entry(self.attributes, index, "attribute index") for key, index in data["attributes"]},
			regions=regions,
		)
		if block is None:
			self.root = op
		else:
			block.insert(len(block.operations), op)
		for spec, result in zip(data["results"], op.results):
			self.define(spec["id"], result)
		self.pending.append((op, operands, successors, region))
		return op

	def region(self, blocks: list) -> RegionRecord:
		region = self.store.create_region()
		self.created.append(region)
		for block_data in blocks:
			args = block_data["args"]
			block = self.store.create_block(
				[self.entry(self.types, a["type"], "type index") for a in args],
				[_decode_location(a["loc"]) for a in args],
			)
			region.insert(len(region.blocks), block)
			for a, value in zip(args, block.arguments):
				self.define(a["id"], value)
			for op_data in block_data["ops"]:
				self.op(op_data, region, block)
		return region

	def resolve(self) -> None:
		for op, operands, successors, region in self.pending:
			for vid in operands:
				value = self.values.get(vid)
				if value is None:
					raise ValueError(f"'{op.name}' uses undefined value id {vid}")
				op.append_operand(value)
			for index in successors:
				if region is None or not 0 <= index < len(region.blocks):
					raise ValueError(f"'{op.name}' names missing successor block {index}")
				op.add_successor(region.blocks[index])

	def discard(self) -> None:
		if self.root is not None and self.root.parent is None:
			self.store.release_op(self.root)
		for region in self.created:
			if region.parent is None:
				self.store.release_region(region)


def read_bytecode(context: "Context", data: bytes) -> "Module":
	"""Rebuild a module in `context` from a `write_bytecode` buffer."""
	from irkit.ir.module import MODULE_OP, Module

	context._check_live()
	version, header_size, payload_len, digest = _read_header(data)
	if version != VERSION:
		raise UnsupportedVersion(version, VERSION)
	if header_size != HEADER_SIZE:
		raise ParseError(f"unexpected header size {header_size}")
	payload_bytes = bytes(data[header_size:header_size + payload_len])
	if len(payload_bytes) != payload_len:
		raise ParseError(f"truncated payload: expected {payload_len} byte(s), got {len(payload_bytes)}")
	if hashlib.sha256(payload_bytes).digest() != digest:
		raise ParseError("payload checksum mismatch")
	try:
		payload = json.loads(payload_bytes.decode("utf-8"))
	except (UnicodeDecodeError, json.JSONDecodeError) as exc:
		raise ParseError(f"payload is not valid JSON: {exc}") from None

	try:
		decoder = _Decoder(context, payload)
	except (KeyError, TypeError) as exc:
		raise ParseError(f"malformed bytecode payload: {exc}") from None
	try:
		root = decoder.op(payload["root"], None, None)
		decoder.resolve()
		if root.name != MODULE_OP or len(root.regions) != 1 or len(root.regions[0].blocks) != 1:
			raise ValueError(f"root operation must be a '{MODULE_OP}' with one body block")
	except (KeyError, IndexError, TypeError, ValueError) as exc:
		decoder.discard()
		raise ParseError(f"malformed bytecode payload: {exc}") from None
	return Module(context, root.handle)


__all__ = [
	"HEADER_SIZE",
	"MAGIC",
	"VERSION",
	"bytecode_version",
	"canonical_json_bytes",
	"read_bytecode",
	"write_bytecode",
]
