# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Textual and binary serialization of IR."""

from irkit.asm.bytecode import (
	HEADER_SIZE,
	MAGIC,
	VERSION,
	bytecode_version,
	canonical_json_bytes,
	read_bytecode,
	write_bytecode,
)
from irkit.asm.parser import parse_attribute, parse_module, parse_type
from irkit.asm.printer import format_attribute, format_location, format_type, print_module, print_operation

__all__ = [
	"HEADER_SIZE",
	"MAGIC",
	"VERSION",
	"bytecode_version",
	"canonical_json_bytes",
	"format_attribute",
	"format_location",
	"format_type",
	"parse_attribute",
	"parse_module",
	"parse_type",
	"print_module",
	"print_operation",
	"read_bytecode",
	"write_bytecode",
]
