# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
irkit: an ownership-checked IR builder and transformation layer.

Layering (leaves first):
  core (handles, ownership, diagnostics) → native (unchecked records) → ir
  (safe wrappers) → asm (text/bytecode) → passes → execution

Only the `ir`, `asm`, `passes` and `execution` packages are public. The
`native` package is the raw handle-based store and performs no checks.
"""

from irkit.core.diagnostics import Diagnostic, DiagnosticCollector, Severity
from irkit.core.errors import (
	CrossContextMismatch,
	DanglingOwner,
	InvalidHandle,
	IRError,
	JitRuntimeError,
	NotLowered,
	OperationInUse,
	ParseError,
	PassFailed,
	UnsupportedVersion,
	VerificationFailed,
)
from irkit.core.location import FileLineColLoc, Location, NameLoc, UnknownLoc
from irkit.ir import (
	Attribute,
	Block,
	BlockRef,
	Context,
	ContextConfig,
	Module,
	Operation,
	OperationBuilder,
	OperationRef,
	Region,
	RegionRef,
	Type,
	Value,
	structurally_equal,
	verify,
)
from irkit.passes import CustomPass, NativePass, PassManager

__all__ = [
	"Attribute",
	"Block",
	"BlockRef",
	"Context",
	"ContextConfig",
	"CrossContextMismatch",
	"CustomPass",
	"DanglingOwner",
	"Diagnostic",
	"DiagnosticCollector",
	"FileLineColLoc",
	"InvalidHandle",
	"IRError",
	"JitRuntimeError",
	"Location",
	"Module",
	"NameLoc",
	"NativePass",
	"NotLowered",
	"Operation",
	"OperationBuilder",
	"OperationInUse",
	"OperationRef",
	"ParseError",
	"PassFailed",
	"PassManager",
	"Region",
	"RegionRef",
	"Severity",
	"Type",
	"UnknownLoc",
	"UnsupportedVersion",
	"Value",
	"VerificationFailed",
	"structurally_equal",
	"verify",
]
