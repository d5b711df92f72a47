# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Safe IR layer.

Owned wrappers (`Module`, floating `Operation`/`Block`/`Region`) are consumed
by `destroy()` and by insertion into a parent. Everything else is a borrowed
wrapper that re-validates its handle on every access.
"""

from irkit.ir.attributes import (
	ArrayAttr,
	Attribute,
	BoolAttr,
	DictAttr,
	FloatAttr,
	IntegerAttr,
	OpaqueAttr,
	StringAttr,
	SymbolRefAttr,
	TypeAttr,
	UnitAttr,
)
from irkit.ir.block import Block, BlockRef, OperationSequence, Region, RegionRef
from irkit.ir.context import Context, ContextConfig
from irkit.ir.equality import structurally_equal
from irkit.ir.module import Module
from irkit.ir.operation import AttributeMap, Operation, OperationBuilder, OperationRef
from irkit.ir.types import (
	FloatType,
	FunctionType,
	IndexType,
	IntegerType,
	MemRefType,
	NoneType,
	OpaqueType,
	ShapedType,
	TensorType,
	Type,
	VectorType,
)
from irkit.ir.value import BlockArgument, OpOperand, OpResult, Value
from irkit.ir.verifier import verify
from irkit.ir.walk import walk

__all__ = [
	"ArrayAttr",
	"Attribute",
	"AttributeMap",
	"Block",
	"BlockArgument",
	"BlockRef",
	"BoolAttr",
	"Context",
	"ContextConfig",
	"DictAttr",
	"FloatAttr",
	"FloatType",
	"FunctionType",
	"IndexType",
	"IntegerAttr",
	"IntegerType",
	"MemRefType",
	"Module",
	"NoneType",
	"OpOperand",
	"OpResult",
	"OpaqueAttr",
	"OpaqueType",
	"Operation",
	"OperationBuilder",
	"OperationRef",
	"OperationSequence",
	"Region",
	"RegionRef",
	"ShapedType",
	"StringAttr",
	"SymbolRefAttr",
	"TensorType",
	"Type",
	"TypeAttr",
	"UnitAttr",
	"Value",
	"VectorType",
	"structurally_equal",
	"verify",
	"walk",
]
