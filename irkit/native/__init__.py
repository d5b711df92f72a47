# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Native IR store.

This package plays the role of the C-style API underneath the safe layer:
plain mutable records linked to each other, raw handles, and functions that
mutate them without any validity, ownership or context checks. Only
`irkit.ir`, `irkit.asm` and `irkit.passes` call into it, and they do all
checking before they do.
"""

from irkit.native.records import BlockRecord, OpRecord, RegionRecord, UseRecord, ValueRecord
from irkit.native.store import Store

__all__ = ["BlockRecord", "OpRecord", "RegionRecord", "Store", "UseRecord", "ValueRecord"]
