# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared leaf modules: raw handles, ownership rules, diagnostics, errors,
locations and the type/attribute specs that contexts intern.
"""

__all__ = []
