# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""Typed contracts for trellis tool inputs."""

from __future__ import annotations

from trellis.types.inputs import TOOL_ARGS_MAP

__all__ = ["TOOL_ARGS_MAP"]
