"""Interpreter for RV32IM machine code, with switch and table-driven execution loops."""

__version__ = "0.1.0"