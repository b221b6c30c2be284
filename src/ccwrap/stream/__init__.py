"""Byte-stream to line reassembly."""

from ccwrap.stream.reassembler import LineReassembler, TrailingPolicy, iter_lines

__all__ = ["LineReassembler", "TrailingPolicy", "iter_lines"]
