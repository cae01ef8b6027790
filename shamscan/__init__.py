"""shamscan - static scanner for placeholder implementations in JS/TS codebases."""

__version__ = "0.1.0"
