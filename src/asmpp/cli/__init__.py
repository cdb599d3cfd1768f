"""
asmpp Command-Line Interface
============================

- **asmpp**: run the preprocessor on a source file

Implemented as a Click application.
"""

__all__ = ["asmpp"]
