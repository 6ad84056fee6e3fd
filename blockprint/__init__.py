"""
Blockprint - Compact blueprint interpreter for model-generated builds.

A language model describes a block structure as a small JSON program
(defs, loops, calls, placements). Blockprint expands it into a bounded,
safe list of concrete block placements:
- Dual-format dispatch (compact programs and legacy block lists)
- Integer expression evaluation over a scoped variable table
- Execution budgets on depth, steps and calls
- Block-type normalization against a swappable catalog
"""

__version__ = "0.1.0"
