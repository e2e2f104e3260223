"""Map payload normalisation.

Exports
-------
parse_grid
    Convert a raw 2-D map into a row-major snapshot.
parse_cell
    Normalise a single raw cell.
"""

from .parser import parse_cell, parse_grid

__all__ = [
    "parse_cell",
    "parse_grid",
]
