"""
pyvtablefinder
Vtable detection and cross-reference recovery for x86 / x86-64 PE binaries
"""

from .vtf_errors import VtfError, MissingSection, UnsupportedBinary
from .vtf_context import Context, xref_index
from .vtable_finder import find_vtables
from .pyvtablefinder_main import run_vtf
