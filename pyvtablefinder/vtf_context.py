"""
Analysis context for pyvtablefinder
Holds the binary's sections, the decoded code and the cross-reference index
"""

import logging

from . import vtf_config
from . import vtf_utils_pe
from . import x86_insn_cs
from .vtf_errors import MissingSection, UnsupportedBinary

log = logging.getLogger(__name__)


class xref_index(object):
    """vtable address -> referencing code addresses, in encounter order"""

    def __init__(self):
        self._refs = {}

    def add(self, vtable, addr):
        """Record that the instruction at addr references vtable"""
        if vtable not in self._refs:
            self._refs[vtable] = []
        self._refs[vtable].append(addr)

    def get(self, vtable):
        """Referencing addresses for vtable, or None if it was never recorded"""
        return self._refs.get(vtable)

    def clear(self):
        self._refs.clear()

    def __getitem__(self, vtable):
        return self._refs[vtable]

    def __contains__(self, vtable):
        return vtable in self._refs

    def __iter__(self):
        return iter(self._refs)

    def __len__(self):
        return len(self._refs)

    def __repr__(self):
        inner = ", ".join(f"0x{k:x}: [{', '.join(hex(a) for a in v)}]" for k, v in self._refs.items())
        return f"xref_index({{{inner}}})"


class Context(object):
    """State for one detection run over one binary"""

    def __init__(self, sections, pointer_size, insns=None, config=None):
        if pointer_size not in (4, 8):
            raise UnsupportedBinary(f"Unsupported pointer size {pointer_size}")
        self.sections = sections
        self.pointer_size = pointer_size
        self.config = config if config is not None else vtf_config.vtf_config()
        self.insns = list(insns) if insns is not None else []
        self.xrefs = xref_index()
        self.vtables = []

    @classmethod
    def from_sections(cls, sections, pointer_size, config=None):
        """Decode the code section of a section provider and build a context"""
        if config is None:
            config = vtf_config.vtf_config()
        text = sections.section_by_name(config.text_section)
        if text is None:
            log.error(f"No {config.text_section} section")
            raise MissingSection(config.text_section)
        insns = x86_insn_cs.decode_section(text, pointer_size)
        return cls(sections, pointer_size, insns, config)

    @classmethod
    def from_pe(cls, pe, config=None):
        """Build a context for a parsed pefile.PE"""
        sections = vtf_utils_pe.pe_sections(pe)
        pointer_size = sections.pointer_size
        if pointer_size is None:
            raise UnsupportedBinary(f"Machine type 0x{sections.machine:x} is not x86 or x86-64")
        log.info(f"PE image base 0x{sections.imagebase:x}, {pointer_size * 8}-bit, sections: {', '.join(sections.names())}")
        return cls.from_sections(sections, pointer_size, config)

    def reset(self):
        """Forget the results of a previous run"""
        self.xrefs.clear()
        self.vtables = []
