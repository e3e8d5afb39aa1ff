"""
pyvtablefinder utilities for PE images
Section access and pointer decoding on top of pefile
"""

import struct
import logging
from collections import namedtuple

import pefile

log = logging.getLogger(__name__)

# Immutable snapshot of one section: absolute base address, contents and size
Section = namedtuple("Section", ["name", "address", "data", "size"])

MACHINE_I386 = pefile.MACHINE_TYPE["IMAGE_FILE_MACHINE_I386"]
MACHINE_AMD64 = pefile.MACHINE_TYPE["IMAGE_FILE_MACHINE_AMD64"]

_PTR_FORMATS = {4: "<I", 8: "<Q"}


def convert_pointer(data, pointer_size):
    """Decode a pointer-sized little-endian value"""
    return struct.unpack(_PTR_FORMATS[pointer_size], data)[0]


def pointer_mask(pointer_size):
    return (1 << (pointer_size * 8)) - 1


def section_name(raw):
    """Decode a NUL padded PE section name"""
    return raw.rstrip(b"\x00").decode("utf-8", errors="ignore")


class static_sections(object):
    """Section provider over already extracted sections"""

    def __init__(self, sections=()):
        self._sections = {}
        for section in sections:
            self.add(section)

    def add(self, section):
        self._sections[section.name] = section

    def section_by_name(self, name):
        return self._sections.get(name)

    def names(self):
        return list(self._sections)


class pe_sections(object):
    """Section provider for a parsed PE file"""

    def __init__(self, pe):
        self.pe = pe
        self.imagebase = pe.OPTIONAL_HEADER.ImageBase
        self._sections = {}

        for sect in pe.sections:
            name = section_name(sect.Name)
            if name in self._sections:
                # First section wins like the loader's name lookup
                log.debug(f"Duplicate section name {name}, keeping the first one")
                continue
            self._sections[name] = self._snapshot(name, sect)

    def _snapshot(self, name, sect):
        """Build the Section for a pefile section header"""
        size = sect.Misc_VirtualSize or sect.SizeOfRawData
        data = sect.get_data()
        # Raw data is file aligned, the mapped image only holds VirtualSize bytes
        data = bytes(data[:size])
        address = self.imagebase + sect.VirtualAddress
        return Section(name, address, data, size)

    def section_by_name(self, name):
        return self._sections.get(name)

    def names(self):
        return list(self._sections)

    @property
    def machine(self):
        return self.pe.FILE_HEADER.Machine

    @property
    def pointer_size(self):
        """Pointer width of the image, or None for non-x86 machines"""
        if self.machine == MACHINE_I386:
            return 4
        if self.machine == MACHINE_AMD64:
            return 8
        return None


def load_pe(path):
    """Parse a PE file from disk"""
    log.info(f"Loading PE image {path}")
    return pefile.PE(path, fast_load=True)
