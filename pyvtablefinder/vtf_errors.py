"""
Exceptions raised by pyvtablefinder
"""


class VtfError(Exception):
    """Base class for all pyvtablefinder errors"""


class MissingSection(VtfError):
    """A section required for detection is not present in the binary"""

    def __init__(self, name):
        self.name = name
        super().__init__(f"No {name} section")


class UnsupportedBinary(VtfError):
    """The binary is not an x86 or x86-64 image"""
