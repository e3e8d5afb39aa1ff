"""
x86 instruction model for pyvtablefinder
Decodes code with capstone into a small closed set of operand shapes
"""

import enum
import logging
from dataclasses import dataclass

from capstone import Cs, CS_ARCH_X86, CS_MODE_32, CS_MODE_64
from capstone import x86

log = logging.getLogger(__name__)


class Mnemonic(enum.Enum):
    LEA = "lea"
    MOV = "mov"
    OTHER = "other"


_MNEMONICS = {
    x86.X86_INS_LEA: Mnemonic.LEA,
    x86.X86_INS_MOV: Mnemonic.MOV,
}


@dataclass(frozen=True)
class Register:
    reg: int


@dataclass(frozen=True)
class Memory:
    base: int
    disp: int


@dataclass(frozen=True)
class Immediate:
    imm: int


@dataclass(frozen=True)
class Instruction:
    address: int
    size: int
    mnemonic: Mnemonic
    operands: tuple = ()


_MODES = {4: CS_MODE_32, 8: CS_MODE_64}


def make_disassembler(pointer_size):
    """Create a detail-enabled capstone disassembler for the given bitness"""
    md = Cs(CS_ARCH_X86, _MODES[pointer_size])
    md.detail = True
    # Keep decoding past padding and jump tables embedded in .text
    md.skipdata = True
    return md


def convert_operand(op):
    """Map a capstone x86 operand onto Register / Memory / Immediate"""
    if op.type == x86.X86_OP_REG:
        return Register(op.reg)
    if op.type == x86.X86_OP_MEM:
        return Memory(op.mem.base, op.mem.disp)
    if op.type == x86.X86_OP_IMM:
        return Immediate(op.imm)
    raise ValueError(f"Unknown x86 operand type {op.type}")


def convert_insn(insn):
    """Build an Instruction from a capstone instruction"""
    # skipdata pseudo instructions carry id 0 and no detail
    if insn.id == 0:
        return Instruction(insn.address, insn.size, Mnemonic.OTHER)

    mnemonic = _MNEMONICS.get(insn.id, Mnemonic.OTHER)
    if mnemonic is Mnemonic.OTHER:
        # Operand shapes are only inspected for lea / mov
        return Instruction(insn.address, insn.size, mnemonic)

    operands = tuple(convert_operand(op) for op in insn.operands)
    return Instruction(insn.address, insn.size, mnemonic, operands)


def decode(code, address, pointer_size):
    """Yield decoded instructions for code mapped at address"""
    md = make_disassembler(pointer_size)
    for insn in md.disasm(code, address):
        yield convert_insn(insn)


def decode_section(section, pointer_size):
    """Decode a whole code section into a list"""
    insns = list(decode(section.data, section.address, pointer_size))
    log.info(f"Decoded {len(insns)} instructions from {section.name} at 0x{section.address:x}")
    return insns
