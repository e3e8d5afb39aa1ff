"""
Vtable finder
Locates vtables in read-only data and confirms them against the code that installs them
"""

import logging

from capstone import x86

from .vtf_errors import MissingSection
from .vtf_utils_pe import convert_pointer, pointer_mask
from .x86_insn_cs import Mnemonic, Register, Memory, Immediate

log = logging.getLogger(__name__)

ADDR_MASK = (1 << 64) - 1

IMM32_MIN = -(1 << 31)
IMM32_END = 1 << 32


def is_mov_from_reg_to_mem(insn, reg):
    """mov [mem], reg with exactly the given register"""
    if insn.mnemonic is not Mnemonic.MOV:
        return False
    match insn.operands:
        case (Memory(), Register(reg=src)):
            return src == reg
    return False


def lea_rip_target(insn):
    """Target and destination register of lea reg, [rip + disp], or None"""
    if insn.mnemonic is not Mnemonic.LEA:
        return None
    match insn.operands:
        case (Register(reg=reg), Memory(base=x86.X86_REG_RIP, disp=disp)):
            # disp is relative to the end of the instruction, wrap like the CPU does
            return (disp + insn.address + insn.size) & ADDR_MASK, reg
    return None


def mov_imm_target(insn, pointer_size):
    """Address stored by mov [mem], imm32, or None"""
    if insn.mnemonic is not Mnemonic.MOV:
        return None
    match insn.operands:
        case (Memory(), Immediate(imm=imm)) if IMM32_MIN <= imm < IMM32_END:
            return imm & pointer_mask(pointer_size)
    return None


class vtable_finder(object):
    """Two pass vtable detection: data scan, then code validation"""

    @staticmethod
    def find_candidates(data, address, code_start, code_size, pointer_size):
        """Start addresses of runs of code pointers in data mapped at address"""
        code_end = code_start + code_size
        candidates = []
        last = None

        # Windows never overlap and a partial trailing window is not read
        for offset in range(0, len(data) - pointer_size + 1, pointer_size):
            ptr = convert_pointer(data[offset:offset + pointer_size], pointer_size)

            if code_start < ptr < code_end:
                if last is None:
                    last = address + offset
                    log.debug(f"vtable candidate at 0x{last:x}")
            elif last is not None:
                candidates.append(last)
                last = None

        if last is not None:
            # Only an out of range value closes a run
            log.debug(f"Run at 0x{last:x} reaches the end of the section, dropped")

        return candidates

    @staticmethod
    def validate(insns, candidates, pointer_size, xrefs):
        """Confirm candidates referenced by a vtable install idiom, recording xrefs"""
        candidates = frozenset(candidates)
        vtables = set()

        for i, insn in enumerate(insns):
            # x64: lea reg, [rip + x]; mov [dest], reg
            lea = lea_rip_target(insn)
            if lea is not None:
                src_addr, reg = lea
                if src_addr in candidates and i + 1 < len(insns) and is_mov_from_reg_to_mem(insns[i + 1], reg):
                    log.debug(f"Found vtable 0x{src_addr:x} (lea at 0x{insn.address:x})")
                    vtables.add(src_addr)
                    xrefs.add(src_addr, insn.address)

            # x86: mov dword ptr [reg], offset
            src_addr = mov_imm_target(insn, pointer_size)
            if src_addr is not None and src_addr in candidates:
                log.debug(f"Found vtable 0x{src_addr:x} (mov at 0x{insn.address:x})")
                vtables.add(src_addr)
                xrefs.add(src_addr, insn.address)

        return sorted(vtables)

    @staticmethod
    def run(context):
        """Detect vtables for a context, filling context.xrefs"""
        config = context.config

        text = context.sections.section_by_name(config.text_section)
        if text is None:
            log.error(f"No {config.text_section} section")
            raise MissingSection(config.text_section)

        rdata = context.sections.section_by_name(config.rdata_section)
        if rdata is None:
            log.error(f"No {config.rdata_section} section")
            raise MissingSection(config.rdata_section)

        # 1. Find vtable candidates
        log.info(f"Scanning {rdata.name} 0x{rdata.address:x} (size: {len(rdata.data)} bytes) for pointers into {text.name}")
        candidates = vtable_finder.find_candidates(rdata.data, rdata.address, text.address, text.size, context.pointer_size)
        log.info(f"Found {len(candidates)} vtable candidates")

        # 2. Validate vtable candidates by parsing the code
        vtables = vtable_finder.validate(context.insns, candidates, context.pointer_size, context.xrefs)
        log.info(f"Confirmed {len(vtables)} vtables from {len(context.insns)} instructions")

        context.vtables = vtables
        return vtables

    @staticmethod
    def show(context):
        """Log the detected vtables and their references"""
        if not context.vtables:
            log.info("No vtables to display")
            return

        for vtable in context.vtables:
            refs = context.xrefs.get(vtable) or []
            log.info(f"vtable at : {hex(vtable)}")
            log.info(f"  xrefs: {', '.join(hex(r) for r in refs)}")


def find_vtables(context):
    """Sorted vtable addresses of the context's binary; xrefs land in context.xrefs"""
    return vtable_finder.run(context)
