"""Thumb branch instructions and the software interrupt."""

from __future__ import annotations

from gbacore.arm_decoder import CONDITION_LUT
from gbacore.cpu import AccessType, Core, Mode, Vector, sign_extend


def branch(core: Core, op: int) -> None:
    """Execute the unconditional B with an 11-bit halfword offset."""
    core.pc = core.pc + sign_extend((op & 0x7FF) << 1, 12)
    core.reload_pipeline()


def branch_link(core: Core, op: int) -> None:
    """Execute either half of BL: the high offset first, then the jump."""
    offset = op & 0x7FF
    if not (op >> 11) & 1:
        core.lr = core.pc + (sign_extend(offset, 11) << 12)
        core.pc += 2
        core.prefetch_access_type = AccessType.SEQUENTIAL
    else:
        target = core.lr + (offset << 1)
        core.lr = (core.pc - 2) | 1
        core.pc = target
        core.reload_pipeline()


def branch_cond(core: Core, op: int) -> None:
    """Execute a conditional branch (BEQ, BNE, ...)."""
    label = sign_extend(op & 0xFF, 8) << 1
    index = (((core.cpsr.raw >> 28) & 0xF) << 4) | ((op >> 8) & 0xF)
    if CONDITION_LUT[index]:
        core.pc = core.pc + label
        core.reload_pipeline()
    else:
        core.pc += 2
        core.prefetch_access_type = AccessType.SEQUENTIAL


def branch_exchange(core: Core, op: int) -> None:
    """Execute BX, leaving Thumb state when bit 0 of the target is clear."""
    if (op >> 7) & 1:
        raise ValueError(f"BX with the H1 bit set is undefined (op=0x{op:04x})")
    rs = ((op >> 3) & 0x7) + ((op >> 6) & 1) * 8
    addr = core.registers[rs]
    core.pc = addr & 0xFFFFFFFE
    core.cpsr.thumb = bool(addr & 1)
    core.reload_pipeline()


def software_interrupt(core: Core, op: int) -> None:
    """Execute SWI: take the supervisor call exception."""
    core.interrupt(Vector.SVC, Mode.SVC)