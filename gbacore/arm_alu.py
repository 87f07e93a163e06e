"""ARM data processing instructions (AND, EOR, SUB, ..., MVN)."""

from __future__ import annotations

from typing import Callable

from gbacore.cpu import MASK32, AccessType, Core, iadd32, isub32, ror32, uadd32, usub32

_Arith = Callable[[int, int, int], "tuple[int, bool, bool]"]


def _add(a: int, b: int, carry: int) -> tuple[int, bool, bool]:
    return (a + b + carry) & MASK32, uadd32(a, b, carry), iadd32(a, b, carry)


def _sub(a: int, b: int, borrow: int) -> tuple[int, bool, bool]:
    return (a - b - borrow) & MASK32, usub32(a, b, borrow), isub32(a, b, borrow)


_LOGICAL: dict[int, Callable[[int, int], int]] = {
    0x0: lambda a, b: a & b,  # AND
    0x1: lambda a, b: a ^ b,  # EOR
    0x8: lambda a, b: a & b,  # TST
    0x9: lambda a, b: a ^ b,  # TEQ
    0xC: lambda a, b: a | b,  # ORR
    0xD: lambda a, b: b,  # MOV
    0xE: lambda a, b: a & ~b,  # BIC
    0xF: lambda a, b: ~b,  # MVN
}

# Each entry receives (op1, op2, carry flag).
_ARITHMETIC: dict[int, _Arith] = {
    0x2: lambda a, b, c: _sub(a, b, 0),  # SUB
    0x3: lambda a, b, c: _sub(b, a, 0),  # RSB
    0x4: lambda a, b, c: _add(a, b, 0),  # ADD
    0x5: lambda a, b, c: _add(a, b, c),  # ADC
    0x6: lambda a, b, c: _sub(a, b, 1 - c),  # SBC
    0x7: lambda a, b, c: _sub(b, a, 1 - c),  # RSC
    0xA: lambda a, b, c: _sub(a, b, 0),  # CMP
    0xB: lambda a, b, c: _add(a, b, 0),  # CMN
}

_TEST_ONLY = frozenset({0x8, 0x9, 0xA, 0xB})


def data_processing(core: Core, op: int) -> None:
    """Execute an ARM data processing instruction."""
    regs = core.registers
    rd = (op >> 12) & 0xF
    rn = (op >> 16) & 0xF
    set_flags = bool((op >> 20) & 1)
    update = set_flags and rd != 15
    early_pc_inc = False

    core.prefetch_access_type = AccessType.SEQUENTIAL
    shift_carry = core.cpsr.carry

    if (op >> 25) & 1:
        op1 = regs[rn]
        op2 = op & 0xFF
        rot = ((op >> 8) & 0xF) * 2
        if rot:
            carry_out = bool((op2 >> (rot - 1)) & 1)
            op2 = ror32(op2, rot)
            if update:
                shift_carry = carry_out
    else:
        rm = op & 0xF
        shift = (op >> 4) & 0xFF
        # A register-specified shift amount puts PC 12 bytes ahead.
        if shift & 1:
            early_pc_inc = True
            core.pc += 4
            core.idle()
            core.prefetch_access_type = AccessType.NON_SEQUENTIAL
        op1 = regs[rn]
        op2, carry_out = core.compute_shift(shift, regs[rm])
        if update:
            shift_carry = carry_out

    opcode = (op >> 21) & 0xF
    cpsr = core.cpsr
    writes = opcode not in _TEST_ONLY

    if opcode in _LOGICAL:
        result = _LOGICAL[opcode](op1, op2) & MASK32
        if writes:
            regs[rd] = result
        # TST and TEQ always update the flags.
        if update or not writes:
            cpsr.zero = result == 0
            cpsr.negative = bool(result >> 31)
            cpsr.carry = shift_carry
    else:
        result, carry, overflow = _ARITHMETIC[opcode](op1, op2, int(cpsr.carry))
        if writes:
            regs[rd] = result
        if update:
            cpsr.zero = result == 0
            cpsr.negative = bool(result >> 31)
            cpsr.carry = carry
            cpsr.overflow = overflow

    if rd == 15:
        if set_flags:
            new_cpsr = core.spsr_get(core.cpsr.mode)
            core.switch_mode(new_cpsr.mode)
            core.cpsr = new_cpsr
        if opcode in _TEST_ONLY:
            if not early_pc_inc:
                core.pc += 4
        else:
            core.reload_pipeline()
    elif not early_pc_inc:
        core.pc += 4