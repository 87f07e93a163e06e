"""Thumb arithmetic, compare, move and high-register instructions."""

from __future__ import annotations

from typing import Callable

from gbacore.arm_ops import multiply_cycles
from gbacore.cpu import (
    MASK32,
    AccessType,
    Core,
    Psr,
    iadd32,
    isub32,
    ror32,
    sign_extend,
    uadd32,
    usub32,
)


def _set_nz(cpsr: Psr, value: int) -> None:
    cpsr.zero = value == 0
    cpsr.negative = bool((value >> 31) & 1)


def _set_add_cv(cpsr: Psr, a: int, b: int, carry: int) -> None:
    cpsr.carry = uadd32(a, b, carry)
    cpsr.overflow = iadd32(a, b, carry)


def _set_sub_cv(cpsr: Psr, a: int, b: int, borrow: int) -> None:
    cpsr.carry = usub32(a, b, borrow)
    cpsr.overflow = isub32(a, b, borrow)


def _advance(core: Core) -> None:
    core.pc += 2
    core.prefetch_access_type = AccessType.SEQUENTIAL


def _lo_operands(core: Core, op: int) -> tuple[int, int, int]:
    rd = op & 0x7
    rs = (op >> 3) & 0x7
    if (op >> 10) & 1:
        rhs = (op >> 6) & 0x7
    else:
        rhs = core.registers[(op >> 6) & 0x7]
    return rd, core.registers[rs], rhs


def lo_add(core: Core, op: int) -> None:
    """Execute ADD Rd, Rs, Rn/#imm3."""
    rd, lhs, rhs = _lo_operands(core, op)
    result = (lhs + rhs) & MASK32
    _set_nz(core.cpsr, result)
    _set_add_cv(core.cpsr, lhs, rhs, 0)
    core.registers[rd] = result
    _advance(core)


def lo_sub(core: Core, op: int) -> None:
    """Execute SUB Rd, Rs, Rn/#imm3."""
    rd, lhs, rhs = _lo_operands(core, op)
    result = (lhs - rhs) & MASK32
    _set_nz(core.cpsr, result)
    _set_sub_cv(core.cpsr, lhs, rhs, 0)
    core.registers[rd] = result
    _advance(core)


def _imm_operands(op: int) -> tuple[int, int]:
    return (op >> 8) & 0x7, op & 0xFF


def mov_imm(core: Core, op: int) -> None:
    """Execute MOV Rd, #imm8."""
    rd, imm = _imm_operands(op)
    core.registers[rd] = imm
    _set_nz(core.cpsr, imm)
    _advance(core)


def cmp_imm(core: Core, op: int) -> None:
    """Execute CMP Rd, #imm8."""
    rd, imm = _imm_operands(op)
    value = core.registers[rd]
    _set_nz(core.cpsr, (value - imm) & MASK32)
    _set_sub_cv(core.cpsr, value, imm, 0)
    _advance(core)


def add_imm(core: Core, op: int) -> None:
    """Execute ADD Rd, #imm8."""
    rd, imm = _imm_operands(op)
    value = core.registers[rd]
    _set_add_cv(core.cpsr, value, imm, 0)
    result = (value + imm) & MASK32
    core.registers[rd] = result
    _set_nz(core.cpsr, result)
    _advance(core)


def sub_imm(core: Core, op: int) -> None:
    """Execute SUB Rd, #imm8."""
    rd, imm = _imm_operands(op)
    value = core.registers[rd]
    _set_sub_cv(core.cpsr, value, imm, 0)
    result = (value - imm) & MASK32
    core.registers[rd] = result
    _set_nz(core.cpsr, result)
    _advance(core)


def _hi_operands(op: int) -> tuple[int, int]:
    h1 = (op >> 7) & 1
    h2 = (op >> 6) & 1
    if not (h1 or h2):
        raise ValueError(f"high register operation without a high register (op=0x{op:04x})")
    return (op & 0x7) + h1 * 8, ((op >> 3) & 0x7) + h2 * 8


def _finish_hi_write(core: Core, rd: int) -> None:
    if rd == 15:
        core.reload_pipeline()
    else:
        _advance(core)


def hi_add(core: Core, op: int) -> None:
    """Execute ADD with at least one high register; flags are untouched."""
    rd, rs = _hi_operands(op)
    core.registers[rd] = (core.registers[rd] + core.registers[rs]) & MASK32
    _finish_hi_write(core, rd)


def hi_cmp(core: Core, op: int) -> None:
    """Execute CMP with at least one high register."""
    rd, rs = _hi_operands(op)
    op1 = core.registers[rd]
    op2 = core.registers[rs]
    _set_nz(core.cpsr, (op1 - op2) & MASK32)
    _set_sub_cv(core.cpsr, op1, op2, 0)
    _advance(core)


def hi_mov(core: Core, op: int) -> None:
    """Execute MOV with at least one high register; flags are untouched."""
    rd, rs = _hi_operands(op)
    core.registers[rd] = core.registers[rs]
    _finish_hi_write(core, rd)


def add_sp_imm(core: Core, op: int) -> None:
    """Execute ADD Rd, SP, #imm8*4."""
    rd, imm = _imm_operands(op)
    core.registers[rd] = (core.sp + (imm << 2)) & MASK32
    _advance(core)


def add_pc_imm(core: Core, op: int) -> None:
    """Execute ADD Rd, PC, #imm8*4 with PC word-aligned."""
    rd, imm = _imm_operands(op)
    core.registers[rd] = ((core.pc & 0xFFFFFFFC) + (imm << 2)) & MASK32
    _advance(core)


def add_sp_s_imm(core: Core, op: int) -> None:
    """Execute ADD SP, #+/-imm7*4."""
    offset = (op & 0x7F) << 2
    if (op >> 7) & 1:
        core.sp = core.sp - offset
    else:
        core.sp = core.sp + offset
    _advance(core)


def _finish_shift(core: Core, rd: int, value: int, carry: bool) -> None:
    core.cpsr.carry = carry
    _set_nz(core.cpsr, value)
    core.registers[rd] = value
    core.idle()
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL


def _write_logical(core: Core, rd: int, value: int) -> None:
    value &= MASK32
    core.registers[rd] = value
    _set_nz(core.cpsr, value)


def _alu_and(core: Core, rd: int, op1: int, op2: int) -> None:
    _write_logical(core, rd, op1 & op2)


def _alu_eor(core: Core, rd: int, op1: int, op2: int) -> None:
    _write_logical(core, rd, op1 ^ op2)


def _alu_lsl(core: Core, rd: int, op1: int, op2: int) -> None:
    amount = op2 & 0xFF
    if amount == 0:
        carry = core.cpsr.carry
    elif amount <= 32:
        op1 = (op1 << (amount - 1)) & MASK32
        carry = bool(op1 >> 31)
        op1 = (op1 << 1) & MASK32
    else:
        op1, carry = 0, False
    _finish_shift(core, rd, op1, carry)


def _alu_lsr(core: Core, rd: int, op1: int, op2: int) -> None:
    amount = op2 & 0xFF
    if amount == 0:
        carry = core.cpsr.carry
    elif amount <= 32:
        op1 >>= amount - 1
        carry = bool(op1 & 1)
        op1 >>= 1
    else:
        op1, carry = 0, False
    _finish_shift(core, rd, op1, carry)


def _alu_asr(core: Core, rd: int, op1: int, op2: int) -> None:
    amount = op2 & 0xFF
    if amount == 0:
        carry = core.cpsr.carry
    elif amount <= 32:
        signed = sign_extend(op1, 32) >> (amount - 1)
        carry = bool(signed & 1)
        op1 = (signed >> 1) & MASK32
    else:
        carry = bool(op1 >> 31)
        op1 = 0xFFFFFFFF if carry else 0
    _finish_shift(core, rd, op1, carry)


def _alu_adc(core: Core, rd: int, op1: int, op2: int) -> None:
    carry = int(core.cpsr.carry)
    result = (op1 + op2 + carry) & MASK32
    core.registers[rd] = result
    _set_nz(core.cpsr, result)
    _set_add_cv(core.cpsr, op1, op2, carry)


def _alu_sbc(core: Core, rd: int, op1: int, op2: int) -> None:
    borrow = 1 - int(core.cpsr.carry)
    result = (op1 - op2 - borrow) & MASK32
    core.registers[rd] = result
    _set_nz(core.cpsr, result)
    _set_sub_cv(core.cpsr, op1, op2, borrow)


def _alu_ror(core: Core, rd: int, op1: int, op2: int) -> None:
    amount = op2
    if amount > 32:
        amount = ((amount - 1) % 32) + 1
    if amount == 0:
        carry = core.cpsr.carry
    else:
        carry = bool((op1 >> (amount - 1)) & 1)
        op1 = ror32(op1, amount)
    _finish_shift(core, rd, op1, carry)


def _alu_tst(core: Core, rd: int, op1: int, op2: int) -> None:
    _set_nz(core.cpsr, op1 & op2)


def _alu_neg(core: Core, rd: int, op1: int, op2: int) -> None:
    result = (0 - op2) & MASK32
    core.registers[rd] = result
    _set_nz(core.cpsr, result)
    _set_sub_cv(core.cpsr, 0, op2, 0)


def _alu_cmp(core: Core, rd: int, op1: int, op2: int) -> None:
    _set_nz(core.cpsr, (op1 - op2) & MASK32)
    _set_sub_cv(core.cpsr, op1, op2, 0)


def _alu_cmn(core: Core, rd: int, op1: int, op2: int) -> None:
    _set_nz(core.cpsr, (op1 + op2) & MASK32)
    _set_add_cv(core.cpsr, op1, op2, 0)


def _alu_orr(core: Core, rd: int, op1: int, op2: int) -> None:
    _write_logical(core, rd, op1 | op2)


def _alu_mul(core: Core, rd: int, op1: int, op2: int) -> None:
    core.idle_for(multiply_cycles(op1, True))
    _write_logical(core, rd, op1 * op2)
    core.cpsr.carry = False
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL


def _alu_bic(core: Core, rd: int, op1: int, op2: int) -> None:
    _write_logical(core, rd, op1 & ~op2)


def _alu_mvn(core: Core, rd: int, op1: int, op2: int) -> None:
    _write_logical(core, rd, ~op2)


_ALU_OPS: dict[int, Callable[[Core, int, int, int], None]] = {
    0x0: _alu_and,
    0x1: _alu_eor,
    0x2: _alu_lsl,
    0x3: _alu_lsr,
    0x4: _alu_asr,
    0x5: _alu_adc,
    0x6: _alu_sbc,
    0x7: _alu_ror,
    0x8: _alu_tst,
    0x9: _alu_neg,
    0xA: _alu_cmp,
    0xB: _alu_cmn,
    0xC: _alu_orr,
    0xD: _alu_mul,
    0xE: _alu_bic,
    0xF: _alu_mvn,
}


def alu(core: Core, op: int) -> None:
    """Execute one of the sixteen Thumb register ALU operations."""
    rd = op & 0x7
    rs = (op >> 3) & 0x7
    core.prefetch_access_type = AccessType.SEQUENTIAL
    handler = _ALU_OPS.get((op >> 6) & 0x7F)
    if handler is not None:
        handler(core, rd, core.registers[rd], core.registers[rs])
    core.pc += 2