"""Thumb move-shifted-register instructions (LSL, LSR, ASR by immediate)."""

from __future__ import annotations

from gbacore.cpu import MASK32, AccessType, Core, sign_extend


def _decode(core: Core, op: int) -> tuple[int, int, int]:
    rd = op & 0x7
    rs = (op >> 3) & 0x7
    shift = (op >> 6) & 0x1F
    return rd, core.registers[rs], shift


def _finish(core: Core, rd: int, value: int) -> None:
    core.cpsr.zero = value == 0
    core.cpsr.negative = bool((value >> 31) & 1)
    core.registers[rd] = value
    core.pc += 2
    core.prefetch_access_type = AccessType.SEQUENTIAL


def lsl(core: Core, op: int) -> None:
    """Execute LSL Rd, Rs, #imm5; a zero shift leaves the carry untouched."""
    rd, value, shift = _decode(core, op)
    if shift > 0:
        value = (value << (shift - 1)) & MASK32
        core.cpsr.carry = bool(value >> 31)
        value = (value << 1) & MASK32
    _finish(core, rd, value)


def lsr(core: Core, op: int) -> None:
    """Execute LSR Rd, Rs, #imm5; a zero shift encodes a shift by 32."""
    rd, value, shift = _decode(core, op)
    shift = shift or 32
    value >>= shift - 1
    core.cpsr.carry = bool(value & 1)
    value >>= 1
    _finish(core, rd, value)


def asr(core: Core, op: int) -> None:
    """Execute ASR Rd, Rs, #imm5; a zero shift encodes a shift by 32."""
    rd, value, shift = _decode(core, op)
    shift = shift or 32
    signed = sign_extend(value, 32) >> (shift - 1)
    core.cpsr.carry = bool(signed & 1)
    value = (signed >> 1) & MASK32
    _finish(core, rd, value)