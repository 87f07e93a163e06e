"""Thumb instruction patterns and the opcode lookup table."""

from __future__ import annotations

from typing import Sequence

from gbacore.arm_decoder import (
    DecodeError,
    Handler,
    InstructionPattern,
    check_collisions,
    decode_pattern,
)
from gbacore.thumb_alu import (
    add_imm,
    add_pc_imm,
    add_sp_imm,
    add_sp_s_imm,
    alu,
    cmp_imm,
    hi_add,
    hi_cmp,
    hi_mov,
    lo_add,
    lo_sub,
    mov_imm,
    sub_imm,
)
from gbacore.thumb_branch import (
    branch,
    branch_cond,
    branch_exchange,
    branch_link,
    software_interrupt,
)
from gbacore.thumb_logical import asr, lsl, lsr
from gbacore.thumb_transfer import (
    ldmia,
    ldr_pc,
    pop,
    push,
    sdt_h_imm,
    sdt_imm,
    sdt_sbh_reg,
    sdt_sp,
    sdt_wb_reg,
    stmia,
)

THUMB_LUT_SIZE = 256
_THUMB_LUT_BITS = 0xFF00


def thumb_lut_index(op: int) -> int:
    """Index of ``op`` in the Thumb lookup table (its top byte)."""
    return (op >> 8) & 0xFF


def build_thumb_lut(patterns: Sequence[InstructionPattern]) -> tuple[Handler | None, ...]:
    """Map every top byte to the handler of the single pattern that fits it."""
    check_collisions(patterns)
    lut: list[Handler | None] = [None] * THUMB_LUT_SIZE
    matched: list[InstructionPattern | None] = [None] * THUMB_LUT_SIZE
    for index in range(THUMB_LUT_SIZE):
        op = index << 8
        for pattern in patterns:
            if op & pattern.mask & _THUMB_LUT_BITS == pattern.value & _THUMB_LUT_BITS:
                previous = matched[index]
                if previous is not None:
                    raise DecodeError(
                        f'lookup index 0x{index:02x} is ambiguous between '
                        f'"{previous.name}" and "{pattern.name}"'
                    )
                matched[index] = pattern
                lut[index] = pattern.handler
    return tuple(lut)


THUMB_INSTRUCTIONS: tuple[tuple[str, str, Handler], ...] = (
    # Move shifted register
    ("lsl", "00000yyyyysssddd", lsl),
    ("lsr", "00001yyyyysssddd", lsr),
    ("asr", "00010yyyyysssddd", asr),
    # Add/subtract low registers
    ("add_lo_reg", "00011i0yyysssddd", lo_add),
    ("sub_lo_reg", "00011i1yyysssddd", lo_sub),
    # Move/compare/add/subtract immediate
    ("mov_imm", "00100dddxxxxxxxx", mov_imm),
    ("cmp_imm", "00101dddxxxxxxxx", cmp_imm),
    ("add_imm", "00110dddxxxxxxxx", add_imm),
    ("sub_imm", "00111dddxxxxxxxx", sub_imm),
    # ALU operations
    ("alu", "010000xxxxsssddd", alu),
    # High register operations and branch exchange
    ("add_hi_reg", "01000100hhsssddd", hi_add),
    ("cmp_hi_reg", "01000101hhsssddd", hi_cmp),
    ("mov_hi_reg", "01000110hhsssddd", hi_mov),
    ("bx", "01000111hhsssddd", branch_exchange),
    # PC-relative load
    ("ldr_pc", "01001dddxxxxxxxx", ldr_pc),
    # Load/store word/byte with register offset
    ("ldr_regoff", "01011b0ooobbbddd", sdt_wb_reg),
    ("str_regoff", "01010b0ooobbbddd", sdt_wb_reg),
    # Load/store sign-extended byte/halfword
    ("sdt_sbh_reg", "0101hs1ooobbbddd", sdt_sbh_reg),
    # Load/store with immediate offset
    ("std_imm", "011blooooobbbddd", sdt_imm),
    # Load/store halfword with immediate offset
    ("std_h_imm", "1000looooobbbddd", sdt_h_imm),
    # SP-relative load/store
    ("sdt_sp", "1001ldddiiiiiiii", sdt_sp),
    # Load address
    ("add_pc_imm", "10100dddiiiiiiii", add_pc_imm),
    ("add_sp_imm", "10101dddiiiiiiii", add_sp_imm),
    # Add offset to stack pointer
    ("add_sp_s_imm", "10110000siiiiiii", add_sp_s_imm),
    # Push/pop
    ("push", "1011010xxxxxxxxx", push),
    ("pop", "1011110xxxxxxxxx", pop),
    # Multiple load/store
    ("stmia", "11000bbbxxxxxxxx", stmia),
    ("ldmia", "11001bbbxxxxxxxx", ldmia),
    # Conditional branch
    ("beq", "11010000xxxxxxxx", branch_cond),
    ("bne", "11010001xxxxxxxx", branch_cond),
    ("bcs", "11010010xxxxxxxx", branch_cond),
    ("bcc", "11010011xxxxxxxx", branch_cond),
    ("bmi", "11010100xxxxxxxx", branch_cond),
    ("bpl", "11010101xxxxxxxx", branch_cond),
    ("bvs", "11010110xxxxxxxx", branch_cond),
    ("bvc", "11010111xxxxxxxx", branch_cond),
    ("bhi", "11011000xxxxxxxx", branch_cond),
    ("bls", "11011001xxxxxxxx", branch_cond),
    ("bge", "11011010xxxxxxxx", branch_cond),
    ("blt", "11011011xxxxxxxx", branch_cond),
    ("bgt", "11011100xxxxxxxx", branch_cond),
    ("ble", "11011101xxxxxxxx", branch_cond),
    # Software interrupt
    ("swi", "11011111xxxxxxxx", software_interrupt),
    # Unconditional branch
    ("b", "11100xxxxxxxxxxx", branch),
    # Long branch with link
    ("bl_1", "11110xxxxxxxxxxx", branch_link),
    ("bl_2", "11111xxxxxxxxxxx", branch_link),
)

THUMB_PATTERNS: tuple[InstructionPattern, ...] = tuple(
    decode_pattern(name, pattern, handler, 16) for name, pattern, handler in THUMB_INSTRUCTIONS
)
THUMB_LUT: tuple[Handler | None, ...] = build_thumb_lut(THUMB_PATTERNS)