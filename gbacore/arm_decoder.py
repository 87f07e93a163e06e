"""ARM instruction patterns, the opcode lookup table and the condition table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterable, Sequence

from gbacore.arm_alu import data_processing
from gbacore.arm_ops import (
    branch,
    branch_exchange,
    mrs,
    msr,
    multiply,
    multiply_long,
    software_interrupt,
)
from gbacore.arm_transfer import (
    block_data_transfer,
    halfword_data_transfer,
    single_data_transfer,
    swap,
)

Handler = Callable[[Any, int], None]

_ARM_LUT_BITS = 0x0FF000F0
ARM_LUT_SIZE = 4096
CONDITION_LUT_SIZE = 256


class DecodeError(Exception):
    """An instruction table is malformed or ambiguous."""


class Condition(IntEnum):
    """ARM condition codes."""

    EQ = 0x0
    NE = 0x1
    CS = 0x2
    CC = 0x3
    MI = 0x4
    PL = 0x5
    VS = 0x6
    VC = 0x7
    HI = 0x8
    LS = 0x9
    GE = 0xA
    LT = 0xB
    GT = 0xC
    LE = 0xD
    AL = 0xE
    NV = 0xF


@dataclass(frozen=True)
class InstructionPattern:
    """A decoded bit pattern: ``op`` matches when ``op & mask == value``."""

    name: str
    mask: int
    value: int
    handler: Handler | None
    width: int

    def matches(self, op: int) -> bool:
        return op & self.mask == self.value


def decode_pattern(name: str, pattern: str, handler: Handler | None, width: int) -> InstructionPattern:
    """Turn a readable pattern such as ``"xxxx_101_0_..."`` into mask and value.

    ``0`` and ``1`` are fixed bits, ``_`` is a separator, anything else matches
    either bit value.
    """
    bits = pattern.replace("_", "")
    if len(bits) != width:
        raise DecodeError(f'instruction "{name}" doesn\'t have a length of {width} bits')
    mask = 0
    value = 0
    for char in bits:
        mask <<= 1
        value <<= 1
        if char in "01":
            mask |= 1
            value |= int(char)
    return InstructionPattern(name, mask, value, handler, width)


def check_collisions(patterns: Sequence[InstructionPattern]) -> None:
    """Raise if some pair of patterns could match the same instruction."""
    for i, current in enumerate(patterns):
        for previous in patterns[:i]:
            if not ((current.value ^ previous.value) & current.mask & previous.mask):
                raise DecodeError(
                    f'instruction "{current.name}" collides with "{previous.name}".'
                )


def arm_lut_index(op: int) -> int:
    """Index of ``op`` in the ARM lookup table (bits 27-20 and 7-4)."""
    return ((op >> 16) & 0xFF0) | ((op >> 4) & 0x00F)


def build_arm_lut(patterns: Sequence[InstructionPattern]) -> tuple[Handler | None, ...]:
    """Map every lookup index to the handler of the single pattern that fits it."""
    check_collisions(patterns)
    lut: list[Handler | None] = [None] * ARM_LUT_SIZE
    matched: list[InstructionPattern | None] = [None] * ARM_LUT_SIZE
    for index in range(ARM_LUT_SIZE):
        op = ((index & 0xFF0) << 16) | ((index & 0xF) << 4)
        for pattern in patterns:
            if op & pattern.mask & _ARM_LUT_BITS == pattern.value & _ARM_LUT_BITS:
                if matched[index] is not None:
                    raise DecodeError(
                        f'lookup index 0x{index:03x} is ambiguous between '
                        f'"{matched[index].name}" and "{pattern.name}"'
                    )
                matched[index] = pattern
                lut[index] = pattern.handler
    return tuple(lut)


def _condition_holds(cond: int, n: bool, z: bool, c: bool, v: bool) -> bool:
    checks = {
        Condition.EQ: z,
        Condition.NE: not z,
        Condition.CS: c,
        Condition.CC: not c,
        Condition.MI: n,
        Condition.PL: not n,
        Condition.VS: v,
        Condition.VC: not v,
        Condition.HI: c and not z,
        Condition.LS: not c or z,
        Condition.GE: n == v,
        Condition.LT: n != v,
        Condition.GT: not z and n == v,
        Condition.LE: z or n != v,
        Condition.AL: True,
    }
    return checks.get(Condition(cond), False)


def build_condition_lut() -> tuple[bool, ...]:
    """Whether each condition passes, indexed by ``(NZCV << 4) | condition``."""
    return tuple(
        _condition_holds(
            index & 0xF,
            n=bool(index & 0x80),
            z=bool(index & 0x40),
            c=bool(index & 0x20),
            v=bool(index & 0x10),
        )
        for index in range(CONDITION_LUT_SIZE)
    )


def _alu_instructions() -> Iterable[tuple[str, str, Handler]]:
    names = (
        "and", "eor", "sub", "rsb", "add", "adc", "sbc", "rsc",
        "tst", "teq", "cmp", "cmn", "orr", "mov", "bic", "mvn",
    )
    for code, name in enumerate(names):
        opcode = f"{code:04b}"
        s = "1" if 0x8 <= code <= 0xB else "s"
        yield f"{name}_reg1", f"xxxx_000_{opcode}_{s}_xxxxxxxxxxxxxxx0xxxx", data_processing
        yield f"{name}_reg2", f"xxxx_000_{opcode}_{s}_xxxxxxxxxxxx0xx1xxxx", data_processing
        yield f"{name}_val", f"xxxx_001_{opcode}_{s}_xxxxxxxxxxxxxxxxxxxx", data_processing


ARM_INSTRUCTIONS: tuple[tuple[str, str, Handler], ...] = (
    *_alu_instructions(),
    # PSR transfers
    ("mrs", "xxxx_00010_p_001111_dddd_000000000000", mrs),
    ("msr_imm", "xxxx_00110_p_10_xxxx_1111_rrrr_iiiiiiii", msr),
    ("msr_reg", "xxxx_00010_p_10_xxxx_1111_00000000_mmmm", msr),
    # Multiply and multiply-accumulate
    ("mul", "xxxx_000000_0_s_ddddnnnnssss_1001_mmmm", multiply),
    ("mla", "xxxx_000000_1_s_ddddnnnnssss_1001_mmmm", multiply),
    # Multiply long
    ("umull", "xxxx_00001_00_s_ddddnnnnssss_1001_mmmm", multiply_long),
    ("umlal", "xxxx_00001_01_s_ddddnnnnssss_1001_mmmm", multiply_long),
    ("imull", "xxxx_00001_10_s_ddddnnnnssss_1001_mmmm", multiply_long),
    ("imlal", "xxxx_00001_11_s_ddddnnnnssss_1001_mmmm", multiply_long),
    # Branch
    ("b", "xxxx_101_0_xxxxxxxxxxxxxxxxxxxxxxxx", branch),
    ("bl", "xxxx_101_1_xxxxxxxxxxxxxxxxxxxxxxxx", branch),
    ("bx", "xxxx_0001_0010_1111_1111_1111_0001_xxxx", branch_exchange),
    # Block data transfer
    ("push", "xxxx_100_pusw0_xxxx_xxxxxxxxxxxxxxxx", block_data_transfer),
    ("pop", "xxxx_100_pusw1_xxxx_xxxxxxxxxxxxxxxx", block_data_transfer),
    # Single data transfer
    ("str", "xxxx_01_ipubw0_xxxx_xxxx_xxxxxxxxxxxx", single_data_transfer),
    ("ldr", "xxxx_01_ipubw1_xxxx_xxxx_xxxxxxxxxxxx", single_data_transfer),
    # Halfword and signed data transfer
    ("strh_imm", "xxxx_000_pu0w0_xxxx_xxxx_0000_1011xxxx", halfword_data_transfer),
    ("strh_reg", "xxxx_000_pu1w0_xxxx_xxxx_xxxx_1011xxxx", halfword_data_transfer),
    ("strsb_imm", "xxxx_000_pu0w0_xxxx_xxxx_0000_1101xxxx", halfword_data_transfer),
    ("strsb_reg", "xxxx_000_pu1w0_xxxx_xxxx_xxxx_1101xxxx", halfword_data_transfer),
    ("strsh_imm", "xxxx_000_pu0w0_xxxx_xxxx_0000_1111xxxx", halfword_data_transfer),
    ("strsh_reg", "xxxx_000_pu1w0_xxxx_xxxx_xxxx_1111xxxx", halfword_data_transfer),
    ("ldrh_imm", "xxxx_000_pu0w1_xxxx_xxxx_0000_1011xxxx", halfword_data_transfer),
    ("ldrh_reg", "xxxx_000_pu1w1_xxxx_xxxx_xxxx_1011xxxx", halfword_data_transfer),
    ("ldrsb_imm", "xxxx_000_pu0w1_xxxx_xxxx_0000_1101xxxx", halfword_data_transfer),
    ("ldrsb_reg", "xxxx_000_pu1w1_xxxx_xxxx_xxxx_1101xxxx", halfword_data_transfer),
    ("ldrsh_imm", "xxxx_000_pu0w1_xxxx_xxxx_0000_1111xxxx", halfword_data_transfer),
    ("ldrsh_reg", "xxxx_000_pu1w1_xxxx_xxxx_xxxx_1111xxxx", halfword_data_transfer),
    # Software interrupt
    ("swi", "xxxx_1111_xxxxxxxxxxxxxxxxxxxxxxxx", software_interrupt),
    # Single data swap
    ("swp", "xxxx_00010_b_00nnnndddd00001001mmmm", swap),
)

ARM_PATTERNS: tuple[InstructionPattern, ...] = tuple(
    decode_pattern(name, pattern, handler, 32) for name, pattern, handler in ARM_INSTRUCTIONS
)
ARM_LUT: tuple[Handler | None, ...] = build_arm_lut(ARM_PATTERNS)
CONDITION_LUT: tuple[bool, ...] = build_condition_lut()