import pytest

from gbacore.cpu import AccessType, Core, RamBus
from gbacore.thumb_logical import asr, lsl, lsr


def make_core():
    core = Core(RamBus(0x1000))
    core.cpsr.thumb = True
    return core


def shift_op(base, shift, rs, rd):
    return base | (shift << 6) | (rs << 3) | rd


LSL, LSR, ASR = 0x0000, 0x0800, 0x1000


@pytest.mark.parametrize("shift", [1, 4, 16, 31])
def test_lsl_then_lsr_round_trip(shift):
    core = make_core()
    value = 0x1
    core.registers[1] = value
    lsl(core, shift_op(LSL, shift, 1, 2))
    lsr(core, shift_op(LSR, shift, 2, 3))
    assert core.registers[3] == value


@pytest.mark.parametrize("carry", [True, False])
def test_lsl_by_zero_moves_and_keeps_carry(carry):
    core = make_core()
    core.registers[1] = 0x80000000
    core.cpsr.carry = carry
    lsl(core, shift_op(LSL, 0, 1, 0))
    assert core.registers[0] == 0x80000000
    assert core.cpsr.carry is carry
    assert core.cpsr.negative


@pytest.mark.parametrize("shift", [1, 5, 31])
def test_lsl_carry_is_last_bit_shifted_out(shift):
    core = make_core()
    value = 1 << (32 - shift)
    core.registers[1] = value
    lsl(core, shift_op(LSL, shift, 1, 0))
    assert core.cpsr.carry
    assert core.registers[0] == 0
    assert core.cpsr.zero


@pytest.mark.parametrize("value", [0x80000000, 0x7FFFFFFF])
def test_lsr_zero_encodes_32(value):
    core = make_core()
    core.registers[1] = value
    lsr(core, shift_op(LSR, 0, 1, 0))
    assert core.registers[0] == 0
    assert core.cpsr.zero
    assert core.cpsr.carry is bool(value >> 31)


@pytest.mark.parametrize("value", [0x80000000, 0x7FFFFFFF])
def test_asr_zero_encodes_32(value):
    core = make_core()
    core.registers[1] = value
    asr(core, shift_op(ASR, 0, 1, 0))
    sign = bool(value >> 31)
    assert core.registers[0] == (0xFFFFFFFF if sign else 0)
    assert core.cpsr.carry is sign
    assert core.cpsr.negative is sign


@pytest.mark.parametrize("shift", [1, 7, 30])
def test_asr_preserves_sign(shift):
    core = make_core()
    core.registers[1] = 0x80000000
    asr(core, shift_op(ASR, shift, 1, 0))
    assert core.cpsr.negative
    assert core.registers[0] >> (31 - shift) == (1 << (shift + 1)) - 1


@pytest.mark.parametrize("shift", [1, 8, 20])
def test_asr_matches_lsr_for_positive_values(shift):
    core = make_core()
    core.registers[1] = 0x12345678
    asr(core, shift_op(ASR, shift, 1, 0))
    lsr(core, shift_op(LSR, shift, 1, 2))
    assert core.registers[0] == core.registers[2]


@pytest.mark.parametrize("handler,base", [(lsl, LSL), (lsr, LSR), (asr, ASR)])
def test_shifts_advance_pc_sequentially(handler, base):
    core = make_core()
    core.registers[1] = 3
    pc = core.pc
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL
    handler(core, shift_op(base, 1, 1, 0))
    assert core.pc == pc + 2
    assert core.prefetch_access_type == AccessType.SEQUENTIAL
    assert core.registers[1] == 3