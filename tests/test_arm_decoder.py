import pytest

from gbacore.arm_alu import data_processing
from gbacore.arm_decoder import (
    ARM_LUT,
    ARM_PATTERNS,
    CONDITION_LUT,
    Condition,
    DecodeError,
    arm_lut_index,
    build_arm_lut,
    build_condition_lut,
    check_collisions,
    decode_pattern,
)
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


def test_decode_pattern_mask_and_value():
    pattern = decode_pattern("demo", "1x0_1", None, 4)
    assert pattern.mask == 0b1011
    assert pattern.value == 0b1001
    assert pattern.matches(0b1101)
    assert not pattern.matches(0b1111)


def test_decode_pattern_wrong_width():
    with pytest.raises(DecodeError):
        decode_pattern("short", "xxxx_0000", None, 32)


def test_check_collisions_detects_overlap():
    patterns = [
        decode_pattern("a", "1xxx", None, 4),
        decode_pattern("b", "x1xx", None, 4),
    ]
    with pytest.raises(DecodeError, match='"b" collides with "a"'):
        check_collisions(patterns)


def test_check_collisions_accepts_disjoint():
    patterns = [
        decode_pattern("a", "1xxx", None, 4),
        decode_pattern("b", "0xxx", None, 4),
    ]
    check_collisions(patterns)
    assert patterns[0].matches(0b1010)
    assert not patterns[1].matches(0b1010)
    assert patterns[1].matches(0b0101)
    assert not patterns[0].matches(0b0101)


def test_arm_lut_index_ignores_other_bits():
    assert arm_lut_index(0xF00FFF0F) == 0
    assert 0 <= arm_lut_index(0xFFFFFFFF) < len(ARM_LUT)


def test_arm_lut_index_round_trip():
    for index in (0x000, 0x123, 0xABC, 0xFFF):
        op = ((index & 0xFF0) << 16) | ((index & 0xF) << 4)
        assert arm_lut_index(op) == index


def test_all_arm_patterns_are_32_bits():
    assert ARM_PATTERNS
    assert all(p.width == 32 for p in ARM_PATTERNS)
    assert len({p.name for p in ARM_PATTERNS}) == len(ARM_PATTERNS)
    check_collisions(ARM_PATTERNS)
    rebuilt = build_arm_lut(ARM_PATTERNS)
    assert list(rebuilt) == list(ARM_LUT)


@pytest.mark.parametrize(
    "op, handler",
    [
        (0xE0810002, data_processing),  # ADD r0, r1, r2
        (0xE3A00001, data_processing),  # MOV r0, #1
        (0xE1500001, data_processing),  # CMP r0, r1
        (0xEA000000, branch),
        (0xEB000000, branch),
        (0xE12FFF11, branch_exchange),
        (0xEF000000, software_interrupt),
        (0xE0000291, multiply),
        (0xE0810392, multiply_long),
        (0xE1010092, swap),
        (0xE5910000, single_data_transfer),
        (0xE8BD0001, block_data_transfer),
        (0xE1D000B0, halfword_data_transfer),
        (0xE10F0000, mrs),
        (0xE129F000, msr),
        (0xE328F4F0, msr),
    ],
)
def test_arm_lut_dispatch(op, handler):
    assert ARM_LUT[arm_lut_index(op)] is handler


def test_build_arm_lut_rejects_ambiguity():
    patterns = [
        decode_pattern("lo", "xxxx_00000000_xxxxxxxxxxxx_xxxx_xxx0", None, 32),
        decode_pattern("hi", "xxxx_00000000_xxxxxxxxxxxx_xxxx_xxx1", None, 32),
    ]
    check_collisions(patterns)
    with pytest.raises(DecodeError, match="ambiguous"):
        build_arm_lut(patterns)


def test_build_arm_lut_leaves_unmatched_empty():
    handler = object()
    patterns = [decode_pattern("only", "xxxx_11111111_xxxxxxxxxxxx_1111_xxxx", handler, 32)]
    lut = build_arm_lut(patterns)
    assert lut[0xFFF] is handler
    assert sum(entry is not None for entry in lut) == 1


def test_condition_lut_matches_builder():
    assert build_condition_lut() == CONDITION_LUT
    assert len(CONDITION_LUT) == 256


@pytest.mark.parametrize("flags", range(16))
def test_always_and_never(flags):
    lut = build_condition_lut()
    assert lut[(flags << 4) | Condition.AL]
    assert not lut[(flags << 4) | Condition.NV]


@pytest.mark.parametrize(
    "cond, inverse",
    [
        (Condition.EQ, Condition.NE),
        (Condition.CS, Condition.CC),
        (Condition.MI, Condition.PL),
        (Condition.VS, Condition.VC),
        (Condition.HI, Condition.LS),
        (Condition.GE, Condition.LT),
        (Condition.GT, Condition.LE),
    ],
)
def test_condition_pairs_are_complementary(cond, inverse):
    lut = build_condition_lut()
    for flags in range(16):
        assert lut[(flags << 4) | cond] != lut[(flags << 4) | inverse]


def test_condition_single_flags():
    lut = build_condition_lut()
    n, z, c, v = 0x8, 0x4, 0x2, 0x1
    assert lut[(z << 4) | Condition.EQ]
    assert not lut[Condition.EQ]
    assert lut[(c << 4) | Condition.CS]
    assert lut[(n << 4) | Condition.MI]
    assert lut[(v << 4) | Condition.VS]
    assert lut[((n | v) << 4) | Condition.GE]
    assert not lut[((c | z) << 4) | Condition.HI]