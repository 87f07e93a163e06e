"""ARM branch, multiply, PSR transfer and software interrupt instructions."""

from __future__ import annotations

from gbacore.cpu import MASK32, AccessType, Core, Mode, Psr, Vector, ror32, sign_extend

_MASK64 = (1 << 64) - 1


def _bit(value: int, n: int) -> bool:
    return bool((value >> n) & 1)


def branch(core: Core, op: int) -> None:
    """Execute B or BL."""
    offset = sign_extend(op & 0xFFFFFF, 24) << 2
    if _bit(op, 24):
        core.lr = core.pc - 4
    core.pc = core.pc + offset
    core.reload_pipeline()


def branch_exchange(core: Core, op: int) -> None:
    """Execute BX, entering Thumb state when bit 0 of the target is set."""
    addr = core.registers[op & 0xF]
    core.pc = addr & 0xFFFFFFFE
    core.cpsr.thumb = bool(addr & 1)
    core.reload_pipeline()


def multiply_cycles(rs: int, signed: bool) -> int:
    """Internal cycles the multiplier spends on the operand ``rs``.

    Each significant byte above the lowest adds a cycle; a signed multiply
    also stops early on a run of leading one bits.
    """
    rs &= MASK32
    cycles = 1
    mask = 0xFFFFFF00
    for _ in range(4):
        rs &= mask
        if rs == 0 or (signed and rs == mask):
            break
        mask = (mask << 8) & MASK32
        cycles += 1
    return cycles


def multiply(core: Core, op: int) -> None:
    """Execute MUL or MLA."""
    regs = core.registers
    rm = op & 0xF
    rs = (op >> 8) & 0xF
    rn = (op >> 12) & 0xF
    rd = (op >> 16) & 0xF

    # Done first, in case Rs is also Rd.
    core.idle_for(multiply_cycles(regs[rs], True))

    if _bit(op, 21):
        regs[rd] = (regs[rm] * regs[rs] + regs[rn]) & MASK32
        core.idle()
    else:
        regs[rd] = (regs[rm] * regs[rs]) & MASK32

    if _bit(op, 20):
        core.cpsr.zero = regs[rd] == 0
        core.cpsr.negative = _bit(regs[rd], 31)

    core.pc += 4
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL


def multiply_long(core: Core, op: int) -> None:
    """Execute UMULL, UMLAL, SMULL or SMLAL."""
    regs = core.registers
    core.prefetch_access_type = AccessType.SEQUENTIAL

    rm = op & 0xF
    rs = (op >> 8) & 0xF
    rd_lo = (op >> 12) & 0xF
    rd_hi = (op >> 16) & 0xF
    accumulate = _bit(op, 21)
    signed = _bit(op, 22)

    core.idle()
    core.idle_for(multiply_cycles(regs[rs], signed))

    if signed:
        product = sign_extend(regs[rm], 32) * sign_extend(regs[rs], 32)
    else:
        product = regs[rm] * regs[rs]

    if accumulate:
        core.idle()
        acc = regs[rd_lo] | (regs[rd_hi] << 32)
        if signed:
            acc = sign_extend(acc, 64)
        product += acc

    result = product & _MASK64
    regs[rd_lo] = result & MASK32
    regs[rd_hi] = (result >> 32) & MASK32

    if _bit(op, 20):
        core.cpsr.zero = regs[rd_hi] == 0 and regs[rd_lo] == 0
        core.cpsr.negative = _bit(regs[rd_hi], 31)

    core.pc += 4
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL


def mrs(core: Core, op: int) -> None:
    """Execute MRS: copy the CPSR or the current SPSR into a register."""
    rd = (op >> 12) & 0xF
    if _bit(op, 22):
        core.registers[rd] = core.spsr_get(core.cpsr.mode).raw
    else:
        core.registers[rd] = core.cpsr.raw
    core.pc += 4
    core.prefetch_access_type = AccessType.SEQUENTIAL


def msr(core: Core, op: int) -> None:
    """Execute MSR: write a register or immediate into selected PSR fields."""
    if _bit(op, 25):
        value = ror32(op & 0xFF, ((op >> 8) & 0xF) * 2)
    else:
        value = core.registers[op & 0xF]

    mask = 0
    for field_bit, field_mask in enumerate((0x000000FF, 0x0000FF00, 0x00FF0000, 0xFF000000)):
        if _bit(op, 16 + field_bit):
            mask |= field_mask

    if _bit(op, 22):
        spsr = core.spsr_get(core.cpsr.mode)
        if spsr.raw != core.cpsr.raw:
            spsr.raw = (spsr.raw & ~mask & MASK32) | (value & mask)
            core.spsr_set(core.cpsr.mode, spsr)
    else:
        # User mode may only change the condition flags.
        if core.cpsr.mode == Mode.USR:
            mask &= 0xFF000000
        new_cpsr = Psr((core.cpsr.raw & ~mask & MASK32) | (value & mask))
        core.switch_mode(new_cpsr.mode)
        core.cpsr = new_cpsr

    core.pc += 4
    core.prefetch_access_type = AccessType.SEQUENTIAL


def software_interrupt(core: Core, op: int) -> None:
    """Execute SWI: take the supervisor call exception."""
    core.interrupt(Vector.SVC, Mode.SVC)