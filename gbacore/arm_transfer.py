"""ARM memory transfer instructions: LDM/STM, LDR/STR, LDRH/STRH and SWP."""

from __future__ import annotations

from gbacore.cpu import MASK32, AccessType, Core, Mode, sign_extend


def _bit(value: int, n: int) -> bool:
    return bool((value >> n) & 1)


def block_data_transfer(core: Core, op: int) -> None:
    """Execute LDM or STM."""
    regs = core.registers
    bus = core.bus
    rn = (op >> 16) & 0xF
    load = _bit(op, 20)
    wb = _bit(op, 21)
    user_bank = _bit(op, 22)
    pre = _bit(op, 24)

    rlist = op & 0xFFFF
    count = bin(rlist).count("1")
    # An empty list transfers PC but moves the base as if all 16 were transferred.
    if count == 0:
        rlist = 0x8000
        count = 16

    base = regs[rn]
    pc_in_rlist = _bit(rlist, 15)

    if _bit(op, 23):
        base_new = (base + count * 4) & MASK32
    else:
        pre = not pre
        base = (base - count * 4) & MASK32
        base_new = base

    core.pc += 4
    core.prefetch_access_type = AccessType.NON_SEQUENTIAL

    mode_switch = user_bank and (not pc_in_rlist or not load)
    mode_old = core.cpsr.mode
    if mode_switch:
        core.switch_mode(Mode.USR)

    first = True
    access = AccessType.NON_SEQUENTIAL
    for i in (n for n in range(16) if _bit(rlist, n)):
        if pre:
            base = (base + 4) & MASK32
        if load:
            if first and wb:
                regs[rn] = base_new
                first = False
            regs[i] = bus.read32(base, access) & MASK32
        else:
            bus.write32(base, regs[i], access)
            if first and wb:
                regs[rn] = base_new
                first = False
        if not pre:
            base = (base + 4) & MASK32
        access = AccessType.SEQUENTIAL

    if load:
        core.idle()
        if pc_in_rlist:
            if user_bank:
                spsr = core.spsr_get(core.cpsr.mode)
                core.switch_mode(spsr.mode)
                core.cpsr = spsr
            core.reload_pipeline()

    if mode_switch:
        core.switch_mode(mode_old)


def _addresses(op: int, base: int, offset: int) -> tuple[int, int]:
    addr = (base + offset if _bit(op, 23) else base - offset) & MASK32
    effective = addr if _bit(op, 24) else base
    return addr, effective


def _writes_back(op: int) -> bool:
    return not _bit(op, 24) or _bit(op, 21)


def single_data_transfer(core: Core, op: int) -> None:
    """Execute LDR, STR, LDRB or STRB."""
    regs = core.registers
    bus = core.bus
    rd = (op >> 12) & 0xF
    rn = (op >> 16) & 0xF

    core.prefetch_access_type = AccessType.NON_SEQUENTIAL
    base = regs[rn]

    if _bit(op, 25):
        offset, _ = core.compute_shift((op >> 4) & 0xFF, regs[op & 0xF])
    else:
        offset = op & 0xFFF

    # A stored PC reads as the instruction address plus 12.
    core.pc += 4

    addr, effective = _addresses(op, base, offset)
    byte = _bit(op, 22)

    if _bit(op, 20):
        if byte:
            value = bus.read8(effective, AccessType.NON_SEQUENTIAL)
        else:
            value = bus.read32_ror(effective, AccessType.NON_SEQUENTIAL)
        if _writes_back(op):
            regs[rn] = addr
        regs[rd] = value & MASK32
        core.idle()
        if rd == 15:
            core.reload_pipeline()
    else:
        if byte:
            bus.write8(effective, regs[rd], AccessType.NON_SEQUENTIAL)
        else:
            bus.write32(effective, regs[rd], AccessType.NON_SEQUENTIAL)
        if _writes_back(op):
            regs[rn] = addr


def halfword_data_transfer(core: Core, op: int) -> None:
    """Execute LDRH, STRH, LDRSB or LDRSH."""
    regs = core.registers
    bus = core.bus
    rd = (op >> 12) & 0xF
    rn = (op >> 16) & 0xF
    base = regs[rn]

    if _bit(op, 22):
        offset = (((op >> 8) & 0xF) << 4) | (op & 0xF)
    else:
        offset = regs[op & 0xF]

    core.prefetch_access_type = AccessType.NON_SEQUENTIAL
    core.pc += 4

    addr, effective = _addresses(op, base, offset)
    kind = (op >> 5) & 0b11

    if _bit(op, 20):
        if kind == 0b01:
            value = bus.read16_ror(effective, AccessType.NON_SEQUENTIAL)
        elif kind == 0b10:
            value = sign_extend(bus.read8(effective, AccessType.NON_SEQUENTIAL), 8)
        elif kind == 0b11:
            # A misaligned signed halfword load reads a signed byte.
            if effective & 1:
                value = sign_extend(bus.read8(effective, AccessType.NON_SEQUENTIAL), 8)
            else:
                value = sign_extend(bus.read16(effective, AccessType.NON_SEQUENTIAL), 16)
        else:
            raise ValueError(f"unsupported halfword transfer sub-operation (op=0x{op:08x})")
        core.idle()
        if _writes_back(op):
            regs[rn] = addr
        regs[rd] = value & MASK32
    else:
        if kind != 0b01:
            raise ValueError(f"unsupported halfword transfer sub-operation (op=0x{op:08x})")
        bus.write16(effective, regs[rd], AccessType.NON_SEQUENTIAL)
        if _writes_back(op):
            regs[rn] = addr


def swap(core: Core, op: int) -> None:
    """Execute SWP or SWPB."""
    regs = core.registers
    bus = core.bus
    rm = op & 0xF
    rd = (op >> 12) & 0xF
    rn = (op >> 16) & 0xF
    addr = regs[rn]

    if _bit(op, 22):
        old = bus.read8(addr, AccessType.NON_SEQUENTIAL)
        bus.write8(addr, regs[rm], AccessType.NON_SEQUENTIAL)
    else:
        old = bus.read32_ror(addr, AccessType.NON_SEQUENTIAL)
        bus.write32(addr, regs[rm], AccessType.NON_SEQUENTIAL)
    regs[rd] = old & MASK32

    core.idle()

    if rd == 15:
        core.reload_pipeline()
    else:
        core.pc += 4
        core.prefetch_access_type = AccessType.NON_SEQUENTIAL