"""Thumb memory transfer instructions: PUSH/POP, LDMIA/STMIA and LDR/STR forms."""

from __future__ import annotations

from gbacore.cpu import MASK32, AccessType, Core, sign_extend

_NS = AccessType.NON_SEQUENTIAL
_SEQ = AccessType.SEQUENTIAL


def _bit(value: int, n: int) -> bool:
    return bool((value >> n) & 1)


def _low_registers(rlist: int) -> list[int]:
    return [i for i in range(8) if _bit(rlist, i)]


def _finish(core: Core) -> None:
    core.pc += 2
    core.prefetch_access_type = _NS


def push(core: Core, op: int) -> None:
    """Execute PUSH {rlist[, LR]}."""
    bus = core.bus
    core.pc += 2
    core.prefetch_access_type = _NS

    # An empty list stores PC and moves SP as if all 16 registers were pushed.
    if not op & 0x1FF:
        core.sp -= 0x40
        bus.write32(core.sp, core.pc, _NS)
        return

    if _bit(op, 8):
        core.sp -= 4
        bus.write32(core.sp, core.lr, _NS)

    for i in reversed(_low_registers(op)):
        core.sp -= 4
        bus.write32(core.sp, core.registers[i], _SEQ)


def pop(core: Core, op: int) -> None:
    """Execute POP {rlist[, PC]}."""
    bus = core.bus
    core.pc += 2
    core.prefetch_access_type = _NS

    # An empty list loads PC and moves SP as if all 16 registers were popped.
    if not op & 0x1FF:
        core.pc = bus.read32(core.sp, _NS)
        core.reload_pipeline()
        core.sp += 0x40
        return

    access = _NS
    for i in _low_registers(op):
        core.registers[i] = bus.read32(core.sp, access) & MASK32
        core.sp += 4
        access = _SEQ

    core.idle()

    if _bit(op, 8):
        core.pc = bus.read32(core.sp, access)
        core.sp += 4
        core.reload_pipeline()


def stmia(core: Core, op: int) -> None:
    """Execute STMIA Rb!, {rlist}."""
    regs = core.registers
    bus = core.bus
    rb = (op >> 8) & 0x7
    core.pc += 2
    core.prefetch_access_type = _NS

    if not op & 0xFF:
        bus.write32(regs[rb], core.pc, _NS)
        regs[rb] = (regs[rb] + 0x40) & MASK32
        return

    indices = _low_registers(op)
    count = 4 * len(indices)
    addr = regs[rb]

    # Rb stored first in the list keeps its old value; later, the new one.
    access = _NS
    for position, i in enumerate(indices):
        bus.write32(addr, regs[i], access)
        addr = (addr + 4) & MASK32
        access = _SEQ
        if position == 0:
            regs[rb] = (regs[rb] + count) & MASK32


def ldmia(core: Core, op: int) -> None:
    """Execute LDMIA Rb!, {rlist}."""
    regs = core.registers
    bus = core.bus
    rb = (op >> 8) & 0x7
    core.pc += 2
    core.prefetch_access_type = _NS

    if not op & 0xFF:
        core.pc = bus.read32(regs[rb], _NS)
        core.reload_pipeline()
        regs[rb] = (regs[rb] + 0x40) & MASK32
        return

    indices = _low_registers(op)
    addr = regs[rb]
    regs[rb] = (regs[rb] + 4 * len(indices)) & MASK32
    core.idle()

    access = _NS
    for i in indices:
        regs[i] = bus.read32(addr, access) & MASK32
        addr = (addr + 4) & MASK32
        access = _SEQ


def _word_byte(core: Core, rd: int, addr: int, load: bool, byte: bool) -> None:
    bus = core.bus
    addr &= MASK32
    if load:
        if byte:
            core.registers[rd] = bus.read8(addr, _NS)
        else:
            core.registers[rd] = bus.read32_ror(addr, _NS) & MASK32
        core.idle()
    elif byte:
        bus.write8(addr, core.registers[rd], _NS)
    else:
        bus.write32(addr, core.registers[rd], _NS)


def sdt_imm(core: Core, op: int) -> None:
    """Execute LDR/STR/LDRB/STRB Rd, [Rb, #imm5]; word offsets are scaled by 4."""
    rd = op & 0x7
    rb = (op >> 3) & 0x7
    offset = (op >> 6) & 0x1F
    byte = _bit(op, 12)
    if not byte:
        offset <<= 2
    _word_byte(core, rd, core.registers[rb] + offset, _bit(op, 11), byte)
    _finish(core)


def sdt_wb_reg(core: Core, op: int) -> None:
    """Execute LDR/STR/LDRB/STRB Rd, [Rb, Ro]."""
    regs = core.registers
    rd = op & 0x7
    rb = (op >> 3) & 0x7
    ro = (op >> 6) & 0x7
    _word_byte(core, rd, regs[rb] + regs[ro], _bit(op, 11), _bit(op, 10))
    _finish(core)


def sdt_h_imm(core: Core, op: int) -> None:
    """Execute LDRH/STRH Rd, [Rb, #imm5*2]."""
    regs = core.registers
    bus = core.bus
    rd = op & 0x7
    rb = (op >> 3) & 0x7
    addr = (regs[rb] + (((op >> 6) & 0x1F) << 1)) & MASK32

    if _bit(op, 11):
        regs[rd] = bus.read16_ror(addr, _NS) & MASK32
        core.idle()
    else:
        bus.write16(addr, regs[rd] & 0xFFFF, _NS)
    _finish(core)


def sdt_sbh_reg(core: Core, op: int) -> None:
    """Execute STRH, LDRH, LDSB or LDSH Rd, [Rb, Ro]."""
    regs = core.registers
    bus = core.bus
    rd = op & 0x7
    rb = (op >> 3) & 0x7
    ro = (op >> 6) & 0x7
    addr = (regs[rb] + regs[ro]) & MASK32
    kind = (int(_bit(op, 10)) << 1) | int(_bit(op, 11))

    if kind == 0b00:
        bus.write16(addr, regs[rd], _NS)
    elif kind == 0b01:
        regs[rd] = bus.read16_ror(addr, _NS) & MASK32
        core.idle()
    elif kind == 0b10:
        regs[rd] = sign_extend(bus.read8(addr, _NS), 8) & MASK32
        core.idle()
    else:
        # A misaligned signed halfword load reads a signed byte.
        if addr & 1:
            regs[rd] = sign_extend(bus.read8(addr, _NS), 8) & MASK32
        else:
            regs[rd] = sign_extend(bus.read16_ror(addr, _NS) & 0xFFFF, 16) & MASK32
        core.idle()
    _finish(core)


def ldr_pc(core: Core, op: int) -> None:
    """Execute LDR Rd, [PC, #imm8*4] with PC word-aligned."""
    rd = (op >> 8) & 0x7
    offset = (op & 0xFF) << 2
    addr = ((core.pc & 0xFFFFFFFC) + offset) & MASK32
    core.registers[rd] = core.bus.read32_ror(addr, _NS) & MASK32
    _finish(core)
    core.idle()


def sdt_sp(core: Core, op: int) -> None:
    """Execute LDR/STR Rd, [SP, #imm8*4]."""
    rd = (op >> 8) & 0x7
    addr = (core.sp + ((op & 0xFF) << 2)) & MASK32
    if _bit(op, 11):
        core.registers[rd] = core.bus.read32_ror(addr, _NS) & MASK32
        core.idle()
    else:
        core.bus.write32(addr, core.registers[rd], _NS)
    _finish(core)