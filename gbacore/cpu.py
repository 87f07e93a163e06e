"""ARM7TDMI register file, mode banking, pipeline refill and barrel shifter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

MASK32 = 0xFFFFFFFF

IRQ_STACK = 0x03007FA0
SVC_STACK = 0x03007FE0
SYS_STACK = 0x03007F00


def ror32(value: int, amount: int) -> int:
    """Rotate a 32-bit value right by ``amount`` (taken modulo 32)."""
    value &= MASK32
    amount &= 31
    if not amount:
        return value
    return ((value >> amount) | (value << (32 - amount))) & MASK32


def _signed32(value: int) -> int:
    value &= MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _out_of_int32(value: int) -> bool:
    return not -(1 << 31) <= value < (1 << 31)


def uadd32(a: int, b: int, carry: int) -> bool:
    """Carry out of the unsigned 32-bit sum ``a + b + carry``."""
    return (a & MASK32) + (b & MASK32) + int(carry) > MASK32


def iadd32(a: int, b: int, carry: int) -> bool:
    """Signed overflow of the 32-bit sum ``a + b + carry``."""
    return _out_of_int32(_signed32(a) + _signed32(b) + int(carry))


def usub32(a: int, b: int, borrow: int) -> bool:
    """ARM carry (no borrow) of the unsigned difference ``a - b - borrow``."""
    return (a & MASK32) >= (b & MASK32) + int(borrow)


def isub32(a: int, b: int, borrow: int) -> bool:
    """Signed overflow of the 32-bit difference ``a - b - borrow``."""
    return _out_of_int32(_signed32(a) - _signed32(b) - int(borrow))


def sign_extend(value: int, bits: int) -> int:
    """Interpret the low ``bits`` bits of ``value`` as a signed integer."""
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


class Mode(IntEnum):
    """Processor modes, as encoded in the CPSR mode bits."""

    USR = 0x10
    FIQ = 0x11
    IRQ = 0x12
    SVC = 0x13
    ABT = 0x17
    UND = 0x1B
    SYS = 0x1F


class Vector(IntEnum):
    """Exception vector addresses."""

    RESET = 0x00
    UND = 0x04
    SVC = 0x08
    PABT = 0x0C
    DABT = 0x10
    IRQ = 0x18
    FIQ = 0x1C


class CoreState(IntEnum):
    RUN = 0
    HALT = 1
    STOP = 2


class AccessType(IntEnum):
    NON_SEQUENTIAL = 0
    SEQUENTIAL = 1


def _bit_flag(bit: int, doc: str) -> property:
    def read(self: Psr) -> bool:
        return bool((self.raw >> bit) & 1)

    def write(self: Psr, flag: bool) -> None:
        self.raw = (self.raw & ~(1 << bit) | (int(bool(flag)) << bit)) & MASK32

    return property(read, write, doc=doc)


@dataclass
class Psr:
    """A program status register."""

    raw: int = 0

    mode = property(
        lambda self: self.raw & 0x1F,
        lambda self, mode: setattr(self, "raw", (self.raw & ~0x1F) | (int(mode) & 0x1F)),
        doc="Processor mode bits.",
    )
    thumb = _bit_flag(5, "Thumb state.")
    fiq_disable = _bit_flag(6, "FIQ disabled.")
    irq_disable = _bit_flag(7, "IRQ disabled.")
    overflow = _bit_flag(28, "Overflow flag (V).")
    carry = _bit_flag(29, "Carry flag (C).")
    zero = _bit_flag(30, "Zero flag (Z).")
    negative = _bit_flag(31, "Negative flag (N).")

    def copy(self) -> Psr:
        return Psr(self.raw)


class Bus(Protocol):
    """The memory system the core reads and writes through."""

    def read8(self, addr: int, access: AccessType) -> int: ...

    def read16(self, addr: int, access: AccessType) -> int: ...

    def read32(self, addr: int, access: AccessType) -> int: ...

    def read16_ror(self, addr: int, access: AccessType) -> int: ...

    def read32_ror(self, addr: int, access: AccessType) -> int: ...

    def write8(self, addr: int, value: int, access: AccessType) -> None: ...

    def write16(self, addr: int, value: int, access: AccessType) -> None: ...

    def write32(self, addr: int, value: int, access: AccessType) -> None: ...

    def idle(self, cycles: int) -> None: ...


class RamBus:
    """A flat little-endian RAM that wraps addresses around its size."""

    def __init__(self, size: int) -> None:
        if size <= 0 or size % 4:
            raise ValueError("bus size must be a positive multiple of 4")
        self.memory = bytearray(size)
        self.idle_cycles = 0

    def _offset(self, addr: int, align: int) -> int:
        return (addr & MASK32 & ~(align - 1)) % len(self.memory)

    def _load(self, addr: int, width: int) -> int:
        start = self._offset(addr, width)
        return int.from_bytes(self.memory[start:start + width], "little")

    def _store(self, addr: int, value: int, width: int) -> None:
        start = self._offset(addr, width)
        mask = (1 << (8 * width)) - 1
        self.memory[start:start + width] = (value & mask).to_bytes(width, "little")

    def read8(self, addr: int, access: AccessType) -> int:
        return self._load(addr, 1)

    def read16(self, addr: int, access: AccessType) -> int:
        return self._load(addr, 2)

    def read32(self, addr: int, access: AccessType) -> int:
        return self._load(addr, 4)

    def read16_ror(self, addr: int, access: AccessType) -> int:
        return ror32(self.read16(addr, access), 8 * (addr & 1))

    def read32_ror(self, addr: int, access: AccessType) -> int:
        return ror32(self.read32(addr, access), 8 * (addr & 3))

    def write8(self, addr: int, value: int, access: AccessType) -> None:
        self._store(addr, value, 1)

    def write16(self, addr: int, value: int, access: AccessType) -> None:
        self._store(addr, value, 2)

    def write32(self, addr: int, value: int, access: AccessType) -> None:
        self._store(addr, value, 4)

    def idle(self, cycles: int) -> None:
        self.idle_cycles += cycles


_STACK_BANK = {
    Mode.USR: Mode.SYS,
    Mode.SYS: Mode.SYS,
    Mode.FIQ: Mode.FIQ,
    Mode.IRQ: Mode.IRQ,
    Mode.SVC: Mode.SVC,
    Mode.ABT: Mode.ABT,
    Mode.UND: Mode.UND,
}

_SPSR_MODES = (Mode.FIQ, Mode.IRQ, Mode.SVC, Mode.ABT, Mode.UND)


def _banks_for(mode: int) -> tuple[Mode, Mode]:
    try:
        stack = _STACK_BANK[mode]
    except KeyError:
        raise ValueError(f"unsupported processor mode 0x{int(mode):02x}") from None
    return (Mode.FIQ if stack is Mode.FIQ else Mode.SYS), stack


def _register(index: int, doc: str) -> property:
    def read(self: Core) -> int:
        return self.registers[index]

    def write(self: Core, value: int) -> None:
        self.registers[index] = value & MASK32

    return property(read, write, doc=doc)


class Core:
    """Registers and mode-dependent state of an ARM7TDMI."""

    fp = _register(11, "R11.")
    ip = _register(12, "R12.")
    sp = _register(13, "Stack pointer (R13).")
    lr = _register(14, "Link register (R14).")
    pc = _register(15, "Program counter (R15), two instructions ahead.")

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.reset()

    def reset(self) -> None:
        """Put the core in its power-on state and take the reset exception."""
        self.registers = [0] * 16
        self.cpsr = Psr()
        self.spsrs = {mode: Psr() for mode in _SPSR_MODES}
        self.high_banks = {Mode.SYS: [0] * 5, Mode.FIQ: [0] * 5}
        self.stack_banks = {mode: [0, 0] for mode in set(_STACK_BANK.values())}
        self.prefetch = [0, 0]
        self.state = CoreState.RUN
        self.cycles = 0

        self.stack_banks[Mode.IRQ][0] = IRQ_STACK
        self.stack_banks[Mode.SVC][0] = SVC_STACK
        self.sp = SYS_STACK
        self.cpsr.mode = Mode.SYS
        self.prefetch_access_type = AccessType.NON_SEQUENTIAL
        self.interrupt(Vector.RESET, Mode.SVC)
        self.cycles = 0

    def spsr_get(self, mode: int) -> Psr:
        """A copy of the SPSR of ``mode`` (the CPSR for USR and SYS)."""
        if mode in (Mode.USR, Mode.SYS):
            return self.cpsr.copy()
        try:
            return self.spsrs[mode].copy()
        except KeyError:
            raise ValueError(f"unsupported processor mode 0x{int(mode):02x}") from None

    def spsr_set(self, mode: int, psr: Psr) -> None:
        """Store ``psr`` in the SPSR of ``mode`` (the CPSR for USR and SYS)."""
        if mode in (Mode.USR, Mode.SYS):
            self.cpsr.raw = psr.raw & MASK32
            return
        try:
            self.spsrs[mode].raw = psr.raw & MASK32
        except KeyError:
            raise ValueError(f"unsupported processor mode 0x{int(mode):02x}") from None

    def switch_mode(self, mode: int) -> None:
        """Bank the current registers and bring in those of ``mode``.

        Only the CPSR mode bits change; no SPSR is touched.
        """
        current = self.cpsr.mode
        if mode == current:
            return
        old_high, old_stack = _banks_for(current)
        new_high, new_stack = _banks_for(mode)

        self.high_banks[old_high][:] = self.registers[8:13]
        self.stack_banks[old_stack][:] = self.registers[13:15]
        self.cpsr.mode = mode
        self.registers[8:13] = self.high_banks[new_high]
        self.registers[13:15] = self.stack_banks[new_stack]

    def interrupt(self, vector: Vector, mode: Mode) -> None:
        """Take an exception: switch to ``mode`` and jump to ``vector``."""
        saved = self.cpsr.copy()
        self.switch_mode(mode)
        self.spsr_set(mode, saved)

        if vector in (Vector.SVC, Vector.UND):
            self.lr = self.pc - (2 if self.cpsr.thumb else 4)
        elif vector != Vector.RESET:
            self.lr = self.pc - (0 if self.cpsr.thumb else 4)

        self.pc = vector
        self.cpsr.irq_disable = True
        self.cpsr.thumb = False
        self.reload_pipeline()

    def reload_pipeline(self) -> None:
        """Refill both prefetch slots from PC; called whenever PC changes."""
        bus = self.bus
        if self.cpsr.thumb:
            self.pc &= 0xFFFFFFFE
            self.prefetch[0] = bus.read16(self.pc, AccessType.NON_SEQUENTIAL)
            self.pc += 2
            self.prefetch[1] = bus.read16(self.pc, AccessType.SEQUENTIAL)
            self.pc += 2
        else:
            self.pc &= 0xFFFFFFFC
            self.prefetch[0] = bus.read32(self.pc, AccessType.NON_SEQUENTIAL)
            self.pc += 4
            self.prefetch[1] = bus.read32(self.pc, AccessType.SEQUENTIAL)
            self.pc += 4
        self.prefetch_access_type = AccessType.SEQUENTIAL

    def compute_shift(self, encoded_shift: int, value: int) -> tuple[int, bool]:
        """Apply an encoded barrel-shifter operation; return (result, carry out)."""
        value &= MASK32
        if encoded_shift & 1:
            rs = (encoded_shift >> 4) & 0xF
            bits = self.registers[rs] & 0xFF
            if bits == 0:
                return value, self.cpsr.carry
        else:
            bits = (encoded_shift >> 3) & 0x1F

        kind = (encoded_shift >> 1) & 0b11

        if kind == 0:  # LSL
            if bits == 0:
                return value, self.cpsr.carry
            if bits <= 32:
                value = (value << (bits - 1)) & MASK32
                carry = bool(value >> 31)
                return (value << 1) & MASK32, carry
            return 0, False

        if kind == 1:  # LSR, #0 encodes #32
            if bits > 32:
                return 0, False
            bits = bits or 32
            value >>= bits - 1
            return value >> 1, bool(value & 1)

        if kind == 2:  # ASR, #0 encodes #32
            if bits == 0 or bits > 32:
                bits = 32
            signed = _signed32(value) >> (bits - 1)
            return (signed >> 1) & MASK32, bool(signed & 1)

        # ROR, #0 encodes RRX
        if bits > 32:
            bits = ((bits - 1) % 32) + 1
        if bits == 0:
            carry = bool(value & 1)
            return (value >> 1) | (int(self.cpsr.carry) << 31), carry
        carry = bool((value >> (bits - 1)) & 1)
        return ror32(value, bits & 0x1F), carry

    def idle(self) -> None:
        """Spend one internal cycle."""
        self.idle_for(1)

    def idle_for(self, cycles: int) -> None:
        """Spend ``cycles`` internal cycles and let the bus catch up."""
        self.cycles += cycles
        self.bus.idle(cycles)