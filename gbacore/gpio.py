"""Cartridge GPIO port and the real-time clock chip behind it."""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Callable

GPIO_REG_DATA = 0x080000C4
GPIO_REG_DIRECTION = 0x080000C6
GPIO_REG_CTRL = 0x080000C8

_CONTROL_READ_MASK = 0b01001010
_CONTROL_24H = 1 << 6
_CONTROL_POWEROFF = 1 << 7
_COMMAND_MAGIC = 0x6

Clock = Callable[[], datetime]


class RtcState(Enum):
    """What the serial link of the clock is currently doing."""

    COMMAND = "command"
    SEND = "send"
    RECV = "recv"


class RtcRegister(IntEnum):
    """Registers a command byte can target."""

    RESET = 0
    DATE_TIME = 2
    FORCE_IRQ = 3
    CONTROL = 4
    TIME = 6


def to_bcd(value: int) -> int:
    """Encode the last two decimal digits of ``value`` as packed BCD."""
    return ((value // 10 % 10) << 4) | (value % 10)


def _reverse_byte(value: int) -> int:
    return int(f"{value & 0xFF:08b}"[::-1], 2)


def _transfer_length(register: RtcRegister) -> int:
    if register == RtcRegister.DATE_TIME:
        return 8 * 7
    if register == RtcRegister.TIME:
        return 8 * 3
    return 8


class Rtc:
    """A serial real-time clock clocked bit by bit through the GPIO data port."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock: Clock = clock or datetime.now
        self.sck = False
        self.sio = False
        self.cs = False
        self.control = 0
        self.active_register = RtcRegister.RESET
        self.reset()

    @property
    def mode_24h(self) -> bool:
        return bool(self.control & _CONTROL_24H)

    def reset(self) -> None:
        """Go back to waiting for a command byte."""
        self.state = RtcState.COMMAND
        self.data_len = 8
        self.data = 0
        self.data_count = 0

    def _prepare_transfer(self, state: RtcState, register: RtcRegister) -> None:
        self.state = state
        self.data = 0
        self.data_count = 0
        self.active_register = register
        self.data_len = _transfer_length(register)

    def date_time(self) -> int:
        """Current date and time as seven BCD bytes, year in the lowest byte."""
        now = self.clock()
        fields = (
            now.second,
            now.minute,
            now.hour % (24 if self.mode_24h else 12),
            now.isoweekday() % 7,
            now.day,
            now.month,
            now.year % 100,
        )
        result = 0
        for value in fields:
            result = (result << 8) | to_bcd(value)
        return result

    def time(self) -> int:
        """Current time as three BCD bytes, hour in the lowest byte."""
        return (self.date_time() >> 32) & 0xFFFFFF

    def _shift_out(self) -> bool:
        self.sio = bool(self.data & 1)
        self.data >>= 1
        self.data_count += 1
        return self.data_count >= self.data_len

    def _shift_in(self) -> bool:
        self.data &= ~(1 << self.data_count)
        self.data |= int(self.sio) << self.data_count
        self.data_count += 1
        return self.data_count >= self.data_len

    def _run_command(self, command: int) -> None:
        # Commands not starting with the magic nibble arrive bit-reversed.
        if command >> 4 != _COMMAND_MAGIC:
            command = _reverse_byte(command)
        register, read = (command >> 1) & 0x7, command & 1

        if register == RtcRegister.RESET and not read:
            self.control = 0
            self.reset()
        elif register == RtcRegister.CONTROL:
            if read:
                self._prepare_transfer(RtcState.SEND, RtcRegister.CONTROL)
                self.data = self.control & _CONTROL_READ_MASK
            else:
                self._prepare_transfer(RtcState.RECV, RtcRegister.CONTROL)
        elif register == RtcRegister.DATE_TIME:
            if read:
                self._prepare_transfer(RtcState.SEND, RtcRegister.DATE_TIME)
                self.data = self.date_time()
            else:
                self._prepare_transfer(RtcState.RECV, RtcRegister.DATE_TIME)
        elif register == RtcRegister.TIME:
            if read:
                self._prepare_transfer(RtcState.SEND, RtcRegister.TIME)
                self.data = self.time()
            else:
                self._prepare_transfer(RtcState.RECV, RtcRegister.TIME)

    def write(self, value: int) -> None:
        """Drive SCK (bit 0), SIO (bit 1) and CS (bit 2); act on a rising SCK."""
        old_sck = self.sck
        old_cs = self.cs

        self.sck = bool(value & 0b001)
        self.sio = bool(value & 0b010)
        self.cs = bool(value & 0b100)

        if not old_cs and self.cs:
            self.reset()

        if not (self.cs and not old_sck and self.sck):
            return

        if self.state == RtcState.COMMAND:
            if self._shift_in():
                command = self.data & 0xFF
                self.data = 0
                self._run_command(command)
        elif self.state == RtcState.SEND:
            if self._shift_out():
                self.reset()
        elif self.state == RtcState.RECV:
            if self._shift_in():
                # Only the control register accepts writes.
                if self.active_register == RtcRegister.CONTROL:
                    self.control = self.data & 0xFF & ~_CONTROL_POWEROFF
                self.reset()

    def read(self) -> int:
        """The data port value: the SIO line in bit 1."""
        return int(self.sio) << 1


class Gpio:
    """The cartridge GPIO registers, with an optional real-time clock attached."""

    def __init__(self, rtc_enabled: bool = False, clock: Clock | None = None) -> None:
        self.readable = 0
        self.rtc: Rtc | None = Rtc(clock) if rtc_enabled else None

    @property
    def rtc_enabled(self) -> bool:
        return self.rtc is not None

    def read(self, addr: int) -> int:
        """Read one byte of the GPIO registers."""
        if addr == GPIO_REG_CTRL:
            return self.readable
        if addr == GPIO_REG_DATA and self.rtc is not None:
            return self.rtc.read()
        return 0

    def write(self, addr: int, value: int) -> None:
        """Write one byte of the GPIO registers."""
        if addr == GPIO_REG_CTRL:
            self.readable = value & 0b1
        elif addr == GPIO_REG_DATA and self.rtc is not None:
            self.rtc.write(value & 0xFF)