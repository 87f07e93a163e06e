"""Breakpoints, watchpoints and the interrupt record a debugger front end polls."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

_MASK32 = 0xFFFFFFFF


class InterruptReason(Enum):
    """Why the emulation stopped and handed control back to the debugger."""

    BREAKPOINT_REACHED = auto()
    WATCHPOINT_REACHED = auto()
    PAUSE = auto()
    FRAME_FINISHED = auto()
    TRACE_FINISHED = auto()
    STEP_FINISHED = auto()


@dataclass
class Breakpoint:
    """Stops execution when the instruction at ``ptr`` is reached."""

    ptr: int


@dataclass
class Watchpoint:
    """Stops execution when ``ptr`` is read, or written if ``write`` is set."""

    ptr: int
    write: bool = False


@dataclass
class MemoryAccess:
    """The memory access that triggered a watchpoint."""

    ptr: int
    write: bool
    val: int
    size: int


@dataclass
class DebugInterrupt:
    """The latest reason the debugger was asked to take control."""

    flag: bool = False
    reason: InterruptReason | None = None
    breakpoint: Breakpoint | None = None
    watchpoint: Watchpoint | None = None
    access: MemoryAccess | None = None

    def raise_for(self, reason: InterruptReason) -> None:
        """Flag an interrupt for ``reason``."""
        self.reason = reason
        self.flag = True


@dataclass
class Debugger:
    """Holds breakpoints and watchpoints and checks execution against them."""

    breakpoints: list[Breakpoint] = field(default_factory=list)
    watchpoints: list[Watchpoint] = field(default_factory=list)
    interrupt: DebugInterrupt = field(default_factory=DebugInterrupt)

    def reset(self) -> None:
        """Drop every breakpoint and watchpoint and clear the interrupt."""
        self.breakpoints = []
        self.watchpoints = []
        self.interrupt = DebugInterrupt()

    def eval_breakpoints(self, pc: int, thumb: bool) -> Breakpoint | None:
        """Flag the first breakpoint on the instruction being executed.

        ``pc`` is the pipelined program counter, two instructions ahead.
        """
        executing = (pc - (2 if thumb else 4) * 2) & _MASK32
        for bp in self.breakpoints:
            if bp.ptr == executing:
                self.interrupt.breakpoint = bp
                self.interrupt.raise_for(InterruptReason.BREAKPOINT_REACHED)
                return bp
        return None

    def _eval_watchpoints(
        self, addr: int, size: int, write: bool, value: int
    ) -> Watchpoint | None:
        for wp in self.watchpoints:
            if addr <= wp.ptr < addr + size and wp.write == write:
                self.interrupt.watchpoint = wp
                self.interrupt.access = MemoryAccess(
                    ptr=addr, write=write, val=value, size=size
                )
                self.interrupt.raise_for(InterruptReason.WATCHPOINT_REACHED)
                return wp
        return None

    def eval_write_watchpoints(
        self, addr: int, size: int, new_value: int
    ) -> Watchpoint | None:
        """Flag the first write watchpoint covered by a write of ``size`` bytes."""
        return self._eval_watchpoints(addr, size, True, new_value)

    def eval_read_watchpoints(self, addr: int, size: int) -> Watchpoint | None:
        """Flag the first read watchpoint covered by a read of ``size`` bytes."""
        return self._eval_watchpoints(addr, size, False, 0)