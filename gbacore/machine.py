"""The fetch/decode/execute loop that drives a core and its interrupt lines."""

from __future__ import annotations

from gbacore.arm_decoder import ARM_LUT, CONDITION_LUT, arm_lut_index
from gbacore.cpu import MASK32, AccessType, Bus, Core, CoreState, Mode, Vector
from gbacore.debugger import Debugger
from gbacore.thumb_decoder import THUMB_LUT, thumb_lut_index

KEYPAD_IRQ = 1 << 12


class UnknownInstruction(Exception):
    """The core fetched an op-code no handler knows how to execute."""


class Machine:
    """A core wired to a bus, the interrupt registers and a debugger."""

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.core = Core(bus)
        self.debugger = Debugger()
        self.ime = 0
        self.int_enabled = 0
        self.int_flag = 0

    def reset(self) -> None:
        """Put the core back in its power-on state and refill the pipeline."""
        self.core.reset()

    def _service_interrupts(self) -> None:
        core = self.core
        if not self.int_enabled & self.int_flag:
            return
        if core.state == CoreState.RUN:
            if not core.cpsr.irq_disable and self.ime & 1:
                core.interrupt(Vector.IRQ, Mode.IRQ)
        elif core.state == CoreState.HALT:
            core.state = CoreState.RUN
        elif core.state == CoreState.STOP:
            if self.int_flag & KEYPAD_IRQ:
                core.state = CoreState.RUN

    def _step_thumb(self) -> None:
        core = self.core
        op = core.prefetch[0] & 0xFFFF
        fetched = self.bus.read16(core.pc, core.prefetch_access_type)
        core.prefetch = [core.prefetch[1], fetched]

        handler = THUMB_LUT[thumb_lut_index(op)]
        if handler is None:
            raise UnknownInstruction(
                f"unknown Thumb op-code 0x{op:04x} (pc=0x{core.pc:08x})"
            )
        handler(core, op)

    def _step_arm(self) -> None:
        core = self.core
        op = core.prefetch[0] & MASK32
        fetched = self.bus.read32(core.pc, core.prefetch_access_type)
        core.prefetch = [core.prefetch[1], fetched]

        cond_index = (((core.cpsr.raw >> 28) & 0xF) << 4) | ((op >> 28) & 0xF)
        if not CONDITION_LUT[cond_index]:
            core.pc += 4
            core.prefetch_access_type = AccessType.SEQUENTIAL
            return

        handler = ARM_LUT[arm_lut_index(op)]
        if handler is None:
            raise UnknownInstruction(
                f"unknown ARM op-code 0x{op:08x} (pc=0x{core.pc:08x})"
            )
        handler(core, op)

    def step(self) -> None:
        """Service pending interrupts, then fetch, decode and execute one instruction."""
        self._service_interrupts()
        core = self.core
        if core.state == CoreState.RUN:
            if core.cpsr.thumb:
                self._step_thumb()
            else:
                self._step_arm()
        elif core.state == CoreState.HALT:
            core.idle()
        self.debugger.eval_breakpoints(core.pc, core.cpsr.thumb)

    def run(self, count: int) -> int:
        """Execute up to ``count`` steps, stopping early when the debugger is flagged.

        Returns the number of steps executed.
        """
        self.debugger.interrupt.flag = False
        executed = 0
        for _ in range(count):
            self.step()
            executed += 1
            if self.debugger.interrupt.flag:
                break
        return executed