import pytest

from gbacore.cpu import AccessType, CoreState, Mode, RamBus
from gbacore.debugger import Breakpoint, InterruptReason
from gbacore.machine import KEYPAD_IRQ, Machine, UnknownInstruction

NS = AccessType.NON_SEQUENTIAL


def make_machine(words=(), thumb_halfwords=(), thumb_base=0x100):
    bus = RamBus(0x1000)
    machine = Machine(bus)
    for index, word in enumerate(words):
        bus.write32(index * 4, word, NS)
    for index, half in enumerate(thumb_halfwords):
        bus.write16(thumb_base + index * 2, half, NS)
    machine.reset()
    return machine


def enter_thumb(machine, base=0x100):
    core = machine.core
    core.cpsr.thumb = True
    core.pc = base
    core.reload_pipeline()


def test_arm_mov_immediate_executes():
    machine = make_machine([0xE3A00005])  # MOV r0, #5
    machine.step()
    assert machine.core.registers[0] == 5


def test_arm_program_runs_in_order():
    machine = make_machine([0xE3A00001, 0xE2800002])  # MOV r0,#1; ADD r0,r0,#2
    assert machine.run(2) == 2
    assert machine.core.registers[0] == 3


def test_arm_pc_advances_one_word_per_instruction():
    machine = make_machine([0xE3A00001, 0xE3A01001])
    before = machine.core.pc
    machine.step()
    assert machine.core.pc == before + 4


def test_failed_condition_skips_instruction():
    machine = make_machine([0x03A00005])  # MOVEQ r0, #5
    machine.core.cpsr.zero = False
    before = machine.core.pc
    machine.step()
    assert machine.core.registers[0] == 0
    assert machine.core.pc == before + 4


def test_passed_condition_executes_instruction():
    machine = make_machine([0x03A00005])  # MOVEQ r0, #5
    machine.core.cpsr.zero = True
    machine.step()
    assert machine.core.registers[0] == 5


def test_unknown_arm_instruction_raises():
    machine = make_machine([0xEE000000])
    with pytest.raises(UnknownInstruction):
        machine.step()


def test_thumb_mov_immediate_executes():
    machine = make_machine(thumb_halfwords=[0x2107])  # MOV r1, #7
    enter_thumb(machine)
    before = machine.core.pc
    machine.step()
    assert machine.core.registers[1] == 7
    assert machine.core.pc == before + 2


def test_unknown_thumb_instruction_raises():
    machine = make_machine(thumb_halfwords=[0xDE00])
    enter_thumb(machine)
    with pytest.raises(UnknownInstruction):
        machine.step()


def test_halted_core_does_not_execute():
    machine = make_machine([0xE3A00005])
    machine.core.state = CoreState.HALT
    before = machine.core.pc
    machine.step()
    assert machine.core.pc == before
    assert machine.core.registers[0] == 0


def test_pending_interrupt_wakes_halted_core():
    machine = make_machine([0xE3A00005])
    machine.core.state = CoreState.HALT
    machine.int_enabled = 1
    machine.int_flag = 1
    machine.step()
    assert machine.core.state == CoreState.RUN


def test_stopped_core_wakes_only_on_keypad():
    machine = make_machine([0xE3A00005])
    machine.core.state = CoreState.STOP
    machine.int_enabled = 0xFFFF
    machine.int_flag = 1
    machine.step()
    assert machine.core.state == CoreState.STOP
    machine.int_flag = KEYPAD_IRQ
    machine.step()
    assert machine.core.state == CoreState.RUN


def test_irq_taken_when_enabled():
    machine = make_machine([0xE3A00005])
    machine.core.cpsr.irq_disable = False
    machine.ime = 1
    machine.int_enabled = 1
    machine.int_flag = 1
    machine.step()
    assert machine.core.cpsr.mode == Mode.IRQ
    assert machine.core.cpsr.irq_disable is True


def test_irq_ignored_when_master_enable_clear():
    machine = make_machine([0xE3A00005])
    machine.core.cpsr.irq_disable = False
    machine.ime = 0
    machine.int_enabled = 1
    machine.int_flag = 1
    mode_before = machine.core.cpsr.mode
    machine.step()
    assert machine.core.cpsr.mode == mode_before
    assert machine.core.registers[0] == 5


def test_run_stops_on_breakpoint():
    machine = make_machine([0xE3A00001, 0xE3A00002, 0xE3A00003, 0xE3A00004])
    machine.debugger.breakpoints = [Breakpoint(4)]
    assert machine.run(10) == 1
    assert machine.debugger.interrupt.flag is True
    assert machine.debugger.interrupt.reason == InterruptReason.BREAKPOINT_REACHED
    assert machine.core.registers[0] == 1