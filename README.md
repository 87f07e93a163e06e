# gbacore

The processor side of a Game Boy Advance emulator, in pure Python with no
dependencies outside the standard library.

## Modules

- `gbacore.cpu`: the ARM7TDMI register file (`Core`), banked modes (`Mode`),
  program status registers (`Psr`), exception vectors (`Vector`), the barrel
  shifter (`Core.compute_shift`) and the two-slot prefetch pipeline
  (`Core.reload_pipeline`). It also has the flag helpers `uadd32`, `iadd32`,
  `usub32`, `isub32`, `ror32` and `sign_extend`, the `Bus` protocol, and
  `RamBus`, a flat little-endian RAM that wraps addresses around its size and
  counts idle cycles.
- `gbacore.arm_alu`: ARM data processing (`data_processing`).
- `gbacore.arm_transfer`: LDM/STM (`block_data_transfer`), LDR/STR
  (`single_data_transfer`), LDRH/STRH/LDRSB/LDRSH (`halfword_data_transfer`)
  and SWP (`swap`).
- `gbacore.arm_ops`: B/BL, BX, MUL/MLA, the long multiplies, MRS, MSR and SWI,
  plus `multiply_cycles`.
- `gbacore.thumb_alu`, `gbacore.thumb_logical`, `gbacore.thumb_transfer`,
  `gbacore.thumb_branch`: the Thumb instruction set.
- `gbacore.arm_decoder`, `gbacore.thumb_decoder`: instruction patterns written
  as bit strings (`"xxxx_101_0_..."`), turned into `InstructionPattern`s by
  `decode_pattern`. `check_collisions` and the lookup table builders raise
  `DecodeError` when two patterns can match the same instruction. The ready
  tables are `ARM_LUT`, `CONDITION_LUT` and `THUMB_LUT`.
- `gbacore.machine`: `Machine` ties a `Core` to a bus and a `Debugger`, and
  services the `ime`, `int_enabled` and `int_flag` interrupt lines. `step()`
  runs one instruction. `run(count)` runs up to `count` and stops early when
  the debugger is flagged. An op-code with no handler raises
  `UnknownInstruction`.
- `gbacore.debugger`: `Debugger` holds `Breakpoint`s and read/write
  `Watchpoint`s and records the last hit in a `DebugInterrupt`.
- `gbacore.gpio`: the cartridge GPIO registers (`Gpio`) and the serial
  real-time clock (`Rtc`) behind the data port.

## Installation

```
pip install .
```

## Example

```python
from gbacore.cpu import AccessType, RamBus
from gbacore.machine import Machine

bus = RamBus(0x10000)
# MOV r0, #42 ; B .
bus.write32(0x0000, 0xE3A0002A, AccessType.NON_SEQUENTIAL)
bus.write32(0x0004, 0xEAFFFFFE, AccessType.NON_SEQUENTIAL)

machine = Machine(bus)
machine.reset()
machine.run(4)
print(machine.core.registers[0])   # 42
```

To use a memory map of your own, give `Machine` any object with the `read8`,
`read16`, `read32`, `read16_ror`, `read32_ror`, `write8`, `write16`, `write32`
and `idle` methods of the `Bus` protocol.

### Breakpoints

```python
from gbacore.debugger import Breakpoint

machine.debugger.breakpoints.append(Breakpoint(0x0004))
machine.run(100)                   # stops once the branch at 0x4 is reached
print(machine.debugger.interrupt.reason)
```

## Real-time clock

```python
from datetime import datetime
from gbacore.gpio import Gpio

gpio = Gpio(rtc_enabled=True, clock=lambda: datetime(2023, 5, 17, 14, 30, 0))
print(hex(gpio.rtc.date_time()))   # 0x300203170523
```

`clock` is any callable that returns a `datetime`. It defaults to
`datetime.now`. Games drive the clock bit by bit through `Gpio.write` and
`Gpio.read` at the GPIO register addresses.

## What this package does not do

This package is the processor, its decoders, the debugger hooks and the clock.
It has no video or audio hardware, no event scheduler, no DMA or timers, and
no real GBA memory map with BIOS, cartridge loading or save storage. It has no
save states and no front end or command to run a game. Plug a `Bus` of your
own into `Machine` to provide memory.

## Tests

```
pip install .[test]
pytest
```