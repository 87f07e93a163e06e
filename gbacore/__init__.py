"""ARM7TDMI core, ARM and Thumb decoders, debugger hooks and GPIO real-time clock."""

__version__ = "0.1.0"

__all__ = [
    "arm_alu",
    "arm_decoder",
    "arm_ops",
    "arm_transfer",
    "cpu",
    "debugger",
    "gpio",
    "machine",
    "thumb_alu",
    "thumb_branch",
    "thumb_decoder",
    "thumb_logical",
    "thumb_transfer",
]