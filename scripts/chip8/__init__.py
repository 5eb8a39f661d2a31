"""CHIP-8 interpreter core plus a pygame host."""

from chip8.cpu import Chip8, MachineConfig, Mode, Quirks, initialize
from chip8.errors import (
    AddressOutOfBounds,
    Fault,
    InvalidOpcode,
    ProgramTooLarge,
    StackOverflow,
    StackUnderflow,
)

__all__ = [
    "AddressOutOfBounds",
    "Chip8",
    "Fault",
    "InvalidOpcode",
    "MachineConfig",
    "Mode",
    "ProgramTooLarge",
    "Quirks",
    "StackOverflow",
    "StackUnderflow",
    "initialize",
]
