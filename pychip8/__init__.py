from pychip8.decoder import Instruction, Op, decode, identify
from pychip8.errors import (
    Chip8Error,
    DecodeError,
    MemoryBoundsError,
    ProgramTooLargeError,
    StackError,
    StackOverflowError,
    StackUnderflowError,
)
from pychip8.processor import Chip8, CycleState

__all__ = [
    "Chip8",
    "Chip8Error",
    "CycleState",
    "DecodeError",
    "Instruction",
    "MemoryBoundsError",
    "Op",
    "ProgramTooLargeError",
    "StackError",
    "StackOverflowError",
    "StackUnderflowError",
    "decode",
    "identify",
]
