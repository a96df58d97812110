from enum import Enum
from typing import NamedTuple

from pychip8.errors import DecodeError


class Op(Enum):
    """Every instruction the interpreter understands, keyed by its opcode
    pattern with the operand nibbles zeroed out"""

    CLS = 0x00E0
    RET = 0x00EE
    JP = 0x1000
    CALL = 0x2000
    SE_IMM = 0x3000
    SNE_IMM = 0x4000
    SE_REG = 0x5000
    LD_IMM = 0x6000
    ADD_IMM = 0x7000
    LD_REG = 0x8000
    OR = 0x8001
    AND = 0x8002
    XOR = 0x8003
    ADD_REG = 0x8004
    SUB = 0x8005
    SHR = 0x8006
    SUBN = 0x8007
    SHL = 0x800E
    SNE_REG = 0x9000
    LD_I = 0xA000
    JP_V0 = 0xB000
    RND = 0xC000
    DRW = 0xD000
    SKP = 0xE09E
    SKNP = 0xE0A1
    LD_VX_DT = 0xF007
    LD_KEY = 0xF00A
    LD_DT = 0xF015
    LD_ST = 0xF018
    ADD_I = 0xF01E
    LD_FONT = 0xF029
    BCD = 0xF033
    STORE = 0xF055
    LOAD = 0xF065


# Which bits of the opcode select the operation, per op group
# (0x0 has no operands, so the whole opcode is the pattern)
_PATTERN_MASKS = {
    0x0: 0xFFFF,
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF,
}
_PATTERNS = {op.value: op for op in Op}


def decode(opcode: int) -> tuple[int, int, int, int]:
    """Split a 16 bit opcode into its four nibbles

    An opcode is two bytes long:

        /------- byte 1 -------\\  /------- byte 2 -------\\
        | op_group |     x     |  |     y    |  op_sub   |
    """
    op_group = (opcode & 0xF000) >> 12
    x = (opcode & 0x0F00) >> 8
    y = (opcode & 0x00F0) >> 4
    op_sub = opcode & 0x000F
    return op_group, x, y, op_sub


class Instruction(NamedTuple):
    opcode: int
    op_group: int
    x: int
    y: int
    n: int

    @classmethod
    def from_opcode(cls, opcode: int) -> "Instruction":
        return cls(opcode, *decode(opcode))

    @property
    def nn(self) -> int:
        return self.opcode & 0x00FF

    @property
    def nnn(self) -> int:
        return self.opcode & 0x0FFF


def identify(opcode: int, pc: int | None = None) -> Op:
    """Map an opcode to its operation, raising DecodeError when it has none"""
    mask = _PATTERN_MASKS.get(opcode >> 12, 0xF000)
    try:
        return _PATTERNS[opcode & mask]
    except KeyError:
        raise DecodeError(opcode, pc) from None
