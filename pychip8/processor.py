import logging
from enum import Enum

import numpy as np

from pychip8.decoder import Instruction, Op, identify
from pychip8.errors import (
    MemoryBoundsError,
    ProgramTooLargeError,
    StackOverflowError,
    StackUnderflowError,
)
from pychip8.font import FONT_SET, FONT_START, GLYPH_SIZE

logger = logging.getLogger(__name__)

# Constants
SCREEN_WIDTH, SCREEN_HEIGHT = 64, 32
MEMORY_SIZE = 4096
REGISTER_COUNT = 16
STACK_SIZE = 16
KEY_COUNT = 16
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START


class CycleState(Enum):
    RUNNING = "running"
    AWAITING_KEY = "awaiting_key"


class Chip8:
    """A single CHIP-8 machine

    All state lives on the instance and is only changed by `run_cycle` (plus
    `update_timers`, which the host calls at 60Hz). A fault raised from
    `run_cycle` leaves the machine as it was before the call.
    """

    def __init__(self, seed=None):
        self.rng = np.random.default_rng(seed)
        self.opcode_methods = {
            Op.CLS: self.op_00E0,
            Op.RET: self.op_00EE,
            Op.JP: self.op_1nnn,
            Op.CALL: self.op_2nnn,
            Op.SE_IMM: self.op_3xkk,
            Op.SNE_IMM: self.op_4xkk,
            Op.SE_REG: self.op_5xy0,
            Op.LD_IMM: self.op_6xkk,
            Op.ADD_IMM: self.op_7xkk,
            Op.LD_REG: self.op_8xy0,
            Op.OR: self.op_8xy1,
            Op.AND: self.op_8xy2,
            Op.XOR: self.op_8xy3,
            Op.ADD_REG: self.op_8xy4,
            Op.SUB: self.op_8xy5,
            Op.SHR: self.op_8xy6,
            Op.SUBN: self.op_8xy7,
            Op.SHL: self.op_8xyE,
            Op.SNE_REG: self.op_9xy0,
            Op.LD_I: self.op_Annn,
            Op.JP_V0: self.op_Bnnn,
            Op.RND: self.op_Cxkk,
            Op.DRW: self.op_Dxyn,
            Op.SKP: self.op_Ex9E,
            Op.SKNP: self.op_ExA1,
            Op.LD_VX_DT: self.op_Fx07,
            Op.LD_KEY: self.op_Fx0A,
            Op.LD_DT: self.op_Fx15,
            Op.LD_ST: self.op_Fx18,
            Op.ADD_I: self.op_Fx1E,
            Op.LD_FONT: self.op_Fx29,
            Op.BCD: self.op_Fx33,
            Op.STORE: self.op_Fx55,
            Op.LOAD: self.op_Fx65,
        }
        self.initialize()

    def initialize(self):
        self.memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self.memory[FONT_START : FONT_START + len(FONT_SET)] = FONT_SET
        self.v = np.zeros(REGISTER_COUNT, dtype=np.uint8)  # V0 to VF
        self.i = 0  # Index register
        self.pc = PROGRAM_START  # Program counter
        self.stack = np.zeros(STACK_SIZE, dtype=np.uint16)
        self.sp = 0  # Stack pointer
        self.delay_timer = 0
        self.sound_timer = 0
        self.display = np.zeros(SCREEN_WIDTH * SCREEN_HEIGHT, dtype=np.uint8)
        self.draw_flag = False

        # key snapshot of the cycle being executed
        self.keys = np.zeros(KEY_COUNT, dtype=bool)
        self.state = CycleState.RUNNING
        self.wait_register = None

    def __str__(self):
        registers = " ".join(f"V{r:X}={int(val):02X}" for r, val in enumerate(self.v))
        stack = [f"{int(addr):03X}" for addr in self.stack[: self.sp]]
        return (
            f"PC={self.pc:03X} I={self.i:03X} SP={self.sp} "
            f"DT={self.delay_timer} ST={self.sound_timer} "
            f"STATE={self.state.value} | {registers} | STACK={stack}"
        )

    @property
    def screen(self) -> np.ndarray:
        """The display buffer as a (height, width) view"""
        return self.display.reshape(SCREEN_HEIGHT, SCREEN_WIDTH)

    @property
    def sound_active(self) -> bool:
        return self.sound_timer > 0

    def load_program(self, program):
        if isinstance(program, (bytes, bytearray)):
            program = np.frombuffer(program, dtype=np.uint8)
        program = np.asarray(program, dtype=np.uint8)
        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(PROGRAM_START, len(program), MAX_PROGRAM_SIZE)
        self.memory[PROGRAM_START : PROGRAM_START + len(program)] = program
        # clear whatever a previous program left past the new image
        self.memory[PROGRAM_START + len(program) :] = 0
        logger.debug("Loaded %d bytes at %#05x", len(program), PROGRAM_START)

    def acknowledge_draw(self):
        """Called by the display once it has consumed the buffer"""
        self.draw_flag = False

    def update_timers(self):
        # Update timers
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def run_cycle(self, keys=None):
        """Run one step of the machine with the given 16 key states

        While waiting for a key this only scans `keys`; otherwise it fetches,
        decodes and executes exactly one instruction.
        """
        self.keys = self._read_keys(keys)
        if self.state is CycleState.AWAITING_KEY:
            self._resolve_key_wait()
            return
        opcode = self.fetch_opcode()
        self.execute_opcode(opcode)

    def fetch_opcode(self) -> int:
        self._check_range(self.pc, 2)
        return int(self.memory[self.pc]) << 8 | int(self.memory[self.pc + 1])

    def execute_opcode(self, opcode: int):
        op = identify(opcode, self.pc)
        logger.debug("%03X: %04X %s", self.pc, opcode, op.name)
        self.opcode_methods[op](Instruction.from_opcode(opcode))

    @staticmethod
    def _read_keys(keys) -> np.ndarray:
        if keys is None:
            return np.zeros(KEY_COUNT, dtype=bool)
        keys = np.asarray(keys, dtype=bool)
        if keys.shape != (KEY_COUNT,):
            raise ValueError(
                f"Expected {KEY_COUNT} key states, got an array of shape {keys.shape}"
            )
        return keys

    def _resolve_key_wait(self):
        pressed = np.flatnonzero(self.keys)
        if pressed.size == 0:
            return
        key = int(pressed[0])
        self.v[self.wait_register] = key
        logger.debug("Key %X pressed, stored in V%X", key, self.wait_register)
        self.wait_register = None
        self.state = CycleState.RUNNING

    def _check_range(self, address: int, size: int):
        if size and (address < 0 or address + size > MEMORY_SIZE):
            raise MemoryBoundsError(address, size, self.pc)

    def _skip_if(self, condition):
        self.pc += 4 if condition else 2

    def op_00E0(self, ins: Instruction):
        # Clear the display
        self.display[:] = 0
        self.draw_flag = True
        self.pc += 2

    def op_00EE(self, ins: Instruction):
        # Return from subroutine
        if self.sp == 0:
            raise StackUnderflowError(self.pc)
        self.sp -= 1
        self.pc = int(self.stack[self.sp])

    def op_1nnn(self, ins: Instruction):
        # Jump to address NNN
        self.pc = ins.nnn

    def op_2nnn(self, ins: Instruction):
        # Call subroutine at NNN
        if self.sp >= STACK_SIZE:
            raise StackOverflowError(self.pc)
        self.stack[self.sp] = self.pc + 2
        self.sp += 1
        self.pc = ins.nnn

    def op_3xkk(self, ins: Instruction):
        # Skip next instruction if Vx == kk
        self._skip_if(self.v[ins.x] == ins.nn)

    def op_4xkk(self, ins: Instruction):
        # Skip next instruction if Vx != kk
        self._skip_if(self.v[ins.x] != ins.nn)

    def op_5xy0(self, ins: Instruction):
        # Skip next instruction if Vx == Vy
        self._skip_if(self.v[ins.x] == self.v[ins.y])

    def op_6xkk(self, ins: Instruction):
        # Set Vx = kk
        self.v[ins.x] = ins.nn
        self.pc += 2

    def op_7xkk(self, ins: Instruction):
        # Set Vx = Vx + kk, VF untouched
        self.v[ins.x] = (int(self.v[ins.x]) + ins.nn) & 0xFF
        self.pc += 2

    def op_8xy0(self, ins: Instruction):
        # Set Vx = Vy
        self.v[ins.x] = self.v[ins.y]
        self.pc += 2

    def op_8xy1(self, ins: Instruction):
        # Set Vx = Vx OR Vy
        self.v[ins.x] |= self.v[ins.y]
        self.pc += 2

    def op_8xy2(self, ins: Instruction):
        # Set Vx = Vx AND Vy
        self.v[ins.x] &= self.v[ins.y]
        self.pc += 2

    def op_8xy3(self, ins: Instruction):
        # Set Vx = Vx XOR Vy
        self.v[ins.x] ^= self.v[ins.y]
        self.pc += 2

    def op_8xy4(self, ins: Instruction):
        # Set Vx = Vx + Vy, set VF = carry
        sum_value = int(self.v[ins.x]) + int(self.v[ins.y])
        self.v[ins.x] = sum_value & 0xFF
        self.v[0xF] = 1 if sum_value > 0xFF else 0
        self.pc += 2

    # In the subtractions and shifts VF is written before Vx, so with x == F
    # the result wins over the flag.

    def op_8xy5(self, ins: Instruction):
        # Set Vx = Vx - Vy, set VF = NOT borrow
        vx, vy = int(self.v[ins.x]), int(self.v[ins.y])
        self.v[0xF] = 1 if vx > vy else 0
        self.v[ins.x] = (vx - vy) & 0xFF
        self.pc += 2

    def op_8xy6(self, ins: Instruction):
        # Set Vx = Vx SHR 1
        vx = int(self.v[ins.x])
        self.v[0xF] = vx & 0x1
        self.v[ins.x] = vx >> 1
        self.pc += 2

    def op_8xy7(self, ins: Instruction):
        # Set Vx = Vy - Vx, set VF = NOT borrow
        vx, vy = int(self.v[ins.x]), int(self.v[ins.y])
        self.v[0xF] = 1 if vx <= vy else 0
        self.v[ins.x] = (vy - vx) & 0xFF
        self.pc += 2

    def op_8xyE(self, ins: Instruction):
        # Set Vx = Vx SHL 1
        vx = int(self.v[ins.x])
        self.v[0xF] = (vx & 0x80) >> 7
        self.v[ins.x] = (vx << 1) & 0xFF
        self.pc += 2

    def op_9xy0(self, ins: Instruction):
        # Skip next instruction if Vx != Vy
        self._skip_if(self.v[ins.x] != self.v[ins.y])

    def op_Annn(self, ins: Instruction):
        # Set I = nnn
        self.i = ins.nnn
        self.pc += 2

    def op_Bnnn(self, ins: Instruction):
        # Jump to address NNN + V0, checked by the next fetch
        self.pc = ins.nnn + int(self.v[0])

    def op_Cxkk(self, ins: Instruction):
        # Set Vx = random byte AND kk
        self.v[ins.x] = int(self.rng.integers(0, 256)) & ins.nn
        self.pc += 2

    def op_Dxyn(self, ins: Instruction):
        # Draw sprite at (Vx, Vy) with width 8 pixels and height n,
        # wrapping around both edges of the screen
        self._check_range(self.i, ins.n)
        vx = int(self.v[ins.x])
        vy = int(self.v[ins.y])

        sprite_bytes = self.memory[self.i : self.i + ins.n]
        flat_sprite = np.unpackbits(sprite_bytes)

        y_indices = (vy + np.arange(ins.n)) % SCREEN_HEIGHT
        x_indices = (vx + np.arange(8)) % SCREEN_WIDTH
        flat_indices = (y_indices[:, np.newaxis] * SCREEN_WIDTH + x_indices).ravel()

        collision = (self.display[flat_indices] & flat_sprite).any()
        self.display[flat_indices] ^= flat_sprite
        self.v[0xF] = 1 if collision else 0
        self.draw_flag = True
        self.pc += 2

    def op_Ex9E(self, ins: Instruction):
        # Skip next instruction if key with the value of Vx is pressed
        self._skip_if(self.keys[int(self.v[ins.x]) & 0xF])

    def op_ExA1(self, ins: Instruction):
        # Skip next instruction if key with the value of Vx is not pressed
        self._skip_if(not self.keys[int(self.v[ins.x]) & 0xF])

    def op_Fx07(self, ins: Instruction):
        # Set Vx = delay timer value
        self.v[ins.x] = self.delay_timer
        self.pc += 2

    def op_Fx0A(self, ins: Instruction):
        # Wait for a key press and store it in Vx; resolved by run_cycle
        self.pc += 2
        self.state = CycleState.AWAITING_KEY
        self.wait_register = ins.x
        logger.debug("Waiting for a key press into V%X", ins.x)

    def op_Fx15(self, ins: Instruction):
        # Set delay timer = Vx
        self.delay_timer = int(self.v[ins.x])
        self.pc += 2

    def op_Fx18(self, ins: Instruction):
        # Set sound timer = Vx
        self.sound_timer = int(self.v[ins.x])
        self.pc += 2

    def op_Fx1E(self, ins: Instruction):
        # Set I = I + Vx, set VF = 1 past the 12 bit address space
        self.i = (self.i + int(self.v[ins.x])) & 0xFFFF
        self.v[0xF] = 1 if self.i > 0xFFF else 0
        self.pc += 2

    def op_Fx29(self, ins: Instruction):
        # Set I = location of sprite for digit Vx
        self.i = FONT_START + int(self.v[ins.x]) * GLYPH_SIZE
        self.pc += 2

    def op_Fx33(self, ins: Instruction):
        # Store BCD representation of Vx in memory locations I, I+1, and I+2
        self._check_range(self.i, 3)
        value = int(self.v[ins.x])
        self.memory[self.i] = value // 100
        self.memory[self.i + 1] = (value // 10) % 10
        self.memory[self.i + 2] = value % 10
        self.pc += 2

    def op_Fx55(self, ins: Instruction):
        # Store registers V0 through Vx in memory starting at location I
        self._check_range(self.i, ins.x + 1)
        self.memory[self.i : self.i + ins.x + 1] = self.v[: ins.x + 1]
        self.pc += 2

    def op_Fx65(self, ins: Instruction):
        # Read registers V0 through Vx from memory starting at location I
        self._check_range(self.i, ins.x + 1)
        self.v[: ins.x + 1] = self.memory[self.i : self.i + ins.x + 1]
        self.pc += 2
