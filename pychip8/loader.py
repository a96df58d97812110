import logging
from pathlib import Path

import numpy as np

from pychip8.processor import Chip8

logger = logging.getLogger(__name__)


def read_program(path) -> np.ndarray:
    """Read a ROM file as a flat array of bytes"""
    with open(path, "rb") as f:
        program = f.read()
    return np.frombuffer(program, dtype=np.uint8)


def load_rom(chip8: Chip8, path) -> int:
    """Load the ROM at `path` into `chip8` and return its size in bytes"""
    program = read_program(path)
    chip8.load_program(program)
    logger.info("Loaded %s (%d bytes)", Path(path).name, len(program))
    return len(program)
