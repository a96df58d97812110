import pytest

from pychip8 import Chip8


def program(*opcodes: int) -> bytes:
    """Assemble 16 bit opcodes into a big-endian program image."""
    return b"".join(opcode.to_bytes(2, "big") for opcode in opcodes)


@pytest.fixture
def run_program():
    """Load opcodes into a fresh machine and run one cycle per opcode."""

    def _run(*opcodes: int, cycles: int | None = None, setup=None) -> Chip8:
        chip8 = Chip8(seed=0)
        chip8.load_program(program(*opcodes))
        if setup is not None:
            setup(chip8)
        for _ in range(len(opcodes) if cycles is None else cycles):
            chip8.run_cycle()
        return chip8

    return _run
