"""Tests for reading ROM files into the machine."""

import pytest

from pychip8 import Chip8, ProgramTooLargeError
from pychip8.loader import load_rom, read_program


def test_read_program(tmp_path) -> None:
    rom = tmp_path / "test.ch8"
    rom.write_bytes(bytes([0x00, 0xE0, 0x12, 0x00]))
    assert list(read_program(rom)) == [0x00, 0xE0, 0x12, 0x00]


def test_load_rom_places_program_at_0x200(tmp_path) -> None:
    rom = tmp_path / "test.ch8"
    rom.write_bytes(bytes([0xA1, 0x23]))
    chip8 = Chip8()
    assert load_rom(chip8, rom) == 2
    chip8.run_cycle()
    assert chip8.i == 0x123


def test_load_rom_rejects_oversized_file(tmp_path) -> None:
    rom = tmp_path / "huge.ch8"
    rom.write_bytes(bytes(4096))
    with pytest.raises(ProgramTooLargeError):
        load_rom(Chip8(), rom)


def test_load_rom_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rom(Chip8(), tmp_path / "missing.ch8")
