"""Tests for the host side: timing, keypad events, frame scaling and the CLI."""

import logging

import numpy as np
import pygame
import pytest

from pychip8 import DecodeError
from pychip8.__main__ import main
from pychip8.host import FrameClock, Keypad, frame_pixels, run
from pychip8.processor import SCREEN_HEIGHT, SCREEN_WIDTH


def test_frame_clock_splits_elapsed_time() -> None:
    clock = FrameClock(cycles_per_second=512, timer_hz=60)
    assert clock.advance(0.125) == (64, 7)
    # the half tick left over carries into the next frame
    assert clock.advance(0.125) == (64, 8)


def test_timer_ticks_do_not_depend_on_cycle_rate() -> None:
    fast = FrameClock(cycles_per_second=2048, max_lag=1.0)
    slow = FrameClock(cycles_per_second=64, max_lag=1.0)
    assert fast.advance(0.5) == (1024, 30)
    assert slow.advance(0.5) == (32, 30)


def test_frame_clock_accumulates_small_steps() -> None:
    clock = FrameClock(cycles_per_second=512, timer_hz=60)
    cycles = ticks = 0
    for _ in range(64):
        step_cycles, step_ticks = clock.advance(1 / 64)
        cycles += step_cycles
        ticks += step_ticks
    assert cycles == 512
    assert ticks == 60


def test_frame_clock_caps_lag() -> None:
    clock = FrameClock(cycles_per_second=512, timer_hz=60, max_lag=0.25)
    assert clock.advance(10.0) == (128, 15)


def test_frame_clock_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        FrameClock(cycles_per_second=0)
    with pytest.raises(ValueError):
        FrameClock().advance(-0.1)


def test_keypad_tracks_key_events() -> None:
    keypad = Keypad()
    assert keypad.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_q))
    assert keypad.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_v))
    assert list(np.flatnonzero(keypad.state)) == [0x4, 0xF]

    keypad.handle_event(pygame.event.Event(pygame.KEYUP, key=pygame.K_q))
    assert list(np.flatnonzero(keypad.state)) == [0xF]

    keypad.release_all()
    assert not keypad.state.any()


def test_keypad_ignores_other_events() -> None:
    keypad = Keypad()
    assert not keypad.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_p))
    assert not keypad.handle_event(pygame.event.Event(pygame.QUIT))
    assert not keypad.state.any()


def test_keypad_custom_map() -> None:
    keypad = Keypad({pygame.K_SPACE: 0x0})
    keypad.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
    assert keypad.state[0]


def test_frame_pixels_scales_and_colours() -> None:
    display = np.zeros(SCREEN_WIDTH * SCREEN_HEIGHT, dtype=np.uint8)
    display[1 * SCREEN_WIDTH + 3] = 1
    pixels = frame_pixels(display, scale=2, foreground=(1, 2, 3), background=(9, 9, 9))

    assert pixels.shape == (SCREEN_WIDTH * 2, SCREEN_HEIGHT * 2, 3)
    assert (pixels[6:8, 2:4] == (1, 2, 3)).all()
    assert (pixels[0, 0] == (9, 9, 9)).all()
    assert (pixels == (1, 2, 3)).all(axis=2).sum() == 4


def test_headless_run_stops_after_max_cycles(tmp_path) -> None:
    rom = tmp_path / "loop.ch8"
    rom.write_bytes(bytes([0x12, 0x00]))
    elapsed = run(rom, max_cycles=100, headless=True)
    assert elapsed >= 0


def test_headless_run_raises_faults(tmp_path) -> None:
    rom = tmp_path / "bad.ch8"
    rom.write_bytes(bytes([0x60, 0x01, 0xFF, 0xFF]))
    with pytest.raises(DecodeError):
        run(rom, max_cycles=100, headless=True)


def test_cli_exit_codes(tmp_path, capsys) -> None:
    good = tmp_path / "good.ch8"
    good.write_bytes(bytes([0x12, 0x00]))
    bad = tmp_path / "bad.ch8"
    bad.write_bytes(bytes([0x00, 0xEE]))

    assert main([str(good), "--headless", "-m", "10", "--seed", "1"]) == 0
    assert "Elapsed" in capsys.readouterr().out
    assert main([str(bad), "--headless", "-m", "10"]) == 1


def test_oversized_rom_is_reported(tmp_path, caplog) -> None:
    rom = tmp_path / "huge.ch8"
    rom.write_bytes(bytes(4096))

    with caplog.at_level(logging.ERROR, logger="pychip8.host"):
        assert main([str(rom), "--headless", "-m", "10"]) == 1
    assert any(
        record.levelno == logging.ERROR and "huge.ch8" in record.getMessage()
        for record in caplog.records
    )


def test_headless_run_needs_max_cycles(tmp_path) -> None:
    rom = tmp_path / "loop.ch8"
    rom.write_bytes(bytes([0x12, 0x00]))
    with pytest.raises(ValueError):
        run(rom, headless=True)


def test_cli_headless_needs_max_cycles(tmp_path, capsys) -> None:
    rom = tmp_path / "loop.ch8"
    rom.write_bytes(bytes([0x12, 0x00]))
    with pytest.raises(SystemExit) as excinfo:
        main([str(rom), "--headless"])
    assert excinfo.value.code == 2
    assert "--max-cycles" in capsys.readouterr().err
