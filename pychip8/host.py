"""pygame host for the interpreter: window, keypad and the real time loop"""

import logging
import os
from time import perf_counter

import numpy as np

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame  # noqa: E402

from pychip8.errors import Chip8Error  # noqa: E402
from pychip8.loader import load_rom  # noqa: E402
from pychip8.processor import (  # noqa: E402
    KEY_COUNT,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    Chip8,
)

logger = logging.getLogger(__name__)

SCALE = 10
CYCLES_PER_SECOND = 700
TIMER_HZ = 60
FRAME_RATE = 60
MAX_LAG = 0.25  # seconds of work the loop will try to catch up on
FOREGROUND = (255, 255, 255)
BACKGROUND = (0, 0, 0)

# CHIP-8 key mapping to keyboard keys
KEY_MAP = {
    pygame.K_1: 0x1,
    pygame.K_2: 0x2,
    pygame.K_3: 0x3,
    pygame.K_4: 0xC,
    pygame.K_q: 0x4,
    pygame.K_w: 0x5,
    pygame.K_e: 0x6,
    pygame.K_r: 0xD,
    pygame.K_a: 0x7,
    pygame.K_s: 0x8,
    pygame.K_d: 0x9,
    pygame.K_f: 0xE,
    pygame.K_z: 0xA,
    pygame.K_x: 0x0,
    pygame.K_c: 0xB,
    pygame.K_v: 0xF,
}


class Keypad:
    """Turns pygame key events into the 16 slot key vector"""

    def __init__(self, key_map=None):
        self.key_map = KEY_MAP if key_map is None else key_map
        self.state = np.zeros(KEY_COUNT, dtype=bool)

    def handle_event(self, event) -> bool:
        if event.type not in (pygame.KEYDOWN, pygame.KEYUP):
            return False
        if event.key not in self.key_map:
            return False
        self.state[self.key_map[event.key]] = event.type == pygame.KEYDOWN
        return True

    def release_all(self):
        self.state[:] = False


class FrameClock:
    """Splits real elapsed time into CPU cycles and 60Hz timer ticks

    Cycles and timer ticks are accounted separately so the timers run at
    `timer_hz` whatever the cycle rate is.
    """

    def __init__(
        self,
        cycles_per_second: float = CYCLES_PER_SECOND,
        timer_hz: float = TIMER_HZ,
        max_lag: float = MAX_LAG,
    ):
        if cycles_per_second <= 0 or timer_hz <= 0:
            raise ValueError("Cycle and timer rates must be positive")
        self.cycles_per_second = cycles_per_second
        self.timer_hz = timer_hz
        self.max_lag = max_lag
        self.cycle_budget = 0.0
        self.timer_budget = 0.0

    def advance(self, elapsed: float) -> tuple[int, int]:
        """Account for `elapsed` seconds, return (cycles, timer ticks) owed"""
        if elapsed < 0:
            raise ValueError(f"Elapsed time can't be negative: {elapsed}")
        self.cycle_budget = min(
            self.cycle_budget + elapsed * self.cycles_per_second,
            self.max_lag * self.cycles_per_second,
        )
        self.timer_budget = min(
            self.timer_budget + elapsed * self.timer_hz,
            self.max_lag * self.timer_hz,
        )
        cycles = int(self.cycle_budget)
        ticks = int(self.timer_budget)
        self.cycle_budget -= cycles
        self.timer_budget -= ticks
        return cycles, ticks


def frame_pixels(
    display: np.ndarray,
    scale: int = SCALE,
    foreground=FOREGROUND,
    background=BACKGROUND,
) -> np.ndarray:
    """Scale the flat display buffer into a (width, height, 3) RGB array,
    the axis order pygame.surfarray expects"""
    pixels = display.reshape((SCREEN_HEIGHT, SCREEN_WIDTH)).astype(bool)
    rgb = np.where(
        pixels[:, :, np.newaxis],
        np.array(foreground, dtype=np.uint8),
        np.array(background, dtype=np.uint8),
    )
    rgb = np.repeat(rgb, scale, axis=0)
    rgb = np.repeat(rgb, scale, axis=1)
    return rgb.swapaxes(0, 1)


class Display:
    def __init__(self, scale=SCALE, foreground=FOREGROUND, background=BACKGROUND):
        self.scale = scale
        self.foreground = foreground
        self.background = background
        self.screen = pygame.display.set_mode(
            (SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale)
        )
        pygame.display.set_caption("CHIP-8 Interpreter")

    def render(self, display: np.ndarray):
        pixels = frame_pixels(display, self.scale, self.foreground, self.background)
        surface = pygame.surfarray.make_surface(pixels)
        self.screen.blit(surface, (0, 0))
        pygame.display.flip()


def run(
    rom_path,
    scale=SCALE,
    cycles_per_second=CYCLES_PER_SECOND,
    seed=None,
    max_cycles=None,
    headless=False,
) -> float:
    """Run a ROM until the window is closed, Escape is pressed or
    `max_cycles` cycles have run; return the elapsed seconds

    Headless runs execute one cycle per loop iteration as fast as possible
    with no keys pressed, which is useful for benchmarking. They have no
    window to close, so they need `max_cycles`.
    """
    if headless and max_cycles is None:
        raise ValueError("Headless runs need max_cycles")

    chip8 = Chip8(seed=seed)
    try:
        load_rom(chip8, rom_path)
    except Chip8Error as err:
        logger.error("Could not load %s: %s", rom_path, err)
        raise
    clock = FrameClock(cycles_per_second)

    display = keypad = pygame_clock = None
    if not headless:
        pygame.init()
        display = Display(scale)
        keypad = Keypad()
        pygame_clock = pygame.time.Clock()

    # Main loop
    running = True
    n_cycles = 0
    start = last = perf_counter()
    try:
        while running:
            if keypad is not None:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        running = False
                    elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.type == pygame.WINDOWFOCUSLOST:
                        keypad.release_all()
                    else:
                        keypad.handle_event(event)
            keys = None if keypad is None else keypad.state

            now = perf_counter()
            cycles, ticks = clock.advance(now - last)
            last = now
            if headless:
                cycles = 1

            for _ in range(cycles):
                chip8.run_cycle(keys)
                n_cycles += 1
                if max_cycles is not None and n_cycles >= max_cycles:
                    running = False
                    break
            for _ in range(ticks):
                chip8.update_timers()

            if display is not None:
                if chip8.draw_flag:
                    display.render(chip8.display)
                    chip8.acknowledge_draw()
                pygame_clock.tick(FRAME_RATE)
    except Chip8Error as err:
        logger.error("Machine halted after %d cycles: %s\n%s", n_cycles, err, chip8)
        raise
    finally:
        if not headless:
            pygame.quit()

    elapsed = perf_counter() - start
    logger.info("Ran %d cycles in %.3fs", n_cycles, elapsed)
    return elapsed
