import argparse
import logging
import sys

from pychip8.errors import Chip8Error
from pychip8.host import CYCLES_PER_SECOND, SCALE, run


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="pychip8",
        description="CHIP-8 Interpreter",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("rom", help="Path to the .ch8 program")
    parser.add_argument("--scale", "-s", type=int, default=SCALE)
    parser.add_argument(
        "--cycles-per-second", "-c", type=int, default=CYCLES_PER_SECOND
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--max-cycles", "-m", type=int, default=None, help="Stop after this many cycles"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without a window, as fast as possible (requires --max-cycles)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)
    if args.headless and args.max_cycles is None:
        parser.error("--headless requires --max-cycles")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    config = vars(args)
    logging.basicConfig(
        level=config.pop("log_level"),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        elapsed = run(config.pop("rom"), **config)
    except Chip8Error:
        return 1
    if args.headless:
        print(f"Elapsed: {elapsed:.3f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
