"""Command-line options for training and viewing."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Cli:
    """Parsed command-line options."""

    debug: bool = False
    do_train: bool = True
    img_dir: str = "monkey-128-no-shading"
    log_dir: str = "logs"
    save_dir: str = "checkpoints"
    load_path: str = ""
    num_iter: int = 50000
    eval_steps: int = 360
    save_steps: int = 1000
    refresh_epochs: int = 100


def _parser() -> argparse.ArgumentParser:
    defaults = Cli()
    parser = argparse.ArgumentParser(prog="nerfbox")
    parser.add_argument("--debug", action="store_true", default=defaults.debug)
    parser.add_argument(
        "--do-train", action=argparse.BooleanOptionalAction, default=defaults.do_train
    )
    parser.add_argument("--img-dir", default=defaults.img_dir)
    parser.add_argument("--log-dir", default=defaults.log_dir)
    parser.add_argument("--save-dir", default=defaults.save_dir)
    parser.add_argument("--load-path", default=defaults.load_path)
    parser.add_argument("--num-iter", type=int, default=defaults.num_iter)
    parser.add_argument("--eval-steps", type=int, default=defaults.eval_steps)
    parser.add_argument("--save-steps", type=int, default=defaults.save_steps)
    parser.add_argument("--refresh-epochs", type=int, default=defaults.refresh_epochs)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Cli:
    """Parse ``argv`` (or the process arguments) into a :class:`Cli`."""
    namespace = _parser().parse_args(argv)
    return Cli(**vars(namespace))