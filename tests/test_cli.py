import pytest

from nerfbox.cli import Cli, parse_args


def test_defaults():
    args = parse_args([])
    assert args == Cli()
    assert args.debug is False
    assert args.do_train is True
    assert args.img_dir == "monkey-128-no-shading"
    assert args.log_dir == "logs"
    assert args.save_dir == "checkpoints"
    assert args.load_path == ""
    assert args.num_iter == 50000
    assert args.eval_steps == 360
    assert args.save_steps == 1000
    assert args.refresh_epochs == 100


def test_overrides():
    args = parse_args(
        [
            "--debug",
            "--img-dir",
            "views",
            "--load-path",
            "ckpt.npz",
            "--num-iter",
            "12",
            "--eval-steps",
            "3",
            "--save-steps",
            "4",
        ]
    )
    assert args.debug is True
    assert args.img_dir == "views"
    assert args.load_path == "ckpt.npz"
    assert (args.num_iter, args.eval_steps, args.save_steps) == (12, 3, 4)


def test_training_can_be_switched_off():
    assert parse_args(["--no-do-train"]).do_train is False
    assert parse_args(["--do-train"]).do_train is True


def test_invalid_integer_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--num-iter", "many"])


def test_unknown_option_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--bogus"])