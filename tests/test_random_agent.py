from blockerino.rl.random_agent import build_parser, main, run_random


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.mode == "classic"
    assert args.steps == 200
    assert not args.verbose


def test_random_agent_only_plays_valid_moves():
    stats = run_random("chaos", steps=60, seed=0)
    assert stats["games"] >= 1
    assert stats["best_score"] > 0
    # every step was drawn from the mask, so no invalid-action penalty applies
    assert stats["total_reward"] > 0


def test_main_prints_summary(capsys):
    main(["--mode", "classic", "--steps", "10", "--seed", "1"])
    out = capsys.readouterr().out
    assert out.startswith("Random agent:")
