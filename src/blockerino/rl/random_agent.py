from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import numpy as np
import gymnasium as gym

from blockerino.env import CHAOS_ENV_ID, CLASSIC_ENV_ID


ENV_IDS = {
    "classic": CLASSIC_ENV_ID,
    "chaos": CHAOS_ENV_ID,
}


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run_random(mode: str = "classic", steps: int = 200, seed: Optional[int] = None,
               render: bool = False) -> dict:
    """Play uniformly random valid placements, restarting after each game over."""
    env = gym.make(ENV_IDS[mode], render_mode="ansi" if render else None)
    rng = np.random.default_rng(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    games = 1
    best_score = 0
    for _ in range(steps):
        valid = np.argwhere(info["action_mask"])
        if valid.size:
            action = valid[int(rng.integers(len(valid)))]
        else:
            action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        best_score = max(best_score, int(info["score"]))
        if render:
            print(env.render())
        if terminated or truncated:
            logging.info("Game %d finished with score %d", games, info["score"])
            obs, info = env.reset()
            games += 1
    env.close()
    return {"total_reward": total_reward, "games": games, "best_score": best_score}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play Blockerino with a random agent")
    p.add_argument("--mode", choices=sorted(ENV_IDS), default="classic")
    p.add_argument("--steps", type=int, default=200)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--render", action="store_true", help="print the board after every step")
    p.add_argument("--verbose", action="store_true")
    return p


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    stats = run_random(args.mode, args.steps, args.seed, args.render)
    print(f"Random agent: {stats['games']} games, best score {stats['best_score']}, "
          f"total reward {stats['total_reward']:.2f}")


if __name__ == "__main__":  # pragma: no cover
    main()
