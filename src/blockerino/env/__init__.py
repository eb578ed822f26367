"""Gymnasium environments for Blockerino."""

from __future__ import annotations

from gymnasium.envs.registration import register

from .placement_env import PlacementEnv, compute_action_mask

CLASSIC_ENV_ID = "Blockerino-Classic-v0"
CHAOS_ENV_ID = "Blockerino-Chaos-v0"

# one environment per board/hand mode
register(
    id=CLASSIC_ENV_ID,
    entry_point="blockerino.env.placement_env:PlacementEnv",
    kwargs={"mode": "classic"},
)

register(
    id=CHAOS_ENV_ID,
    entry_point="blockerino.env.placement_env:PlacementEnv",
    kwargs={"mode": "chaos"},
)

__all__ = ["CHAOS_ENV_ID", "CLASSIC_ENV_ID", "PlacementEnv", "compute_action_mask"]
