#!/usr/bin/env python3
"""Crawler walking agent: run a policy in the PyBullet crawler scene."""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from src.modules.rl_controller import AgentConfig, CrawlerEnv, EnvConfig, RLController, run_episodes

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(message)s", datefmt="%H:%M:%S")


def _args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Quadruped crawler walking towards a target",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py --episodes 3\n"
            "  python main.py --policy checkpoints/crawler.pt --video outputs/crawler.mp4\n"
            "  python main.py --gui --avoid-obstacles --decision-interval 1\n"
        ),
    )
    p.add_argument("--episodes", type=int, default=1)
    p.add_argument("--max-decisions", type=int, default=1000)
    p.add_argument("--max-steps", type=int, default=5000, help="agent ticks per episode, 0 = unlimited")
    p.add_argument("--policy", default=None, help="TorchScript policy; random actions when omitted")
    p.add_argument("--device", default="cpu", choices=["cuda", "cpu"])
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--gui", action="store_true")
    p.add_argument("--decision-interval", type=int, default=5)
    p.add_argument("--no-detect-targets", dest="detect_targets", action="store_false")
    p.add_argument("--avoid-obstacles", action="store_true")
    p.add_argument("--no-respawn-target", dest="respawn_target", action="store_false")
    p.add_argument("--spawn-radius", type=float, default=10.0)
    p.add_argument("--no-reward-moving", dest="reward_moving", action="store_false")
    p.add_argument("--no-reward-facing", dest="reward_facing", action="store_false")
    p.add_argument("--no-time-penalty", dest="time_penalty", action="store_false")
    p.add_argument("--foot-viz", action="store_true", help="colour feet by ground contact")
    p.add_argument("--video", default=None, help="write the first episode to this MP4 path")
    return p.parse_args(argv)


def build_env(args: argparse.Namespace) -> CrawlerEnv:
    agent_config = AgentConfig(
        detect_targets=args.detect_targets,
        avoid_obstacles=args.avoid_obstacles,
        respawn_target_when_touched=args.respawn_target,
        target_spawn_radius=args.spawn_radius,
        reward_moving_towards_target=args.reward_moving,
        reward_facing_target=args.reward_facing,
        reward_use_time_penalty=args.time_penalty,
        use_foot_grounded_visualization=args.foot_viz,
        decision_interval=args.decision_interval,
    )
    env_config = EnvConfig(max_steps=args.max_steps, use_obstacle=args.avoid_obstacles)
    return CrawlerEnv(env_config, agent_config, render_mode="human" if args.gui else None)


def main(argv=None) -> None:
    args = _args(argv)
    env = build_env(args)
    controller = RLController(checkpoint=args.policy, device=args.device, seed=args.seed)
    try:
        results = run_episodes(env, controller, episodes=args.episodes, max_decisions=args.max_decisions,
                               record_first=args.video is not None, seed=args.seed)
        if args.video:
            env.simulator.create_video(results[0].frames, args.video, fps=env.metadata["render_fps"])
    finally:
        env.close()

    for r in results:
        status = "fell" if r.terminated else ("time limit" if r.truncated else "running")
        print(f"episode {r.episode}: reward {r.total_reward:+.3f}  decisions {r.decisions}  "
              f"targets {r.targets_reached}  distance {r.final_distance:.2f}  [{status}]")
    if args.video:
        print(f"\nvideo  → {args.video}")


if __name__ == "__main__":
    main()
