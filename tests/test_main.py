"""Tests for the command-line entry point."""

from main import _args, build_env


class TestArgs:

    def test_defaults(self):
        args = _args([])
        assert args.episodes == 1
        assert args.policy is None
        assert args.decision_interval == 5
        assert args.detect_targets and args.respawn_target
        assert not args.avoid_obstacles
        assert args.video is None

    def test_negative_flags(self):
        args = _args(["--no-detect-targets", "--no-respawn-target", "--no-time-penalty"])
        assert not args.detect_targets
        assert not args.respawn_target
        assert not args.time_penalty


class TestBuildEnv:

    def test_flags_reach_configs(self):
        env = build_env(_args(["--avoid-obstacles", "--decision-interval", "2",
                               "--spawn-radius", "4", "--max-steps", "100", "--foot-viz"]))
        assert env.agent_config.avoid_obstacles
        assert env.agent_config.decision_interval == 2
        assert env.agent_config.target_spawn_radius == 4.0
        assert env.agent_config.use_foot_grounded_visualization
        assert env.config.use_obstacle
        assert env.config.max_steps == 100
        assert env.render_mode is None

    def test_gui_flag_selects_human_render(self):
        env = build_env(_args(["--gui"]))
        assert env.render_mode == "human"
