"""Tests for CrawlerAgent - decision timer, reward shaping, observations, reset."""

import math
from types import SimpleNamespace

import numpy as np
import pybullet as p
import pytest

from src.modules.physics_engine.joint_drive import GroundContact
from src.modules.rl_controller.agent import AgentConfig, CrawlerAgent
from src.modules.rl_controller.env import CrawlerEnv, EnvConfig
from src.shared.constants import (
    ACTION_SIZE, GROUNDED_RGBA, OBSERVATION_SIZE, RAYCAST_MAX_DISTANCE, UNGROUNDED_RGBA,
)
from src.shared.geometry import rotate


def _bare_agent(**config) -> CrawlerAgent:
    return CrawlerAgent(jd_controller=None, scene=None, config=AgentConfig(**config))


class TestAgentConfig:

    def test_default_values(self):
        config = AgentConfig()
        assert config.detect_targets == True
        assert config.avoid_obstacles == False
        assert config.target_spawn_height == 5.0
        assert config.decision_interval == 5

    def test_invalid_decision_interval(self):
        with pytest.raises(ValueError, match="decision_interval"):
            AgentConfig(decision_interval=0)

    def test_invalid_spawn_radius(self):
        with pytest.raises(ValueError, match="target_spawn_radius"):
            AgentConfig(target_spawn_radius=-1.0)


class TestDecisionTimer:

    def test_cycles_every_interval(self):
        agent = _bare_agent(decision_interval=3)
        flags = []
        for _ in range(6):
            agent.increment_decision_timer()
            flags.append(agent.is_new_decision_step)
        # counter starts at 1: 2, 3, then wraps to 1 on a new decision
        assert flags == [False, False, True, False, False, True]

    def test_interval_one_always_decides(self):
        agent = _bare_agent(decision_interval=1)
        for _ in range(4):
            agent.increment_decision_timer()
            assert agent.is_new_decision_step
            assert agent.current_decision_step == 1


class TestRewardBookkeeping:

    def test_add_and_consume(self):
        agent = _bare_agent()
        agent.add_reward(0.5)
        agent.add_reward(-0.2)
        assert agent.consume_reward() == pytest.approx(0.3)
        assert agent.consume_reward() == 0.0
        assert agent.cumulative_reward == pytest.approx(0.3)

    def test_set_replaces_pending_reward(self):
        agent = _bare_agent()
        agent.add_reward(0.5)
        agent.set_reward(-1.0)
        assert agent.consume_reward() == -1.0
        assert agent.cumulative_reward == pytest.approx(-1.0)

    def test_ground_contact_ends_episode_with_penalty(self):
        body = SimpleNamespace(name="body", ground_contact=GroundContact(
            touching_ground=True, agent_done_on_ground_contact=True, penalize_ground_contact=True))
        agent = CrawlerAgent(jd_controller=SimpleNamespace(update_contacts=lambda: [body]), scene=None)
        agent.add_reward(0.4)
        agent.on_physics_step()
        assert agent.is_done()
        assert agent.consume_reward() == -1.0

    def test_foot_ground_contact_is_harmless(self):
        foot = SimpleNamespace(name="leg0_lower", ground_contact=GroundContact(touching_ground=True))
        agent = CrawlerAgent(jd_controller=SimpleNamespace(update_contacts=lambda: [foot]), scene=None)
        agent.on_physics_step()
        assert not agent.is_done()
        assert agent.consume_reward() == 0.0


class TestCrawlerAgentInScene:

    def setup_method(self):
        self.env = CrawlerEnv(
            EnvConfig(use_obstacle=True),
            AgentConfig(avoid_obstacles=True, decision_interval=5,
                        reward_moving_towards_target=False, reward_facing_target=False,
                        reward_use_time_penalty=False),
        )
        self.obs, _ = self.env.reset(seed=0)
        self.agent = self.env.agent
        self.parts = self.agent.jd_controller.body_parts_dict

    def teardown_method(self):
        self.env.close()

    def test_observation_shape(self):
        assert self.obs.shape == (OBSERVATION_SIZE,)
        assert self.obs.dtype == np.float32
        assert np.all(np.isfinite(self.obs))

    def test_ground_distance_observed(self):
        # ray starts at the torso centre, which sits at its spawn height
        torso_z = self.env.crawler.link_state(-1).position[2]
        assert self.obs[0] == pytest.approx(torso_z, abs=1e-3)
        assert self.obs[0] == pytest.approx(0.45, abs=0.02)
        assert self.obs[0] < RAYCAST_MAX_DISTANCE

    def test_root_body_is_done_on_ground_contact(self):
        contact = self.parts["body"].ground_contact
        assert contact.agent_done_on_ground_contact
        assert contact.penalize_ground_contact

    def test_body_up_is_world_up_in_target_frame(self):
        obs = self.agent.collect_observations()
        # target is level with the torso, so the frame keeps world up
        np.testing.assert_allclose(obs[4:7], [0, 0, 1], atol=0.05)

    def test_strength_observed_after_decision(self):
        self.agent.agent_action(np.ones(ACTION_SIZE))
        obs = self.agent.collect_observations()
        # 7 header values (ray, forward, up), 7 root-body values, then leg0_upper
        leg0_upper = obs[7 + 7:7 + 7 + 14]
        assert leg0_upper[-1] == pytest.approx(1.0)
        np.testing.assert_allclose(leg0_upper[10:13], [1.0, 1.0, 0.0])

    def test_repeat_ticks_skip_actuation(self):
        self.agent.agent_action(np.ones(ACTION_SIZE))
        assert not self.agent.is_new_decision_step
        self.agent.agent_action(-np.ones(ACTION_SIZE))
        assert self.parts["leg0_upper"].current_strength == pytest.approx(40.0)

    def test_action_slicing(self):
        action = np.zeros(ACTION_SIZE)
        action[2] = 1.0     # leg1_upper x
        action[3] = -1.0    # leg1_upper y
        action[9] = 1.0     # leg1_lower x
        action[16] = -1.0   # leg0_lower strength
        self.agent.agent_action(action)
        assert self.parts["leg1_upper"].current_x_normalized_rot == pytest.approx(1.0)
        assert self.parts["leg1_upper"].current_y_normalized_rot == pytest.approx(0.0)
        assert self.parts["leg1_lower"].current_x_normalized_rot == pytest.approx(1.0)
        assert self.parts["leg0_lower"].current_strength == pytest.approx(0.0)
        assert self.parts["leg0_upper"].current_strength == pytest.approx(20.0)

    def test_wrong_action_length(self):
        with pytest.raises(ValueError, match="Expected 20 actions"):
            self.agent.agent_action(np.zeros(ACTION_SIZE - 1))

    def test_each_touching_part_scores_target(self):
        self.agent.config.respawn_target_when_touched = False
        self.parts["leg0_lower"].target_contact.touching_target = True
        self.parts["leg1_lower"].target_contact.touching_target = True
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        assert self.agent.consume_reward() == pytest.approx(2.0)
        assert self.agent.targets_reached == 2

    def test_obstacle_penalty(self):
        self.parts["leg2_upper"].obstacle_contact.touching_obstacle = True
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        assert self.agent.consume_reward() == pytest.approx(-0.1)

    def test_no_target_reward_once_done(self):
        self.parts["leg0_lower"].target_contact.touching_target = True
        self.agent.done()
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        assert self.agent.consume_reward() == 0.0

    def test_time_penalty(self):
        self.agent.config.reward_use_time_penalty = True
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        assert self.agent.consume_reward() == pytest.approx(-0.001)

    def test_moving_towards_reward_matches_velocity(self):
        self.agent.config.reward_moving_towards_target = True
        velocity = np.array([1.5, -0.5, 0.2])
        p.resetBaseVelocity(self.env.crawler.body_id, velocity.tolist(), [0, 0, 0],
                            physicsClientId=self.env.scene.client)
        self.agent.collect_observations()
        direction = self.agent.dir_to_target / np.linalg.norm(self.agent.dir_to_target)
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        expected = 0.03 * np.dot(velocity, direction)
        assert expected != pytest.approx(0.0)
        assert self.agent.consume_reward() == pytest.approx(expected, abs=1e-6)

    def test_facing_reward_matches_heading(self):
        self.agent.config.reward_facing_target = True
        self.agent.collect_observations()
        body = self.env.crawler.link_state(-1)
        forward = rotate(body.orientation, (1, 0, 0))
        direction = self.agent.dir_to_target / np.linalg.norm(self.agent.dir_to_target)
        self.agent.agent_action(np.zeros(ACTION_SIZE))
        assert self.agent.consume_reward() == pytest.approx(0.01 * np.dot(direction, forward), abs=1e-4)

    def test_target_respawn_within_disc(self):
        self.agent.config.target_spawn_radius = 3.0
        for _ in range(20):
            pos = self.agent.get_random_target_pos()
            assert np.hypot(pos[0], pos[1]) <= 3.0
            assert pos[2] == pytest.approx(5.0)
        scene_pos, _ = self.env.scene.get_object_state("target")
        np.testing.assert_allclose(scene_pos, pos, atol=1e-6)

    def test_touch_with_respawn_moves_target(self):
        before, _ = self.env.scene.get_object_state("target")
        self.agent.touched_target()
        after, _ = self.env.scene.get_object_state("target")
        assert after[2] == pytest.approx(5.0)
        assert before != after

    def test_reset_clears_episode_state(self):
        self.agent.agent_action(np.ones(ACTION_SIZE))
        self.agent.add_reward(3.0)
        self.agent.done()
        self.agent.agent_reset()
        assert not self.agent.is_done()
        assert self.agent.is_new_decision_step
        assert self.agent.current_decision_step == 1
        assert self.agent.step_count == 0
        assert self.agent.consume_reward() == 0.0

    def test_reset_keeps_torso_level(self):
        self.agent.agent_reset()
        body = self.env.crawler.link_state(-1)
        np.testing.assert_allclose(body.position, [0, 0, 0.45], atol=1e-9)
        np.testing.assert_allclose(rotate(body.orientation, (0, 0, 1)), [0, 0, 1], atol=1e-9)

    def test_reset_yaw_is_seeded(self):
        self.agent.rng = np.random.default_rng(3)
        self.agent.agent_reset()
        first = self.env.crawler.link_state(-1).orientation
        self.agent.rng = np.random.default_rng(3)
        self.agent.agent_reset()
        second = self.env.crawler.link_state(-1).orientation
        np.testing.assert_allclose(first, second, atol=1e-9)
        assert math.isfinite(first[3])

    def test_foot_visualization_colours_grounded_feet(self):
        self.agent.config.use_foot_grounded_visualization = True
        self.parts["leg0_lower"].ground_contact.touching_ground = True
        self.parts["leg1_lower"].ground_contact.touching_ground = False
        self.agent.agent_action(np.zeros(ACTION_SIZE))

        colours = {row[1]: row[7] for row in p.getVisualShapeData(self.env.crawler.body_id,
                                                                    physicsClientId=self.env.scene.client)}
        np.testing.assert_allclose(colours[self.parts["leg0_lower"].link_index], GROUNDED_RGBA, atol=1e-3)
        np.testing.assert_allclose(colours[self.parts["leg1_lower"].link_index], UNGROUNDED_RGBA, atol=1e-3)
