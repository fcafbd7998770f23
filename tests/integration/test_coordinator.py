"""Tests for the round controller."""

import pytest

from liars_lie.agent import Agent
from liars_lie.config import GameConfig
from liars_lie.coordinator import GameContext, GameStatus, RoundController, TargetOracle
from liars_lie.errors import RegistryError
from liars_lie.protocol import Endpoint


def _controller(registry, agents, liar_ratio: float, target: int, timeout: float) -> RoundController:
    registry.publish(agent.endpoint for agent in agents)
    context = GameContext(registry=registry, liar_ratio=liar_ratio, timeout=timeout)
    return RoundController(context, TargetOracle(target))


def test_oracle_only_answers_yes_or_no() -> None:
    oracle = TargetOracle(3)
    assert oracle.check(3)
    assert not oracle.check(4)


@pytest.mark.asyncio
async def test_game_won_after_exhausting_wrong_candidates(registry, running_agents, timeout) -> None:
    agents = [Agent(1), Agent(1), Agent(3), Agent(2)]
    async with running_agents(*agents):
        controller = _controller(registry, agents, 0.5, target=3, timeout=timeout)

        results = []
        while controller.status == GameStatus.AWAITING_COMMAND:
            results.append(await controller.play())

        assert [result.candidate for result in results] == [1, 2, 3]
        assert [result.won for result in results] == [False, False, True]
        assert results[-1].round_number == 3
        assert controller.rounds_played == 3
        assert controller.status == GameStatus.GAME_WON
        assert controller.context.already_tried == {1, 2, 3}

        failures = await controller.shutdown()

    assert failures == []
    assert controller.status == GameStatus.STOPPED
    assert not registry.exists()


@pytest.mark.asyncio
async def test_round_without_new_candidate_still_counts(registry, running_agents, timeout) -> None:
    agents = [Agent(2), Agent(2)]
    async with running_agents(*agents):
        controller = _controller(registry, agents, 0.5, target=3, timeout=timeout)

        first = await controller.play()
        second = await controller.play()
        await controller.shutdown()

    assert first.candidate == 2 and not first.won
    assert second.candidate is None and not second.won
    assert second.round_number == 2
    assert controller.rounds_played == 2


@pytest.mark.asyncio
async def test_cannot_play_after_win(registry, running_agents, timeout) -> None:
    agents = [Agent(5), Agent(1)]
    async with running_agents(*agents):
        controller = _controller(registry, agents, 0.5, target=1, timeout=timeout)
        assert (await controller.play()).won

        with pytest.raises(RuntimeError):
            await controller.play()
        await controller.shutdown()


@pytest.mark.asyncio
async def test_stop_without_playing(registry, running_agents, timeout) -> None:
    agents = [Agent(5), Agent(1)]
    async with running_agents(*agents):
        controller = _controller(registry, agents, 0.5, target=1, timeout=timeout)
        await controller.shutdown()
        # A second shutdown is a no-op
        await controller.shutdown()

    assert controller.rounds_played == 0
    assert controller.status == GameStatus.STOPPED
    assert not registry.exists()


@pytest.mark.asyncio
async def test_missing_registry_is_fatal_for_a_round(registry, timeout) -> None:
    context = GameContext(registry=registry, liar_ratio=0.5, timeout=timeout)
    controller = RoundController(context, TargetOracle(1))

    with pytest.raises(RegistryError):
        await controller.play()
    assert controller.status == GameStatus.AWAITING_COMMAND
    assert controller.rounds_played == 0


@pytest.mark.asyncio
async def test_shutdown_tolerates_unreachable_agents(registry, closed_port, timeout) -> None:
    registry.publish([Endpoint("127.0.0.1", closed_port)])
    context = GameContext(registry=registry, liar_ratio=0.5, timeout=timeout)
    controller = RoundController(context, TargetOracle(1))

    assert await controller.shutdown() == []
    assert not registry.exists()


@pytest.mark.asyncio
async def test_full_game_with_spawned_agents(registry, rng, timeout) -> None:
    config = GameConfig(value=4, max_value=5, num_agents=10, liar_ratio=0.3)
    controller = await RoundController.launch(config, registry, timeout, rng)
    assert len(registry.load()) == 10

    proposed = []
    try:
        while controller.status == GameStatus.AWAITING_COMMAND:
            result = await controller.play()
            assert result.tally.total == 10
            assert result.tally.count(4) == 7
            if result.candidate is not None:
                proposed.append(result.candidate)
    finally:
        failures = await controller.shutdown()

    assert proposed[-1] == 4
    assert len(proposed) == len(set(proposed))
    assert failures == []
    assert all(agent.stopped for agent in controller.pool.agents)
    assert not registry.exists()


@pytest.mark.asyncio
async def test_spawned_liars_never_report_target(registry, rng, timeout) -> None:
    config = GameConfig(value=2, max_value=3, num_agents=6, liar_ratio=0.5)
    controller = await RoundController.launch(config, registry, timeout, rng)
    try:
        liars = [agent for agent in controller.pool.agents if agent.is_liar]
        assert len(liars) == 3
        assert all(agent.value in (1, 3) for agent in liars)
        assert all(agent.value == 2 for agent in controller.pool.agents if not agent.is_liar)
    finally:
        await controller.shutdown()
