"""
Тесты движка StateMachine: выполнение обработчиков, цепочки переходов,
защита от зацикливания, сохранение.

Запуск: python -m pytest tests/test_machine.py -v
"""

import json

import pytest

from conftest import seed_user
from core.builder import BotBuilder
from core.context import HandlerContext, StateData
from core.exceptions import InvalidTransition, StateNotFound, TransitionLoopError
from core.machine import StateMachine


def saved(repo, telegram_id=1):
    user = repo.users[telegram_id]
    return user.current_state, json.loads(user.state_data)


@pytest.mark.asyncio
async def test_missing_handlers_are_noop(machine, sender):
    ctx = HandlerContext(None, 1, 1, "nowhere", StateData(), sender)

    assert await machine.execute_on_response("nowhere", ctx, "hello") is None
    assert await machine.execute_on_enter("nowhere", ctx) is None
    assert sender.sent == []


@pytest.mark.asyncio
async def test_execute_returns_handler_result(machine, builder, sender):
    async def respond(ctx, text):
        return "menu" if text == "go" else None

    builder.on_response("welcome", respond)
    ctx = HandlerContext(None, 1, 1, "welcome", StateData(), sender)

    assert await machine.execute_on_response("welcome", ctx, "go") == "menu"
    assert await machine.execute_on_response("welcome", ctx, "stay") is None


@pytest.mark.asyncio
async def test_overridden_on_enter_is_never_called(machine, builder, repo, sender):
    calls = []

    async def old_enter(ctx):
        calls.append("old")

    async def new_enter(ctx):
        calls.append("new")

    async def respond(ctx, text):
        return "target"

    builder.on_enter("target", old_enter)
    builder.on_enter("target", new_enter)
    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")

    await machine.handle_message(1, 1, "go", sender)

    assert calls == ["new"]


@pytest.mark.asyncio
async def test_on_enter_returning_own_state_runs_once(machine, builder, repo, sender):
    calls = []

    async def enter_a(ctx):
        calls.append(ctx.current_state)
        return "A"

    async def respond(ctx, text):
        return "A"

    builder.on_enter("A", enter_a)
    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")

    final = await machine.handle_message(1, 1, "go", sender)

    assert calls == ["A"]
    assert final == "A"


@pytest.mark.asyncio
async def test_chain_follows_path_and_persists_last_state(machine, builder, repo, sender):
    calls = []

    def make_enter(name, next_state):
        async def enter(ctx):
            calls.append(ctx.current_state)
            assert ctx.current_state == name
            return next_state
        return enter

    builder.on_enter("A", make_enter("A", "B"))
    builder.on_enter("B", make_enter("B", "C"))
    builder.on_enter("C", make_enter("C", None))
    builder.on_response("start", lambda ctx, text: "A")
    await seed_user(repo, 1, "start")

    final = await machine.handle_message(1, 1, "go", sender)

    assert calls == ["A", "B", "C"]
    assert final == "C"
    assert saved(repo)[0] == "C"


@pytest.mark.asyncio
async def test_cycle_raises_transition_loop_error(builder, storage, repo, sender):
    machine = StateMachine(builder, storage, max_chain=5, enter_on_new_session=False)
    calls = []

    async def enter_a(ctx):
        calls.append("A")
        return "B"

    async def enter_b(ctx):
        calls.append("B")
        return "A"

    builder.on_enter("A", enter_a)
    builder.on_enter("B", enter_b)

    with pytest.raises(TransitionLoopError) as exc_info:
        await machine.force_state(1, 1, "A", sender)

    assert len(calls) == 5
    assert exc_info.value.limit == 5
    assert exc_info.value.path[:3] == ["A", "B", "A"]


@pytest.mark.asyncio
async def test_data_set_in_on_response_visible_in_chain(machine, builder, repo, sender):
    seen = []

    async def respond(ctx, text):
        ctx.set_data("name", text)
        return "A"

    async def enter_a(ctx):
        seen.append(ctx.get_data("name"))
        ctx.set_data("step", "A")
        return "B"

    async def enter_b(ctx):
        seen.append((ctx.get_data("name"), ctx.get_data("step")))

    builder.on_response("start", respond)
    builder.on_enter("A", enter_a)
    builder.on_enter("B", enter_b)
    await seed_user(repo, 1, "start")

    await machine.handle_message(1, 1, "Alice", sender)

    assert seen == ["Alice", ("Alice", "A")]
    assert saved(repo) == ("B", {"name": "Alice", "step": "A"})


@pytest.mark.asyncio
async def test_no_change_means_no_write(machine, builder, repo, sender):
    async def respond(ctx, text):
        await ctx.send("still here")
        return None

    builder.on_response("start", respond)
    await seed_user(repo, 1, "start", {"k": "v"})
    writes_before = repo.writes

    await machine.handle_message(1, 1, "hello", sender)

    assert repo.writes == writes_before
    assert sender.texts == ["still here"]


@pytest.mark.asyncio
async def test_data_change_without_transition_is_saved(machine, builder, repo, sender):
    async def respond(ctx, text):
        ctx.set_data("count", ctx.get_data("count", 0) + 1)

    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")
    writes_before = repo.writes

    await machine.handle_message(1, 1, "one", sender)
    await machine.handle_message(1, 1, "two", sender)

    assert repo.writes == writes_before + 2
    assert saved(repo) == ("start", {"count": 2})


@pytest.mark.asyncio
async def test_same_state_reenters_by_default(machine, builder, repo, sender):
    async def enter(ctx):
        await ctx.send("Pick an option")

    async def respond(ctx, text):
        return ctx.current_state

    builder.for_state("menu").on_enter(enter).on_response(respond)
    await seed_user(repo, 1, "menu")

    await machine.handle_message(1, 1, "???", sender)

    assert sender.texts == ["Pick an option"]


@pytest.mark.asyncio
async def test_same_state_is_noop_when_reenter_disabled(builder, storage, repo, sender):
    machine = StateMachine(builder, storage, reenter_on_same_state=False, enter_on_new_session=False)

    async def enter(ctx):
        await ctx.send("Pick an option")

    async def respond(ctx, text):
        return "menu"

    builder.for_state("menu").on_enter(enter).on_response(respond)
    await seed_user(repo, 1, "menu")
    writes_before = repo.writes

    final = await machine.handle_message(1, 1, "???", sender)

    assert final == "menu"
    assert sender.sent == []
    assert repo.writes == writes_before


@pytest.mark.asyncio
async def test_explicit_transition_goes_through_chain(machine, builder, repo, sender):
    async def respond(ctx, text):
        await ctx.transition("B")

    async def enter_b(ctx):
        await ctx.send("in B")
        return "C"

    async def enter_c(ctx):
        await ctx.send("in C")

    builder.on_response("start", respond)
    builder.on_enter("B", enter_b)
    builder.on_enter("C", enter_c)
    await seed_user(repo, 1, "start")

    final = await machine.handle_message(1, 1, "go", sender)

    assert final == "C"
    assert sender.texts == ["in B", "in C"]


@pytest.mark.asyncio
async def test_returned_state_wins_over_requested(machine, builder, repo, sender):
    async def respond(ctx, text):
        await ctx.transition("B")
        return "C"

    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")

    assert await machine.handle_message(1, 1, "go", sender) == "C"


@pytest.mark.asyncio
async def test_failing_on_response_keeps_previous_state(machine, builder, repo, sender):
    async def respond(ctx, text):
        ctx.set_data("half", "done")
        raise RuntimeError("boom")

    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")

    with pytest.raises(RuntimeError):
        await machine.handle_message(1, 1, "go", sender)

    assert saved(repo) == ("start", {})


@pytest.mark.asyncio
async def test_failing_on_enter_keeps_completed_transition(machine, builder, repo, sender):
    async def respond(ctx, text):
        ctx.set_data("answer", text)
        return "A"

    async def enter_a(ctx):
        ctx.set_data("lost", True)
        raise RuntimeError("boom")

    builder.on_response("start", respond)
    builder.on_enter("A", enter_a)
    await seed_user(repo, 1, "start")

    with pytest.raises(RuntimeError):
        await machine.handle_message(1, 1, "yes", sender)

    assert saved(repo) == ("A", {"answer": "yes"})


@pytest.mark.asyncio
async def test_sync_handlers_are_supported(machine, builder, repo, sender):
    builder.on_response("start", lambda ctx, text: "A")
    await seed_user(repo, 1, "start")

    assert await machine.handle_message(1, 1, "go", sender) == "A"


@pytest.mark.asyncio
async def test_unknown_returned_state_rejected_by_closed_builder(storage, repo, sender):
    builder = BotBuilder(states=["start", "A"])
    machine = StateMachine(builder, storage, enter_on_new_session=False)

    async def respond(ctx, text):
        return "Z"

    builder.on_response("start", respond)
    await seed_user(repo, 1, "start")

    with pytest.raises(InvalidTransition):
        await machine.handle_message(1, 1, "go", sender)

    assert saved(repo)[0] == "start"


@pytest.mark.asyncio
async def test_new_user_runs_initial_enter_chain_then_response(machine, builder, repo, sender):
    async def idle_enter(ctx):
        return "welcome"

    async def welcome_enter(ctx):
        await ctx.send("hi")

    async def welcome_respond(ctx, text):
        return "menu" if text == "go" else None

    async def menu_enter(ctx):
        await ctx.send("menu text")

    builder.for_state("idle").on_enter(idle_enter)
    builder.for_state("welcome").on_enter(welcome_enter).on_response(welcome_respond)
    builder.for_state("menu").on_enter(menu_enter)

    assert await machine.handle_message(1, 1, "hello", sender) == "welcome"
    assert sender.texts == ["hi"]

    assert await machine.handle_message(1, 1, "go", sender) == "menu"
    assert sender.texts == ["hi", "menu text"]
    assert saved(repo)[0] == "menu"


@pytest.mark.asyncio
async def test_new_user_enter_skipped_when_disabled(builder, storage, sender):
    machine = StateMachine(builder, storage, enter_on_new_session=False)
    calls = []

    async def idle_enter(ctx):
        calls.append("enter")

    async def idle_respond(ctx, text):
        calls.append("respond")

    builder.for_state("idle").on_enter(idle_enter).on_response(idle_respond)

    await machine.handle_message(1, 1, "hello", sender)

    assert calls == ["respond"]


@pytest.mark.asyncio
async def test_force_state_enters_target(machine, builder, repo, sender):
    async def welcome_enter(ctx):
        await ctx.send("welcome back")

    builder.on_enter("welcome", welcome_enter)
    await seed_user(repo, 1, "menu", {"name": "Alice"})

    final = await machine.force_state(1, 1, "welcome", sender)

    assert final == "welcome"
    assert sender.texts == ["welcome back"]
    assert saved(repo) == ("welcome", {"name": "Alice"})


@pytest.mark.asyncio
async def test_force_state_rejects_undeclared_state(storage, sender):
    machine = StateMachine(BotBuilder(states=["idle"]), storage)

    with pytest.raises(StateNotFound):
        await machine.force_state(1, 1, "nowhere", sender)


@pytest.mark.asyncio
async def test_reset_returns_user_to_initial_state(machine, repo):
    await seed_user(repo, 1, "menu", {"name": "Alice"})

    await machine.reset(1)

    assert saved(repo) == ("idle", {})


def test_state_info(machine, builder):
    async def enter(ctx):
        return None

    builder.on_enter("idle", enter)

    assert machine.list_states() == ["idle"]
    assert machine.get_state_info("idle") == {
        "name": "idle",
        "has_on_enter": True,
        "has_on_response": False,
        "initial": True,
    }
    assert machine.get_state_info("nowhere") == {}


@pytest.mark.asyncio
async def test_reset_of_unknown_user_does_not_fail(machine, repo):
    assert await machine.reset(999) is False
    assert 999 not in repo.users


@pytest.mark.asyncio
async def test_each_chain_step_gets_fresh_context(machine, builder, repo, sender):
    seen = []

    async def enter_a(ctx):
        seen.append(ctx)
        await ctx.transition("B")

    async def enter_b(ctx):
        seen.append(ctx)

    builder.on_enter("A", enter_a)
    builder.on_enter("B", enter_b)
    builder.on_response("start", lambda ctx, text: "A")
    await seed_user(repo, 1, "start")

    assert await machine.handle_message(1, 1, "go", sender) == "B"
    assert seen[0] is not seen[1]
    assert seen[1].current_state == "B"
    assert seen[1].requested_state is None


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_result", [5, True, ["menu"]])
async def test_non_string_result_is_rejected(machine, builder, repo, sender, bad_result):
    builder.on_response("start", lambda ctx, text: bad_result)
    await seed_user(repo, 1, "start")

    with pytest.raises(InvalidTransition):
        await machine.handle_message(1, 1, "go", sender)

    assert saved(repo)[0] == "start"
