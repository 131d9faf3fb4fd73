#!filepath: tests/engine/test_timeline_controller.py
import asyncio

import pytest

from trialflow import timeline_variable
from trialflow.core.hooks import GlobalHooks
from trialflow.engine import Engine, run_timeline
from trialflow.utils.errors import CallbackError


def _counter():
    counts = {"start": 0, "finish": 0}

    def on_start():
        counts["start"] += 1

    def on_finish():
        counts["finish"] += 1

    return counts, on_start, on_finish


def test_lifecycle_hooks_fire_once_per_entry(instant_runner):
    counts, on_start, on_finish = _counter()

    data = run_timeline(
        {
            "timeline": [{"type": "a"}, {"type": "b"}],
            "repetitions": 3,
            "on_timeline_start": on_start,
            "on_timeline_finish": on_finish,
        },
        instant_runner,
    )

    assert len(data) == 6
    assert counts == {"start": 1, "finish": 1}


def test_lifecycle_hooks_fire_once_with_timeline_variables(instant_runner):
    counts, on_start, on_finish = _counter()

    run_timeline(
        [
            {
                "timeline": [{"type": "a"}],
                "timeline_variables": [{"x": 1}, {"x": 2}, {"x": 3}],
                "on_timeline_start": on_start,
                "on_timeline_finish": on_finish,
            }
        ],
        instant_runner,
    )
    assert counts == {"start": 1, "finish": 1}


def test_nested_timeline_entered_per_outer_iteration(instant_runner):
    counts, on_start, on_finish = _counter()

    run_timeline(
        {
            "timeline": [
                {
                    "timeline": [{"type": "a"}],
                    "on_timeline_start": on_start,
                    "on_timeline_finish": on_finish,
                }
            ],
            "repetitions": 2,
        },
        instant_runner,
    )
    assert counts == {"start": 2, "finish": 2}


def test_conditional_false_skips_node(instant_runner):
    counts, on_start, on_finish = _counter()

    data = run_timeline(
        [
            {
                "timeline": [{"type": "skipped"}],
                "conditional_function": lambda: False,
                "on_timeline_start": on_start,
                "on_timeline_finish": on_finish,
            },
            {"type": "after"},
        ],
        instant_runner,
    )

    assert data.select("trial_type") == ["after"]
    assert counts == {"start": 0, "finish": 0}


def test_conditional_evaluated_once_per_entry(instant_runner):
    calls = {"n": 0}

    def conditional():
        calls["n"] += 1
        return True

    run_timeline(
        [{"timeline": [{"type": "a"}, {"type": "b"}], "repetitions": 2, "conditional_function": conditional}],
        instant_runner,
    )
    assert calls["n"] == 1


def test_conditional_sees_enclosing_scope_only(instant_runner):
    holder = {}
    seen = []

    def conditional():
        seen.append(holder["engine"].evaluate_timeline_variable("x"))
        return True

    engine = Engine(instant_runner)
    holder["engine"] = engine
    asyncio.run(
        engine.run(
            {
                "timeline": [
                    {
                        "timeline": [{"type": "a"}],
                        "timeline_variables": [{"x": "inner"}],
                        "conditional_function": conditional,
                    }
                ],
                "timeline_variables": [{"x": "outer"}],
            }
        )
    )
    assert seen == ["outer"]


def test_loop_function_reruns_children_without_refiring_start(instant_runner):
    counts, on_start, on_finish = _counter()
    passes = []

    def loop(data):
        passes.append(data.select("trial_type"))
        return len(passes) < 2

    data = run_timeline(
        [
            {
                "timeline": [{"type": "a"}, {"type": "b"}],
                "loop_function": loop,
                "on_timeline_start": on_start,
                "on_timeline_finish": on_finish,
            },
            {"type": "next"},
        ],
        instant_runner,
    )

    assert data.select("trial_type") == ["a", "b", "a", "b", "next"]
    assert passes == [["a", "b"], ["a", "b"]]
    assert counts == {"start": 1, "finish": 1}


def test_loop_function_error(instant_runner):
    def loop(data):
        raise RuntimeError("bad loop")

    with pytest.raises(CallbackError) as e:
        run_timeline([{"timeline": [{"type": "a"}], "loop_function": loop}], instant_runner)
    assert e.value.hook == "loop_function"


def test_variable_shadowing(instant_runner):
    run_timeline(
        {
            "timeline": [
                {"type": "a", "stimulus": timeline_variable("x")},
                {
                    "timeline": [{"type": "b", "stimulus": timeline_variable("x")}],
                    "timeline_variables": [{"x": "inner"}],
                },
                {"type": "c", "stimulus": timeline_variable("x")},
            ],
            "timeline_variables": [{"x": "outer"}],
        },
        instant_runner,
    )
    assert [t["stimulus"] for t in instant_runner.trials] == ["outer", "inner", "outer"]


def test_empty_timeline_variables_runs_no_trials(instant_runner):
    counts, on_start, on_finish = _counter()

    data = run_timeline(
        [
            {
                "timeline": [{"type": "a"}],
                "timeline_variables": [],
                "on_timeline_start": on_start,
                "on_timeline_finish": on_finish,
            },
            {"type": "b"},
        ],
        instant_runner,
    )
    assert data.select("trial_type") == ["b"]
    assert counts == {"start": 1, "finish": 1}


def test_global_timeline_hooks_are_defaults(instant_runner):
    events = []
    hooks = GlobalHooks(
        on_timeline_start=lambda: events.append("global start"),
        on_timeline_finish=lambda: events.append("global finish"),
    )

    run_timeline(
        [
            {"timeline": [{"type": "a"}], "on_timeline_start": lambda: events.append("own start")},
        ],
        instant_runner,
        hooks=hooks,
    )

    # root（无自有 hook）→ global；子 timeline start 用自有，finish 回落到 global
    assert events == ["global start", "own start", "global finish", "global finish"]


def test_end_current_timeline(instant_runner):
    holder = {}
    counts, on_start, on_finish = _counter()
    loop_calls = []

    def end_block(record):
        holder["engine"].end_current_timeline()

    engine = Engine(instant_runner)
    holder["engine"] = engine
    data = asyncio.run(
        engine.run(
            [
                {
                    "timeline": [{"type": "a", "on_finish": end_block}, {"type": "b"}],
                    "loop_function": lambda d: loop_calls.append(1) or True,
                    "on_timeline_start": on_start,
                    "on_timeline_finish": on_finish,
                },
                {"type": "c"},
            ]
        )
    )

    assert data.select("trial_type") == ["a", "c"]
    assert loop_calls == []
    assert counts == {"start": 1, "finish": 1}
