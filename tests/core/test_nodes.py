#!filepath: tests/core/test_nodes.py
import pytest

from trialflow.core.nodes import TimelineNode, TrialNode, expand
from trialflow.utils.errors import MalformedTimelineDescription


def test_list_is_shorthand_for_timeline():
    root = expand([{"type": "html"}, {"type": "html"}])

    assert isinstance(root, TimelineNode)
    assert root.path == "root"
    assert [c.path for c in root.children] == ["root.timeline[0]", "root.timeline[1]"]


def test_root_trial_is_wrapped():
    root = expand({"type": "html", "stimulus": "hi"})

    assert isinstance(root, TimelineNode)
    assert len(root.children) == 1
    trial = root.children[0]
    assert isinstance(trial, TrialNode)
    assert trial.parent is root
    assert trial.declarations == {"stimulus": "hi"}


def test_trial_with_timeline_keys_is_wrapped():
    root = expand([{"type": "html", "repetitions": 3, "stimulus": "x"}])

    wrapper = root.children[0]
    assert isinstance(wrapper, TimelineNode)
    assert wrapper.repetitions == 3
    assert wrapper.children[0].declarations == {"stimulus": "x"}


def test_declarations_are_inherited_nearest_wins():
    root = expand(
        {
            "timeline": [
                {
                    "timeline": [{"type": "html", "choices": ["a"]}, {"type": "html"}],
                    "stimulus": "inner",
                }
            ],
            "stimulus": "outer",
            "choices": ["f", "j"],
        }
    )
    inner = root.children[0]
    first, second = inner.children

    assert first.effective_declarations() == {"stimulus": "inner", "choices": ["a"]}
    assert second.effective_declarations() == {"stimulus": "inner", "choices": ["f", "j"]}


def test_type_name_from_class():
    class HtmlKeyboardResponse:
        pass

    root = expand([{"type": HtmlKeyboardResponse}])
    assert root.children[0].type_name == "HtmlKeyboardResponse"


def test_trial_count():
    root = expand(
        {
            "timeline": [{"type": "a"}, {"timeline": [{"type": "b"}], "repetitions": 2}],
            "timeline_variables": [{"x": 1}, {"x": 2}],
        }
    )
    assert root.trial_count() == 6


@pytest.mark.parametrize(
    "description, reason",
    [
        ({"type": "html", "timeline": []}, "both"),
        ({"stimulus": "x"}, "either"),
        ({"type": None}, "None"),
        ({"timeline": {"type": "html"}}, "list"),
        ({"timeline": [], "repetitions": 0}, "repetitions"),
        ({"timeline": [], "repetitions": True}, "repetitions"),
        ({"timeline": [], "randomize_order": "yes"}, "randomize_order"),
        ({"timeline": [], "loop_function": 3}, "loop_function"),
        ({"timeline": [{"type": "html", "on_finish": "x"}]}, "on_finish"),
        ({"timeline": [], "timeline_variables": [{"a": 1}, {"b": 2}]}, "differ"),
        ({"timeline": [], "timeline_variables": [1]}, "mapping"),
        ({"timeline": [], "sample": {"type": "fixed-repetitions"}}, "requires timeline_variables"),
        (
            {"timeline": [], "timeline_variables": [{"a": 1}], "sample": {"type": "shuffle"}},
            "unknown sample type",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}],
                "sample": {"type": "without-replacement", "size": 2},
            },
            "exceeds",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}, {"a": 2}],
                "sample": {"type": "with-replacement", "weights": [1]},
            },
            "weights",
        ),
        (
            {"timeline": [], "timeline_variables": [{"a": 1}], "sample": {"type": "custom"}},
            "callable",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}],
                "sample": {"type": "alternate-groups", "groups": [[0, 5]]},
            },
            "within",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}, {"a": 2}],
                "sample": {"type": "with-replacement", "weights": ["a", 1]},
            },
            "must be numbers",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}],
                "sample": {"type": "with-replacement", "weights": 5},
            },
            "must be numbers",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}, {"a": 2}],
                "sample": {"type": "alternate-groups", "groups": [["x"], [1]]},
            },
            "integer indices",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}, {"a": 2}],
                "sample": {"type": "alternate-groups", "groups": [[0.5], [1]]},
            },
            "integer indices",
        ),
        (
            {
                "timeline": [],
                "timeline_variables": [{"a": 1}],
                "sample": {"type": "custom", "fn": lambda n, reps: [5]},
            },
            "invalid index 5",
        ),
    ],
)
def test_malformed_descriptions(description, reason):
    with pytest.raises(MalformedTimelineDescription) as e:
        expand(description)
    assert reason in str(e.value)


def test_malformed_error_carries_path():
    with pytest.raises(MalformedTimelineDescription) as e:
        expand([{"type": "html"}, {"timeline": [{"type": "a", "timeline": []}]}])
    assert e.value.path == "root.timeline[1].timeline[0]"
