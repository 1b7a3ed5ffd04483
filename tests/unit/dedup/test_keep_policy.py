"""
Unit tests for KeepPolicyResolver and choosers.

Tests:
- newest / oldest / largest / smallest / first
- Ties go to the first-seen member
- Interactive: scripted answers, console prompt, skip, end of input
"""

import io
from pathlib import Path

import pytest

from dupfinder.config.exceptions import ConfigurationError, InteractiveInputError
from dupfinder.dedup.keep_policy import ConsoleChooser, KeepPolicyResolver, ScriptedChooser
from dupfinder.dedup.models import DuplicateGroup, FileRecord, KeepPolicy


def _group(*members: tuple[str, int, float], group_id: int = 1) -> DuplicateGroup:
    records = [
        FileRecord(path=Path("/data") / name, size_bytes=size, mod_time=mtime, fingerprint="h")
        for name, size, mtime in members
    ]
    return DuplicateGroup(group_id=group_id, fingerprint="h", members=records)


@pytest.fixture
def mixed_group():
    return _group(("a", 10, 300.0), ("b", 30, 100.0), ("c", 20, 200.0))


class TestAutomaticPolicies:
    @pytest.mark.parametrize(
        "policy,expected",
        [
            (KeepPolicy.newest, "a"),
            (KeepPolicy.oldest, "b"),
            (KeepPolicy.largest, "b"),
            (KeepPolicy.smallest, "a"),
            (KeepPolicy.first, "a"),
        ],
    )
    def test_policy_selects_expected(self, mixed_group, policy, expected):
        decision = KeepPolicyResolver(policy).resolve(mixed_group)

        assert decision.kept.path.name == expected
        assert len(decision.removed) == 2
        assert decision.kept not in decision.removed

    @pytest.mark.parametrize(
        "policy",
        [KeepPolicy.newest, KeepPolicy.oldest, KeepPolicy.largest, KeepPolicy.smallest],
    )
    def test_ties_go_to_first_seen(self, policy):
        group = _group(("x", 10, 50.0), ("y", 10, 50.0), ("z", 10, 50.0))
        decision = KeepPolicyResolver(policy).resolve(group)

        assert decision.kept.path.name == "x"

    def test_removed_keeps_discovery_order(self, mixed_group):
        decision = KeepPolicyResolver(KeepPolicy.oldest).resolve(mixed_group)
        assert [r.path.name for r in decision.removed] == ["a", "c"]

    def test_decision_stored_on_group(self, mixed_group):
        decision = KeepPolicyResolver(KeepPolicy.first).resolve(mixed_group)
        assert mixed_group.decision is decision


class TestInteractive:
    def test_requires_chooser(self):
        with pytest.raises(ConfigurationError):
            KeepPolicyResolver(KeepPolicy.interactive)

    def test_scripted_choice(self, mixed_group):
        chooser = ScriptedChooser([2])
        decision = KeepPolicyResolver(KeepPolicy.interactive, chooser).resolve(mixed_group)

        assert decision.kept.path.name == "c"
        assert chooser.asked == [1]

    def test_skip_leaves_group_untouched(self, mixed_group):
        resolver = KeepPolicyResolver(KeepPolicy.interactive, ScriptedChooser([None]))

        assert resolver.resolve(mixed_group) is None
        assert mixed_group.decision is None

    def test_out_of_range_choice(self, mixed_group):
        resolver = KeepPolicyResolver(KeepPolicy.interactive, ScriptedChooser([7]))
        with pytest.raises(ValueError):
            resolver.resolve(mixed_group)

    def test_scripted_answers_exhausted(self, mixed_group):
        resolver = KeepPolicyResolver(KeepPolicy.interactive, ScriptedChooser([]))
        with pytest.raises(InteractiveInputError):
            resolver.resolve(mixed_group)


class TestConsoleChooser:
    def test_prompt_and_answer(self, mixed_group):
        out = io.StringIO()
        chooser = ConsoleChooser(io.StringIO("2\n"), out)

        assert chooser.choose(mixed_group) == 1
        prompt = out.getvalue()
        assert "Choose which file to keep (group 1):" in prompt
        assert "  1) /data/a (10B," in prompt
        assert "  0) Skip this group" in prompt
        assert "Enter choice (0-3): " in prompt

    def test_zero_skips(self, mixed_group):
        chooser = ConsoleChooser(io.StringIO("0\n"), io.StringIO())
        assert chooser.choose(mixed_group) is None

    def test_invalid_answers_reprompt(self, mixed_group):
        out = io.StringIO()
        chooser = ConsoleChooser(io.StringIO("9\nabc\n\n3\n"), out)

        assert chooser.choose(mixed_group) == 2
        assert out.getvalue().count("Invalid choice. Please enter 0-3") == 3

    def test_end_of_input(self, mixed_group):
        chooser = ConsoleChooser(io.StringIO(""), io.StringIO())
        with pytest.raises(InteractiveInputError):
            chooser.choose(mixed_group)

    def test_closed_stream_rejected(self):
        stream = io.StringIO()
        stream.close()
        with pytest.raises(InteractiveInputError):
            ConsoleChooser(stream, io.StringIO())
