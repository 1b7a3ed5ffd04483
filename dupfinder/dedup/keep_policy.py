"""
Keep-policy resolution for duplicate groups.

Selects which member of a group survives:
- newest / oldest: by modification time
- largest / smallest: by size
- first: first member in discovery order
- interactive: delegated to a Chooser (console prompt or scripted answers)

Ties always go to the member seen first.
"""

from __future__ import annotations

import sys
from typing import Iterable, Optional, Protocol, TextIO

import structlog

from dupfinder.config.exceptions import ConfigurationError, InteractiveInputError
from dupfinder.dedup.formatting import format_size, format_timestamp
from dupfinder.dedup.models import DuplicateGroup, KeepDecision, KeepPolicy

logger = structlog.get_logger(__name__)


class Chooser(Protocol):
    """Picks the member to keep; None skips the group."""

    def choose(self, group: DuplicateGroup) -> Optional[int]:
        ...


class ConsoleChooser:
    """
    Prompt an operator for each group.

    Lists members as 1..n with size and date, 0 skips the group. Invalid
    answers re-prompt; end of input aborts the run.
    """

    def __init__(self, input_stream: Optional[TextIO] = None, output_stream: Optional[TextIO] = None):
        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.output_stream = output_stream if output_stream is not None else sys.stderr

        if self.input_stream is None or self.input_stream.closed:
            raise InteractiveInputError("Interactive keep policy needs a readable input stream")

    def choose(self, group: DuplicateGroup) -> Optional[int]:
        count = len(group.members)
        out = self.output_stream

        out.write(f"Choose which file to keep (group {group.group_id}):\n")
        for i, member in enumerate(group.members, start=1):
            out.write(
                f"  {i}) {member.path} ({format_size(member.size_bytes)}, "
                f"{format_timestamp(member.mod_time)})\n"
            )
        out.write("  0) Skip this group\n")

        while True:
            out.write(f"Enter choice (0-{count}): ")
            out.flush()

            line = self.input_stream.readline()
            if not line:
                raise InteractiveInputError("End of input while waiting for a keep choice")

            answer = line.strip()
            if answer == "0":
                return None
            if answer.isdigit() and 1 <= int(answer) <= count:
                return int(answer) - 1

            out.write(f"Invalid choice. Please enter 0-{count}\n")


class ScriptedChooser:
    """Replay pre-recorded answers (0-based index or None = skip)."""

    def __init__(self, choices: Iterable[Optional[int]]):
        self._choices = list(choices)
        self.asked: list[int] = []  # group ids, in prompt order

    def choose(self, group: DuplicateGroup) -> Optional[int]:
        self.asked.append(group.group_id)
        if not self._choices:
            raise InteractiveInputError(f"No scripted answer left for group {group.group_id}")
        return self._choices.pop(0)


class KeepPolicyResolver:
    """
    Apply a keep policy to duplicate groups.

    Usage:
        resolver = KeepPolicyResolver(KeepPolicy.newest)
        decision = resolver.resolve(group)
    """

    def __init__(self, policy: KeepPolicy = KeepPolicy.first, chooser: Optional[Chooser] = None):
        """
        Args:
            policy: Keep policy
            chooser: Required for KeepPolicy.interactive

        Raises:
            ConfigurationError: interactive policy without a chooser
        """
        self.policy = KeepPolicy(policy)
        self.chooser = chooser

        if self.policy is KeepPolicy.interactive and chooser is None:
            raise ConfigurationError("Interactive keep policy requires a chooser")

    def select_index(self, group: DuplicateGroup) -> Optional[int]:
        """
        Index of the member to keep, or None to leave the group untouched.
        """
        members = group.members
        indices = range(len(members))

        # max()/min() return the first extreme element: ties -> first seen
        if self.policy is KeepPolicy.newest:
            return max(indices, key=lambda i: members[i].mod_time)
        if self.policy is KeepPolicy.oldest:
            return min(indices, key=lambda i: members[i].mod_time)
        if self.policy is KeepPolicy.largest:
            return max(indices, key=lambda i: members[i].size_bytes)
        if self.policy is KeepPolicy.smallest:
            return min(indices, key=lambda i: members[i].size_bytes)
        if self.policy is KeepPolicy.first:
            return 0

        choice = self.chooser.choose(group)
        if choice is not None and not 0 <= choice < len(members):
            raise ValueError(f"Chooser returned index {choice} for a group of {len(members)}")
        return choice

    def resolve(self, group: DuplicateGroup) -> Optional[KeepDecision]:
        """
        Select 1 file to keep and mark the others as removed.

        Returns:
            KeepDecision (also stored on the group), or None if skipped
        """
        index = self.select_index(group)
        if index is None:
            logger.info("dedup_group_skipped", group_id=group.group_id)
            return None

        decision = group.decide(index)
        logger.debug(
            "dedup_keeper_selected",
            group_id=group.group_id,
            policy=self.policy.value,
            kept=str(decision.kept.path),
            removed=len(decision.removed),
        )
        return decision
