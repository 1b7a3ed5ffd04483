"""
Scan -> resolve -> act pipeline.

Groups are resolved and acted on one at a time, so an interactive chooser
sees group N+1 only after group N has been processed, and a cancel request
stops cleanly between groups.
"""

from __future__ import annotations

from typing import Optional

import structlog

from dupfinder.dedup.executor import ActionExecutor, ActionResult
from dupfinder.dedup.keep_policy import KeepPolicyResolver
from dupfinder.dedup.models import ScanResult
from dupfinder.dedup.scanner import DedupScanner

logger = structlog.get_logger(__name__)


class DedupPipeline:
    """
    Wire scanner, keep-policy resolver and executor together.

    resolver/executor are optional: without them the pipeline only finds.
    """

    def __init__(
        self,
        scanner: DedupScanner,
        resolver: Optional[KeepPolicyResolver] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        if (resolver is None) != (executor is None):
            raise ValueError("resolver and executor must be given together")

        self.scanner = scanner
        self.resolver = resolver
        self.executor = executor

    def cancel(self) -> None:
        """Stop the scan walk and any remaining groups."""
        self.scanner.cancel()
        if self.executor is not None:
            self.executor.cancel()

    async def run(self) -> tuple[ScanResult, Optional[ActionResult]]:
        scan_result = await self.scanner.scan()

        if self.executor is None:
            return scan_result, None

        if scan_result.cancelled:
            result = self.executor.new_result()
            result.cancelled = True
            logger.info("dedup_action_not_started", reason="scan_cancelled")
            return scan_result, result

        return scan_result, self.resolve_and_apply(scan_result)

    def resolve_and_apply(self, scan_result: ScanResult) -> ActionResult:
        """
        Resolve and act on each group in group_id order.

        Returns:
            ActionResult covering every processed group
        """
        logger.debug(
            "dedup_keep_policy_applied",
            policy=self.resolver.policy.value,
            groups=scan_result.duplicate_groups_count,
        )
        return self.executor.apply(scan_result.groups, resolve=self.resolver.resolve)
