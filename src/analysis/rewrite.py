"""Rule-based rewrite of the assembled bundle list."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from common.logging_utils import extra_context, Timer
from bundles.models import BundleList
from .rules import RuleSet, YamlRuleEngine

logger = logging.getLogger(__name__)


class RuleEngine(Protocol):
    """What the rewrite stage needs from a rule engine."""

    def load(self, sources: Sequence[Union[str, Path]]) -> RuleSet:
        ...

    def run(self, rule_set: RuleSet, facts: Mapping[str, Any], bundle_list: BundleList) -> int:
        ...


class RewriteStage:
    """Runs the configured rule files against the bundle list in place."""

    def __init__(self, rule_files: Sequence[Union[str, Path]] = (), engine: Optional[RuleEngine] = None):
        self.rule_files = list(rule_files)
        self.engine = engine or YamlRuleEngine()

    def rewrite(self, bundle_list: BundleList, context_facts: Optional[Mapping[str, Any]] = None) -> int:
        """Fire the rules to a fixed point over ``bundle_list``.

        Returns:
            Number of rule firings (0 when no rule files are configured).

        Raises:
            RuleDefinitionInvalidError: If a rule file is invalid; raised
                before any rule fires.
            RuleExecutionError: If the rules do not settle.
        """
        if not self.rule_files:
            return 0

        rule_set = self.engine.load(self.rule_files)
        with Timer() as timer:
            fired = self.engine.run(rule_set, dict(context_facts or {}), bundle_list)
        logger.info(
            "Rewrite rules fired %d times over %d bundles",
            fired,
            len(bundle_list),
            extra=extra_context(
                event="rewrite",
                component="rewrite",
                rules=len(rule_set),
                duration_ms=timer.duration_ms(),
            )
        )
        return fired
