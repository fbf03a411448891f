"""Forward-chaining rewrite rules over a bundle list.

Rule documents are YAML::

    rules:
      - name: pin-commons-io
        salience: 10                 # higher fires first, default 0
        when:                        # entry conditions, all must hold
          group_id: commons-io       # strings are full-match regexes
          version: {range: "[1.0,2.0)"}
          start_level: 20            # numbers/booleans compare equal
          run_mode: author           # entry carries this run mode
          context:                   # dot paths into the context facts
            project.artifact_id: my-launchpad
        unless:                      # same shape; excludes matches
          classifier: sources
        then:
          - set: {version: "2.6"}
          - remove: true
          - add: {group_id: org.example, artifact_id: extra, version: "1.0"}

A rule whose ``when`` holds no entry conditions is a *global* rule and fires
at most once per session. An entry rule fires once per matching entry
state; rules are re-evaluated after every firing until no new activation
exists.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from errors import RuleDefinitionInvalidError, RuleExecutionError
from bundles.models import BundleEntry, BundleList
from schema_validate import SchemaError, validate
from versioning.ranges import InvalidVersionSpecification, VersionRange

logger = logging.getLogger(__name__)

_SCALAR = {"type": ["string", "integer", "boolean", "null"]}
_MATCH_VALUE = {
    "anyOf": [
        _SCALAR,
        {"type": "array", "items": _SCALAR, "minItems": 1},
        {
            "type": "object",
            "properties": {"range": {"type": "string"}},
            "required": ["range"],
            "additionalProperties": False,
        },
    ]
}
_CONDITIONS = {
    "type": "object",
    "properties": {
        "group_id": _MATCH_VALUE,
        "artifact_id": _MATCH_VALUE,
        "version": _MATCH_VALUE,
        "type": _MATCH_VALUE,
        "classifier": _MATCH_VALUE,
        "start_level": _MATCH_VALUE,
        "run_mode": _MATCH_VALUE,
        "context": {"type": "object", "additionalProperties": _MATCH_VALUE},
    },
    "additionalProperties": False,
}
_ENTRY_VALUES = {
    "type": "object",
    "properties": {
        "group_id": {"type": "string", "minLength": 1},
        "artifact_id": {"type": "string", "minLength": 1},
        "version": {"type": "string", "minLength": 1},
        "type": {"type": "string", "minLength": 1},
        "classifier": {"type": ["string", "null"]},
        "start_level": {"type": "integer"},
        "run_modes": {"anyOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}]},
    },
    "additionalProperties": False,
}
RULE_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "salience": {"type": "integer"},
                    "when": _CONDITIONS,
                    "unless": _CONDITIONS,
                    "then": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "minProperties": 1,
                            "maxProperties": 1,
                            "properties": {
                                "set": dict(_ENTRY_VALUES, minProperties=1),
                                "remove": {"const": True},
                                "add": dict(_ENTRY_VALUES, required=["group_id", "artifact_id", "version"]),
                            },
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["name", "then"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["rules"],
    "additionalProperties": False,
}


def get_nested_value(data: Any, path: str) -> Any:
    """Get nested value using dot notation over mappings and attributes."""
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return None
            current = current[key]
        elif hasattr(current, key):
            current = getattr(current, key)
        else:
            return None
    return current


# ---------- conditions ----------


Matcher = Callable[[Any], bool]


def _compile_matcher(value: Any, where: str) -> Matcher:
    if isinstance(value, dict):
        try:
            version_range = VersionRange.parse(value["range"])
        except InvalidVersionSpecification as exc:
            raise RuleDefinitionInvalidError(f"{where}: invalid version range: {exc}") from exc
        return lambda actual: actual is not None and version_range.contains(str(actual))
    if isinstance(value, list):
        matchers = [_compile_matcher(v, where) for v in value]
        return lambda actual: any(m(actual) for m in matchers)
    if isinstance(value, str):
        try:
            pattern = re.compile(value)
        except re.error as exc:
            raise RuleDefinitionInvalidError(f"{where}: invalid pattern '{value}': {exc}") from exc
        return lambda actual: actual is not None and pattern.fullmatch(str(actual)) is not None
    return lambda actual: actual == value


@dataclass
class Conditions:
    """Compiled entry and context conditions of one rule clause."""
    entry: Dict[str, Matcher] = field(default_factory=dict)
    context: Dict[str, Matcher] = field(default_factory=dict)

    @classmethod
    def compile(cls, raw: Optional[Mapping[str, Any]], where: str) -> "Conditions":
        conditions = cls()
        for key, value in (raw or {}).items():
            if key == "context":
                for path, expected in value.items():
                    conditions.context[path] = _compile_matcher(expected, f"{where}.context.{path}")
            else:
                conditions.entry[key] = _compile_matcher(value, f"{where}.{key}")
        return conditions

    def matches(self, entry: Optional[BundleEntry], context: Mapping[str, Any]) -> bool:
        """True when every condition holds; entry conditions need an entry."""
        if not all(m(get_nested_value(context, path)) for path, m in self.context.items()):
            return False
        if entry is None:
            return not self.entry
        for key, matcher in self.entry.items():
            if key == "run_mode":
                if not any(matcher(mode) for mode in entry.run_modes):
                    return False
            elif not matcher(getattr(entry, key)):
                return False
        return True

    def is_empty(self) -> bool:
        return not self.entry and not self.context


# ---------- actions ----------


class RuleAction:
    """Base class for rule consequences."""

    def apply(self, bundle_list: BundleList, entry: Optional[BundleEntry]) -> Optional[BundleEntry]:
        """Apply to the list; return the entry as it is afterwards (None if gone)."""
        raise NotImplementedError


class SetAction(RuleAction):
    """Change attributes of the matched entry."""

    def __init__(self, values: Dict[str, Any]):
        self.values = values

    def apply(self, bundle_list, entry):
        if entry is None or entry.identity not in bundle_list:
            return None
        return bundle_list.update(entry.identity, **self.values)


class RemoveAction(RuleAction):
    """Remove the matched entry."""

    def __init__(self, _value: Any = True):
        pass

    def apply(self, bundle_list, entry):
        if entry is not None:
            bundle_list.remove(entry)
        return None


class AddAction(RuleAction):
    """Add (or override) an entry."""

    def __init__(self, values: Dict[str, Any]):
        self.values = values

    def apply(self, bundle_list, entry):
        bundle_list.add(BundleEntry(**self.values))
        return entry


class ActionRegistry:
    """Registry for rule actions."""

    def __init__(self):
        """Initialize the action registry."""
        self._actions: Dict[str, Callable[[Any], RuleAction]] = {
            "set": SetAction,
            "remove": RemoveAction,
            "add": AddAction,
        }

    def create(self, name: str, value: Any) -> RuleAction:
        """Instantiate an action by name.

        Raises:
            ValueError: If the action is not registered.
        """
        if name not in self._actions:
            raise ValueError(f"Unknown rule action: {name}")
        return self._actions[name](value)


# Global registry instance
action_registry = ActionRegistry()


# ---------- rules ----------


@dataclass
class Rule:
    """A compiled rewrite rule."""
    name: str
    salience: int
    when: Conditions
    unless: Optional[Conditions]
    actions: List[RuleAction]
    source: str = "<memory>"

    @property
    def is_global(self) -> bool:
        return not self.when.entry

    def matches(self, entry: Optional[BundleEntry], context: Mapping[str, Any]) -> bool:
        if not self.when.matches(entry, context):
            return False
        if self.unless is not None and not self.unless.is_empty():
            return not self.unless.matches(entry, context)
        return True

    def fire(self, bundle_list: BundleList, entry: Optional[BundleEntry]) -> None:
        current = entry
        for action in self.actions:
            current = action.apply(bundle_list, current)


@dataclass
class RuleSet:
    """Rules ordered by descending salience, then by definition order."""
    rules: List[Rule]
    sources: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.rules = sorted(self.rules, key=lambda r: -r.salience)

    def __len__(self) -> int:
        return len(self.rules)


def compile_rules(document: Any, source: str, registry: ActionRegistry = action_registry) -> List[Rule]:
    """Validate and compile a parsed rule document.

    Raises:
        RuleDefinitionInvalidError: On schema violations, bad patterns or
            unknown actions.
    """
    try:
        validate(RULE_DOCUMENT_SCHEMA, document, what=f"rule file {source}")
    except SchemaError as exc:
        raise RuleDefinitionInvalidError(str(exc), source=source) from exc

    rules: List[Rule] = []
    seen = set()
    for raw in document["rules"]:
        name = raw["name"]
        where = f"{source}: rule '{name}'"
        if name in seen:
            raise RuleDefinitionInvalidError(f"{where} is defined twice", source=source)
        seen.add(name)
        try:
            actions = [registry.create(k, v) for step in raw["then"] for k, v in step.items()]
        except ValueError as exc:
            raise RuleDefinitionInvalidError(f"{where}: {exc}", source=source) from exc
        rules.append(Rule(
            name=name,
            salience=int(raw.get("salience", 0)),
            when=Conditions.compile(raw.get("when"), f"{where}.when"),
            unless=Conditions.compile(raw["unless"], f"{where}.unless") if "unless" in raw else None,
            actions=actions,
            source=source,
        ))
    return rules


def load_rule_file(path: Union[str, Path], registry: ActionRegistry = action_registry) -> List[Rule]:
    """Parse and compile one rule file."""
    path = Path(path)
    try:
        document = yaml.safe_load(path.read_text(encoding=Constants.FILE_ENCODING))
    except OSError as exc:
        raise RuleDefinitionInvalidError(f"Unable to read rule file {path}: {exc}", source=str(path)) from exc
    except yaml.YAMLError as exc:
        raise RuleDefinitionInvalidError(f"Syntax error in rule file {path}: {exc}", source=str(path)) from exc
    return compile_rules(document, str(path), registry)


# ---------- engine ----------


class RuleSession:
    """A stateful session: facts in, fire to a fixed point, dispose."""

    def __init__(self, rule_set: RuleSet, max_cycles: int = Constants.REWRITE_MAX_CYCLES):
        self.rule_set = rule_set
        self.max_cycles = max_cycles
        self._globals: Dict[str, Any] = {}
        self._lists: List[BundleList] = []
        self._disposed = False

    def set_global(self, name: str, value: Any) -> None:
        self._globals[name] = value

    def insert(self, fact: Any) -> None:
        """Insert a fact; bundle lists are the facts rules operate on."""
        if isinstance(fact, BundleList):
            self._lists.append(fact)
        else:
            self._globals[type(fact).__name__] = fact

    def fire_all_rules(self) -> int:
        """Fire activations until none is left.

        Returns:
            Number of rule firings.

        Raises:
            RuleExecutionError: If the cycle limit is exceeded.
        """
        if self._disposed:
            raise RuleExecutionError("Rule session already disposed")
        fired: set = set()
        count = 0
        while True:
            activation = self._next_activation(fired)
            if activation is None:
                return count
            if count >= self.max_cycles:
                raise RuleExecutionError(
                    f"Rules did not settle after {self.max_cycles} firings; last rule '{activation[1].name}'"
                )
            key, rule, bundle_list, entry = activation
            fired.add(key)
            if is_debug_enabled(logger):
                logger.debug(
                    "Firing rule %s",
                    rule.name,
                    extra=extra_context(
                        event="rule_fired",
                        component="rewrite",
                        rule=rule.name,
                        target=str(entry) if entry is not None else None,
                    )
                )
            rule.fire(bundle_list, entry)
            count += 1

    def _next_activation(self, fired: set) -> Optional[Tuple[Any, Rule, BundleList, Optional[BundleEntry]]]:
        for rule in self.rule_set.rules:
            for index, bundle_list in enumerate(self._lists):
                if rule.is_global:
                    key = (rule.name, index)
                    if key not in fired and rule.matches(None, self._globals):
                        return key, rule, bundle_list, None
                    continue
                for entry in bundle_list:
                    if not rule.matches(entry, self._globals):
                        continue
                    key = (
                        rule.name,
                        index,
                        entry.identity,
                        entry.version,
                        entry.type,
                        entry.start_level,
                        entry.run_modes,
                    )
                    if key not in fired:
                        return key, rule, bundle_list, entry
        return None

    def dispose(self) -> None:
        self._lists.clear()
        self._globals.clear()
        self._disposed = True

    def __enter__(self) -> "RuleSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


class YamlRuleEngine:
    """Default rule engine reading YAML rule documents."""

    def __init__(self, registry: ActionRegistry = action_registry, max_cycles: int = Constants.REWRITE_MAX_CYCLES):
        self.registry = registry
        self.max_cycles = max_cycles

    def load(self, sources: Sequence[Union[str, Path]]) -> RuleSet:
        """Compile every source; any error aborts before a rule can fire."""
        rules: List[Rule] = []
        for source in sources:
            logger.info("Parsing rule file %s", Path(source).absolute())
            rules.extend(load_rule_file(source, self.registry))
        names = [r.name for r in rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise RuleDefinitionInvalidError(f"Rule names defined in more than one file: {', '.join(duplicates)}")
        return RuleSet(rules, sources=[str(s) for s in sources])

    def new_session(self, rule_set: RuleSet) -> RuleSession:
        return RuleSession(rule_set, max_cycles=self.max_cycles)

    def run(self, rule_set: RuleSet, facts: Mapping[str, Any], bundle_list: BundleList) -> int:
        """Run ``rule_set`` in a fresh session; the session is always disposed."""
        with self.new_session(rule_set) as session:
            for name, value in facts.items():
                session.set_global(name, value)
            session.insert(bundle_list)
            return session.fire_all_rules()
