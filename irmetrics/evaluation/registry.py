"""
Metric registry.

Each metric family is a plain function with the signature

    compute(ranking, judgments, spec) -> Score

registered under a canonical name plus aliases. The registry validates a
MetricSpec before any query is scored and parses metric names such as
'P@10', 'ndcg_cut_20', 'map' or 'RBP:95'.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from irmetrics.exceptions import ConfigurationError
from irmetrics.models.common import DocumentId, MetricSpec, RelevanceGrade, Score
from irmetrics.models.rankings import Ranking
from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)

MetricFunction = Callable[[Ranking, Mapping[DocumentId, RelevanceGrade], MetricSpec], Score]

GAINS = ("exponential", "linear")
UNJUDGED_POLICIES = ("nonrelevant", "condensed")
NO_RELEVANT_POLICIES = ("zero", "undefined")
PRECISION_DENOMINATORS = ("retrieved", "cutoff")

# '<name>', '<name>@<k>', '<name>_<k>', '<name>.<k>', optionally ':<percent>'
_NAME_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z][A-Za-z_\-]*?)"
    r"(?:[@_.](?P<k>\d+))?"
    r"(?::(?P<percent>\d+(?:\.\d+)?))?$"
)


@dataclass(frozen=True)
class MetricFamily:
    """A registered metric computation and what parameters it reads."""
    name: str
    compute: MetricFunction
    aliases: Tuple[str, ...] = ()
    log_based: bool = False
    uses_persistence: bool = False
    accepts_cutoff: bool = True
    description: str = ""


class MetricRegistry:
    """
    Lookup table of metric families.

    Example:
        >>> registry = MetricRegistry()
        >>> @registry.register_metric("hits", aliases=("H",))
        ... def hits(ranking, judgments, spec):
        ...     return float(sum(1 for e in ranking.truncate(spec.k) if judgments.get(e.doc_id, 0) > 0))
        >>> registry.parse("H@5")
        MetricSpec(metric='hits', k=5, ...)
    """

    def __init__(self):
        self._families: Dict[str, MetricFamily] = {}
        self._aliases: Dict[str, str] = {}

    def register(
        self,
        name: str,
        compute: MetricFunction,
        aliases: Iterable[str] = (),
        log_based: bool = False,
        uses_persistence: bool = False,
        accepts_cutoff: bool = True,
        description: str = ""
    ) -> MetricFamily:
        """
        Register a metric family.

        Raises:
            ConfigurationError: If the name or an alias is already taken
        """
        family = MetricFamily(
            name=name,
            compute=compute,
            aliases=tuple(aliases),
            log_based=log_based,
            uses_persistence=uses_persistence,
            accepts_cutoff=accepts_cutoff,
            description=description
        )
        keys = [name.lower()] + [a.lower() for a in family.aliases]
        for key in keys:
            if key in self._aliases:
                raise ConfigurationError(
                    f"Metric name {key!r} already registered for {self._aliases[key]!r}"
                )
        for key in keys:
            self._aliases[key] = name
        self._families[name] = family
        logger.debug(f"Registered metric family {name} (aliases: {family.aliases})")
        return family

    def register_metric(self, name: str, **kwargs) -> Callable[[MetricFunction], MetricFunction]:
        """Decorator form of register()."""
        def decorator(func: MetricFunction) -> MetricFunction:
            self.register(name, func, **kwargs)
            return func
        return decorator

    def get(self, name: str) -> MetricFamily:
        """
        Look up a family by canonical name or alias (case-insensitive).

        Raises:
            ConfigurationError: If the name is unknown
        """
        canonical = self._aliases.get(name.lower())
        if canonical is None:
            raise ConfigurationError(
                f"Unknown metric: {name} (known: {', '.join(self.names())})"
            )
        return self._families[canonical]

    def names(self) -> List[str]:
        return sorted(self._families)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._aliases

    def resolve(self, spec: MetricSpec) -> MetricSpec:
        """
        Validate a spec and return it with the canonical family name.

        Raises:
            ConfigurationError: On an unknown family or invalid parameters
        """
        family = self.get(spec.metric)
        label = spec.metric

        if spec.k is not None:
            if not family.accepts_cutoff:
                raise ConfigurationError(f"{label}: does not take a cutoff, got k={spec.k!r}")
            if isinstance(spec.k, bool) or not isinstance(spec.k, int) or spec.k <= 0:
                raise ConfigurationError(f"{label}: cutoff k must be a positive integer, got {spec.k!r}")
        if not _is_finite_number(spec.threshold):
            raise ConfigurationError(f"{label}: threshold must be a finite number, got {spec.threshold!r}")
        if family.log_based:
            if not _is_finite_number(spec.log_base) or spec.log_base <= 1:
                raise ConfigurationError(f"{label}: log_base must be > 1, got {spec.log_base!r}")
        if family.uses_persistence:
            if not _is_finite_number(spec.persistence) or not 0.0 <= spec.persistence < 1.0:
                raise ConfigurationError(
                    f"{label}: persistence must be in [0, 1), got {spec.persistence!r}"
                )

        _check_choice(label, "gain", spec.gain, GAINS)
        _check_choice(label, "unjudged", spec.unjudged, UNJUDGED_POLICIES)
        _check_choice(label, "no_relevant", spec.no_relevant, NO_RELEVANT_POLICIES)
        _check_choice(label, "precision_denominator", spec.precision_denominator, PRECISION_DENOMINATORS)

        if spec.metric != family.name:
            spec = replace(spec, metric=family.name)
        return spec

    def parse(self, text: str, **params) -> MetricSpec:
        """
        Parse a metric name into a validated MetricSpec.

        Accepted forms: 'P@10', 'P_10', 'recall.100', 'ndcg_cut_20', 'map',
        'map_cut_100', 'recip_rank', 'RBP:95', 'RBP@50:80'. For RBP the
        number after ':' is the persistence in percent.

        Args:
            text: Metric name
            **params: Extra MetricSpec fields, e.g. threshold=1

        Raises:
            ConfigurationError: If the name cannot be parsed or is invalid
        """
        stripped = text.strip()
        if stripped.lower() in self._aliases:
            name, k, percent = stripped, None, None
        else:
            match = _NAME_PATTERN.match(stripped)
            if match is None:
                raise ConfigurationError(f"Unrecognized metric: {text}")
            name, k, percent = match.group("name"), match.group("k"), match.group("percent")
            # pytrec_eval spells cutoffs as a suffix: ndcg_cut_10, map_cut_10
            if name.lower().endswith("_cut"):
                name = name[:-4]

        family = self.get(name)
        fields = dict(params)
        if k is not None:
            fields["k"] = int(k)
        if percent is not None:
            if not family.uses_persistence:
                raise ConfigurationError(f"Failed to parse {text}: {family.name} takes no ':' parameter")
            value = float(percent)
            if not 0.0 <= value < 100.0:
                raise ConfigurationError(f"Failed to parse {text} (p must be in [0, 100)%)")
            fields["persistence"] = value / 100.0

        try:
            spec = MetricSpec(metric=family.name, **fields)
        except TypeError as e:
            raise ConfigurationError(f"Invalid parameters for {text}: {e}") from e
        return self.resolve(spec)

    def specs_from_names(self, metrics: Iterable[Union[str, MetricSpec]]) -> List[MetricSpec]:
        """
        Resolve a mixed list of names and specs, dropping repeats.

        Raises:
            ConfigurationError: On the first invalid entry
        """
        resolved: Dict[MetricSpec, None] = {}
        for metric in metrics:
            spec = self.parse(metric) if isinstance(metric, str) else self.resolve(metric)
            resolved.setdefault(spec, None)
        if not resolved:
            raise ConfigurationError("No metrics requested")
        return list(resolved)

    def compute(
        self,
        spec: MetricSpec,
        ranking: Ranking,
        judgments: Mapping[DocumentId, RelevanceGrade]
    ) -> Score:
        """Score one ranking. The spec is assumed to be resolved already."""
        return self._families[spec.metric].compute(ranking, judgments, spec)


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _check_choice(label: str, field: str, value: object, choices: Tuple[str, ...]) -> None:
    if value not in choices:
        raise ConfigurationError(f"{label}: {field} must be one of {choices}, got {value!r}")


default_registry = MetricRegistry()


def register_metric(name: str, **kwargs) -> Callable[[MetricFunction], MetricFunction]:
    """Register a metric family in the default registry."""
    return default_registry.register_metric(name, **kwargs)


def parse_metric(text: str, registry: Optional[MetricRegistry] = None, **params) -> MetricSpec:
    """Parse a metric name against the default (or given) registry."""
    return (registry or default_registry).parse(text, **params)
