"""
Tests for metric name parsing and spec validation.
"""
import pytest

from irmetrics.evaluation import MetricRegistry, default_registry, parse_metric
from irmetrics.exceptions import ConfigurationError
from irmetrics.models import MetricSpec


@pytest.mark.parametrize("text,expected", [
    ("P@10", MetricSpec("precision", k=10)),
    ("P_10", MetricSpec("precision", k=10)),
    ("p.10", MetricSpec("precision", k=10)),
    ("precision@10", MetricSpec("precision", k=10)),
    ("recall.100", MetricSpec("recall", k=100)),
    ("ndcg_cut_20", MetricSpec("ndcg", k=20)),
    ("NDCG@20", MetricSpec("ndcg", k=20)),
    ("map", MetricSpec("ap")),
    ("map_cut_100", MetricSpec("ap", k=100)),
    ("recip_rank", MetricSpec("rr")),
    ("Rprec", MetricSpec("rprec")),
    ("success@5", MetricSpec("success", k=5)),
    ("RBP:95", MetricSpec("rbp", persistence=0.95)),
    ("RBP@50:80", MetricSpec("rbp", k=50, persistence=0.8)),
    ("  dcg@5 ", MetricSpec("dcg", k=5)),
])
def test_parse(text, expected):
    assert parse_metric(text) == expected


def test_parse_with_parameters():
    spec = parse_metric("ndcg@10", gain="linear", log_base=10.0)

    assert spec == MetricSpec("ndcg", k=10, gain="linear", log_base=10.0)


def test_label_round_trip():
    for text in ("P@5", "recall@100", "map", "ndcg@10", "recip_rank", "RBP:95", "Rprec"):
        spec = parse_metric(text)
        assert spec.label == text
        assert parse_metric(spec.label) == spec


@pytest.mark.parametrize("text", [
    "P@0",
    "foo@5",
    "@5",
    "P@-1",
    "RBP:100",
    "RBP:150",
    "P:50",
    "Rprec@5",
    "",
])
def test_parse_rejects(text):
    with pytest.raises(ConfigurationError):
        parse_metric(text)


def test_unknown_parameter_rejected():
    with pytest.raises(ConfigurationError, match="Invalid parameters"):
        parse_metric("P@10", cutoff=3)


@pytest.mark.parametrize("spec", [
    MetricSpec("precision", k=0),
    MetricSpec("precision", k=-3),
    MetricSpec("precision", k=2.5),
    MetricSpec("precision", k=True),
    MetricSpec("ndcg", log_base=1.0),
    MetricSpec("ndcg", log_base=0.5),
    MetricSpec("dcg", log_base=float("nan")),
    MetricSpec("rbp", persistence=1.0),
    MetricSpec("rbp", persistence=-0.1),
    MetricSpec("recall", threshold=float("inf")),
    MetricSpec("ndcg", gain="cubic"),
    MetricSpec("precision", unjudged="skip"),
    MetricSpec("precision", no_relevant="nan"),
    MetricSpec("precision", precision_denominator="relevant"),
    MetricSpec("rprec", k=10),
    MetricSpec("unknown"),
])
def test_resolve_rejects(spec):
    with pytest.raises(ConfigurationError):
        default_registry.resolve(spec)


def test_resolve_ignores_parameters_a_family_does_not_read():
    # log_base only matters to DCG-style metrics
    spec = default_registry.resolve(MetricSpec("precision", k=5, log_base=1.0))

    assert spec.k == 5


def test_resolve_canonicalizes_alias():
    assert default_registry.resolve(MetricSpec("map")) == MetricSpec("ap")
    assert default_registry.resolve(MetricSpec("P", k=3)) == MetricSpec("precision", k=3)


def test_specs_from_names_drops_repeats():
    specs = default_registry.specs_from_names(["P@10", "P_10", MetricSpec("precision", k=10), "map"])

    assert specs == [MetricSpec("precision", k=10), MetricSpec("ap")]


def test_specs_from_names_requires_a_metric():
    with pytest.raises(ConfigurationError, match="No metrics requested"):
        default_registry.specs_from_names([])


def test_custom_registry():
    registry = MetricRegistry()

    @registry.register_metric("hits", aliases=("H",))
    def hits(ranking, judgments, spec):
        return float(sum(1 for e in ranking.truncate(spec.k) if judgments.get(e.doc_id, 0) > 0))

    spec = registry.parse("H@5")
    assert spec == MetricSpec("hits", k=5)
    assert "hits" in registry
    assert "P" not in registry
    assert registry.names() == ["hits"]


def test_duplicate_registration_rejected():
    registry = MetricRegistry()
    registry.register("hits", lambda r, j, s: 0.0, aliases=("H",))

    with pytest.raises(ConfigurationError, match="already registered"):
        registry.register("hit_count", lambda r, j, s: 0.0, aliases=("h",))
