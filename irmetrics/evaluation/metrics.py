"""
Information retrieval metric families.

Every family implements compute(ranking, judgments, spec) -> Score and is
registered in the default registry at import time:

- precision (P@k), recall (R@k), success@k, R-precision
- average precision (AP / MAP)
- DCG and nDCG with exponential or linear gain and a configurable log base
- reciprocal rank (RR / MRR)
- rank-biased precision (RBP)

Conventions shared by all families:
- A document is relevant when its judged grade is strictly above spec.threshold.
- Unjudged documents count as non-relevant, or are dropped from the ranking
  before the cutoff when spec.unjudged == 'condensed'.
- The ranking's own order is authoritative; nothing here re-sorts it. The only
  derived order is the ideal ranking used by nDCG, which sorts judged documents
  by descending grade and breaks ties by ascending document id.
- Queries without relevant documents give UNDEFINED for recall, AP, nDCG, RR,
  success and R-precision. Precision, DCG and RBP give a value unless
  spec.no_relevant == 'undefined'.
"""
from __future__ import annotations

from typing import List, Mapping, Optional

import numpy as np

from irmetrics.evaluation.registry import register_metric
from irmetrics.models.common import (
    UNDEFINED,
    DocumentId,
    MetricSpec,
    RelevanceGrade,
    Score,
)
from irmetrics.models.rankings import RankedDocument, Ranking

Judgments = Mapping[DocumentId, RelevanceGrade]


def judged_grades(
    ranking: Ranking,
    judgments: Judgments,
    spec: MetricSpec
) -> List[Optional[RelevanceGrade]]:
    """
    Grades down the ranking after the unjudged policy and the cutoff.

    None marks an unjudged document (only present in 'nonrelevant' mode).
    """
    grades = [judgments.get(entry.doc_id) for entry in ranking]
    if spec.unjudged == "condensed":
        grades = [g for g in grades if g is not None]
    if spec.k is not None:
        grades = grades[:spec.k]
    return grades


def relevant_count(judgments: Judgments, threshold: float = 0.0) -> int:
    """Number of judged documents above the threshold."""
    return sum(1 for grade in judgments.values() if grade > threshold)


def _is_relevant(grade: Optional[RelevanceGrade], threshold: float) -> bool:
    return grade is not None and grade > threshold


def _hits(grades: List[Optional[RelevanceGrade]], threshold: float) -> int:
    return sum(1 for g in grades if _is_relevant(g, threshold))


def ideal_ranking(judgments: Judgments) -> Ranking:
    """
    Judged documents in ideal order.

    Descending grade; equal grades ordered by ascending document id, so the
    ideal ranking is the same no matter how the judgments were built.
    """
    ordered = sorted(judgments.items(), key=lambda item: (-item[1], item[0]))
    return Ranking(tuple(RankedDocument(doc_id, float(grade)) for doc_id, grade in ordered))


def gain_values(grades: List[Optional[RelevanceGrade]], gain: str = "exponential") -> np.ndarray:
    """
    Gain per position: 2^g - 1 (exponential) or g (linear).

    Unjudged documents and grades <= 0 contribute nothing.
    """
    values = np.array(
        [float(g) if g is not None and g > 0 else 0.0 for g in grades],
        dtype=np.float64
    )
    if gain == "exponential":
        return np.exp2(values) - 1.0
    return values


def discounted_sum(gains: np.ndarray, log_base: float = 2.0) -> float:
    """Sum of gains[i] / log_b(i + 2), i.e. rank r discounted by log_b(r + 1)."""
    if gains.size == 0:
        return 0.0
    ranks = np.arange(2, gains.size + 2, dtype=np.float64)
    if log_base == 2:
        discounts = np.log2(ranks)
    else:
        discounts = np.log(ranks) / np.log(log_base)
    return float(np.sum(gains / discounts))


@register_metric(
    "precision",
    aliases=("P",),
    description="Fraction of the top-k documents that are relevant"
)
def precision(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    """
    Precision@k.

    With precision_denominator='retrieved' (default) the denominator is
    min(k, |ranking|), so a short ranking is not penalised for its length.
    With 'cutoff' the denominator is k, as trec_eval computes P_k.
    An empty ranking scores 0.0.
    """
    if spec.no_relevant == "undefined" and relevant_count(judgments, spec.threshold) == 0:
        return UNDEFINED

    grades = judged_grades(ranking, judgments, spec)
    if spec.precision_denominator == "cutoff" and spec.k is not None:
        denominator = spec.k
    else:
        denominator = len(grades)
    if denominator == 0:
        return 0.0
    return _hits(grades, spec.threshold) / denominator


@register_metric(
    "recall",
    aliases=("R",),
    description="Fraction of relevant documents retrieved in the top-k"
)
def recall(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    total = relevant_count(judgments, spec.threshold)
    if total == 0:
        return UNDEFINED
    return _hits(judged_grades(ranking, judgments, spec), spec.threshold) / total


@register_metric(
    "ap",
    aliases=("map", "avg_precision"),
    description="Average precision over relevant ranks, divided by the number of relevant documents"
)
def average_precision(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    total = relevant_count(judgments, spec.threshold)
    if total == 0:
        return UNDEFINED

    hits = 0
    precision_sum = 0.0
    for rank, grade in enumerate(judged_grades(ranking, judgments, spec), 1):
        if _is_relevant(grade, spec.threshold):
            hits += 1
            precision_sum += hits / rank
    return precision_sum / total


@register_metric(
    "dcg",
    log_based=True,
    description="Discounted cumulative gain"
)
def dcg(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    if spec.no_relevant == "undefined":
        ideal = gain_values(list(judgments.values()), spec.gain)
        if not ideal.any():
            return UNDEFINED
    gains = gain_values(judged_grades(ranking, judgments, spec), spec.gain)
    return discounted_sum(gains, spec.log_base)


@register_metric(
    "ndcg",
    log_based=True,
    description="DCG divided by the DCG of the ideal ranking"
)
def ndcg(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    ideal_grades: List[Optional[RelevanceGrade]] = [e.score for e in ideal_ranking(judgments)]
    if spec.k is not None:
        ideal_grades = ideal_grades[:spec.k]
    ideal_dcg = discounted_sum(gain_values(ideal_grades, spec.gain), spec.log_base)
    if ideal_dcg == 0.0:
        return UNDEFINED

    gains = gain_values(judged_grades(ranking, judgments, spec), spec.gain)
    return discounted_sum(gains, spec.log_base) / ideal_dcg


@register_metric(
    "rr",
    aliases=("recip_rank", "mrr"),
    description="Reciprocal rank of the first relevant document"
)
def reciprocal_rank(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    if relevant_count(judgments, spec.threshold) == 0:
        return UNDEFINED
    for rank, grade in enumerate(judged_grades(ranking, judgments, spec), 1):
        if _is_relevant(grade, spec.threshold):
            return 1.0 / rank
    return 0.0


@register_metric(
    "rbp",
    uses_persistence=True,
    description="Rank-biased precision with persistence p"
)
def rank_biased_precision(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    """
    RBP = sum over ranks i of (1 - p) * p^(i - 1) * rel_i, with binary rel_i.

    The residual mass of unseen ranks is not added.
    """
    if spec.no_relevant == "undefined" and relevant_count(judgments, spec.threshold) == 0:
        return UNDEFINED

    grades = judged_grades(ranking, judgments, spec)
    if not grades:
        return 0.0
    rel = np.array([1.0 if _is_relevant(g, spec.threshold) else 0.0 for g in grades])
    weights = (1.0 - spec.persistence) * np.power(spec.persistence, np.arange(rel.size, dtype=np.float64))
    return float(np.dot(weights, rel))


@register_metric(
    "success",
    aliases=("S",),
    description="1 if any relevant document is in the top-k, else 0"
)
def success(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    if relevant_count(judgments, spec.threshold) == 0:
        return UNDEFINED
    return 1.0 if _hits(judged_grades(ranking, judgments, spec), spec.threshold) else 0.0


@register_metric(
    "rprec",
    aliases=("R-prec", "R_prec"),
    accepts_cutoff=False,
    description="Precision at rank R, R being the number of relevant documents"
)
def r_precision(ranking: Ranking, judgments: Judgments, spec: MetricSpec) -> Score:
    total = relevant_count(judgments, spec.threshold)
    if total == 0:
        return UNDEFINED
    grades = judged_grades(ranking, judgments, spec)[:total]
    return _hits(grades, spec.threshold) / total


def overlap(first: Ranking, second: Ranking, k: Optional[int] = None) -> float:
    """
    Overlap of two rankings' top-k document sets: |A & B| / max(|A|, |B|).

    Returns 0.0 when both are empty.
    """
    a = set(first.truncate(k).doc_ids)
    b = set(second.truncate(k).doc_ids)
    largest = max(len(a), len(b))
    if largest == 0:
        return 0.0
    return len(a & b) / largest
