"""
oulad_pass/pipeline.py

Runs the four stages in order: aggregate features, build the dataset,
split it, evaluate the configured classifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from oulad_pass.config import PipelineConfig
from oulad_pass.dataset import Partition, build_dataset, stratified_split
from oulad_pass.evaluation import EvaluationReport, evaluate
from oulad_pass.features import aggregate_clicks, aggregate_scores
from oulad_pass.loader import OuladTables
from oulad_pass.models import make_classifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    clicks: pd.DataFrame
    scores: pd.DataFrame
    dataset: pd.DataFrame
    partition: Partition
    report: EvaluationReport


def run_pipeline(tables: OuladTables, config: PipelineConfig) -> PipelineResult:
    # Instantiate first so a bad model/policy combination fails before any work.
    classifier = make_classifier(config)
    logger.info("Running pipeline with %r", classifier)

    clicks = aggregate_clicks(tables.interactions)
    scores = aggregate_scores(tables.assessments)
    dataset = build_dataset(tables.students, clicks, scores, config)
    partition = stratified_split(dataset, config.split_fraction, config.make_rng())
    report = evaluate(partition, config, classifier)

    return PipelineResult(
        clicks=clicks,
        scores=scores,
        dataset=dataset,
        partition=partition,
        report=report,
    )
