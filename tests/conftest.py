# tests/conftest.py
from __future__ import annotations

from datetime import date, timedelta
from typing import List

import numpy as np
import pytest
from loguru import logger

from textlasso.config.tuning_config import (
    GridConfig,
    ParallelBackend,
    ParallelConfig,
    SolverConfig,
    TuningConfig,
    VectorizerConfig,
)
from textlasso.core.types import Label, LabeledRecord


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


POSITIVE_WORDS = ["refund", "broken", "late", "angry", "never", "worst", "cancel"]
NEGATIVE_WORDS = ["great", "love", "fast", "perfect", "friendly", "recommend", "happy"]
NOISE_WORDS = ["order", "delivery", "package", "store", "item", "week", "price", "box"]
TAGS = ["web", "phone", "mail"]


def synth_records(
        n: int = 200,
        positive_share: float = 0.3,
        seed: int = 7,
        signal: float = 0.8,
) -> List[LabeledRecord]:
    """
    Deterministic synthetic corpus.

    Exactly round(n * positive_share) positives. Each text draws a few class
    words (with probability `signal` from its own class) plus noise words.
    Positive records lean to the "phone" tag and to weekends.
    """
    rng = np.random.default_rng(seed)
    n_pos = int(round(n * positive_share))
    labels = [Label.POSITIVE] * n_pos + [Label.NEGATIVE] * (n - n_pos)
    rng.shuffle(labels)

    start = date(2023, 1, 1)
    records = []
    for i, label in enumerate(labels):
        own, other = (POSITIVE_WORDS, NEGATIVE_WORDS) if label is Label.POSITIVE else (NEGATIVE_WORDS, POSITIVE_WORDS)
        words = []
        for _ in range(4):
            pool = own if rng.random() < signal else other
            words.append(pool[rng.integers(len(pool))])
        words.extend(NOISE_WORDS[j] for j in rng.integers(len(NOISE_WORDS), size=3))
        rng.shuffle(words)

        if label is Label.POSITIVE and rng.random() < 0.5:
            tag = "phone"
        else:
            tag = TAGS[rng.integers(len(TAGS))]
        if rng.random() < 0.05:
            tag = None

        records.append(
            LabeledRecord(
                id=i,
                free_text=" ".join(words),
                categorical_tag=tag,
                event_date=start + timedelta(days=int(rng.integers(365))),
                label=label,
            )
        )
    return records


@pytest.fixture
def records() -> List[LabeledRecord]:
    return synth_records()


@pytest.fixture
def make_records():
    return synth_records


@pytest.fixture
def small_tuning_config() -> TuningConfig:
    """
    A config small enough to run the whole pipeline in-process.
    """
    return TuningConfig(
        seed=11,
        train_proportion=0.75,
        folds=3,
        metric="roc_auc",
        grid=GridConfig(penalty_range=(-2.5, -0.5), max_tokens_range=(5, 40), levels=3),
        vectorizer=VectorizerConfig(min_times=2),
        solver=SolverConfig(tol=1e-5, max_iter=500),
        parallel=ParallelConfig(backend=ParallelBackend.THREAD, max_workers=1),
    )
