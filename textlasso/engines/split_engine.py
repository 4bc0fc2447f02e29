# textlasso/engines/split_engine.py
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Sequence, Tuple

import numpy as np

from textlasso import logs
from textlasso.core.types import Fold, LabeledRecord
from textlasso.utils.errors import InsufficientDataError


class SplitEngine:
    """
    SplitEngine

    Responsibility:
    - stratified train/test split
    - stratified k-fold partitioning

    Contract:
    - every call takes an explicit seed; no process-wide random state
    - outputs are disjoint and exhaustive over the input
    """

    # ======================================================================
    # Public API
    # ======================================================================
    def stratified_split(
            self,
            records: Sequence[LabeledRecord],
            *,
            strata_field: str = "label",
            proportion: float = 0.75,
            seed: int,
    ) -> Tuple[List[LabeledRecord], List[LabeledRecord]]:
        """
        Returns:
            train, test

        The train size is round(N * proportion); it is shared across strata
        by largest remainder so each stratum keeps its share within rounding.
        """
        if not 0.0 < proportion < 1.0:
            raise ValueError(f"proportion must be in (0, 1), got {proportion}")
        if len(records) == 0:
            raise InsufficientDataError("cannot split an empty record set")

        rng = np.random.default_rng(seed)
        strata = self._group_by_stratum(records, strata_field)

        quotas = self._allocate(
            sizes={key: len(idx) for key, idx in strata.items()},
            total=int(round(len(records) * proportion)),
        )

        train_idx: List[int] = []
        test_idx: List[int] = []
        for key, idx in strata.items():
            shuffled = rng.permutation(idx)
            n_train = quotas[key]
            train_idx.extend(int(i) for i in shuffled[:n_train])
            test_idx.extend(int(i) for i in shuffled[n_train:])

        train_idx.sort()
        test_idx.sort()

        logs.info(
            f"[Split] stratified split N={len(records)} "
            f"train={len(train_idx)} test={len(test_idx)} strata={len(strata)}"
        )
        return [records[i] for i in train_idx], [records[i] for i in test_idx]

    def stratified_kfold(
            self,
            records: Sequence[LabeledRecord],
            *,
            strata_field: str = "label",
            k: int = 5,
            seed: int,
    ) -> List[Fold]:
        """
        Each stratum is shuffled and dealt round-robin over the k folds. The
        dealing offset carries over between strata so fold sizes differ by at
        most one.
        """
        if k < 2:
            raise InsufficientDataError(f"k-fold needs k >= 2, got k={k}")

        strata = self._group_by_stratum(records, strata_field)
        for key, idx in strata.items():
            if len(idx) < k:
                raise InsufficientDataError(
                    f"stratum {strata_field}={key!r} has {len(idx)} records, "
                    f"fewer than k={k}"
                )

        rng = np.random.default_rng(seed)
        buckets: List[List[int]] = [[] for _ in range(k)]
        offset = 0
        for idx in strata.values():
            for pos, i in enumerate(rng.permutation(idx)):
                buckets[(offset + pos) % k].append(int(i))
            offset = (offset + len(idx)) % k

        all_idx = range(len(records))
        folds = []
        for j, bucket in enumerate(buckets, start=1):
            val = sorted(bucket)
            val_set = set(val)
            fit = [i for i in all_idx if i not in val_set]
            folds.append(
                Fold(
                    fold_id=j,
                    fit_indices=tuple(fit),
                    validation_indices=tuple(val),
                )
            )

        logs.info(f"[Split] {k}-fold N={len(records)} sizes={[len(b) for b in buckets]}")
        return folds

    # ======================================================================
    # Internal
    # ======================================================================
    @staticmethod
    def _group_by_stratum(
            records: Sequence[LabeledRecord],
            strata_field: str,
    ) -> Dict[object, List[int]]:
        strata: Dict[object, List[int]] = OrderedDict()
        for i, rec in enumerate(records):
            try:
                key = getattr(rec, strata_field)
            except AttributeError:
                raise ValueError(f"unknown strata field {strata_field!r}") from None
            strata.setdefault(key, []).append(i)
        return strata

    @staticmethod
    def _allocate(sizes: Dict[object, int], total: int) -> Dict[object, int]:
        """
        Largest-remainder apportionment of `total` over strata.
        """
        n = sum(sizes.values())
        exact = {key: size * total / n for key, size in sizes.items()}
        quotas = {key: int(np.floor(v)) for key, v in exact.items()}

        leftover = total - sum(quotas.values())
        # ties resolved by stratum order for determinism
        by_remainder = sorted(
            exact,
            key=lambda key: exact[key] - quotas[key],
            reverse=True,
        )
        for key in by_remainder[:leftover]:
            quotas[key] += 1
        return quotas


_default = SplitEngine()


def stratified_split(records, strata_field="label", proportion=0.75, seed=0):
    return _default.stratified_split(
        records, strata_field=strata_field, proportion=proportion, seed=seed
    )


def stratified_kfold(records, strata_field="label", k=5, seed=0):
    return _default.stratified_kfold(
        records, strata_field=strata_field, k=k, seed=seed
    )
