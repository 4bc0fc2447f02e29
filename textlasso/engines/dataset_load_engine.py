# textlasso/engines/dataset_load_engine.py
from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd
import pyarrow.parquet as pq

from textlasso import logs
from textlasso.config.data_config import DataConfig
from textlasso.core.types import Label, LabeledRecord
from textlasso.utils.errors import SchemaError


class DatasetLoadEngine:
    """
    DatasetLoadEngine

    Responsibility:
    - read a CSV / Parquet table
    - map configured columns onto LabeledRecord
    - reduce the label column to two classes

    Contract:
    - missing columns or unparseable dates raise SchemaError
    - empty / NaN text becomes "", empty / NaN tag becomes None
    """

    def __init__(self, cfg: DataConfig):
        self.cfg = cfg

    # ======================================================================
    # Public API
    # ======================================================================
    def load(self, path: str | Path) -> List[LabeledRecord]:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"dataset not found: {path}")

        if self._format(path) == "parquet":
            df = pq.read_table(path).to_pandas()
        else:
            df = pd.read_csv(path)

        records = self.from_frame(df)
        logs.info(f"[DatasetLoad] {path.name} rows={len(records)}")
        return records

    def from_frame(self, df: pd.DataFrame) -> List[LabeledRecord]:
        cols = self.cfg.columns
        required = [cols.id, cols.text, cols.tag, cols.date, cols.label]
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise SchemaError(f"missing columns: {missing}")

        try:
            dates = pd.to_datetime(df[cols.date], format=self.cfg.date_format)
        except (ValueError, TypeError) as e:
            raise SchemaError(f"unparseable {cols.date!r} column: {e}") from e
        if dates.isna().any():
            raise SchemaError(f"{int(dates.isna().sum())} rows have no {cols.date!r}")

        positive = str(self.cfg.positive_label)
        labels = df[cols.label].astype(str)
        if labels.nunique() > 2:
            logs.warning(
                f"[DatasetLoad] label column has {labels.nunique()} values; "
                f"{positive!r} -> positive, the rest -> negative"
            )

        texts = df[cols.text].fillna("").astype(str)
        tags = df[cols.tag].astype(object).where(df[cols.tag].notna(), None)

        return [
            LabeledRecord(
                id=rid,
                free_text=text,
                categorical_tag=None if tag is None or tag == "" else str(tag),
                event_date=ts.date(),
                label=Label.POSITIVE if lab == positive else Label.NEGATIVE,
            )
            for rid, text, tag, ts, lab in zip(df[cols.id], texts, tags, dates, labels)
        ]

    # ======================================================================
    # Internal
    # ======================================================================
    @staticmethod
    def _format(path: Path) -> str:
        """
        csv, csv.gz or parquet, judged on the full suffix chain so that
        records.parquet.gz is not mistaken for a compressed csv.
        """
        suffixes = [s.lower() for s in path.suffixes]
        if suffixes[-1:] == [".parquet"]:
            return "parquet"
        if suffixes[-1:] == [".csv"] or suffixes[-2:] == [".csv", ".gz"]:
            return "csv"
        raise SchemaError(
            f"unsupported dataset format {''.join(path.suffixes) or path.name!r}; "
            f"expected .csv, .csv.gz or .parquet"
        )


def load_records(path: str | Path, cfg: DataConfig | None = None) -> List[LabeledRecord]:
    return DatasetLoadEngine(cfg or DataConfig()).load(path)
