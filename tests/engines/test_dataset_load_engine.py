from datetime import date

import pandas as pd
import pytest

from textlasso.config.data_config import ColumnConfig, DataConfig
from textlasso.core.types import Label
from textlasso.engines.dataset_load_engine import DatasetLoadEngine, load_records
from textlasso.utils.errors import SchemaError


@pytest.fixture
def frame():
    return pd.DataFrame(
        {
            "id": [1, 2, 3, 4],
            "text": ["late again", None, "great service", "refund please"],
            "tag": ["web", None, "phone", ""],
            "date": ["2023-01-02", "2023-02-03", "2023-03-04", "2023-04-05"],
            "label": ["positive", "negative", "neutral", "positive"],
        }
    )


def test_from_frame_maps_columns(frame):
    records = DatasetLoadEngine(DataConfig()).from_frame(frame)

    assert [r.id for r in records] == [1, 2, 3, 4]
    assert records[0].free_text == "late again"
    assert records[0].categorical_tag == "web"
    assert records[0].event_date == date(2023, 1, 2)


def test_missing_text_and_tag(frame):
    records = DatasetLoadEngine(DataConfig()).from_frame(frame)

    assert records[1].free_text == ""
    assert records[1].categorical_tag is None
    assert records[3].categorical_tag is None


def test_labels_reduce_to_two_classes(frame):
    records = DatasetLoadEngine(DataConfig()).from_frame(frame)
    assert [r.label for r in records] == [
        Label.POSITIVE, Label.NEGATIVE, Label.NEGATIVE, Label.POSITIVE,
    ]


def test_custom_columns_and_positive_value(frame):
    cfg = DataConfig(
        columns=ColumnConfig(text="body", label="y"),
        positive_label="1",
    )
    df = frame.rename(columns={"text": "body", "label": "y"})
    df["y"] = [1, 0, 0, 1]

    records = DatasetLoadEngine(cfg).from_frame(df)

    assert records[2].free_text == "great service"
    assert sum(r.label is Label.POSITIVE for r in records) == 2


def test_missing_column_raises(frame):
    with pytest.raises(SchemaError, match="tag"):
        DatasetLoadEngine(DataConfig()).from_frame(frame.drop(columns=["tag"]))


def test_bad_dates_raise(frame):
    frame.loc[1, "date"] = "not a date"
    with pytest.raises(SchemaError):
        DatasetLoadEngine(DataConfig(date_format="%Y-%m-%d")).from_frame(frame)


def test_load_csv(tmp_path, frame):
    path = tmp_path / "records.csv"
    frame.to_csv(path, index=False)

    records = DatasetLoadEngine(DataConfig()).load(path)

    assert len(records) == 4
    assert records[1].categorical_tag is None


def test_load_parquet(tmp_path, frame):
    path = tmp_path / "records.parquet"
    frame.to_parquet(path, index=False)

    records = DatasetLoadEngine(DataConfig()).load(path)

    assert records[2].event_date == date(2023, 3, 4)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        DatasetLoadEngine(DataConfig()).load(tmp_path / "nope.csv")


def test_load_unknown_format(tmp_path):
    path = tmp_path / "records.xlsx"
    path.write_text("x")
    with pytest.raises(SchemaError):
        DatasetLoadEngine(DataConfig()).load(path)


@pytest.mark.parametrize("name", ["records.parquet.gz", "records.gz", "records.json.gz"])
def test_compressed_non_csv_is_rejected(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"\x1f\x8b")
    with pytest.raises(SchemaError, match="expected .csv"):
        DatasetLoadEngine(DataConfig()).load(path)


def test_suffix_case_is_ignored(tmp_path, frame):
    path = tmp_path / "RECORDS.CSV"
    frame.to_csv(path, index=False)

    assert len(DatasetLoadEngine(DataConfig()).load(path)) == 4


def test_load_records_helper(tmp_path, frame):
    path = tmp_path / "records.csv.gz"
    frame.to_csv(path, index=False)

    records = load_records(path)

    assert [r.label for r in records][:2] == [Label.POSITIVE, Label.NEGATIVE]
