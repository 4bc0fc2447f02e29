import calendar
from datetime import date

import numpy as np
import pytest

from textlasso.core.types import Label, LabeledRecord
from textlasso.engines.feature_assembler_engine import (
    UNKNOWN_TAG,
    FeatureAssemblerEngine,
    TagStage,
    transform_with_state,
)


def rec(i, text, tag, day=date(2023, 1, 2), label=Label.NEGATIVE):
    return LabeledRecord(id=i, free_text=text, categorical_tag=tag, event_date=day, label=label)


@pytest.fixture
def fit_rows():
    return [
        rec(1, "cold coffee again", "web"),
        rec(2, "coffee was cold", "phone"),
        rec(3, "lovely warm coffee", "web", label=Label.POSITIVE),
    ]


@pytest.fixture
def engine():
    return FeatureAssemblerEngine.default(min_times=1)


def test_column_layout_is_month_dow_tag_text(engine, fit_rows):
    state = engine.fit(fit_rows, max_tokens=50)
    names = state.feature_names

    assert names[:12] == tuple(f"month_{calendar.month_abbr[m]}" for m in range(1, 13))
    assert names[12:19] == tuple(f"dow_{calendar.day_abbr[d]}" for d in range(7))
    assert names[19:22] == ("tag_phone", "tag_web", f"tag_{UNKNOWN_TAG}")
    assert all(n.startswith("text_") for n in names[22:])
    assert state.n_features == len(names)


def test_date_one_hot(engine, fit_rows):
    state = engine.fit(fit_rows, max_tokens=50)
    X = engine.transform([rec(9, "", "web", day=date(2023, 3, 4))], state).toarray()[0]
    col = {n: j for j, n in enumerate(state.feature_names)}

    assert X[col[f"month_{calendar.month_abbr[3]}"]] == 1.0
    assert X[col[f"dow_{calendar.day_abbr[date(2023, 3, 4).weekday()]}"]] == 1.0
    assert X[:19].sum() == 2.0


@pytest.mark.parametrize("tag", ["mail", None])
def test_unseen_or_missing_tag_routes_to_unknown(engine, fit_rows, tag):
    state = engine.fit(fit_rows, max_tokens=50)
    col = {n: j for j, n in enumerate(state.feature_names)}

    X = engine.transform([rec(9, "coffee", tag)], state).toarray()[0]

    assert X[col[f"tag_{UNKNOWN_TAG}"]] == 1.0
    assert X[col["tag_web"]] == 0.0
    assert X[col["tag_phone"]] == 0.0


def test_tag_literally_named_unknown_is_not_duplicated():
    rows = [rec(1, "a", UNKNOWN_TAG), rec(2, "b", "web")]
    assert TagStage().fit(rows) == ("web", UNKNOWN_TAG)


def test_transform_keeps_fit_layout_for_new_rows(engine, fit_rows):
    state = engine.fit(fit_rows, max_tokens=50)

    X = engine.transform([rec(7, "entirely novel words here", "fax")], state)

    assert X.shape == (1, state.n_features)
    text_block = X.toarray()[0][22:]
    assert np.all(text_block == 0.0)


def test_vocabulary_comes_only_from_fit_rows(engine, fit_rows):
    state = engine.fit(fit_rows[:2], max_tokens=50)

    assert "text_lovely" not in state.feature_names
    assert "text_cold" in state.feature_names


def test_max_tokens_caps_text_columns(engine, fit_rows):
    state = engine.fit(fit_rows, max_tokens=2)
    assert len(state.vectorizer_state) == 2
    assert state.n_features == 12 + 7 + 3 + 2


def test_transform_with_state_matches_engine(engine, fit_rows):
    state, X = engine.fit_transform(fit_rows, max_tokens=50)

    Y = transform_with_state(fit_rows, state)

    assert (X != Y).nnz == 0


def test_needs_at_least_one_stage():
    with pytest.raises(ValueError):
        FeatureAssemblerEngine([])
