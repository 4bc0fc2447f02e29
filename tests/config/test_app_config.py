import pytest
from pydantic import ValidationError

from textlasso.config.app_config import AppConfig
from textlasso.config.tuning_config import GridConfig, ParallelBackend, TuningConfig


def test_default_config_loads():
    cfg = AppConfig.load()

    assert cfg.tuning.folds == 5
    assert cfg.tuning.metric == "roc_auc"
    assert cfg.tuning.grid.penalty_range == (-3.0, 0.0)
    assert cfg.tuning.parallel.backend is ParallelBackend.PROCESS
    assert cfg.data.positive_label == "positive"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "run.yml"
    path.write_text(
        "tuning:\n"
        "  folds: 3\n"
        "  metric: log_loss\n"
        "  grid:\n"
        "    levels: 2\n"
        "  parallel:\n"
        "    backend: thread\n"
    )

    cfg = AppConfig.load(str(path))

    assert cfg.tuning.folds == 3
    assert cfg.tuning.metric == "log_loss"
    assert cfg.tuning.grid.levels == 2
    assert cfg.tuning.grid.max_tokens_range == (500, 2000)
    assert cfg.tuning.parallel.backend is ParallelBackend.THREAD


def test_env_var_selects_config(tmp_path, monkeypatch):
    path = tmp_path / "env.yml"
    path.write_text("tuning:\n  seed: 99\n")
    monkeypatch.setenv("TEXTLASSO_CONFIG", str(path))

    assert AppConfig.load().tuning.seed == 99


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert AppConfig.load(str(path)).tuning.seed == 1234


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load(str(tmp_path / "missing.yml"))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"metric": "brier"},
        {"folds": 1},
        {"train_proportion": 1.0},
        {"grid": {"penalty_range": (0.0, -3.0)}},
        {"grid": {"max_tokens_range": (0, 10)}},
        {"vectorizer": {"ngram_min": 3, "ngram_max": 2}},
        {"solver": {"mixture": 2.0}},
    ],
)
def test_invalid_tuning_config(kwargs):
    with pytest.raises(ValidationError):
        TuningConfig(**kwargs)


def test_single_level_grid_is_allowed():
    assert GridConfig(levels=1).levels == 1
