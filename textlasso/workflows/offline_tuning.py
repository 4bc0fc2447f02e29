# textlasso/workflows/offline_tuning.py
from __future__ import annotations

from textlasso.config.app_config import AppConfig
from textlasso.config.tuning_config import TuningConfig
from textlasso.engines.feature_assembler_engine import FeatureAssemblerEngine
from textlasso.engines.lasso_path_engine import LassoPathEngine
from textlasso.engines.metrics_engine import ClassificationMetricsEngine
from textlasso.engines.split_engine import SplitEngine
from textlasso.observability.instrumentation import Instrumentation
from textlasso.tuning.engines.final_fit_engine import FinalFitEngine
from textlasso.tuning.engines.grid_search_engine import GridSearchEngine
from textlasso.tuning.engines.model_select_engine import ModelSelectEngine
from textlasso.tuning.pipeline import TuningPipeline
from textlasso.tuning.steps.aggregate_step import AggregateStep
from textlasso.tuning.steps.dispatch_step import DispatchStep
from textlasso.tuning.steps.final_fit_step import FinalFitStep, HoldoutEvaluateStep
from textlasso.tuning.steps.grid_expand_step import GridExpandStep
from textlasso.tuning.steps.select_step import SelectBestStep
from textlasso.tuning.steps.split_step import SplitStep


def build_offline_tuning(cfg: TuningConfig | None = None, inst: Instrumentation | None = None) -> TuningPipeline:
    """
    Offline tuning workflow:
    split -> grid -> dispatch -> aggregate -> select -> final fit -> holdout
    """
    if cfg is None:
        cfg = AppConfig.load().tuning
    if inst is None:
        inst = Instrumentation()

    assembler = FeatureAssemblerEngine.from_config(cfg.vectorizer)
    solver = LassoPathEngine.from_config(cfg.solver)
    metrics = ClassificationMetricsEngine()
    selector = ModelSelectEngine()

    return TuningPipeline(
        steps=[
            SplitStep(SplitEngine(), metrics, inst=inst),
            GridExpandStep(inst=inst),
            DispatchStep(
                GridSearchEngine(
                    assembler=assembler,
                    solver=solver,
                    metrics=metrics,
                    save_predictions=cfg.save_predictions,
                ),
                max_workers=cfg.parallel.max_workers,
                backend=cfg.parallel.backend,
                unit_timeout=cfg.parallel.unit_timeout,
                inst=inst,
            ),
            AggregateStep(selector, inst=inst),
            SelectBestStep(selector, inst=inst),
            FinalFitStep(FinalFitEngine(assembler=assembler, solver=solver), inst=inst),
            HoldoutEvaluateStep(inst=inst),
        ],
        inst=inst,
        cfg=cfg,
    )
