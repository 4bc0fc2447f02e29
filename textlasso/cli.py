#!filepath: textlasso/cli.py
from typing import Optional

import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape
from rich.table import Table

from textlasso import __version__, init_logging
from textlasso.config.app_config import AppConfig
from textlasso.utils.errors import UserInputError, TextLassoError

app = typer.Typer(help="textlasso: cross-validated lasso tuning over text + structured features")


@app.command()
def version():
    print(f"v{__version__}")


def _load_config(path: Optional[str], workers: Optional[int]) -> AppConfig:
    try:
        cfg = AppConfig.load(path)
    except ValidationError as e:
        raise UserInputError(f"invalid config: {e}") from e
    if workers is not None:
        if workers < 1:
            raise UserInputError(f"--workers must be >= 1, got {workers}")
        cfg.tuning.parallel.max_workers = workers
    return cfg


@app.command()
def tune(
        data: str = typer.Argument(..., help="CSV or Parquet file of labeled records"),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config path"),
        workers: Optional[int] = typer.Option(None, "--workers", "-w", help="max parallel units"),
        top: int = typer.Option(10, help="rows / features to show"),
):
    """
    Run split -> CV grid search -> final fit -> single holdout evaluation.
    """
    from textlasso.engines.dataset_load_engine import load_records
    from textlasso.workflows.offline_tuning import build_offline_tuning

    try:
        cfg = _load_config(config, workers)
        init_logging(cfg.log)
        records = load_records(data, cfg.data)

        print(f"[green]Tuning on {len(records)} records[/green]")
        result = build_offline_tuning(cfg.tuning).run(records)
    except FileNotFoundError as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)
    except TextLassoError as e:
        print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    metric = cfg.tuning.metric
    ranked = result.table[result.table["metric"] == metric].head(top)
    table = Table(title=f"Top configurations by {metric}")
    for col in ("penalty", "max_tokens", "mean", "std_err", "n"):
        table.add_column(col, justify="right")
    for _, row in ranked.iterrows():
        table.add_row(
            f"{row['penalty']:.4g}",
            str(int(row["max_tokens"])),
            f"{row['mean']:.4f}",
            f"{row['std_err']:.4f}",
            str(int(row["n"])),
        )
    print(table)

    print(f"[blue]best: penalty={result.best.penalty:.4g} max_tokens={result.best.max_tokens}[/blue]")
    print("test: " + "  ".join(f"{k}={v:.4f}" for k, v in result.test_metrics.items()))

    if result.failed_units:
        print(f"[yellow]{len(result.failed_units)} units failed and were excluded[/yellow]")
    if result.unit_warnings:
        print(f"[yellow]{len(result.unit_warnings)} solver warnings across search units[/yellow]")

    for name, weight in result.importance[:top]:
        colour = "green" if weight > 0 else "red"
        print(f"[{colour}]{weight:+.4f}[/{colour}] {name}")


if __name__ == "__main__":
    app()

# python -m textlasso.cli tune data/records.csv
