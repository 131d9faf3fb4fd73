#!filepath: trialflow/cli.py
from typing import Optional

import typer
from rich import print

from trialflow import __version__, logs, init_logging
from trialflow.config import AppConfig
from trialflow.core.nodes import expand
from trialflow.engine import run_timeline
from trialflow.io import DataWriter
from trialflow.loader import load_timeline
from trialflow.runners import SimulationRunner
from trialflow.utils.errors import MalformedTimelineDescription

app = typer.Typer(help="Trialflow experiment timeline CLI")


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def validate(path: str):
    """
    展开并校验 YAML timeline（不运行任何 trial）
    """
    try:
        root = expand(load_timeline(path))
    except MalformedTimelineDescription as e:
        print(f"[red]Invalid timeline[/red] {e}")
        raise typer.Exit(code=1)

    print(f"[green]OK[/green] {path}: {root.trial_count()} trials per pass")


@app.command()
def run(
    path: str,
    out: Optional[str] = typer.Option(None, help="输出文件（.parquet / .csv）"),
    seed: Optional[int] = typer.Option(None, help="覆盖 engine.seed"),
    config: Optional[str] = typer.Option(None, help="YAML 配置文件"),
    delay: float = typer.Option(0.0, help="模拟 runner 每个 trial 的延迟（秒）"),
):
    """
    用 SimulationRunner 跑一遍 timeline（无被试试运行）
    """
    cfg = AppConfig.load(config)
    init_logging(cfg.log)

    engine_cfg = cfg.engine
    if seed is not None:
        engine_cfg = engine_cfg.model_copy(update={"seed": seed})

    _simulate(path, out, engine_cfg, delay)


@logs.catch(msg="simulated run failed")
def _simulate(path, out, engine_cfg, delay):
    description = load_timeline(path)
    runner = SimulationRunner(seed=engine_cfg.seed, delay=delay)

    print(f"[blue]Running {path} (seed={engine_cfg.seed})[/blue]")
    data = run_timeline(description, runner, config=engine_cfg)
    print(f"[green]{len(data)} trials finalized[/green]")

    if out:
        DataWriter().write(data, out)
        print(f"[green]Saved → {out}[/green]")
    else:
        print(data.to_dataframe().tail())
    return data


if __name__ == "__main__":
    app()

# python -m trialflow.cli run experiment.yml --out data.parquet
