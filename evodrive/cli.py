"""Command-line interface for evodrive."""

import json

import click
import numpy as np

from evodrive.ai.evolution import SimulationManager
from evodrive.config import get_settings
from evodrive.config.settings import reset_settings
from evodrive.errors import EvoDriveError
from evodrive.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, debug: bool, log_level: str | None) -> None:
    """evodrive - evolve neural drivers that dodge falling obstacles."""
    ctx.ensure_object(dict)
    reset_settings()
    settings = get_settings()
    debug = debug or settings.debug
    ctx.obj["debug"] = debug

    level = log_level or ("DEBUG" if debug else settings.log_level)
    configure_logging(log_level=level, debug=debug)

    logger.info("cli_started", env=settings.env, debug=debug)


@cli.command()
@click.option("--generations", "-g", type=int, default=10, show_default=True, help="Generations to evolve")
@click.option("--seed", type=int, help="Random seed for a reproducible run")
@click.option("--population", "-p", type=int, help="Number of cars per generation")
@click.option("--elites", "-e", type=int, help="Cars carried over unmodified")
@click.option("--obstacles", "-o", type=int, help="Number of moving obstacles")
@click.option("--mutation-rate", "-m", type=float, help="Per-weight mutation probability")
@click.option(
    "--max-steps", type=int, default=2000, show_default=True, help="Retire survivors after this many ticks"
)
@click.option("--json", "as_json", is_flag=True, help="Print summaries as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    generations: int,
    seed: int | None,
    population: int | None,
    elites: int | None,
    obstacles: int | None,
    mutation_rate: float | None,
    max_steps: int,
    as_json: bool,
) -> None:
    """Run the evolution headless and report each generation."""
    settings = get_settings()
    if seed is not None:
        settings.seed = seed
    settings.evolution.max_steps_per_generation = max_steps

    engine = SimulationManager(settings, rng=np.random.default_rng(settings.seed))
    evolution = settings.evolution

    try:
        engine.configure(
            obstacle_count=obstacles if obstacles is not None else settings.obstacles.count,
            agent_count=population if population is not None else evolution.population_size,
            elite_count=elites if elites is not None else evolution.elite_count,
            mutation_rate=mutation_rate if mutation_rate is not None else evolution.mutation_rate,
        )
    except EvoDriveError as e:
        logger.error("configuration_failed", error=str(e))
        raise click.ClickException(f"Invalid configuration: {e}")

    logger.info("starting_run", generations=generations, seed=settings.seed)

    try:
        history = engine.run(generations)
    except KeyboardInterrupt:
        logger.info("run_interrupted")
        click.echo("Run interrupted by user")
        history = engine.history
    except EvoDriveError as e:
        logger.error("run_failed", error=str(e))
        raise click.ClickException(f"Run failed: {e}")

    if as_json:
        click.echo(json.dumps([summary.to_dict() for summary in history], indent=2))
        return

    for summary in history:
        click.echo(
            f"Gen {summary.generation:4d}  best {summary.best_fitness:9.2f}  "
            f"avg {summary.average_fitness:9.2f}  distance {summary.distance:8.1f}"
        )
    tracker = engine.tracker
    click.echo(f"Best fitness {tracker.best_fitness_ever:.2f} (generation {tracker.best_generation})")


@cli.command(name="settings")
@click.pass_context
def show_settings(ctx: click.Context) -> None:
    """Print the effective configuration."""
    click.echo(get_settings().model_dump_json(indent=2))


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
