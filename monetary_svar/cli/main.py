"""
Main CLI entry point for the monetary policy SVAR pipeline.
"""

import click
from typing import Optional

from ..config import ConfigManager
from ..data.data_manager import DataManager
from ..exceptions import MonetarySVARError
from ..integration.pipeline import SVARPipeline
from ..logging_config import setup_logging


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.option('--log-dir', type=click.Path(file_okay=False),
              help='Write rotating log files to this directory')
@click.pass_context
def main(ctx, config, verbose, log_dir):
    """Monetary policy structural VAR analysis."""

    ctx.ensure_object(dict)

    setup_logging(log_level="DEBUG" if verbose else "INFO",
                  log_dir=log_dir,
                  enable_file=log_dir is not None)

    ctx.obj['config_manager'] = ConfigManager(config)
    ctx.obj['verbose'] = verbose
    ctx.obj['log_dir'] = log_dir

    if config:
        click.echo(f"Using configuration file: {config}")


def _load_settings(ctx, overrides: Optional[dict] = None):
    config_manager = ctx.obj['config_manager']
    try:
        settings = config_manager.load_config(overrides=overrides)
    except MonetarySVARError as e:
        click.echo(f"✗ {e}", err=True)
        raise click.Abort()

    # --verbose wins over the configured level
    log_dir = ctx.obj.get('log_dir')
    setup_logging(log_level="DEBUG" if ctx.obj.get('verbose') else settings.log_level.upper(),
                  log_dir=log_dir,
                  enable_file=log_dir is not None)
    return settings


@main.command()
@click.option('--method', '-m', type=click.Choice(['linear', 'smoothing-filter', 'log-linear', 'hp']),
              help='Output detrending method')
@click.option('--plot/--no-plot', default=None, help='Build figures')
@click.option('--save-figures/--no-save-figures', default=None,
              help='Write figures to the export directory')
@click.option('--lags', type=int, help='VAR lag order')
@click.option('--horizon', type=int, help='Impulse response horizon in quarters')
@click.option('--draws', type=int, help='Bootstrap replications for confidence bands')
@click.pass_context
def run(ctx, method, plot, save_figures, lags, horizon, draws):
    """Fetch the data and run the structural VAR analysis."""
    estimation = {key: value for key, value in
                  (('lags', lags), ('horizon', horizon), ('bootstrap_draws', draws))
                  if value is not None}
    settings = _load_settings(ctx, {'estimation': estimation} if estimation else None)
    ctx.obj['config_manager'].setup_environment()

    try:
        results = SVARPipeline(settings).run(method=method, plot=plot, save_figures=save_figures)
    except MonetarySVARError as e:
        click.echo(f"✗ Analysis failed: {e}", err=True)
        raise click.Abort()

    prepared = results.prepared
    if prepared.metadata.get('source') == 'snapshot':
        click.echo("Unable to download data from FRED! Using the saved snapshot.")
    else:
        click.echo("Successfully fetched data!")

    click.echo(prepared.summary())
    click.echo(f"Estimated VAR({results.svar.estimate.lags}) on "
               f"{results.svar.estimate.n_obs} observations")

    fevd = results.svar.variance_decomposition
    shares = fevd.for_variable('Output').iloc[-1]
    click.echo(f"Output variance shares at horizon {fevd.horizon}: " +
               ", ".join(f"{shock} {share:.1f}%" for shock, share in shares.items()))

    for name, path in results.saved_figures.items():
        click.echo(f"Saved {name} figure to {path}")


@main.command()
@click.pass_context
def fetch(ctx):
    """Download the series from FRED and refresh the snapshot."""
    settings = _load_settings(ctx)
    ctx.obj['config_manager'].setup_environment()
    manager = DataManager(settings.data)

    try:
        raw = manager.fetch_live()
    except MonetarySVARError as e:
        click.echo(f"Unable to download data from FRED! {e}", err=True)
        raise click.Abort()

    manager.snapshot_store.save(raw)
    click.echo("Successfully fetched data!")
    for name in raw.names:
        click.echo(f"  {name}: {len(raw[name])} observations")
    click.echo(f"Snapshot written to {manager.snapshot_store.path}")


@main.command()
@click.option('--output', '-o', default='config.json',
              help='Output path for configuration template')
@click.pass_context
def init_config(ctx, output):
    """Create a configuration template file."""
    config_manager = ctx.obj['config_manager']
    config_manager.create_config_template(output)
    click.echo(f"Configuration template created at: {output}")


@main.command()
@click.pass_context
def validate_config(ctx):
    """Validate the current configuration."""
    settings = _load_settings(ctx)
    click.echo("✓ Configuration is valid")
    click.echo(f"Analysis name: {settings.analysis_name}")
    click.echo(f"Sample: {settings.data.start_date} to {settings.data.end_date}")
    click.echo(f"Detrending: {settings.data.detrend_method.value}")
    click.echo(f"VAR lags: {settings.estimation.lags}, horizon: {settings.estimation.horizon}")


if __name__ == '__main__':
    main()
