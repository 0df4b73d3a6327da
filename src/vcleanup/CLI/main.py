"""
Command Line Interface for vcleanup.
"""
import contextlib
import logging
import os
import signal
import threading

import click

from ..CONVERTERS.report_renderer import ReportRenderer
from ..errors import CleanupError, ConfigError
from ..INVENTORY.vsphere_inventory import VsphereSession
from ..MANAGERS.cleanup_runner import CleanupRunner, RunContext
from ..MODELS.cleanup_config import CleanupConfig
from ..PARSERS.config_parser import ConfigParser
from ..PARSERS.inventory_parser import InventoryParser

EXIT_IMAGE_FAILURES = 2
DEFAULT_CONFIG_FILE = "vcleanup.yml"


def configure_logging(verbosity: int):
    """
    Progress logging goes to stderr only when asked for; the report printed
    at the end already lists every decision and failure.
    """
    package_logger = logging.getLogger("vcleanup")
    if verbosity == 0:
        if not package_logger.handlers:
            package_logger.addHandler(logging.NullHandler())
        return
    level = logging.INFO if verbosity == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    package_logger.setLevel(level)


def config_error(error: ConfigError) -> click.ClickException:
    lines = "\n".join(f"  - {problem}" for problem in error.problems)
    return click.ClickException(f"invalid configuration:\n{lines}")


def load_config(ctx, **overrides) -> CleanupConfig:
    """
    Loads the configuration file and applies command line overrides.
    The default file is optional, a file named with -f must exist.
    """
    path = ctx.obj['file']
    try:
        if path is not None or os.path.exists(DEFAULT_CONFIG_FILE):
            config = ConfigParser(env_file=ctx.obj['env_file']).parse(path or DEFAULT_CONFIG_FILE)
        else:
            config = CleanupConfig()
    except ConfigError as e:
        raise config_error(e)
    return config.with_overrides(**overrides)


@contextlib.contextmanager
def interrupt_sets(cancel: threading.Event):
    """
    Turns Ctrl+C into a cancellation request: the image being processed is
    finished, the remaining ones are left alone.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        click.echo("\nInterrupted, finishing the current image...", err=True)
        cancel.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def run_options(func):
    """Options shared by the run and plan commands."""
    options = [
        click.option('--pattern', '-p', 'image_name_regex', help='Image name regexp, the last group is the version'),
        click.option('--keep', '-k', 'keep_images', type=int, help='Number of newest images to keep'),
        click.option('--artifact-id', '-a', help='Name of the image produced by the current build'),
        click.option('--inventory', '-i', type=click.Path(dir_okay=False),
                     help='Use an inventory snapshot file instead of vCenter'),
        click.option('--format', 'fmt', type=click.Choice(['text', 'json']), default='text'),
        click.option('--fail-on-error', is_flag=True,
                     help=f'Exit with code {EXIT_IMAGE_FAILURES} when an image could not be reclaimed'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def execute(ctx, config: CleanupConfig, artifact_id, inventory, fmt, fail_on_error):
    try:
        if inventory:
            config.validate_policy()
        else:
            config.validate_all()
    except ConfigError as e:
        raise config_error(e)

    cancel = threading.Event()
    try:
        with interrupt_sets(cancel):
            if inventory:
                snapshot = InventoryParser().parse(inventory)
                runner = CleanupRunner(config, RunContext(snapshot, snapshot, cancel))
                report = runner.run(artifact_id)
            else:
                with VsphereSession(config, cancel=cancel) as vsphere:
                    runner = CleanupRunner(config, RunContext(vsphere, vsphere, cancel))
                    report = runner.run(artifact_id)
    except ConfigError as e:
        raise config_error(e)
    except CleanupError as e:
        raise click.ClickException(str(e))

    click.echo(ReportRenderer().render(report, fmt))
    if fail_on_error and report.has_failures:
        ctx.exit(EXIT_IMAGE_FAILURES)


@click.group()
@click.option('--file', '-f', help=f'Configuration file path, {DEFAULT_CONFIG_FILE} is read when present')
@click.option('--env-file', default='.env', help='Environment file used for ${VAR} interpolation')
@click.option('--verbose', '-v', count=True, help='Log progress (-v) or debug details (-vv)')
@click.pass_context
def cli(ctx, file, env_file, verbose):
    """
    vcleanup - keep the newest builds of a vSphere image family.

    Removes older virtual machines and templates whose name matches an image
    name pattern, converting templates back to virtual machines first.
    """
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    ctx.obj['env_file'] = env_file
    configure_logging(verbose)


@cli.command()
@run_options
@click.option('--dry-run/--no-dry-run', default=None, help='Only report what would be deleted')
@click.pass_context
def run(ctx, image_name_regex, keep_images, artifact_id, inventory, fmt, fail_on_error, dry_run):
    """Delete old images of the family, keeping the newest ones."""
    config = load_config(ctx, image_name_regex=image_name_regex, keep_images=keep_images, dry_run=dry_run)
    execute(ctx, config, artifact_id, inventory, fmt, fail_on_error)


@cli.command()
@run_options
@click.pass_context
def plan(ctx, image_name_regex, keep_images, artifact_id, inventory, fmt, fail_on_error):
    """Show which images would be deleted, without touching anything."""
    config = load_config(ctx, image_name_regex=image_name_regex, keep_images=keep_images, dry_run=True)
    execute(ctx, config, artifact_id, inventory, fmt, fail_on_error)


@cli.command()
@click.option('--policy-only', is_flag=True, help='Skip the vCenter connection settings')
@click.pass_context
def validate(ctx, policy_only):
    """Check the configuration without contacting vCenter."""
    config = load_config(ctx)
    try:
        if policy_only:
            config.validate_policy()
        else:
            config.validate_all()
    except ConfigError as e:
        raise config_error(e)
    click.echo(f"Configuration is valid: pattern '{config.image_name_regex}', keeping {config.keep_images} image(s).")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
