import os
import signal
import time

import click
import psutil
from rich.console import Console
from rich.table import Table

from filemonitor import config as config_module
from filemonitor import daemon as daemon_module
from filemonitor import logger as logger_module
from filemonitor import paths
from filemonitor.dispatcher import Dispatcher
from filemonitor.events import Operation, RawEvent


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to configuration file (YAML or TOML).")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, config_path, debug):
    """
    FileMonitor CLI: Watch directories and announce file changes.
    """
    try:
        cfg = config_module.load_config(config_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.abort()
    ctx.obj = {"config": cfg, "debug": debug}


@main.command()
@click.pass_context
def show_config(ctx):
    """
    Show the loaded configuration (secrets are not shown).
    """
    cfg = ctx.obj["config"]
    table = Table(title="FileMonitor Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    for key, value in config_module.summarize(cfg).items():
        table.add_row(key, str(value))
    Console().print(table)


@main.command()
@click.argument("path")
@click.option(
    "--operation",
    "-o",
    default="WRITE",
    type=click.Choice([op.value for op in Operation], case_sensitive=False),
    help="Operation to test against the event filter.",
)
@click.pass_context
def check(ctx, path, operation):
    """
    Show whether an event for PATH would be ignored. Nothing is sent.
    """
    cfg = ctx.obj["config"]
    dispatcher = Dispatcher(cfg, notifier=None)
    event = dispatcher.normalize(RawEvent(path, Operation.from_name(operation)))
    verdict = dispatcher.filter(event)
    click.echo(f"Normalized path: {event.path}")
    if verdict.ignored:
        click.echo(f"Ignored ({verdict.reason})")
    else:
        click.echo(f"Passed; would notify via: {cfg.channel or 'none'}")


@main.command()
@click.option("--foreground", is_flag=True, help="Run in foreground (not as daemon).")
@click.pass_context
def start(ctx, foreground):
    """
    Start the FileMonitor service.
    """
    cfg = ctx.obj["config"]
    level = "DEBUG" if ctx.obj["debug"] else None
    try:
        root_logger = logger_module.setup_from_config(cfg, level=level)
    except OSError as e:
        click.echo(f"Error setting up logging: {e}", err=True)
        ctx.exit(1)

    if foreground:
        click.echo("Running in foreground...")
        try:
            daemon_module.run_service(cfg, root_logger)
        except daemon_module.StartupError as e:
            root_logger.critical(str(e))
            ctx.exit(1)
    else:
        click.echo("Starting daemon...")
        daemon_module.run_daemon(cfg, root_logger)


def _read_pid(pid_file):
    with open(pid_file, "r") as f:
        return int(f.read().strip())


@main.command()
@click.pass_context
def stop(ctx):
    """
    Stop the FileMonitor daemon.
    """
    pid_file = daemon_module.get_pid_file(ctx.obj["config"])
    if not os.path.exists(pid_file):
        click.echo("Daemon is not running (pid file not found).")
        return
    try:
        pid = _read_pid(pid_file)
        os.kill(pid, signal.SIGTERM)
    except (OSError, ValueError) as e:
        click.echo(f"Error stopping daemon: {e}")
        return
    click.echo(f"Sent SIGTERM to daemon (pid {pid}).")
    time.sleep(2)
    if os.path.exists(pid_file):
        os.remove(pid_file)


@main.command()
@click.pass_context
def status(ctx):
    """
    Check the status of the FileMonitor daemon.
    Displays process info (memory, CPU, threads, start time) and watched directories.
    """
    cfg = ctx.obj["config"]
    pid_file = daemon_module.get_pid_file(cfg)

    if not os.path.exists(pid_file):
        click.echo("Daemon is not running (pid file not found).")
        return

    try:
        status_info = daemon_module.process_status(_read_pid(pid_file), cfg)
    except (psutil.NoSuchProcess, ValueError):
        click.echo("Daemon process not found.")
        return
    except psutil.Error as e:
        click.echo(f"Error reading daemon status: {e}")
        return

    status_table = Table(title="FileMonitor Daemon Status")
    status_table.add_column("Property", style="cyan")
    status_table.add_column("Value", style="magenta")
    for key, value in status_info.items():
        status_table.add_row(key, str(value))
    status_table.add_row("Path Style", cfg.path_style)
    status_table.add_row("Host Path Style", paths.host_path_style())
    Console().print(status_table)


if __name__ == "__main__":
    main()
