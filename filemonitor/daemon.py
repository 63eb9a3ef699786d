import os
import signal
import threading
import time

import daemon
import psutil
from daemon.pidfile import PIDLockFile

from filemonitor.dispatcher import Dispatcher
from filemonitor.logger import log_startup_summary, resolve_log_file
from filemonitor.notifiers import build_notifier
from filemonitor.utils import spawn_periodic_worker
from filemonitor.watcher import WatchBackend

DEFAULT_PID_FILENAME = "filemonitor.pid"
STATUS_INTERVAL = 300


class StartupError(RuntimeError):
    """Raised when the service cannot start watching."""

    pass


def get_pid_file(config):
    """The pid file lives next to the log file."""
    return os.path.join(os.path.dirname(resolve_log_file(config)), DEFAULT_PID_FILENAME)


def process_status(pid, config=None):
    """
    Collect process information for a running monitor.

    Returns:
        dict: Property name to display value.
    """
    proc = psutil.Process(pid)
    status_info = {
        "PID": proc.pid,
        "CPU %": proc.cpu_percent(interval=0.1),
        "Memory %": f"{proc.memory_percent():.2f}",
        "Memory RSS": proc.memory_info().rss,
        "Threads": proc.num_threads(),
        "Started At": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(proc.create_time())),
    }
    if config is not None:
        status_info["Directories"] = ", ".join(config.directories)
        status_info["Channel"] = config.channel or "none"
    return status_info


def log_daemon_status(root_logger, config):
    """
    Log process status information using psutil.
    """
    try:
        status_info = process_status(os.getpid(), config)
        root_logger.info(
            "Daemon Status:\n" + "\n".join(f"{k}: {v}" for k, v in status_info.items())
        )
    except psutil.Error as e:
        root_logger.error(f"Error logging daemon status: {e}")


def add_watches(backend, directories, root_logger):
    """
    Register every directory with the backend. A directory that fails is
    logged and skipped.

    Returns:
        list: The directories being watched.
    """
    watched = []
    for directory in directories:
        try:
            backend.add_watch(directory)
        except OSError as e:
            root_logger.error(f"Failed to add watch directory: {directory} error: {e}")
        else:
            root_logger.info(f"Watching directory: {directory}")
            watched.append(directory)
    if not watched:
        root_logger.warning("No directory could be watched; waiting for the watcher to close.")
    return watched


def run_service(config, root_logger, backend=None):
    """
    Start the watch backend and run the dispatcher until the backend closes.

    Raises:
        StartupError: If the watch backend cannot be started.
    """
    log_startup_summary(root_logger, config)
    notifier = build_notifier(config)

    backend = backend if backend is not None else WatchBackend()
    try:
        backend.start()
    except (OSError, RuntimeError) as e:
        raise StartupError(f"Failed to create watcher: {e}") from e

    add_watches(backend, config.directories, root_logger)

    dispatcher = Dispatcher(config, notifier)
    try:
        dispatcher.run(backend.items)
    except KeyboardInterrupt:
        root_logger.info("Interrupted, shutting down.")
    finally:
        backend.close()
    return dispatcher


def shutdown_handler(backend, root_logger):
    """
    Build a signal handler that closes the backend from a helper thread, so
    the handler itself never blocks on the observer.
    """

    def handle(signum, frame):
        root_logger.info(f"Received signal {signum}, shutting down.")
        threading.Thread(target=backend.close, name="FM_Shutdown", daemon=True).start()

    return handle


def run_daemon(config, root_logger, pid_file=None):
    """Detach from the terminal and run the service as a daemon."""
    pid_file = pid_file or get_pid_file(config)
    backend = WatchBackend()
    handle = shutdown_handler(backend, root_logger)

    working_directory = os.path.dirname(config.source) if config.source else os.getcwd()
    context = daemon.DaemonContext(
        pidfile=PIDLockFile(pid_file),
        working_directory=working_directory,
        signal_map={signal.SIGTERM: handle, signal.SIGINT: handle},
        files_preserve=[
            handler.stream.fileno()
            for handler in root_logger.handlers
            if hasattr(handler, "stream") and hasattr(handler.stream, "fileno")
        ],
    )

    with context:
        root_logger.info(f"Daemon started. Config path: {config.source}")
        log_daemon_status(root_logger, config)
        status_worker = spawn_periodic_worker(
            log_daemon_status, STATUS_INTERVAL, root_logger, config, name="FM_StatusLogger"
        )
        try:
            run_service(config, root_logger, backend=backend)
        except Exception as e:
            root_logger.error(f"Fatal error in daemon: {e}", exc_info=True)
            raise
        finally:
            status_worker.stop()
