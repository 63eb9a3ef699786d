"""
Background worker threads.

PeriodicWorker runs a function every `interval` seconds until stop() is
called; the watch backend uses it for its health check.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicWorker(threading.Thread):
    """
    A thread that runs a worker function periodically every `interval` seconds.
    """

    def __init__(self, worker_fn, interval, *args, name=None, **kwargs):
        """
        Initialize the periodic worker thread.

        Args:
            worker_fn (callable): The function to run periodically.
            interval (float): Time in seconds between each call.
            *args: Positional arguments passed to worker_fn.
            name (str): Optional thread name.
            **kwargs: Keyword arguments passed to worker_fn.
        """
        super().__init__(name=name, daemon=True)
        self.worker_fn = worker_fn
        self.interval = interval
        self.args = args
        self.kwargs = kwargs
        self.stop_event = threading.Event()

    def run(self):
        logger.debug("%s started with interval: %s seconds", self.name, self.interval)
        # Wait first so the first call happens one interval after start.
        while not self.stop_event.wait(self.interval):
            try:
                self.worker_fn(*self.args, **self.kwargs)
            except Exception as e:
                logger.exception("Exception in periodic worker function: %s", e)
        logger.debug("%s stopped.", self.name)

    def stop(self):
        """
        Signal the thread to stop.
        """
        self.stop_event.set()


def spawn_periodic_worker(worker_fn, interval, *args, **kwargs):
    """
    Factory function to spawn a periodic worker thread.

    Returns:
        PeriodicWorker: The running periodic worker thread instance.
    """
    worker = PeriodicWorker(worker_fn, interval, *args, **kwargs)
    worker.start()
    return worker
