#!/usr/bin/env python3
"""
Process lifecycle: graceful shutdown on signals, and the self-restart
handover used by the restarting deployment.
"""

import logging
import signal
import subprocess
import sys
import time
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


def install_signal_handlers(loop, signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM)):
    """Turn SIGINT/SIGTERM into a cooperative stop of ``loop``."""

    def on_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down gracefully...")
        loop.request_stop()

    for signum in signals:
        signal.signal(signum, on_signal)


class SelfRestartSupervisor:
    """
    Spawns a fresh copy of the spider with the same arguments.

    The outgoing process keeps running for ``startup_grace`` seconds so the
    successor can start listening, then reports whether it is still alive.
    """

    def __init__(self, argv: List[str], startup_grace: float = 2.0,
                 popen: Callable = subprocess.Popen,
                 sleep: Callable[[float], None] = time.sleep,
                 executable: Optional[str] = None):
        self.argv = list(argv)
        self.startup_grace = startup_grace
        self.popen = popen
        self.sleep = sleep
        self.executable = executable or sys.executable
        self.successor = None

    def command(self) -> List[str]:
        return [self.executable, "-m", "dhtcatalog", *self.argv]

    def spawn_successor(self) -> bool:
        command = self.command()
        logger.info(f"Starting successor: {' '.join(command)}")
        try:
            self.successor = self.popen(command, close_fds=True)
        except OSError as e:
            logger.error(f"Could not start successor: {e}")
            return False

        self.sleep(self.startup_grace)
        returncode = self.successor.poll()
        if returncode is not None:
            logger.error(f"Successor exited during startup with status {returncode}")
            return False

        logger.info(f"Successor running as pid {self.successor.pid}")
        return True
