import logging
import threading
import time
from typing import Callable

from linkbox.connector.base import SERIAL_DATA

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"


class AsyncLoop:
    """ Continually runs a given function on a background thread until stopped.
        Exceptions are logged and passed to exception_handler; they do not stop the loop.
        The background thread is registered as a daemon.

        A loop is started at most once. Once stopped, it cannot be restarted.
    """

    def __init__(self, fn: Callable=None, args=(), log=logger):
        """
        :param fn the function to run
        :param args arguments to pass to fn
        """
        self.fn = fn
        self.args = args
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log
        self._started = False

    @property
    def state(self):
        if self.stop_event.is_set():
            return STOPPED
        return RUNNING if self._started else IDLE

    def start(self):
        if self._started or self.stop_event.is_set():
            return
        self._started = True
        t = threading.Thread(target=self._run, name=self.thread_name())
        t.daemon = True
        self.background_thread = t
        t.start()

    def thread_name(self):
        return type(self).__name__

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        """ The processing loop for the background thread.
             The stop signal is checked before each invocation of loop().
        """
        self._do(self.startup)
        while self.running():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.info("background thread exiting")

    def _do(self, callme):
        """ runs a function and captures any exceptions """
        try:
            time.sleep(0)
            callme()
        except Exception as e:
            self.exception_handler(e)

    def startup(self):
        """ template method called when the thread starts"""
        pass

    def loop(self):
        self.fn(*self.args)

    def shutdown(self):
        """ template method called when the thread exits """
        pass

    def running(self):
        return not self.stop_event.is_set()

    def stop(self, timeout=None):
        """
        Signals the loop to stop and waits for the background thread to finish.
        Calling stop more than once, or on a loop that was never started, is harmless.
        :param timeout: the maximum time in seconds to wait for the thread to finish.
        :return: True if the background thread has finished
        """
        self.stop_event.set()
        thread = self.background_thread
        self.background_thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                self.logger.warning("background thread %s did not stop within %ss" % (thread.name, timeout))
                return False
        return True


class ReadLoop(AsyncLoop):
    """
    Reads from a conduit on a background thread and fires each chunk received to an event source
    as (topic, bytes). Only the bytes actually read are posted.

    Each read waits at most read_timeout seconds, so a stop request is observed within one
    read timeout. Read errors do not end the loop: they are logged and the read is retried
    after read_timeout. Nothing is fired after the loop has been stopped.

    :param conduit the open conduit to read from
    :param events the event source receiving the data events
    """

    def __init__(self, conduit, events, topic=SERIAL_DATA, read_timeout=0.1, buffer_size=1024, log=logger):
        super().__init__(log=log)
        self.conduit = conduit
        self.events = events
        self.topic = topic
        self.read_timeout = read_timeout
        self.buffer_size = buffer_size

    def thread_name(self):
        return "ReadLoop-%s" % self.conduit.describe()

    def loop(self):
        try:
            data = self.conduit.read(self.buffer_size, self.read_timeout)
        except Exception as e:
            self.logger.debug("read from %s failed, retrying: %s" % (self.conduit.describe(), e))
            self.stop_event.wait(self.read_timeout)
            return
        if data and self.running():
            self.events.fire(self.topic, bytes(data))
