import queue
import sys
import threading
import time
import unittest
from unittest.mock import Mock, call, patch

import timeout_decorator
from hamcrest import assert_that, is_, is_not, instance_of, none, less_than, empty

from linkbox.conduit.base import Conduit
from linkbox.connector.read_loop import AsyncLoop, ReadLoop, IDLE, RUNNING, STOPPED


def debug_timeout(value):
    """
    Replaces the timeout value with a very large one if the tests are running under a debugger.
    This prevents the main thread from throwing an exception and exiting when the test times out
    due to a breakpoint.
    """
    return value if sys.gettrace() is None else 100000


def wait_for(predicate, timeout=2.0):
    """ polls predicate until it is true or the timeout elapses. :return: the last value of predicate """
    deadline = time.time() + timeout
    while not predicate() and time.time() < deadline:
        time.sleep(0.001)
    return predicate()


class FakeConduit(Conduit):
    """
    An in-memory conduit. Chunks given to feed() are returned by read(); an exception fed is raised by read().
    Calls are recorded in log, which may be shared between conduits to check ordering.
    """
    def __init__(self, device="COM3", kind="serial", log=None, close_delay=0, close_error=None, write_error=None):
        self.device = device
        self.kind = kind
        self.log = log if log is not None else []
        self.close_delay = close_delay
        self.close_error = close_error
        self.write_error = write_error
        self.incoming = queue.Queue()
        self.written = []
        self.closed = False
        self.reads_after_close = 0

    @property
    def target(self):
        return self

    @property
    def open(self):
        return not self.closed

    def feed(self, *chunks):
        for chunk in chunks:
            self.incoming.put(chunk)

    def read(self, size, timeout=None):
        if self.closed:
            self.reads_after_close += 1
        try:
            data = self.incoming.get(timeout=timeout)
        except queue.Empty:
            return b''
        if isinstance(data, Exception):
            raise data
        return data[:size]

    def write(self, data):
        if self.write_error:
            raise self.write_error
        self.written.append(data)
        return len(data)

    def close(self):
        self.log.append(("close", self.device, reader_threads(self.device)))
        time.sleep(self.close_delay)
        self.closed = True
        if self.close_error:
            raise self.close_error

    def describe(self):
        return self.device


def reader_threads(device):
    """ the names of live read loop threads for the device """
    name = "ReadLoop-%s" % device
    return [t.name for t in threading.enumerate() if t.name == name and t.is_alive()]


class NastyException(Exception):
    pass


class AsyncLoopTest(unittest.TestCase):
    @timeout_decorator.timeout(debug_timeout(2))
    def test_real_thread(self):
        thread = None
        sut = None
        loop_thread = None

        def fn():
            nonlocal thread, loop_thread
            thread = threading.current_thread()
            loop_thread = sut.background_thread
        loop = Mock(side_effect=fn)
        sut = AsyncLoop(loop)
        sut.startup = Mock()
        sut.shutdown = Mock()
        sut.start()
        wait_for(lambda: loop.call_count)

        assert_that(sut.running(), is_(True))
        assert_that(thread, is_not(none()))
        assert_that(thread, is_(loop_thread))
        assert_that(thread, is_not(threading.current_thread()))
        assert_that(sut.stop(), is_(True))
        assert_that(sut.running(), is_(False))
        assert_that(sut.background_thread, is_(none()))
        sut.shutdown.assert_called_once()
        sut.startup.assert_called_once()

    def test_run_invokes_startup_shutdown_around_loop(self):
        running = Mock(return_value=True)

        def fn():
            if running.call_count > 1:
                running.return_value = False

        loop = Mock(side_effect=fn)
        sut = AsyncLoop(loop)
        sut.shutdown = Mock()
        sut.startup = Mock()
        sut.running = running
        manager = Mock()
        manager.attach_mock(sut.startup, 'startup')
        manager.attach_mock(sut.shutdown, 'shutdown')
        manager.attach_mock(loop, 'loop')
        sut._run()
        self.assertEqual(manager.mock_calls, [call.startup(), call.loop(), call.loop(), call.shutdown()])

    def test_an_exception_does_not_stop_the_loop(self):
        running = Mock(return_value=True)

        def fn():
            if running.call_count == 10:
                running.return_value = False
            raise NastyException()

        loop = Mock(side_effect=fn)
        sut = AsyncLoop(loop)
        sut.running = running
        sut.exception_handler = Mock()
        sut._run()
        self.assertEqual(loop.call_count, 10)
        self.assertEqual(sut.exception_handler.call_count, 10)

    @patch('threading.Thread')
    def test_starting_an_already_started_loop(self, thread):
        sut = AsyncLoop(Mock())
        the_thread = Mock()
        thread.return_value = the_thread
        sut.start()
        thread.assert_called_once()
        assert_that(sut.background_thread, is_(the_thread))
        assert_that(sut.stop_event, is_(instance_of(threading.Event)))
        assert_that(the_thread.daemon, is_(True))
        thread.reset_mock()
        sut.start()
        thread.assert_not_called()

    def test_stop_when_not_started_is_harmless(self):
        sut = AsyncLoop()
        assert_that(sut.stop(), is_(True))
        assert_that(sut.stop(), is_(True))

    def test_states(self):
        sut = AsyncLoop(lambda: time.sleep(0.001))
        assert_that(sut.state, is_(IDLE))
        sut.start()
        assert_that(sut.state, is_(RUNNING))
        sut.stop()
        assert_that(sut.state, is_(STOPPED))

    @patch('threading.Thread')
    def test_stopped_loop_cannot_restart(self, thread):
        sut = AsyncLoop(Mock())
        sut.stop()
        sut.start()
        thread.assert_not_called()
        assert_that(sut.state, is_(STOPPED))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_stop_from_the_loop_thread_does_not_join(self):
        sut = None

        def fn():
            sut.stop()
        sut = AsyncLoop(fn)
        sut.start()
        assert_that(wait_for(lambda: sut.state == STOPPED), is_(True))

    @timeout_decorator.timeout(debug_timeout(3))
    def test_stop_timeout_reports_unfinished_thread(self):
        release = threading.Event()
        sut = AsyncLoop(lambda: release.wait())
        sut.start()
        try:
            assert_that(sut.stop(timeout=0.05), is_(False))
        finally:
            release.set()


class ReadLoopTest(unittest.TestCase):

    def setUp(self):
        self.conduit = FakeConduit()
        self.events = []
        self.sink = Mock()
        self.sink.fire.side_effect = lambda topic, payload: self.events.append((topic, payload))
        self.sut = ReadLoop(self.conduit, self.sink, read_timeout=0.02, buffer_size=16)

    def tearDown(self):
        self.sut.stop()

    def test_thread_named_after_device(self):
        assert_that(self.sut.thread_name(), is_("ReadLoop-COM3"))

    def test_fires_only_bytes_read(self):
        conduit = Mock()
        conduit.read.return_value = bytearray(b'AB')
        sut = ReadLoop(conduit, self.sink, read_timeout=0.1, buffer_size=1024)
        sut.loop()
        conduit.read.assert_called_once_with(1024, 0.1)
        assert_that(self.events, is_([("serial:data", b'AB')]))
        assert_that(self.events[0][1], is_(instance_of(bytes)))

    def test_empty_read_fires_nothing(self):
        self.sut.loop()
        assert_that(self.events, is_(empty()))

    def test_read_error_is_retried_after_timeout(self):
        self.conduit.feed(OSError("device reports readiness to read but returned no data"), b'1')
        self.sut.stop_event.wait = Mock()
        self.sut.loop()
        self.sut.stop_event.wait.assert_called_once_with(0.02)
        assert_that(self.events, is_(empty()))
        self.sut.loop()
        assert_that(self.events, is_([("serial:data", b'1')]))

    def test_data_read_after_stop_is_dropped(self):
        def read(size, timeout):
            self.sut.stop_event.set()
            return b'late'
        self.conduit.read = read
        self.sut.loop()
        assert_that(self.events, is_(empty()))

    @timeout_decorator.timeout(debug_timeout(3))
    def test_forwards_chunks_in_order(self):
        self.conduit.feed(b'A', b'BC', OSError("transient"), b'D')
        self.sut.start()
        assert_that(wait_for(lambda: len(self.events) == 3), is_(True))
        assert_that(self.events, is_([("serial:data", b'A'), ("serial:data", b'BC'), ("serial:data", b'D')]))

    @timeout_decorator.timeout(debug_timeout(3))
    def test_stops_within_a_read_timeout(self):
        sut = ReadLoop(self.conduit, self.sink, read_timeout=0.05)
        sut.start()
        time.sleep(0.05)
        start = time.time()
        sut.stop()
        assert_that(time.time() - start, is_(less_than(0.5)))
        assert_that(sut.state, is_(STOPPED))
        assert_that(reader_threads("COM3"), is_(empty()))

    @timeout_decorator.timeout(debug_timeout(3))
    def test_nothing_fired_after_stop(self):
        self.sut.start()
        self.sut.stop()
        self.conduit.feed(b'after')
        time.sleep(0.05)
        assert_that(self.events, is_(empty()))


if __name__ == '__main__':  # pragma: no cover
    unittest.main()
