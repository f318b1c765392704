from queue import Queue, Empty


class EventSource(object):
    """
    Dispatches fired events to the registered handlers, in registration order, on the
    thread that calls fire().
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def fire_all(self, events):
        for e in events:
            self.fire(*e)

    def _fire(self, *args, **kwargs):
        for handler in tuple(self._handlers):
            handler(*args, **kwargs)


class QueuedEventSource(EventSource):
    """
    fire() posts events to a queue. They are dispatched to the handlers when a thread
    calls publish(), so a UI thread can consume events produced on a background thread.
    """
    def __init__(self):
        super().__init__()
        self.event_queue = Queue()

    def fire(self, *args, **kwargs):
        self.event_queue.put((args, kwargs))

    def publish(self):
        """ publishes any queued events on the calling thread.
        :return: the number of events published
        """
        count = 0
        while True:
            try:
                args, kwargs = self.event_queue.get_nowait()
            except Empty:
                return count
            self._fire(*args, **kwargs)
            count += 1
