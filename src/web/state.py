import threading
import time


class SharedState:
    """
    Singleton class to share state between the asyncio driver loop
    and the FastAPI web server thread.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance._reset_fields()
        return cls._instance

    def _reset_fields(self):
        self.refs_lock = threading.Lock()
        self.monitor = None
        self.driver = None
        self.override_source = None
        self.event_log = None
        self.config = None
        self.start_time = time.time()

    def attach(self, monitor=None, driver=None, override_source=None, event_log=None, config=None):
        """Register the runtime objects the API reads from."""
        with self.refs_lock:
            if monitor is not None:
                self.monitor = monitor
            if driver is not None:
                self.driver = driver
            if override_source is not None:
                self.override_source = override_source
            if event_log is not None:
                self.event_log = event_log
            if config is not None:
                self.config = config
            self.start_time = time.time()

    def get_refs(self):
        """Return (monitor, driver, override_source, event_log) under the lock."""
        with self.refs_lock:
            return self.monitor, self.driver, self.override_source, self.event_log

    def clear(self):
        with self.refs_lock:
            self.monitor = None
            self.driver = None
            self.override_source = None
            self.event_log = None
            self.config = None
            self.start_time = time.time()


# Global instance
state = SharedState()
