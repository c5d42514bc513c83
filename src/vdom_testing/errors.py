class TestingError(Exception):
    """Base class for errors raised by the testing layer."""

    __test__ = False


class AlreadyMountedError(TestingError):
    """Raised when ``mount()`` is called while a node is still mounted."""

    def __init__(self, message: str = "App is already mounted, call unmount() first"):
        super().__init__(message)


class UnsupportedControlError(TestingError, TypeError):
    """Raised when a value is assigned to an element with no value semantics."""


class UnsupportedDispatchError(TestingError, TypeError):
    """Raised when an event is triggered on a binding that cannot receive events."""


class WaitTimeoutError(TestingError, TimeoutError):
    """Raised by ``wait_for`` when the condition does not pass in time."""
