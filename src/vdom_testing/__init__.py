from vdom_testing.app import TestingApp, create_testing_app
from vdom_testing.errors import (
    AlreadyMountedError,
    TestingError,
    UnsupportedControlError,
    UnsupportedDispatchError,
    WaitTimeoutError,
)
from vdom_testing.interaction import flush_promises, next_tick, set_value, trigger, wait_for
from vdom_testing.mount import mount
from vdom_testing.spy import Spy, SpyCall, create_spy, get_calls, is_spy, reset_calls
from vdom_testing.wrapper import Wrapper

__version__ = "0.1.0"

__all__ = [
    "AlreadyMountedError",
    "Spy",
    "SpyCall",
    "TestingApp",
    "TestingError",
    "UnsupportedControlError",
    "UnsupportedDispatchError",
    "WaitTimeoutError",
    "Wrapper",
    "create_spy",
    "create_testing_app",
    "flush_promises",
    "get_calls",
    "is_spy",
    "mount",
    "next_tick",
    "reset_calls",
    "set_value",
    "trigger",
    "wait_for",
]
