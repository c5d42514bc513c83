from dataclasses import dataclass
from typing import Any


@dataclass
class Event:
    type: str
    bubbles: bool = False
    cancelable: bool = False
    detail: Any = None
    target: Any = None
    current_target: Any = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        if self.cancelable:
            self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass(frozen=True)
class ComputedStyle:
    display: str
    visibility: str
    opacity: float

    def to_string(self) -> str:
        return f"display: {self.display}; visibility: {self.visibility}; opacity: {self.opacity}"
