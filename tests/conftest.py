import pytest

from vdom_testing.runtime import ReactiveRuntime


@pytest.fixture
def runtime():
    """A runtime with its own document, so tests never share DOM state."""
    return ReactiveRuntime()


@pytest.fixture
def document(runtime):
    return runtime.document
