from vdom_testing.wrapper.service import Wrapper

__all__ = ["Wrapper"]
