from vdom_testing.app.service import TestingApp, create_container, create_testing_app

__all__ = ["TestingApp", "create_container", "create_testing_app"]
