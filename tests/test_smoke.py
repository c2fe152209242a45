"""Basic smoke tests for scaffolding."""

from mise import __version__
from mise.engine import generate, recommend
from mise.server import app


def test_package_exposes_engines_and_app() -> None:
    assert __version__
    assert callable(generate)
    assert callable(recommend)
    paths = {route.path for route in app.routes}
    assert {"/menu/recommend", "/grocery-lists", "/grocery-lists/items/{item_id}"} <= paths
