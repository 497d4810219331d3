from __future__ import annotations

import importlib
import pkgutil

import pytest

from finfusion.api import routers

ROUTER_MODULES = sorted(info.name for info in pkgutil.iter_modules(routers.__path__))


def test_every_resource_has_a_router_module():
    assert {"accounts", "budgets", "loans", "transactions"} <= set(ROUTER_MODULES)


@pytest.mark.parametrize("name", ROUTER_MODULES)
def test_router_modules_are_documented(name: str) -> None:
    module = importlib.import_module(f"{routers.__name__}.{name}")
    assert module.__doc__ and module.__doc__.strip()
    assert hasattr(module, "router")
