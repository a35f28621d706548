import pytest

from service_contracts.params import ParamSpec
from service_contracts.registry import ContractRegistry
from service_contracts.resolve import InterfaceResolver


def pytest_addoption(parser):
    parser.addoption(
        "--run-stress",
        action="store_true",
        default=False,
        help="Run tests marked as stress (many threads, large interface graphs).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "stress: long-running concurrency tests over large interface graphs"
    )


def pytest_collection_modifyitems(config, items):
    run_stress = config.getoption("--run-stress")
    if run_stress:
        return

    skip_stress = pytest.mark.skip(
        reason="stress test (use --run-stress to run)"
    )
    for item in items:
        if "stress" in item.keywords:
            item.add_marker(skip_stress)


@pytest.fixture
def registry():
    return ContractRegistry()


@pytest.fixture
def resolver(registry):
    return InterfaceResolver.for_registry(registry)


@pytest.fixture
def make_param():
    """Factory for ParamSpec with a String IN default."""
    def _make(name, type="String", mode="IN", **kwargs):
        return ParamSpec(name=name, type=type, mode=mode, **kwargs)
    return _make
