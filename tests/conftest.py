import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

pytest_plugins = [
    "tests.fixtures.cdk_env",
]

# Ensure project root and the provider asset directory are importable at collection time
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
_providers_str = str(_repo_root / "src" / "lambda" / "providers")
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)
if _providers_str not in sys.path:
    sys.path.insert(0, _providers_str)


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region and dummy credentials for moto/boto3 clients."""
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    # Provide dummy credentials so botocore signing doesn't fail under moto
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    yield


@pytest.fixture
def load_module() -> Callable[[str], dict[str, Any]]:
    import runpy

    def _apply(path: str) -> dict[str, Any]:
        return runpy.run_path(str(_repo_root / path))

    return _apply


def pytest_configure(config):
    """Configure pytest with essential markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "infrastructure: synthesized template test")
    config.addinivalue_line("markers", "lambda_test: provider runtime test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    rootdir = Path(config.rootdir)

    for item in items:
        rel_path = Path(item.fspath).relative_to(rootdir)
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        if "lambda" in rel_path.parts:
            item.add_marker(pytest.mark.lambda_test)
        if rel_path.parts and {"core", "logs", "stepfunctions", "infrastructure"} & set(rel_path.parts):
            item.add_marker(pytest.mark.infrastructure)
