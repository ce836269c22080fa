"""Shared fixtures: a throwaway project and runtimes wired to fake models."""

import json
from unittest.mock import MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

APP_SOURCE = '''GREETING = "hi"


def greet(name: str) -> str:
    return f"{GREETING}, {name}"


class Greeter:
    def say(self, name: str) -> str:
        return greet(name)
'''

PACKAGE_JSON = {
    "name": "sample",
    "scripts": {"build": "tsc", "db:migrate": "node migrate.js", "start": "node index.js"},
}


@pytest.fixture()
def project(tmp_path):
    """A small project with a Python module, a README and a package.json."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "app.py").write_text(APP_SOURCE)
    (root / "README.md").write_text("# Sample\n\nGreets people.\n")
    (root / "package.json").write_text(json.dumps(PACKAGE_JSON, indent=2) + "\n")
    return root


@pytest.fixture()
def ctx(project):
    from tools.base import ToolContext

    return ToolContext(project_root=str(project), current_dir=str(project), session_id="test")


@pytest.fixture()
def make_runtime(project, tmp_path):
    """Factory for runtimes whose model answers with *responses* in order.

    ``responses=None`` gives the unconfigured fallback gateway.
    """
    from agent.gateway import ModelGateway
    from agent.runtime import create_runtime

    def _make(responses=None):
        if responses is None:
            gateway = ModelGateway(None, "fallback")
        else:
            gateway = ModelGateway(FakeListChatModel(responses=list(responses)), "fake-model")
        return create_runtime(
            project_root=str(project),
            gateway=gateway,
            index_dir=str(tmp_path / "index"),
            log_dir=str(tmp_path / "logs"),
        )

    return _make


@pytest.fixture()
def runtime(make_runtime):
    return make_runtime(["Sure, here is an answer."])


@pytest.fixture()
def assistant(runtime):
    from agent.assistant import Assistant

    return Assistant(runtime, session_id="test-session")


@pytest.fixture()
def failing_gateway():
    """Gateway whose model raises on every call."""
    from agent.gateway import ModelGateway

    model = MagicMock()
    model.invoke.side_effect = RuntimeError("quota exceeded")
    return ModelGateway(model, "broken-model")
