"""Shared collaborators for every assistant session.

A :class:`Runtime` is built once per process (or per test) and passed to the
graph through ``config["configurable"]["runtime"]``. Everything on it is
stateless between messages or safe to share: per-session state lives on
:class:`agent.assistant.Assistant`.
"""

import os
from dataclasses import dataclass
from typing import Optional

from agent import config
from agent.gateway import ModelGateway, create_gateway
from agent.guardrails import ToolUsageLogger
from agent.intents import IntentClassifier
from codebase.executor import CommandExecutor
from codebase.git import GitManager
from codebase.indexer import CodeIndexer, create_embedder
from codebase.patch import PatchEngine
from codebase.reader import FileReader
from tools import create_default_registry
from tools.planner import PlanGenerator
from tools.registry import ToolRegistry


@dataclass
class Runtime:
    project_root: str
    classifier: IntentClassifier
    indexer: CodeIndexer
    git: GitManager
    executor: CommandExecutor
    patches: PatchEngine
    reader: FileReader
    gateway: ModelGateway
    registry: ToolRegistry
    planner: PlanGenerator
    tool_logger: ToolUsageLogger


def create_runtime(
    project_root: Optional[str] = None,
    gateway: Optional[ModelGateway] = None,
    embedder=None,
    index_dir: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> Runtime:
    """Wire up the default collaborators for *project_root*.

    Index and log directories default to the configured ones for the
    configured project, and to ``.agent_index`` / ``.tool_logs`` inside any
    other project root.
    """
    root = os.path.abspath(project_root or config.PROJECT_ROOT)
    default_root = root == config.PROJECT_ROOT
    index_dir = index_dir or (config.INDEX_DIR if default_root else os.path.join(root, ".agent_index"))
    log_dir = log_dir or (config.TOOL_LOG_DIR if default_root else os.path.join(root, ".tool_logs"))

    registry = create_default_registry()
    return Runtime(
        project_root=root,
        classifier=IntentClassifier(),
        indexer=CodeIndexer(
            root,
            index_dir,
            embedder or create_embedder(config.INDEX_EMBEDDER, config.EMBEDDING_MODEL),
        ),
        git=GitManager(root),
        executor=CommandExecutor(root),
        patches=PatchEngine(root),
        reader=FileReader(root),
        gateway=gateway or create_gateway(),
        registry=registry,
        planner=PlanGenerator(registry),
        tool_logger=ToolUsageLogger(log_dir),
    )
