"""Tool auto-registration.

Automatically discovers every concrete :class:`tools.base.Tool` subclass
defined in sibling modules. To add a new tool, add its identifier to
``ToolName`` and define the class in any module of this package.
"""

import importlib
import inspect
import pkgutil

from tools.base import Tool, ToolName


def get_all_tools() -> list[Tool]:
    """Scan the tools package and return one instance of each tool."""
    tool_list: list[Tool] = []

    # Iterate over every module in this package
    package_path = __path__  # type: ignore[name-defined]
    for _, module_name, _ in pkgutil.iter_modules(package_path):
        if module_name.startswith("_"):
            continue
        module = importlib.import_module(f"tools.{module_name}")

        for _, attr in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(attr, Tool)
                and attr.__module__ == module.__name__
                and not inspect.isabstract(attr)
            ):
                tool_list.append(attr())

    order = list(ToolName)
    return sorted(tool_list, key=lambda t: order.index(t.name))


def create_default_registry():
    """Return a registry holding all discovered tools."""
    from tools.registry import ToolRegistry

    return ToolRegistry(get_all_tools())
