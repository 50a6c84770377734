"""
Command line interface.

Tools are discovered from the modules ``acebasis_*.py`` in this package;
each defines one subclass of `ACEBasisToolABC`.

"""

import argparse
import glob
import importlib
import os
import sys

from acebasis.commandline.tools import ACEBasisToolABC

__author__ = "The acebasis developers"
__date__ = "2026-09-24"


def discover(subparsers):
    """
    Register all tools with an argparse subparsers object.

    Returns:
        dict: Mapping of tool names to tool instances
    """
    tool_dir = os.path.dirname(__file__)
    tools = {}
    for filepath in sorted(glob.glob(os.path.join(tool_dir, 'acebasis_*.py'))):
        module_name = os.path.basename(filepath)[:-3]
        try:
            mod = importlib.import_module(
                f'acebasis.commandline.{module_name}')
        except ImportError as e:
            sys.stderr.write(
                f"Warning: Failed to import commandline tool "
                f"'{module_name}': {e}\n")
            continue
        for name, obj in vars(mod).items():
            if (isinstance(obj, type) and
                    issubclass(obj, ACEBasisToolABC) and
                    obj is not ACEBasisToolABC):
                tool = obj(subparsers=subparsers)
                tools[tool.name] = tool
    return tools


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="acebasis",
        description="Atomic cluster expansion basis tools.")
    subparsers = parser.add_subparsers(title="tools")
    discover(subparsers)
    args = parser.parse_args(argv)
    if not hasattr(args, 'run'):
        parser.print_help()
        return 1
    args.run(args)
    return 0
