"""
Base class of the acebasis command line tools.

Every tool is a subcommand of the ``acebasis`` script: the lower-cased
class name is the name of the subcommand, the first line of the class
docstring its short help, and `_man` its long description.

"""

import abc
import argparse
import inspect

__author__ = "The acebasis developers"
__date__ = "2026-09-24"


class ACEBasisToolABC(object, metaclass=abc.ABCMeta):
    """
    Attributes:
      name: name of the subcommand
      parser: argparse parser of the tool

    """

    def __init__(self, subparsers=None):
        self.name = self.__class__.__name__.lower()
        descr = (inspect.cleandoc(self.__doc__)
                 + "\n\n" + inspect.cleandoc(self._man()))
        if subparsers is not None:
            self.parser = subparsers.add_parser(
                self.name,
                help=self.__doc__.strip(),
                description=descr,
                formatter_class=argparse.RawDescriptionHelpFormatter)
        else:
            self.parser = argparse.ArgumentParser(
                prog="acebasis " + self.name,
                description=descr,
                formatter_class=argparse.RawDescriptionHelpFormatter)
        self.parser.set_defaults(run=self.run)
        self._set_arguments()

    def _set_arguments(self):
        """Add the tool's arguments to ``self.parser``."""
        pass

    def _man(self):
        """Manual entry shown with ``--help``."""
        return ""

    @abc.abstractmethod
    def run(self, args):
        """
        Arguments:
          args: namespace returned by the argparse parser
        """
        pass
