#!/usr/bin/env python3

import json

from .tools import ACEBasisToolABC
from ..config import ACEBasisConfig
from ..rpibasis import rpi_basis

__author__ = "The acebasis developers"
__date__ = "2026-09-24"


class Info(ACEBasisToolABC):
    """ Construct a basis and list its functions """

    def _set_arguments(self):
        self.parser.add_argument(
            "config_file",
            help="Basis configuration in JSON format.")

        self.parser.add_argument(
            "-o", "--output-file",
            help="Path to a CSV file for the list of basis functions "
                 "(default: none).",
            type=str,
            default=None)

        self.parser.add_argument(
            "--no-graph",
            help="Evaluate correlations without the evaluation graph.",
            action="store_true")

    def _man(self):
        return """
        Reads a basis configuration, constructs the rotation and
        permutation invariant basis, and prints a summary with the number
        of basis functions per center species and correlation order.

        The configuration file contains a JSON object with the parameters
        of ``acebasis.config.ACEBasisConfig``, for example

            {"species": ["Si", "O"], "maxorder": 3, "maxdeg": 8,
             "rcut": 5.0, "transform": {"type": "poly", "p": 2}}

        With ``--output-file`` the basis functions (center species, order,
        n, l, neighbor species, coupling path, degree) are written to a
        CSV file.

        """

    def info(self, config_file, output_file=None, use_graph=True):
        with open(config_file) as fp:
            config = ACEBasisConfig.from_dict(json.load(fp))
        basis = rpi_basis(config, use_graph=use_graph)
        print(basis.summary())
        if output_file is not None:
            print("Writing basis functions to '{}'.".format(output_file))
            basis.to_dataframe().to_csv(output_file, index=False)
        return basis

    def run(self, args):
        self.info(args.config_file, args.output_file,
                  use_graph=not args.no_graph)


if __name__ == "__main__":
    tool = Info()
    args = tool.parser.parse_args()
    tool.run(args)
