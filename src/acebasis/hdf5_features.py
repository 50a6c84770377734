"""
Write basis values (and gradients) of atomic environments to HDF5.

Layout of the file written by `write_features_hdf5`::

    /metadata                      table, one row
    /basis                         table, one row per basis function
    /environments/info             table, one row per environment
    /environments/neighbors        table, one row per neighbor
    /environments/features         VLArray, basis values per environment
    /environments/gradients        VLArray, flattened (J, nbasis, 3)
                                   gradients per environment (optional)

"""

import os
from typing import Dict, Optional, Sequence

import numpy as np
import tables as tb

from .rpibasis import RPIBasis

__author__ = "The acebasis developers"
__date__ = "2026-09-21"

__all__ = ['write_features_hdf5', 'read_features_hdf5']


def write_features_hdf5(basis: RPIBasis, environments: Sequence,
                        filename: os.PathLike,
                        name: str = "ACE features",
                        gradients: bool = False,
                        cores: int = 1,
                        complevel: int = 1):
    """
    Evaluate a basis for a batch of environments and store the results.

    Args:
        basis: The basis to evaluate
        environments: Sequence of (Rs, Zs, z0) triples with neighbor
                      positions (J, 3), neighbor species (J,) and the
                      species of the center atom
        filename: Output HDF5 file path
        name: Dataset name
        gradients: Also store the gradients with respect to the neighbor
                   positions
        cores: Number of processes used for the evaluation
        complevel: HDF5 compression level (0-9)
    """
    environments = [(np.asarray(Rs, dtype=np.float64).reshape(-1, 3),
                     list(np.atleast_1d(Zs)), z0)
                    for (Rs, Zs, z0) in environments]
    results = basis.evaluate_many(environments, cores=cores,
                                  gradients=gradients)

    typenames = [str(s) for s in basis.species]
    n_types = len(typenames)
    h5file = tb.open_file(filename, mode='w', title='ACE basis features')

    try:
        metadata = h5file.create_table(
            h5file.root, "metadata", {
                'name': tb.StringCol(itemsize=1024),
                'atom_types': tb.StringCol(itemsize=64, shape=(n_types,)),
                'num_basis': tb.UInt64Col(),
                'num_environments': tb.UInt64Col(),
                'num_neighbors_tot': tb.UInt64Col(),
                'gradients': tb.BoolCol()
            },
            "General information about the data set"
        )
        metadata.row['name'] = name
        metadata.row['atom_types'] = typenames
        metadata.row['num_basis'] = len(basis)
        metadata.row['num_environments'] = len(environments)
        metadata.row['num_neighbors_tot'] = sum(
            len(Rs) for Rs, _, _ in environments)
        metadata.row['gradients'] = gradients
        metadata.row.append()

        table = h5file.create_table(
            h5file.root, "basis", {
                'z0': tb.StringCol(itemsize=64),
                'order': tb.UInt32Col(),
                'degree': tb.Float64Col(),
                'path': tb.UInt32Col(),
                'label': tb.StringCol(itemsize=256)
            },
            "Basis functions"
        )
        for _, rec in basis.to_dataframe().iterrows():
            table.row['z0'] = str(rec['z0'])
            table.row['order'] = rec['order']
            table.row['degree'] = rec['degree']
            table.row['path'] = rec['path']
            table.row['label'] = " ".join(
                "({},{},{})".format(n, l, z)
                for n, l, z in zip(rec['n'], rec['l'], rec['z']))
            table.row.append()

        group = h5file.create_group(
            h5file.root, "environments", "Atomic environments")
        info = h5file.create_table(
            group, "info", {
                "z0": tb.StringCol(itemsize=64),
                "first_neighbor": tb.UInt64Col(),
                "num_neighbors": tb.UInt32Col()
            },
            "Environment information",
            tb.Filters(complevel, shuffle=False)
        )
        neighbors = h5file.create_table(
            group, "neighbors", {
                "environment": tb.UInt64Col(),
                "type": tb.StringCol(itemsize=64),
                "coords": tb.Float64Col(shape=(3,))
            },
            "Neighbor data",
            tb.Filters(complevel, shuffle=False)
        )
        features = h5file.create_vlarray(
            group, "features", tb.Float64Atom(),
            "Basis values",
            tb.Filters(complevel, shuffle=False)
        )
        if gradients:
            grads = h5file.create_vlarray(
                group, "gradients", tb.Float64Atom(),
                "Basis gradients (J*nbasis*3) per environment",
                tb.Filters(complevel, shuffle=False)
            )

        ineighbor = 0
        for i, (Rs, Zs, z0) in enumerate(environments):
            info.row['z0'] = str(z0)
            info.row['first_neighbor'] = ineighbor
            info.row['num_neighbors'] = len(Rs)
            info.row.append()
            for R, Z in zip(Rs, Zs):
                neighbors.row['environment'] = i
                neighbors.row['type'] = str(Z)
                neighbors.row['coords'] = R
                neighbors.row.append()
            ineighbor += len(Rs)
            if gradients:
                B, dB = results[i]
                features.append(B)
                grads.append(dB.flatten())
            else:
                features.append(results[i])

        h5file.flush()

    finally:
        h5file.close()


def read_features_hdf5(filename: os.PathLike) -> Dict:
    """
    Read a file written by `write_features_hdf5`.

    Returns:
        Dictionary with the entries 'name', 'atom_types', 'features'
        (list of arrays) and 'gradients' (list of (J, nbasis, 3) arrays,
        or None).
    """
    with tb.open_file(filename, mode='r') as h5file:
        meta = h5file.root.metadata[0]
        nbasis = int(meta['num_basis'])
        info = h5file.root.environments.info.read()
        features = [np.array(f) for f in h5file.root.environments.features]
        gradients: Optional[list] = None
        if bool(meta['gradients']):
            gradients = [
                np.array(g).reshape(int(n), nbasis, 3) for g, n in zip(
                    h5file.root.environments.gradients,
                    info['num_neighbors'])]
        return {
            'name': meta['name'].decode(),
            'atom_types': [t.decode() for t in meta['atom_types']],
            'z0': [z.decode() for z in info['z0']],
            'features': features,
            'gradients': gradients
        }
