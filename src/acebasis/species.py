"""
Compact species bookkeeping.

Chemical species (element symbols or atomic numbers) are mapped to
compact indices ``0..nspecies-1``.  The mapping is fixed when the list is
created and shared by every component of a basis.

"""

from typing import Hashable, Iterable, List, Sequence

import numpy as np

from .exceptions import ConfigurationError, DomainError

__author__ = "The acebasis developers"
__date__ = "2026-08-03"

__all__ = ['SpeciesList']


class SpeciesList(object):
    """
    Bijective map between species labels and compact indices.

    Parameters
    ----------
    species : sequence
        Species labels, e.g. ``['Si', 'O']`` or ``[14, 8]``.  The order
        defines the indices.

    Examples
    --------
    >>> zl = SpeciesList(['Si', 'O'])
    >>> zl.index('O')
    1
    >>> zl.indices(['O', 'O', 'Si'])
    array([1, 1, 0])
    """

    def __init__(self, species: Sequence[Hashable]):
        if isinstance(species, (str, bytes)):
            species = [species]
        species = list(species)
        if len(species) == 0:
            raise ConfigurationError("The species list must not be empty.")
        if len(set(species)) != len(species):
            raise ConfigurationError(
                "Duplicate entries in species list: {}".format(species))
        self._species = tuple(species)
        self._index = {s: i for i, s in enumerate(self._species)}

    def __len__(self):
        return len(self._species)

    def __iter__(self):
        return iter(self._species)

    def __eq__(self, other):
        if not isinstance(other, SpeciesList):
            return NotImplemented
        return self._species == other._species

    def __hash__(self):
        return hash(self._species)

    def __repr__(self):
        return "SpeciesList({})".format(list(self._species))

    @property
    def species(self) -> List[Hashable]:
        return list(self._species)

    def index(self, label) -> int:
        """Compact index of a species label."""
        try:
            return self._index[label]
        except (KeyError, TypeError):
            raise DomainError(
                "Unknown species `{}'; expected one of {}.".format(
                    label, list(self._species)))

    def label(self, i: int):
        return self._species[i]

    def indices(self, labels: Iterable) -> np.ndarray:
        """
        Convert a sequence of labels to an integer array of indices.

        Integer arrays that are already compact indices can be passed
        with ``SpeciesList.check_indices`` instead.
        """
        return np.array([self.index(s) for s in labels], dtype=int)

    def check_indices(self, iz) -> np.ndarray:
        iz = np.asarray(iz, dtype=int)
        if iz.size > 0 and (iz.min() < 0 or iz.max() >= len(self)):
            raise DomainError(
                "Species indices must be in [0, {}).".format(len(self)))
        return iz
