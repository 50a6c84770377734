"""
Configuration of rotation and permutation invariant bases.

`ACEBasisConfig` collects every parameter needed to construct an
`acebasis.rpibasis.RPIBasis` with `acebasis.rpibasis.rpi_basis`.  The
configuration can be converted to and from a plain dictionary, e.g., for
storing it as JSON next to computed features.
"""

from dataclasses import asdict, dataclass, field, fields
from numbers import Real
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError

__author__ = "The acebasis developers"
__date__ = "2026-09-14"

__all__ = ['ACEBasisConfig']


def _default_transform():
    return {"type": "poly", "p": 2}


@dataclass
class ACEBasisConfig:
    """
    Parameters of an ACE basis.

    Parameters
    ----------
    species : list
        Species labels (element symbols or atomic numbers)
    maxorder : int, optional
        Maximal correlation order. Default: 2
    maxdeg : float or dict, optional
        Maximal total degree, one value for all orders or
        ``{order: maxdeg}``. Default: 10
    wn : float or dict, optional
        Weight of the radial channel in the degree; a dictionary
        ``{species: weight}`` (with optional ``"default"`` entry) makes the
        weight species dependent. Default: 1.0
    wl : float or dict, optional
        Weight of the angular momentum in the degree. Default: 1.5
    maxn : int, optional
        Number of radial functions; by default the largest ``n`` allowed
        by ``maxdeg`` for order 1
    maxl : int, optional
        Additional bound on the angular momentum
    r0 : float, optional
        Reference distance of the distance transform. Default: 2.5
    rin : float, optional
        Inner cutoff. Default: 0.0
    rcut : float, optional
        Outer cutoff. Default: 5.0
    pcut : int, optional
        Order of the envelope at the outer cutoff. Default: 2
    pin : int, optional
        Order of the envelope at the inner cutoff. Default: 0
    transform : dict, optional
        Distance transform, e.g. ``{"type": "poly", "p": 2}``; ``r0`` is
        added for transforms that take a reference distance.
        Default: polynomial transform with p = 2
    constants : bool, optional
        Include the constant basis function. Default: False

    Raises
    ------
    ConfigurationError
        For invalid values.  Invalid degree bounds are detected when the
        basis is constructed.
    """

    species: List[Any]
    maxorder: int = 2
    maxdeg: Union[float, Dict[int, float]] = 10.0
    wn: Union[float, Dict[Any, float]] = 1.0
    wl: Union[float, Dict[Any, float]] = 1.5
    maxn: Optional[int] = None
    maxl: Optional[int] = None
    r0: float = 2.5
    rin: float = 0.0
    rcut: float = 5.0
    pcut: int = 2
    pin: int = 0
    transform: Dict[str, Any] = field(default_factory=_default_transform)
    constants: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if isinstance(self.species, (str, bytes)):
            self.species = [self.species]
        self.species = list(self.species)
        if len(self.species) == 0:
            raise ConfigurationError("species must not be empty")
        if len(set(self.species)) != len(self.species):
            raise ConfigurationError(
                f"species contains duplicates: {self.species}")

        if not isinstance(self.maxorder, int) or self.maxorder < 1:
            raise ConfigurationError(
                f"maxorder must be a positive integer, got {self.maxorder}")

        if isinstance(self.maxdeg, dict):
            self.maxdeg = {int(k): v for k, v in self.maxdeg.items()}

        for name in ('maxn', 'maxl'):
            val = getattr(self, name)
            if val is not None and (not isinstance(val, int) or val < 0):
                raise ConfigurationError(
                    f"{name} must be a non-negative integer, got {val}")
        if self.maxn == 0:
            raise ConfigurationError("maxn must be at least 1")

        if not 0 <= self.rin < self.rcut:
            raise ConfigurationError(
                f"cutoffs must satisfy 0 <= rin < rcut, got rin={self.rin}, "
                f"rcut={self.rcut}")

        for name in ('pcut', 'pin'):
            val = getattr(self, name)
            if not isinstance(val, int) or val < 0:
                raise ConfigurationError(
                    f"{name} must be a non-negative integer, got {val}")

        if not isinstance(self.r0, Real):
            raise ConfigurationError(f"r0 must be a number, got {self.r0}")

        if not isinstance(self.transform, dict) or \
                'type' not in self.transform:
            raise ConfigurationError(
                "transform must be a dictionary with a 'type' entry, "
                f"got {self.transform}")

    @property
    def species_dependent_degree(self) -> bool:
        return isinstance(self.wn, dict) or isinstance(self.wl, dict)

    def maxdeg_for(self, order: int) -> float:
        if isinstance(self.maxdeg, dict):
            try:
                return self.maxdeg[order]
            except KeyError:
                raise ConfigurationError(
                    f"maxdeg has no entry for order {order}")
        return self.maxdeg

    def transform_dict(self) -> Dict[str, Any]:
        """Transform specification with the reference distance filled in."""
        d = dict(self.transform)
        if d['type'] in ('poly', 'morse', 'agnesi') and 'r0' not in d:
            d['r0'] = self.r0
        return d

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary of plain Python types.

        Returns
        -------
        dict
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ACEBasisConfig':
        """
        Create a configuration from a dictionary, e.g., the output of
        `to_dict` or a parsed JSON file.

        Raises
        ------
        ConfigurationError
            For unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {sorted(unknown)}")
        if 'species' not in d:
            raise ConfigurationError("Configuration requires 'species'")
        return cls(**d)
