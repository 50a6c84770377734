__author__ = "The acebasis developers"
__date__ = "2026-08-03"


class ACEBasisError(Exception):

    def __init__(self, msg):
        super().__init__(msg)
        self.msg = msg


class ConfigurationError(ACEBasisError):
    """Invalid basis parameters; raised while constructing a basis."""

    def __init__(self, msg="Invalid basis configuration."):
        super().__init__(msg)


class DomainError(ACEBasisError):
    """Degenerate geometry or argument outside a transform's domain."""

    def __init__(self, msg="Argument outside of the valid domain."):
        super().__init__(msg)


class InternalConsistencyError(ACEBasisError):

    def __init__(self, msg):
        super().__init__(msg)
