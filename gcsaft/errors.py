"""
Exceptions raised by gcsaft. Each error keeps its formatted text in `self.message`.
"""


class GcSaftError(Exception):
    """Base class for all gcsaft errors"""
    def __init__(self, message):
        self.message = message
        super().__init__(self.message)


class InvalidGraph(GcSaftError):
    """Raised when a molecule graph is disconnected, has duplicate identifiers or a dangling bond endpoint."""
    def __init__(self, molecule, reason):
        self.molecule = molecule
        self.reason = reason
        super().__init__(f"Invalid molecule graph '{molecule}': {reason}")


class MissingParameter(GcSaftError):
    """Raised when a segment (group) type, or a parameter it needs, is not registered."""
    def __init__(self, identifier, detail=None):
        self.identifier = identifier
        message = f"No parameters registered for segment '{identifier}'"
        if detail is not None:
            message += f" ({detail})"
        super().__init__(message)


class AssociationNotConverged(GcSaftError):
    """Raised when the site fraction fixed point does not converge within the iteration budget."""
    def __init__(self, iterations, change):
        self.iterations = iterations
        self.change = change
        super().__init__(f"Association site fractions did not converge in {iterations} iterations "
                         f"(last relative change {change:.3e})")


class DimensionMismatch(GcSaftError):
    """Raised when a density vector does not match the number of entries implied by the parameters."""
    def __init__(self, expected, got, what='segment densities'):
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected} {what}, got {got}")
