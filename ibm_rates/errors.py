class EmptyInputError(ValueError):
    """A group selects zero strata, or stratum vectors have length 0."""


class MismatchedLengthError(ValueError):
    """Stratum vectors that must line up have different lengths."""


class InvalidWeightError(ValueError):
    """Standard weights are non-finite, or cannot be normalized."""


class StandardWeightMismatchWarning(UserWarning):
    """The two groups carry different standard weights; group 1's are used for both."""
