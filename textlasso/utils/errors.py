# textlasso/utils/errors.py


class TextLassoError(RuntimeError):
    """Base class for errors raised by the tuning engine."""


class UserInputError(TextLassoError):
    """
    Raised for invalid user-provided config (paths, grid ranges, etc).
    Should NOT print traceback.
    """


class SchemaError(TextLassoError):
    """Input rows do not conform to the LabeledRecord shape."""


class InsufficientDataError(TextLassoError):
    """
    A stratum is too small to split.

    Structural: raised before any fitting begins and aborts the run.
    """


class DegenerateFoldError(TextLassoError):
    """
    A fold holds a single class, so the fit or AUC is undefined.

    Per-unit: the unit is excluded from aggregation, the run continues.
    """


class SearchFailedError(TextLassoError):
    """Every dispatched unit failed; there is nothing to aggregate."""


class HoldoutReuseError(TextLassoError):
    """The held-out test set was asked for a second evaluation."""


class ConvergenceWarning(UserWarning):
    """Coordinate descent hit its iteration cap before reaching tolerance."""
