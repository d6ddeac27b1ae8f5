import logging


# Library logger - no configuration, user controls output
logger = logging.getLogger(__name__)


class CollocIntBaseError(Exception):
    """
    Base class for all collocint-specific errors.

    All collocint exceptions inherit from this class, allowing users to catch
    any collocint-specific error with a single except clause.

    Args:
        message: The error message describing what went wrong
        context: Optional additional context about where the error occurred
    """

    def __init__(self, message: str, context: str | None = None) -> None:
        self.message = message
        self.context = context

        # Library logs at DEBUG level - user can promote if needed
        logger.debug("collocint exception: %s", self._format_message())
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with optional context."""
        if self.context:
            return f"{self.message} (Context: {self.context})"
        return self.message


class ConfigurationError(CollocIntBaseError):
    """
    Raised when a collocation configuration is invalid or incomplete.

    Examples:
        - Unrecognized option keys
        - Options of the wrong type
        - Unknown input names passed to a step relation
    """

    pass


class InvalidDegreeError(ConfigurationError):
    """
    Raised when the interpolation order is not an integer >= 1.

    Detected before any coefficient derivation takes place.
    """

    pass


class InvalidSchemeError(ConfigurationError):
    """
    Raised when the collocation scheme is not one of the supported names.
    """

    pass


class DimensionMismatchError(CollocIntBaseError):
    """
    Raised when a DAE or backward DAE signature disagrees with the expected sizes.

    Examples:
        - ``ode`` output size differs from the size of ``x``
        - backward DAE ``x`` size differs from the forward DAE ``x`` size
        - configured dimensions differ from the function's declared inputs
        - a step relation input has the wrong number of entries
    """

    pass


class MissingBackwardModelError(CollocIntBaseError):
    """
    Raised when adjoint functionality is used without a backward DAE.

    Building a discretization without a backward DAE is valid; only accessing
    the backward relation or its state buffer raises this error.
    """

    pass


class SerializationVersionMismatchError(CollocIntBaseError):
    """
    Raised when a persisted record carries an unsupported format or version tag.
    """

    pass


class DataIntegrityError(CollocIntBaseError):
    """
    Raised when data corruption or inconsistency is detected.

    Examples:
        - NaN or infinite values passed as numerical inputs
        - Malformed persisted records
        - Restored relations whose signatures do not match the record
    """

    pass
