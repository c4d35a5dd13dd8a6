"""Exceptions raised by metadata readers and result sets."""


class MetadataError(Exception):
    """Base class for all metadata errors."""


class NotSupportedError(MetadataError):
    """The reader cannot provide the requested kind of metadata."""

    def __init__(self, message: str = "not supported") -> None:
        super().__init__(message)


class WrongNumberOfArgumentsError(MetadataError):
    """A scan asked for a different number of values than a row holds."""

    def __init__(self, message: str = "wrong number of arguments") -> None:
        super().__init__(message)


class NoRowsError(MetadataError):
    """A query produced no rows, for example because it was not run at all."""

    def __init__(self, message: str = "no rows in result set") -> None:
        super().__init__(message)