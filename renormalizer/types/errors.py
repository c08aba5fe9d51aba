# renormalizer/types/errors.py

class RenormalizerError(Exception):
    """Base class for every condition that aborts a repair run"""


class ConfigurationError(RenormalizerError):
    """Bad arguments, settings or file paths, detected before any database is opened"""


class UnwrapError(RenormalizerError):
    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


class UnsupportedValueError(UnwrapError):
    pass


class NumberTooBigError(UnwrapError):
    pass


class StorageError(RenormalizerError):
    def __init__(self, message: str, table: str = None):
        super().__init__(message)
        self.table = table


class SchemaError(StorageError):
    pass


class IntegrityMismatchError(RenormalizerError):
    def __init__(self, message: str, table: str, row_key):
        super().__init__(message)
        self.table = table
        self.row_key = row_key
