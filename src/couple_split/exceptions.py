"""Custom exceptions for CoupleSplit."""


class CoupleSplitError(Exception):
    """Base exception for all CoupleSplit errors."""

    pass


class ConfigurationError(CoupleSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class FileParseError(CoupleSplitError):
    """Raised when a statement file cannot be parsed."""

    pass


class MissingColumnsError(FileParseError):
    """Raised when the date, amount or description column cannot be located."""

    def __init__(self, headers: list[str], source: str = "file"):
        self.headers = headers
        super().__init__(
            f"Required columns not found. Found headers: {', '.join(headers)}. "
            f"Please ensure your {source} has Date, Amount, and Description columns."
        )


class UnsupportedFileError(FileParseError):
    """Raised for file extensions no parser handles."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Unsupported file format: {filename}. "
            "Please upload CSV, Excel or PDF files."
        )


class TransactionNotFoundError(CoupleSplitError):
    """Raised when a transaction ID is not in the store."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class APIError(CoupleSplitError):
    """Base class for API-related errors."""

    pass


class RowStoreAPIError(APIError):
    """Raised when a request to the hosted row store fails."""

    pass
