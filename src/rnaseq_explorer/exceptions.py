"""Exceptions raised by the RNA-Seq explorer."""


class DashboardError(Exception):
    """Base class for errors surfaced to the user in a single view."""
    pass


class UnsupportedFormatError(DashboardError):
    """Uploaded file has an extension other than .csv or .txt."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(
            f"Unsupported file format '{extension or '(none)'}'. "
            "Please upload a .csv (comma-delimited) or .txt (tab-delimited) file."
        )


class UploadTooLargeError(DashboardError):
    """Uploaded file exceeds the configured upload ceiling."""

    def __init__(self, size_bytes: int, limit_bytes: int):
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"File is {size_bytes / 1024 ** 2:.1f} MB, "
            f"the upload limit is {limit_bytes / 1024 ** 2:.0f} MB"
        )


class MissingRequiredInputError(DashboardError):
    """An action was triggered before the upload it depends on exists."""
    pass


class IdentifierNotFoundError(DashboardError):
    """An identifier is absent from the dataset it was looked up in."""
    pass


class GeneNotFoundError(IdentifierNotFoundError):
    """Selected gene is absent from the counts matrix."""

    def __init__(self, gene: str):
        self.gene = gene
        super().__init__(f"Gene '{gene}' not found in counts matrix")


class InsufficientDataError(DashboardError):
    """Input is too small for the requested statistic (e.g. PCA on 1 sample)."""
    pass


class ValidationError(DashboardError):
    """Uploaded table does not have the structure a view requires."""
    pass
