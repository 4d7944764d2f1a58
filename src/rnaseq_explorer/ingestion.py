"""Reading uploaded .csv/.txt tables into TabularDataset objects."""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.exceptions import (
    UnsupportedFormatError,
    UploadTooLargeError,
    ValidationError
)


logger = logging.getLogger(__name__)

DELIMITERS = {
    '.csv': ',',
    '.txt': '\t',
}


def delimiter_for(extension: str) -> str:
    """Return the column delimiter for a file extension."""
    ext = (extension or '').lower()
    if ext and not ext.startswith('.'):
        ext = f'.{ext}'
    try:
        return DELIMITERS[ext]
    except KeyError:
        raise UnsupportedFormatError(extension) from None


def read_table(
    source: Union[str, Path, io.StringIO],
    extension: Optional[str] = None,
    name: Optional[str] = None
) -> TabularDataset:
    """
    Parse a delimited text table.

    Args:
        source: Path to the file, or an open text buffer
        extension: Declared extension (taken from the path if None)
        name: Label for the dataset (defaults to the file name)

    Returns:
        TabularDataset keyed by the first column
    """
    if extension is None:
        if isinstance(source, (str, Path)):
            extension = Path(source).suffix
        else:
            extension = ''
    sep = delimiter_for(extension)

    if name is None:
        name = Path(source).name if isinstance(source, (str, Path)) else ''

    try:
        df = pd.read_csv(source, sep=sep, index_col=0)
    except pd.errors.EmptyDataError:
        raise ValidationError(f"File '{name}' is empty") from None
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValidationError(f"Could not parse '{name}': {e}") from e

    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)

    logger.info("Read %s: %d rows x %d columns", name or '<buffer>', df.shape[0], df.shape[1])
    return TabularDataset.from_frame(df, name=name)


def decode_upload(contents: str, max_bytes: Optional[int] = None) -> bytes:
    """Decode a browser upload of the form ``data:<mime>;base64,<payload>``."""
    try:
        content_type, content_string = contents.split(',', 1)
        decoded = base64.b64decode(content_string)
    except (ValueError, binascii.Error) as e:
        raise ValidationError(f"Malformed upload: {e}") from e

    if max_bytes is not None and len(decoded) > max_bytes:
        raise UploadTooLargeError(len(decoded), max_bytes)
    return decoded


def parse_upload(
    contents: str,
    filename: str,
    max_bytes: Optional[int] = None
) -> TabularDataset:
    """
    Parse an uploaded file into a TabularDataset.

    The extension is checked before anything is decoded so that an
    unsupported file fails fast regardless of its size.
    """
    extension = Path(filename or '').suffix
    delimiter_for(extension)

    decoded = decode_upload(contents, max_bytes=max_bytes)
    try:
        text = decoded.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise ValidationError(f"'{filename}' is not UTF-8 text") from e

    return read_table(io.StringIO(text), extension=extension, name=filename)


def write_table(data: Union[TabularDataset, pd.DataFrame], path: Union[str, Path]) -> Path:
    """Write a table in the format implied by the path's extension."""
    path = Path(path)
    sep = delimiter_for(path.suffix)
    frame = data.frame if isinstance(data, TabularDataset) else data
    frame.to_csv(path, sep=sep)
    return path
