"""Upload validation helpers for results spreadsheets."""
from __future__ import annotations

from dataclasses import dataclass
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename


_XLSX_MAGIC = b'PK\x03\x04'
_XLS_MAGIC = b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1'
_TEXT_SNIFF_BYTES = 4096


@dataclass
class UploadValidationResult:
    ok: bool
    error: str = ''
    extension: str = ''
    safe_name: str = ''


def validate_results_upload(file: FileStorage, allowed_extensions: set[str]) -> UploadValidationResult:
    """Check extension and leading bytes before any parsing is attempted."""
    filename = secure_filename(file.filename or '')
    if not filename or '.' not in filename:
        return UploadValidationResult(ok=False, error='Missing filename.')

    extension = filename.rsplit('.', 1)[1].lower()
    if extension not in allowed_extensions:
        return UploadValidationResult(ok=False, error='Invalid file extension.')

    sniff = file.stream.read(_TEXT_SNIFF_BYTES)
    file.stream.seek(0)
    if extension == 'xlsx' and not sniff.startswith(_XLSX_MAGIC):
        return UploadValidationResult(ok=False, error='File content is not a valid .xlsx container.')
    if extension == 'xls' and not sniff.startswith(_XLS_MAGIC):
        return UploadValidationResult(ok=False, error='File content is not a valid .xls workbook.')
    if extension == 'csv':
        if b'\x00' in sniff:
            return UploadValidationResult(ok=False, error='File content is not plain text.')
        try:
            # A multi-byte character may straddle the sniff boundary
            sniff.decode('utf-8-sig')
        except UnicodeDecodeError as exc:
            if exc.start < len(sniff) - 3:
                return UploadValidationResult(ok=False, error='CSV files must be UTF-8 encoded.')

    return UploadValidationResult(ok=True, extension=extension, safe_name=filename)


def read_upload_text(file: FileStorage) -> str:
    """Decode an uploaded CSV, dropping a leading byte-order mark."""
    return file.stream.read().decode('utf-8-sig')
