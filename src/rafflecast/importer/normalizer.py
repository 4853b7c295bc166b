"""
Participant Export Normalizer

Turns arbitrary tabular exports (form exports, spreadsheets saved as CSV,
or a ZIP archive holding one) into a deduplicated participant roster.

Input Overview:
- Plain delimited text (.csv / .txt); the delimiter is sniffed from
  comma, semicolon, tab and pipe
- ZIP archives: the first .csv or .txt entry is used
- Headers are matched to participant fields by accent- and
  case-insensitive substring tokens; unmatched columns are kept verbatim
  in the record details
"""

import csv
import io
import logging
import re
import unicodedata
import zipfile
from typing import Optional, List, Dict, Tuple, Iterable, Mapping, Union

from ..core.errors import (
    ArchiveReadError,
    EmptyInputError,
    NoTabularContentFound,
    ParseError,
)
from ..core.models import DuplicateEntry, ImportStats, ParticipantRecord, Roster, dedup_key

logger = logging.getLogger(__name__)

# Entries considered tabular text inside an archive
TEXT_EXTENSIONS = (".csv", ".txt")

# ZIP local file header signature
ZIP_MAGIC = b"PK\x03\x04"

SNIFF_DELIMITERS = ",;\t|"
SNIFF_SAMPLE_SIZE = 4096

# Header tokens per field, matched against the normalized header text.
# Order matters only within the headers, never across fields.
FIELD_TOKENS: Dict[str, Tuple[str, ...]] = {
    "name": ("nome", "name"),
    "phone": ("tel", "cel", "whats", "fone", "phone", "mobile"),
    "document_id": ("cpf", "documento", "document", "rg"),
    "city": ("cidade", "municipio", "localidade", "city", "town"),
    "address": ("endereco", "rua", "logradouro", "av", "address", "street"),
    "email": ("email", "e-mail", "correio"),
}

# Digit-count window for a value to be taken as a phone by the fallback
PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 14

Payload = Union[bytes, str]

_NON_DIGITS = re.compile(r"\D")


def normalize_header(header: str) -> str:
    """Lowercase, strip accents and surrounding whitespace."""
    decomposed = unicodedata.normalize("NFD", str(header).lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.strip()


def digits_only(value) -> str:
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def map_headers(headers: Iterable[str]) -> Dict[str, str]:
    """
    Assign headers to participant fields.

    A header is assigned to a field when its normalized form contains any
    of the field's tokens. The first matching header wins per field; one
    header may serve several fields.
    """
    header_map: Dict[str, str] = {}
    for header in headers:
        normalized = normalize_header(header)
        for field_name, tokens in FIELD_TOKENS.items():
            if field_name in header_map:
                continue
            if any(token in normalized for token in tokens):
                header_map[field_name] = header
    return header_map


def is_archive(payload: bytes, filename: Optional[str] = None) -> bool:
    if filename and filename.lower().endswith(".zip"):
        return True
    return isinstance(payload, bytes) and payload.startswith(ZIP_MAGIC)


def extract_from_archive(payload: bytes) -> Tuple[str, bytes]:
    """
    Pull the first delimited-text entry out of a ZIP archive.

    Returns:
        Tuple of (entry name, entry bytes)
    """
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if info.filename.lower().endswith(TEXT_EXTENSIONS):
                    logger.debug(f"Using archive entry {info.filename}")
                    return info.filename, archive.read(info)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, RuntimeError, EOFError) as e:
        raise ArchiveReadError(f"Could not read archive: {e}") from e

    raise NoTabularContentFound("No .csv or .txt file found inside the archive")


def decode_text(raw: bytes) -> str:
    """Decode exported bytes, tolerating a BOM and Latin-1 spreadsheets."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("Input is not UTF-8, decoding as Latin-1")
        return raw.decode("latin-1")


def _sniff_dialect(text: str):
    try:
        return csv.Sniffer().sniff(text[:SNIFF_SAMPLE_SIZE], delimiters=SNIFF_DELIMITERS)
    except csv.Error:
        return csv.excel


def parse_rows(text: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse delimited text into header-keyed rows.

    Blank lines are skipped. Duplicate headers get a numeric suffix and
    surplus cells beyond the header are dropped.

    Returns:
        Tuple of (headers, rows)
    """
    if not text or not text.strip():
        raise EmptyInputError("The file is empty or invalid")

    dialect = _sniff_dialect(text)
    try:
        reader = csv.reader(io.StringIO(text), dialect, strict=True)
        lines = [line for line in reader if any(cell.strip() for cell in line)]
    except csv.Error as e:
        raise ParseError(f"Could not parse file: {e}") from e

    if not lines:
        raise EmptyInputError("The file is empty or invalid")

    headers: List[str] = []
    seen: Dict[str, int] = {}
    for raw_header in lines[0]:
        header = raw_header.strip()
        if header in seen:
            seen[header] += 1
            header = f"{header}_{seen[header]}"
        else:
            seen[header] = 0
        headers.append(header)

    rows = []
    for line in lines[1:]:
        cells = list(line) + [""] * (len(headers) - len(line))
        rows.append(dict(zip(headers, cells)))

    if not rows:
        raise EmptyInputError("The file has a header but no participants")

    return headers, rows


class RosterNormalizer:
    """
    Builds a deduplicated roster from raw tabular rows.

    Stateless apart from configuration; one instance may be shared.
    """

    def normalize(self, payload: Payload, filename: Optional[str] = None) -> Tuple[Roster, ImportStats]:
        """
        Normalize a raw export (text or ZIP bytes) into a roster.

        Args:
            payload: File contents as bytes or already-decoded text
            filename: Original file name, used to recognize archives

        Returns:
            Tuple of (Roster, ImportStats)

        Raises:
            ArchiveReadError, NoTabularContentFound, EmptyInputError, ParseError
        """
        if isinstance(payload, bytes):
            if is_archive(payload, filename):
                entry_name, payload = extract_from_archive(payload)
                logger.info(f"Reading {entry_name} from archive {filename or ''}".rstrip())
            text = decode_text(payload)
        else:
            text = payload

        headers, rows = parse_rows(text)
        return self.normalize_rows(rows, headers)

    def normalize_rows(self, rows: List[Mapping[str, str]],
                       headers: Optional[List[str]] = None) -> Tuple[Roster, ImportStats]:
        """
        Normalize already-parsed rows.

        When headers are not given they are the union of the row keys in
        first-seen order.
        """
        if not rows:
            raise EmptyInputError("The file is empty or invalid")

        if headers is None:
            headers = []
            for row in rows:
                for key in row.keys():
                    if key not in headers:
                        headers.append(key)

        header_map = map_headers(headers)
        logger.debug(f"Header map: {header_map}")

        stats = ImportStats(total_read=len(rows))
        records = []
        for row in rows:
            record = self.build_record(row, header_map)
            if len(record.name) > 1:
                records.append(record)
        stats.no_name = len(rows) - len(records)

        roster = Roster()
        for record in records:
            if not roster.add(record):
                stats.duplicates += 1
                stats.details.append(
                    DuplicateEntry(name=record.name, reason="duplicate", key=dedup_key(record))
                )
        stats.total_valid = len(roster)

        logger.info(
            f"Normalized {stats.total_read} rows: {stats.total_valid} participants, "
            f"{stats.duplicates} duplicates, {stats.no_name} without name"
        )
        return roster, stats

    def build_record(self, row: Mapping[str, str], header_map: Dict[str, str]) -> ParticipantRecord:
        """Build one participant from one row, applying the name/phone fallbacks."""
        def mapped(field_name: str) -> str:
            header = header_map.get(field_name)
            if header is None:
                return ""
            return _text(row.get(header))

        values = [_text(v) for v in row.values()]

        name = mapped("name")
        if not name:
            name = next((v for v in values if len(v) > 2), "")

        raw_phone = mapped("phone")
        phone = digits_only(raw_phone)
        if not raw_phone:
            phone = next(
                (d for d in (digits_only(v) for v in values)
                 if PHONE_MIN_DIGITS <= len(d) <= PHONE_MAX_DIGITS),
                ""
            )

        return ParticipantRecord(
            name=name,
            phone=phone,
            document_id=digits_only(mapped("document_id")),
            city=mapped("city"),
            address=mapped("address"),
            email=mapped("email"),
            details=dict(row),
        )


_default_normalizer = RosterNormalizer()


def normalize(payload: Payload, filename: Optional[str] = None) -> Tuple[Roster, ImportStats]:
    """Normalize a raw export with the shared normalizer."""
    return _default_normalizer.normalize(payload, filename)
