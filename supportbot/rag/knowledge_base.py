"""
Knowledge base loader.

Reads the question/answer CSV once at startup. A missing or malformed file
is never fatal: the loader logs a warning and returns an empty collection,
and the bot runs without local knowledge for the rest of the process.
"""

import csv
import logging
from pathlib import Path
from typing import Tuple, Union

from ..errors import KnowledgeBaseUnavailable
from ..models.chat_models import KnowledgeRecord

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("question", "answer")


def _read_records(source: Path) -> Tuple[KnowledgeRecord, ...]:
    try:
        # utf-8-sig strips the BOM Excel puts in exported CSVs
        with open(source, newline="", encoding="utf-8-sig") as csvfile:
            reader = csv.DictReader(csvfile)
            columns = reader.fieldnames or []
            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise KnowledgeBaseUnavailable(str(source), f"missing columns: {', '.join(missing)}")

            records = []
            for row in reader:
                # DictReader files extra cells under None and fills missing ones with None
                if None in row or any(value is None for value in row.values()):
                    raise KnowledgeBaseUnavailable(str(source), f"row {reader.line_num}: wrong column count")
                records.append(KnowledgeRecord(question=row["question"], answer=row["answer"]))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise KnowledgeBaseUnavailable(str(source), str(e)) from e

    return tuple(records)


def load(source: Union[str, Path]) -> Tuple[KnowledgeRecord, ...]:
    """Load knowledge records from a CSV file with `question` and `answer` columns.

    Args:
        source: Path to the CSV file.

    Returns:
        Immutable, ordered tuple of records. Empty if the source is missing
        or cannot be parsed.
    """
    logger.info(f"[KB] Loading knowledge base from: {source}")
    try:
        records = _read_records(Path(source))
    except KnowledgeBaseUnavailable as e:
        logger.warning("[KB] Could not read knowledge base, continuing without local knowledge")
        logger.warning(f"[KB] Details: {e}")
        return ()

    logger.info(f"[KB] Loaded {len(records)} knowledge base rows")
    return records
