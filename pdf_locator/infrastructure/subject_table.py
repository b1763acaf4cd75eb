# pdf_locator/infrastructure/subject_table.py

import json
import logging
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, ValidationError, field_validator

from pdf_locator.config import SUBJECT_TABLE_PATH
from pdf_locator.domain.errors import SubjectTableError
from pdf_locator.domain.subject_filter import SubjectFilter


logger = logging.getLogger(__name__)


class SubjectTable(BaseModel):
    """
    Versioned subject vocabulary: each key lists the subject's OWN tokens.
    Forbidden sets are derived from it by SubjectFilter.
    """
    version: int
    subjects: Dict[str, List[str]]

    @field_validator("subjects")
    @classmethod
    def _no_blank_keys(cls, subjects: Dict[str, List[str]]) -> Dict[str, List[str]]:
        blank = [key for key in subjects if not key.strip()]
        if blank:
            raise ValueError("subject keys must not be blank")
        return subjects


def load_subject_table(path: str = SUBJECT_TABLE_PATH) -> SubjectTable:
    table_path = Path(path)
    if not table_path.exists():
        raise SubjectTableError(f"Subject table not found: {path}")

    try:
        raw = json.loads(table_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise SubjectTableError(f"Subject table is not valid JSON: {error}") from error

    try:
        table = SubjectTable.model_validate(raw)
    except ValidationError as error:
        raise SubjectTableError(f"Subject table is malformed: {error}") from error

    logger.info(
        "Loaded subject table v%d (%d subjects) from %s",
        table.version, len(table.subjects), table_path.name,
    )
    return table


def build_subject_filter(path: str = SUBJECT_TABLE_PATH) -> SubjectFilter:
    return SubjectFilter(load_subject_table(path).subjects)
