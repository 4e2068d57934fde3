"""Shared enums and types for beesync."""

from enum import StrEnum


class JobName(StrEnum):
    FOCUSMATE = "focusmate"
    FATEBOOK = "fatebook"
    CLEAN_TUBE = "clean_tube"
    CLEAN_VIEW = "clean_view"
    GITHUB = "github"
    CATEGORY = "category"


class DedupStrategy(StrEnum):
    IDENTIFIER = "identifier"
    TIMESTAMP = "timestamp"
    LABEL = "label"


class JobStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"
