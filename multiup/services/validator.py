"""
File Validator - pre-transfer gate.

Only accepted files are handed to the orchestrator.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import EngineConfig, FileItem
from ..utils.naming import sanitize_file_name

logger = logging.getLogger(__name__)

DEFAULT_ACCEPTED_EXTENSIONS: Dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".zip": "application/zip",
}

# First four bytes, hex
MAGIC_NUMBERS: Dict[str, str] = {
    "89504e47": "image/png",
    "ffd8ffe0": "image/jpeg",
    "ffd8ffe1": "image/jpeg",
    "ffd8ffe2": "image/jpeg",
    "ffd8ffe8": "image/jpeg",
    "25504446": "application/pdf",
    "504b0304": "application/zip",
    "504b0506": "application/zip",
    "504b0708": "application/zip",
    "d0cf11e0": "application/msword",
}

REASON_NAME = "file name contains disallowed characters"
REASON_SIZE = "file exceeds size limit"
REASON_TYPE = "unsupported file type"
REASON_COUNT = "too many files"
REASON_CONTENT = "file content does not match its type"
REASON_UNREADABLE = "file could not be read"


@dataclass(frozen=True)
class ValidationResult:
    """Accept/reject decision for one file."""
    file: FileItem
    accepted: bool
    reasons: Tuple[str, ...] = ()


class FileValidator:
    """Checks name safety, size, type allow-list and magic numbers."""

    def __init__(
        self,
        max_file_size: int = 15 * 1024 * 1024,
        max_files: int = 10,
        accepted_extensions: Optional[Dict[str, str]] = None,
    ):
        self._max_file_size = max_file_size
        self._max_files = max_files
        self._accepted = accepted_extensions or DEFAULT_ACCEPTED_EXTENSIONS

    @classmethod
    def from_config(cls, config: EngineConfig) -> "FileValidator":
        return cls(max_file_size=config.max_file_size, max_files=config.max_files)

    def validate(self, file: FileItem) -> ValidationResult:
        reasons: List[str] = []

        if sanitize_file_name(file.name) != file.name or ".." in file.name or file.name.startswith("."):
            reasons.append(REASON_NAME)

        if file.size > self._max_file_size:
            reasons.append(REASON_SIZE)

        extension = "." + file.name.rsplit(".", 1)[-1].lower() if "." in file.name else ""
        if extension not in self._accepted:
            reasons.append(REASON_TYPE)

        if not reasons and self._needs_content_check(file.content_type):
            try:
                detected = self.sniff(file)
            except OSError as exc:
                logger.debug(f"Could not read {file.name}: {exc}")
                reasons.append(REASON_UNREADABLE)
            else:
                if not self._content_matches(file.content_type, detected):
                    reasons.append(REASON_CONTENT)

        return ValidationResult(file=file, accepted=not reasons, reasons=tuple(reasons))

    def validate_batch(self, files: Sequence[FileItem]) -> List[ValidationResult]:
        """Validate files in order; files beyond max_files are rejected."""
        results = []
        for index, file in enumerate(files):
            if index >= self._max_files:
                results.append(ValidationResult(file=file, accepted=False, reasons=(REASON_COUNT,)))
                continue
            results.append(self.validate(file))
        rejected = sum(1 for r in results if not r.accepted)
        if rejected:
            logger.info(f"Validator rejected {rejected}/{len(results)} file(s)")
        return results

    @staticmethod
    def accepted_files(results: Iterable[ValidationResult]) -> List[FileItem]:
        return [r.file for r in results if r.accepted]

    @staticmethod
    def sniff(file: FileItem) -> Optional[str]:
        """Detect type from the file's magic number, None if unknown."""
        with file.open() as f:
            header = f.read(8)
        return MAGIC_NUMBERS.get(header[:4].hex())

    @staticmethod
    def _needs_content_check(content_type: str) -> bool:
        return content_type.startswith("image/") or content_type == "application/pdf" or "zip" in content_type

    @staticmethod
    def _content_matches(declared: str, detected: Optional[str]) -> bool:
        if detected is None or detected == declared:
            return True
        return declared.startswith("image/") and detected.startswith("image/")
