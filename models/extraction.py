"""
Transient data structures of the large-PDF extraction pipeline
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from models.question import Question


class UploadStatus(str, Enum):
    """Status carried by progress events"""
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class PageRange:
    """1-indexed inclusive page bounds of a chunk within its source file"""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid page range {self.start}-{self.end}")

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}"

    def to_dict(self) -> Dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass
class SourceFile:
    """An uploaded PDF held in memory"""
    name: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path) -> "SourceFile":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())


@dataclass
class ChunkJob:
    """One extraction request: a page-range slice of a file, or a whole file"""
    source_file_name: str
    chunk_index: int
    total_chunks: int
    payload: bytes
    page_range: Optional[PageRange] = None
    current_file: int = 1
    total_files: int = 1

    @property
    def is_whole_file(self) -> bool:
        return self.page_range is None

    @property
    def upload_name(self) -> str:
        """File name used for the multipart part"""
        if self.page_range is None:
            return self.source_file_name
        return (
            f"{self.source_file_name}_chunk_{self.chunk_index + 1}"
            f"_pages_{self.page_range.label}.pdf"
        )

    def describe(self) -> str:
        """Human readable label used in progress messages"""
        if self.page_range is None:
            return self.source_file_name
        return f"chunk {self.chunk_index + 1} (pages {self.page_range.label})"


@dataclass
class ChunkResult:
    """Outcome of uploading a single ChunkJob"""
    chunk_index: int
    source_file_name: str
    success: bool
    questions: List[Question] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ProgressEvent:
    """Progress notification delivered to the caller's callback"""
    current_chunk: int
    total_chunks: int
    current_file: int
    total_files: int
    file_name: str
    status: UploadStatus
    message: str


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class ExtractionResult:
    """Aggregated questions of an extraction request"""
    title: str
    description: str
    questions: List[Question] = field(default_factory=list)
    file_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "questions": [question.to_payload() for question in self.questions],
            "fileNames": list(self.file_names),
        }
