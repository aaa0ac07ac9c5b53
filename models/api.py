"""
API request and response models for the Quiz PDF Extractor
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class PreviewData(BaseModel):
    """Questions extracted from the uploaded PDFs, ready for review"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Astronomy basics",
                "description": "Chapter 1 review",
                "questions": [
                    {
                        "question": "Which planet is known as the red planet?",
                        "options": ["Venus", "Mars", "Jupiter", "Saturn"],
                        "type": "single",
                        "correctAnswer": 1,
                        "correctIndex": 1,
                        "originalCorrectIndex": 1
                    }
                ],
                "originalFileName": "astronomy.pdf",
                "fileSize": 1048576,
                "fileCount": 1,
                "fileNames": ["astronomy.pdf"]
            }
        }
    )

    title: str = Field(..., min_length=1, description="Quiz title")
    description: str = Field("", description="Quiz description")
    questions: list[dict] = Field(default_factory=list, description="Extracted questions in preview form")
    original_file_name: str = Field(..., alias="originalFileName", description="Uploaded file names joined by ', '")
    file_size: int = Field(..., alias="fileSize", ge=0, description="Total size of the uploaded files in bytes")
    file_count: int = Field(..., alias="fileCount", ge=1, description="Number of uploaded files")
    file_names: list[str] = Field(default_factory=list, alias="fileNames", description="Uploaded file names")
    chunk_index: Optional[int] = Field(None, alias="chunkIndex", ge=0, description="Chunk index echoed from the request")
    total_chunks: Optional[int] = Field(None, alias="totalChunks", ge=1, description="Chunk count echoed from the request")
    page_range: Optional[dict] = Field(None, alias="pageRange", description="Page range echoed from the request")


class PreviewResponse(BaseModel):
    """Successful response of the preview endpoint"""
    success: bool = Field(True, description="Always true for successful extractions")
    data: PreviewData = Field(..., description="Extraction result")


class PreviewErrorResponse(BaseModel):
    """Failed response of the preview endpoint"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": "File 'notes.docx' is not a PDF file",
                "code": "INVALID_FILE_TYPE"
            }
        }
    )

    success: bool = Field(False, description="Always false for failures")
    error: str = Field(..., description="Human readable error message")
    code: Optional[str] = Field(None, description="Structured error code")
