from dataclasses import dataclass

from gradeflow.core.config import COURSE_MATERIAL_MAX_FILE_BYTES, SUBMISSION_MAX_FILE_BYTES
from gradeflow.services.errors import ValidationError

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TXT = "text/plain"
PPT = "application/vnd.ms-powerpoint"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

SUBMISSION_CONTENT_TYPES = frozenset({PDF, DOC, DOCX, TXT})
MATERIAL_CONTENT_TYPES = frozenset({PDF, DOC, DOCX, TXT, PPT, PPTX})


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()


def read_upload(file, max_bytes: int) -> UploadedFile | None:
    """
    Turn a multipart upload into an ``UploadedFile``.

    Reads at most ``max_bytes + 1`` bytes, enough for the size check to
    reject an oversized file without buffering all of it.
    """
    if file is None or not file.filename:
        return None
    data = file.file.read(max_bytes + 1)
    return UploadedFile(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


def _format_size(num_bytes: int) -> str:
    return f"{num_bytes // (1024 * 1024)}MB"


def _validate_file(upload: UploadedFile, allowed: frozenset, max_bytes: int, allowed_label: str) -> None:
    # strip parameters such as "; charset=utf-8"
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in allowed:
        raise ValidationError(
            f"Invalid file type. Please upload {allowed_label} files.",
            field="file",
        )
    if upload.size > max_bytes:
        raise ValidationError(
            f"File too large. Maximum size is {_format_size(max_bytes)}.",
            field="file",
        )


def validate_submission(
    content_text: str | None,
    upload: UploadedFile | None,
    max_bytes: int = SUBMISSION_MAX_FILE_BYTES,
) -> None:
    """
    Check a submission before anything is stored.

    At least one of non-blank text or a file must be present; a file must be
    PDF, DOC, DOCX or plain text and within the submission size limit.
    """
    has_text = bool(content_text and content_text.strip())
    if not has_text and upload is None:
        raise ValidationError("Submission needs text content or a file", field="content_text")
    if upload is not None:
        _validate_file(upload, SUBMISSION_CONTENT_TYPES, max_bytes, "PDF, DOC, DOCX, or TXT")


def validate_material(upload: UploadedFile, max_bytes: int = COURSE_MATERIAL_MAX_FILE_BYTES) -> None:
    _validate_file(upload, MATERIAL_CONTENT_TYPES, max_bytes, "PDF, PPT, PPTX, DOC, DOCX, or TXT")


def answer_text_for_grading(content_text: str | None, upload: UploadedFile | None) -> str:
    """The text the grader sees for a submission."""
    if content_text and content_text.strip():
        return content_text
    if upload is None:
        return ""
    if upload.content_type.startswith(TXT):
        return upload.data.decode("utf-8", errors="replace")
    # no document text extraction here
    return f"[Content from {upload.filename} - {upload.size / 1024:.1f}KB]"
