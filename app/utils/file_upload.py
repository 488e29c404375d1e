"""
File Upload Utility - template archives and resume files.

Template archives (.zip):
- MIME application/zip or application/x-zip-compressed
- Streamed to uploads/templates/template-<ms>-<rand>.zip
- Max size: MAX_TEMPLATE_UPLOAD_MB (50MB)

Resumes, text extracted for portfolio parsing:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)
- Max size: MAX_RESUME_UPLOAD_MB (5MB)
"""

import io
import logging
import secrets
import time
import zipfile
from pathlib import Path
from typing import Tuple

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

logger = logging.getLogger(__name__)

ZIP_MIME_TYPES = {"application/zip", "application/x-zip-compressed"}
ALLOWED_EXTENSIONS = {'.pdf', '.docx', '.txt'}
CHUNK_SIZE = 1024 * 1024


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


# ============================================================
# TEMPLATE ARCHIVES
# ============================================================

def validate_template_upload(file: UploadFile) -> None:
    """Reject anything that is not declared as a zip archive."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No template file uploaded")

    if file.content_type not in ZIP_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Only ZIP files are allowed")

    if get_file_extension(file.filename) != '.zip':
        raise HTTPException(status_code=400, detail="Only ZIP files are allowed")


async def save_template_upload(file: UploadFile, upload_dir: Path, max_size_mb: int) -> Path:
    """
    Stream an uploaded archive to disk under a unique name.

    Raises:
        HTTPException 413 if the archive exceeds max_size_mb (partial file removed)
    """
    max_bytes = max_size_mb * 1024 * 1024
    upload_dir.mkdir(parents=True, exist_ok=True)
    destination = upload_dir / f"template-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.zip"

    written = 0
    try:
        with open(destination, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large. Maximum size: {max_size_mb}MB"
                    )
                out.write(chunk)
    except BaseException:
        discard_upload(destination)
        raise

    logger.info("Saved template upload %s (%d bytes)", destination.name, written)
    return destination


def discard_upload(path: Path) -> None:
    """Best-effort removal of an uploaded file; failures are only logged."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to clean up upload %s: %s", path, e)


# ============================================================
# RESUMES
# ============================================================

async def extract_text_from_file(file: UploadFile, max_size_mb: int = 5) -> Tuple[str, str]:
    """
    Extract text from uploaded file.

    Args:
        file: FastAPI UploadFile
        max_size_mb: size limit for the upload

    Returns:
        Tuple of (extracted_text, filename)

    Raises:
        HTTPException on validation/extraction errors
    """
    # Validate filename
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: PDF, DOCX, TXT"
        )

    # Read content
    content = await file.read()

    # Check size
    if len(content) > max_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {max_size_mb}MB"
        )

    # Extract based on type
    if ext == '.pdf':
        text = extract_from_pdf(content)
    elif ext == '.docx':
        text = extract_from_docx(content)
    else:  # .txt
        text = extract_from_txt(content)

    if not text.strip():
        raise HTTPException(
            status_code=400,
            detail="Could not extract text from file. File may be empty or corrupted."
        )

    return text, file.filename


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except (PdfReadError, ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
    except (PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError) as e:
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")

    text_parts = []

    # Extract paragraphs
    for para in doc.paragraphs:
        if para.text.strip():
            text_parts.append(para.text)

    # Extract tables
    for table in doc.tables:
        for row in table.rows:
            row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if row_text:
                text_parts.append(' | '.join(row_text))

    return '\n'.join(text_parts)


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'cp1252']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode('latin-1')
