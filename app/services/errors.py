"""
Template service errors.

Every failure of the template subsystem is a TemplateServiceError carrying
the HTTP status it maps to and a message that is safe to show to end users.
Route handlers turn these into {"message", "error"} JSON bodies.
"""

from typing import Iterable, Optional


class TemplateServiceError(Exception):
    status_code = 500
    public_message = "Template service error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail or self.public_message


# ============================================================
# MANIFEST
# ============================================================

class ManifestValidationError(TemplateServiceError):
    status_code = 400
    public_message = "Invalid template manifest"


class MalformedManifest(ManifestValidationError):
    pass


class IncompleteManifest(ManifestValidationError):
    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            "manifest.json is missing required field(s): " + ", ".join(self.missing_fields)
        )


# ============================================================
# INSTALL
# ============================================================

class TemplateInstallError(TemplateServiceError):
    status_code = 400
    public_message = "Invalid template structure"


class InvalidArchive(TemplateInstallError):
    pass


class ManifestNotFound(TemplateInstallError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or "manifest.json not found in template zip")


class EntryFileMissing(TemplateInstallError):
    def __init__(self, entry_file: str):
        self.entry_file = entry_file
        super().__init__(f"Entry file {entry_file} not found in template zip")


class UnsafeArchivePath(TemplateInstallError):
    def __init__(self, member: str):
        self.member = member
        super().__init__(f"Archive member escapes the template directory: {member}")


class PostExtractionValidationFailed(TemplateInstallError):
    pass


class EntryFileUnreachable(TemplateInstallError):
    def __init__(self, entry_file: str):
        self.entry_file = entry_file
        super().__init__(f"Entry file {entry_file} not accessible after extraction")


# ============================================================
# REGISTRY / GENERATION / DOWNLOAD
# ============================================================

class RegistryCorrupted(TemplateServiceError):
    public_message = "Template registry is unreadable"


class TemplateNotFound(TemplateServiceError):
    status_code = 404
    public_message = "Template not found"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")


class SynthesisError(TemplateServiceError):
    public_message = "Failed to generate portfolio code"


class ArchiveWriteError(TemplateServiceError):
    public_message = "Failed to generate portfolio code"


class DownloadFileNotFound(TemplateServiceError):
    status_code = 404
    public_message = "File not found"


class ResumeParsingError(TemplateServiceError):
    status_code = 502
    public_message = "Failed to parse resume"
