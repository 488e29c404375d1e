"""
Pydantic Schemas - Template, Registry and Portfolio payloads

All API request and response schemas in one file for simplicity.
Field names are snake_case in Python and camelCase on the wire
(manifest.json, registry.json and the HTTP API all use camelCase).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any, Dict


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# TEMPLATE SCHEMAS
# ============================================================

REQUIRED_MANIFEST_FIELDS = ("id", "name", "version", "category", "entryFile")


class TemplateManifest(CamelModel):
    """Descriptor shipped as manifest.json inside every template archive."""
    id: str
    name: str
    version: str
    category: str
    entry_file: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    features: List[str] = []
    is_premium: bool = False


class TemplateRegistryEntry(CamelModel):
    id: str
    name: str
    version: str
    category: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    manifest_path: str
    entry_path: str
    features: List[str] = []
    is_premium: bool = False
    is_active: bool = True
    uploaded_at: str
    updated_at: str


class TemplateRegistry(CamelModel):
    version: str = "1.0.0"
    last_updated: str
    templates: List[TemplateRegistryEntry] = []


class TemplateSummary(BaseModel):
    id: str
    name: str
    version: str
    category: str


class TemplateUploadResponse(BaseModel):
    success: bool = True
    message: str
    template: TemplateSummary


class TemplateToggleResponse(BaseModel):
    success: bool = True
    template: TemplateRegistryEntry


class ActiveTemplatesResponse(BaseModel):
    templates: List[TemplateRegistryEntry]


class RegistryView(BaseModel):
    templates: List[TemplateRegistryEntry]


class AdminTemplatesResponse(BaseModel):
    database: List[Dict[str, Any]]
    registry: RegistryView


# ============================================================
# PORTFOLIO SCHEMAS
# ============================================================

class PersonalInfo(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str = Field(..., min_length=1)
    title: str = ""
    bio: Optional[str] = None
    email: str = ""
    phone: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    profile_image: Optional[str] = None


class PortfolioProject(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    title: str = ""
    description: str = ""
    technologies: List[str] = []
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    image_url: Optional[str] = None


class PortfolioExperience(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    title: str = ""
    company: str = ""
    duration: str = ""
    description: str = ""


class PortfolioEducation(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    degree: str = ""
    institution: str = ""
    year: str = ""


class SocialLinks(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    github: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None


class PortfolioTemplateData(CamelModel):
    """User data interpolated into a generated portfolio. Never persisted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    personal: PersonalInfo
    skills: List[str] = []
    projects: List[PortfolioProject] = []
    experience: List[PortfolioExperience] = []
    education: List[PortfolioEducation] = []
    social: Optional[SocialLinks] = None

    def to_serializable(self) -> dict:
        """Wire form of the data, as it is embedded in generated code."""
        return self.model_dump(by_alias=True)


class PortfolioGenerateRequest(CamelModel):
    portfolio_data: PortfolioTemplateData
    template_id: str = Field(..., min_length=1)


class GeneratedTemplateInfo(BaseModel):
    id: str
    name: str


class PortfolioGenerateResponse(CamelModel):
    success: bool = True
    download_url: str
    file_name: str
    template: GeneratedTemplateInfo


class CodeViewResponse(BaseModel):
    success: bool = True
    structure: Dict[str, str]
    folders: List[str]


class ParsedPortfolioResponse(BaseModel):
    success: bool = True
    data: PortfolioTemplateData


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None
