"""
Portfolio Parser - resume text -> PortfolioTemplateData.

The model's JSON is loosely shaped: keys vary between answers (name/title
for projects, position/title for jobs, school/institution...). Everything
is mapped onto the portfolio schema here, with placeholders for the fields
a generated site cannot do without.
"""

import json
import logging
from typing import Any, Dict, List

from openai import OpenAIError

from app.schemas.schemas import PortfolioTemplateData
from app.services.deepseek_client import DeepSeekClient
from app.services.errors import ResumeParsingError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Your Name"
DEFAULT_TITLE = "Professional"


# ============================================================
# JSON VALIDATION HELPERS
# ============================================================

def _text(*values: Any) -> str:
    """First non-empty value, as a stripped string."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, list):
            value = ". ".join(str(v).strip() for v in value if v)
        value = str(value).strip()
        if value:
            return value
    return ""


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item and str(item).strip()]


def _dicts(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def normalize_portfolio_data(data: dict) -> PortfolioTemplateData:
    """
    Validate and sanitize parsed resume data into the portfolio schema.
    Ensures all required fields exist with correct types.
    """
    if not isinstance(data, dict):
        data = {}

    personal = {
        "name": _text(data.get("name")) or DEFAULT_NAME,
        "title": _text(data.get("title")) or DEFAULT_TITLE,
        "bio": _text(data.get("summary"), data.get("bio")),
        "email": _text(data.get("email")),
        "phone": _text(data.get("phone")),
        "location": _text(data.get("location")),
        "website": _text(data.get("website")),
        "profileImage": "",
    }

    projects = [
        {
            "title": _text(p.get("title"), p.get("name")),
            "description": _text(p.get("description")),
            "technologies": _string_list(p.get("technologies") or p.get("tools")),
            "githubUrl": _text(p.get("githubUrl"), p.get("url")),
            "liveUrl": _text(p.get("liveUrl"), p.get("demoUrl"), p.get("demo")),
            "imageUrl": _text(p.get("imageUrl")),
        }
        for p in _dicts(data.get("projects"))
    ]

    experience = [
        {
            "title": _text(e.get("title"), e.get("position"), e.get("role")),
            "company": _text(e.get("company")),
            "duration": _text(e.get("duration"), e.get("period")),
            "description": _text(e.get("description"), e.get("responsibilities")),
        }
        for e in _dicts(data.get("experience"))
    ]

    education = [
        {
            "degree": _text(e.get("degree")),
            "institution": _text(e.get("institution"), e.get("school")),
            "year": _text(e.get("year"), e.get("period")),
        }
        for e in _dicts(data.get("education"))
    ]

    return PortfolioTemplateData.model_validate({
        "personal": personal,
        "skills": _string_list(data.get("skills")),
        "projects": projects,
        "experience": experience,
        "education": education,
        "social": {
            "github": _text(data.get("github")),
            "linkedin": _text(data.get("linkedin")),
            "twitter": _text(data.get("twitter")),
        },
    })


def parse_resume_for_portfolio(resume_text: str, client: DeepSeekClient) -> PortfolioTemplateData:
    """
    Ask the model for portfolio fields and normalise the answer.

    Raises:
        ResumeParsingError: the API call failed or the answer is not JSON
    """
    try:
        raw = client.parse_resume_for_portfolio(resume_text)
    except OpenAIError as e:
        raise ResumeParsingError(f"DeepSeek request failed: {e}") from e
    except json.JSONDecodeError as e:
        raise ResumeParsingError(f"DeepSeek returned invalid JSON: {e}") from e

    portfolio = normalize_portfolio_data(raw)
    logger.info(
        "Parsed resume into portfolio data: %d skills, %d projects, %d jobs",
        len(portfolio.skills), len(portfolio.projects), len(portfolio.experience)
    )
    return portfolio
