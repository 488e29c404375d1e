"""
DeepSeek API Client

DeepSeek uses OpenAI-compatible API, so we use the openai library.

AI is used ONLY to turn resume text into portfolio data. The output is
normalised by portfolio_parser before anything else sees it, and is never
stored.

COST OPTIMIZATION:
- Use deepseek-chat model (cheapest)
- Keep prompts short and structured
- Low temperature for consistent JSON
"""
import json
import logging
from typing import Optional

from openai import OpenAI

from app.core.config import get_settings

logger = logging.getLogger(__name__)

PORTFOLIO_SYSTEM_PROMPT = """You are a resume parser that extracts data for a personal portfolio website. Return ONLY valid JSON.
Output format:
{
  "name": "string",
  "title": "string (professional title/role)",
  "summary": "string (professional summary/bio)",
  "email": "string",
  "phone": "string",
  "location": "string",
  "website": "string",
  "linkedin": "string",
  "github": "string",
  "skills": ["skill1", "skill2"],
  "projects": [{"title": "string", "description": "string", "technologies": ["string"], "githubUrl": "string", "liveUrl": "string"}],
  "experience": [{"title": "string", "company": "string", "duration": "string", "description": "string"}],
  "education": [{"degree": "string", "institution": "string", "year": "string"}]
}
Return ONLY the JSON, no explanation."""


class DeepSeekClient:
    """
    Wrapper for DeepSeek API with cost-optimized methods.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        self.client = OpenAI(
            api_key=api_key or settings.deepseek_api_key or "not-configured",
            base_url=base_url or settings.deepseek_base_url
        )
        self.model = model or settings.deepseek_model

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000) -> str:
        """
        Internal method to call DeepSeek API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=0.1  # Low temp for consistent structured output
        )
        return response.choices[0].message.content or ""

    def _extract_json(self, text: str) -> dict:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        return json.loads(text.strip())

    def parse_resume_for_portfolio(self, resume_text: str) -> dict:
        """
        Parse resume text into raw portfolio fields (see PORTFOLIO_SYSTEM_PROMPT).
        """
        response = self._call_api(PORTFOLIO_SYSTEM_PROMPT, resume_text, max_tokens=2000)
        return self._extract_json(response)

    def test_connection(self) -> bool:
        """Test if DeepSeek API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except Exception as e:
            logger.warning("DeepSeek connection failed: %s", e)
            return False


# Singleton instance
_deepseek_client: Optional[DeepSeekClient] = None


def get_deepseek_client() -> DeepSeekClient:
    """Get or create DeepSeek client (singleton pattern)"""
    global _deepseek_client
    if _deepseek_client is None:
        _deepseek_client = DeepSeekClient()
    return _deepseek_client
