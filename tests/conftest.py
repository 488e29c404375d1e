import io
import json
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.core.config import Settings, get_settings
from app.db.postgres import reset_engine
from app.services.template_installer import TemplateInstaller
from app.services.template_registry import TemplateRegistryStore

MODERN_MINIMAL = {
    "id": "modern-minimal",
    "name": "Modern Minimal",
    "version": "1.0.0",
    "category": "professional",
    "entryFile": "index.tsx",
}


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("TEMPLATES_DIR", str(tmp_path / "public" / "templates"))
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'templates.db'}")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret")
    monkeypatch.setenv("CLEANUP_ENABLED", "false")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "test-key")
    get_settings.cache_clear()
    reset_engine()
    yield get_settings()
    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def registry(settings: Settings) -> TemplateRegistryStore:
    return TemplateRegistryStore(settings.registry_path, settings.templates_dir)


@pytest.fixture
def installer(settings: Settings, registry: TemplateRegistryStore) -> TemplateInstaller:
    return TemplateInstaller(registry, settings.templates_dir, settings.staging_dir)


@pytest.fixture
def make_template_zip() -> Callable[..., bytes]:
    """Build a template archive in memory."""

    def _make(
        manifest: Optional[object] = None,
        files: Optional[Dict[str, str]] = None,
        folder: Optional[str] = None,
        include_manifest: bool = True,
    ) -> bytes:
        manifest = MODERN_MINIMAL if manifest is None else manifest
        files = {"index.tsx": "export default function Template() { return null; }\n"} if files is None else files
        prefix = f"{folder}/" if folder else ""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            if folder:
                archive.writestr(prefix, "")
            if include_manifest:
                payload = manifest if isinstance(manifest, str) else json.dumps(manifest)
                archive.writestr(f"{prefix}manifest.json", payload)
            for name, content in files.items():
                archive.writestr(f"{prefix}{name}", content)
        return buffer.getvalue()

    return _make


@pytest.fixture
def portfolio_data() -> dict:
    return {
        "personal": {
            "name": "Jane Doe",
            "title": "Full Stack Developer",
            "bio": "Builds <fast> & friendly web apps",
            "email": "jane@example.com",
            "location": "Berlin",
        },
        "skills": ["TypeScript", "React", "Python"],
        "projects": [
            {
                "title": "Task Board",
                "description": "Kanban board with \"drag & drop\"",
                "technologies": ["React", "FastAPI"],
                "githubUrl": "https://github.com/jane/task-board",
            }
        ],
        "experience": [
            {
                "title": "Engineer",
                "company": "Acme",
                "duration": "2021 - 2024",
                "description": "Shipped the billing platform",
            }
        ],
        "education": [
            {"degree": "BSc Computer Science", "institution": "TU Berlin", "year": "2020"}
        ],
        "social": {"github": "https://github.com/jane", "linkedin": None, "twitter": None},
    }


@pytest.fixture
def client(settings: Settings):
    from app.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(settings: Settings) -> Dict[str, str]:
    token = create_access_token({"sub": "1", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(settings: Settings) -> Dict[str, str]:
    token = create_access_token({"sub": "42", "role": "user"})
    return {"Authorization": f"Bearer {token}"}
