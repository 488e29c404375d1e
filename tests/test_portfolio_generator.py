import json

import pytest

from app.schemas.schemas import PortfolioTemplateData
from app.services.errors import SynthesisError, TemplateNotFound
from app.services.portfolio_generator import (
    CODE_VIEW_FOLDERS, REQUIRED_FILES, GeneratedFile, code_view, extract_embedded_data,
    package_slug, synthesize, validate_file_tree,
)


@pytest.fixture
def installed(installer, make_template_zip):
    return installer.install_bytes(make_template_zip())


@pytest.fixture
def data(portfolio_data) -> PortfolioTemplateData:
    return PortfolioTemplateData.model_validate(portfolio_data)


def test_tree_contains_the_full_project(installed, registry, data) -> None:
    tree = synthesize(data, "modern-minimal", registry)

    for path in REQUIRED_FILES:
        assert path in tree
    for path in ("README.md", "src/index.css", "src/config/emailjs.ts",
                 "postcss.config.js", ".gitignore", "template.json"):
        assert path in tree


def test_package_json(installed, registry, data) -> None:
    package = json.loads(synthesize(data, "modern-minimal", registry)["package.json"])

    assert package["name"] == "jane-doe-portfolio"
    for dependency in ("react", "react-dom", "framer-motion", "@emailjs/browser"):
        assert dependency in package["dependencies"]
    assert {"vite", "typescript", "tailwindcss"} <= set(package["devDependencies"])
    assert package["scripts"]["build"] == "tsc && vite build"


def test_embedded_data_round_trips(installed, registry, data) -> None:
    tree = synthesize(data, "modern-minimal", registry)

    embedded = extract_embedded_data(tree["src/data/portfolio-data.ts"])
    assert embedded == data.to_serializable()
    assert embedded["personal"]["name"] == "Jane Doe"
    assert embedded["projects"][0]["githubUrl"] == "https://github.com/jane/task-board"
    assert "export interface PortfolioData" in tree["src/data/portfolio-data.ts"]


def test_extra_fields_fit_the_generated_types(installed, registry, portfolio_data) -> None:
    portfolio_data["personal"]["linkedin"] = "https://linkedin.com/in/jane"
    portfolio_data["projects"][0]["stars"] = 12
    data = PortfolioTemplateData.model_validate(portfolio_data)

    module = synthesize(data, "modern-minimal", registry)["src/data/portfolio-data.ts"]
    embedded = extract_embedded_data(module)
    assert embedded["personal"]["linkedin"] == "https://linkedin.com/in/jane"
    assert embedded["projects"][0]["stars"] == 12

    # every object type accepts keys it does not declare
    declarations = module.partition("export const portfolioData")[0]
    object_types = declarations.count("{") - declarations.count("{}")
    assert declarations.count("[key: string]: unknown;") == object_types == 6


def test_every_json_file_parses(installed, registry, data) -> None:
    tree = synthesize(data, "modern-minimal", registry)
    tsconfig = json.loads(tree["tsconfig.json"])
    assert tsconfig["compilerOptions"]["jsx"] == "react-jsx"
    template_info = json.loads(tree["template.json"])
    assert template_info["id"] == "modern-minimal"
    assert template_info["entryPath"] == installed.entry_path


def test_html_is_escaped(installed, registry, data) -> None:
    index_html = synthesize(data, "modern-minimal", registry)["index.html"]
    assert "&lt;fast&gt; &amp; friendly" in index_html
    assert "<fast>" not in index_html
    assert "<title>Jane Doe - Portfolio</title>" in index_html


def test_unknown_template(registry, data) -> None:
    with pytest.raises(TemplateNotFound) as excinfo:
        synthesize(data, "does-not-exist", registry)
    assert excinfo.value.status_code == 404


def test_inactive_template_is_not_found(installed, registry, data) -> None:
    registry.set_active("modern-minimal", False)
    with pytest.raises(TemplateNotFound):
        synthesize(data, "modern-minimal", registry)


def test_code_view(installed, registry, data) -> None:
    structure, folders = code_view(data, "modern-minimal", registry)

    assert set(structure) == {
        "package.json", "src/App.tsx", "src/data/portfolio-data.ts", "src/components/Portfolio.tsx"
    }
    assert folders == CODE_VIEW_FOLDERS


def test_tree_validation() -> None:
    complete = [GeneratedFile(path, "{}") for path in REQUIRED_FILES]
    assert set(validate_file_tree(complete)) == set(REQUIRED_FILES)

    with pytest.raises(SynthesisError):
        validate_file_tree(complete + [GeneratedFile("package.json", "{}")])
    with pytest.raises(SynthesisError):
        validate_file_tree(complete[1:])
    with pytest.raises(SynthesisError):
        validate_file_tree(
            [f for f in complete if f.path != "package.json"] + [GeneratedFile("package.json", "{")]
        )
    with pytest.raises(SynthesisError):
        validate_file_tree(complete + [GeneratedFile("../outside.txt", "")])


@pytest.mark.parametrize("name, slug", [
    ("Jane Doe", "jane-doe-portfolio"),
    ("Zoë O'Neil", "zo-o-neil-portfolio"),
    ("   ", "my-portfolio"),
])
def test_package_slug(name: str, slug: str) -> None:
    assert package_slug(name) == slug
