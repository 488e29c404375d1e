"""
Portfolio Code Synthesizer

Builds a standalone Vite + React + TypeScript project for one user from
their PortfolioTemplateData and an installed template.

Each file comes from its own generator function returning a GeneratedFile.
The assembled tree is checked (unique paths, required files present, JSON
files parse) before it is handed to the packager.

Generated project layout:
    package.json, README.md, index.html, .gitignore, template.json
    vite.config.ts, tailwind.config.js, postcss.config.js, tsconfig.json
    src/main.tsx, src/App.tsx, src/index.css
    src/data/portfolio-data.ts
    src/config/emailjs.ts
    src/components/Portfolio.tsx, src/components/ContactForm.tsx
"""

import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

from app.schemas.schemas import PortfolioTemplateData, TemplateRegistryEntry
from app.services.errors import SynthesisError, TemplateNotFound
from app.services.template_registry import TemplateRegistryStore

logger = logging.getLogger(__name__)

FileContent = Union[str, bytes]
SynthesizedFileTree = Dict[str, FileContent]

RUNTIME_DEPENDENCIES = {
    "react": "^18.3.1",
    "react-dom": "^18.3.1",
    "framer-motion": "^11.13.1",
    "@emailjs/browser": "^4.4.1",
}

DEV_DEPENDENCIES = {
    "@types/react": "^18.3.11",
    "@types/react-dom": "^18.3.1",
    "@vitejs/plugin-react": "^4.7.0",
    "autoprefixer": "^10.4.20",
    "postcss": "^8.4.47",
    "tailwindcss": "^3.4.17",
    "typescript": "^5.6.3",
    "vite": "^5.4.20",
}

REQUIRED_FILES = (
    "package.json",
    "index.html",
    "src/main.tsx",
    "src/App.tsx",
    "src/data/portfolio-data.ts",
    "src/components/Portfolio.tsx",
    "src/components/ContactForm.tsx",
    "vite.config.ts",
    "tailwind.config.js",
    "tsconfig.json",
)

CODE_VIEW_FILES = (
    "package.json",
    "src/App.tsx",
    "src/data/portfolio-data.ts",
    "src/components/Portfolio.tsx",
)

CODE_VIEW_FOLDERS = [
    "src/",
    "src/components/",
    "src/data/",
    "src/config/",
    "public/",
]

DATA_EXPORT_PREFIX = "export const portfolioData: PortfolioData = "


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: FileContent


@dataclass(frozen=True)
class GenerationContext:
    data: dict
    template: TemplateRegistryEntry

    @property
    def person_name(self) -> str:
        return str(self.data["personal"].get("name") or "").strip() or "My"

    @property
    def person_title(self) -> str:
        return str(self.data["personal"].get("title") or "").strip()


def package_slug(name: str) -> str:
    """npm package name for a person: 'Jane Doe' -> 'jane-doe-portfolio'."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"{slug}-portfolio" if slug else "my-portfolio"


def _json(value) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


# ============================================================
# FILE GENERATORS
# ============================================================

def generate_package_json(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("package.json", _json({
        "name": package_slug(ctx.person_name),
        "private": True,
        "version": "1.0.0",
        "type": "module",
        "scripts": {
            "dev": "vite",
            "build": "tsc && vite build",
            "preview": "vite preview",
        },
        "dependencies": RUNTIME_DEPENDENCIES,
        "devDependencies": DEV_DEPENDENCIES,
    }))


def generate_readme(ctx: GenerationContext) -> GeneratedFile:
    template = ctx.template
    features = "\n".join(f"- {feature}" for feature in template.features) or "- Responsive layout"
    return GeneratedFile("README.md", f"""# {ctx.person_name}'s Portfolio

Portfolio website built with React, TypeScript, Tailwind CSS and Framer Motion.

## Template

{template.name} ({template.id}) v{template.version} - {template.category}

{features}

## Getting Started

```bash
npm install
npm run dev
```

## Contact form

Fill in your EmailJS credentials in `src/config/emailjs.ts`.

## Build for Production

```bash
npm run build
```

Upload the `dist` folder to any static host.
""")


def generate_index_html(ctx: GenerationContext) -> GeneratedFile:
    name = html.escape(ctx.person_name)
    bio = ctx.data["personal"].get("bio") or ctx.person_title
    description = html.escape(str(bio or f"{ctx.person_name} - Portfolio"), quote=True)
    return GeneratedFile("index.html", f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <meta name="description" content="{description}" />
    <meta property="og:title" content="{name} - Portfolio" />
    <title>{name} - Portfolio</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.tsx"></script>
  </body>
</html>
""")


def generate_main(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/main.tsx", """import React from 'react';
import ReactDOM from 'react-dom/client';
import App from './App';
import './index.css';

ReactDOM.createRoot(document.getElementById('root')!).render(
  <React.StrictMode>
    <App />
  </React.StrictMode>
);
""")


def generate_app(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/App.tsx", """import Portfolio from './components/Portfolio';

function App() {
  return <Portfolio />;
}

export default App;
""")


def generate_index_css(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/index.css", """@tailwind base;
@tailwind components;
@tailwind utilities;
""")


def generate_data_module(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/data/portfolio-data.ts", f"""export interface PortfolioProject {{
  title: string;
  description: string;
  technologies: string[];
  githubUrl?: string | null;
  liveUrl?: string | null;
  imageUrl?: string | null;
  [key: string]: unknown;
}}

export interface PortfolioExperience {{
  title: string;
  company: string;
  duration: string;
  description: string;
  [key: string]: unknown;
}}

export interface PortfolioEducation {{
  degree: string;
  institution: string;
  year: string;
  [key: string]: unknown;
}}

export interface PortfolioData {{
  personal: {{
    name: string;
    title: string;
    bio?: string | null;
    email: string;
    phone?: string | null;
    location?: string | null;
    website?: string | null;
    profileImage?: string | null;
    [key: string]: unknown;
  }};
  skills: string[];
  projects: PortfolioProject[];
  experience: PortfolioExperience[];
  education: PortfolioEducation[];
  social?: {{
    github?: string | null;
    linkedin?: string | null;
    twitter?: string | null;
    [key: string]: unknown;
  }} | null;
  [key: string]: unknown;
}}

{DATA_EXPORT_PREFIX}{json.dumps(ctx.data, indent=2, ensure_ascii=False)};
""")


def generate_portfolio_component(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/components/Portfolio.tsx", """import { motion } from 'framer-motion';
import { portfolioData } from '../data/portfolio-data';
import ContactForm from './ContactForm';

export default function Portfolio() {
  const { personal, skills, projects, experience, education } = portfolioData;

  return (
    <div className="min-h-screen bg-white text-gray-900">
      <motion.header
        className="py-20 text-center"
        initial={{ opacity: 0, y: 20 }}
        animate={{ opacity: 1, y: 0 }}
      >
        <h1 className="text-4xl font-bold">{personal.name}</h1>
        <p className="text-xl text-gray-600">{personal.title}</p>
        {personal.bio && <p className="mt-4 max-w-2xl mx-auto">{personal.bio}</p>}
      </motion.header>

      <section className="max-w-4xl mx-auto px-4 py-8">
        <h2 className="text-2xl font-bold mb-4">Skills</h2>
        <ul className="flex flex-wrap gap-2">
          {skills.map((skill) => (
            <li key={skill} className="px-3 py-1 rounded bg-gray-100">{skill}</li>
          ))}
        </ul>
      </section>

      <section className="max-w-4xl mx-auto px-4 py-8">
        <h2 className="text-2xl font-bold mb-4">Projects</h2>
        {projects.map((project) => (
          <article key={project.title} className="mb-6">
            <h3 className="text-xl font-semibold">{project.title}</h3>
            <p>{project.description}</p>
            <p className="text-sm text-gray-500">{project.technologies.join(', ')}</p>
          </article>
        ))}
      </section>

      <section className="max-w-4xl mx-auto px-4 py-8">
        <h2 className="text-2xl font-bold mb-4">Experience</h2>
        {experience.map((item) => (
          <article key={`${item.company}-${item.title}`} className="mb-6">
            <h3 className="text-xl font-semibold">{item.title} - {item.company}</h3>
            <p className="text-sm text-gray-500">{item.duration}</p>
            <p>{item.description}</p>
          </article>
        ))}
      </section>

      <section className="max-w-4xl mx-auto px-4 py-8">
        <h2 className="text-2xl font-bold mb-4">Education</h2>
        {education.map((item) => (
          <p key={`${item.institution}-${item.degree}`}>
            {item.degree}, {item.institution} ({item.year})
          </p>
        ))}
      </section>

      <section className="max-w-4xl mx-auto px-4 py-8">
        <h2 className="text-2xl font-bold mb-4">Contact</h2>
        <ContactForm />
      </section>
    </div>
  );
}
""")


def generate_contact_form(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/components/ContactForm.tsx", """import { useState } from 'react';
import emailjs from '@emailjs/browser';
import { emailjsConfig } from '../config/emailjs';

type Status = 'idle' | 'sending' | 'sent' | 'error';

export default function ContactForm() {
  const [formData, setFormData] = useState({ name: '', email: '', message: '' });
  const [status, setStatus] = useState<Status>('idle');

  const handleSubmit = async (e: React.FormEvent) => {
    e.preventDefault();
    setStatus('sending');
    try {
      await emailjs.send(
        emailjsConfig.serviceId,
        emailjsConfig.templateId,
        { from_name: formData.name, reply_to: formData.email, message: formData.message },
        { publicKey: emailjsConfig.publicKey }
      );
      setStatus('sent');
      setFormData({ name: '', email: '', message: '' });
    } catch {
      setStatus('error');
    }
  };

  return (
    <form onSubmit={handleSubmit} className="space-y-4">
      <input
        type="text"
        placeholder="Name"
        required
        value={formData.name}
        onChange={(e) => setFormData({ ...formData, name: e.target.value })}
        className="w-full p-2 border rounded"
      />
      <input
        type="email"
        placeholder="Email"
        required
        value={formData.email}
        onChange={(e) => setFormData({ ...formData, email: e.target.value })}
        className="w-full p-2 border rounded"
      />
      <textarea
        placeholder="Message"
        required
        value={formData.message}
        onChange={(e) => setFormData({ ...formData, message: e.target.value })}
        className="w-full p-2 border rounded h-32"
      />
      <button
        type="submit"
        disabled={status === 'sending'}
        className="px-4 py-2 bg-blue-600 text-white rounded"
      >
        {status === 'sending' ? 'Sending...' : 'Send Message'}
      </button>
      {status === 'sent' && <p className="text-green-600">Message sent!</p>}
      {status === 'error' && <p className="text-red-600">Could not send the message.</p>}
    </form>
  );
}
""")


def generate_emailjs_config(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("src/config/emailjs.ts", """// Get your EmailJS credentials from https://www.emailjs.com/
export const emailjsConfig = {
  serviceId: 'YOUR_SERVICE_ID',
  templateId: 'YOUR_TEMPLATE_ID',
  publicKey: 'YOUR_PUBLIC_KEY',
};
""")


def generate_vite_config(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("vite.config.ts", """import { defineConfig } from 'vite';
import react from '@vitejs/plugin-react';

export default defineConfig({
  plugins: [react()],
});
""")


def generate_tailwind_config(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("tailwind.config.js", """/** @type {import('tailwindcss').Config} */
export default {
  content: [
    "./index.html",
    "./src/**/*.{js,ts,jsx,tsx}",
  ],
  theme: {
    extend: {},
  },
  plugins: [],
};
""")


def generate_postcss_config(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("postcss.config.js", """export default {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
};
""")


def generate_tsconfig(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("tsconfig.json", _json({
        "compilerOptions": {
            "target": "ES2020",
            "useDefineForClassFields": True,
            "lib": ["ES2020", "DOM", "DOM.Iterable"],
            "module": "ESNext",
            "skipLibCheck": True,
            "moduleResolution": "bundler",
            "allowImportingTsExtensions": True,
            "resolveJsonModule": True,
            "isolatedModules": True,
            "noEmit": True,
            "jsx": "react-jsx",
            "strict": True,
            "noUnusedLocals": True,
            "noUnusedParameters": True,
            "noFallthroughCasesInSwitch": True,
        },
        "include": ["src"],
    }))


def generate_gitignore(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile(".gitignore", "node_modules\ndist\n.env\n*.log\n.DS_Store\n")


def generate_template_info(ctx: GenerationContext) -> GeneratedFile:
    return GeneratedFile("template.json", _json(ctx.template.model_dump(by_alias=True)))


FILE_GENERATORS: Tuple[Callable[[GenerationContext], GeneratedFile], ...] = (
    generate_package_json,
    generate_readme,
    generate_index_html,
    generate_gitignore,
    generate_template_info,
    generate_vite_config,
    generate_tailwind_config,
    generate_postcss_config,
    generate_tsconfig,
    generate_main,
    generate_app,
    generate_index_css,
    generate_data_module,
    generate_emailjs_config,
    generate_portfolio_component,
    generate_contact_form,
)


# ============================================================
# TREE ASSEMBLY
# ============================================================

def validate_file_tree(files: List[GeneratedFile]) -> SynthesizedFileTree:
    """Unique paths, required files present, JSON files parse."""
    tree: SynthesizedFileTree = {}
    for generated in files:
        if generated.path in tree:
            raise SynthesisError(f"Duplicate generated file: {generated.path}")
        if generated.path.startswith("/") or ".." in generated.path.split("/"):
            raise SynthesisError(f"Generated path is not relative: {generated.path}")
        tree[generated.path] = generated.content

    missing = [path for path in REQUIRED_FILES if path not in tree]
    if missing:
        raise SynthesisError(f"Generated tree is missing: {', '.join(missing)}")

    for path, content in tree.items():
        if path.endswith(".json"):
            try:
                json.loads(content)
            except (TypeError, ValueError) as e:
                raise SynthesisError(f"Generated {path} is not valid JSON: {e}") from e
    return tree


def resolve_template(registry: TemplateRegistryStore, template_id: str) -> TemplateRegistryEntry:
    template = registry.get_by_id(template_id)
    if template is None or not template.is_active:
        raise TemplateNotFound(template_id)
    return template


def synthesize(
    portfolio_data: PortfolioTemplateData,
    template_id: str,
    registry: TemplateRegistryStore
) -> SynthesizedFileTree:
    """
    Generate the full project tree for a portfolio.

    Raises:
        TemplateNotFound: template_id is not an active registry entry
        SynthesisError: a file could not be generated or the tree is invalid
    """
    template = resolve_template(registry, template_id)
    try:
        ctx = GenerationContext(data=portfolio_data.to_serializable(), template=template)
        files = [generator(ctx) for generator in FILE_GENERATORS]
    except (TypeError, ValueError, KeyError) as e:
        raise SynthesisError(f"Failed to serialise portfolio data: {e}") from e

    tree = validate_file_tree(files)
    logger.info("Synthesized %d files for template %s", len(tree), template_id)
    return tree


def code_view(
    portfolio_data: PortfolioTemplateData,
    template_id: str,
    registry: TemplateRegistryStore
) -> Tuple[Dict[str, str], List[str]]:
    """Files shown in the in-app code viewer, plus the project folder list."""
    tree = synthesize(portfolio_data, template_id, registry)
    structure = {path: tree[path] for path in CODE_VIEW_FILES}
    return structure, list(CODE_VIEW_FOLDERS)


def extract_embedded_data(module_source: str) -> dict:
    """Read the JSON object back out of a generated portfolio-data.ts."""
    _, _, tail = module_source.partition(DATA_EXPORT_PREFIX)
    if not tail:
        raise ValueError("portfolio data export not found")
    return json.loads(tail.rstrip().rstrip(";"))
