"""Minimal Next.js template written into a fresh clone."""

from __future__ import annotations

import json
from pathlib import Path

NEXT_VERSION = "14.0.0"

_NEXT_CONFIG = """\
/** @type {import('next').NextConfig} */
const nextConfig = {}

module.exports = nextConfig
"""

_TSCONFIG = {
    "compilerOptions": {
        "target": "es5",
        "lib": ["dom", "dom.iterable", "es6"],
        "allowJs": True,
        "skipLibCheck": True,
        "strict": True,
        "noEmit": True,
        "esModuleInterop": True,
        "module": "esnext",
        "moduleResolution": "bundler",
        "resolveJsonModule": True,
        "isolatedModules": True,
        "jsx": "preserve",
        "incremental": True,
        "plugins": [{"name": "next"}],
        "paths": {"@/*": ["./*"]},
    },
    "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
    "exclude": ["node_modules"],
}

_TAILWIND_CONFIG = """\
/** @type {import('tailwindcss').Config} */
module.exports = {
  content: [
    './pages/**/*.{js,ts,jsx,tsx,mdx}',
    './components/**/*.{js,ts,jsx,tsx,mdx}',
    './app/**/*.{js,ts,jsx,tsx,mdx}',
  ],
  theme: {
    extend: {},
  },
  plugins: [],
}
"""

_POSTCSS_CONFIG = """\
module.exports = {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
}
"""

_GITIGNORE = """\
# dependencies
/node_modules
/.pnp
.pnp.js

# testing
/coverage

# next.js
/.next/
/out/

# production
/build

# misc
.DS_Store
*.pem

# debug
npm-debug.log*

# local env files
.env*.local

# typescript
*.tsbuildinfo
next-env.d.ts
"""

_GLOBALS_CSS = """\
@tailwind base;
@tailwind components;
@tailwind utilities;

:root {
  --foreground-rgb: 0, 0, 0;
  --background-rgb: 255, 255, 255;
}

@media (prefers-color-scheme: dark) {
  :root {
    --foreground-rgb: 255, 255, 255;
    --background-rgb: 0, 0, 0;
  }
}

body {
  color: rgb(var(--foreground-rgb));
  background: rgb(var(--background-rgb));
}
"""


def _package_json(project_id: str) -> str:
    manifest = {
        "name": project_id.lower(),
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "dev": "next dev",
            "build": "next build",
            "start": "next start",
            "lint": "next lint",
        },
        "dependencies": {"next": NEXT_VERSION, "react": "^18", "react-dom": "^18"},
        "devDependencies": {
            "@types/node": "^20",
            "@types/react": "^18",
            "@types/react-dom": "^18",
            "eslint": "^8",
            "eslint-config-next": NEXT_VERSION,
            "typescript": "^5",
            "tailwindcss": "^3.3.0",
            "autoprefixer": "^10.4.16",
            "postcss": "^8.4.31",
        },
    }
    return json.dumps(manifest, indent=2) + "\n"


def _jsx_text(value: str) -> str:
    """Escape free text for a JSX text node."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("{", "&#123;")
        .replace("}", "&#125;")
    )


def _layout(title: str, overview: str) -> str:
    return f"""\
import type {{ Metadata }} from 'next'
import './globals.css'

export const metadata: Metadata = {{
  title: {json.dumps(title)},
  description: {json.dumps(overview[:160])},
}}

export default function RootLayout({{
  children,
}}: {{
  children: React.ReactNode
}}) {{
  return (
    <html lang="en">
      <body>{{children}}</body>
    </html>
  )
}}
"""


def _home_page(title: str, overview: str) -> str:
    return f"""\
export default function Home() {{
  return (
    <main className="flex min-h-screen flex-col items-center justify-center p-24">
      <h1 className="text-4xl font-bold">{_jsx_text(title)}</h1>
      <p className="mt-4 max-w-2xl text-lg">{_jsx_text(overview)}</p>
    </main>
  )
}}
"""


def _readme(title: str, overview: str) -> str:
    return f"""\
# {title}

{overview}

## Getting Started

```bash
npm install
npm run dev
```
"""


def render_template(project_id: str, title: str, overview: str) -> dict[str, str]:
    """Relative path -> file content for the starter project."""
    return {
        "package.json": _package_json(project_id),
        "next.config.js": _NEXT_CONFIG,
        "tsconfig.json": json.dumps(_TSCONFIG, indent=2) + "\n",
        "tailwind.config.js": _TAILWIND_CONFIG,
        "postcss.config.js": _POSTCSS_CONFIG,
        ".gitignore": _GITIGNORE,
        "README.md": _readme(title, overview),
        "app/layout.tsx": _layout(title, overview),
        "app/page.tsx": _home_page(title, overview),
        "app/globals.css": _GLOBALS_CSS,
        "public/.gitkeep": "",
    }


def write_template(project_path: Path, project_id: str, title: str, overview: str) -> list[Path]:
    written: list[Path] = []
    for relative, content in render_template(project_id, title, overview).items():
        target = project_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        written.append(target)
    return written
