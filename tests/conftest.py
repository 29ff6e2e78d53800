"""Configure tests."""

import asyncio

import pytest

from liberate.config import Settings
from liberate.domain.errors import ConversionServiceError
from liberate.domain.models import FileSet
from liberate.operations.convert import Batch

HANDLER_SOURCE = """import { serve } from "https://deno.land/std@0.168.0/http/server.ts";

serve(async (req) => new Response(JSON.stringify({ ok: true })));
"""

MIGRATION_SQL = """-- Initial schema
CREATE TABLE public.users (
  id uuid PRIMARY KEY,
  email text NOT NULL
);

CREATE TABLE public.posts (
  id uuid PRIMARY KEY,
  author_id uuid REFERENCES public.users(id),
  published boolean DEFAULT false
);

ALTER TABLE public.users ENABLE ROW LEVEL SECURITY;

CREATE POLICY "Users can view their own profile"
  ON public.users FOR SELECT USING (auth.uid() = id);

CREATE POLICY "Anyone can view published posts"
  ON public.posts FOR SELECT USING (published = true);
"""

CONFIG_TOML = """[project]
id = "demo"

[functions.auth-handler]
verify_jwt = true

[functions.data-api]
verify_jwt = true

[functions.webhook]
verify_jwt = false
"""


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Settings isolated from the developer's environment."""
    monkeypatch.chdir(tmp_path)
    return Settings(state_file=tmp_path / "state" / "state.json")


@pytest.fixture
def project_files():
    """Raw files of a small platform-bound project."""
    return {
        "package.json": '{"name": "demo"}',
        "src/App.tsx": "export default function App() { return null; }",
        "supabase/config.toml": CONFIG_TOML,
        "supabase/functions/auth-handler/index.ts": HANDLER_SOURCE,
        "supabase/functions/data-api/index.ts": HANDLER_SOURCE.replace("ok: true", "items: []"),
        "supabase/migrations/20240101000000_init.sql": MIGRATION_SQL,
    }


@pytest.fixture
def project(project_files):
    """The sample project as a file set."""
    return FileSet(project_files)


@pytest.fixture
def project_dir(tmp_path, project_files):
    """The sample project written to disk."""
    root = tmp_path / "project"
    for path, content in project_files.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


class FakeConversionService:
    """In-memory conversion service recording every call."""

    def __init__(
        self,
        failing_handlers: set[str] | None = None,
        handler_error: Exception | None = None,
        policy_error: Exception | None = None,
        manifest: str | None = "services:\n  backend:\n    build: ./backend\n",
    ):
        self.failing_handlers = failing_handlers or set()
        self.handler_error = handler_error
        self.policy_error = policy_error
        self.manifest = manifest
        self.handler_calls: list[list[dict]] = []
        self.policy_calls: list[list[dict]] = []

    async def convert_handlers(self, items):
        self.handler_calls.append(items)
        await asyncio.sleep(0)
        if self.handler_error is not None:
            raise self.handler_error
        results = []
        for item in items:
            if item["name"] in self.failing_handlers:
                results.append({"name": item["name"], "error": "unsupported runtime API"})
            else:
                results.append({"name": item["name"], "content": f"// route {item['name']}\n"})
        return Batch(items=results, manifest=self.manifest)

    async def extract_policies(self, items):
        self.policy_calls.append(items)
        await asyncio.sleep(0)
        if self.policy_error is not None:
            raise self.policy_error
        return Batch(items=[{"name": "rowSecurity", "content": "// middleware\n"}])


@pytest.fixture
def service():
    return FakeConversionService()


@pytest.fixture
def failing_service():
    """Service whose handler conversion call fails outright."""
    return FakeConversionService(handler_error=ConversionServiceError("upstream 502"))


class FakeSession:
    """Remote session double recording calls."""

    def __init__(
        self,
        fail_paths: set[str] | None = None,
        connect_error: Exception | None = None,
        close_error: Exception | None = None,
        on_write=None,
    ):
        self.fail_paths = fail_paths or set()
        self.connect_error = connect_error
        self.close_error = close_error
        self.on_write = on_write
        self.connected = False
        self.close_calls = 0
        self.directories: list[str] = []
        self.written: dict[str, bytes] = {}

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def ensure_dir(self, path):
        self.directories.append(path)

    async def write(self, path, content):
        await asyncio.sleep(0)
        if any(path.endswith(fail) for fail in self.fail_paths):
            raise OSError(f"550 {path}: disk quota exceeded")
        self.written[path] = content
        if self.on_write is not None:
            self.on_write(len(self.written))

    async def close(self):
        self.close_calls += 1
        self.connected = False
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def make_service():
    """Factory for configured fake conversion services."""
    return FakeConversionService


@pytest.fixture
def make_session():
    """Factory for fake remote sessions."""
    return FakeSession
