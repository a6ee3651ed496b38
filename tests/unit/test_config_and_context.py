from __future__ import annotations

import asyncio
import io
import logging

import httpx
import pytest

from common.config import GatewaySettings
from common.log import get_logger, setup_logging
from gateway.context import build_context
from state.backends import JsonFileBackend, MemoryBackend


ENV_NAMES = ("ADMIN_API_BASE_URL", "ADMIN_API_KEY", "ADMIN_LOCAL_SECRET", "ADMIN_REFRESH_WINDOW", "ADMIN_TIMEOUT", "ADMIN_STORE_DIR")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env_missing_vars_raises(clean_env):
    clean_env.setenv("ADMIN_API_KEY", "k")
    with pytest.raises(RuntimeError) as ei:
        GatewaySettings.from_env()
    assert "ADMIN_API_BASE_URL" in str(ei.value)
    assert "ADMIN_LOCAL_SECRET" in str(ei.value)
    assert "ADMIN_API_KEY" not in str(ei.value)


def test_from_env_reads_values(clean_env, tmp_path):
    clean_env.setenv("ADMIN_API_BASE_URL", "https://api.example.test")
    clean_env.setenv("ADMIN_API_KEY", "k")
    clean_env.setenv("ADMIN_LOCAL_SECRET", "s")
    clean_env.setenv("ADMIN_REFRESH_WINDOW", "600")
    clean_env.setenv("ADMIN_STORE_DIR", str(tmp_path))
    cfg = GatewaySettings.from_env()
    assert cfg.base_url == "https://api.example.test"
    assert cfg.refresh_window_seconds == 600.0
    assert cfg.timeout == 15.0
    assert cfg.store_dir == str(tmp_path)


def test_default_refresh_window():
    cfg = GatewaySettings(base_url="u", api_key="k", local_secret="s")
    assert cfg.refresh_window_seconds == 18000.0


def test_build_context_wires_one_instance_each(settings, scheduler):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"token": "tok", "user": {"id": "1", "email": "a@example.com"}})

    ctx = build_context(
        settings,
        backend=MemoryBackend(),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        scheduler=scheduler,
    )

    async def scenario():
        async with ctx:
            return await ctx.auth.login("a@example.com", "pw")

    result = asyncio.run(scenario())
    assert result.success is True
    assert ctx.is_authenticated is True
    assert ctx.session.store is ctx.store
    assert ctx.broadcaster.message == "Login successful!"


def test_build_context_defaults_to_file_backend(settings, tmp_path, scheduler):
    cfg = settings.model_copy(update={"store_dir": str(tmp_path)})
    ctx = build_context(cfg, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))), scheduler=scheduler)
    assert isinstance(ctx.store.backend, JsonFileBackend)
    ctx.session.set_auth_details({"id": "1"}, "tok")
    assert (tmp_path / "admin_store.json").exists()

    # A second context over the same directory restores the session
    again = build_context(cfg, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))), scheduler=scheduler)
    assert again.session.token == "tok"


def test_setup_logging_formats_area_prefix():
    buf = io.StringIO()
    root = setup_logging(logging.DEBUG, stream=buf)
    setup_logging(logging.DEBUG, stream=buf)  # idempotent: one handler
    try:
        get_logger("gateway").info("hello")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        root.propagate = True
        root.setLevel(logging.NOTSET)
    lines = buf.getvalue().strip().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("[rental_admin.gateway]")
    assert lines[0].endswith("hello")
