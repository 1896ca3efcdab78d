# tests/test_app.py

"""
Composition root, lifespan and the one-shot reaper script.
"""

import importlib.util
import json
from pathlib import Path

import pytest

from app.core.config import Settings
from app.core.container import build_container
from app.main import create_app
from app.repositories.videos import MemoryVideoRepository
from app.utils.aws import S3Client, S3StorageError

pytestmark = pytest.mark.anyio

REAP_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "reap.py"


def _load_reap_script():
    spec = importlib.util.spec_from_file_location("reap_script", REAP_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def test_build_container_memory_backend():
    container = build_container(Settings(METADATA_BACKEND="memory"))
    assert isinstance(container.repo, MemoryVideoRepository)
    assert isinstance(container.s3, S3Client)
    assert container.engine is None
    assert await container.ready() is True
    assert container.uploads.repo is container.downloads.repo is container.reaper.repo
    await container.close()


async def test_container_s3_follows_the_given_settings():
    container = build_container(
        Settings(
            METADATA_BACKEND="memory",
            AWS_BUCKET_NAME="injected-bucket",
            AWS_REGION="eu-central-1",
            AWS_ACCESS_KEY_ID="INJECTEDKEY",
            AWS_SECRET_ACCESS_KEY="injected-secret",
        )
    )
    assert container.s3.bucket == "injected-bucket"
    assert container.s3.client.meta.region_name == "eu-central-1"
    url = container.s3.presigned_put("videos/v/clip.mp4", content_type="video/mp4")
    assert "X-Amz-Credential=INJECTEDKEY%2F" in url
    await container.close()


async def test_container_refuses_an_empty_bucket():
    with pytest.raises(S3StorageError):
        build_container(Settings(METADATA_BACKEND="memory", AWS_BUCKET_NAME=""))


async def test_lifespan_builds_and_closes_container():
    app = create_app(Settings(METADATA_BACKEND="memory", REAPER_SCHEDULER_ENABLED=True))
    async with app.router.lifespan_context(app):
        assert app.state.container.settings.REAPER_SCHEDULER_ENABLED is True


async def test_lifespan_keeps_preseeded_container(container):
    app = create_app()
    app.state.container = container
    async with app.router.lifespan_context(app):
        assert app.state.container is container


async def test_unknown_route_is_problem_json(async_client):
    r = await async_client.get("/api/v1/nothing-here")
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")
    assert "server" not in r.headers


async def test_reap_script_prints_report(monkeypatch, capsys, container, confirmed_video, clock):
    await confirmed_video()
    clock.advance(hours=15)

    script = _load_reap_script()
    monkeypatch.setattr(script, "build_container", lambda _settings: container)

    assert await script.run() == 0
    report = json.loads(capsys.readouterr().out)
    assert report["total_expired"] == 1
    assert report["deleted_count"] == 1
    assert report["errors"] == []
