import os
import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

WORK_DIR = Path(tempfile.mkdtemp(prefix="fileforge-tests-"))

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["UPLOAD_DIR"] = str(WORK_DIR / "uploads")
os.environ["PROCESSED_DIR"] = str(WORK_DIR / "processed")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ["JWT_SECRET"] = "test-secret"

from fileforge.core.errors import ProcessingError
from fileforge.db.base import Base
from fileforge.db.session import engine
from fileforge.main import create_app
from fileforge.services.processing import Processors
from fileforge.services.processing.common import ProcessingResult, output_path


def _write_output(tag: str, ext: str, content: bytes) -> ProcessingResult:
    path = output_path(tag, ext)
    path.write_bytes(content)
    return ProcessingResult(filename=path.name, path=str(path), size=len(content), processing_time=0.01)


def _fail_if_asked(input_path: str) -> None:
    if "fail" in Path(input_path).read_bytes().decode("utf-8", errors="ignore"):
        raise ProcessingError("Simulated processing failure")


def fake_convert(input_path, target_format, progress):
    progress(30, "Converting...")
    _fail_if_asked(input_path)
    progress(80, "Writing output...")
    return _write_output("converted", target_format, b"converted")


def fake_compress(input_path, level, preserve_quality, remove_metadata, progress):
    progress(50, "Compressing...")
    _fail_if_asked(input_path)
    original = Path(input_path).stat().st_size
    return _write_output("compressed", Path(input_path).suffix or ".bin", b"x" * max(original // 2, 1))


def fake_extract_text(input_path, mode, include_metadata, language, progress):
    progress(40, "Extracting...")
    _fail_if_asked(input_path)
    result = _write_output("extracted", ".txt", b"hello world")
    if include_metadata:
        result.metadata = {"extraction_method": "native", "language": language, "word_count": 2}
    return result


def fake_extract_archive(input_path, options, progress):
    progress(60, "Unpacking...")
    _fail_if_asked(input_path)
    result = _write_output("extracted", ".bin", b"payload")
    result.files_extracted = 1
    return result


@pytest.fixture()
def fake_processors() -> Processors:
    return Processors(
        convert=fake_convert,
        compress=fake_compress,
        extract_text=fake_extract_text,
        extract_archive=fake_extract_archive,
    )


@pytest.fixture(autouse=True)
def use_fake_processors(monkeypatch, fake_processors):
    monkeypatch.setattr("fileforge.workers.tasks.get_processors", lambda: fake_processors)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    path = Path("test.db")
    if path.exists():
        path.unlink()


@pytest.fixture(autouse=True)
def reset_files():
    yield
    for name in ("uploads", "processed"):
        shutil.rmtree(WORK_DIR / name, ignore_errors=True)
        (WORK_DIR / name).mkdir(parents=True, exist_ok=True)


@pytest.fixture()
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(client):
    register = client.post("/auth/register", json={"email": "user@example.com", "password": "secret123"})
    assert register.status_code == 201
    login = client.post("/auth/login", json={"email": "user@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
