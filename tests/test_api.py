import io
import zipfile
from pathlib import Path

from fileforge.core.config import get_settings

UPLOAD_DIR = Path(get_settings().upload_dir)
PROCESSED_DIR = Path(get_settings().processed_dir)


def _text_files(*contents, name="file"):
    return [
        ("files", (f"{name}{index}.txt", content.encode("utf-8"), "text/plain"))
        for index, content in enumerate(contents)
    ]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_compression_batch_end_to_end(client):
    resp = client.post(
        "/api/compression/compress",
        files=_text_files("aaaa" * 50, "bbbb" * 50, "cccc" * 50),
        data={"level": "medium"},
    )
    assert resp.status_code == 202, resp.text
    body = resp.json()
    assert body["total_files"] == 3
    assert body["options"]["level"] == "medium"
    job_ids = [job["job_id"] for job in body["jobs"]]
    assert len(set(job_ids)) == 3

    for job_id in job_ids:
        status_resp = client.get(f"/api/compression/status/{job_id}")
        assert status_resp.status_code == 200
        status = status_resp.json()
        assert status["status"] == "completed"
        assert status["progress"] == 100
        assert status["compression_ratio"] == 50
        assert status["download_url"].startswith("/processed/")
        download = client.get(status["download_url"])
        assert download.status_code == 200

    batch = client.get(f"/api/jobs/batch/{body['batch_id']}").json()
    assert batch["total"] == 3
    assert batch["counts"]["completed"] == 3


def test_failed_job_does_not_stop_batch(client):
    resp = client.post("/api/compression/compress", files=_text_files("fine", "please fail", "also fine"))
    assert resp.status_code == 202
    job_ids = [job["job_id"] for job in resp.json()["jobs"]]

    statuses = [client.get(f"/api/jobs/{job_id}").json() for job_id in job_ids]
    assert [status["status"] for status in statuses] == ["completed", "failed", "completed"]
    assert statuses[1]["error_message"] == "Simulated processing failure"
    assert statuses[1]["download_url"] is None
    assert statuses[1]["logs"][-1]["message"] == "Compression failed: Simulated processing failure"


def test_conversion_requires_authentication(client):
    resp = client.post("/api/conversion/convert", files=_text_files("hello"), data={"target_format": "docx"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "AuthenticationError"


def test_conversion_rejects_unknown_format_without_records(client, auth_headers):
    resp = client.post(
        "/api/conversion/convert",
        headers=auth_headers,
        files=_text_files("hello", "world"),
        data={"target_format": "xyz"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unsupported target format: xyz"
    assert resp.json()["error"] == "ValidationError"

    history = client.get("/api/history", headers=auth_headers).json()
    assert history["total"] == 0
    assert list(UPLOAD_DIR.iterdir()) == []


def test_conversion_flow_for_signed_in_user(client, auth_headers):
    resp = client.post(
        "/api/conversion/convert",
        headers=auth_headers,
        files=_text_files("hello"),
        data={"target_format": "DOCX"},
    )
    assert resp.status_code == 202, resp.text
    job_id = resp.json()["jobs"][0]["job_id"]

    status = client.get(f"/api/conversion/status/{job_id}", headers=auth_headers).json()
    assert status["status"] == "completed"
    assert status["processed_filename"].endswith(".docx")

    assert client.get(f"/api/jobs/{job_id}").status_code == 404
    assert client.get(f"/api/conversion/status/{job_id}").status_code == 401

    history = client.get("/api/conversion/history", headers=auth_headers).json()
    assert history["total"] == 1
    assert history["history"][0]["operation_details"]["target_format"] == "docx"


def test_extraction_metadata_in_status(client):
    resp = client.post(
        "/api/extraction/extract",
        files=_text_files("some words"),
        data={"include_metadata": "true", "language": "de"},
    )
    assert resp.status_code == 202, resp.text
    job_id = resp.json()["jobs"][0]["job_id"]

    status = client.get(f"/api/extraction/status/{job_id}").json()
    assert status["status"] == "completed"
    assert status["metadata"] == {"extraction_method": "native", "language": "de", "word_count": 2}


def test_archive_extraction_reports_file_count(client):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("inside.txt", "data")
    resp = client.post(
        "/api/archive/extract",
        files=[("files", ("bundle.zip", buffer.getvalue(), "application/zip"))],
        data={"extract_path": "bundle"},
    )
    assert resp.status_code == 202, resp.text
    job_id = resp.json()["jobs"][0]["job_id"]

    status = client.get(f"/api/archive/status/{job_id}").json()
    assert status["status"] == "completed"
    assert status["files_extracted"] == 1


def test_status_of_unknown_job_is_404(client):
    resp = client.get("/api/jobs/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Job not found"


def test_status_under_wrong_operation_is_404(client):
    resp = client.post("/api/compression/compress", files=_text_files("abc"))
    job_id = resp.json()["jobs"][0]["job_id"]
    assert client.get(f"/api/extraction/status/{job_id}").status_code == 404


def test_submission_validation_errors(client):
    no_files = client.post("/api/compression/compress", data={"level": "medium"})
    assert no_files.status_code == 400
    assert no_files.json()["detail"] == "No files uploaded for compression"

    bad_level = client.post("/api/compression/compress", files=_text_files("abc"), data={"level": "ultra"})
    assert bad_level.status_code == 400
    assert bad_level.json()["detail"].startswith("Invalid level")

    bad_type = client.post(
        "/api/compression/compress",
        files=[("files", ("tool.exe", b"MZ", "application/x-msdownload"))],
    )
    assert bad_type.status_code == 400
    assert "not supported" in bad_type.json()["detail"]
    assert list(UPLOAD_DIR.iterdir()) == []


def test_catalog_endpoints(client, auth_headers):
    formats = client.get("/api/conversion/formats", headers=auth_headers).json()
    assert "webp" in formats["images"]["formats"]
    levels = client.get("/api/compression/levels").json()
    assert [level["value"] for level in levels] == ["light", "medium", "high", "extreme"]
    modes = client.get("/api/extraction/modes").json()
    assert {mode["value"] for mode in modes} == {"auto", "ocr", "native", "hybrid"}
    languages = client.get("/api/extraction/languages").json()
    assert len(languages) == 11


def test_history_detail_delete_and_stats(client, auth_headers):
    resp = client.post(
        "/api/compression/compress",
        headers=auth_headers,
        files=_text_files("x" * 100, "please fail"),
    )
    assert resp.status_code == 202
    first = resp.json()["jobs"][0]

    page = client.get("/api/history", headers=auth_headers, params={"operation_type": "compression"}).json()
    assert page["total"] == 2
    assert page["filters"]["operation_type"] == "compression"

    failed_only = client.get("/api/history", headers=auth_headers, params={"status": "failed"}).json()
    assert failed_only["total"] == 1

    detail = client.get(f"/api/history/{first['file_history_id']}", headers=auth_headers).json()
    assert detail["status"] == "completed"
    assert detail["download_url"].startswith("/processed/")
    processed_file = PROCESSED_DIR / detail["download_url"].rsplit("/", 1)[-1]
    assert processed_file.exists()

    overview = client.get("/api/history/stats/overview", headers=auth_headers).json()
    assert overview["total_files"] == 2
    assert overview["success_rate"] == 50

    per_type = client.get("/api/history/stats/compression", headers=auth_headers).json()
    assert per_type["operation_type"] == "compression"
    assert client.get("/api/history/stats/teleport", headers=auth_headers).status_code == 400

    deleted = client.delete(f"/api/history/{first['file_history_id']}", headers=auth_headers)
    assert deleted.status_code == 204
    assert not processed_file.exists()
    assert client.get(f"/api/history/{first['file_history_id']}", headers=auth_headers).status_code == 404
    assert client.get(f"/api/jobs/{first['job_id']}", headers=auth_headers).status_code == 404


def test_history_requires_authentication(client):
    assert client.get("/api/history").status_code == 401


def test_cleanup_endpoint_removes_completed_records(client, auth_headers):
    client.post("/api/compression/compress", headers=auth_headers, files=_text_files("abc", "please fail"))

    kept = client.delete("/api/history/cleanup", headers=auth_headers, params={"days": 7}).json()
    assert kept["deleted_files"] == 0
    assert kept["cleanup_days"] == 7

    removed = client.delete("/api/history/cleanup", headers=auth_headers, params={"days": 0}).json()
    assert removed["deleted_files"] == 1
    remaining = client.get("/api/history", headers=auth_headers).json()
    assert [row["status"] for row in remaining["history"]] == ["failed"]

    assert client.delete("/api/history/cleanup", headers=auth_headers, params={"days": -1}).status_code == 422


def test_anonymous_history_lists_only_unowned_records(client, auth_headers):
    client.post("/api/compression/compress", files=_text_files("anon"))
    client.post("/api/compression/compress", headers=auth_headers, files=_text_files("mine"))

    anonymous = client.get("/api/compression/history").json()
    signed_in = client.get("/api/compression/history", headers=auth_headers).json()
    assert anonymous["total"] == 1
    assert signed_in["total"] == 1
    assert anonymous["history"][0]["id"] != signed_in["history"][0]["id"]


def test_auth_me(client, auth_headers):
    resp = client.get("/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "user@example.com"
    assert client.get("/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401
