from __future__ import annotations
import json

import httpx
import pytest
from typer.testing import CliRunner

from mockexam import cli
from mockexam.clients.generation_client import GenerationClient

runner = CliRunner()


@pytest.fixture
def payload_file(tmp_path, dbms_payload):
    path = tmp_path / "dbms.json"
    path.write_text(json.dumps(dbms_payload), encoding="utf-8")
    return path


@pytest.fixture
def topics_file(tmp_path, topics):
    path = tmp_path / "topics.json"
    path.write_text(json.dumps(topics), encoding="utf-8")
    return path


@pytest.fixture
def ai_env(monkeypatch):
    monkeypatch.setenv("MOCKEXAM_AI_ENABLED", "true")
    monkeypatch.setenv("MOCKEXAM_API_KEY", "sk-test")
    monkeypatch.setenv("MOCKEXAM_MODEL", "gemini-1.5-flash")
    monkeypatch.setenv("MOCKEXAM_BASE_URL", "http://backend.test")


def fake_backend(monkeypatch, handler):
    def make_client(ai, config):
        return GenerationClient(ai, config, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli, "make_client", make_client)


def test_formats():
    result = runner.invoke(cli.app, ["formats"])
    assert result.exit_code == 0
    assert "Mid Semester" in result.output
    assert "End Semester" in result.output


def test_render_text(payload_file):
    result = runner.invoke(cli.app, ["render", str(payload_file), "--text", "--at", "2026-10-17T14:05"])
    assert result.exit_code == 0, result.output
    assert "DBMS - Mid Semester Examination" in result.output
    assert "Q1. (Compulsory) [10 Marks]" in result.output
    assert "Generated By SyllabusX on 17/10/2026, 14:05" in result.output


def test_render_pdf(payload_file, tmp_path):
    out_dir = tmp_path / "out"
    result = runner.invoke(cli.app, ["render", str(payload_file), "--out-dir", str(out_dir), "--at", "2026-10-17 14:05"])
    assert result.exit_code == 0, result.output
    pdf = out_dir / "DBMS_midSem_17-10-2026, 14-05_exam.pdf"
    assert pdf.read_bytes().startswith(b"%PDF")


def test_render_malformed_payload(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"output": {"questions": []}}), encoding="utf-8")
    result = runner.invoke(cli.app, ["render", str(bad), "--text"])
    assert result.exit_code == 1
    assert "Cannot render" in result.output


def test_generate_writes_pdf_and_payload(monkeypatch, ai_env, topics_file, tmp_path, dbms_payload):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=dbms_payload)

    fake_backend(monkeypatch, handler)
    out_dir = tmp_path / "exams"
    saved = tmp_path / "saved.json"
    result = runner.invoke(cli.app, [
        "generate", "sem3/cse/dbms",
        "--topics", str(topics_file),
        "--unit", "1", "--unit", "unit3",
        "--out-dir", str(out_dir),
        "--save-json", str(saved),
    ])

    assert result.exit_code == 0, result.output
    assert seen[0].url.path == "/api/google-generate-mock"
    body = json.loads(seen[0].content)
    assert body["topics"] == [["ER model", "Relational algebra"], ["Transactions"]]
    assert body["subject"] == "dbms"
    assert len(list(out_dir.glob("DBMS_midSem_*_exam.pdf"))) == 1
    assert json.loads(saved.read_text(encoding="utf-8"))["output"]["examMetadata"]["subject"] == "DBMS"


def test_generate_rejects_three_units_for_mid_sem(monkeypatch, ai_env, topics_file, tmp_path):
    def handler(request):
        raise AssertionError("no request should be sent")

    fake_backend(monkeypatch, handler)
    result = runner.invoke(cli.app, [
        "generate", "sem3/cse/dbms", "--topics", str(topics_file),
        "--unit", "1", "--unit", "2", "--unit", "3", "--out-dir", str(tmp_path),
    ])
    assert result.exit_code == 1
    assert "Exactly two units" in result.output


def test_generate_reports_backend_error(monkeypatch, ai_env, topics_file, tmp_path):
    fake_backend(monkeypatch, lambda request: httpx.Response(401, json={"error": "Invalid key"}))
    result = runner.invoke(cli.app, ["generate", "sem3/cse/dbms", "--topics", str(topics_file), "--out-dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid key" in result.output


def test_generate_requires_full_subject_path(monkeypatch, ai_env, topics_file, tmp_path):
    fake_backend(monkeypatch, lambda request: httpx.Response(500))
    result = runner.invoke(cli.app, ["generate", "sem3/cse", "--topics", str(topics_file), "--out-dir", str(tmp_path)])
    assert result.exit_code == 2
    assert "subject" in result.output


def test_generate_with_ai_disabled(monkeypatch, ai_env, topics_file, tmp_path):
    monkeypatch.setenv("MOCKEXAM_AI_ENABLED", "false")
    fake_backend(monkeypatch, lambda request: httpx.Response(500))
    result = runner.invoke(cli.app, ["generate", "sem3/cse/dbms", "--topics", str(topics_file), "--out-dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "Toggle Ai first!" in result.output


def test_unknown_unit(monkeypatch, ai_env, topics_file, tmp_path):
    result = runner.invoke(cli.app, ["generate", "sem3/cse/dbms", "--topics", str(topics_file), "--unit", "7"])
    assert result.exit_code != 0


def test_generate_with_unreadable_topics_file(monkeypatch, ai_env, tmp_path):
    fake_backend(monkeypatch, lambda request: httpx.Response(500))
    bad = tmp_path / "topics.json"
    bad.write_text("[[\"ER model\",", encoding="utf-8")
    result = runner.invoke(cli.app, ["generate", "sem3/cse/dbms", "--topics", str(bad), "--out-dir", str(tmp_path)])
    assert result.exit_code == 2
    assert "Cannot read topics" in result.output


@pytest.mark.parametrize("content", [{"unit1": ["ER model"]}, ["ER model", "SQL", "Transactions", "Indexing"], 42])
def test_generate_with_wrongly_shaped_topics(monkeypatch, ai_env, tmp_path, content):
    fake_backend(monkeypatch, lambda request: httpx.Response(500))
    bad = tmp_path / "topics.json"
    bad.write_text(json.dumps(content), encoding="utf-8")
    result = runner.invoke(cli.app, ["generate", "sem3/cse/dbms", "--topics", str(bad), "--out-dir", str(tmp_path)])
    assert result.exit_code == 2
    assert "Cannot build request" in result.output
