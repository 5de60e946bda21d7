# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the llmvis CLI: commands, output routing, exit codes."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from llmvis import cli
from llmvis.manifest_drafter import DraftResult

HOME_HTML = """<html><head>
<title>Acme | Ergonomic Mice</title>
<meta name="description" content="Ergonomic mice and keyboards for people who work all day.">
</head><body><h1>Acme</h1><a href="/collections/mice">Mice</a></body></html>"""


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


@pytest.fixture
def dump_path(tmp_path):
    path = tmp_path / "crawl.json"
    path.write_text(
        json.dumps(
            {
                "url": "https://shop.example.com/",
                "pages": [
                    {"url": "https://shop.example.com/", "html": HOME_HTML},
                    {"url": "https://shop.example.com/collections/mice", "error": "HTTP 500"},
                ],
                "robots_txt": "User-agent: *\nAllow: /",
            }
        ),
        encoding="utf-8",
    )
    return str(path)


class TestArgumentParsing:
    def test_command_required(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert "llmvis" in capsys.readouterr().out

    def test_invalid_format(self, dump_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["analyze", dump_path, "--format", "xml"])
        assert exc_info.value.code == 2
        assert "--format" in capsys.readouterr().err


class TestAnalyze:
    def test_json_to_stdout(self, dump_path, capsys):
        cli.main(["analyze", dump_path])
        data = json.loads(capsys.readouterr().out)
        assert data["domain"] == "shop.example.com"
        assert len(data["pages"]) == 1
        assert 0 <= data["score"] <= 100

    def test_text_format(self, dump_path, capsys):
        cli.main(["analyze", dump_path, "--format", "text"])
        out = capsys.readouterr().out
        assert out.startswith("Domain: shop.example.com\n")
        assert "Pages analyzed: 1" in out

    def test_full_includes_body_text(self, dump_path, capsys):
        cli.main(["analyze", dump_path, "--full"])
        data = json.loads(capsys.readouterr().out)
        assert "body_text" in data["pages"][0]["signals"]

    def test_output_file(self, dump_path, tmp_path, capsys):
        out_path = tmp_path / "reports" / "report.json"
        cli.main(["analyze", dump_path, "-o", str(out_path)])
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Saved:" in captured.err
        assert json.loads(out_path.read_text(encoding="utf-8"))["domain"] == "shop.example.com"


class TestErrors:
    def test_missing_dump_exits_1(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["analyze", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "error: Cannot read crawl dump" in err
        assert "Traceback" not in err

    def test_invalid_dump_exits_1(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('{"pages": []}', encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["manifest", str(path)])
        assert exc_info.value.code == 1
        assert "Invalid crawl dump at url" in capsys.readouterr().err

    def test_unexpected_error_exits_1(self, dump_path, monkeypatch, capsys):
        def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(cli, "aggregate", boom)
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["analyze", dump_path])
        assert exc_info.value.code == 1
        assert "error: RuntimeError: kaboom" in capsys.readouterr().err


class _FakeDrafter:
    def __init__(self, available=True, result=None):
        self.available = available
        self.result = result
        self.requests = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return None

    def is_available(self):
        return self.available

    def draft(self, request):
        self.requests.append(request)
        return self.result


class TestManifest:
    def test_generated_manifest(self, dump_path, capsys):
        cli.main(["manifest", dump_path])
        captured = capsys.readouterr()
        assert captured.out.startswith("# shop.example.com\n> Ergonomic mice and keyboards")
        assert "warning: No product schema found" in captured.err

    def test_draft_used(self, dump_path, monkeypatch, capsys):
        fake = _FakeDrafter(result=DraftResult(content="# Acme\n> drafted", used_llm=True))
        monkeypatch.setattr(cli, "ManifestDrafter", lambda: fake)
        cli.main(["manifest", dump_path, "--draft"])
        assert capsys.readouterr().out == "# Acme\n> drafted\n"
        assert fake.requests[0].domain == "shop.example.com"

    def test_draft_server_unreachable(self, dump_path, monkeypatch, capsys):
        monkeypatch.setattr(cli, "ManifestDrafter", lambda: _FakeDrafter(available=False))
        cli.main(["manifest", dump_path, "--draft"])
        captured = capsys.readouterr()
        assert "not reachable" in captured.err
        assert captured.out.startswith("# shop.example.com\n")

    def test_draft_failure_falls_back(self, dump_path, monkeypatch, capsys):
        fake = _FakeDrafter(result=DraftResult(content="", used_llm=False, error="Server returned 500"))
        monkeypatch.setattr(cli, "ManifestDrafter", lambda: fake)
        cli.main(["manifest", dump_path, "--draft"])
        captured = capsys.readouterr()
        assert "Draft failed (Server returned 500)" in captured.err
        assert captured.out.startswith("# shop.example.com\n")
