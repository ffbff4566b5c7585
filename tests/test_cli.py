"""CLI subcommands that need no network."""

import json

import pytest

from stockprompt.ui.cli import build_arg_parser, run_cli


def test_platforms_command(capsys):
    assert run_cli(["platforms"]) == 0
    platforms = json.loads(capsys.readouterr().out)
    assert platforms[0]["id"] == "shutterstock"
    assert {p["id"] for p in platforms} >= {"freepik", "adobe-stock", "mock"}


def test_providers_command(capsys):
    assert run_cli(["providers"]) == 0
    providers = json.loads(capsys.readouterr().out)
    assert [p["id"] for p in providers] == ["openai", "openai-fast", "gemini", "claude"]


def test_validate_key_with_malformed_key(capsys):
    assert run_cli(["validate-key", "--provider", "claude", "--api-key", "short"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["isValid"] is False
    assert out["details"] == {"issue": "format_invalid"}


def test_scrape_unsupported_url(capsys):
    assert run_cli(["scrape", "https://unsplash.com/photos/abc"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["success"] is False
    assert out["error"].startswith("Unsupported platform URL")


def test_generate_from_saved_metadata_without_image(tmp_path, capsys):
    saved = tmp_path / "scrape.json"
    saved.write_text(json.dumps({"success": True, "data": {"platform": "mock", "title": "Red kite"}}),
                     encoding="utf-8")

    code = run_cli(["generate", "--metadata", str(saved), "--provider", "openai", "--api-key", "sk-abcdefghijklmnop"])

    assert code == 1
    out = json.loads(capsys.readouterr().out)
    assert out["error"] == "Image data is required for AI analysis"


def test_generate_needs_url_or_metadata():
    with pytest.raises(SystemExit):
        run_cli(["generate", "--provider", "openai"])


def test_bad_config_file_exits_with_2(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"unknown_setting": 1}), encoding="utf-8")
    assert run_cli(["--config", str(path), "platforms"]) == 2


def test_parser_rejects_unknown_provider():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["validate-key", "--provider", "midjourney"])


def test_serve_uses_config_file(tmp_path, monkeypatch):
    import uvicorn

    path = tmp_path / "config.json"
    path.write_text(json.dumps({"jpeg_quality": 70}), encoding="utf-8")
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    assert run_cli(["--config", str(path), "serve", "--port", "9001"]) == 0

    app, kwargs = calls[0]
    assert app.state.service.config.jpeg_quality == 70
    assert kwargs == {"host": "127.0.0.1", "port": 9001}


def test_serve_without_config_imports_app_by_name(monkeypatch):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    assert run_cli(["serve", "--reload"]) == 0
    assert calls == [("stockprompt.apis.app:app", {"host": "127.0.0.1", "port": 8000, "reload": True})]


def test_serve_rejects_reload_with_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit):
        run_cli(["--config", str(path), "serve", "--reload"])
