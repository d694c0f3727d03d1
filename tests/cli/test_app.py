"""Tests for the plfa-site command line."""

from __future__ import annotations

import pytest
from rich.console import Console
from typer.testing import CliRunner

from plfa_site.cli import app as app_module
from plfa_site.cli.app import app
from plfa_site.engine.build import Toolchain

runner = CliRunner()

STATIC_SITE = {
    "public/fonts/a.woff": b"wOFF",
    "css/a.css": "a {\n  color: red;\n}\n",
    "notes.txt": "unmatched\n",
}


@pytest.fixture(autouse=True)
def _offline(monkeypatch: pytest.MonkeyPatch, fake_tools) -> None:
    monkeypatch.setattr(app_module, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(app_module, "console", Console(width=200))
    monkeypatch.setattr(Toolchain, "from_config", classmethod(lambda cls, config: fake_tools(config.paths.site_root)))


def test_build_writes_outputs(write_site) -> None:
    root = write_site(STATIC_SITE)

    result = runner.invoke(app, ["build", "--site-root", str(root)])

    assert result.exit_code == 0, result.output
    assert "Build complete" in result.output
    assert (root / "_site" / "public" / "fonts" / "a.woff").read_bytes() == b"wOFF"
    assert (root / "_site" / "public" / "css" / "style.css").read_text() == "a{color:red}\n"


def test_build_output_option(write_site, tmp_path) -> None:
    root = write_site(STATIC_SITE)
    output = tmp_path / "elsewhere"

    result = runner.invoke(app, ["build", "-C", str(root), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert (output / "public" / "fonts" / "a.woff").is_file()
    assert not (root / "_site").exists()


def test_build_fails_when_a_document_fails(write_site) -> None:
    root = write_site({**STATIC_SITE, "README.md": "# No permalink\n"})

    result = runner.invoke(app, ["build", "--site-root", str(root)])

    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "README.md" in result.output
    assert (root / "_site" / "public" / "fonts" / "a.woff").is_file()


def test_build_reports_configuration_errors(write_site) -> None:
    root = write_site({**STATIC_SITE, ".plfa/config.yml": "site: [unclosed\n"})

    result = runner.invoke(app, ["build", "--site-root", str(root)])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_rules_lists_assignments(write_site) -> None:
    root = write_site({**STATIC_SITE, "README.md": "# No permalink\n"})

    result = runner.invoke(app, ["rules", "--site-root", str(root)])

    assert result.exit_code == 0, result.output
    assert "public/fonts/a.woff" in result.output
    assert "4 matched, 1 unmatched" in result.output
    assert "missing 'permalink'" in result.output


def test_clean_removes_output(write_site) -> None:
    root = write_site({**STATIC_SITE, "_site/index.html": "old"})

    result = runner.invoke(app, ["clean", "--site-root", str(root)])

    assert result.exit_code == 0, result.output
    assert "Removed" in result.output
    assert not (root / "_site").exists()
