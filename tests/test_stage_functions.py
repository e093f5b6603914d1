"""Tests for staging Cloud Functions into self-contained deploy directories."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "stage_functions.py"


def load_script():
    spec = importlib.util.spec_from_file_location("stage_functions", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


stage_functions = load_script()


class TestStageFunction:
    """Tests for stage_function against the real repo layout."""

    def test_lists_every_function(self):
        assert stage_functions.list_functions() == ["pdf_webhook", "pdf_webhook_ptc", "process_sales_pdf"]

    @pytest.mark.parametrize("name", ["pdf_webhook", "pdf_webhook_ptc", "process_sales_pdf"])
    def test_package_shipped_beside_main(self, tmp_path, name):
        target = stage_functions.stage_function(name, tmp_path)

        assert target == tmp_path / name
        assert (target / "main.py").is_file()
        assert (target / "boxoffice" / "__init__.py").is_file()
        assert (target / "boxoffice" / "ingest.py").is_file()
        assert (target / "boxoffice" / "backup.py").is_file()
        assert not list(target.rglob("__pycache__"))

        main_source = (target / "main.py").read_text()
        assert "from boxoffice." in main_source

    def test_requirements_match_project(self, tmp_path):
        target = stage_functions.stage_function("pdf_webhook", tmp_path)
        requirements = (target / "requirements.txt").read_text().split()

        assert requirements == stage_functions.project_requirements()
        assert "functions-framework" in requirements
        assert "pdfplumber" in requirements

    def test_restaging_replaces_old_copy(self, tmp_path):
        target = stage_functions.stage_function("pdf_webhook", tmp_path)
        (target / "stale.txt").write_text("old")

        stage_functions.stage_function("pdf_webhook", tmp_path)
        assert not (target / "stale.txt").exists()

    def test_unknown_function(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="no_such_function"):
            stage_functions.stage_function("no_such_function", tmp_path)
