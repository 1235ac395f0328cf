"""Tests for the command line interface."""

import json

from legacy_bridge.cli import main

from factories import spreadsheet_config


class TestCLI:
    def test_templates(self, capsys):
        assert main(["templates", "desktop_bookkeeping"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["client_mappings"][0]["source_field"] == "Customer_Name"

    def test_templates_to_file(self, tmp_path):
        target = tmp_path / "templates.json"

        assert main(["templates", "spreadsheet", "--output", str(target)]) == 0

        assert json.loads(target.read_text())["business_mappings"][0]["target_field"] == "business_name"

    def test_analyze(self, client_file, capsys):
        assert main(["analyze", "--input", str(client_file), "--system-type", "csv"]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["detected_fields"] == ["Client Name", "Email Address", "Client Type"]

    def test_analyze_missing_file(self, tmp_path, capsys):
        assert main(["analyze", "--input", str(tmp_path / "nope.csv"), "--system-type", "csv"]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_run(self, client_file, tmp_path, capsys):
        config_path = tmp_path / "job.json"
        config_path.write_text(json.dumps(spreadsheet_config(client_file)))
        records_path = tmp_path / "records.json"

        code = main([
            "run", "--config", str(config_path), "--tenant", "tenant-1",
            "--records", str(records_path), "--quiet",
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "IMPORT COMPLETE" in out
        assert "Succeeded: 2" in out
        assert len(json.loads(records_path.read_text())["records"]) == 3

    def test_run_failed_import(self, tmp_path, capsys):
        config_path = tmp_path / "job.json"
        config_path.write_text(json.dumps(spreadsheet_config(tmp_path / "missing.csv")))

        assert main(["run", "--config", str(config_path), "--tenant", "tenant-1", "--quiet"]) == 1
        assert "IMPORT FAILED" in capsys.readouterr().out

    def test_run_invalid_config(self, tmp_path, capsys):
        config_path = tmp_path / "job.json"
        config_path.write_text(json.dumps({"name": "", "system_type": "csv"}))

        assert main(["run", "--config", str(config_path), "--tenant", "tenant-1"]) == 2

    def test_no_command(self, capsys):
        assert main([]) == 1
