"""Tests for the labocr command line, with the OCR engine faked out."""

import json

import pytest

from labocr import cli

from conftest import FakeAdapter, make_image_bytes


@pytest.fixture(autouse=True)
def fake_engine(monkeypatch):
    adapters = []

    def create_adapter(settings):
        adapter = FakeAdapter()
        adapters.append(adapter)
        return adapter

    monkeypatch.setattr(cli, "create_adapter", create_adapter)
    return adapters


@pytest.fixture
def images_dir(tmp_path):
    directory = tmp_path / "images"
    directory.mkdir()
    for name in ("test1.jpg", "test2.png"):
        (directory / name).write_bytes(make_image_bytes())
    return directory


def write_truth(path, rows):
    path.write_text(json.dumps(rows))
    return path


class TestExtract:
    def test_prints_fields(self, images_dir, capsys, fake_engine):
        exit_code = cli.main(["extract", str(images_dir / "test1.jpg")])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Reported Date:    19/03/2025" in out
        assert "Month:            march" in out
        assert "Serum Creatinine: 1.42" in out
        assert fake_engine[0].closed

    def test_json_output(self, images_dir, capsys):
        exit_code = cli.main(["extract", "--json", str(images_dir / "test1.jpg"), str(images_dir / "test2.png")])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert [item["result"]["reportedDate"] for item in payload] == ["19/03/2025", "19/03/2025"]

    def test_bad_image_sets_exit_code(self, tmp_path, capsys):
        bad = tmp_path / "bad.jpg"
        bad.write_bytes(b"garbage")

        exit_code = cli.main(["extract", str(bad)])

        assert exit_code == 1
        assert "Error processing" in capsys.readouterr().err


class TestEvaluate:
    def test_summary(self, tmp_path, images_dir, capsys):
        truth = write_truth(tmp_path / "truth.json", [
            {"image": "test1.jpg", "reportedDate": "19/03/2025", "serumCreatinine": "1.42"},
            {"image": "test2.png", "reportedDate": "19/03/2025", "serumCreatinine": "1.4"},
            {"image": "missing.jpg", "reportedDate": "19/03/2025", "serumCreatinine": "1.42"},
        ])

        exit_code = cli.main(["evaluate", str(truth), "--images-dir", str(images_dir)])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Images: 3 (evaluated 2, excluded 1)" in out
        assert "FAILED (ImageDecodeError)" in out
        assert "Overall Word-Level Accuracy (Date): 100.00%" in out
        assert "Overall Character-Level Accuracy (Creatinine): 100.00%" in out
        assert "Overall Levenshtein Distance (Creatinine): 0.50" in out

    def test_json_report(self, tmp_path, images_dir, capsys):
        truth = write_truth(tmp_path / "truth.json", [
            {"image": "test1.jpg", "reportedDate": "18/03/2025", "serumCreatinine": "1.42"},
        ])

        exit_code = cli.main(["evaluate", str(truth), "--images-dir", str(images_dir), "--json"])

        report = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert report["evaluated"] == 1
        assert report["mean"] == {"wordAccuracy": 0, "charAccuracy": 100, "levenshteinDistance": 0}

    def test_parallel_workers(self, tmp_path, images_dir, capsys, fake_engine):
        truth = write_truth(tmp_path / "truth.json", [
            {"image": "test1.jpg", "reportedDate": "19/03/2025", "serumCreatinine": "1.42"},
            {"image": "test2.png", "reportedDate": "19/03/2025", "serumCreatinine": "1.42"},
        ])

        exit_code = cli.main(["evaluate", str(truth), "--images-dir", str(images_dir), "--workers", "2"])

        assert exit_code == 0
        assert len(fake_engine) == 2
        assert all(adapter.closed for adapter in fake_engine)

    def test_nothing_evaluated(self, tmp_path, capsys):
        truth = write_truth(tmp_path / "truth.json", [
            {"image": "missing.jpg", "reportedDate": "19/03/2025", "serumCreatinine": "1.42"},
        ])

        exit_code = cli.main(["evaluate", str(truth), "--images-dir", str(tmp_path)])

        assert exit_code == 1
        assert "no overall accuracy" in capsys.readouterr().out

    def test_invalid_ground_truth(self, tmp_path, capsys):
        truth = write_truth(tmp_path / "truth.json", [])

        exit_code = cli.main(["evaluate", str(truth)])

        assert exit_code == 2
        assert "empty" in capsys.readouterr().err


class TestBenchmark:
    def test_reports_averages(self, images_dir, capsys):
        exit_code = cli.main(["benchmark", str(images_dir)])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert out.count("Processed:") == 2
        assert "Average Performance Metrics:" in out

    def test_empty_directory(self, tmp_path, capsys):
        exit_code = cli.main(["benchmark", str(tmp_path)])
        assert exit_code == 1
        assert "No images found" in capsys.readouterr().err
