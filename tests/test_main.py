import json
from pathlib import Path
from unittest import mock

import main
from domain.scan_errors import ConfigurationError, NoTextFoundError
from domain.scan_models import ScanOutcome, SearchResult
from domain.scan_status import ScanStatus


def test_parse_scan_arguments():
    args = main.parse_arguments(["--log-level", "DEBUG", "scan", "cover.png", "--no-auto-detect", "--details"])
    assert args.command == "scan"
    assert args.image == Path("cover.png")
    assert args.no_auto_detect is True
    assert args.no_enhance is False
    assert args.details is True
    assert args.log_level == "DEBUG"


def test_parse_serve_arguments():
    args = main.parse_arguments(["serve", "--port", "9000"])
    assert args.command == "serve"
    assert args.port == 9000
    assert args.host == "localhost"


def test_configuration_failure_exit_code(tmp_path):
    with mock.patch("main.setup_logging"), \
            mock.patch("main.load_settings", side_effect=RuntimeError("TMDB_API_KEY manquante")):
        assert main.main(["scan", str(tmp_path / "cover.jpg")]) == main.EXIT_CONFIG


def test_pipeline_configuration_error_exit_code(tmp_path):
    with mock.patch("main.setup_logging"), \
            mock.patch("main.load_settings"), \
            mock.patch("main.build_pipeline", side_effect=ConfigurationError()):
        assert main.main(["scan", str(tmp_path / "cover.jpg")]) == main.EXIT_CONFIG


class FakePipeline:
    def __init__(self, outcome=None, error=None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    async def scan_cover_image(self, data, options=None):
        self.calls.append((data, options))
        if self.error is not None:
            raise self.error
        return self.outcome


def _run_scan(tmp_path, pipeline, *extra):
    image = tmp_path / "cover.png"
    image.write_bytes(b"png-bytes")
    settings = mock.Mock(auto_detect=True)
    with mock.patch("main.setup_logging"), \
            mock.patch("main.load_settings", return_value=settings), \
            mock.patch("main.build_pipeline", return_value=pipeline):
        return main.main(["scan", str(image), *extra])


def test_scan_prints_outcome(tmp_path, capsys):
    result = SearchResult(id=27205, title="Inception")
    pipeline = FakePipeline(ScanOutcome(ScanStatus.AUTO_SELECTED, "Inception", [result], result, 1.0))

    assert _run_scan(tmp_path, pipeline, "--no-enhance") == main.EXIT_OK

    data, options = pipeline.calls[0]
    assert data == b"png-bytes"
    assert options.mime_type == "image/png"
    assert options.enhance is False
    assert options.auto_detect is True
    printed = json.loads(capsys.readouterr().out)
    assert printed["status"] == "auto_selected"


def test_scan_failure_exit_code(tmp_path):
    assert _run_scan(tmp_path, FakePipeline(error=NoTextFoundError())) == main.EXIT_SCAN_FAILED


def test_missing_image(tmp_path):
    with mock.patch("main.setup_logging"), \
            mock.patch("main.load_settings"), \
            mock.patch("main.build_pipeline"):
        assert main.main(["scan", str(tmp_path / "absent.jpg")]) == main.EXIT_SCAN_FAILED
