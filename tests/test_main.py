"""Tests for main module."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import ecr_cleanup.__main__ as main_module
from ecr_cleanup.__main__ import build_parser, main
from ecr_cleanup.base import Image, Page, Repository


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in [
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_PROFILE",
        "REGISTRY_ID",
        "DRY_RUN",
        "LOG_LEVEL",
        "GITHUB_STEP_SUMMARY",
    ]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def registry(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Mock the registry to avoid actual API calls."""
    mock_registry = MagicMock()
    mock_registry.batch_delete_images.side_effect = (
        lambda repo, digests, registry_id=None: (list(digests), [])
    )
    monkeypatch.setattr(
        "ecr_cleanup.__main__.init_registry",
        lambda settings: (mock_registry, "ECR: test"),
    )
    return mock_registry


def _images(n: int) -> list[Image]:
    return [Image(f"sha256:{i:02d}", 1700000000.0 + i) for i in range(n)]


class TestParser:
    def test_subcommand_required(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            build_parser().parse_args([])
        assert excinfo.value.code == 2

    def test_clean_requires_count_and_threshold(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["clean", "app", "--count", "3"])

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["clean", "app", "-c", "-1", "-t", "3"])

    def test_clean_arguments(self) -> None:
        args = build_parser().parse_args(
            ["--region", "eu-west-1", "clean", "app", "-c", "3", "-t", "10"]
        )
        assert args.region == "eu-west-1"
        assert args.repository == "app"
        assert args.count == 3
        assert args.threshold == 10
        assert args.dry_run is None


class TestListCommand:
    def test_list_repositories(
        self, registry: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        registry.list_repositories_page.return_value = Page(
            [Repository("web", "uri/web"), Repository("app", "uri/app")]
        )
        assert main(["list"]) == 0

        out = capsys.readouterr().out
        assert out.index("app") < out.index("web")
        assert "uri/app" in out

    def test_list_images(
        self, registry: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        registry.list_images_page.return_value = Page(_images(3))
        assert main(["list", "app"]) == 0

        out = capsys.readouterr().out
        assert out.index("sha256:02") < out.index("sha256:00")
        request = registry.list_images_page.call_args.args[0]
        assert request.repository_name == "app"

    def test_list_empty_registry(
        self, registry: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        registry.list_repositories_page.return_value = Page([])
        assert main(["list"]) == 1
        assert "no repositories found" in capsys.readouterr().err


class TestCleanCommand:
    def test_clean_deletes_oldest(self, registry: MagicMock) -> None:
        registry.list_images_page.return_value = Page(_images(12))
        assert main(["clean", "app", "--count", "3", "--threshold", "10"]) == 0

        registry.batch_delete_images.assert_called_once_with(
            "app", ["sha256:02", "sha256:01", "sha256:00"], registry_id=None
        )

    def test_clean_below_threshold(self, registry: MagicMock) -> None:
        registry.list_images_page.return_value = Page(_images(12))
        assert main(["clean", "app", "-c", "3", "-t", "15"]) == 0
        registry.batch_delete_images.assert_not_called()

    def test_clean_dry_run(self, registry: MagicMock) -> None:
        registry.list_images_page.return_value = Page(_images(12))
        assert main(["clean", "app", "-c", "3", "-t", "10", "--dry-run"]) == 0
        registry.batch_delete_images.assert_not_called()

    def test_clean_dry_run_from_environment(
        self, registry: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DRY_RUN", "true")
        registry.list_images_page.return_value = Page(_images(12))
        assert main(["clean", "app", "-c", "3", "-t", "10"]) == 0
        registry.batch_delete_images.assert_not_called()

    def test_clean_registry_id(
        self, registry: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        registry.list_images_page.return_value = Page(_images(2))
        assert (
            main(["--registry-id", "123456789012", "clean", "app", "-c", "1", "-t", "1"])
            == 0
        )
        assert registry.list_images_page.call_args.args[0].registry_id == "123456789012"
        registry.batch_delete_images.assert_called_once_with(
            "app", ["sha256:00"], registry_id="123456789012"
        )

    def test_clean_writes_summary(
        self,
        registry: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        summary = tmp_path / "summary.md"
        monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary))
        registry.list_images_page.return_value = Page(_images(12))

        assert main(["clean", "app", "-c", "3", "-t", "10"]) == 0
        content = summary.read_text()
        assert "Container Image Cleanup: app" in content
        assert "**Deleted: 3 images**" in content

    def test_clean_uses_clean_repository(
        self, registry: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls = []
        original = main_module.clean_repository

        def recording(*args, **kwargs):  # type: ignore[no-untyped-def]
            calls.append((args, kwargs))
            return original(*args, **kwargs)

        monkeypatch.setattr(main_module, "clean_repository", recording)
        registry.list_images_page.return_value = Page(_images(12))

        assert main(["clean", "app", "-c", "3", "-t", "10"]) == 0
        ((args, kwargs),) = calls
        assert args[1:] == ("app", 10, 3)
        assert kwargs["dry_run"] is False
        assert kwargs["batch_size"] == 100

    def test_clean_empty_repository(self, registry: MagicMock) -> None:
        registry.list_images_page.return_value = Page(None)
        assert main(["clean", "app", "-c", "3", "-t", "10"]) == 1
        registry.batch_delete_images.assert_not_called()


class TestMainErrors:
    def test_invalid_region(
        self, registry: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["--region", "moon-north-1", "list"]) == 1
        assert "unknown AWS region" in capsys.readouterr().err
        registry.list_repositories_page.assert_not_called()

    def test_invalid_log_level(
        self, registry: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert main(["list"]) == 1
