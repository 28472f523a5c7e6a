"""Unit tests for the command-line interface."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from easyvinted.publisher.models import PublicationResult
from easyvinted.utils.exceptions import SessionError
from easyvinted.worker import cli
from easyvinted.worker.job_processor import BatchSummary, JobOutcome, OutcomeStatus


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "vinted": {"session_file": str(tmp_path / "session.json")},
        "publisher": {"show_progress": False},
        "queue": {"supabase_url": "https://x.supabase.co", "supabase_key": "key"},
        "credentials": {"email": "seller@example.com", "password": "s3cret"},
    }))
    return path


@pytest.fixture
def fake_processor(monkeypatch):
    processor = MagicMock()
    monkeypatch.setattr(cli, "create_supabase_client", AsyncMock(return_value=MagicMock()))
    monkeypatch.setattr(cli, "build_job_processor", MagicMock(return_value=processor))
    return processor


class TestParseArgs:
    """Test argument parsing."""

    def test_run(self):
        """Test the run command with global options."""
        args = cli.parse_args(["--log-level", "DEBUG", "--no-headless", "run"])
        assert args.command == "run"
        assert args.log_level == "DEBUG"
        assert args.headless is False

    def test_headless_default(self):
        """Test headless is left to config unless given."""
        assert cli.parse_args(["run"]).headless is None

    def test_enqueue(self):
        """Test enqueue takes an article id and an optional time."""
        args = cli.parse_args(["enqueue", "a1", "--run-at", "2026-10-20T08:00:00+02:00"])
        assert args.article_id == "a1"
        assert args.run_at == "2026-10-20T08:00:00+02:00"

    def test_command_required(self):
        """Test a command must be given."""
        with pytest.raises(SystemExit):
            cli.parse_args([])


class TestMain:
    """Test command dispatch and exit codes."""

    @pytest.mark.asyncio
    async def test_missing_config_file(self, tmp_path):
        """Test an explicit missing config exits with 1."""
        assert await cli.main(["--config", str(tmp_path / "missing.yaml"), "run"]) == 1

    @pytest.mark.asyncio
    async def test_missing_credentials(self, tmp_path):
        """Test run refuses to start without credentials."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"queue": {"supabase_url": "https://x.supabase.co", "supabase_key": "k"}}))
        assert await cli.main(["--config", str(path), "run"]) == 1

    @pytest.mark.asyncio
    async def test_run(self, config_file, fake_processor, capsys):
        """Test run prints the batch summary."""
        summary = BatchSummary()
        summary.record(JobOutcome("j1", "a1", OutcomeStatus.SUCCESS, vinted_url="https://www.vinted.fr/items/1"))
        fake_processor.run = AsyncMock(return_value=summary)

        assert await cli.main(["--config", str(config_file), "run"]) == 0
        assert "Succeeded: 1" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_run_session_failure(self, config_file, fake_processor):
        """Test a session failure exits with 1."""
        fake_processor.run = AsyncMock(side_effect=SessionError("Could not establish marketplace session"))
        assert await cli.main(["--config", str(config_file), "run"]) == 1

    @pytest.mark.asyncio
    async def test_publish(self, config_file, fake_processor, capsys):
        """Test publish reports the listing URL."""
        fake_processor.publish_article = AsyncMock(
            return_value=PublicationResult.succeeded("a1", "https://www.vinted.fr/items/1")
        )

        assert await cli.main(["--config", str(config_file), "publish", "a1"]) == 0
        assert "https://www.vinted.fr/items/1" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_publish_failure(self, config_file, fake_processor):
        """Test a failed publication exits with 1."""
        fake_processor.publish_article = AsyncMock(return_value=PublicationResult.failed("a1", "Timed out"))
        assert await cli.main(["--config", str(config_file), "publish", "a1"]) == 1

    @pytest.mark.asyncio
    async def test_headless_override_does_not_leak(self, config_file, fake_processor):
        """Test the CLI flag does not modify the cached configuration."""
        fake_processor.run = AsyncMock(return_value=BatchSummary())

        await cli.main(["--config", str(config_file), "--no-headless", "run"])

        config = cli.build_job_processor.call_args.args[0]
        assert config.vinted.headless is False
        assert cli.get_config().vinted.headless is True
