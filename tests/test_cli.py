"""Tests for the CLI module."""

import json
from unittest.mock import patch

import requests
from click.testing import CliRunner

from swarm_indexer.client.cli import index, search, status
from swarm_indexer.errors import IndexingCancelled, InvalidInputError
from swarm_indexer.metadata import MetadataStore
from swarm_indexer.models import IndexOptions, RootResult, RunStats


def finished_result(root, processed: int = 2, upserted: int = 5) -> RootResult:
    stats = RunStats(files_processed=processed, chunks_upserted=upserted)
    stats.languages.add("python")
    return RootResult(root=root, stats=stats)


@patch("swarm_indexer.client.cli.index_roots")
@patch("swarm_indexer.client.cli.get_embedding_client")
@patch("swarm_indexer.client.cli.SearchIndexClient")
class TestIndexCLI:
    """Tests for the index CLI command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_index_single_root(self, mock_index_class, mock_get_client, mock_index_roots, tmp_path):
        """Test indexing one root with explicit workers and batch size."""
        mock_index_class.return_value.database_exists.return_value = True
        mock_get_client.return_value.dimensions = 4
        mock_index_roots.return_value = [finished_result(tmp_path)]

        result = self.runner.invoke(index, [str(tmp_path), "--workers", "2", "--batch-size", "7"])

        assert result.exit_code == 0
        assert "Indexing 1 root(s) with 2 worker(s)" in result.output
        assert "files processed: 2" in result.output
        assert "chunks indexed:  5" in result.output
        assert "Indexing complete!" in result.output
        mock_index_class.assert_called_once_with(dimensions=4, batch_size=7)
        assert mock_index_roots.call_args.kwargs["options"] == IndexOptions(workers=2, batch_size=7)
        mock_index_class.return_value.close.assert_called_once()

    def test_index_unchanged_root(self, mock_index_class, mock_get_client, mock_index_roots, tmp_path):
        mock_index_class.return_value.database_exists.return_value = True
        mock_index_roots.return_value = [RootResult(root=tmp_path, skipped_unchanged=True)]

        result = self.runner.invoke(index, [str(tmp_path)])

        assert result.exit_code == 0
        assert "unchanged since last run, skipped" in result.output

    def test_index_root_error_fails_command(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        """Test that a failed root is reported and makes the command fail."""
        good = tmp_path / "good"
        bad = tmp_path / "bad"
        good.mkdir()
        bad.mkdir()
        mock_index_class.return_value.database_exists.return_value = True
        mock_index_roots.return_value = [
            finished_result(good),
            RootResult(root=bad, error=OSError("disk gone")),
        ]

        result = self.runner.invoke(index, [str(good), str(bad)])

        assert result.exit_code != 0
        assert f"✓ {good}" in result.output
        assert f"✗ {bad}: disk gone" in result.output
        assert "Indexing complete!" not in result.output

    def test_index_database_not_exists_no_flag(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        """Test that CLI aborts with helpful message when database doesn't exist."""
        mock_index_class.return_value.database_exists.return_value = False
        mock_index_class.return_value.database = "swarm-index"

        result = self.runner.invoke(index, [str(tmp_path)])

        assert result.exit_code != 0
        assert "Database 'swarm-index' does not exist" in result.output
        assert "--create-database" in result.output
        mock_index_roots.assert_not_called()

    def test_index_database_created_with_flag(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        """Test that CLI creates database when --create-database flag is used."""
        mock_index_class.return_value.database_exists.return_value = False
        mock_index_roots.return_value = [finished_result(tmp_path)]

        result = self.runner.invoke(index, [str(tmp_path), "--create-database"])

        assert result.exit_code == 0
        assert "Database created successfully" in result.output
        mock_index_class.return_value.create_database.assert_called_once()

    def test_index_database_creation_fails(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        """Test that CLI handles database creation failure gracefully."""
        mock_index_class.return_value.database_exists.return_value = False
        mock_index_class.return_value.create_database.side_effect = requests.ConnectionError(
            "Connection failed"
        )

        result = self.runner.invoke(index, [str(tmp_path), "--create-database"])

        assert result.exit_code != 0
        assert "Failed to create database" in result.output
        assert "Connection failed" in result.output
        mock_index_roots.assert_not_called()

    def test_index_cancelled(self, mock_index_class, mock_get_client, mock_index_roots, tmp_path):
        mock_index_class.return_value.database_exists.return_value = True
        mock_index_roots.side_effect = IndexingCancelled("indexing cancelled")

        result = self.runner.invoke(index, [str(tmp_path)])

        assert result.exit_code != 0
        assert "Indexing cancelled" in result.output
        mock_index_class.return_value.close.assert_called_once()

    def test_index_configuration_error(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        mock_get_client.side_effect = ValueError("Unsupported embedding service: foo")

        result = self.runner.invoke(index, [str(tmp_path)])

        assert result.exit_code != 0
        assert "Configuration error: Unsupported embedding service: foo" in result.output
        mock_index_roots.assert_not_called()

    def test_index_missing_argument(self, mock_index_class, mock_get_client, mock_index_roots):
        """Test index command with missing root argument."""
        result = self.runner.invoke(index, [])

        assert result.exit_code != 0
        assert "Missing argument" in result.output

    def test_index_nonexistent_directory(self, mock_index_class, mock_get_client, mock_index_roots):
        """Test index command with non-existent directory."""
        result = self.runner.invoke(index, ["/nonexistent/path"])

        assert result.exit_code != 0
        assert "does not exist" in result.output.lower()

    def test_index_rejects_zero_workers(
        self, mock_index_class, mock_get_client, mock_index_roots, tmp_path
    ):
        result = self.runner.invoke(index, [str(tmp_path), "--workers", "0"])

        assert result.exit_code != 0
        mock_index_roots.assert_not_called()


@patch("swarm_indexer.client.cli.get_embedding_client")
@patch("swarm_indexer.client.cli.SearchIndexClient")
class TestSearchCLI:
    """Tests for the search CLI command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_search_success(self, mock_index_class, mock_get_client, create_test_record):
        """Test search command successfully returns results."""
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = True
        search_index.search.return_value = [
            create_test_record(path="src/retry.py", start_line=10, score=0.95),
            create_test_record(path="docs/retry.md", start_line=1, score=0.87),
        ]
        mock_get_client.return_value.embed.return_value = [0.1, 0.2, 0.3, 0.4]

        result = self.runner.invoke(search, ["retry logic"])

        assert result.exit_code == 0
        assert "Found 2 result(s) for 'retry logic'" in result.output
        assert "src/retry.py:10" in result.output
        assert "docs/retry.md:1" in result.output
        assert "0.9500" in result.output
        assert "0.8700" in result.output
        mock_get_client.return_value.embed.assert_called_once_with("retry logic")
        search_index.search.assert_called_once_with("retry logic", [0.1, 0.2, 0.3, 0.4], 10)
        search_index.close.assert_called_once()

    def test_search_text_only_skips_embedding(self, mock_index_class, mock_get_client):
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = True
        search_index.search.return_value = []

        result = self.runner.invoke(search, ["retry logic", "--text-only", "--limit", "3"])

        assert result.exit_code == 0
        mock_get_client.assert_not_called()
        search_index.search.assert_called_once_with("retry logic", None, 3)

    def test_search_json_output(self, mock_index_class, mock_get_client, create_test_record):
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = True
        search_index.search.return_value = [create_test_record(score=0.5)]

        result = self.runner.invoke(search, ["main", "--json", "--text-only"])

        assert result.exit_code == 0
        [item] = json.loads(result.stdout)
        assert item["path"] == "src/main.py"
        assert item["score"] == 0.5
        assert "embedding" not in item

    def test_search_no_results(self, mock_index_class, mock_get_client):
        """Test search command when no results found."""
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = True
        search_index.search.return_value = []

        result = self.runner.invoke(search, ["nonexistent query", "--text-only"])

        assert result.exit_code == 0
        assert "No results found" in result.output

    def test_search_database_not_exists(self, mock_index_class, mock_get_client):
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = False

        result = self.runner.invoke(search, ["query"])

        assert result.exit_code != 0
        assert "does not exist" in result.output
        search_index.search.assert_not_called()

    def test_search_invalid_input(self, mock_index_class, mock_get_client):
        search_index = mock_index_class.return_value
        search_index.database_exists.return_value = True
        search_index.search.side_effect = InvalidInputError("query text or vector is required")

        result = self.runner.invoke(search, ["", "--text-only"])

        assert result.exit_code != 0
        assert "query text or vector is required" in result.output


@patch("swarm_indexer.client.cli.SearchIndexClient")
class TestStatusCLI:
    """Tests for the status CLI command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_status_never_indexed(self, mock_index_class, tmp_path):
        mock_index_class.return_value.count_documents.return_value = 42

        result = self.runner.invoke(status, [str(tmp_path)])

        assert result.exit_code == 0
        assert "never indexed" in result.output
        assert "Search index contains 42 chunk(s)" in result.output

    def test_status_up_to_date_then_changed(self, mock_index_class, tmp_path):
        """Test that status reports whether a root changed since its last run."""
        (tmp_path / "main.py").write_text("print('hi')\n")
        store = MetadataStore()
        store.save_run(tmp_path, store.compute_hash(tmp_path), RunStats(files_processed=1), "python")
        mock_index_class.return_value.count_documents.return_value = 1

        result = self.runner.invoke(status, [str(tmp_path)])
        assert "up to date" in result.output
        assert "project type:   python" in result.output

        (tmp_path / "extra.py").write_text("x = 1\n")
        result = self.runner.invoke(status, [str(tmp_path)])
        assert "changed since last run" in result.output

    def test_status_ravendb_unreachable(self, mock_index_class, tmp_path):
        mock_index_class.return_value.count_documents.side_effect = requests.ConnectionError(
            "refused"
        )

        result = self.runner.invoke(status, [str(tmp_path)])

        assert result.exit_code == 0
        assert "Could not reach RavenDB" in result.output
        mock_index_class.return_value.close.assert_called_once()
