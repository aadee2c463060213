"""Tests for pi_picker.cli"""
import sys

import pytest
from typer.testing import CliRunner

from pi_picker.cli import app

runner = CliRunner()


@pytest.fixture
def words(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("foo.txt\nbar.txt\n\nfoobar.txt\n", encoding="utf-8")
    return path


class TestFilterCommand:
    def test_substring_from_file(self, words):
        result = runner.invoke(app, ["filter", "foo bar", str(words), "--matcher", "substring", "--plain"])
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["foobar.txt"]

    def test_fuzzy_ranking(self, words):
        result = runner.invoke(app, ["filter", "bar", str(words), "--plain"])
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["bar.txt", "foobar.txt"]

    def test_reads_stdin(self):
        result = runner.invoke(app, ["filter", "ap", "--plain"], input="apple\nbanana\n")
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines()[0] == "apple"

    def test_limit(self, words):
        result = runner.invoke(app, ["filter", "txt", str(words), "-m", "substring", "--plain", "-n", "2"])
        assert result.exit_code == 0, result.output
        assert len(result.stdout.splitlines()) == 2

    def test_no_match_exit_code(self, words):
        result = runner.invoke(app, ["filter", "zzz", str(words), "--plain"])
        assert result.exit_code == 1

    def test_bad_regexp_exit_code(self, words):
        result = runner.invoke(app, ["filter", "(", str(words), "--matcher", "regexp"])
        assert result.exit_code == 2

    def test_unknown_matcher(self, words):
        result = runner.invoke(app, ["filter", "x", str(words), "--matcher", "telepathy"])
        assert result.exit_code == 2

    def test_project_default_matcher(self, words, tmp_path):
        (tmp_path / ".pi").mkdir()
        (tmp_path / ".pi" / "picker.json").write_text('{"defaultMatcher": "regexp"}', encoding="utf-8")
        result = runner.invoke(app, ["filter", "^bar", str(words), "--plain"])
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["bar.txt"]


@pytest.mark.subprocess
class TestRunCommand:
    def test_ranks_command_output(self):
        code = "print('alpha'); print('beta')"
        result = runner.invoke(app, ["run", "et", "--plain", "--", sys.executable, "-c", code])
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["beta"]

    def test_no_output_matches(self):
        result = runner.invoke(app, ["run", "zzz", "--plain", "--", sys.executable, "-c", "print('alpha')"])
        assert result.exit_code == 1


class TestDebugFlag:
    def test_debug_log_written(self, words, tmp_path):
        result = runner.invoke(app, ["--debug", "filter", "foo", str(words), "--plain"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "picker" / "pi-picker-debug.log").exists()
