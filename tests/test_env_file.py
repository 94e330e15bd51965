"""
Tests for the environment file — token lookup and repository state.
"""

from pathlib import Path

from hostprep.core.persistence import env_file


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestReadEnvValues:
    def test_missing_file(self, tmp_path: Path):
        assert env_file.read_env_values(tmp_path / ".env") == {}

    def test_parses_and_strips(self, tmp_path: Path):
        env = _write(tmp_path / ".env", (
            "# comment\n"
            "\n"
            "export FOO=bar\n"
            'QUOTED="hello world"\n'
            "SINGLE='x'\n"
            "NOEQUALS\n"
        ))
        assert env_file.read_env_values(env) == {
            "FOO": "bar", "QUOTED": "hello world", "SINGLE": "x",
        }


class TestReadToken:
    def test_present(self, tmp_path: Path):
        env = _write(tmp_path / ".env", "OTHER=1\nGITHUB_TOKEN=ghp_abc123\n")
        assert env_file.read_token(env) == "ghp_abc123"

    def test_first_word_only(self, tmp_path: Path):
        env = _write(tmp_path / ".env", "GITHUB_TOKEN=ghp_abc123 trailing\n")
        assert env_file.read_token(env) == "ghp_abc123"

    def test_missing_or_empty(self, tmp_path: Path):
        assert env_file.read_token(_write(tmp_path / "a.env", "OTHER=1\n")) is None
        assert env_file.read_token(_write(tmp_path / "b.env", "GITHUB_TOKEN=\n")) is None


class TestUpdateKeys:
    def test_replaces_existing_and_keeps_others(self, tmp_path: Path):
        env = _write(tmp_path / ".env", "GITHUB_TOKEN=t0ken\nGIT_REPO_BRANCH=old\n")
        env_file.update_keys(env, {"GIT_REPO_BRANCH": "main"})

        lines = env.read_text().splitlines()
        assert lines == ["GITHUB_TOKEN=t0ken", "GIT_REPO_BRANCH=main"]

    def test_idempotent(self, tmp_path: Path):
        env = _write(tmp_path / ".env", "GITHUB_TOKEN=t0ken\n")
        env_file.update_keys(env, {"GIT_REPO_NAME": "api"})
        env_file.update_keys(env, {"GIT_REPO_NAME": "api"})
        assert env.read_text().count("GIT_REPO_NAME=") == 1

    def test_creates_file(self, tmp_path: Path):
        env = tmp_path / "sub" / ".env"
        env_file.update_keys(env, {"A": "1"})
        assert env.read_text() == "A=1\n"


class TestRepoInfo:
    def test_save_and_load(self, tmp_path: Path):
        repo = tmp_path / "api"
        (repo / ".git").mkdir(parents=True)
        env = _write(tmp_path / ".env", "GITHUB_TOKEN=t0ken\n")

        env_file.save_repo_info(env, org="acme", name="api", branch="main", path=repo)
        previous = env_file.load_previous_repo(env)

        assert previous is not None
        assert previous.org == "acme"
        assert previous.name == "api"
        assert previous.branch == "main"
        assert previous.path == repo
        assert env_file.read_token(env) == "t0ken"

    def test_load_requires_git_checkout(self, tmp_path: Path):
        repo = tmp_path / "api"
        repo.mkdir()
        env = tmp_path / ".env"
        env_file.save_repo_info(env, org="acme", name="api", branch="main", path=repo)
        assert env_file.load_previous_repo(env) is None

    def test_load_requires_existing_dir(self, tmp_path: Path):
        env = tmp_path / ".env"
        env_file.save_repo_info(env, org="acme", name="api", branch="", path=tmp_path / "gone")
        assert env_file.load_previous_repo(env) is None

    def test_load_without_keys(self, tmp_path: Path):
        env = _write(tmp_path / ".env", "GITHUB_TOKEN=t0ken\n")
        assert env_file.load_previous_repo(env) is None
