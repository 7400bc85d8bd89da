"""Test the command-line interface"""

import logging

import pytest
import yaml
from click.testing import CliRunner

from conftest import FakeRemote, make_profile, make_release
from discshelf import __version__
from discshelf.catalog.models import Folders
from discshelf.cli import cli
from discshelf.core import Database, default_config, load_config, save_config, shutdown_logging
from discshelf.core.exceptions import RemoteUnavailable


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI replaces the root handlers; put pytest's back afterwards"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    shutdown_logging()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def environment(monkeypatch, temp_dir):
    monkeypatch.setattr("discshelf.core.config.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.delenv("DISCOGS_USERNAME", raising=False)
    monkeypatch.delenv("DISCOGS_TOKEN", raising=False)
    monkeypatch.delenv("DISCSHELF_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(temp_dir / "share"))
    return temp_dir


@pytest.fixture
def config_path(environment):
    """A saved configuration with its store under the temp directory"""
    path = environment / "config" / "discshelf" / "config.yaml"
    save_config(default_config("johndoe", "secret", timezone=0), path)
    return path


@pytest.fixture
def store(config_path):
    return Database(load_config(config_path).storage.database_path)


@pytest.fixture
def synced_store(store, sample_folders):
    sample_folders.add("Collection", make_release(100, "Blue", "Joni Mitchell", 1971))
    store.commit(sample_folders, make_profile(collection=4, wantlist=1))
    return store


@pytest.fixture
def remote(monkeypatch):
    remote = FakeRemote(
        folders={"Collection": [[make_release(42, "Kind of Blue", "Miles Davis", 1959)]]},
        wantlist=[[make_release(11, "Blue Train", "John Coltrane", 1957)]],
    )
    monkeypatch.setattr("discshelf.catalog.service.DiscogsClient", lambda config: remote)
    return remote


@pytest.fixture
def runner():
    return CliRunner()


class TestUpdate:
    """Test the update command"""

    def test_update_mirrors_remote(self, runner, config_path, store, remote):
        """Test update mirrors remote"""
        result = runner.invoke(cli, ["--config", str(config_path), "update"])

        assert result.exit_code == 0, result.output
        assert "Updated: 1 release(s) in 1 folder(s), 1 in wantlist" in result.output
        folders, _, profile = store.load()
        assert [r.id for r in folders.collection_releases()] == [42]
        assert profile.username == "johndoe"

    def test_update_stores_new_credentials(self, runner, config_path, remote):
        """Test update stores new credentials"""
        result = runner.invoke(cli, ["--config", str(config_path), "update", "-u", "janedoe", "-t", "new"])

        assert result.exit_code == 0, result.output
        saved = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert saved["discogs"]["username"] == "janedoe"
        assert saved["discogs"]["token"] == "new"

    def test_update_keeps_environment_token_out_of_file(self, runner, config_path, remote, monkeypatch):
        """Test -u rewrites only the username even when the token comes from the environment"""
        monkeypatch.setenv("DISCOGS_TOKEN", "env-token")

        result = runner.invoke(cli, ["--config", str(config_path), "update", "-u", "janedoe"])

        assert result.exit_code == 0, result.output
        saved = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert saved["discogs"]["username"] == "janedoe"
        assert saved["discogs"]["token"] == "secret"

    def test_auth_failure_exit_code(self, runner, config_path, store, remote):
        """Test auth failure exit code"""
        remote.failures[("profile",)] = [RemoteUnavailable("Discogs rejected the credentials", is_auth_error=True)]

        result = runner.invoke(cli, ["--config", str(config_path), "update"])

        assert result.exit_code == 3
        assert "Discogs error" in result.output
        assert "Check your username and token" in result.output
        assert not store.db_path.exists()

    def test_failed_update_keeps_previous_catalog(self, runner, config_path, synced_store, remote):
        """Test failed update keeps previous catalog"""
        before = synced_store.db_path.read_bytes()
        remote.failures[("wantlist", 1)] = [RemoteUnavailable("token revoked", is_auth_error=True)]

        result = runner.invoke(cli, ["--config", str(config_path), "update"])

        assert result.exit_code == 3
        assert synced_store.db_path.read_bytes() == before


class TestQuery:
    """Test the query command"""

    def test_found(self, runner, config_path, synced_store):
        """Test a matching query prints the release details"""
        result = runner.invoke(cli, ["--config", str(config_path), "query", "kind", "of", "blue"])

        assert result.exit_code == 0, result.output
        assert "Kind of Blue" in result.output
        assert "Miles Davis" in result.output
        assert "1959" in result.output
        assert "Columbia" in result.output

    def test_not_found(self, runner, config_path, synced_store):
        """Test a query with no match says so"""
        result = runner.invoke(cli, ["--config", str(config_path), "query", "nevermind"])
        assert result.exit_code == 0
        assert "Nothing found for 'nevermind'" in result.output

    def test_wantlist(self, runner, config_path, synced_store):
        """Test --wantlist searches the wantlist"""
        result = runner.invoke(cli, ["--config", str(config_path), "query", "--wantlist", "blue train"])
        assert result.exit_code == 0
        assert "Blue Train" in result.output

    def test_before_first_update(self, runner, config_path):
        """Test before first update"""
        result = runner.invoke(cli, ["--config", str(config_path), "query", "anything"])
        assert result.exit_code == 4
        assert "Error:" in result.output


class TestListen:
    """Test the listen command"""

    def test_single_match_is_logged(self, runner, config_path, synced_store):
        """Test single match is logged"""
        result = runner.invoke(cli, ["--config", str(config_path), "listen", "abbey road"])

        assert result.exit_code == 0, result.output
        assert "Listening to Abbey Road - The Beatles (1969)" in result.output
        _, listenlog, _ = synced_store.load()
        assert [title for _, title in listenlog.items()] == ["Abbey Road"]

    def test_several_matches_prompt(self, runner, config_path, synced_store):
        """Test several matches prompt"""
        result = runner.invoke(cli, ["--config", str(config_path), "listen", "blue"], input="2\n")

        assert result.exit_code == 0, result.output
        assert "[1] Kind of Blue - Miles Davis (1959)" in result.output
        assert "[2] Blue - Joni Mitchell (1971)" in result.output
        _, listenlog, _ = synced_store.load()
        assert [title for _, title in listenlog.items()] == ["Blue"]

    def test_wantlist_is_not_searched(self, runner, config_path, synced_store):
        """Test wantlist is not searched"""
        result = runner.invoke(cli, ["--config", str(config_path), "listen", "blue train"])

        assert result.exit_code == 0
        assert "Nothing in your collection matches" in result.output
        _, listenlog, _ = synced_store.load()
        assert len(listenlog) == 0


class TestRandom:
    """Test the random command"""

    def test_nolog(self, runner, config_path, store):
        """Test --nolog picks without logging a listen"""
        folders = Folders()
        folders.add("Collection", make_release(42, "Kind of Blue", "Miles Davis", 1959))
        store.commit(folders, make_profile(collection=1))

        result = runner.invoke(cli, ["--config", str(config_path), "random", "--nolog"])

        assert result.exit_code == 0, result.output
        assert "Your random pick: Kind of Blue - Miles Davis (1959)" in result.output
        assert "Logged at" not in result.output
        _, listenlog, _ = store.load()
        assert len(listenlog) == 0

    def test_logs_by_default(self, runner, config_path, synced_store):
        """Test logs by default"""
        result = runner.invoke(cli, ["--config", str(config_path), "random"])

        assert result.exit_code == 0, result.output
        assert "Logged at" in result.output
        _, listenlog, _ = synced_store.load()
        assert len(listenlog) == 1

    def test_empty_collection(self, runner, config_path):
        """Test empty collection"""
        result = runner.invoke(cli, ["--config", str(config_path), "random"])
        assert result.exit_code == 4


class TestProfileAndLog:
    """Test the profile and log commands"""

    def test_profile(self, runner, config_path, synced_store):
        """Test the profile summary is printed"""
        result = runner.invoke(cli, ["--config", str(config_path), "profile"])

        assert result.exit_code == 0, result.output
        assert "johndoe" in result.output
        assert "Collection:     4" in result.output
        assert "average 4.50" in result.output

    def test_log_lists_listens(self, runner, config_path, synced_store):
        """Test log lists listens"""
        runner.invoke(cli, ["--config", str(config_path), "listen", "abbey road"])
        result = runner.invoke(cli, ["--config", str(config_path), "log"])

        assert result.exit_code == 0, result.output
        assert "Abbey Road" in result.output

    def test_empty_log(self, runner, config_path):
        """Test empty log"""
        result = runner.invoke(cli, ["--config", str(config_path), "log"])
        assert result.exit_code == 0
        assert "No listens logged yet" in result.output


class TestGlobalOptions:
    """Test first run, --version and config errors"""

    def test_version(self, runner):
        """Test --version prints the package version"""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_first_run_prompts_and_saves(self, runner, environment):
        """Test first run prompts and saves"""
        path = environment / "fresh" / "config.yaml"

        result = runner.invoke(cli, ["--config", str(path), "log"], input="johndoe\nsecret\n8\n")

        assert result.exit_code == 0, result.output
        assert "Configuration saved to" in result.output
        assert "No listens logged yet" in result.output
        config = load_config(path)
        assert config.discogs.username == "johndoe"
        assert config.display.timezone == 8.0

    def test_invalid_config_exit_code(self, runner, environment):
        """Test invalid config exit code"""
        path = environment / "config.yaml"
        path.write_text("discogs: [unclosed", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(path), "log"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_unexpected_error_exit_code(self, runner, config_path, monkeypatch):
        """Test an internal bug exits with its own code, not the config one"""
        def broken_from_config(config):
            raise RuntimeError("boom")

        monkeypatch.setattr("discshelf.catalog.service.Catalog.from_config", broken_from_config)

        result = runner.invoke(cli, ["--config", str(config_path), "log"])

        assert result.exit_code == 5
        assert "Unexpected error: boom" in result.output
