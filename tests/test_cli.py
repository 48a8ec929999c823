"""Tests for the command-line front end."""

import logging

import pytest

from phpenv_conf import __version__
from phpenv_conf.cli import main

from tests.conftest import PHP_VERSION


@pytest.fixture
def run(phpenv_root, capsys):
    """Runs the CLI against the test root and returns its stdout."""
    def _run(*argv):
        main(["--root", str(phpenv_root), "--php-version", PHP_VERSION, *argv])
        return capsys.readouterr().out
    return _run


def enabled_dir(phpenv_root):
    return phpenv_root / "versions" / PHP_VERSION / "etc" / "conf.d"


class TestScenario:
    """add, enable, ls, disable, ls end to end."""

    def test_xdebug_lifecycle(self, run, make_ini, phpenv_root):
        source = make_ini("xdebug.ini", "zend_extension=xdebug\n")

        assert "Config 'xdebug' added." in run("add", str(source))
        assert "Config 'xdebug' enabled." in run("enable", "xdebug")
        assert (enabled_dir(phpenv_root) / "xdebug.ini").is_symlink()

        assert run("ls").splitlines() == [
            "Config enabled (1 files):",
            "  xdebug",
            "Config available (0 files):",
        ]

        assert "Config 'xdebug' disabled." in run("disable", "xdebug")
        assert run("ls").splitlines() == [
            "Config enabled (0 files):",
            "Config available (1 files):",
            "  xdebug",
        ]


class TestCommands:

    @pytest.mark.parametrize("enable, disable, listing, remove", [
        ("enable", "disable", "ls", "rm"),
        ("en", "dis", "list", "remove"),
    ])
    def test_aliases(self, run, make_ini, phpenv_root, enable, disable, listing, remove):
        run("add", str(make_ini("apcu.ini")))
        run(enable, "apcu")
        assert "  apcu" in run(listing).splitlines()[1]
        run(disable, "apcu")
        assert not (enabled_dir(phpenv_root) / "apcu.ini").exists()
        assert "Config 'apcu' removed." in run(remove, "apcu")

    def test_enable_twice_reports_already_enabled(self, run, make_ini):
        run("add", str(make_ini("xdebug.ini")))
        run("enable", "xdebug")
        assert "Config 'xdebug' is already enabled." in run("enable", "xdebug")

    def test_remove_enabled_then_again(self, run, make_ini, phpenv_root, caplog):
        run("add", str(make_ini("xdebug.ini")))
        run("enable", "xdebug")
        run("rm", "xdebug")
        assert not (enabled_dir(phpenv_root) / "xdebug.ini").exists()

        with caplog.at_level(logging.ERROR):
            run("rm", "xdebug")
        assert "Invalid config: 'xdebug'" in caplog.text

    @pytest.mark.parametrize("command", ["enable", "disable", "rm"])
    def test_unknown_config_exits_zero(self, run, command, caplog):
        with caplog.at_level(logging.ERROR):
            run(command, "missing")
        assert "Invalid config" in caplog.text

    def test_missing_name_exits_zero(self, run, caplog):
        with caplog.at_level(logging.ERROR):
            run("enable")
        assert "Invalid config" in caplog.text

    def test_add_invalid_path_exits_one(self, run, caplog):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc:
                run("add", "/no/such/file.ini")
        assert exc.value.code == 1
        assert "Invalid file path" in caplog.text

    def test_add_without_path_exits_one(self, run):
        with pytest.raises(SystemExit) as exc:
            run("add")
        assert exc.value.code == 1

    def test_version(self, capsys):
        main(["version"])
        assert capsys.readouterr().out.strip() == f"phpenv-conf {__version__}"


class TestSystemVersion:

    def test_refuses_operations(self, phpenv_root, caplog):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc:
                main(["--root", str(phpenv_root), "--php-version", "system", "ls"])
        assert exc.value.code == 1
        assert "system" in caplog.text

    def test_version_file_selects_system(self, phpenv_root, monkeypatch):
        monkeypatch.setenv("PHPENV_ROOT", str(phpenv_root))
        (phpenv_root / "version").write_text("system\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            main(["enable", "xdebug"])
        assert exc.value.code == 1

    def test_version_still_works(self, phpenv_root, capsys):
        main(["--root", str(phpenv_root), "--php-version", "system", "version"])
        assert __version__ in capsys.readouterr().out


class TestUsage:

    @pytest.mark.parametrize("argv", [
        [],
        ["bogus"],
        ["--help"],
        ["-h"],
        ["help"],
        ["enable", "xdebug", "--help"],
        ["ls", "help"],
        ["enable", "a", "b"],
    ])
    def test_prints_usage(self, argv, capsys):
        main(argv)
        out = capsys.readouterr().out
        assert "usage: phpenv-conf" in out


class TestCompletion:

    @pytest.fixture
    def populated(self, run, make_ini):
        run("add", str(make_ini("xdebug.ini")))
        run("add", str(make_ini("apcu.ini")))
        run("enable", "xdebug")
        return run

    def test_verbs(self, capsys):
        main(["--complete"])
        assert capsys.readouterr().out.split() == ["add", "rm", "enable", "disable", "ls", "version"]

    def test_enable_context(self, populated):
        assert populated("--complete", "enable").split() == ["apcu"]

    @pytest.mark.parametrize("context", ["rm", "disable"])
    def test_name_contexts(self, populated, context):
        assert populated("--complete", context).split() == ["apcu", "xdebug"]

    def test_system_version_yields_nothing(self, phpenv_root, capsys):
        main(["--root", str(phpenv_root), "--php-version", "system", "--complete", "rm"])
        assert capsys.readouterr().out == ""


class TestSettingsFile:

    def test_copy_mode(self, run, make_ini, phpenv_root):
        (phpenv_root / "phpenv-conf.yaml").write_text("link_mode: copy\n", encoding="utf-8")
        run("add", str(make_ini("opcache.ini", "opcache.enable=1\n")))
        run("enable", "opcache")
        entry = enabled_dir(phpenv_root) / "opcache.ini"
        assert entry.is_file() and not entry.is_symlink()

    def test_invalid_settings_exit_one(self, run, phpenv_root):
        (phpenv_root / "phpenv-conf.yaml").write_text("link_mode: hardlink\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            run("ls")
        assert exc.value.code == 1
