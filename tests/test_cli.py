"""
Tests for the apkresolver command-line interface.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from apkresolver import cli
from apkresolver.config import build_settings
from apkresolver.resolve.catalog import build_default_catalog
from apkresolver.resolve.models import (
    ABI,
    FetchResult,
    SourceUnavailable,
    Success,
    UpdateCheck,
)
from apkresolver.resolve.version import normalize

pytestmark = [pytest.mark.unit]

BRAVE_URL = "https://github.com/brave/brave-browser/releases/download/v1.67.116/BraveMonoarm64.apk"


def _success(version="1.67.116", url=BRAVE_URL):
    return Success(
        FetchResult(
            version=normalize(version),
            publish_timestamp=datetime(2024, 5, 29, tzinfo=timezone.utc),
            download_url=url,
            required_artifact_hint="arm64-v8a",
        )
    )


@pytest.fixture
def mock_run_checks(mocker):
    """Replace the network-bound resolution step with canned results."""
    return mocker.patch("apkresolver.cli._run_checks", new_callable=AsyncMock)


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestParseInstalled:
    def test_pairs(self):
        assert cli._parse_installed(["brave=1.66.0", " orbot = 17.2 "]) == {
            "brave": "1.66.0",
            "orbot": "17.2",
        }

    def test_none(self):
        assert cli._parse_installed(None) == {}

    @pytest.mark.parametrize("value", ["brave", "brave=", "=1.0"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="APP=VERSION"):
            cli._parse_installed([value])


class TestMain:
    """Test command dispatch and exit codes."""

    def test_no_command_prints_help(self, capsys):
        assert _run([]) == cli.EXIT_USAGE
        assert "usage:" in capsys.readouterr().out

    def test_list(self, capsys):
        assert _run(["list"]) == cli.EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 25
        brave = next(line for line in lines if line.startswith("brave "))
        assert "github:brave/brave-browser" in brave
        assert brave.rstrip().endswith("28")
        vivaldi = next(line for line in lines if line.startswith("vivaldi "))
        assert vivaldi.rstrip().endswith("-")

    def test_check_success(self, mock_run_checks, capsys):
        mock_run_checks.return_value = {"brave": UpdateCheck(_success())}

        assert _run(["check", "brave"]) == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "1.67.116" in out
        assert BRAVE_URL in out

    def test_check_failure_exit_code(self, mock_run_checks, capsys):
        mock_run_checks.return_value = {
            "brave": UpdateCheck(_success()),
            "orbot": UpdateCheck(SourceUnavailable("Upstream returned HTTP 503")),
        }

        assert _run(["check", "brave", "orbot"]) == cli.EXIT_FAILURES
        out = capsys.readouterr().out
        assert "SOURCE_UNAVAILABLE" in out
        assert "HTTP 503" in out

    def test_check_without_apps(self, mock_run_checks):
        assert _run(["check"]) == cli.EXIT_USAGE
        mock_run_checks.assert_not_called()

    def test_check_unknown_app(self, mock_run_checks):
        assert _run(["check", "netscape"]) == cli.EXIT_USAGE
        mock_run_checks.assert_not_called()

    def test_check_invalid_installed(self, mock_run_checks):
        assert _run(["check", "brave", "--installed", "brave"]) == 2
        mock_run_checks.assert_not_called()

    def test_check_invalid_abi(self, mock_run_checks):
        assert _run(["check", "brave", "--abi", "mips"]) == cli.EXIT_USAGE
        mock_run_checks.assert_not_called()

    def test_check_missing_config_file(self, mock_run_checks, tmp_path):
        code = _run(["check", "brave", "--config", str(tmp_path / "missing.yaml")])
        assert code == cli.EXIT_USAGE

    def test_all_and_interactive_are_exclusive(self):
        assert _run(["check", "--all", "--interactive"]) == 2


class TestCheckOptions:
    """Test how check options reach the resolution step."""

    def test_all_resolves_catalog(self, mock_run_checks):
        mock_run_checks.return_value = {}

        _run(["check", "--all"])

        _, _, app_ids, _ = mock_run_checks.call_args[0]
        assert app_ids == build_default_catalog().app_ids

    def test_interactive_uses_menu(self, mock_run_checks, mocker):
        mocker.patch("apkresolver.cli.menu_apps.run_menu", return_value=["orbot"])
        mock_run_checks.return_value = {"orbot": UpdateCheck(_success("17.3.2"))}

        assert _run(["check", "-i"]) == cli.EXIT_OK
        assert mock_run_checks.call_args[0][2] == ["orbot"]

    def test_installed_apps_are_checked(self, mock_run_checks, capsys):
        mock_run_checks.return_value = {
            "brave": UpdateCheck(_success(), "1.66.118", True)
        }

        assert _run(["check", "--installed", "brave=1.66.118"]) == cli.EXIT_OK
        _, _, app_ids, installed = mock_run_checks.call_args[0]
        assert app_ids == ["brave"]
        assert installed == {"brave": "1.66.118"}
        assert "update from 1.66.118" in capsys.readouterr().out

    def test_installed_apps_join_named_apps(self, mock_run_checks):
        mock_run_checks.return_value = {}

        _run(["check", "brave", "--installed", "orbot=17.2", "--installed", "brave=1.66.0"])

        _, _, app_ids, installed = mock_run_checks.call_args[0]
        assert app_ids == ["brave", "orbot"]
        assert installed == {"orbot": "17.2", "brave": "1.66.0"}

    def test_unknown_installed_app_rejected(self, mock_run_checks):
        assert _run(["check", "brave", "--installed", "netscape=4.8"]) == cli.EXIT_USAGE
        mock_run_checks.assert_not_called()

    def test_device_overrides(self, mock_run_checks):
        mock_run_checks.return_value = {}

        _run(
            [
                "check",
                "brave",
                "--abi",
                "x86_64",
                "--prefer-32bit",
                "--sdk",
                "30",
                "--max-concurrent",
                "2",
                "--global-max-age",
                "90",
            ]
        )

        settings = mock_run_checks.call_args[0][1]
        assert settings.device.abi is ABI.X86_64
        assert settings.device.supported_abis == (ABI.X86_64, ABI.X86)
        assert settings.device.prefer_32bit is True
        assert settings.device.sdk_int == 30
        assert settings.engine.max_concurrent == 2
        assert settings.engine.global_max_age_days == 90

    @pytest.mark.parametrize("flag", ["--sdk", "--max-concurrent", "--global-max-age"])
    def test_non_positive_overrides_rejected(self, mock_run_checks, flag):
        assert _run(["check", "brave", flag, "0"]) == cli.EXIT_USAGE

    def test_config_policy_overrides_reach_catalog(self, mock_run_checks, tmp_path):
        config_file = tmp_path / "apkresolver.yaml"
        config_file.write_text(
            "APP_POLICY_OVERRIDES:\n  brave:\n    max_age_days: 45\n", encoding="utf-8"
        )
        mock_run_checks.return_value = {}

        _run(["check", "brave", "--config", str(config_file)])

        catalog = mock_run_checks.call_args[0][0]
        assert catalog.get("brave").descriptor.max_age_days == 45

    def test_json_output(self, mock_run_checks, capsys):
        mock_run_checks.return_value = {
            "brave": UpdateCheck(_success(), "1.67.116", False),
            "orbot": UpdateCheck(SourceUnavailable("down")),
        }

        _run(["check", "brave", "orbot", "--json"])

        report = json.loads(capsys.readouterr().out)
        assert report["brave"]["status"] == "success"
        assert report["brave"]["update_available"] is False
        assert report["brave"]["download_url"] == BRAVE_URL
        assert report["orbot"] == {
            "status": "source_unavailable",
            "detail": "down",
            "installed_version": None,
            "update_available": None,
        }

    def test_verify_reports_unavailable_download(self, mock_run_checks, mocker, capsys):
        mock_run_checks.return_value = {"brave": UpdateCheck(_success())}
        mock_probe = mocker.patch(
            "apkresolver.cli.check_download_available", return_value=False
        )

        assert _run(["check", "brave", "--verify", "--json"]) == cli.EXIT_FAILURES
        mock_probe.assert_called_once_with(BRAVE_URL)
        report = json.loads(capsys.readouterr().out)
        assert report["brave"]["download_available"] is False

    def test_verify_skips_failed_outcomes(self, mock_run_checks, mocker):
        mock_run_checks.return_value = {"orbot": UpdateCheck(SourceUnavailable("down"))}
        mock_probe = mocker.patch("apkresolver.cli.check_download_available")

        _run(["check", "orbot", "--verify"])

        mock_probe.assert_not_called()

    def test_log_dir_enables_file_logging(self, mock_run_checks, mocker, tmp_path):
        mock_run_checks.return_value = {}
        mock_file_logging = mocker.patch("apkresolver.cli.log_utils.add_file_logging")
        mock_set_level = mocker.patch("apkresolver.cli.log_utils.set_log_level")

        _run(["check", "brave", "--log-dir", str(tmp_path), "--log-level", "DEBUG"])

        mock_set_level.assert_called_once_with("DEBUG")
        mock_file_logging.assert_called_once()
        assert mock_file_logging.call_args[0][1] == "DEBUG"


class TestRunChecks:
    """Test _run_checks() with the transport replaced by canned responses."""

    @pytest.mark.asyncio
    async def test_resolves_and_compares(self, mocker, fake_transport):
        published = datetime.now(timezone.utc) - timedelta(days=2)
        fake_transport.add_json(
            "https://api.github.com/repos/guardianproject/orbot/releases/latest",
            {
                "tag_name": "17.3.2-RC-1-tor-0.4.8.12",
                "published_at": published.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "assets": [
                    {
                        "name": "Orbot-17.3.2-RC-1-tor-0.4.8.12-fullperm-arm64-v8a-release.apk",
                        "browser_download_url": "https://github.com/guardianproject/orbot/releases/download/x/orbot-arm64.apk",
                    }
                ],
            },
        )
        mock_transport_cls = mocker.patch("apkresolver.cli.AiohttpTransport")
        mock_transport_cls.return_value.__aenter__.return_value = fake_transport
        mock_transport_cls.return_value.__aexit__.return_value = False
        settings = build_settings({"GITHUB_TOKEN": "ghp_test"})

        checks = await cli._run_checks(
            build_default_catalog(), settings, ["orbot"], {"orbot": "17.2.0"}
        )

        assert mock_transport_cls.call_args.kwargs["github_token"] == "ghp_test"
        check = checks["orbot"]
        assert isinstance(check.outcome, Success)
        assert check.outcome.result.download_url.endswith("orbot-arm64.apk")
        assert check.update_available is True
