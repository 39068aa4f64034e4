from pathlib import Path

import yaml


def test_package_imports() -> None:
    import mimic  # noqa: F401
    import mimic.main  # noqa: F401


def test_readme_exists() -> None:
    assert Path("README.md").exists()


def test_load_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    from mimic.config import DEFAULT_LIMIT, load_config

    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg.limit == DEFAULT_LIMIT == 150
    assert cfg.teams == []
    assert cfg.log_level == "INFO"


def test_load_config_reads_teams(tmp_path: Path) -> None:
    from mimic.config import load_config

    config_path = tmp_path / "config.yaml"
    data = {
        "limit": 80,
        "teams": [
            {"token": "xoxb-1", "name": "acme", "connection": "data/acme.db"},
            {"token": "xoxb-2", "name": "side", "connection": "/var/lib/side.db", "limit": 20},
        ],
    }
    config_path.write_text(yaml.safe_dump(data))

    cfg = load_config(config_path)
    acme, side = (cfg.parse_team(raw) for raw in cfg.teams)
    assert cfg.team_limit(acme) == 80
    assert cfg.team_limit(side) == 20
    assert acme.ignored_subtypes == ["file_share"]
    assert acme.connection == str((tmp_path / "data" / "acme.db").resolve())
    assert side.connection == str(Path("/var/lib/side.db").resolve())


def test_missing_fields_lists_mandatory_settings() -> None:
    from mimic.config import TeamConfig

    assert TeamConfig(token="x", name="n", connection="c").missing_fields() == []
    assert TeamConfig(name="n").missing_fields() == ["token", "connection"]
    assert TeamConfig(token=None, name="n", connection="").missing_fields() == ["token", "connection"]


def test_bad_team_is_skipped_and_others_still_built(tmp_path: Path) -> None:
    from mimic.config import load_config
    from mimic.main import Mimic

    config_path = tmp_path / "config.yaml"
    data = {
        "teams": [
            {"name": "broken", "connection": "broken.db"},
            {"token": "xoxb-2", "name": "ok", "connection": "ok.db"},
        ],
    }
    config_path.write_text(yaml.safe_dump(data))

    app = Mimic(load_config(config_path))
    bots = app.build_bots()

    assert [bot.team.name for bot in bots] == ["ok"]
    assert bots[0].store.connection == str((tmp_path / "ok.db").resolve())
    assert bots[0].limit == 150


def test_invalid_team_values_only_skip_that_team(tmp_path: Path) -> None:
    from mimic.config import load_config
    from mimic.main import Mimic

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "teams:\n"
        "  - {name: blank-token, token: , connection: b.db}\n"
        "  - {name: zero-limit, token: xoxb-1, connection: z.db, limit: 0}\n"
        "  - not-a-mapping\n"
        "  - {name: ok, token: xoxb-2, connection: ok.db}\n"
    )

    bots = Mimic(load_config(config_path)).build_bots()

    assert [bot.team.name for bot in bots] == ["ok"]


def test_parse_team_reports_invalid_fields(tmp_path: Path) -> None:
    import pytest

    from mimic.config import Config
    from mimic.utils.errors import ConfigurationError

    cfg = Config()
    with pytest.raises(ConfigurationError, match="limit"):
        cfg.parse_team({"token": "x", "name": "n", "connection": "c.db", "limit": 0})
    with pytest.raises(ConfigurationError):
        cfg.parse_team("acme")
