from scripts.configure_api_keys import (
    EXPORT_MARKER,
    append_shell_exports,
    apply_answers,
    load_existing_env,
    write_env,
)


def test_existing_env_is_preserved(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("# commentaire\nOTHER=1\nTMDB_API_KEY=old\n", encoding="utf-8")

    merged = apply_answers(
        load_existing_env(env_path),
        tmdb_key="new-tmdb",
        vision_key="vision",
        credentials=None,
        auto_detect=False,
    )
    write_env(env_path, merged)

    values = load_existing_env(env_path)
    assert values["OTHER"] == "1"
    assert values["TMDB_API_KEY"] == "new-tmdb"
    assert values["GOOGLE_VISION_API_KEY"] == "vision"
    assert values["SCAN_AUTO_DETECT"] == "false"
    assert "GOOGLE_APPLICATION_CREDENTIALS" not in values


def test_missing_env_file_gives_empty_values(tmp_path):
    assert load_existing_env(tmp_path / "absent.env") == {}


def test_shell_exports_are_added_once(tmp_path):
    rc = tmp_path / ".bashrc"
    env = {"TMDB_API_KEY": "t", "GOOGLE_VISION_API_KEY": "v", "SCAN_AUTO_DETECT": "true"}

    append_shell_exports(env, [rc])
    append_shell_exports(env, [rc])

    content = rc.read_text(encoding="utf-8")
    assert content.count(EXPORT_MARKER) == 1
    assert 'export TMDB_API_KEY="t"' in content
    assert "SCAN_AUTO_DETECT" not in content
