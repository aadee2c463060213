"""Tests for pi_picker.settings and pi_picker.config"""
import json
import os

from pi_picker.config import get_debug_log_path, get_picker_dir, get_project_settings_path, get_settings_path
from pi_picker.settings import PickerSettings, SettingsManager, deep_merge_settings


def _write(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(data if isinstance(data, str) else json.dumps(data))


class TestConfigPaths:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PI_PICKER_DIR", str(tmp_path / "cfg"))
        assert get_picker_dir() == str(tmp_path / "cfg")
        assert get_settings_path() == str(tmp_path / "cfg" / "settings.json")
        assert get_debug_log_path().startswith(str(tmp_path / "cfg"))

    def test_env_tilde(self, monkeypatch):
        monkeypatch.setenv("PI_PICKER_DIR", "~/picker-test")
        assert get_picker_dir() == os.path.join(os.path.expanduser("~"), "picker-test")

    def test_project_path(self, tmp_path):
        assert get_project_settings_path(str(tmp_path)) == str(tmp_path / ".pi" / "picker.json")


class TestDeepMerge:
    def test_override_wins_and_none_ignored(self):
        merged = deep_merge_settings({"a": 1, "b": 2}, {"a": 3, "b": None})
        assert merged == {"a": 3, "b": 2}

    def test_nested_one_level(self):
        merged = deep_merge_settings({"n": {"x": 1, "y": 2}}, {"n": {"y": 3}})
        assert merged == {"n": {"x": 1, "y": 3}}


class TestSettingsManager:
    def test_defaults(self):
        settings = SettingsManager.in_memory().get()
        assert settings == PickerSettings()
        assert settings.default_matcher == "fuzzy"
        assert settings.initial_buffer_size == 1000

    def test_project_overrides_global(self, tmp_path):
        global_file = str(tmp_path / "global" / "settings.json")
        project_file = str(tmp_path / "project" / ".pi" / "picker.json")
        _write(global_file, {"defaultMatcher": "substring", "highlightStyle": "underline"})
        _write(project_file, {"defaultMatcher": "regexp", "unknownKey": True})
        mgr = SettingsManager(global_settings_file=global_file, project_settings_file=project_file)
        settings = mgr.get()
        assert settings.default_matcher == "regexp"
        assert settings.highlight_style == "underline"
        assert mgr.drain_errors() == []

    def test_create_reads_cwd_project_file(self, tmp_path):
        _write(str(tmp_path / ".pi" / "picker.json"), {"initialBufferSize": 8})
        assert SettingsManager.create(cwd=str(tmp_path)).get().initial_buffer_size == 8

    def test_bad_json_recorded(self, tmp_path):
        global_file = str(tmp_path / "settings.json")
        _write(global_file, "{not json")
        mgr = SettingsManager(global_settings_file=global_file, project_settings_file=str(tmp_path / "missing.json"))
        assert mgr.get() == PickerSettings()
        errors = mgr.drain_errors()
        assert len(errors) == 1
        assert errors[0]["scope"] == "global"
        assert mgr.drain_errors() == []

    def test_non_object_recorded(self, tmp_path):
        project_file = str(tmp_path / "picker.json")
        _write(project_file, "[1, 2]")
        mgr = SettingsManager(global_settings_file=str(tmp_path / "none.json"), project_settings_file=project_file)
        mgr.load()
        assert mgr.drain_errors()[0]["scope"] == "project"

    def test_runtime_overrides(self):
        mgr = SettingsManager.in_memory({"default_matcher": "substring"})
        mgr.apply_overrides({"highlight_style": "reverse"})
        settings = mgr.get()
        assert settings.default_matcher == "substring"
        assert settings.highlight_style == "reverse"

    def test_round_trip_dict(self):
        settings = PickerSettings(initial_buffer_size=16)
        assert PickerSettings.from_dict({**settings.to_dict(), "extra": 1}) == settings
