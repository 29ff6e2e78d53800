"""Unit tests for configuration management."""

import os

from liberate.config import Settings


class TestSettings:
    """Test configuration."""

    def test_defaults(self, tmp_path):
        """Test default settings."""
        os.chdir(tmp_path)
        settings = Settings()

        assert settings.functions_root == "supabase/functions"
        assert settings.handler_entry_file == "index.ts"
        assert settings.migration_extensions == [".sql"]
        assert settings.conversion_timeout == 120
        assert settings.orchestrator_url is None
        assert settings.conversion_api_token is None

    def test_null_values(self, tmp_path):
        """Test null string conversion."""
        os.chdir(tmp_path)

        assert Settings(orchestrator_url="null").orchestrator_url is None
        assert Settings(orchestrator_url="none").orchestrator_url is None
        assert Settings(orchestrator_url="").orchestrator_url is None
        assert Settings(orchestrator_url="https://o.test").orchestrator_url == "https://o.test"

    def test_layout_paths_are_normalized(self, tmp_path):
        os.chdir(tmp_path)

        settings = Settings(
            functions_root="/apps/fns/",
            route_extension="js",
            migration_extensions=["SQL", ".psql"],
        )

        assert settings.functions_root == "apps/fns"
        assert settings.route_extension == ".js"
        assert settings.migration_extensions == [".sql", ".psql"]

    def test_state_dir_created(self, tmp_path):
        """Test state directory is auto-created."""
        os.chdir(tmp_path)
        state = tmp_path / "state" / "state.json"

        settings = Settings(state_file=state)

        assert state.parent.exists()
        assert settings.state_file == state.resolve()

    def test_env_loading(self, tmp_path, monkeypatch):
        """Test loading from environment."""
        os.chdir(tmp_path)

        monkeypatch.setenv("LIBERATE_CONVERSION_TIMEOUT", "60")
        monkeypatch.setenv("LIBERATE_CONVERSION_API_TOKEN", "s3cret")
        monkeypatch.setenv("LIBERATE_ORCHESTRATOR_URL", "https://orch.test")

        settings = Settings()

        assert settings.conversion_timeout == 60
        assert settings.conversion_api_token.get_secret_value() == "s3cret"
        assert "s3cret" not in repr(settings)
        assert settings.orchestrator_url == "https://orch.test"

    def test_programmatic_override(self, tmp_path, monkeypatch):
        """Test programmatic override of env."""
        os.chdir(tmp_path)

        monkeypatch.setenv("LIBERATE_CONVERSION_TIMEOUT", "60")

        settings = Settings(conversion_timeout=90)
        assert settings.conversion_timeout == 90
