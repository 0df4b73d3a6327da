"""
Unit tests for configuration parsing and validation.
"""
import pytest
from vcleanup.errors import ConfigError
from vcleanup.MODELS.cleanup_config import CleanupConfig
from vcleanup.PARSERS.config_parser import ConfigParser


CONFIG = """
vcenter_server: vcenter.example.com
vcenter_dc: DC
username: ${VSPHERE_USER}
password: ${VSPHERE_PASSWORD}
image_name_regex: 'ubuntu-2204-(\\d+)'
keep_images: ${KEEP:-3}
"""


class TestConfigParser:
    """Tests for ConfigParser."""

    def test_parse_with_interpolation(self):
        parser = ConfigParser(context={"VSPHERE_USER": "packer", "VSPHERE_PASSWORD": "secret"})
        config = parser.parse_from_string(CONFIG)
        assert config.username == "packer"
        assert config.password == "secret"
        assert config.image_name_regex == r"ubuntu-2204-(\d+)"
        assert config.keep_images == 3
        assert config.insecure_connection is True
        assert config.dry_run is False
        config.validate_all()

    def test_missing_variables_reported_together(self):
        parser = ConfigParser(context={})
        with pytest.raises(ConfigError) as excinfo:
            parser.parse_from_string(CONFIG)
        assert len(excinfo.value.problems) == 2
        assert "VSPHERE_USER" in str(excinfo.value)

    def test_numeric_password_stays_a_string(self):
        parser = ConfigParser(context={"VSPHERE_USER": "packer", "VSPHERE_PASSWORD": "123456"})
        config = parser.parse_from_string(CONFIG)
        assert config.password == "123456"

    @pytest.mark.parametrize("password", ["abc #123", "a: b", "*star", "&anchor", "!tag"])
    def test_yaml_syntax_in_values_is_literal(self, password):
        parser = ConfigParser(context={"VSPHERE_USER": "packer", "VSPHERE_PASSWORD": password})
        config = parser.parse_from_string(CONFIG)
        assert config.password == password

    def test_placeholders_in_comments_ignored(self):
        config = ConfigParser(context={}).parse_from_string(
            "# password: ${VSPHERE_PASSWORD}\nimage_name_regex: img\n"
        )
        assert config.password is None

    def test_parse_file_and_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("VSPHERE_USER", raising=False)
        monkeypatch.delenv("VSPHERE_PASSWORD", raising=False)
        monkeypatch.delenv("KEEP", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("VSPHERE_USER=builder\nVSPHERE_PASSWORD=hunter2\n")
        config_file = tmp_path / "vcleanup.yml"
        config_file.write_text(CONFIG)

        config = ConfigParser(env_file=str(env_file)).parse(str(config_file))
        assert config.username == "builder"
        assert config.password == "hunter2"

    def test_environment_overrides_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VSPHERE_USER", "from-env")
        monkeypatch.setenv("VSPHERE_PASSWORD", "pw")
        env_file = tmp_path / ".env"
        env_file.write_text("VSPHERE_USER=from-file\n")
        config = ConfigParser(env_file=str(env_file)).parse_from_string(CONFIG)
        assert config.username == "from-env"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ConfigParser(context={}).parse(str(tmp_path / "absent.yml"))

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError) as excinfo:
            ConfigParser(context={}).parse_from_string("keep_imgs: 3\n")
        assert "keep_imgs" in str(excinfo.value)

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError):
            ConfigParser(context={}).parse_from_string("keep_images: [1,\n")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            ConfigParser(context={}).parse_from_string("- a\n- b\n")

    def test_empty_file_gives_defaults(self):
        config = ConfigParser(context={}).parse_from_string("")
        assert config.keep_images == 2


class TestCleanupConfig:
    """Tests for CleanupConfig validation."""

    def test_policy_required_fields(self):
        with pytest.raises(ConfigError) as excinfo:
            CleanupConfig().validate_policy()
        assert excinfo.value.problems == ["image_name_regex is required"]

    def test_invalid_regex(self):
        with pytest.raises(ConfigError):
            CleanupConfig(image_name_regex="img-(").validate_policy()

    @pytest.mark.parametrize("keep", [0, -2])
    def test_non_positive_keep(self, keep):
        with pytest.raises(ConfigError):
            CleanupConfig(image_name_regex="img", keep_images=keep).validate_policy()

    def test_validate_all_collects_every_problem(self):
        with pytest.raises(ConfigError) as excinfo:
            CleanupConfig(keep_images=0).validate_all()
        problems = excinfo.value.problems
        assert len(problems) == 6
        assert "vcenter_server is required" in problems
        assert "password is required" in problems

    def test_with_overrides_ignores_none(self):
        config = CleanupConfig(image_name_regex="a", keep_images=4)
        updated = config.with_overrides(image_name_regex=None, keep_images=5, dry_run=True)
        assert updated.image_name_regex == "a"
        assert updated.keep_images == 5
        assert updated.dry_run is True
        assert config.keep_images == 4
