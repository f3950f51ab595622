"""
Unit tests for workspace file loading.
"""

import pytest

from runcontrol.core.exceptions import WorkspaceError
from runcontrol.core.workspace import load_feature_file, load_workspace


LOGIN_FEATURE = """\
@smoke
Feature: User Login
  Scenario: Valid Login Flow
    Given I navigate to the portal
"""


@pytest.fixture
def feature_dir(tmp_path):
    features = tmp_path / "features"
    features.mkdir()
    (features / "login.feature").write_text(LOGIN_FEATURE, encoding="utf-8")
    (features / "login.steps.ts").write_text("// login steps", encoding="utf-8")
    return features


class TestLoadFeatureFile:
    """Test cases for load_feature_file."""

    def test_sibling_steps_file_is_picked_up(self, feature_dir):
        feature = load_feature_file(feature_dir / "login.feature")

        assert feature.id == "login"
        assert feature.title == "User Login"
        assert feature.steps_code == "// login steps"

    def test_without_steps(self, tmp_path):
        path = tmp_path / "search.feature"
        path.write_text("Feature: Search\n", encoding="utf-8")

        assert load_feature_file(path).steps_code == ""


class TestLoadWorkspace:
    """Test cases for load_workspace."""

    def test_full_workspace(self, tmp_path, feature_dir):
        """Test loading settings, environments and features."""
        path = tmp_path / "runcontrol.yaml"
        path.write_text(
            """
settings:
  execution_mode: real
  backend_url: http://runner:3001
environments:
  - id: qa
    name: QA Portal
    url: https://qa.example.com
    active: true
    variables:
      TEST_USER: tester@example.com
  - name: Staging
    url: https://staging.example.com
    variables:
      - key: API_TOKEN
        value: abc
features:
  - file: features/login.feature
  - id: inline-1
    title: Inline Checkout
    content: |
      Feature: Checkout
    steps_code: "// inline"
""",
            encoding="utf-8",
        )

        workspace = load_workspace(path)

        assert workspace.settings == {
            "execution_mode": "real",
            "backend_url": "http://runner:3001",
        }
        qa, staging = workspace.environments
        assert qa.active
        assert qa.variables[0].key == "TEST_USER"
        assert staging.id == "env-2"
        assert staging.variables[0].value == "abc"

        login, inline = workspace.features
        assert login.id == "login"
        assert login.steps_code == ""
        assert inline.id == "inline-1"
        assert inline.title == "Inline Checkout"
        assert inline.steps_code == "// inline"

    def test_steps_file_entry(self, tmp_path, feature_dir):
        path = tmp_path / "ws.yaml"
        path.write_text(
            "features:\n"
            "  - file: features/login.feature\n"
            "    steps_file: features/login.steps.ts\n",
            encoding="utf-8",
        )

        feature = load_workspace(path).features[0]

        assert feature.steps_code == "// login steps"

    def test_missing_file(self, tmp_path):
        with pytest.raises(WorkspaceError, match="not found"):
            load_workspace(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("features: [unclosed", encoding="utf-8")

        with pytest.raises(WorkspaceError, match="Invalid workspace YAML"):
            load_workspace(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")

        with pytest.raises(WorkspaceError, match="mapping"):
            load_workspace(path)

    def test_environment_without_url(self, tmp_path):
        path = tmp_path / "env.yaml"
        path.write_text("environments:\n  - name: QA\n", encoding="utf-8")

        with pytest.raises(WorkspaceError) as exc_info:
            load_workspace(path)

        assert exc_info.value.file_path == str(path)

    def test_unreadable_feature_file(self, tmp_path):
        path = tmp_path / "ws.yaml"
        path.write_text("features:\n  - file: nowhere.feature\n", encoding="utf-8")

        with pytest.raises(WorkspaceError, match="Cannot read"):
            load_workspace(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        workspace = load_workspace(path)

        assert workspace.features == []
        assert workspace.environments == []

    @pytest.mark.parametrize(
        "text, message",
        [
            ("environments:\n  - qa\n", r"environments\[0\] must be a mapping"),
            ("features:\n  - file: a.feature\n  - login.feature\n", r"features\[1\] must be a mapping"),
            ("features: login.feature\n", "'features' must be a list"),
            ("settings: [real]\n", "'settings' must be a mapping"),
        ],
    )
    def test_malformed_sections(self, tmp_path, text, message):
        """Test that wrongly shaped sections are reported, not raised raw."""
        path = tmp_path / "ws.yaml"
        path.write_text(text, encoding="utf-8")

        with pytest.raises(WorkspaceError, match=message) as exc_info:
            load_workspace(path)

        assert exc_info.value.file_path == str(path)
