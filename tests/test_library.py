"""
Unit tests for the feature library and environment store.
"""

import pytest

from runcontrol.core.exceptions import ValidationError
from runcontrol.execution.models import EnvVariable, Environment
from runcontrol.library.environments import EnvironmentStore
from runcontrol.library.features import FeatureLibrary, parse_steps_files


BUNDLE = """\
// ============================================================
// 📁 tests/pages/LoginPage.ts
// ============================================================
export class LoginPage {}

// ============================================================
// 📁 tests/steps/login.steps.ts
// ============================================================
import { Given } from "@cucumber/cucumber";
"""


class TestParseStepsFiles:
    """Test cases for parse_steps_files."""

    def test_bundle_with_banners(self):
        files = parse_steps_files(BUNDLE)

        assert [f.path for f in files] == ["tests/pages/LoginPage.ts", "tests/steps/login.steps.ts"]
        assert files[0].name == "LoginPage.ts"
        assert files[0].content == "export class LoginPage {}"
        assert files[1].content == 'import { Given } from "@cucumber/cucumber";'

    def test_code_without_banners(self):
        files = parse_steps_files("Given('x', () => {});")

        assert len(files) == 1
        assert files[0].path == "tests/steps/steps.ts"
        assert files[0].name == "steps.ts"

    def test_empty_code(self):
        assert parse_steps_files("") == []


class TestFeatureLibrary:
    """Test cases for FeatureLibrary."""

    def test_add_puts_newest_first(self, login_feature, checkout_feature):
        library = FeatureLibrary([login_feature])
        library.add(checkout_feature)

        assert [f.id for f in library] == ["checkout-1", "default-1"]
        assert len(library) == 2

    def test_duplicate_id_rejected(self, login_feature):
        library = FeatureLibrary([login_feature])

        with pytest.raises(ValidationError):
            library.add(login_feature)

    def test_find_by_title(self, login_feature, checkout_feature):
        library = FeatureLibrary([login_feature, checkout_feature])

        assert library.find_by_title("login") is login_feature
        assert library.find_by_title("  CHECK ") is checkout_feature
        assert library.find_by_title("payroll") is None
        assert library.find_by_title("") is None

    def test_tags(self, login_feature, checkout_feature):
        library = FeatureLibrary([login_feature, checkout_feature])

        assert library.available_tags() == ["@auth", "@regression", "@smoke"]
        assert library.filter_by_tag("@smoke") == [login_feature]
        assert library.filter_by_tag(None) == [login_feature, checkout_feature]

    def test_titles(self, login_feature):
        assert FeatureLibrary([login_feature]).titles() == {"default-1": "User Login"}


class TestEnvironmentStore:
    """Test cases for EnvironmentStore."""

    def test_first_added_becomes_active(self):
        store = EnvironmentStore()
        qa = store.add("QA", "https://qa.example.com", env_id="qa")
        staging = store.add("Staging", "https://staging.example.com", env_id="staging")

        assert qa.active
        assert not staging.active
        assert store.active.id == "qa"

    def test_set_active_keeps_single_active(self):
        """Test that activating one environment deactivates the rest."""
        store = EnvironmentStore()
        store.add("QA", "https://qa.example.com", env_id="qa")
        store.add("Staging", "https://staging.example.com", env_id="staging")

        store.set_active("staging")

        assert [e.id for e in store.list() if e.active] == ["staging"]

    def test_several_active_at_init(self):
        store = EnvironmentStore(
            [
                Environment(id="a", name="A", url="http://a", active=True),
                Environment(id="b", name="B", url="http://b", active=True),
            ]
        )

        assert [e.id for e in store.list() if e.active] == ["a"]

    def test_set_unknown_active(self):
        with pytest.raises(ValidationError):
            EnvironmentStore().set_active("missing")

    def test_duplicate_id_rejected(self):
        store = EnvironmentStore()
        store.add("QA", "https://qa.example.com", env_id="qa")

        with pytest.raises(ValidationError):
            store.add("QA again", "https://qa2.example.com", env_id="qa")

    def test_remove_active_promotes_first_remaining(self):
        store = EnvironmentStore()
        store.add("QA", "https://qa.example.com", env_id="qa")
        store.add("Staging", "https://staging.example.com", env_id="staging")

        store.remove("qa")

        assert store.active.id == "staging"
        assert len(store) == 1

    def test_variables(self, qa_environment):
        store = EnvironmentStore([qa_environment])

        store.add_variable("env-qa", "BASE_PATH", "/app")
        store.update_variable("env-qa", "TEST_USER", "TEST_EMAIL", "qa@example.com")
        env = store.remove_variable("env-qa", "API_TOKEN")

        assert [v.key for v in env.variables] == ["TEST_EMAIL", "TEST_PASSWORD", "BASE_PATH"]
        assert store.active.variables[0] == EnvVariable(key="TEST_EMAIL", value="qa@example.com")

    def test_empty_variable_rejected(self, qa_environment):
        store = EnvironmentStore([qa_environment])

        with pytest.raises(ValidationError):
            store.add_variable("env-qa", "EMPTY", "")

    def test_stored_environment_is_not_mutated(self, qa_environment):
        store = EnvironmentStore([qa_environment])
        store.add_variable("env-qa", "EXTRA", "1")

        assert len(qa_environment.variables) == 3
        assert isinstance(store.get("env-qa"), Environment)
