"""Tests for the immutable per-run configuration."""

from dataclasses import FrozenInstanceError
from pathlib import Path
from types import SimpleNamespace

import pytest

from patchfleet.errors import ConfigurationError
from patchfleet.run_config import RunConfig, default_branch_name, resolve_token


def _args(**overrides):
    values = dict(
        token="ghp_direct",
        token_variable=None,
        org="acme",
        query="",
        limit=None,
        patch="change.diff",
        message="Bump base image",
        branch=None,
        debug=False,
        workers=None,
        timeout=None,
        draft=False,
        api_url=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _config(**overrides):
    values = dict(
        api_url="https://api.github.com",
        request_timeout=5.0,
        search_limit=30,
        max_workers=1,
        pr_body="Automated by patchfleet",
        draft_pull_requests=False,
        audit_path=".patchfleet/audit.jsonl",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestDefaultBranchName:

    def test_spaces_become_dashes(self):
        assert default_branch_name("Add foo to bar") == "Add-foo-to-bar"

    def test_deterministic(self):
        assert default_branch_name("Fix CI") == default_branch_name("Fix CI")


class TestResolveToken:

    def test_direct_token(self):
        assert resolve_token("ghp_x", None, {}) == "ghp_x"

    def test_token_from_variable(self):
        assert resolve_token(None, "GH_TOKEN", {"GH_TOKEN": " ghp_env \n"}) == "ghp_env"

    def test_missing_variable(self):
        with pytest.raises(ConfigurationError) as exc:
            resolve_token(None, "GH_TOKEN", {})
        assert "GH_TOKEN" in str(exc.value)

    def test_empty_variable(self):
        with pytest.raises(ConfigurationError):
            resolve_token(None, "GH_TOKEN", {"GH_TOKEN": "  "})

    def test_both_sources(self):
        with pytest.raises(ConfigurationError):
            resolve_token("ghp_x", "GH_TOKEN", {"GH_TOKEN": "ghp_y"})

    def test_no_source(self):
        with pytest.raises(ConfigurationError):
            resolve_token(None, None, {})


class TestFromArgs:
    """Test building RunConfig from CLI args and global config."""

    def test_defaults_from_config(self):
        rc = RunConfig.from_args(_args(), _config(), {})

        assert rc.token == "ghp_direct"
        assert rc.organization == "acme"
        assert rc.patch_path == Path("change.diff")
        assert rc.branch_name == "Bump-base-image"
        assert rc.search_limit == 30
        assert rc.request_timeout == 5.0
        assert rc.max_workers == 1
        assert rc.pr_body == "Automated by patchfleet"
        assert rc.audit_path == ".patchfleet/audit.jsonl"

    def test_cli_overrides(self):
        rc = RunConfig.from_args(
            _args(branch="custom", limit=5, workers=4, timeout=10.0, draft=True, api_url="https://ghe/api/v3/"),
            _config(),
            {},
        )

        assert rc.branch_name == "custom"
        assert rc.search_limit == 5
        assert rc.max_workers == 4
        assert rc.request_timeout == 10.0
        assert rc.draft is True
        assert rc.api_url == "https://ghe/api/v3"

    def test_token_variable(self):
        rc = RunConfig.from_args(_args(token=None, token_variable="GH"), _config(), {"GH": "ghp_env"})

        assert rc.token == "ghp_env"

    def test_repository_query(self):
        assert RunConfig.from_args(_args(query="service-"), _config(), {}).repository_query == "org:acme service-"
        assert RunConfig.from_args(_args(), _config(), {}).repository_query == "org:acme"

    def test_empty_message_rejected(self):
        with pytest.raises(ConfigurationError):
            RunConfig.from_args(_args(message="   "), _config(), {})

    @pytest.mark.parametrize("field", ["limit", "workers"])
    def test_non_positive_numbers_rejected(self, field):
        with pytest.raises(ConfigurationError):
            RunConfig.from_args(_args(**{field: 0}), _config(), {})

    def test_empty_audit_path_disables_audit(self):
        rc = RunConfig.from_args(_args(), _config(audit_path=""), {})

        assert rc.audit_path is None

    def test_frozen_and_token_hidden(self):
        rc = RunConfig.from_args(_args(), _config(), {})

        with pytest.raises(FrozenInstanceError):
            rc.branch_name = "other"
        assert "ghp_direct" not in repr(rc)
