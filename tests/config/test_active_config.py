"""
Tests for workflow policy loading and the config -> kernel bridges.

Covers:
- get_active_config() for the shipped sets
- Load-time rejection of unknown actions, requirements and timezones
- build_workflow / build_state_machine wiring
"""

from pathlib import Path

import pytest

from pdr_config import get_active_config
from pdr_config.bridges import build_rating_scale, build_state_machine, build_workflow
from pdr_config.loader import compute_checksum, parse_workflow_policy
from pdr_config.validator import validate_policy
from pdr_kernel.domain.values import PDRAction, PDRStatus
from pdr_kernel.domain.workflow import PDR_WORKFLOW
from pdr_kernel.exceptions import ConfigError

_MINIMAL = """\
config_id: test-set
version: 3
"""


def _write_set(directory: Path, name: str, body: str) -> Path:
    path = directory / f"{name}.yaml"
    path.write_text(body)
    return path


class TestGetActiveConfig:
    def test_default_set_loads(self):
        policy = get_active_config()

        assert policy.config_id == "pdr-default"
        assert policy.allow_direct_mid_year_approval
        assert len(policy.checksum) == 64

    def test_checksum_is_stable(self):
        assert get_active_config().checksum == get_active_config().checksum

    def test_emits_config_trace(self, captured_logs):
        get_active_config(name="strict")

        traces = [r for r in captured_logs() if r["message"] == "PDR_CONFIG_TRACE"]
        assert traces[-1]["config_set_id"] == "pdr-strict"
        assert traces[-1]["direct_mid_year_approval"] is False

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_dir=tmp_path, name="nope")

    def test_minimal_set_takes_defaults(self, tmp_path):
        _write_set(tmp_path, "minimal", _MINIMAL)

        policy = get_active_config(config_dir=tmp_path, name="minimal")

        assert policy.version == 3
        assert policy.timezone == "Australia/Adelaide"
        assert policy.actions == ()

    def test_unknown_requirement_is_rejected(self, tmp_path):
        _write_set(
            tmp_path,
            "bad",
            _MINIMAL
            + "actions:\n"
            "  submit_for_review:\n"
            "    requirements: [has_goals, has_manager_sign_off]\n"
            "  archive:\n"
            "    requirements: []\n",
        )

        with pytest.raises(ConfigError) as exc_info:
            get_active_config(config_dir=tmp_path, name="bad")

        assert "Unknown action: archive" in exc_info.value.errors
        assert any("has_manager_sign_off" in e for e in exc_info.value.errors)


class TestValidator:
    def test_reports_every_problem(self):
        policy = parse_workflow_policy(
            {
                "config_id": "x",
                "version": 1,
                "timezone": "Mars/Olympus_Mons",
                "rating_scale": {"minimum": 5, "maximum": 1},
                "mid_year": {"direct_approval_summary": "  "},
            }
        )

        errors = validate_policy(policy)

        assert len(errors) == 3

    def test_duplicate_requirement(self):
        policy = parse_workflow_policy(
            {
                "config_id": "x",
                "version": 1,
                "actions": {"submit_mid_year": {"requirements": ["owner_match", "owner_match"]}},
            }
        )
        assert validate_policy(policy) == ["Duplicate requirement for action submit_mid_year"]

    def test_requirements_must_be_a_list(self):
        with pytest.raises(ValueError):
            parse_workflow_policy(
                {"config_id": "x", "version": 1, "actions": {"submit_mid_year": {"requirements": "owner_match"}}}
            )

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestBridges:
    def test_default_policy_matches_built_in_table(self):
        assert build_workflow(get_active_config()) == PDR_WORKFLOW

    def test_strict_policy_disables_direct_mid_year_approval(self):
        workflow = build_workflow(get_active_config(name="strict"))

        approve = workflow.transition_for(PDRAction.APPROVE_MID_YEAR)
        submit = workflow.transition_for(PDRAction.SUBMIT_FOR_REVIEW)
        assert approve.from_states == (PDRStatus.MID_YEAR_SUBMITTED,)
        assert "goal_weighting" in submit.requirements

    def test_state_machine_uses_policy(self, deterministic_clock):
        policy = parse_workflow_policy(
            {"config_id": "wide", "version": 1, "rating_scale": {"minimum": 0, "maximum": 10}}
        )

        machine = build_state_machine(policy, deterministic_clock)

        assert machine.rating_scale == build_rating_scale(policy)
        assert machine.rating_scale.maximum == 10
