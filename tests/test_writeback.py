"""Tests for batch write results and cross-team validation."""

from linear_toon.toon.encoder import encode
from linear_toon.toon.writeback import (
    WriteResults,
    validate_label_key_prefix,
    validate_state_belongs_to_team,
    validate_state_key_prefix,
)


class TestWriteResults:
    def test_partial_success_document(self, registry):
        results = WriteResults()
        assert results.resolve_item(1, registry, "state", "s9") is None
        results.add_ok(0, "SQT-1")

        assert encode(results.to_document("create_issues")) == (
            "_meta{action,succeeded,failed,total}:\n"
            "  create_issues,1,1,2\n"
            "\n"
            "results[2]{index,status,identifier,error}:\n"
            "  0,ok,SQT-1,\n"
            "  1,error,,Unknown state key 's9'"
        )

    def test_error_code_recorded(self, registry):
        results = WriteResults()
        results.resolve_item(0, registry, "user", "zz1")
        assert results.results[0].code == "INVALID_KEY_FORMAT"
        assert results.failed == 1

    def test_resolve_item_success(self, registry, ids):
        results = WriteResults()
        assert results.resolve_item(0, registry, "user", "u1") == ids.alice
        assert results.results == []

    def test_uuid_of_another_type_fails(self, registry, ids):
        results = WriteResults()
        assert results.resolve_item(0, registry, "user", ids.sqt_todo) is None
        assert results.failed == 1
        assert results.results[0].index == 0

    def test_plain_error_message(self):
        results = WriteResults()
        results.add_error(0, "Title required")
        assert results.results[0].error == "Title required"
        assert results.results[0].code is None


class TestStateValidation:
    def test_default_team_key_in_default_team(self, registry, ids):
        assert validate_state_key_prefix("s0", ids.team_sqt, registry).valid

    def test_unprefixed_key_in_other_team(self, registry, ids):
        result = validate_state_key_prefix("s0", ids.team_sqm, registry)
        assert not result.valid
        assert result.error == "State 's0' is a SQT state key, but the issue is in team SQM"
        assert "'sqm:s0'" in result.suggestion

    def test_prefixed_key_matches_team(self, registry, ids):
        assert validate_state_key_prefix("sqm:s0", ids.team_sqm, registry).valid
        assert validate_state_key_prefix("SQM:S0", ids.team_sqm, registry).valid

    def test_prefixed_key_other_team(self, registry, ids):
        result = validate_state_key_prefix("sqm:s0", ids.team_sqt, registry)
        assert not result.valid
        assert "belongs to team SQM" in result.error

    def test_non_state_keys_pass(self, registry, ids):
        assert validate_state_key_prefix("Todo", ids.team_sqm, registry).valid
        assert validate_state_key_prefix("u0", ids.team_sqm, registry).valid

    def test_resolved_state_team(self, registry, ids):
        assert validate_state_belongs_to_team("s0", ids.sqt_todo, ids.team_sqt, registry).valid
        result = validate_state_belongs_to_team("s0", ids.sqt_todo, ids.team_sqm, registry)
        assert not result.valid
        assert "belongs to team SQT" in result.error
        assert validate_state_belongs_to_team("s7", "state-gone", ids.team_sqm, registry).valid


class TestLabelValidation:
    def test_workspace_label_fits_any_team(self, registry, ids):
        assert validate_label_key_prefix("Bug", ids.label_bug, ids.team_sqm, registry).valid

    def test_team_label_in_own_team(self, registry, ids):
        assert validate_label_key_prefix("Feature", ids.label_feature, ids.team_sqt, registry).valid

    def test_team_label_in_other_team(self, registry, ids):
        result = validate_label_key_prefix("Feature", ids.label_feature, ids.team_sqm, registry)
        assert not result.valid
        assert result.error == "Label 'Feature' belongs to team SQT, but the issue is in team SQM"

    def test_unknown_label_with_team_prefix(self, registry, ids):
        result = validate_label_key_prefix("sqm:New", "label-new", ids.team_sqt, registry)
        assert not result.valid
        assert "belongs to team SQM" in result.error

    def test_unknown_label_with_unknown_prefix(self, registry, ids):
        assert validate_label_key_prefix("Type:New", "label-new", ids.team_sqt, registry).valid
