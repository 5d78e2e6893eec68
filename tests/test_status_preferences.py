"""Tests for the ticket status filter (StatusPreferenceSet + store).

Covers:
  - Default selection and the never-empty invariant
  - add / remove / toggle ordering and duplicates
  - JQL clause composition
  - Persistence in the sync scope (unencrypted)
"""

import pytest

from rtk_dashboard.exceptions import ValidationError
from rtk_dashboard.vault import STATUS_OPTIONS, StatusPreferenceSet, StatusPreferenceStore


class TestStatusOptions:

    def test_option_ids(self):
        assert [opt.id for opt in STATUS_OPTIONS] == [
            "in_progress", "to_do", "in_review", "code_review", "blocked", "done_today",
        ]

    def test_to_do_uses_status_category(self):
        opt = next(o for o in STATUS_OPTIONS if o.id == "to_do")
        assert opt.jql == 'statusCategory = "To Do"'


class TestStatusPreferenceSet:

    def test_default_is_in_progress(self):
        assert StatusPreferenceSet().statuses == ["in_progress"]

    def test_empty_input_falls_back_to_default(self):
        assert StatusPreferenceSet([]).statuses == ["in_progress"]

    def test_keeps_order_and_drops_duplicates(self):
        prefs = StatusPreferenceSet(["blocked", "to_do", "blocked"])
        assert prefs.statuses == ["blocked", "to_do"]

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            StatusPreferenceSet(["in_progress", "bogus"])

    def test_removing_last_status_is_noop(self):
        prefs = StatusPreferenceSet(["blocked"])
        assert prefs.remove("blocked") is False
        assert prefs.statuses == ["blocked"]

    def test_toggle_last_status_is_noop(self):
        prefs = StatusPreferenceSet()
        prefs.toggle("in_progress")
        assert len(prefs) == 1
        assert "in_progress" in prefs

    def test_remove_when_others_selected(self):
        prefs = StatusPreferenceSet(["in_progress", "blocked"])
        assert prefs.remove("in_progress") is True
        assert prefs.statuses == ["blocked"]

    def test_remove_unselected_is_noop(self):
        prefs = StatusPreferenceSet(["in_progress", "blocked"])
        assert prefs.remove("to_do") is False
        assert len(prefs) == 2

    def test_toggle_adds_then_removes(self):
        prefs = StatusPreferenceSet()
        prefs.toggle("in_review")
        assert prefs.statuses == ["in_progress", "in_review"]
        prefs.toggle("in_review")
        assert prefs.statuses == ["in_progress"]

    def test_add_unknown_rejected(self):
        with pytest.raises(ValidationError):
            StatusPreferenceSet().add("bogus")

    def test_never_empty_through_any_sequence(self):
        prefs = StatusPreferenceSet(["to_do", "blocked", "in_review"])
        for status_id in ["to_do", "blocked", "in_review", "in_review", "blocked"]:
            prefs.remove(status_id)
            assert len(prefs) >= 1

    def test_single_jql_clause(self):
        assert StatusPreferenceSet().jql_clause() == 'status = "In Progress"'

    def test_multiple_jql_clauses(self):
        prefs = StatusPreferenceSet(["in_progress", "done_today"])
        assert prefs.jql_clause() == (
            '(status = "In Progress") OR (status = "Done" AND updated >= startOfDay())'
        )

    def test_equality(self):
        assert StatusPreferenceSet(["blocked"]) == StatusPreferenceSet(["blocked"])
        assert StatusPreferenceSet(["blocked"]) != StatusPreferenceSet(["to_do"])


class TestStatusPreferenceStore:

    @pytest.fixture
    def pref_store(self, storage):
        return StatusPreferenceStore(storage.sync)

    @pytest.mark.asyncio
    async def test_load_default_when_absent(self, pref_store):
        assert (await pref_store.load()).statuses == ["in_progress"]

    @pytest.mark.asyncio
    async def test_save_and_load(self, pref_store, storage):
        await pref_store.save(StatusPreferenceSet(["to_do", "blocked"]))

        assert storage.sync.snapshot()["jira_statuses"] == ["to_do", "blocked"]
        assert (await pref_store.load()).statuses == ["to_do", "blocked"]

    @pytest.mark.asyncio
    async def test_stored_unknown_ids_dropped(self, pref_store, storage):
        await storage.sync.set({"jira_statuses": ["retired_status", "blocked"]})
        assert (await pref_store.load()).statuses == ["blocked"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", [[], "blocked", None, ["retired_status"]])
    async def test_unusable_stored_value_gives_default(self, pref_store, storage, stored):
        await storage.sync.set({"jira_statuses": stored})
        assert (await pref_store.load()).statuses == ["in_progress"]
