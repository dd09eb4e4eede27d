"""Graph derivation on hand-built indexes — no files involved.

Incremental patches (update_patch / prune) must always land on exactly what
build_all computes from scratch.
"""

import copy
import random

import pytest

from trackdown.index import build_all, empty_index, prune, update_patch
from trackdown.index.graph import type_map
from trackdown.records._schema import TYPE_TO_FOLDER


POOL = {
    "project": ["P1", "P2"],
    "epic": ["E1", "E2", "E3"],
    "issue": ["I1", "I2", "I3", "I4"],
    "task": ["T1", "T2", "T3", "T4"],
    "pr": ["R1", "R2"],
}
PARENT_FIELDS = {
    "epic": [("projectId", "project")],
    "issue": [("epicId", "epic")],
    "task": [("issueId", "issue"), ("parentTask", "task")],
    "pr": [("issueId", "issue")],
}
ALL_IDS = [i for ids in POOL.values() for i in ids] + ["GHOST-1"]


def _entry(item_id, declared=None, **fields):
    return {"id": item_id, "declared": declared or {}, **fields}


def _put(index, item_type, entry):
    entries = type_map(index, item_type)
    previous = entries.get(entry["id"])
    entries[entry["id"]] = entry
    update_patch(index, item_type, entry["id"], previous)


def _drop(index, item_type, item_id):
    removed = type_map(index, item_type).pop(item_id)
    prune(index, item_type, item_id, removed)


def _oracle(index):
    fresh = copy.deepcopy(index)
    build_all(fresh)
    return fresh


def _assert_consistent(index):
    expected = _oracle(index)
    for folder in TYPE_TO_FOLDER.values():
        assert index[folder] == expected[folder], folder
    assert index["backrefs"] == expected["backrefs"]


def _random_entry(rng, item_type, item_id):
    fields = {}
    for field, parent_type in PARENT_FIELDS.get(item_type, []):
        fields[field] = rng.choice(POOL[parent_type] + [None, "MISSING-1"])
    declared = {
        "relatedIssues": rng.sample(POOL["issue"], rng.randint(0, 2)),
        "relatedTasks": rng.sample(POOL["task"], rng.randint(0, 2)),
        "blockedBy": rng.sample(ALL_IDS, rng.randint(0, 3)),
        "dependencies": rng.sample(ALL_IDS, rng.randint(0, 2)),
    }
    return _entry(item_id, declared, **fields)


class TestBuildAll:
    def test_parent_lists(self):
        index = empty_index("/p")
        index["epics"]["E1"] = _entry("E1")
        index["issues"]["I2"] = _entry("I2", epicId="E1")
        index["issues"]["I1"] = _entry("I1", epicId="E1")
        index["issues"]["I3"] = _entry("I3", epicId="E9")
        build_all(index)
        assert index["epics"]["E1"]["issueIds"] == ["I1", "I2"]
        assert index["issues"]["I3"]["epicId"] == "E9"

    def test_typed_reference_needs_matching_type(self):
        index = empty_index("/p")
        index["epics"]["E1"] = _entry("E1")
        index["issues"]["I1"] = _entry("I1", {"relatedIssues": ["E1", "I1"], "blockedBy": ["E1"]})
        build_all(index)
        assert index["issues"]["I1"]["relatedIssues"] == ["I1"]
        assert index["issues"]["I1"]["blockedBy"] == ["E1"]

    def test_backrefs(self):
        index = empty_index("/p")
        index["issues"]["I1"] = _entry("I1", {"blocks": ["I2"]}, epicId="E1")
        build_all(index)
        assert index["backrefs"] == {
            "E1": [{"type": "issue", "id": "I1", "field": "epicId"}],
            "I2": [{"type": "issue", "id": "I1", "field": "blocks"}],
        }


class TestPatch:
    def test_child_before_parent(self):
        index = empty_index("/p")
        _put(index, "issue", _entry("I1", epicId="E1"))
        _put(index, "epic", _entry("E1"))
        assert index["epics"]["E1"]["issueIds"] == ["I1"]
        _assert_consistent(index)

    def test_reference_before_target(self):
        index = empty_index("/p")
        _put(index, "issue", _entry("I1", {"blockedBy": ["T1"], "relatedTasks": ["T1"]}))
        assert index["issues"]["I1"]["blockedBy"] == []
        _put(index, "task", _entry("T1"))
        assert index["issues"]["I1"]["blockedBy"] == ["T1"]
        assert index["issues"]["I1"]["relatedTasks"] == ["T1"]
        _assert_consistent(index)

    def test_self_parent(self):
        index = empty_index("/p")
        _put(index, "task", _entry("T1", parentTask="T1"))
        assert index["tasks"]["T1"]["subtaskIds"] == ["T1"]
        _assert_consistent(index)
        _drop(index, "task", "T1")
        assert index["backrefs"] == {}

    def test_remove_does_not_cascade(self):
        index = empty_index("/p")
        _put(index, "epic", _entry("E1"))
        _put(index, "issue", _entry("I1", {"dependencies": ["E1"]}, epicId="E1"))
        _drop(index, "epic", "E1")
        assert index["issues"]["I1"]["epicId"] == "E1"
        assert index["issues"]["I1"]["dependencies"] == []
        _assert_consistent(index)

    def test_untyped_list_keeps_id_shared_across_types(self):
        index = empty_index("/p")
        _put(index, "epic", _entry("X1"))
        _put(index, "issue", _entry("X1"))
        _put(index, "task", _entry("T1", {"blockedBy": ["X1"], "relatedIssues": ["X1"]}))
        _drop(index, "issue", "X1")
        assert index["tasks"]["T1"]["blockedBy"] == ["X1"]
        assert index["tasks"]["T1"]["relatedIssues"] == []
        _assert_consistent(index)

    def test_typed_list_ignores_other_type_removal(self):
        index = empty_index("/p")
        _put(index, "epic", _entry("X1"))
        _put(index, "issue", _entry("X1"))
        _put(index, "task", _entry("T1", {"relatedIssues": ["X1"]}))
        _drop(index, "epic", "X1")
        assert index["tasks"]["T1"]["relatedIssues"] == ["X1"]
        _assert_consistent(index)

    @pytest.mark.parametrize("seed", range(8))
    def test_random_sequences_match_build_all(self, seed):
        rng = random.Random(seed)
        index = empty_index("/p")
        for _ in range(150):
            item_type = rng.choice(list(POOL))
            item_id = rng.choice(POOL[item_type])
            if item_id in type_map(index, item_type) and rng.random() < 0.3:
                _drop(index, item_type, item_id)
            else:
                _put(index, item_type, _random_entry(rng, item_type, item_id))
            _assert_consistent(index)
