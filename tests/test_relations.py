import os
import sys
import random

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from realm import DiplomacyLedger, LedgerResult, RelationType
from realm.diplomacy import derive_relation_type, next_relation_type


def make_ledger(**kwargs):
    ledger = DiplomacyLedger("player", **kwargs)
    ledger.initialize_relation("francia", "Francia")
    return ledger


def test_initialize_relation_seeds_value_from_type():
    ledger = DiplomacyLedger("player")
    ledger.initialize_relation("francia", "Francia")
    ledger.initialize_relation("wessex", "Wessex", RelationType.FRIENDLY)
    ledger.initialize_relation("mercia", "Mercia", "hostile")

    assert ledger.get_relation("francia").relationship_value == 0
    assert ledger.get_relation("wessex").relationship_value == 25
    assert ledger.get_relation("mercia").relationship_value == -25
    assert ledger.get_relation("mercia").relation_type is RelationType.HOSTILE
    assert all(r.trust == 50 for r in ledger.get_all_relations())
    assert ledger.get_relation("francia").last_interaction is None


def test_initialize_relation_is_idempotent():
    ledger = make_ledger()
    ledger.update_relationship("francia", 30)
    again = ledger.initialize_relation("francia", "Renamed", RelationType.FRIENDLY)

    assert again.kingdom_name == "Francia"
    assert again.relationship_value == 30
    assert len(ledger.get_all_relations()) == 1


def test_update_relationship_clamps_and_stamps_year():
    ledger = make_ledger(current_year=1066)
    ledger.update_relationship("francia", 250)
    relation = ledger.get_relation("francia")
    assert relation.relationship_value == 100
    assert relation.relation_type is RelationType.FRIENDLY
    assert relation.last_interaction == 1066

    ledger.update_relationship("francia", -500)
    assert relation.relationship_value == -100
    assert relation.relation_type is RelationType.HOSTILE


def test_threshold_boundaries_are_exclusive():
    assert derive_relation_type(75) is RelationType.NEUTRAL
    assert derive_relation_type(76) is RelationType.FRIENDLY
    assert derive_relation_type(-75) is RelationType.NEUTRAL
    assert derive_relation_type(-76) is RelationType.HOSTILE


def test_update_unknown_kingdom_is_a_silent_no_op():
    ledger = make_ledger()
    assert ledger.update_relationship("nowhere", 10) is LedgerResult.NOT_FOUND
    assert ledger.get_relation("nowhere") is None


@pytest.mark.parametrize("sticky", [True, False])
def test_random_updates_keep_value_in_range_and_labels_consistent(sticky):
    rng = random.Random(7)
    ledger = make_ledger(sticky_labels=sticky)
    for _ in range(300):
        ledger.update_relationship("francia", rng.randint(-60, 60))
        relation = ledger.get_relation("francia")
        assert -100 <= relation.relationship_value <= 100
        assert relation.relation_type is derive_relation_type(relation.relationship_value)


def test_default_mode_overwrites_asserted_labels():
    ledger = make_ledger()
    ledger.set_relation_type("francia", RelationType.ALLIANCE)
    ledger.update_relationship("francia", 5)
    relation = ledger.get_relation("francia")
    assert relation.relation_type is RelationType.NEUTRAL
    assert relation.relationship_value == 5


def test_sticky_mode_keeps_asserted_labels():
    ledger = make_ledger(sticky_labels=True)
    ledger.set_relation_type("francia", RelationType.VASSAL)
    ledger.update_relationship("francia", 90)
    relation = ledger.get_relation("francia")
    assert relation.relation_type is RelationType.VASSAL
    assert relation.relationship_value == 90

    assert ledger.clear_relation_label("francia") is LedgerResult.APPLIED
    assert relation.relation_type is RelationType.FRIENDLY


def test_next_relation_type_only_holds_sticky_labels():
    assert next_relation_type(RelationType.ALLIANCE, -90) is RelationType.HOSTILE
    assert next_relation_type(RelationType.ALLIANCE, -90, sticky_labels=True) is RelationType.ALLIANCE
    assert next_relation_type(RelationType.FRIENDLY, 0, sticky_labels=True) is RelationType.NEUTRAL


def test_war_at_first_contact_is_recorded_as_hostile():
    ledger = DiplomacyLedger("player")
    relation = ledger.initialize_relation("norway", "Norway", "war")
    assert relation.relation_type is RelationType.HOSTILE
    assert relation.relationship_value == -25
    assert not ledger.is_at_war("norway")
    assert ledger.get_relations_by_type(RelationType.WAR) == []


def test_war_cannot_be_asserted_or_dropped_without_peace():
    ledger = make_ledger()
    with pytest.raises(ValueError):
        ledger.set_relation_type("francia", RelationType.WAR)

    ledger.declare_war("francia", "Francia", "Succession dispute")
    with pytest.raises(ValueError):
        ledger.set_relation_type("francia", RelationType.ALLIANCE)
    with pytest.raises(ValueError):
        ledger.clear_relation_label("francia")


def test_adjust_trust_clamps():
    ledger = make_ledger()
    ledger.adjust_trust("francia", -80)
    assert ledger.get_relation("francia").trust == 0
    ledger.adjust_trust("francia", 500)
    assert ledger.get_relation("francia").trust == 100
    assert ledger.adjust_trust("nowhere", 5) is LedgerResult.NOT_FOUND


def test_relations_by_type():
    ledger = make_ledger()
    ledger.initialize_relation("wessex", "Wessex", RelationType.FRIENDLY)
    ledger.set_relation_type("wessex", "alliance")

    allies = ledger.get_relations_by_type(RelationType.ALLIANCE)
    assert [r.kingdom_id for r in allies] == ["wessex"]
    assert [r.kingdom_id for r in ledger.get_relations_by_type("neutral")] == ["francia"]
