import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from realm import DiplomacyLedger, LedgerResult, PeaceStatus, PeaceTerms, RelationType
from realm.diplomacy import WarDeclaration


def make_ledger(**kwargs):
    ledger = DiplomacyLedger("player", **kwargs)
    ledger.initialize_relation("francia", "Francia")
    ledger.initialize_relation("mercia", "Mercia")
    return ledger


@pytest.mark.parametrize("sticky", [True, False])
def test_francia_war_and_peace(sticky):
    ledger = make_ledger(sticky_labels=sticky)
    war_id = ledger.declare_war("francia", "Francia", "Claim on the throne")

    relation = ledger.get_relation("francia")
    assert relation.relationship_value == -80
    assert relation.relation_type is RelationType.WAR
    assert ledger.is_at_war("francia")

    offer_id = ledger.offer_peace("francia", "Francia", PeaceTerms(gold_compensation=200))
    assert [o.id for o in ledger.get_pending_peace_offers()] == [offer_id]
    assert ledger.get_war(war_id) is not None

    assert ledger.accept_peace_offer(offer_id) is LedgerResult.APPLIED
    assert relation.relation_type is RelationType.NEUTRAL
    assert relation.relationship_value == -60
    assert ledger.get_war(war_id) is None
    assert all(w.target_kingdom != "francia" for w in ledger.get_active_wars())
    assert ledger.get_peace_offer(offer_id).accepted is PeaceStatus.ACCEPTED
    assert ledger.get_pending_peace_offers() == []


def test_war_label_survives_updates_in_sticky_mode():
    ledger = make_ledger(sticky_labels=True)
    ledger.declare_war("francia", "Francia", "Raids")
    ledger.update_relationship("francia", 90)
    assert ledger.get_relation("francia").relation_type is RelationType.WAR


def test_war_label_is_overwritten_by_default():
    ledger = make_ledger()
    ledger.declare_war("francia", "Francia", "Raids")
    ledger.update_relationship("francia", 1)
    assert ledger.get_relation("francia").relation_type is RelationType.HOSTILE


def test_peace_removes_wars_in_both_directions_only_for_that_pair():
    ledger = make_ledger()
    ours = ledger.declare_war("francia", "Francia", "Raids")
    other = ledger.declare_war("mercia", "Mercia", "Insult")
    ledger.wars["war_theirs"] = WarDeclaration(
        id="war_theirs",
        declaring_kingdom="francia",
        target_kingdom="player",
        target_kingdom_name="Player",
        year=1,
        cause="Revenge",
    )
    ledger.wars["war_foreign"] = WarDeclaration(
        id="war_foreign",
        declaring_kingdom="francia",
        target_kingdom="mercia",
        target_kingdom_name="Mercia",
        year=1,
        cause="Their own quarrel",
    )

    ledger.accept_peace_offer(ledger.offer_peace("francia", "Francia"))

    remaining = {w.id for w in ledger.get_active_wars()}
    assert ours not in remaining
    assert "war_theirs" not in remaining
    assert remaining == {other, "war_foreign"}
    assert ledger.get_relation("mercia").relation_type is RelationType.WAR


def test_reject_peace_keeps_war():
    ledger = make_ledger()
    war_id = ledger.declare_war("francia", "Francia", "Raids")
    offer_id = ledger.offer_peace("francia", "Francia")

    assert ledger.reject_peace_offer(offer_id) is LedgerResult.APPLIED
    assert ledger.get_relation("francia").relationship_value == -85
    assert ledger.get_war(war_id) is not None
    assert ledger.get_peace_offer(offer_id).accepted is PeaceStatus.REJECTED


def test_peace_offer_resolves_only_once():
    ledger = make_ledger()
    ledger.declare_war("francia", "Francia", "Raids")
    offer_id = ledger.offer_peace("francia", "Francia")
    ledger.reject_peace_offer(offer_id)

    assert ledger.accept_peace_offer(offer_id) is LedgerResult.ALREADY_RESOLVED
    assert ledger.reject_peace_offer(offer_id) is LedgerResult.ALREADY_RESOLVED
    assert ledger.is_at_war("francia")
    assert ledger.get_relation("francia").relationship_value == -85
    assert ledger.accept_peace_offer("peace_0") is LedgerResult.NOT_FOUND


def test_peace_does_not_relabel_non_war_relation():
    ledger = make_ledger(sticky_labels=True)
    ledger.set_relation_type("francia", RelationType.ALLIANCE)
    ledger.accept_peace_offer(ledger.offer_peace("francia", "Francia"))
    assert ledger.get_relation("francia").relation_type is RelationType.ALLIANCE


def test_war_score_is_clamped():
    ledger = make_ledger()
    war_id = ledger.declare_war("francia", "Francia", "Raids")
    ledger.update_war_score(war_id, 150)
    assert ledger.get_war(war_id).war_score == 100
    ledger.update_war_score(war_id, -250)
    assert ledger.get_war(war_id).war_score == -100
    assert ledger.update_war_score("war_0", 5) is LedgerResult.NOT_FOUND


def test_battles_and_allies():
    ledger = make_ledger(current_year=800)
    war_id = ledger.declare_war("francia", "Francia", "Raids")
    ledger.record_battle(war_id, casualties=120, score_change=15)
    ledger.record_battle(war_id, casualties=80, score_change=-5)
    ledger.join_war(war_id, "mercia")
    ledger.join_war(war_id, "mercia")

    war = ledger.get_war(war_id)
    assert war.year == 800
    assert war.battles == 2
    assert war.casualties == 200
    assert war.war_score == 10
    assert war.allies == ["mercia"]

    with pytest.raises(ValueError):
        ledger.join_war(war_id, "francia")
    with pytest.raises(ValueError):
        ledger.record_battle(war_id, casualties=-1)
    assert ledger.record_battle("war_0") is LedgerResult.NOT_FOUND


def test_war_on_self_is_recorded_without_raising():
    ledger = make_ledger()
    war_id = ledger.declare_war("player", "Player", "Civil war")

    war = ledger.get_war(war_id)
    assert war.declaring_kingdom == "player"
    assert war.target_kingdom == "player"
    assert ledger.get_relation("player") is None
    assert ledger.get_relation("francia").relationship_value == 0


def test_war_on_unknown_kingdom_is_recorded_without_relation():
    ledger = make_ledger()
    war_id = ledger.declare_war("norway", "Norway", "Vikings")
    assert ledger.get_war(war_id).target_kingdom == "norway"
    assert ledger.get_relation("norway") is None
    assert [w.id for w in ledger.get_wars_with("norway")] == [war_id]
