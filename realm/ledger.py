from __future__ import annotations

import logging
import random
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from . import settings
from .diplomacy import (
    DiplomaticMission,
    DiplomaticRelation,
    LedgerResult,
    MissionOutcome,
    MissionType,
    PeaceOffer,
    PeaceStatus,
    PeaceTerms,
    RelationType,
    Resolution,
    ResourceExchange,
    ResourceType,
    TradeAgreement,
    TradeSummary,
    Treaty,
    TreatyTerms,
    TreatyType,
    WarDeclaration,
    YearReport,
    clamp,
    derive_relation_type,
    initial_relationship_value,
    next_relation_type,
)

logger = logging.getLogger("realm.Ledger")
logger.addHandler(logging.NullHandler())

KingdomId = str
ResourceDict = Mapping[Union[ResourceType, str], int]


def _resource_dict(data: Optional[ResourceDict]) -> Dict[ResourceType, int]:
    return {ResourceType(res): int(amt) for res, amt in (data or {}).items()}


# --------------------------------------------------------------------
# "DiplomacyLedger" Class: one kingdom's diplomatic state & year sweep
# --------------------------------------------------------------------
class DiplomacyLedger:
    """
    In-memory authority for one kingdom's diplomacy:
      - Relations with every kingdom met so far
      - Treaties & trade agreements (active until broken or expired)
      - Wars & peace offers
      - Diplomatic missions, settled explicitly or by the yearly sweep

    Id-keyed mutations never raise for unknown ids; they return a
    ``LedgerResult`` the caller may inspect.
    """

    def __init__(
        self,
        kingdom_id: KingdomId,
        *,
        current_year: Optional[int] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        sticky_labels: Optional[bool] = None,
    ):
        self.kingdom_id = kingdom_id
        self.current_year = settings.START_YEAR if current_year is None else current_year
        self.sticky_labels = (
            settings.STICKY_RELATION_LABELS if sticky_labels is None else sticky_labels
        )
        # Random source for mission auto-resolution
        self.rng = rng or random.Random(seed)

        self.relations: Dict[KingdomId, DiplomaticRelation] = {}
        self.treaties: Dict[str, Treaty] = {}
        self.trade_agreements: Dict[str, TradeAgreement] = {}
        self.missions: Dict[str, DiplomaticMission] = {}
        self.wars: Dict[str, WarDeclaration] = {}
        self.peace_offers: Dict[str, PeaceOffer] = {}
        self._next_id = 1

    def __repr__(self) -> str:
        return (
            f"DiplomacyLedger({self.kingdom_id!r}, year={self.current_year}, "
            f"relations={len(self.relations)}, wars={len(self.wars)})"
        )

    def _new_id(self, kind: str) -> str:
        entity_id = f"{kind}_{self._next_id}"
        self._next_id += 1
        return entity_id

    # ----------------------------------------------------------------
    # Relations
    # ----------------------------------------------------------------
    def initialize_relation(
        self,
        kingdom_id: KingdomId,
        kingdom_name: str,
        initial_type: Union[RelationType, str] = RelationType.NEUTRAL,
    ) -> DiplomaticRelation:
        """
        Record first contact with a kingdom. Does nothing if a relation
        already exists. Returns the (new or existing) relation.

        A ``war`` starting type is recorded as ``hostile``; only
        ``declare_war`` labels a relation as war.
        """
        existing = self.relations.get(kingdom_id)
        if existing is not None:
            logger.debug("Relation with %r already initialized", kingdom_id)
            return existing

        initial_type = RelationType(initial_type)
        relation_type = initial_type
        if relation_type is RelationType.WAR:
            logger.debug("No war declared on %r; recording it as hostile", kingdom_id)
            relation_type = RelationType.HOSTILE
        relation = DiplomaticRelation(
            kingdom_id=kingdom_id,
            kingdom_name=kingdom_name,
            relation_type=relation_type,
            relationship_value=initial_relationship_value(initial_type),
            trust=settings.INITIAL_TRUST,
        )
        self.relations[kingdom_id] = relation
        return relation

    def update_relationship(self, kingdom_id: KingdomId, delta: int) -> LedgerResult:
        """
        Shift the relationship value by ``delta`` (clamped to the allowed
        range), stamp the interaction year and relabel the relation.
        """
        relation = self.relations.get(kingdom_id)
        if relation is None:
            logger.debug("No relation with %r; ignoring change of %+d", kingdom_id, delta)
            return LedgerResult.NOT_FOUND

        relation.relationship_value = clamp(
            relation.relationship_value + delta,
            settings.RELATIONSHIP_MIN,
            settings.RELATIONSHIP_MAX,
        )
        relation.last_interaction = self.current_year
        relation.relation_type = next_relation_type(
            relation.relation_type, relation.relationship_value, self.sticky_labels
        )
        return LedgerResult.APPLIED

    def adjust_trust(self, kingdom_id: KingdomId, delta: int) -> LedgerResult:
        relation = self.relations.get(kingdom_id)
        if relation is None:
            return LedgerResult.NOT_FOUND
        relation.trust = clamp(relation.trust + delta, settings.TRUST_MIN, settings.TRUST_MAX)
        return LedgerResult.APPLIED

    def set_relation_type(
        self, kingdom_id: KingdomId, relation_type: Union[RelationType, str]
    ) -> LedgerResult:
        """
        Explicitly move a relation to ``relation_type``. War can only be
        entered through ``declare_war`` and only left through peace.
        """
        relation_type = RelationType(relation_type)
        relation = self.relations.get(kingdom_id)
        if relation is None:
            return LedgerResult.NOT_FOUND
        if relation_type is RelationType.WAR:
            raise ValueError("Use declare_war to go to war")
        self._check_not_at_war(relation)
        relation.relation_type = relation_type
        relation.last_interaction = self.current_year
        return LedgerResult.APPLIED

    def clear_relation_label(self, kingdom_id: KingdomId) -> LedgerResult:
        """Drop an asserted label and fall back to the threshold label."""
        relation = self.relations.get(kingdom_id)
        if relation is None:
            return LedgerResult.NOT_FOUND
        self._check_not_at_war(relation)
        relation.relation_type = derive_relation_type(relation.relationship_value)
        return LedgerResult.APPLIED

    def _check_not_at_war(self, relation: DiplomaticRelation) -> None:
        if relation.relation_type is RelationType.WAR and self.is_at_war(relation.kingdom_id):
            raise ValueError(
                f"Still at war with {relation.kingdom_name}; accept a peace offer first"
            )

    def get_relation(self, kingdom_id: KingdomId) -> Optional[DiplomaticRelation]:
        return self.relations.get(kingdom_id)

    def get_all_relations(self) -> List[DiplomaticRelation]:
        return list(self.relations.values())

    def get_relations_by_type(
        self, relation_type: Union[RelationType, str]
    ) -> List[DiplomaticRelation]:
        relation_type = RelationType(relation_type)
        return [r for r in self.relations.values() if r.relation_type is relation_type]

    # ----------------------------------------------------------------
    # Treaties
    # ----------------------------------------------------------------
    def propose_treaty(
        self,
        treaty_type: Union[TreatyType, str],
        parties: Iterable[KingdomId],
        *,
        signed_year: Optional[int] = None,
        expiry_year: Optional[int] = None,
        terms: Optional[TreatyTerms] = None,
    ) -> str:
        """
        Sign a treaty and store it as active. Every party other than the
        ledger owner gets a relationship bonus. Returns the treaty id.
        """
        parties = list(parties)
        if len(parties) < 2:
            raise ValueError("A treaty needs at least two parties")

        treaty_id = self._new_id("treaty")
        treaty = Treaty(
            id=treaty_id,
            treaty_type=TreatyType(treaty_type),
            parties=parties,
            signed_year=self.current_year if signed_year is None else signed_year,
            expiry_year=expiry_year,
            terms=terms or TreatyTerms(),
        )
        self.treaties[treaty_id] = treaty

        for party in self._others(parties):
            self.update_relationship(party, settings.TREATY_RELATION_BONUS)

        logger.info(
            "Treaty %s (%s) signed by %s",
            treaty_id,
            treaty.treaty_type.value,
            ", ".join(parties),
        )
        return treaty_id

    def break_treaty(self, treaty_id: str) -> LedgerResult:
        """
        Deactivate a treaty for good. Other parties lose relationship and
        trust. Breaking an inactive treaty changes nothing.
        """
        treaty = self.treaties.get(treaty_id)
        if treaty is None:
            logger.debug("Unknown treaty %r", treaty_id)
            return LedgerResult.NOT_FOUND
        if not treaty.active:
            logger.debug("Treaty %s is already inactive", treaty_id)
            return LedgerResult.ALREADY_RESOLVED

        treaty.active = False
        for party in self._others(treaty.parties):
            self.update_relationship(party, settings.TREATY_BREAK_PENALTY)
            self.adjust_trust(party, settings.TREATY_BREAK_TRUST_PENALTY)

        logger.info("Treaty %s broken in year %d", treaty_id, self.current_year)
        return LedgerResult.APPLIED

    def get_treaty(self, treaty_id: str) -> Optional[Treaty]:
        return self.treaties.get(treaty_id)

    def get_active_treaties(self) -> List[Treaty]:
        return [t for t in self.treaties.values() if t.active]

    def _others(self, parties: Iterable[KingdomId]) -> List[KingdomId]:
        return [p for p in parties if p != self.kingdom_id]

    # ----------------------------------------------------------------
    # Trade Agreements
    # ----------------------------------------------------------------
    def create_trade_agreement(
        self,
        partner_id: KingdomId,
        partner_name: str,
        *,
        gold_per_turn: int = 0,
        give: Optional[ResourceDict] = None,
        receive: Optional[ResourceDict] = None,
        trade_power_bonus: int = 0,
        start_year: Optional[int] = None,
        duration: Optional[int] = None,
    ) -> str:
        agreement_id = self._new_id("trade")
        self.trade_agreements[agreement_id] = TradeAgreement(
            id=agreement_id,
            partner_id=partner_id,
            partner_name=partner_name,
            gold_per_turn=gold_per_turn,
            resource_exchange=ResourceExchange(
                give=_resource_dict(give), receive=_resource_dict(receive)
            ),
            trade_power_bonus=trade_power_bonus,
            start_year=self.current_year if start_year is None else start_year,
            duration=duration,
        )
        self.update_relationship(partner_id, settings.TRADE_RELATION_BONUS)
        logger.info("Trade agreement %s opened with %s", agreement_id, partner_name)
        return agreement_id

    def cancel_trade_agreement(self, agreement_id: str) -> LedgerResult:
        agreement = self.trade_agreements.get(agreement_id)
        if agreement is None:
            logger.debug("Unknown trade agreement %r", agreement_id)
            return LedgerResult.NOT_FOUND
        if not agreement.active:
            logger.debug("Trade agreement %s is already inactive", agreement_id)
            return LedgerResult.ALREADY_RESOLVED

        agreement.active = False
        self.update_relationship(agreement.partner_id, settings.TRADE_CANCEL_PENALTY)
        logger.info("Trade agreement %s cancelled", agreement_id)
        return LedgerResult.APPLIED

    def get_trade_agreement(self, agreement_id: str) -> Optional[TradeAgreement]:
        return self.trade_agreements.get(agreement_id)

    def get_active_trade_agreements(self) -> List[TradeAgreement]:
        return [a for a in self.trade_agreements.values() if a.active]

    def trade_summary(self) -> TradeSummary:
        """Add up gold, trade power and goods across active agreements."""
        summary = TradeSummary()
        for agreement in self.get_active_trade_agreements():
            summary.gold_per_turn += agreement.gold_per_turn
            summary.trade_power_bonus += agreement.trade_power_bonus
            for res, amt in agreement.resource_exchange.give.items():
                summary.resources_given[res] = summary.resources_given.get(res, 0) + amt
            for res, amt in agreement.resource_exchange.receive.items():
                summary.resources_received[res] = summary.resources_received.get(res, 0) + amt
        return summary

    # ----------------------------------------------------------------
    # Wars
    # ----------------------------------------------------------------
    def declare_war(self, target_id: KingdomId, target_name: str, cause: str) -> str:
        """
        Open a war against ``target_id``. The relationship drops first and
        the relation is labelled as war afterwards, so this call does not
        relabel it.
        """
        if target_id == self.kingdom_id:
            logger.debug("%s declared war on itself; no relation to update", target_id)

        war_id = self._new_id("war")
        self.wars[war_id] = WarDeclaration(
            id=war_id,
            declaring_kingdom=self.kingdom_id,
            target_kingdom=target_id,
            target_kingdom_name=target_name,
            year=self.current_year,
            cause=cause,
        )
        self.update_relationship(target_id, settings.WAR_RELATION_PENALTY)

        relation = self.relations.get(target_id)
        if relation is not None:
            relation.relation_type = RelationType.WAR

        logger.info("%s declared war on %s: %s", self.kingdom_id, target_name, cause)
        return war_id

    def update_war_score(self, war_id: str, delta: int) -> LedgerResult:
        war = self.wars.get(war_id)
        if war is None:
            return LedgerResult.NOT_FOUND
        war.war_score = clamp(
            war.war_score + delta, settings.WAR_SCORE_MIN, settings.WAR_SCORE_MAX
        )
        return LedgerResult.APPLIED

    def join_war(self, war_id: str, ally_id: KingdomId) -> LedgerResult:
        """Record ``ally_id`` as having joined a war. Repeat joins are ignored."""
        war = self.wars.get(war_id)
        if war is None:
            return LedgerResult.NOT_FOUND
        if ally_id in (war.declaring_kingdom, war.target_kingdom):
            raise ValueError(f"{ally_id} is already a belligerent in {war_id}")
        if ally_id not in war.allies:
            war.allies.append(ally_id)
        return LedgerResult.APPLIED

    def record_battle(
        self, war_id: str, casualties: int = 0, score_change: int = 0
    ) -> LedgerResult:
        """Count a battle, its casualties and its effect on the war score."""
        if casualties < 0:
            raise ValueError("casualties cannot be negative")
        war = self.wars.get(war_id)
        if war is None:
            return LedgerResult.NOT_FOUND
        war.battles += 1
        war.casualties += casualties
        return self.update_war_score(war_id, score_change)

    def get_war(self, war_id: str) -> Optional[WarDeclaration]:
        return self.wars.get(war_id)

    def get_active_wars(self) -> List[WarDeclaration]:
        return list(self.wars.values())

    def get_wars_with(self, kingdom_id: KingdomId) -> List[WarDeclaration]:
        return [
            w for w in self.wars.values()
            if kingdom_id in (w.declaring_kingdom, w.target_kingdom)
        ]

    def is_at_war(self, kingdom_id: KingdomId) -> bool:
        return any(w.involves(self.kingdom_id, kingdom_id) for w in self.wars.values())

    # ----------------------------------------------------------------
    # Peace Negotiations
    # ----------------------------------------------------------------
    def offer_peace(
        self,
        receiving_id: KingdomId,
        receiving_name: str,
        terms: Optional[PeaceTerms] = None,
    ) -> str:
        offer_id = self._new_id("peace")
        self.peace_offers[offer_id] = PeaceOffer(
            id=offer_id,
            offering_kingdom=self.kingdom_id,
            receiving_kingdom=receiving_id,
            receiving_kingdom_name=receiving_name,
            terms=terms or PeaceTerms(),
        )
        return offer_id

    def accept_peace_offer(self, offer_id: str) -> LedgerResult:
        """
        Accept a pending offer. In one step this:
          - marks the offer accepted
          - ends every war between the two kingdoms, whoever declared it
          - improves relations with the receiving kingdom
          - turns a ``war`` relation back to ``neutral``
        """
        offer = self.peace_offers.get(offer_id)
        if offer is None:
            logger.debug("Unknown peace offer %r", offer_id)
            return LedgerResult.NOT_FOUND
        if offer.accepted is not PeaceStatus.PENDING:
            logger.debug("Peace offer %s was already %s", offer_id, offer.accepted.value)
            return LedgerResult.ALREADY_RESOLVED

        offer.accepted = PeaceStatus.ACCEPTED
        ended = [
            war_id
            for war_id, war in self.wars.items()
            if war.involves(offer.offering_kingdom, offer.receiving_kingdom)
        ]
        for war_id in ended:
            del self.wars[war_id]

        self.update_relationship(offer.receiving_kingdom, settings.PEACE_ACCEPTED_BONUS)
        relation = self.relations.get(offer.receiving_kingdom)
        if relation is not None and relation.relation_type is RelationType.WAR:
            relation.relation_type = RelationType.NEUTRAL

        logger.info(
            "Peace with %s accepted; %d war(s) ended",
            offer.receiving_kingdom_name,
            len(ended),
        )
        return LedgerResult.APPLIED

    def reject_peace_offer(self, offer_id: str) -> LedgerResult:
        offer = self.peace_offers.get(offer_id)
        if offer is None:
            return LedgerResult.NOT_FOUND
        if offer.accepted is not PeaceStatus.PENDING:
            return LedgerResult.ALREADY_RESOLVED

        offer.accepted = PeaceStatus.REJECTED
        self.update_relationship(offer.receiving_kingdom, settings.PEACE_REJECTED_PENALTY)
        logger.info("Peace offer %s rejected by %s", offer_id, offer.receiving_kingdom_name)
        return LedgerResult.APPLIED

    def get_peace_offer(self, offer_id: str) -> Optional[PeaceOffer]:
        return self.peace_offers.get(offer_id)

    def get_pending_peace_offers(self) -> List[PeaceOffer]:
        return [o for o in self.peace_offers.values() if o.accepted is PeaceStatus.PENDING]

    # ----------------------------------------------------------------
    # Diplomatic Missions
    # ----------------------------------------------------------------
    def send_mission(
        self,
        mission_type: Union[MissionType, str],
        target_id: KingdomId,
        target_name: str,
        *,
        duration: int,
        cost: int = 0,
        start_year: Optional[int] = None,
    ) -> str:
        if duration < 0:
            raise ValueError("Mission duration cannot be negative")
        mission_id = self._new_id("mission")
        self.missions[mission_id] = DiplomaticMission(
            id=mission_id,
            mission_type=MissionType(mission_type),
            target_kingdom_id=target_id,
            target_kingdom_name=target_name,
            start_year=self.current_year if start_year is None else start_year,
            duration=duration,
            cost=cost,
        )
        return mission_id

    def complete_mission(
        self,
        mission_id: str,
        success: bool,
        outcome: Optional[MissionOutcome] = None,
    ) -> LedgerResult:
        """
        Settle a mission with a known result. A successful mission applies
        the relationship change carried by its outcome.
        """
        mission = self.missions.get(mission_id)
        if mission is None:
            return LedgerResult.NOT_FOUND
        if mission.resolved:
            logger.debug("Mission %s already resolved", mission_id)
            return LedgerResult.ALREADY_RESOLVED

        self._settle_mission(mission, success, outcome)
        if success and outcome is not None and outcome.relationship_change:
            self.update_relationship(mission.target_kingdom_id, outcome.relationship_change)
        return LedgerResult.APPLIED

    @staticmethod
    def _settle_mission(
        mission: DiplomaticMission, success: bool, outcome: Optional[MissionOutcome]
    ) -> None:
        mission.success = Resolution.SUCCEEDED if success else Resolution.FAILED
        mission.outcome = outcome

    def get_mission(self, mission_id: str) -> Optional[DiplomaticMission]:
        return self.missions.get(mission_id)

    def get_active_missions(self) -> List[DiplomaticMission]:
        return [m for m in self.missions.values() if not m.resolved]

    # ----------------------------------------------------------------
    # Year Advance
    # ----------------------------------------------------------------
    def advance_year(self, year: int, rng: Optional[random.Random] = None) -> YearReport:
        """
        Move the clock to ``year`` and sweep time-bound entities:
          1) Expire treaties whose expiry year has arrived
          2) Expire trade agreements that ran their full duration
          3) Settle missions that outlasted their duration, by chance

        Only active or pending entities are touched, so calling this twice
        for the same year changes nothing the second time.
        """
        rng = rng or self.rng
        if year < self.current_year:
            logger.warning("Moving clock backwards from %d to %d", self.current_year, year)
        self.current_year = year
        report = YearReport(year=year)

        for treaty in self.treaties.values():
            if treaty.active and treaty.expiry_year is not None and treaty.expiry_year <= year:
                treaty.active = False
                report.expired_treaties.append(treaty.id)
                logger.info("Treaty %s expired in year %d", treaty.id, year)

        for agreement in self.trade_agreements.values():
            if (
                agreement.active
                and agreement.duration
                and year - agreement.start_year >= agreement.duration
            ):
                agreement.active = False
                report.expired_trade_agreements.append(agreement.id)
                logger.info("Trade agreement %s expired in year %d", agreement.id, year)

        for mission in self.missions.values():
            if not mission.is_due(year):
                continue
            success = rng.random() < settings.MISSION_SUCCESS_CHANCE
            delta = (
                settings.MISSION_SUCCESS_BONUS if success else settings.MISSION_FAILURE_PENALTY
            )
            self._settle_mission(mission, success, MissionOutcome(relationship_change=delta))
            self.update_relationship(mission.target_kingdom_id, delta)
            report.resolved_missions.append(mission.id)
            logger.debug(
                "Mission %s to %s %s",
                mission.id,
                mission.target_kingdom_name,
                "succeeded" if success else "failed",
            )

        return report

    # ----------------------------------------------------------------
    # Serialization
    # ----------------------------------------------------------------
    def serialize(self) -> Dict[str, Any]:
        """Return a JSON-ready snapshot of the whole ledger."""
        from .persistence import serialize_ledger

        return serialize_ledger(self)

    @classmethod
    def deserialize(
        cls,
        data: Mapping[str, Any],
        *,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ) -> "DiplomacyLedger":
        """Rebuild a ledger from ``serialize()`` output."""
        from .persistence import deserialize_ledger

        return deserialize_ledger(data, rng=rng, seed=seed)
