from __future__ import annotations

"""Diplomacy data models: relations, treaties, trade, missions, wars and peace."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from . import settings


class RelationType(Enum):
    """Label describing how a kingdom stands towards another."""

    ALLIANCE = "alliance"
    TRADE = "trade"
    WAR = "war"
    VASSAL = "vassal"
    NEUTRAL = "neutral"
    FRIENDLY = "friendly"
    HOSTILE = "hostile"


class TreatyType(Enum):
    PEACE = "peace"
    ALLIANCE = "alliance"
    TRADE = "trade"
    NON_AGGRESSION = "non_aggression"
    VASSALAGE = "vassalage"
    MILITARY_ACCESS = "military_access"


class MissionType(Enum):
    AMBASSADOR = "ambassador"
    TRADE_DELEGATION = "trade_delegation"
    SPY = "spy"
    MARRIAGE_PROPOSAL = "marriage_proposal"
    ALLIANCE_OFFER = "alliance_offer"


class ResourceType(Enum):
    """Goods that can change hands through a trade agreement."""

    FOOD = "food"
    WOOD = "wood"
    STONE = "stone"
    IRON = "iron"
    LUXURY_GOODS = "luxury_goods"


class Resolution(Enum):
    """Outcome of a diplomatic mission."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PeaceStatus(Enum):
    """Answer given to a peace offer."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class LedgerResult(Enum):
    """Result of an id-keyed mutation on the ledger."""

    APPLIED = "applied"
    NOT_FOUND = "not_found"
    ALREADY_RESOLVED = "already_resolved"

    def __bool__(self) -> bool:
        return self is LedgerResult.APPLIED


# Labels computed from the relationship value
THRESHOLD_TYPES = frozenset(
    {RelationType.NEUTRAL, RelationType.FRIENDLY, RelationType.HOSTILE}
)
# Labels that only change through an explicit transition
STICKY_TYPES = frozenset(
    {RelationType.ALLIANCE, RelationType.TRADE, RelationType.WAR, RelationType.VASSAL}
)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def derive_relation_type(value: int) -> RelationType:
    """Return the threshold label for a relationship value."""
    if value > settings.FRIENDLY_THRESHOLD:
        return RelationType.FRIENDLY
    if value < settings.HOSTILE_THRESHOLD:
        return RelationType.HOSTILE
    return RelationType.NEUTRAL


def next_relation_type(
    current: RelationType, value: int, sticky_labels: bool = False
) -> RelationType:
    """Label a relation should carry after its value changed.

    The threshold label wins unless ``sticky_labels`` is set, in which case
    alliance, trade, war and vassal labels are kept.
    """
    if sticky_labels and current in STICKY_TYPES:
        return current
    return derive_relation_type(value)


def initial_relationship_value(relation_type: RelationType) -> int:
    if relation_type is RelationType.NEUTRAL:
        return settings.INITIAL_NEUTRAL_VALUE
    if relation_type is RelationType.FRIENDLY:
        return settings.INITIAL_FRIENDLY_VALUE
    return settings.INITIAL_OTHER_VALUE


@dataclass
class DiplomaticRelation:
    """Standing of one foreign kingdom as seen by the ledger owner."""

    kingdom_id: str
    kingdom_name: str
    relation_type: RelationType = RelationType.NEUTRAL
    relationship_value: int = 0
    trust: int = settings.INITIAL_TRUST
    last_interaction: Optional[int] = None


@dataclass
class TreatyTerms:
    gold_per_year: Optional[int] = None
    trade_bonus: Optional[int] = None
    military_support: Optional[bool] = None
    territory_exchange: List[str] = field(default_factory=list)
    vassal_tribute: Optional[int] = None


@dataclass
class Treaty:
    """Agreement between two or more kingdoms."""

    id: str
    treaty_type: TreatyType
    parties: List[str]
    signed_year: int
    expiry_year: Optional[int] = None
    terms: TreatyTerms = field(default_factory=TreatyTerms)
    active: bool = True


@dataclass
class ResourceExchange:
    give: Dict[ResourceType, int] = field(default_factory=dict)
    receive: Dict[ResourceType, int] = field(default_factory=dict)


@dataclass
class TradeAgreement:
    """Recurring exchange of gold and goods with one partner."""

    id: str
    partner_id: str
    partner_name: str
    gold_per_turn: int = 0
    resource_exchange: ResourceExchange = field(default_factory=ResourceExchange)
    trade_power_bonus: int = 0
    start_year: int = settings.START_YEAR
    duration: Optional[int] = None  # None or 0 means open-ended
    active: bool = True


@dataclass
class MissionOutcome:
    relationship_change: Optional[int] = None
    treaty_offered: Optional[Treaty] = None
    information_gained: List[str] = field(default_factory=list)


@dataclass
class DiplomaticMission:
    """Envoys sent abroad for a number of years."""

    id: str
    mission_type: MissionType
    target_kingdom_id: str
    target_kingdom_name: str
    start_year: int
    duration: int
    cost: int = 0
    success: Resolution = Resolution.PENDING
    outcome: Optional[MissionOutcome] = None

    @property
    def resolved(self) -> bool:
        return self.success is not Resolution.PENDING

    def is_due(self, year: int) -> bool:
        return not self.resolved and year - self.start_year >= self.duration


@dataclass
class WarDeclaration:
    """An open war started by ``declaring_kingdom``."""

    id: str
    declaring_kingdom: str
    target_kingdom: str
    target_kingdom_name: str
    year: int
    cause: str
    allies: List[str] = field(default_factory=list)
    war_score: int = 0
    battles: int = 0
    casualties: int = 0

    def involves(self, kingdom_a: str, kingdom_b: str) -> bool:
        return (
            (self.declaring_kingdom == kingdom_a and self.target_kingdom == kingdom_b)
            or (self.declaring_kingdom == kingdom_b and self.target_kingdom == kingdom_a)
        )


@dataclass
class PeaceTerms:
    gold_compensation: Optional[int] = None
    territory_exchange: List[str] = field(default_factory=list)
    trade_agreement: bool = False
    vassalage: bool = False
    war_reparations: Optional[int] = None


@dataclass
class PeaceOffer:
    id: str
    offering_kingdom: str
    receiving_kingdom: str
    receiving_kingdom_name: str
    terms: PeaceTerms = field(default_factory=PeaceTerms)
    accepted: PeaceStatus = PeaceStatus.PENDING


@dataclass
class TradeSummary:
    """Totals across every active trade agreement."""

    gold_per_turn: int = 0
    trade_power_bonus: int = 0
    resources_given: Dict[ResourceType, int] = field(default_factory=dict)
    resources_received: Dict[ResourceType, int] = field(default_factory=dict)

    @property
    def net_resources(self) -> Dict[ResourceType, int]:
        net: Dict[ResourceType, int] = dict(self.resources_received)
        for res, amt in self.resources_given.items():
            net[res] = net.get(res, 0) - amt
        return net


@dataclass
class YearReport:
    """What the year-advance sweep changed."""

    year: int
    expired_treaties: List[str] = field(default_factory=list)
    expired_trade_agreements: List[str] = field(default_factory=list)
    resolved_missions: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.expired_treaties
            or self.expired_trade_agreements
            or self.resolved_missions
        )
