from __future__ import annotations

import json
import logging
import random
import re
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TYPE_CHECKING

from . import settings
from .diplomacy import (
    DiplomaticMission,
    DiplomaticRelation,
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
    Treaty,
    TreatyTerms,
    TreatyType,
    WarDeclaration,
)

if TYPE_CHECKING:
    from .ledger import DiplomacyLedger


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
SAVE_FILE: Path = Path(settings.SAVE_FILE_NAME)
_ID_SUFFIX = re.compile(r"_(\d+)$")


# -----------------------------------------------------------------------------
# Custom Exceptions
# -----------------------------------------------------------------------------
class LedgerSaveError(Exception):
    """Exception raised when saving a ledger fails."""


class LedgerLoadError(Exception):
    """Exception raised when a ledger snapshot cannot be loaded."""


# -----------------------------------------------------------------------------
# Field Helpers
# -----------------------------------------------------------------------------
def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else bool(value)


def _serialize_resources(data: Mapping[ResourceType, int]) -> Dict[str, int]:
    return {res.value: int(amt) for res, amt in data.items()}


def _deserialize_resources(data: Any) -> Dict[ResourceType, int]:
    if not isinstance(data, dict):
        return {}
    return {ResourceType(key): int(value) for key, value in data.items()}


# -----------------------------------------------------------------------------
# Entity Encoders / Decoders
# -----------------------------------------------------------------------------
def serialize_relation(relation: DiplomaticRelation) -> Dict[str, Any]:
    return {
        "kingdom_id": relation.kingdom_id,
        "kingdom_name": relation.kingdom_name,
        "relation_type": relation.relation_type.value,
        "relationship_value": relation.relationship_value,
        "trust": relation.trust,
        "last_interaction": relation.last_interaction,
    }


def deserialize_relation(data: Dict[str, Any]) -> DiplomaticRelation:
    return DiplomaticRelation(
        kingdom_id=str(data["kingdom_id"]),
        kingdom_name=str(data["kingdom_name"]),
        relation_type=RelationType(data["relation_type"]),
        relationship_value=int(data["relationship_value"]),
        trust=int(data.get("trust", settings.INITIAL_TRUST)),
        last_interaction=_optional_int(data.get("last_interaction")),
    )


def serialize_treaty(treaty: Treaty) -> Dict[str, Any]:
    terms = treaty.terms
    return {
        "id": treaty.id,
        "treaty_type": treaty.treaty_type.value,
        "parties": list(treaty.parties),
        "signed_year": treaty.signed_year,
        "expiry_year": treaty.expiry_year,
        "terms": {
            "gold_per_year": terms.gold_per_year,
            "trade_bonus": terms.trade_bonus,
            "military_support": terms.military_support,
            "territory_exchange": list(terms.territory_exchange),
            "vassal_tribute": terms.vassal_tribute,
        },
        "active": treaty.active,
    }


def deserialize_treaty(data: Dict[str, Any]) -> Treaty:
    raw_terms = data.get("terms") or {}
    terms = TreatyTerms(
        gold_per_year=_optional_int(raw_terms.get("gold_per_year")),
        trade_bonus=_optional_int(raw_terms.get("trade_bonus")),
        military_support=_optional_bool(raw_terms.get("military_support")),
        territory_exchange=[str(t) for t in raw_terms.get("territory_exchange", [])],
        vassal_tribute=_optional_int(raw_terms.get("vassal_tribute")),
    )
    return Treaty(
        id=str(data["id"]),
        treaty_type=TreatyType(data["treaty_type"]),
        parties=[str(p) for p in data["parties"]],
        signed_year=int(data["signed_year"]),
        expiry_year=_optional_int(data.get("expiry_year")),
        terms=terms,
        active=bool(data.get("active", True)),
    )


def serialize_trade_agreement(agreement: TradeAgreement) -> Dict[str, Any]:
    return {
        "id": agreement.id,
        "partner_id": agreement.partner_id,
        "partner_name": agreement.partner_name,
        "gold_per_turn": agreement.gold_per_turn,
        "resource_exchange": {
            "give": _serialize_resources(agreement.resource_exchange.give),
            "receive": _serialize_resources(agreement.resource_exchange.receive),
        },
        "trade_power_bonus": agreement.trade_power_bonus,
        "start_year": agreement.start_year,
        "duration": agreement.duration,
        "active": agreement.active,
    }


def deserialize_trade_agreement(data: Dict[str, Any]) -> TradeAgreement:
    exchange = data.get("resource_exchange") or {}
    return TradeAgreement(
        id=str(data["id"]),
        partner_id=str(data["partner_id"]),
        partner_name=str(data["partner_name"]),
        gold_per_turn=int(data.get("gold_per_turn", 0)),
        resource_exchange=ResourceExchange(
            give=_deserialize_resources(exchange.get("give")),
            receive=_deserialize_resources(exchange.get("receive")),
        ),
        trade_power_bonus=int(data.get("trade_power_bonus", 0)),
        start_year=int(data["start_year"]),
        duration=_optional_int(data.get("duration")),
        active=bool(data.get("active", True)),
    )


def serialize_mission(mission: DiplomaticMission) -> Dict[str, Any]:
    outcome = None
    if mission.outcome is not None:
        offered = mission.outcome.treaty_offered
        outcome = {
            "relationship_change": mission.outcome.relationship_change,
            "treaty_offered": serialize_treaty(offered) if offered is not None else None,
            "information_gained": list(mission.outcome.information_gained),
        }
    return {
        "id": mission.id,
        "mission_type": mission.mission_type.value,
        "target_kingdom_id": mission.target_kingdom_id,
        "target_kingdom_name": mission.target_kingdom_name,
        "start_year": mission.start_year,
        "duration": mission.duration,
        "cost": mission.cost,
        "success": mission.success.value,
        "outcome": outcome,
    }


def deserialize_mission(data: Dict[str, Any]) -> DiplomaticMission:
    outcome = None
    raw_outcome = data.get("outcome")
    if isinstance(raw_outcome, dict):
        offered = raw_outcome.get("treaty_offered")
        outcome = MissionOutcome(
            relationship_change=_optional_int(raw_outcome.get("relationship_change")),
            treaty_offered=deserialize_treaty(offered) if isinstance(offered, dict) else None,
            information_gained=[str(i) for i in raw_outcome.get("information_gained", [])],
        )
    return DiplomaticMission(
        id=str(data["id"]),
        mission_type=MissionType(data["mission_type"]),
        target_kingdom_id=str(data["target_kingdom_id"]),
        target_kingdom_name=str(data["target_kingdom_name"]),
        start_year=int(data["start_year"]),
        duration=int(data["duration"]),
        cost=int(data.get("cost", 0)),
        success=Resolution(data.get("success", Resolution.PENDING.value)),
        outcome=outcome,
    )


def serialize_war(war: WarDeclaration) -> Dict[str, Any]:
    return {
        "id": war.id,
        "declaring_kingdom": war.declaring_kingdom,
        "target_kingdom": war.target_kingdom,
        "target_kingdom_name": war.target_kingdom_name,
        "year": war.year,
        "cause": war.cause,
        "allies": list(war.allies),
        "war_score": war.war_score,
        "battles": war.battles,
        "casualties": war.casualties,
    }


def deserialize_war(data: Dict[str, Any]) -> WarDeclaration:
    return WarDeclaration(
        id=str(data["id"]),
        declaring_kingdom=str(data["declaring_kingdom"]),
        target_kingdom=str(data["target_kingdom"]),
        target_kingdom_name=str(data["target_kingdom_name"]),
        year=int(data["year"]),
        cause=str(data.get("cause", "")),
        allies=[str(a) for a in data.get("allies", [])],
        war_score=int(data.get("war_score", 0)),
        battles=int(data.get("battles", 0)),
        casualties=int(data.get("casualties", 0)),
    )


def serialize_peace_offer(offer: PeaceOffer) -> Dict[str, Any]:
    terms = offer.terms
    return {
        "id": offer.id,
        "offering_kingdom": offer.offering_kingdom,
        "receiving_kingdom": offer.receiving_kingdom,
        "receiving_kingdom_name": offer.receiving_kingdom_name,
        "terms": {
            "gold_compensation": terms.gold_compensation,
            "territory_exchange": list(terms.territory_exchange),
            "trade_agreement": terms.trade_agreement,
            "vassalage": terms.vassalage,
            "war_reparations": terms.war_reparations,
        },
        "accepted": offer.accepted.value,
    }


def deserialize_peace_offer(data: Dict[str, Any]) -> PeaceOffer:
    raw_terms = data.get("terms") or {}
    terms = PeaceTerms(
        gold_compensation=_optional_int(raw_terms.get("gold_compensation")),
        territory_exchange=[str(t) for t in raw_terms.get("territory_exchange", [])],
        trade_agreement=bool(raw_terms.get("trade_agreement", False)),
        vassalage=bool(raw_terms.get("vassalage", False)),
        war_reparations=_optional_int(raw_terms.get("war_reparations")),
    )
    return PeaceOffer(
        id=str(data["id"]),
        offering_kingdom=str(data["offering_kingdom"]),
        receiving_kingdom=str(data["receiving_kingdom"]),
        receiving_kingdom_name=str(data["receiving_kingdom_name"]),
        terms=terms,
        accepted=PeaceStatus(data.get("accepted", PeaceStatus.PENDING.value)),
    )


# Ledger attribute → (encoder, decoder)
TABLES: Dict[str, Tuple[Callable[[Any], Dict[str, Any]], Callable[[Dict[str, Any]], Any]]] = {
    "relations": (serialize_relation, deserialize_relation),
    "treaties": (serialize_treaty, deserialize_treaty),
    "trade_agreements": (serialize_trade_agreement, deserialize_trade_agreement),
    "missions": (serialize_mission, deserialize_mission),
    "wars": (serialize_war, deserialize_war),
    "peace_offers": (serialize_peace_offer, deserialize_peace_offer),
}


# -----------------------------------------------------------------------------
# Ledger Snapshots
# -----------------------------------------------------------------------------
def serialize_ledger(ledger: "DiplomacyLedger") -> Dict[str, Any]:
    """Convert a ledger into plain JSON types; tables become [id, value] pairs."""
    data: Dict[str, Any] = {
        "version": settings.SNAPSHOT_VERSION,
        "kingdom_id": ledger.kingdom_id,
        "current_year": ledger.current_year,
        "next_id": ledger._next_id,
        "sticky_labels": ledger.sticky_labels,
    }
    for attr, (encode, _) in TABLES.items():
        data[attr] = [[key, encode(value)] for key, value in getattr(ledger, attr).items()]
    return data


def _highest_id(ids: List[str]) -> int:
    highest = 0
    for entity_id in ids:
        match = _ID_SUFFIX.search(entity_id)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def deserialize_ledger(
    data: Any,
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> "DiplomacyLedger":
    """
    Rebuild a ledger from a snapshot. Malformed table entries are skipped
    with a warning; a snapshot without a kingdom id raises LedgerLoadError.
    """
    from .ledger import DiplomacyLedger

    if not isinstance(data, Mapping):
        raise LedgerLoadError(f"Ledger snapshot must be a mapping, got {type(data).__name__}")
    kingdom_id = data.get("kingdom_id")
    if not isinstance(kingdom_id, str) or not kingdom_id:
        raise LedgerLoadError("Ledger snapshot has no kingdom_id")

    try:
        current_year = int(data.get("current_year", settings.START_YEAR))
    except (ValueError, TypeError) as e:
        raise LedgerLoadError(f"Invalid current_year: {data.get('current_year')!r}") from e

    sticky = data.get("sticky_labels")
    ledger = DiplomacyLedger(
        kingdom_id,
        current_year=current_year,
        rng=rng,
        seed=seed,
        sticky_labels=None if sticky is None else bool(sticky),
    )

    for attr, (_, decode) in TABLES.items():
        entries = data.get(attr, [])
        if not isinstance(entries, list):
            logging.warning(f"'{attr}' in ledger snapshot is not a list; skipping.")
            continue
        table = getattr(ledger, attr)
        for entry in entries:
            try:
                key, value = entry
                table[str(key)] = decode(value)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logging.warning(f"Skipping invalid {attr} entry {entry!r}: {e}")

    generated = [
        key for attr in TABLES if attr != "relations" for key in getattr(ledger, attr)
    ]
    try:
        next_id = int(data.get("next_id", 1))
    except (ValueError, TypeError):
        logging.warning(f"Invalid next_id {data.get('next_id')!r}; recomputing.")
        next_id = 1
    ledger._next_id = max(next_id, _highest_id(generated) + 1)
    return ledger


# -----------------------------------------------------------------------------
# Loading and Saving
# -----------------------------------------------------------------------------
def save_ledger(ledger: "DiplomacyLedger", *, file_path: Optional[Path] = None) -> None:
    """
    Persist a ledger to disk in an atomic manner.

    Raises:
        LedgerSaveError: if writing or renaming fails.
    """
    path = Path(file_path or SAVE_FILE)
    temp_file = path.with_suffix(".json.tmp")
    data = serialize_ledger(ledger)

    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise LedgerSaveError(f"Failed to write temporary save file: {e}") from e

    try:
        shutil.move(str(temp_file), str(path))
    except OSError as e:
        try:
            temp_file.unlink(missing_ok=True)
        except OSError:
            pass
        raise LedgerSaveError(f"Failed to rename temporary save file to final: {e}") from e


def load_ledger(
    *,
    file_path: Optional[Path] = None,
    strict: bool = False,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> Optional["DiplomacyLedger"]:
    """
    Load a saved ledger. Returns None when no save file exists.

    Args:
        strict: If True, reject snapshots written by another schema version.
    """
    path = Path(file_path or SAVE_FILE)
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise LedgerLoadError(f"Failed to read or parse save file: {e}") from e

    version = raw_data.get("version", "0.0") if isinstance(raw_data, dict) else "0.0"
    if strict and version != settings.SNAPSHOT_VERSION:
        raise LedgerLoadError(
            f"Unsupported save version: {version}. Expected {settings.SNAPSHOT_VERSION}."
        )
    return deserialize_ledger(raw_data, rng=rng, seed=seed)
