"""Realm package exposing the diplomacy ledger and its data models."""

from .ledger import DiplomacyLedger
from .diplomacy import (
    RelationType,
    TreatyType,
    MissionType,
    ResourceType,
    Resolution,
    PeaceStatus,
    LedgerResult,
    DiplomaticRelation,
    Treaty,
    TreatyTerms,
    TradeAgreement,
    ResourceExchange,
    TradeSummary,
    DiplomaticMission,
    MissionOutcome,
    WarDeclaration,
    PeaceOffer,
    PeaceTerms,
    YearReport,
)
from .persistence import (
    LedgerLoadError,
    LedgerSaveError,
    load_ledger,
    save_ledger,
)

__all__ = [
    "DiplomacyLedger",
    "RelationType",
    "TreatyType",
    "MissionType",
    "ResourceType",
    "Resolution",
    "PeaceStatus",
    "LedgerResult",
    "DiplomaticRelation",
    "Treaty",
    "TreatyTerms",
    "TradeAgreement",
    "ResourceExchange",
    "TradeSummary",
    "DiplomaticMission",
    "MissionOutcome",
    "WarDeclaration",
    "PeaceOffer",
    "PeaceTerms",
    "YearReport",
    "LedgerLoadError",
    "LedgerSaveError",
    "load_ledger",
    "save_ledger",
]
