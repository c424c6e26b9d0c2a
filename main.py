import argparse
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from realm import DiplomacyLedger, load_ledger, save_ledger
from realm import settings
from realm.diplomacy import MissionType, PeaceTerms, RelationType, ResourceType, TreatyType
from realm.persistence import LedgerLoadError, LedgerSaveError

logger = logging.getLogger("realm.main")

# War score at which the player sues for peace
PEACE_SCORE = 25
# Chance the enemy accepts a peace offer
PEACE_ACCEPT_CHANCE = 0.6


def open_diplomacy(ledger: DiplomacyLedger) -> None:
    """Meet the neighbouring kingdoms and set up first-year diplomacy."""
    year = ledger.current_year
    ledger.initialize_relation("francia", "Francia")
    ledger.initialize_relation("wessex", "Wessex", RelationType.FRIENDLY)
    ledger.initialize_relation("mercia", "Mercia", RelationType.HOSTILE)

    ledger.propose_treaty(
        TreatyType.NON_AGGRESSION,
        [ledger.kingdom_id, "francia"],
        expiry_year=year + 3,
    )
    ledger.create_trade_agreement(
        "wessex",
        "Wessex",
        gold_per_turn=20,
        give={ResourceType.WOOD: 10},
        receive={ResourceType.FOOD: 15},
        trade_power_bonus=5,
        duration=5,
    )
    ledger.send_mission(MissionType.AMBASSADOR, "francia", "Francia", duration=2, cost=50)
    ledger.declare_war("mercia", "Mercia", "Border raids")


def run_campaign(ledger: DiplomacyLedger, years: int, rng: random.Random) -> None:
    """
    Advance ``years`` years. Each year:
      1) Sweep treaties, trade agreements and missions
      2) Fight one battle per open war
      3) Sue for peace once a war is going well enough
    """
    for _ in range(years):
        report = ledger.advance_year(ledger.current_year + 1)
        if not report.is_empty():
            logger.info(
                "Year %d: %d treaty(ies) expired, %d trade agreement(s) ended, %d mission(s) returned",
                report.year,
                len(report.expired_treaties),
                len(report.expired_trade_agreements),
                len(report.resolved_missions),
            )

        for war in ledger.get_active_wars():
            ledger.record_battle(
                war.id,
                casualties=rng.randint(50, 500),
                score_change=rng.randint(-10, 20),
            )
            if war.war_score < PEACE_SCORE:
                continue
            offer_id = ledger.offer_peace(
                war.target_kingdom,
                war.target_kingdom_name,
                PeaceTerms(gold_compensation=100, war_reparations=war.war_score),
            )
            if rng.random() < PEACE_ACCEPT_CHANCE:
                ledger.accept_peace_offer(offer_id)
            else:
                ledger.reject_peace_offer(offer_id)


def log_summary(ledger: DiplomacyLedger) -> None:
    logger.info("Diplomacy of %s in year %d:", ledger.kingdom_id, ledger.current_year)
    for relation in ledger.get_all_relations():
        logger.info(
            " - %s: %s (%+d, trust %d)",
            relation.kingdom_name,
            relation.relation_type.value,
            relation.relationship_value,
            relation.trust,
        )
    trade = ledger.trade_summary()
    logger.info(
        "Active treaties: %d | Trade gold/turn: %d | Open wars: %d",
        len(ledger.get_active_treaties()),
        trade.gold_per_turn,
        len(ledger.get_active_wars()),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run a scripted diplomacy campaign.
    Supports options:
      --kingdom     : id of the kingdom owning the ledger
      --years       : number of years to simulate
      --seed        : seed for every random roll (reproducible runs)
      --load-file   : continue from a saved ledger
      --save-file   : where to write the ledger afterwards
      --no-save     : skip saving at the end
    Returns exit code 0 on success, nonzero on failure.
    """
    parser = argparse.ArgumentParser(description="Simulate a kingdom's diplomacy year by year.")
    parser.add_argument("--kingdom", type=str, default="player", help="Owning kingdom id")
    parser.add_argument("--years", type=int, default=10, help="Years to simulate (default: 10)")
    parser.add_argument(
        "--start-year", type=int, default=settings.START_YEAR,
        help="First year of a fresh campaign"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--load-file", type=str, default="",
        help="Path to a saved ledger (skip fresh start if provided)"
    )
    parser.add_argument(
        "--save-file", type=str, default=settings.SAVE_FILE_NAME,
        help="Where to save the ledger"
    )
    parser.add_argument(
        "--no-save", action="store_true",
        help="Run without writing back to disk (dry-run mode)"
    )
    parser.add_argument(
        "--sticky-labels", action="store_true",
        help="Keep alliance, trade, war and vassal labels through relationship changes"
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    rng = random.Random(args.seed)
    sticky = True if args.sticky_labels else None

    ledger: Optional[DiplomacyLedger] = None
    if args.load_file:
        try:
            ledger = load_ledger(file_path=Path(args.load_file), rng=rng)
        except LedgerLoadError as e:
            logger.error("Error loading save file %r: %s", args.load_file, e)
            return 1
        if ledger is None:
            logger.warning("No saved ledger found in %r; starting fresh.", args.load_file)
        else:
            logger.info("Loaded ledger for %r from %r", ledger.kingdom_id, args.load_file)
            if sticky is not None:
                ledger.sticky_labels = sticky

    if ledger is None:
        ledger = DiplomacyLedger(
            args.kingdom, current_year=args.start_year, rng=rng, sticky_labels=sticky
        )
        open_diplomacy(ledger)

    run_campaign(ledger, args.years, rng)
    log_summary(ledger)

    if not args.no_save:
        try:
            save_ledger(ledger, file_path=Path(args.save_file))
        except LedgerSaveError as e:
            logger.error("Error while saving ledger: %s", e)
            return 3
    else:
        logger.info("Skipping save (--no-save)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
