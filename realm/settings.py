# Settings for the diplomacy ledger

# Year a freshly created ledger starts on.
START_YEAR = 1

# Bounds for the relationship score and trust meter.
RELATIONSHIP_MIN = -100
RELATIONSHIP_MAX = 100
TRUST_MIN = 0
TRUST_MAX = 100
INITIAL_TRUST = 50

# Starting relationship values when a kingdom is first met.
INITIAL_NEUTRAL_VALUE = 0
INITIAL_FRIENDLY_VALUE = 25
INITIAL_OTHER_VALUE = -25

# Relationship value above which a kingdom is friendly, below which hostile.
FRIENDLY_THRESHOLD = 75
HOSTILE_THRESHOLD = -75

# Every relationship change relabels the relation from thresholds, so
# alliance/trade/war/vassal labels last until the next change. When True,
# those labels survive and only move through explicit transitions.
STICKY_RELATION_LABELS = False

# Relationship and trust deltas applied by diplomatic actions
TREATY_RELATION_BONUS = 10
TREATY_BREAK_PENALTY = -30
TREATY_BREAK_TRUST_PENALTY = -40
TRADE_RELATION_BONUS = 15
TRADE_CANCEL_PENALTY = -10
WAR_RELATION_PENALTY = -80
PEACE_ACCEPTED_BONUS = 20
PEACE_REJECTED_PENALTY = -5

# War score bounds
WAR_SCORE_MIN = -100
WAR_SCORE_MAX = 100

# Missions left unresolved past their duration are settled by chance
MISSION_SUCCESS_CHANCE = 0.7
MISSION_SUCCESS_BONUS = 10
MISSION_FAILURE_PENALTY = -5

# Default location for saved ledgers
SAVE_FILE_NAME = "diplomacy.json"
SNAPSHOT_VERSION = "1.0"
