"""
Constants for Shopping Route AI.

This module contains all magic numbers, string identifiers, and tuning
values used by the learning, traffic and routing engines. Centralizing
these makes the engines easier to maintain and tune.
"""

from typing import Dict, List, Set, Tuple


# =============================================================================
# PERSISTENCE
# =============================================================================

# Key prefix for the per-user behavior blob
PROFILE_KEY_PREFIX = "shopping-behavior-"

# Version stamped into profile exports
EXPORT_VERSION = "1.0"

# Schema version of the persisted profile
PROFILE_SCHEMA_VERSION = "2024-06-01"


# =============================================================================
# ROUTE ALGORITHMS
# =============================================================================

ALGORITHM_AI = "AI-Enhanced"
ALGORITHM_FALLBACK = "Fallback"


# =============================================================================
# TIME SLOTS
# =============================================================================
# Upper hour bound (exclusive) for each slot, checked in order.

TIME_SLOT_BOUNDS: List[Tuple[int, str]] = [
    (6, "early-morning"),
    (10, "morning"),
    (14, "midday"),
    (18, "afternoon"),
    (21, "evening"),
]
TIME_SLOT_LATE = "night"

TIME_SLOTS: Set[str] = {slot for _, slot in TIME_SLOT_BOUNDS} | {TIME_SLOT_LATE}

# datetime.weekday() values for Saturday and Sunday
WEEKEND_DAYS: Set[int] = {5, 6}


# =============================================================================
# PROFILE DEFAULTS
# =============================================================================

DEFAULT_AVERAGE_ITEMS = 25.0
DEFAULT_AVERAGE_TIME = 45.0
DEFAULT_PREFERRED_DAYS: List[str] = ["Saturday", "Sunday"]
DEFAULT_PREFERRED_TIMES: List[str] = ["10:00-14:00"]

DEFAULT_ORGANIC_PREFERENCE = 0.3
DEFAULT_BULK_BUYING = 0.2
DEFAULT_BRAND_LOYALTY = 0.5

DEFAULT_PRIORITIZE_SPEED = 0.6
DEFAULT_AVOID_CROWDS = 0.8
DEFAULT_MINIMIZE_BACKTRACKING = 0.9

# Starting points for route preferences that only exist after learning
TRUST_BASELINE = 0.0
FLEXIBILITY_BASELINE = 0.5

DEFAULT_STORE_SATISFACTION = 3.0


# =============================================================================
# LEARNING RATES
# =============================================================================

# new = old * decay + sample * (1 - decay)
PATTERN_DECAY = 0.8
ITEM_PREFERENCE_DECAY = 0.9
STORE_SATISFACTION_DECAY = 0.8

TRUST_STEP = 0.1
FLEXIBILITY_STEP = 0.1
SPEED_STEP = 0.05

# Route deviation thresholds
LOW_DEVIATION = 0.2
HIGH_DEVIATION = 0.5

# Satisfaction thresholds (1-5 scale)
MIN_LEARNING_SATISFACTION = 3
HIGH_SATISFACTION = 4

# Amount above which an item counts as a bulk purchase
BULK_AMOUNT_THRESHOLD = 5


# =============================================================================
# RECOMMENDATION THRESHOLDS
# =============================================================================

SPEED_PREFERENCE_THRESHOLD = 0.7
CROWD_PREFERENCE_THRESHOLD = 0.7
ORGANIC_SUGGESTION_THRESHOLD = 0.5
BULK_SUGGESTION_THRESHOLD = 0.4

STAPLE_FREQUENCY_THRESHOLD = 10
STAPLE_CONFIDENCE_DIVISOR = 20

STORE_TIPS_MIN_VISITS = 3
LOW_SATISFACTION_THRESHOLD = 3.5

PERSONAL_NOTE_MIN_FREQUENCY = 5


# =============================================================================
# LEARNING LEVELS
# =============================================================================
# (minimum trips, level name), highest first

LEARNING_LEVELS: List[Tuple[int, str]] = [
    (20, "Expert"),
    (10, "Advanced"),
    (5, "Intermediate"),
    (0, "Beginner"),
]

DATA_QUALITY_TRIPS = 10


# =============================================================================
# TRAFFIC PREDICTION
# =============================================================================

BASE_TRAFFIC = 0.3
WEEKEND_TRAFFIC_BUMP = 0.3
MAX_TRAFFIC = 0.9

# (first hour, last hour inclusive, bump); every matching band adds
TRAFFIC_HOUR_BANDS: List[Tuple[int, int, float]] = [
    (8, 10, 0.2),   # Morning rush
    (11, 14, 0.4),  # Lunch
    (17, 19, 0.5),  # Evening rush
    (20, 21, 0.3),  # After work
]

WAREHOUSE_STORE_TERM = "costco"
WAREHOUSE_WEEKEND_BUMP = 0.2

SECTION_CONGESTION_OFFSETS: Dict[str, float] = {
    "Produce": 0.1,
    "Meat": 0.05,
    "Dairy": 0.0,
    "Frozen": -0.1,
    "Pantry": -0.05,
}

BUSY_STORE_THRESHOLD = 0.7
EVENING_RUSH_HOURS: Tuple[int, int] = (17, 19)

# Congestion used when a section has no prediction
DEFAULT_SECTION_CONGESTION = 0.5


# =============================================================================
# SECTION CROWD HEURISTIC
# =============================================================================

SECTION_BASE_CROWD = 0.3
SECTION_WEEKEND_BUMP = 0.2
SECTION_PEAK_HOURS: Tuple[int, int, float] = (10, 14, 0.3)
SECTION_RUSH_HOURS: Tuple[int, int, float] = (17, 19, 0.4)
POPULAR_SECTION_BUMP = 0.1
MAX_SECTION_CROWD = 0.9
MAX_WAIT_MINUTES = 5


# =============================================================================
# ROUTE OPTIMIZATION
# =============================================================================

MERGE_SPEED_THRESHOLD = 0.7
CROWD_ANNOTATION_THRESHOLD = 0.8
BACKTRACK_THRESHOLD = 0.8

# Sections at or below this count are left in place
MIN_SECTIONS_FOR_SEARCH = 3
MAX_SHUFFLE_ATTEMPTS = 10

# Groups of section terms treated as physically adjacent
NEARBY_GROUPS: List[List[str]] = [
    ["Pantry", "Canned Goods", "Dry Goods"],
    ["Dairy", "Meat", "Seafood"],
    ["Frozen", "Ice Cream"],
    ["Produce", "Floral", "Organic"],
]

# Walking distance between named sections; lookup is symmetric
SECTION_DISTANCES: Dict[Tuple[str, str], int] = {
    ("Pantry", "Dairy"): 3,
    ("Dairy", "Meat"): 2,
    ("Meat", "Frozen"): 2,
    ("Frozen", "Produce"): 4,
    ("Pantry", "Frozen"): 5,
    ("Pantry", "Produce"): 6,
}
DEFAULT_SECTION_DISTANCE = 3

# Minutes assumed for a section with no estimate
DEFAULT_SECTION_TIME = 5

LARGE_LIST_THRESHOLD = 50
BREAK_INTERVAL = 3
BREAK_SECTION_NAME = "Strategic Break"
BREAK_ICON = "☕"
BREAK_MINUTES = 2
BREAK_TIPS: List[str] = [
    "Check your list and cart organization",
    "Grab a drink if needed",
    "Review remaining sections",
]

AREA_ICON = "🏪"

# Confidence score
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95
DATA_CONFIDENCE_CAP = 0.9
DATA_CONFIDENCE_TRIPS = 20
FOOD_SAFETY_CONFIDENCE_BONUS = 0.1
ROUTE_LENGTH_ADJUSTMENT = 0.05
LONG_ROUTE_SECTIONS = 10
SHORT_ROUTE_SECTIONS = 5


# =============================================================================
# SECTION TEXT
# =============================================================================

# Recommended visiting time per section term (first match wins)
SECTION_TIME_RECOMMENDATIONS: Dict[str, str] = {
    "Produce": "Early morning for best selection",
    "Meat": "Before 2pm for freshest cuts",
    "Dairy": "Any time - well stocked",
    "Frozen": "Last stop to minimize thaw time",
    "Bakery": "Morning for fresh items",
}
FLEXIBLE_TIMING = "Flexible timing"

ALTERNATIVE_ORDER: Dict[str, str] = {
    "early": "Shop during off-peak hours for better experience",
    "late": "Consider shopping this section last if crowded",
    "skip": "Items may be available in other sections",
}

# Sections that must not be skipped when crowded
UNSKIPPABLE_SECTION_TERMS: List[str] = ["Produce", "Meat"]

EFFICIENCY_TIPS: Dict[str, List[str]] = {
    "Produce": [
        "Bring your own bags for bulk items",
        "Check for weekly specials first",
    ],
    "Meat": [
        "Ask for specific cuts if not displayed",
        "Check sell-by dates carefully",
    ],
    "Frozen": [
        "Shop this section last to minimize thaw time",
        "Group frozen items together in cart",
    ],
}

# (section term, hour before which the first text applies, early text, late text)
OPTIMAL_SECTION_TIMES: List[Tuple[str, int, str, str]] = [
    ("Produce", 10, "Morning (freshest selection)", "Avoid peak hours 5-7pm"),
    ("Meat", 14, "Before 2pm (best selection)", "Selection may be limited"),
    ("Frozen", 24, "Shop last to minimize thaw time", "Shop last to minimize thaw time"),
]

# Improvement reason attached to fallback routes
FALLBACK_REASON = "Using basic store layout due to AI optimization error"
