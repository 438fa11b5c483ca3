"""
Central configuration constants for the tank planning engine.

Defines default values, thresholds, and configuration parameters
used across multiple modules.
"""

# ============================================================================
# Identity
# ============================================================================

# Separator between catalog id and instance id in composite item ids
# (e.g. "betta::betta-1718000000000-1a2b3c")
COMPOSITE_ID_SEP = "::"

# Fallback canonical id when a record carries no usable identifier
UNKNOWN_SPECIES_ID = "unknown"
UNKNOWN_SPECIES_NAME = "Unknown"

# Default nickname for a fish whose species has no name
DEFAULT_FISH_NICKNAME = "New Fish"


# ============================================================================
# Compatibility
# ============================================================================

# Species known to be aggressive toward conspecifics (canonical ids)
SELF_AVOID_SPECIES = frozenset({'betta'})


# ============================================================================
# Environmental Recommendation
# ============================================================================

# Oxygen need label -> (min %, max %). Bands overlap on purpose so borderline
# operating points do not flip between verdicts.
OXYGEN_BANDS = {
    'low': (30.0, 55.0),
    'medium': (45.0, 75.0),
    'high': (65.0, 90.0),
}

# Operating point limits exposed by the tank controls
TEMP_CONTROL_RANGE = (15.0, 35.0)  # Celsius
OXY_CONTROL_RANGE = (0.0, 100.0)   # percent

# Display placeholders
NO_DATA_TEXT = '—'
NO_PH_DATA_TEXT = 'No pH data'


# ============================================================================
# Tank Defaults
# ============================================================================

DEFAULT_TEMP_C = 26.0
DEFAULT_OXY_PCT = 60.0
DEFAULT_BACKGROUND_KEY = 'default'
DEFAULT_TANK_NAME = 'My Tank'

# Backgrounds cycled by the tank view (opaque to the engine)
BACKGROUND_KEYS = ('default', 'reef', 'plants', 'rocks')


# ============================================================================
# Geometry
# ============================================================================

# Rendered size of a placed occupant; drop points are centred on the sprite
SPRITE_WIDTH = 160.0
SPRITE_HEIGHT = 110.0

# Staggered positions for legacy records that were stored without x/y
LEGACY_X_BASE = 20.0
LEGACY_X_STEP = 10.0
LEGACY_X_WRAP = 120.0
LEGACY_Y_BASE = 20.0
LEGACY_Y_STEP = 12.0
LEGACY_Y_WRAP = 90.0


# ============================================================================
# Persistence Configuration
# ============================================================================

# Quiet period before a non-urgent write is flushed to the store
DEBOUNCE_SECONDS = 0.6

# Local device cache keys
SNAPSHOT_CACHE_KEY = 'thinktank:snapshot'
PREVIEW_CACHE_KEY = 'lastTankScreenshotUri'
