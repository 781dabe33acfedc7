"""
Central configuration constants for the V-Life simulation.

Defines default values, limits, and configuration parameters
used across multiple modules.
"""

import math

# ============================================================================
# Cell Limits
# ============================================================================

# Number of distinct molecule types floating inside every cell
NUM_MOLECULES = 8

MAX_ENERGY = 100.0             # Energy cap reachable through own production
MAX_MOLECULE_AMOUNT = 100.0    # Upper bound for initial molecule amounts
MAX_ENERGY_CONVERSION = 10.0   # Energy per unit of molecule (exclusive upper bound)

MIN_MOVEMENT_COST = 0.0003
MAX_MOVEMENT_COST = 0.0005
MIN_CONTRACTION_COST = 0.0003
MAX_CONTRACTION_COST = 0.001
MAX_CONTRACTION = 0.8          # Max contraction ratio relative to the cell size
MAX_CONTACT_ENERGY_ABSORPTION = 1.75

MIN_SIZE = 1.0                 # Also the floor for the contracted size
MAX_SIZE = 10.0
MAX_SPEED = 40.0               # Cilia speed limit (world units/s)


# ============================================================================
# Physics (circle world)
# ============================================================================

SUB_STEPS = 1
RESPONSE_COEF = 0.1
DEFAULT_DELTA = 1.0 / 60.0     # 60 Hz

# Enable scipy.cKDTree pair search for collisions
# Set to False to use O(n^2) fallback for performance comparison
USE_CKDTREE = True
CKDTREE_LEAFSIZE = 16

# Normal used when two centres coincide
COINCIDENT_NORMAL = (1.0, 0.0)


# ============================================================================
# Soft-body Physics (articulated organisms)
# ============================================================================

SOFTBODY_STEP_TIME = 1.0 / 60.0
SOFTBODY_NUM_ITERATIONS = 10
SOFTBODY_GRAVITY = 9.81        # Points towards +y (screen coordinates)
SOFTBODY_DRAG = 0.1
SOFTBODY_RESTITUTION = 0.5
SOFTBODY_FRICTION = 0.6

MEMBRANE_PARTICLES_DEFAULT = 12
MEMBRANE_SPRING_STRENGTH = 0.5


# ============================================================================
# World Defaults
# ============================================================================

WORLD_SIZE_DEFAULT = (700.0, 300.0)
NUM_INITIAL_CELLS = 500

# Rejection sampling attempts before giving up on a free spawn position
FREE_POSITION_MAX_ATTEMPTS = 10000

# Probe cell created by add_testing_cell()
TESTING_CELL_POSITION = (20.0, 200.0)
TESTING_CELL_RADIUS = 10.0
TESTING_CELL_ENERGY = 10000.0
TESTING_CELL_SPEED = 10.0
TESTING_CELL_DIRECTION = 0.20 * math.pi


# ============================================================================
# Evolution Configuration
# ============================================================================

USE_EVOLUTION = True
RANK_SIZE_DEFAULT = 50
NUM_MUTATIONS_DEFAULT = 8
MUTATION_PROBABILITY_DEFAULT = 0.5
MUTATION_SCALE_DEFAULT = 0.1


# ============================================================================
# Performance Configuration
# ============================================================================

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100  # Number of ticks to average

# Default tick summary interval (print every N ticks)
TICK_SUMMARY_INTERVAL = 100

# Ticks run by the command line when neither --ticks nor max_ticks is set
DEFAULT_RUN_TICKS = 1000
