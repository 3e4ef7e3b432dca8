import os

# World seed; None picks one from the clock at startup.
SEED = 1337

# Size of chunks used to batch terrain generation (cells per side).
CHUNK_SIZE = 16
# Extra ring of cells classified around each chunk so autotiling sees real neighbours.
CHUNK_BUFFER = 3
# World units per cell (renderer pixels).
TILE_SIZE = 16

# Chebyshev radii (in chunks) around the focal chunk.
# RENDER_DISTANCE must not exceed GENERATION_DISTANCE or drawn chunks pop in late.
RENDER_DISTANCE = 2
GENERATION_DISTANCE = 3

# Max chunks handed to the renderer per tick; the rest carry over.
RENDER_BUDGET = 2

# Terrain noise.
NOISE_FREQUENCY = 0.01
NOISE_OCTAVES = 4
NOISE_LACUNARITY = 2.0
NOISE_GAIN = 0.5

# Chance per interior cell of attempting a tree.
TREE_FREQ = 0.05

# Generation worker threads (None uses the CPU count).
GENERATION_WORKERS = os.cpu_count()

# Safe spawn spiral search bound (cells).
SPAWN_MAX_RADIUS = 64

TICKS_PER_SEC = 60
WALKING_SPEED = 5 * TILE_SIZE

# Draw chunk outlines / coordinates through the renderer overlay hooks.
DEBUG_OVERLAY = False

# Enable ANSI colors in logs.
LOG_COLOR = True

# Log per-chunk generation timing on the worker threads.
LOG_PIPELINE = False

# Log per-tick dispatch/draw/undraw counts when anything happened.
LOG_SCHEDULER = True

# Log inflight/queue state.
LOG_QUEUE_STATE = True
LOG_QUEUE_STATE_EVERY_N_TICKS = 60
