"""
mapgen.py -- turns noise samples into terrain layers, and finds a safe spawn.

A cell's terrain is a TerrainLayerSet: a fixed 5-tuple indexed by layer id
holding the terrain id present on that layer, or None. Bands overlap on
purpose so the autotiler can blend neighbouring layers at borders.
"""

import config
from util import spiral, cell_center

# Layer ids; each terrain layer carries the terrain id of the same value.
WATER = 0
SAND = 1
GRASS = 2
CLIFF = 3
ENV = 4

LAYER_COUNT = 5
TERRAIN_LAYERS = (WATER, SAND, GRASS, CLIFF)
LAYER_NAMES = ('water', 'sand', 'grass', 'cliff', 'env')

# Classifier bands (open intervals).
WATER_MAX = 0.0
SAND_MIN = -0.025
SAND_MAX = 0.15
GRASS_MIN = 0.135
GRASS_MAX = 0.55
CLIFF_MIN = 0.535

# Below this the water layer is drawn with the deep water tile, no autotiling.
DEEP_WATER_MAX = -0.2

# Noise band considered safe to spawn on (inclusive).
SPAWN_MIN = 0.0
SPAWN_MAX = 0.45


def classify(n):
    """ Map a noise sample to the TerrainLayerSet present at that cell. """
    layers = [None] * LAYER_COUNT
    if n < WATER_MAX:
        layers[WATER] = WATER
    if SAND_MIN < n < SAND_MAX:
        layers[SAND] = SAND
    if GRASS_MIN < n < GRASS_MAX:
        layers[GRASS] = GRASS
    if n > CLIFF_MIN:
        layers[CLIFF] = CLIFF
    return tuple(layers)


def is_deep_water(n):
    return n < DEEP_WATER_MAX


def has_layer(layers, layer):
    return layers is not None and layers[layer] is not None


def terrain_ids(layers):
    """ The set of terrain ids present in `layers`; empty for a missing cell. """
    if layers is None:
        return frozenset()
    return frozenset(t for t in layers[:ENV] if t is not None)


def is_walkable_layers(layers):
    return has_layer(layers, SAND) or has_layer(layers, GRASS) or has_layer(layers, CLIFF)


def find_safe_spawn_cell(noise_field, max_radius=None):
    """ Spiral out from the origin and return the first cell whose noise lies
    in the safe sand/grass band, or (0, 0) if none is found within the bound.

    """
    if max_radius is None:
        max_radius = getattr(config, 'SPAWN_MAX_RADIUS', 64)
    for cell in spiral((2 * max_radius) ** 2):
        if SPAWN_MIN <= noise_field.sample(cell) <= SPAWN_MAX:
            return cell
    return (0, 0)


def find_safe_spawn(noise_field, max_radius=None, tile_size=None):
    if tile_size is None:
        tile_size = getattr(config, 'TILE_SIZE', 16)
    return cell_center(find_safe_spawn_cell(noise_field, max_radius), tile_size)
