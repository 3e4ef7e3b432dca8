"""
tiles.py -- tile-set metadata: compass directions, the Tile record and the
built-in tile set.

Each terrain occupies a 3-row band of the atlas laid out as

    col 0-2   3x3 blob (outer corners, edges, centre)
    col 3-4   inner corners
    col 5     weighted centre variants

Tiles with `terrain = None` (deep water, decorations) are addressed
directly by the generator and never take part in autotiling.
"""

from mapgen import WATER, SAND, GRASS, CLIFF, TERRAIN_LAYERS

N = 'n'
NE = 'ne'
E = 'e'
SE = 'se'
S = 's'
SW = 'sw'
W = 'w'
NW = 'nw'

DIRECTIONS = (N, NE, E, SE, S, SW, W, NW)

# Screen-space offsets: y grows downward.
DIRECTION_OFFSETS = {
    N: (0, -1),
    NE: (1, -1),
    E: (1, 0),
    SE: (1, 1),
    S: (0, 1),
    SW: (-1, 1),
    W: (-1, 0),
    NW: (-1, -1),
}

# Alternative ids applied to a placed tile.
ALT_NONE = 0
ALT_FLIP_H = 1


class Tile(object):
    __slots__ = ('name', 'atlas', 'terrain', 'peering', 'weight')

    def __init__(self, name, atlas, terrain=None, peering=None, weight=1.0):
        self.name = name
        self.atlas = atlas
        self.terrain = terrain
        # direction -> expected terrain id; missing directions are "don't care"
        self.peering = dict(peering or {})
        self.weight = float(weight)

    def __repr__(self):
        return f"Tile({self.name!r}, {self.atlas}, terrain={self.terrain})"


def _all_but(*missing):
    return tuple(d for d in DIRECTIONS if d not in missing)


# (column, row offset, peered directions, weight) for one terrain band.
_BLOB_LAYOUT = (
    ('corner_nw', 0, 0, (E, SE, S), 1.0),
    ('edge_n', 1, 0, (E, SE, S, SW, W), 1.0),
    ('corner_ne', 2, 0, (S, SW, W), 1.0),
    ('edge_w', 0, 1, (N, NE, E, SE, S), 1.0),
    ('center', 1, 1, DIRECTIONS, 1.0),
    ('edge_e', 2, 1, (N, S, SW, W, NW), 1.0),
    ('corner_sw', 0, 2, (N, NE, E), 1.0),
    ('edge_s', 1, 2, (W, NW, N, NE, E), 1.0),
    ('corner_se', 2, 2, (W, NW, N), 1.0),
    ('inner_nw', 3, 0, _all_but(NW), 1.0),
    ('inner_ne', 4, 0, _all_but(NE), 1.0),
    ('inner_sw', 3, 1, _all_but(SW), 1.0),
    ('inner_se', 4, 1, _all_but(SE), 1.0),
    ('center_alt', 5, 0, DIRECTIONS, 0.3),
    ('center_rare', 5, 1, DIRECTIONS, 0.1),
)

TERRAIN_NAMES = {WATER: 'water', SAND: 'sand', GRASS: 'grass', CLIFF: 'cliff'}


def terrain_tiles(terrain, row):
    """ Blob tiles for `terrain` with the band starting at atlas `row`. """
    name = TERRAIN_NAMES.get(terrain, str(terrain))
    tiles = []
    for suffix, col, drow, dirs, weight in _BLOB_LAYOUT:
        tiles.append(Tile(
            f'{name}_{suffix}',
            (col, row + drow),
            terrain=terrain,
            peering={d: terrain for d in dirs},
            weight=weight,
        ))
    return tiles


DEEP_WATER = Tile('deep_water', (6, 0))
PALM_A = Tile('palm_a', (0, 12))
PALM_B = Tile('palm_b', (1, 12))
FOREST_TREE = Tile('forest_tree', (2, 12))

PALM_TILES = (PALM_A, PALM_B)


def default_tiles():
    tiles = []
    for terrain in TERRAIN_LAYERS:
        tiles.extend(terrain_tiles(terrain, terrain * 3))
    tiles.extend([DEEP_WATER, PALM_A, PALM_B, FOREST_TREE])
    return tiles
