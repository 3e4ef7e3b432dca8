import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import tiles
from autotile import AutotileRuleTable
from chunk_pipeline import ChunkGenerationPipeline, generate_chunk
from mapgen import WATER, SAND, GRASS, CLIFF, ENV
from noise import NoiseField
from terrain_cache import TerrainCache
from util import chebyshev, chunk_cells

SIZE = 8
RULES = AutotileRuleTable(tiles.default_tiles())
TREE_ATLASES = {tiles.FOREST_TREE.atlas, tiles.PALM_A.atlas, tiles.PALM_B.atlas}


class _ConstantField(object):
    def __init__(self, value):
        self.value = value

    def sample(self, cell):
        return self.value

    def sample_many(self, cells):
        return np.full(len(cells), self.value)


class _StripeField(object):
    """ Grass left of `edge`, water from it on. """
    def __init__(self, edge):
        self.edge = edge

    def sample(self, cell):
        return 0.3 if cell[0] < self.edge else -0.1

    def sample_many(self, cells):
        return np.array([self.sample(c) for c in cells])


class _PatchedField(object):
    """ `default` everywhere, except where `override(cell)` returns a value. """
    def __init__(self, default, override):
        self.default = default
        self.override = override

    def sample(self, cell):
        value = self.override(cell)
        return self.default if value is None else value

    def sample_many(self, cells):
        return np.array([self.sample(c) for c in cells])


class _BrokenField(object):
    def sample_many(self, cells):
        raise RuntimeError("noise backend unavailable")


def _run(chunk, field, cache=None, **kwargs):
    cache = cache if cache is not None else TerrainCache()
    kwargs.setdefault('chunk_size', SIZE)
    kwargs.setdefault('tree_freq', 0.0)
    result = generate_chunk(chunk, field, cache, RULES, seed=kwargs.pop('seed', 1), **kwargs)
    return cache, result


def _trees(cache, cells):
    found = {}
    for cell, assignment in cache.get_atlas_many(cells).items():
        if assignment is not None and assignment[ENV] is not None:
            found[cell] = assignment[ENV]
    return found


def test_commits_terrain_for_buffer_and_atlas_for_interior():
    cache, result = _run((2, -1), _ConstantField(0.3), buffer=3)
    assert result.cells == SIZE * SIZE
    assert cache.terrain_count() == (SIZE + 6) ** 2
    assert cache.atlas_count() == SIZE * SIZE
    for cell in chunk_cells((2, -1), SIZE):
        assert cache.has_atlas(cell)
    # buffer cells carry terrain but no tiles
    assert cache.get_terrain((15, -9)) is not None
    assert not cache.has_atlas((15, -9))


def test_every_present_layer_gets_a_tile():
    cache, _ = _run((0, 0), _ConstantField(0.14))
    for assignment in cache.get_atlas_many(chunk_cells((0, 0), SIZE)).values():
        assert assignment[SAND] is not None
        assert assignment[GRASS] is not None
        assert assignment[WATER] is None
        assert assignment[CLIFF] is None


def test_deep_water_bypasses_autotiling():
    cache, _ = _run((0, 0), _ConstantField(-0.5))
    for assignment in cache.get_atlas_many(chunk_cells((0, 0), SIZE)).values():
        assert assignment[WATER].atlas == tiles.DEEP_WATER.atlas


def test_shallow_water_is_autotiled():
    cache, _ = _run((0, 0), _ConstantField(-0.1))
    water_rules = {rule.tile for rule in RULES.rules_for(WATER)}
    for assignment in cache.get_atlas_many(chunk_cells((0, 0), SIZE)).values():
        assert assignment[WATER].atlas in water_rules
        assert assignment[WATER].atlas != tiles.DEEP_WATER.atlas


def test_shoreline_uses_edge_tiles():
    cache, _ = _run((0, 0), _StripeField(4))
    # last grass column before the water: grass missing to the east
    grass = cache.get_atlas((3, 3))[GRASS]
    assert grass.atlas == (2, 7)
    # first water column: water missing to the west
    water = cache.get_atlas((4, 3))[WATER]
    assert water.atlas == (0, 1)


def test_no_trees_when_frequency_is_zero():
    for value in (0.05, 0.14, 0.3):
        cache, result = _run((0, 0), _ConstantField(value), tree_freq=0.0)
        assert result.trees == 0
        assert _trees(cache, chunk_cells((0, 0), SIZE)) == {}


def test_grass_gets_forest_trees_spaced_apart():
    cache, result = _run((0, 0), _ConstantField(0.3), tree_freq=1.0)
    trees = _trees(cache, chunk_cells((0, 0), SIZE))
    assert result.trees == len(trees) > 0
    assert (0, 0) in trees
    assert {ref.atlas for ref in trees.values()} == {tiles.FOREST_TREE.atlas}
    cells = list(trees)
    for i, a in enumerate(cells):
        for b in cells[i + 1:]:
            assert chebyshev(a, b) > 3


def test_sand_gets_palms_and_overlap_counts_as_grass():
    cache, _ = _run((0, 0), _ConstantField(0.05), tree_freq=1.0, chunk_size=16)
    palms = _trees(cache, chunk_cells((0, 0), 16))
    assert palms
    assert {ref.atlas for ref in palms.values()} <= {tiles.PALM_A.atlas, tiles.PALM_B.atlas}
    cache, _ = _run((0, 0), _ConstantField(0.14), tree_freq=1.0)
    mixed = _trees(cache, chunk_cells((0, 0), SIZE))
    assert {ref.atlas for ref in mixed.values()} == {tiles.FOREST_TREE.atlas}


def test_palm_variants_are_equally_likely():
    counts = {tiles.PALM_A.atlas: 0, tiles.PALM_B.atlas: 0}
    for seed in range(40):
        cache, _ = _run((0, 0), _ConstantField(0.05), tree_freq=1.0, chunk_size=16, seed=seed)
        for ref in _trees(cache, chunk_cells((0, 0), 16)).values():
            counts[ref.atlas] += 1
    total = sum(counts.values())
    assert total > 200
    for count in counts.values():
        assert abs(count / float(total) - 0.5) < 0.1


def test_no_tree_near_a_cliff_cell():
    cliff = (4, 4)
    field = _PatchedField(0.3, lambda cell: 0.54 if cell == cliff else None)
    cache, _ = _run((0, 0), field, tree_freq=1.0)
    trees = _trees(cache, chunk_cells((0, 0), SIZE))
    assert trees
    assert [cell for cell in trees if chebyshev(cell, cliff) <= 2] == []


def test_no_forest_tree_next_to_a_sand_strip():
    # grass left of x=4, sand-only from x=4 on
    field = _PatchedField(0.3, lambda cell: 0.05 if cell[0] >= 4 else None)
    cache, _ = _run((0, 0), field, tree_freq=1.0)
    trees = _trees(cache, chunk_cells((0, 0), SIZE))
    forest = [cell for cell, ref in trees.items() if ref.atlas == tiles.FOREST_TREE.atlas]
    palms = [cell for cell, ref in trees.items() if ref.atlas != tiles.FOREST_TREE.atlas]
    assert (0, 0) in forest
    assert all(x <= 1 for x, _ in forest)
    # and palms keep the same distance from the grass
    assert all(x >= 6 for x, _ in palms)


def test_cliffs_and_water_never_get_trees():
    for value in (0.54, 0.9, -0.1):
        cache, result = _run((0, 0), _ConstantField(value), tree_freq=1.0)
        assert result.trees == 0


def test_flip_variant_is_used():
    alternatives = set()
    for seed in range(6):
        cache, _ = _run((0, 0), _ConstantField(0.3), tree_freq=1.0, chunk_size=16, seed=seed)
        alternatives |= {ref.alternative for ref in _trees(cache, chunk_cells((0, 0), 16)).values()}
    assert alternatives == {tiles.ALT_NONE, tiles.ALT_FLIP_H}


def test_trees_need_generated_surroundings():
    # without a buffer ring nothing beyond the chunk edge is known yet
    cache, _ = _run((0, 0), _ConstantField(0.3), tree_freq=1.0, buffer=0)
    trees = _trees(cache, chunk_cells((0, 0), SIZE))
    assert trees
    for x, y in trees:
        assert 2 <= x <= SIZE - 3
        assert 2 <= y <= SIZE - 3


def test_tree_spacing_holds_across_chunks():
    cache = TerrainCache()
    _run((0, 0), _ConstantField(0.3), cache=cache, tree_freq=1.0)
    _run((1, 0), _ConstantField(0.3), cache=cache, tree_freq=1.0)
    cells = list(chunk_cells((0, 0), SIZE)) + list(chunk_cells((1, 0), SIZE))
    trees = list(_trees(cache, cells))
    assert any(x >= SIZE for x, _ in trees)
    for i, a in enumerate(trees):
        for b in trees[i + 1:]:
            assert chebyshev(a, b) > 3


def test_neighbouring_chunks_share_buffer_cells():
    cache = TerrainCache()
    field = NoiseField(5, frequency=0.08, octaves=3)
    for chunk in ((0, 0), (1, 0), (0, 1), (1, 1), (-1, -1)):
        _run(chunk, field, cache=cache, tree_freq=0.1)
    assert cache.rejected_writes == 0
    assert cache.atlas_count() == 5 * SIZE * SIZE


def test_same_seed_same_chunk():
    field = NoiseField(5, frequency=0.08, octaves=3)
    cells = list(chunk_cells((3, 4), SIZE))
    a, _ = _run((3, 4), field, tree_freq=0.2, seed=9)
    b, _ = _run((3, 4), field, tree_freq=0.2, seed=9)
    assert a.get_atlas_many(cells) == b.get_atlas_many(cells)


def test_finished_callback_reports_outcome():
    calls = []
    cache = TerrainCache()
    ChunkGenerationPipeline(
        (0, 0), _ConstantField(0.3), cache, RULES, chunk_size=SIZE,
        on_finished=lambda chunk, ok: calls.append((chunk, ok)),
    ).run()
    with pytest.raises(RuntimeError):
        ChunkGenerationPipeline(
            (5, 5), _BrokenField(), cache, RULES, chunk_size=SIZE,
            on_finished=lambda chunk, ok: calls.append((chunk, ok)),
        ).run()
    assert calls == [((0, 0), True), ((5, 5), False)]
    assert not cache.has_atlas((40, 40))
