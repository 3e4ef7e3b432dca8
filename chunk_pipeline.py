"""
chunk_pipeline.py -- generation of one chunk on a worker thread.

    classify (chunk + buffer ring, local only)
    -> commit terrain
    -> prefetch neighbour terrain from the cache
    -> autotile every terrain layer
    -> place trees
    -> commit atlas (whole chunk in one critical section)
    -> release the in-flight marker

Other chunks may be generating at the same time, so anything read from the
cache can still be missing; missing neighbours count as empty terrain and
block tree placement.
"""

import random
import time

import config
import logutil
from autotile import TileRef, Candidate, resolve, weighted_pick
from mapgen import (
    WATER, SAND, GRASS, CLIFF, ENV, LAYER_COUNT, TERRAIN_LAYERS,
    classify, is_deep_water, has_layer, terrain_ids,
)
from tiles import DIRECTION_OFFSETS, DEEP_WATER, PALM_TILES, FOREST_TREE, ALT_NONE, ALT_FLIP_H
from util import chunk_cells, window, stable_hash

# Tree placement windows (radius in cells).
TREE_CLEARANCE_RADIUS = 2
TREE_SPACING_RADIUS = 3

_PALM_CANDIDATES = tuple(Candidate(tile, 1.0) for tile in PALM_TILES)


class ChunkResult(object):
    __slots__ = ('chunk', 'cells', 'trees', 'ms')

    def __init__(self, chunk, cells, trees, ms):
        self.chunk = chunk
        self.cells = cells
        self.trees = trees
        self.ms = ms


class ChunkGenerationPipeline(object):
    def __init__(self, chunk, noise_field, cache, rule_table, seed=0,
                 chunk_size=None, buffer=None, tree_freq=None, on_finished=None):
        self.chunk = chunk
        self.noise = noise_field
        self.cache = cache
        self.rules = rule_table
        self.chunk_size = chunk_size if chunk_size is not None else getattr(config, 'CHUNK_SIZE', 16)
        self.buffer = buffer if buffer is not None else getattr(config, 'CHUNK_BUFFER', 3)
        self.tree_freq = tree_freq if tree_freq is not None else getattr(config, 'TREE_FREQ', 0.05)
        self.on_finished = on_finished
        self.rng = random.Random(stable_hash(seed, chunk[0], chunk[1]))
        self.interior = list(chunk_cells(chunk, self.chunk_size))
        self._interior_set = set(self.interior)

    def run(self):
        completed = False
        try:
            result = self._run()
            completed = True
            return result
        finally:
            if self.on_finished is not None:
                self.on_finished(self.chunk, completed)

    def _run(self):
        start = time.perf_counter()
        samples, terrain = self.classify()
        self.cache.commit_terrain_many(terrain)
        neighbors = self.prefetch_neighbors()
        assignments = self.solve(terrain, samples, neighbors)
        trees = self.decorate(terrain, assignments)
        self.cache.commit_atlas_many({cell: tuple(a) for cell, a in assignments.items()})
        ms = (time.perf_counter() - start) * 1000.0
        logutil.log(
            "PIPELINE",
            f"chunk={self.chunk} cells={len(assignments)} trees={trees} ms={ms:.2f}",
        )
        return ChunkResult(self.chunk, len(assignments), trees, ms)

    def classify(self):
        """ Sample and classify the chunk plus its buffer ring. """
        cells = list(chunk_cells(self.chunk, self.chunk_size, margin=self.buffer))
        values = self.noise.sample_many(cells)
        samples = {}
        terrain = {}
        for cell, n in zip(cells, values):
            n = float(n)
            samples[cell] = n
            terrain[cell] = classify(n)
        return samples, terrain

    def prefetch_neighbors(self):
        """ direction -> terrain id set for the 8 neighbours of every interior cell. """
        ring = set(chunk_cells(self.chunk, self.chunk_size, margin=1))
        known = self.cache.get_terrain_many(ring)
        neighbors = {}
        for cell in self.interior:
            x, y = cell
            neighbors[cell] = {
                direction: terrain_ids(known.get((x + dx, y + dy)))
                for direction, (dx, dy) in DIRECTION_OFFSETS.items()
            }
        return neighbors

    def solve(self, terrain, samples, neighbors):
        assignments = {}
        for cell in self.interior:
            layers = terrain[cell]
            assignment = [None] * LAYER_COUNT
            for layer in TERRAIN_LAYERS:
                terrain_id = layers[layer]
                if terrain_id is None:
                    continue
                if layer == WATER and is_deep_water(samples[cell]):
                    assignment[layer] = TileRef(DEEP_WATER.atlas, ALT_NONE)
                    continue
                assignment[layer] = resolve(
                    terrain_id, neighbors[cell], self.rules.rules_for(terrain_id), self.rng
                )
            assignments[cell] = assignment
        return assignments

    def decorate(self, terrain, assignments):
        """ Place trees on interior cells; returns the number placed. """
        placed = 0
        for cell in self.interior:
            if self.rng.random() >= self.tree_freq:
                continue
            layers = terrain[cell]
            if has_layer(layers, CLIFF):
                continue
            if has_layer(layers, GRASS):
                kind = GRASS
            elif has_layer(layers, SAND):
                kind = SAND
            else:
                continue
            if not self._clearance_ok(cell, kind):
                continue
            if self._tree_nearby(cell, assignments):
                continue
            if kind == SAND:
                tile = weighted_pick(_PALM_CANDIDATES, self.rng).tile
            else:
                tile = FOREST_TREE
            alternative = ALT_FLIP_H if self.rng.random() < 0.5 else ALT_NONE
            assignments[cell][ENV] = TileRef(tile.atlas, alternative)
            placed += 1
        return placed

    def _clearance_ok(self, cell, kind):
        known = self.cache.get_terrain_many(window(cell, TREE_CLEARANCE_RADIUS))
        for layers in known.values():
            if layers is None or not has_layer(layers, kind) or has_layer(layers, CLIFF):
                return False
        return True

    def _tree_nearby(self, cell, assignments):
        outside = []
        for other in window(cell, TREE_SPACING_RADIUS):
            if other in self._interior_set:
                if assignments[other][ENV] is not None:
                    return True
            else:
                outside.append(other)
        committed = self.cache.get_atlas_many(outside)
        return any(a is not None and a[ENV] is not None for a in committed.values())


def generate_chunk(chunk, noise_field, cache, rule_table, **kwargs):
    return ChunkGenerationPipeline(chunk, noise_field, cache, rule_table, **kwargs).run()
