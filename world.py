'''
world.py -- owns the shared terrain state and the chunk generation workers.
'''

# standard library imports
import concurrent.futures
import os
import threading
import time
import traceback

# local imports
import config
import logutil
import mapgen
from autotile import AutotileRuleTable
from chunk_pipeline import ChunkGenerationPipeline
from noise import NoiseField
from terrain_cache import TerrainCache
from tiles import default_tiles
from util import chunk_cells, chunk_origin, chunkify, normalize, cell_center


class World(object):
    """
    Terrain cache, rule table and noise field shared by every generation task,
    plus the worker pool and the in-flight chunk set.

    The in-flight set and the set of finished chunks share one lock, separate
    from the cache lock; neither lock is held while the other is taken.
    """

    def __init__(self, seed=None, chunk_size=None, tile_size=None, tiles=None,
                 noise_field=None, workers=None, tree_freq=None, buffer=None):
        if seed is None:
            seed = getattr(config, 'SEED', None)
        if seed is None:
            seed = int(time.time())
        self.seed = seed
        self.chunk_size = chunk_size if chunk_size is not None else getattr(config, 'CHUNK_SIZE', 16)
        self.tile_size = tile_size if tile_size is not None else getattr(config, 'TILE_SIZE', 16)
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        self.tree_freq = tree_freq if tree_freq is not None else getattr(config, 'TREE_FREQ', 0.05)
        self.buffer = buffer if buffer is not None else getattr(config, 'CHUNK_BUFFER', 3)
        self.noise = noise_field if noise_field is not None else NoiseField(seed)
        self.cache = TerrainCache()
        self.rules = AutotileRuleTable(tiles if tiles is not None else default_tiles())
        if workers is None:
            workers = getattr(config, 'GENERATION_WORKERS', None)
        if workers is None:
            workers = os.cpu_count() or 1
        self.workers = workers
        self.executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="ChunkGen"
        )
        self._chunk_lock = threading.Lock()
        self._chunk_cv = threading.Condition(self._chunk_lock)
        self._pending = 0
        self._inflight = set()
        self._generated = set()
        self.stat_dispatched_total = 0
        self.stat_generated_total = 0
        self.stat_failed_total = 0
        self.stat_generate_ms_total = 0.0
        logutil.log(
            "WORLD",
            f"seed={self.seed} chunk_size={self.chunk_size} rules={len(self.rules)} "
            f"workers={self.workers}",
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
        return False

    # --- generation ---

    def request_chunk(self, chunk):
        """ Dispatch generation of `chunk` unless it is in flight or done.
        Returns True if a task was submitted.

        """
        with self._chunk_lock:
            if chunk in self._inflight or chunk in self._generated:
                return False
            self._inflight.add(chunk)
            self._pending += 1
            self.stat_dispatched_total += 1
        pipeline = ChunkGenerationPipeline(
            chunk,
            self.noise,
            self.cache,
            self.rules,
            seed=self.seed,
            chunk_size=self.chunk_size,
            buffer=self.buffer,
            tree_freq=self.tree_freq,
            on_finished=self._release_chunk,
        )
        try:
            future = self.executor.submit(pipeline.run)
        except RuntimeError:
            # pool already shut down
            with self._chunk_cv:
                self._inflight.discard(chunk)
                self._pending -= 1
                self.stat_dispatched_total -= 1
                self._chunk_cv.notify_all()
            raise
        future.chunk = chunk
        future.add_done_callback(self._chunk_done)
        return True

    def _release_chunk(self, chunk, completed):
        with self._chunk_lock:
            self._inflight.discard(chunk)
            if completed:
                self._generated.add(chunk)

    def _chunk_done(self, future):
        exc = future.exception()
        if exc is not None:
            logutil.log(
                "PIPELINE",
                f"chunk={future.chunk} failed: {exc!r}\n"
                + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                level="ERROR",
            )
        with self._chunk_cv:
            if exc is not None:
                self.stat_failed_total += 1
            else:
                result = future.result()
                self.stat_generated_total += 1
                self.stat_generate_ms_total += result.ms
            self._pending -= 1
            self._chunk_cv.notify_all()

    def is_chunk_inflight(self, chunk):
        with self._chunk_lock:
            return chunk in self._inflight

    def is_chunk_generated(self, chunk):
        # the atlas commit is all-or-nothing, so the origin cell stands for the chunk
        return self.cache.has_atlas(chunk_origin(chunk, self.chunk_size))

    def inflight_count(self):
        with self._chunk_lock:
            return len(self._inflight)

    def wait_idle(self, timeout=None):
        """ Block until every dispatched chunk has finished and been accounted
        for. Returns False on timeout. Never called by the scheduler.

        """
        with self._chunk_cv:
            return self._chunk_cv.wait_for(lambda: self._pending == 0, timeout)

    def shutdown(self, wait=True):
        self.executor.shutdown(wait=wait)

    # --- queries ---

    def chunk_cells(self, chunk):
        return list(chunk_cells(chunk, self.chunk_size))

    def chunk_assignments(self, chunk):
        """ {cell: AtlasAssignment} for every interior cell of `chunk`. """
        return self.cache.get_atlas_many(chunk_cells(chunk, self.chunk_size))

    def cell_at(self, position):
        return normalize(position, self.tile_size)

    def chunk_at(self, position):
        return chunkify(self.cell_at(position), self.chunk_size)

    def cell_to_world(self, cell):
        return cell_center(cell, self.tile_size)

    def is_walkable(self, position):
        """ True if the cell under world `position` is generated land. """
        return mapgen.is_walkable_layers(self.cache.get_terrain(self.cell_at(position)))

    def find_safe_spawn(self, max_radius=None):
        return mapgen.find_safe_spawn(self.noise, max_radius, self.tile_size)
