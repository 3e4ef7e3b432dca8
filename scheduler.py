'''
scheduler.py -- per-tick decisions about which chunks to generate, draw and undraw.

Runs on the coordinating thread only. It never waits on the workers: chunk
completion is observed by polling the terrain cache on later ticks.
'''

from collections import deque, namedtuple

import config
import logutil
from util import chebyshev, chunks_within

TickSummary = namedtuple('TickSummary', ('focal_chunk', 'dispatched', 'drawn', 'undrawn'))


class Renderer(object):
    """ Presentation surface fed by the scheduler. Subclasses override what
    they need; the base does nothing.

    """
    def draw_chunk(self, chunk, assignments):
        """ `assignments` maps each cell of the chunk to its AtlasAssignment. """

    def undraw_chunk(self, chunk, cells):
        pass

    def draw_overlay(self, chunk):
        pass

    def erase_overlay(self, chunk):
        pass


class ChunkScheduler(object):
    def __init__(self, world, focus, renderer=None, render_distance=None,
                 generation_distance=None, render_budget=None, debug_overlay=None):
        self.world = world
        self.focus = focus
        self.renderer = renderer if renderer is not None else Renderer()
        self.render_distance = render_distance if render_distance is not None else getattr(config, 'RENDER_DISTANCE', 2)
        self.generation_distance = (generation_distance if generation_distance is not None
                                    else getattr(config, 'GENERATION_DISTANCE', 3))
        self.render_budget = render_budget if render_budget is not None else getattr(config, 'RENDER_BUDGET', 2)
        self.debug_overlay = debug_overlay if debug_overlay is not None else getattr(config, 'DEBUG_OVERLAY', False)
        if self.render_distance < 0:
            raise ValueError(f"render_distance must be >= 0, got {self.render_distance}")
        if self.render_distance > self.generation_distance:
            raise ValueError(
                f"render_distance ({self.render_distance}) must not exceed "
                f"generation_distance ({self.generation_distance})"
            )
        if self.render_budget < 1:
            raise ValueError(f"render_budget must be >= 1, got {self.render_budget}")
        self.drawn = set()
        self.pending_draws = deque()
        self.pending_draw_set = set()
        self.focal_chunk = None
        self.tick_id = 0
        self.stat_drawn_total = 0
        self.stat_undrawn_total = 0

    def tick(self):
        self.tick_id += 1
        logutil.set_frame(self.tick_id)
        focal = self.world.chunk_at(self.focus.position)
        self.focal_chunk = focal
        dispatched = self._dispatch_generation(focal)
        self._enqueue_draws(focal)
        undrawn = self._unload(focal)
        drawn = self._draw_pending()
        if dispatched or drawn or undrawn:
            logutil.log(
                "SCHED",
                f"focal={focal} dispatched={dispatched} drawn={drawn} undrawn={undrawn}",
            )
        self._maybe_log_queue_state()
        return TickSummary(focal, dispatched, drawn, undrawn)

    def _dispatch_generation(self, focal):
        dispatched = 0
        for chunk in chunks_within(focal, self.generation_distance):
            if self.world.is_chunk_generated(chunk):
                continue
            if self.world.request_chunk(chunk):
                dispatched += 1
        return dispatched

    def _enqueue_draws(self, focal):
        for chunk in chunks_within(focal, self.render_distance):
            if chunk in self.drawn or chunk in self.pending_draw_set:
                continue
            if not self.world.is_chunk_generated(chunk):
                continue
            self.pending_draw_set.add(chunk)
            self.pending_draws.append(chunk)

    def _unload(self, focal):
        undrawn = 0
        for chunk in [c for c in self.drawn if chebyshev(c, focal) > self.render_distance]:
            self.renderer.undraw_chunk(chunk, self.world.chunk_cells(chunk))
            if self.debug_overlay:
                self.renderer.erase_overlay(chunk)
            self.drawn.discard(chunk)
            undrawn += 1
        # queued chunks that left the radius are dropped rather than drawn late
        stale = [c for c in self.pending_draws if chebyshev(c, focal) > self.render_distance]
        for chunk in stale:
            self.pending_draws.remove(chunk)
            self.pending_draw_set.discard(chunk)
        self.stat_undrawn_total += undrawn
        return undrawn

    def _draw_pending(self):
        drawn = 0
        while self.pending_draws and drawn < self.render_budget:
            chunk = self.pending_draws.popleft()
            self.pending_draw_set.discard(chunk)
            self.renderer.draw_chunk(chunk, self.world.chunk_assignments(chunk))
            if self.debug_overlay:
                self.renderer.draw_overlay(chunk)
            self.drawn.add(chunk)
            drawn += 1
        self.stat_drawn_total += drawn
        return drawn

    def _maybe_log_queue_state(self):
        every = max(1, getattr(config, 'LOG_QUEUE_STATE_EVERY_N_TICKS', 60))
        if self.tick_id % every:
            return
        logutil.log(
            "QUEUE",
            f"inflight={self.world.inflight_count()} pending_draws={len(self.pending_draws)} "
            f"drawn={len(self.drawn)} drawn_total={self.stat_drawn_total} "
            f"undrawn_total={self.stat_undrawn_total} generated={self.world.stat_generated_total} "
            f"terrain_cells={self.world.cache.terrain_count()}",
        )
