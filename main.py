import itertools
import sys
import time

# local module imports
import config
import logutil
from entity import FocalEntity
from mapgen import ENV, LAYER_NAMES
from scheduler import ChunkScheduler, Renderer
from world import World

# Direction the walker turns to every few seconds.
HEADINGS = ((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1))
HEADING_SECONDS = 3


class LogRenderer(Renderer):
    """ Headless presentation surface: keeps the painted cells in a dict and
    reports what it was asked to do.

    """
    def __init__(self):
        self.cells = {}
        self.trees = 0

    def draw_chunk(self, chunk, assignments):
        trees = 0
        for cell, assignment in assignments.items():
            self.cells[cell] = assignment
            if assignment is not None and assignment[ENV] is not None:
                trees += 1
        self.trees += trees
        logutil.log("DRAW", f"chunk={chunk} cells={len(assignments)} trees={trees}")

    def undraw_chunk(self, chunk, cells):
        for cell in cells:
            assignment = self.cells.pop(cell, None)
            if assignment is not None and assignment[ENV] is not None:
                self.trees -= 1
        logutil.log("DRAW", f"undraw chunk={chunk} cells={len(cells)}")

    def draw_overlay(self, chunk):
        logutil.log("DRAW", f"overlay chunk={chunk}")

    def erase_overlay(self, chunk):
        logutil.log("DRAW", f"erase overlay chunk={chunk}")


def run(ticks):
    dt = 1.0 / config.TICKS_PER_SEC
    headings = itertools.cycle(HEADINGS)
    with World() as world:
        spawn = world.find_safe_spawn()
        logutil.log("MAIN", f"spawn={spawn} cell={world.cell_at(spawn)}")
        player = FocalEntity(world, spawn)
        renderer = LogRenderer()
        scheduler = ChunkScheduler(world, player, renderer)
        for tick in range(ticks):
            start = time.perf_counter()
            if tick % (HEADING_SECONDS * config.TICKS_PER_SEC) == 0:
                player.set_heading(*next(headings))
            player.update(dt)
            scheduler.tick()
            remaining = dt - (time.perf_counter() - start)
            if remaining > 0:
                time.sleep(remaining)
        world.wait_idle(timeout=5.0)
        mean_ms = world.stat_generate_ms_total / max(1, world.stat_generated_total)
        logutil.log(
            "MAIN",
            f"done ticks={ticks} generated={world.stat_generated_total} failed={world.stat_failed_total} "
            f"mean_chunk_ms={mean_ms:.2f} drawn_cells={len(renderer.cells)} trees={renderer.trees} "
            f"player={player.position}",
        )
        counts = {name: 0 for name in LAYER_NAMES}
        for assignment in renderer.cells.values():
            for layer, tile in enumerate(assignment):
                if tile is not None:
                    counts[LAYER_NAMES[layer]] += 1
        logutil.log("MAIN", f"visible layer cells {counts}")


def main():
    if len(sys.argv) > 1:
        try:
            config.SEED = int(sys.argv[1])
        except ValueError:
            logutil.log("MAIN", f"ignoring non-integer seed {sys.argv[1]!r}", level="WARN")
    ticks = 10 * config.TICKS_PER_SEC
    if len(sys.argv) > 2:
        ticks = int(sys.argv[2])
    logutil.log("MAIN", f"seed={config.SEED} ticks={ticks}")
    run(ticks)


if __name__ == '__main__':
    main()
