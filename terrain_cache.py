import threading

import logutil


class TerrainCache(object):
    """
    Shared append-only store of per-cell terrain (TerrainLayerSet) and tile
    assignments (AtlasAssignment), guarded jointly by one lock.

    Each entry is written once. Re-committing an identical terrain set is a
    no-op because neighbouring chunks re-classify the same buffer cells.
    Any other rewrite is a logic error: the first value is kept, the write is
    logged once the lock is released, and it trips an assertion in
    development runs (ignored under `python -O`).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._terrain = {}
        self._atlas = {}
        self.rejected_writes = 0

    def _report(self, kind, rejected):
        # called without the lock held
        if not rejected:
            return
        logutil.log(
            "CACHE",
            f"ignored second {kind} write for {len(rejected)} cell(s), first={rejected[0]}",
            level="WARN",
        )
        assert not rejected, f"{kind} committed twice for cells {rejected[:4]}"

    def _put_terrain(self, cell, layers, rejected):
        existing = self._terrain.get(cell)
        if existing is None:
            self._terrain[cell] = layers
            return True
        if existing != layers:
            self.rejected_writes += 1
            rejected.append(cell)
        return False

    def _put_atlas(self, cell, assignment, rejected):
        if cell in self._atlas:
            self.rejected_writes += 1
            rejected.append(cell)
            return False
        self._atlas[cell] = assignment
        return True

    def commit_terrain(self, cell, layers):
        rejected = []
        with self._lock:
            written = self._put_terrain(cell, layers, rejected)
        self._report("terrain", rejected)
        return written

    def commit_terrain_many(self, items):
        """ Commit {cell: TerrainLayerSet} in one critical section. """
        rejected = []
        with self._lock:
            written = 0
            for cell, layers in items.items():
                written += self._put_terrain(cell, layers, rejected)
        self._report("terrain", rejected)
        return written

    def get_terrain(self, cell):
        with self._lock:
            return self._terrain.get(cell)

    def get_terrain_many(self, cells):
        with self._lock:
            return {cell: self._terrain.get(cell) for cell in cells}

    def commit_atlas(self, cell, assignment):
        rejected = []
        with self._lock:
            written = self._put_atlas(cell, assignment, rejected)
        self._report("atlas", rejected)
        return written

    def commit_atlas_many(self, items):
        """ Commit {cell: AtlasAssignment} in one critical section, so a chunk
        is either fully present or fully absent to other callers.

        """
        rejected = []
        with self._lock:
            twice = [cell for cell in items if cell in self._atlas]
            assert not twice, f"atlas committed twice for cells {twice[:4]}"
            written = 0
            for cell, assignment in items.items():
                written += self._put_atlas(cell, assignment, rejected)
        self._report("atlas", rejected)
        return written

    def get_atlas(self, cell):
        with self._lock:
            return self._atlas.get(cell)

    def get_atlas_many(self, cells):
        with self._lock:
            return {cell: self._atlas.get(cell) for cell in cells}

    def has_atlas(self, cell):
        with self._lock:
            return cell in self._atlas

    def terrain_count(self):
        with self._lock:
            return len(self._terrain)

    def atlas_count(self):
        with self._lock:
            return len(self._atlas)
