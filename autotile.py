"""
autotile.py -- bitmask autotiling.

The rule table groups tile metadata by terrain and orders each group by
specificity (number of peered directions), most specific first. Resolving a
cell walks that order, keeps every matching rule tied at the best score, and
breaks the tie with a weighted random pick. Everything here is read-only
after construction so workers can share it without locking.
"""

import random
from collections import namedtuple

from mapgen import SAND, GRASS
from tiles import DIRECTIONS, ALT_NONE

# A placed tile: atlas coordinate plus alternative (variant / flip) id.
TileRef = namedtuple('TileRef', ('atlas', 'alternative'))

# Generic weighted choice record.
Candidate = namedtuple('Candidate', ('tile', 'weight'))


class TileRule(object):
    __slots__ = ('tile', 'terrain', 'peering', 'score', 'weight')

    def __init__(self, tile, terrain, peering, weight=1.0):
        self.tile = tile
        self.terrain = terrain
        self.peering = tuple(sorted(peering.items(), key=lambda item: DIRECTIONS.index(item[0])))
        self.score = len(self.peering)
        self.weight = float(weight)

    def __repr__(self):
        return f"TileRule({self.tile}, terrain={self.terrain}, score={self.score}, weight={self.weight})"


class AutotileRuleTable(object):
    """ terrain id -> rules sorted by descending specificity. """

    def __init__(self, tiles):
        rules = {}
        for tile in tiles:
            if tile.terrain is None:
                continue
            peering = {d: t for d, t in tile.peering.items() if t is not None}
            unknown = set(peering) - set(DIRECTIONS)
            if unknown:
                raise ValueError(f"tile {tile!r} has unknown peering directions {sorted(unknown)}")
            rules.setdefault(tile.terrain, []).append(
                TileRule(tile.atlas, tile.terrain, peering, tile.weight)
            )
        for group in rules.values():
            # stable: equal scores keep metadata order, ties are broken at pick time
            group.sort(key=lambda rule: rule.score, reverse=True)
        self._rules = {terrain: tuple(group) for terrain, group in rules.items()}

    def rules_for(self, terrain):
        return self._rules.get(terrain, ())

    def terrains(self):
        return sorted(self._rules)

    def __len__(self):
        return sum(len(group) for group in self._rules.values())


def weighted_pick(candidates, rng=random):
    """ Pick one of `candidates` (objects with a `weight`) proportionally to
    weight. A single candidate is returned without drawing.

    """
    if len(candidates) == 1:
        return candidates[0]
    total = sum(c.weight for c in candidates)
    draw = rng.random() * total
    cumulative = 0.0
    for c in candidates:
        cumulative += c.weight
        if cumulative >= draw:
            return c
    # float round-off on the last partial sum
    return candidates[-1]


def _peer_matches(terrain, required, present):
    if required in present:
        return True
    # sand borders blend into grass; one direction only
    return terrain == SAND and required == SAND and GRASS in present


def rule_matches(rule, terrain, neighbors):
    """ True if every peered direction of `rule` sees the required terrain.
    `neighbors` maps direction -> set of terrain ids present there.

    """
    for direction, required in rule.peering:
        if not _peer_matches(terrain, required, neighbors.get(direction, ())):
            return False
    return True


def matching_candidates(terrain, neighbors, rules):
    best = None
    candidates = []
    for rule in rules:
        if best is not None and rule.score < best:
            break
        if rule_matches(rule, terrain, neighbors):
            if best is None:
                best = rule.score
            candidates.append(rule)
    return candidates


def resolve(terrain, neighbors, rules, rng=random):
    """ Resolve the tile for `terrain` given its neighbours' terrain sets.

    Returns a TileRef, or None when there are no rules for the terrain.
    """
    candidates = matching_candidates(terrain, neighbors, rules)
    if candidates:
        return TileRef(weighted_pick(candidates, rng).tile, ALT_NONE)
    if rules:
        return TileRef(rules[0].tile, ALT_NONE)
    return None
