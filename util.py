import math

from config import CHUNK_SIZE, TILE_SIZE


def normalize(position, tile_size=TILE_SIZE):
    """ Accepts a world `position` of arbitrary precision and returns the cell
    containing that position.

    Parameters
    ----------
    position : tuple of len 2

    Returns
    -------
    cell : tuple of ints of len 2

    """
    x, y = position
    return (int(math.floor(x / tile_size)), int(math.floor(y / tile_size)))


def cell_center(cell, tile_size=TILE_SIZE):
    """ Returns the world position at the centre of `cell`. """
    return ((cell[0] + 0.5) * tile_size, (cell[1] + 0.5) * tile_size)


def chunkify(cell, chunk_size=CHUNK_SIZE):
    """ Returns the chunk coordinate owning `cell` (floor division, so
    negative cells land in negative chunks).

    """
    return (cell[0] // chunk_size, cell[1] // chunk_size)


def chunk_origin(chunk, chunk_size=CHUNK_SIZE):
    return (chunk[0] * chunk_size, chunk[1] * chunk_size)


def chunk_cells(chunk, chunk_size=CHUNK_SIZE, margin=0):
    """ Yield every cell of `chunk`, grown by `margin` cells on each side. """
    ox, oy = chunk_origin(chunk, chunk_size)
    for y in range(oy - margin, oy + chunk_size + margin):
        for x in range(ox - margin, ox + chunk_size + margin):
            yield (x, y)


def window(cell, radius):
    """ Yield the (2*radius+1)^2 square of cells centred on `cell`. """
    cx, cy = cell
    for y in range(cy - radius, cy + radius + 1):
        for x in range(cx - radius, cx + radius + 1):
            yield (x, y)


def chebyshev(a, b):
    return max(abs(a[0] - b[0]), abs(a[1] - b[1]))


def chunks_within(center, radius):
    """ Chunks within Chebyshev `radius` of `center`, nearest first. """
    cx, cy = center
    result = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            result.append((max(abs(dx), abs(dy)), dx * dx + dy * dy, (cx + dx, cy + dy)))
    result.sort()
    return [pos for _, _, pos in result]


def spiral(steps):
    """ Yield `steps` integer offsets walking a square spiral out from (0, 0).

    (0,0), (1,0), (1,1), (0,1), (-1,1)... each leg turns when it reaches a
    corner of the current ring.
    """
    x = y = 0
    dx, dy = 0, -1
    for _ in range(steps):
        yield (x, y)
        if x == y or (x < 0 and x == -y) or (x > 0 and x == 1 - y):
            dx, dy = -dy, dx
        x, y = x + dx, y + dy


def stable_hash(*args):
    """
    Combine integer arguments into a single 64-bit integer using a deterministic
    mixing routine. Unlike hash(), the result is stable across Python runs.
    """
    x = 0x345678ABCDEF1234
    for a in args:
        a &= 0xFFFFFFFFFFFFFFFF
        a ^= (a >> 33)
        a = (a * 0xFF51AFD7ED558CCD) & 0xFFFFFFFFFFFFFFFF
        a ^= (a >> 33)
        x ^= a
        x = (x * 0xC4CEB9FE1A85EC53) & 0xFFFFFFFFFFFFFFFF
    return x
