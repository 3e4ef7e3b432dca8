#
# Simplex noise, N-D, vectorized over numpy arrays of sample points.
#
# Based on example code by Stefan Gustavson (stegu@itn.liu.se).
# Better rank ordering method by Stefan Gustavson in 2012.
#
# The original code was placed in the public domain by its author.
#
import itertools

import numpy

import config


# returns floor of floating point array by coercing to integer
def fastfloor(x):
    return numpy.array(numpy.floor(x), dtype=numpy.int64)


def _gradients(n):
    # corners and edge midpoints of the n-cube, excluding the origin
    grad = ((0, -1, 1),) * n
    grad = numpy.array(list(itertools.product(*grad))[1:])
    return grad[numpy.abs(grad).sum(-1) >= n - 1]


class SimplexNoise(object):
    """ Seeded simplex noise. `noise` is read-only over the permutation table
    so one instance can be sampled from any number of threads.

    """
    def __init__(self, seed=None):
        rng = numpy.random.RandomState(None if seed is None else seed & 0xFFFFFFFF)
        p = rng.permutation(256)
        # To remove the need for index wrapping, double the permutation table length
        self.perm = numpy.concatenate([p, p])
        self._grads = {}

    def _grad(self, n):
        grad = self._grads.get(n)
        if grad is None:
            grad = self._grads[n] = _gradients(n)
        return grad

    def noise(self, Z):
        """ Sample noise at the points `Z` (shape (M, N)); returns shape (M,)
        with values close to [-1, 1].

        """
        Z = numpy.asarray(Z, dtype=numpy.float64)
        N = Z.shape[-1]  # number of dimensions
        N1 = N + 1  # corners per simplex
        Fn = 1.0 * (N1 ** 0.5 - 1) / N
        Gn = 1.0 * (N1 - N1 ** 0.5) / N / N1

        # skew the input space to find the containing cell
        s = Z.sum(-1) * Fn
        cell = fastfloor(Z + s[:, numpy.newaxis])
        t = cell.sum(-1) * Gn
        z0 = Z - (cell - t[:, numpy.newaxis])

        # magnitude ordering picks the simplex inside the cell
        rank = numpy.zeros(Z.shape)
        for l, k in itertools.combinations(range(N), 2):
            rank[:, k] += z0[:, k] >= z0[:, l]
            rank[:, l] += z0[:, k] < z0[:, l]

        b = numpy.arange(N1)[:, numpy.newaxis, numpy.newaxis]
        ind = rank >= N - b
        zk = z0 - ind + 1.0 * b * Gn

        # hash the wrapped lattice corner of each simplex vertex
        corner = (cell[numpy.newaxis] + ind) & 255
        grad = self._grad(N)
        gik = 0
        for x in range(N - 1, -1, -1):
            gik = self.perm[corner[:, :, x] + gik]
        gik = gik % grad.shape[0]

        tk = 0.5 - (zk * zk).sum(-1)
        tp = tk >= 0
        tk = tp * tk * tk
        nk = tk * tk * (grad[gik] * zk).sum(-1)
        return numpy.clip(nk.sum(0) * (2 ** 6), -1.0, 1.0)


class NoiseField(object):
    """ Deterministic fractal (fBm) simplex field over integer cells.

    A pure function of (seed, frequency, fractal parameters, cell); safe to
    sample concurrently from the generation workers.
    """
    def __init__(self, seed, frequency=None, octaves=None, lacunarity=None, gain=None):
        self.seed = seed
        self.frequency = frequency if frequency is not None else getattr(config, 'NOISE_FREQUENCY', 0.01)
        self.octave_count = octaves if octaves is not None else getattr(config, 'NOISE_OCTAVES', 4)
        self.lacunarity = lacunarity if lacunarity is not None else getattr(config, 'NOISE_LACUNARITY', 2.0)
        self.gain = gain if gain is not None else getattr(config, 'NOISE_GAIN', 0.5)
        if self.octave_count < 1:
            raise ValueError(f"octaves must be >= 1, got {self.octave_count}")
        rng = numpy.random.RandomState(seed & 0xFFFFFFFF)
        self.octaves = []
        for i in range(self.octave_count):
            # offset each octave so lattice origins don't line up at (0, 0)
            offset = rng.uniform(0.0, 256.0, size=2)
            self.octaves.append((SimplexNoise(seed + 101 * (i + 1)), offset))

    def sample_many(self, cells):
        """ Sample a sequence of cells at once; returns a float array. """
        Z = numpy.asarray(cells, dtype=numpy.float64).reshape(-1, 2) * self.frequency
        total = numpy.zeros(Z.shape[0])
        amplitude = 1.0
        scale = 1.0
        norm = 0.0
        for simplex, offset in self.octaves:
            total += amplitude * simplex.noise(Z * scale + offset)
            norm += amplitude
            amplitude *= self.gain
            scale *= self.lacunarity
        return total / norm

    def sample(self, cell):
        return float(self.sample_many([cell])[0])
