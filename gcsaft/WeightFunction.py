"""
Weight functions of the functional, as spherically symmetric kernels with a known 3D Fourier transform.

A weight is called with wavenumbers k to give its transform, which is all an external solver needs for the
convolutions. `real_integral()` is the transform at k = 0, the factor relating a uniform density to its weighted
density. Scaling a weight, as in Delta(R) * m, gives a new weight.

Radii may be floats or jax values, so that the real-space integrals carry temperature derivatives.
"""

import numpy as np
from scipy.special import spherical_jn


def _j02(x):
    return spherical_jn(0, x) + spherical_jn(2, x)


class Analytical:
    """
    A weight, given by its Fourier transform `lamb(k)` and its real-space integral. Vector valued weights are odd,
    and are transformed with their projection on k.

    Only a weight can be scaled, as `weight * prefactor` or `weight / divisor`, the prefactor may be an array scalar.
    """
    def __init__(self, lamb, integral, is_vector_valued=False):
        self.lamb = lamb
        self.integral = integral
        self.is_vector_valued = is_vector_valued

    def __call__(self, k):
        return self.lamb(k)

    def __mul__(self, prefactor):
        return Analytical(lambda k: prefactor * self(k), prefactor * self.real_integral(), self.is_vector_valued)

    def __truediv__(self, other):
        return self * (1 / other)

    def is_odd(self):
        return self.is_vector_valued

    def real_integral(self):
        return self.integral


class LocalDensity(Analytical):
    """
    Marks a weighted density that is the (scaled) local density itself, no convolution is needed.
    """
    def __init__(self, mult_factor=1):
        self.mult_factor = mult_factor
        super().__init__(None, self.mult_factor)

    def __call__(self, k):
        raise AttributeError('A local density is used as is, and has no transform')


class Heaviside(Analytical):
    r"""$\theta(R - r)$"""
    def __init__(self, kernel):
        self.R = kernel
        super().__init__(lambda k: (4 / 3) * np.pi * self.R ** 3 * _j02(2 * np.pi * k * self.R),
                         4 * np.pi * self.R ** 3 / 3)


class NormTheta(Analytical):
    r"""$\theta(R - r)$ divided by the sphere volume, integrates to one"""
    def __init__(self, kernel):
        self.R = kernel
        super().__init__(lambda k: _j02(2 * np.pi * k * self.R), 1)


class Delta(Analytical):
    r"""$\delta(r - R)$, the sphere surface"""
    def __init__(self, kernel):
        self.R = kernel
        super().__init__(lambda k: 4 * np.pi * self.R ** 2 * spherical_jn(0, 2 * np.pi * k * self.R),
                         4 * np.pi * self.R ** 2)


class DeltaVec(Analytical):
    r"""
    $\hat{\vec{r}}\delta(r - R)$, the outward normal on the sphere surface. Integrates to zero.
    """
    def __init__(self, kernel):
        self.R = kernel
        super().__init__(lambda k: - 2 * np.pi * k * 4.0 / 3.0 * np.pi * self.R ** 3 * _j02(2 * np.pi * k * self.R),
                         0., is_vector_valued=True)


def get_FMT_weights(R, ms):
    r"""
    Rosenfeld weights scaled by the segment numbers, as w[<weight index>][<segment index>] with
    w[0:4] the scalar weights of n0, n1, n2, n3 and w[4:6] the vector weights of nv1, nv2.
    """
    w = [[0 for _ in range(len(R))] for _ in range(6)]
    for i in range(len(R)):
        w[0][i] = Delta(R[i]) * (ms[i] / (4 * np.pi * R[i] ** 2))
        w[1][i] = Delta(R[i]) * (ms[i] / (4 * np.pi * R[i]))
        w[2][i] = Delta(R[i]) * ms[i]
        w[3][i] = Heaviside(R[i]) * ms[i]
        w[4][i] = DeltaVec(R[i]) * (ms[i] / (4 * np.pi * R[i]))
        w[5][i] = DeltaVec(R[i]) * ms[i]
    return w
