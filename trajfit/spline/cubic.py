"""Endpoint-parameterised cubic used for every block of the trajectory spline.

A block is described by its two boundary positions ``rm``/``rp`` and the
boundary velocities ``vm``/``vp``. Time is normalised so that the block spans
``t`` in [-0.5, 0.5] with ``t = 0`` at its midpoint, and velocities are
expressed per block (physical velocity times the block duration). With that
parameterisation the coefficients are symmetric in the endpoint values::

    a0 = (4*rs - vd) / 8      a1 = (6*rd - vs) / 4
    a2 = vd / 2               a3 = -2*rd + vs

where ``rs = rp + rm``, ``rd = rp - rm``, ``vs = vp + vm`` and ``vd = vp - vm``.

Only arithmetic operators are used, so the evaluator accepts Python floats,
NumPy scalars or broadcastable arrays, and any numeric type that carries
derivative information.
"""

from __future__ import annotations


def endpoint_coefficients(rm, vm, rp, vp):
    rs = rp + rm
    rd = rp - rm
    vs = vp + vm
    vd = vp - vm
    a0 = (4.0 * rs - vd) / 8.0
    a1 = (6.0 * rd - vs) / 4.0
    a2 = vd / 2.0
    a3 = -2.0 * rd + vs
    return a0, a1, a2, a3


def endpoint_cubic(rm, vm, rp, vp, t, order: int = 0):
    """Evaluate the block cubic at normalised offset ``t``.

    Parameters
    ----------
    rm, vm:
        Position and per-block velocity at the start of the block.
    rp, vp:
        Position and per-block velocity at the end of the block.
    t:
        Normalised offset; [-0.5, 0.5] covers the block, values outside
        extrapolate the same polynomial.
    order:
        0 returns the position, 1 returns ``(position, velocity)`` and 2 returns
        ``(position, velocity, acceleration)``. Derivatives are with respect to
        the normalised time.
    """
    if order not in (0, 1, 2):
        raise ValueError(f"order must be 0, 1 or 2, got {order!r}")
    a0, a1, a2, a3 = endpoint_coefficients(rm, vm, rp, vp)
    position = t * (t * (t * a3 + a2) + a1) + a0
    if order == 0:
        return position
    velocity = t * (t * 3.0 * a3 + 2.0 * a2) + a1
    if order == 1:
        return position, velocity
    acceleration = t * 6.0 * a3 + 2.0 * a2
    return position, velocity, acceleration
