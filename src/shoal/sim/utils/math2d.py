from __future__ import annotations

import math

TAU = math.pi * 2.0


def _clamp_length_xy_f(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    max_sq = max_length * max_length
    if magnitude_sq <= max_sq:
        return x, y
    if magnitude_sq <= 1e-18:
        return 0.0, 0.0
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _wrap_angle(angle: float) -> float:
    """Wrap an angle difference into (-pi, pi]."""
    wrapped = math.fmod(angle, TAU)
    if wrapped > math.pi:
        wrapped -= TAU
    elif wrapped <= -math.pi:
        wrapped += TAU
    return wrapped


def ease_out(t: float) -> float:
    t = _clamp_value(t, 0.0, 1.0)
    return 1.0 - (1.0 - t) ** 3


def ease_in_out(t: float) -> float:
    t = _clamp_value(t, 0.0, 1.0)
    if t < 0.5:
        return 2.0 * t * t
    return 1.0 - ((-2.0 * t + 2.0) ** 2) / 2.0


def hash2(x: float, y: float) -> float:
    s = math.sin(x * 127.1 + y * 311.7) * 43758.5453123
    return s - math.floor(s)


def _smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


def value_noise(x: float, y: float) -> float:
    xi = math.floor(x)
    yi = math.floor(y)
    u = _smoothstep(x - xi)
    v = _smoothstep(y - yi)
    top = _lerp(hash2(xi, yi), hash2(xi + 1, yi), u)
    bottom = _lerp(hash2(xi, yi + 1), hash2(xi + 1, yi + 1), u)
    return _lerp(top, bottom, v)


def fbm(x: float, y: float, octaves: int = 4) -> float:
    """Fractal sum of value noise, roughly in [0, 1)."""
    total = 0.0
    amplitude = 0.5
    frequency = 1.0
    for _ in range(octaves):
        total += amplitude * value_noise(x * frequency, y * frequency)
        amplitude *= 0.5
        frequency *= 2.0
    return total
