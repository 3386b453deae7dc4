"""Seeded uniform source, Box-Muller sampler and the cached normal draw panel."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence, Union

import numpy as np
import polars as pl

from .coefficients import COEFFICIENT_COUNT, COEFFICIENT_ORDER, Coefficient
from .exceptions import err

logger = logging.getLogger(__name__)

_MASK32 = (1 << 32) - 1
_MULBERRY_WEYL = 0x6D2B79F5
_UINT32_SCALE = 1.0 / 4294967296.0
_TAU = 2.0 * math.pi

DEFAULT_SEED = 123456789
DEFAULT_DRAWS = 1000


class Mulberry32:
    """mulberry32 generator over a single 32-bit state word.

    Every operation is masked back to 32 bits so the stream matches the
    reference generator bit for bit.
    """

    def __init__(self, seed: int) -> None:
        if not (0 <= seed <= _MASK32):
            raise err("E_SEED_RANGE", f"seed {seed} outside [0, 2^32)")
        self.seed = seed
        self._state = seed
        self._draws_consumed = 0

    @property
    def draws(self) -> int:
        return self._draws_consumed

    @property
    def state(self) -> int:
        return self._state

    def next_uint32(self) -> int:
        self._state = (self._state + _MULBERRY_WEYL) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        self._draws_consumed += 1
        return (t ^ (t >> 14)) & _MASK32

    def next(self) -> float:
        """Next uniform in [0, 1)."""
        return self.next_uint32() * _UINT32_SCALE

    def uniform_nonzero(self) -> float:
        u = self.next()
        while u == 0.0:
            u = self.next()
        return u


class NormalSampler:
    """Cosine-branch Box-Muller over a :class:`Mulberry32` stream.

    The sine branch is discarded, so each variate consumes exactly two
    uniforms (more only when a uniform lands on exactly zero).
    """

    def __init__(self, source: Mulberry32) -> None:
        self.source = source

    def sample(self) -> float:
        u = self.source.uniform_nonzero()
        v = self.source.uniform_nonzero()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(_TAU * v)


@dataclass(frozen=True, eq=False)
class DrawPanel:
    """Read-only ``(N, 8)`` panel of standard-normal draws.

    Column ``j`` holds the draws for ``Coefficient(j)``.
    """

    draws: np.ndarray

    def __post_init__(self) -> None:
        array = np.array(self.draws, dtype=np.float64)
        if array.ndim != 2 or array.shape[1] != COEFFICIENT_COUNT:
            raise err(
                "E_PANEL_SHAPE",
                f"draw panel must have shape (N, {COEFFICIENT_COUNT}), got {array.shape}",
            )
        if array.shape[0] == 0:
            raise err("E_PANEL_EMPTY", "draw panel contains no records")
        array.setflags(write=False)
        object.__setattr__(self, "draws", array)

    @property
    def size(self) -> int:
        return int(self.draws.shape[0])

    def __len__(self) -> int:
        return self.size

    def column(self, name: Coefficient) -> np.ndarray:
        return self.draws[:, int(name)]

    def head(self, count: int) -> "DrawPanel":
        return DrawPanel(self.draws[:count])

    def records(self) -> list[dict[str, float]]:
        return [
            {name.key: float(row[int(name)]) for name in COEFFICIENT_ORDER}
            for row in self.draws
        ]

    def to_frame(self) -> pl.DataFrame:
        data = {name.key: self.column(name) for name in COEFFICIENT_ORDER}
        return pl.DataFrame(data).with_row_index("draw")

    @staticmethod
    def from_records(records: Sequence[Mapping[str, float]]) -> "DrawPanel":
        if len(records) == 0:
            raise err("E_PANEL_EMPTY", "draw panel contains no records")
        array = np.empty((len(records), COEFFICIENT_COUNT), dtype=np.float64)
        for idx, record in enumerate(records):
            for name in COEFFICIENT_ORDER:
                if name.key not in record:
                    raise err(
                        "E_PANEL_COEFFICIENT",
                        f"draw record {idx} missing coefficient '{name.key}'",
                    )
                array[idx, int(name)] = float(record[name.key])
        return DrawPanel(array)


def _resolve_name(name: Union[Coefficient, str]) -> Coefficient:
    if isinstance(name, Coefficient):
        return name
    if isinstance(name, str):
        return Coefficient.from_key(name)
    raise err("E_PANEL_COEFFICIENT", f"panel name must be a Coefficient or its key, got {name!r}")


def build_panel(
    sampler: NormalSampler,
    draw_count: int = DEFAULT_DRAWS,
    names: Iterable[Union[Coefficient, str]] = COEFFICIENT_ORDER,
) -> DrawPanel:
    """Draw ``draw_count`` records, one normal per name in ``names`` order.

    ``names`` must cover every coefficient; only the consumption order may
    differ from :data:`COEFFICIENT_ORDER`.
    """
    if draw_count < 1:
        raise err("E_DRAW_COUNT", f"draw count must be >= 1, got {draw_count}")
    order = tuple(_resolve_name(name) for name in names)
    if sorted(order) != list(COEFFICIENT_ORDER):
        missing = sorted(set(COEFFICIENT_ORDER) - set(order))
        raise err(
            "E_PANEL_COEFFICIENT",
            f"panel names must cover each coefficient once; missing {[n.key for n in missing]}",
        )
    array = np.empty((draw_count, COEFFICIENT_COUNT), dtype=np.float64)
    for row in range(draw_count):
        for name in order:
            array[row, int(name)] = sampler.sample()
    logger.debug(
        "built draw panel: draws=%d uniforms_consumed=%d", draw_count, sampler.source.draws
    )
    return DrawPanel(array)


def panel_from_seed(seed: int = DEFAULT_SEED, draw_count: int = DEFAULT_DRAWS) -> DrawPanel:
    """Fresh source + sampler + panel for ``seed``."""
    logger.info("building normal draw panel: seed=%d draws=%d", seed, draw_count)
    return build_panel(NormalSampler(Mulberry32(seed)), draw_count)


__all__ = [
    "DEFAULT_DRAWS",
    "DEFAULT_SEED",
    "DrawPanel",
    "Mulberry32",
    "NormalSampler",
    "build_panel",
    "panel_from_seed",
]
