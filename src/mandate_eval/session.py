"""Per-session ownership of the random source, draw panel and estimate cache."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

from .coefficients import CoefficientTable, load_coefficient_table
from .config import SimulationConfig
from .design import MandateConfiguration
from .estimator import ChoiceStructure, SupportEstimate, summarise_support
from .rng import DEFAULT_DRAWS, DEFAULT_SEED, DrawPanel, Mulberry32, NormalSampler, build_panel

logger = logging.getLogger(__name__)

_CacheKey = Tuple[Tuple[str, str, str, str, float, float], str]


class SupportSession:
    """One seeded source, the panel drawn from it, and cached estimates.

    The panel is built on first use and never rebuilt; two sessions with the
    same seed and draw count produce identical estimates.
    """

    def __init__(
        self,
        *,
        seed: int = DEFAULT_SEED,
        draws: int = DEFAULT_DRAWS,
        table: Optional[CoefficientTable] = None,
        cache: bool = True,
    ) -> None:
        self.seed = seed
        self.draws = draws
        self.table = table or load_coefficient_table()
        self._source = Mulberry32(seed)
        self._panel: Optional[DrawPanel] = None
        self._lock = threading.Lock()
        self._cache: Optional[Dict[_CacheKey, SupportEstimate]] = {} if cache else None

    @classmethod
    def from_config(cls, config: SimulationConfig, *, cache: bool = True) -> "SupportSession":
        table = load_coefficient_table(config.coefficients) if config.coefficients else None
        return cls(seed=config.rng.seed, draws=config.draws, table=table, cache=cache)

    @property
    def panel(self) -> DrawPanel:
        if self._panel is None:
            with self._lock:
                if self._panel is None:
                    logger.info(
                        "building normal draw panel: seed=%d draws=%d", self.seed, self.draws
                    )
                    self._panel = build_panel(NormalSampler(self._source), self.draws)
        return self._panel

    def estimate(
        self,
        config: MandateConfiguration,
        *,
        choice_structure: ChoiceStructure = ChoiceStructure.BINARY,
    ) -> SupportEstimate:
        structure = ChoiceStructure(choice_structure)
        key = (config.cache_key(), structure.value)
        if self._cache is not None and key in self._cache:
            return self._cache[key]
        estimate = summarise_support(config, self.table, self.panel, choice_structure=structure)
        if self._cache is not None:
            self._cache[key] = estimate
        return estimate

    def support(self, config: MandateConfiguration) -> float:
        return self.estimate(config).probability

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()


__all__ = ["SupportSession"]
