"""
交叉算子 (Crossover Operator)

就地交叉兩個屬於同一物種的基因組。點交叉（一點、兩點、any-point）以區塊
(chunk) 為單位交換基因；線性重組、中間重組與 SBX 則逐基因重新組合數值。
長度不同的基因組只在重疊區域內交叉。
"""

import logging
import math
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from .exceptions import ContractViolationError, ElementKindMismatchError, SpeciesMismatchError
from .genome import Genome
from .models import (
    INTERMEDIATE_MAX_TRIES,
    SIMULATED_BINARY_CROSSOVER_EPS,
    CrossoverType,
)
from .notifications import (
    INTERMEDIATE_GAVE_UP,
    LENGTH_MISMATCH,
    TOO_FEW_CHUNKS,
    warn_once,
)

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)

# 需要額外物種參數的交叉方式
_REQUIRED_PARAMETER = {
    CrossoverType.ANY_POINT: "crossover-prob",
    CrossoverType.LINE: "line-extension",
    CrossoverType.INTERMEDIATE: "line-extension",
    CrossoverType.SIMULATED_BINARY: "crossover-distribution-index",
}


def swap_range(a: Genome, b: Genome, start: int, end: int) -> None:
    """交換兩基因組 [start, end) 範圍內的基因"""
    if end <= start:
        return
    held = a.genes[start:end].copy()
    a.genes[start:end] = b.genes[start:end]
    b.genes[start:end] = held


class CrossoverOperator:
    """交叉算子

    Attributes:
        species: 所屬物種
    """

    def __init__(self, species: "VectorSpecies"):
        self.species = species

    def crossover(self, a: Genome, b: Genome, rng: np.random.Generator,
                  kind: Optional[CrossoverType] = None) -> None:
        """就地交叉兩個基因組

        Args:
            a: 第一個親代，會被修改
            b: 第二個親代，會被修改
            rng: 亂數產生器
            kind: 交叉方式，None 表示使用物種設定

        Raises:
            SpeciesMismatchError: 基因組不屬於此物種
            ElementKindMismatchError: 交叉方式不支援此元素類型
            ContractViolationError: 覆寫的交叉方式需要物種未設定的參數
        """
        if a.species is not self.species or b.species is not self.species:
            raise SpeciesMismatchError("crossover")
        kind = kind or self.species.crossover_type
        self._check_kind(kind)

        length = min(len(a), len(b))
        if len(a) != len(b):
            warn_once(
                logger, LENGTH_MISMATCH,
                f"Genome lengths differ ({len(a)} vs {len(b)}), crossover is only done in the overlapping region",
            )

        if kind.exchanges_chunks:
            self.exchange_chunks(a, b, length, rng, kind)
        elif kind is CrossoverType.LINE:
            self.line(a, b, length, rng)
        elif kind is CrossoverType.INTERMEDIATE:
            self.intermediate(a, b, length, rng)
        else:
            self.simulated_binary(a, b, length, rng)

    def _check_kind(self, kind: CrossoverType) -> None:
        element_kind = self.species.element_kind
        if kind in (CrossoverType.LINE, CrossoverType.INTERMEDIATE) and not element_kind.is_numeric:
            raise ElementKindMismatchError(f"{kind.value} crossover", element_kind.value)
        if kind is CrossoverType.SIMULATED_BINARY and not element_kind.is_floating:
            raise ElementKindMismatchError(f"{kind.value} crossover", element_kind.value)

        # 覆寫的交叉方式只能使用物種已驗證過的參數
        required = _REQUIRED_PARAMETER.get(kind)
        if required is not None and _REQUIRED_PARAMETER.get(self.species.crossover_type) != required:
            raise ContractViolationError(
                f"{kind.value} crossover needs '{required}', which the species was not set up with",
                f"Declare crossover-type '{kind.value}' with '{required}' in the species",
            )

    def _enough_chunks(self, chunks: int, needed: int, kind: str) -> bool:
        if chunks >= needed:
            return True
        warn_once(
            logger, TOO_FEW_CHUNKS,
            f"{kind} crossover needs at least {needed} chunk(s) but the overlap has {chunks}, skipping crossover",
        )
        return False

    # ------------------------------------------------------------------
    # 點交叉
    # ------------------------------------------------------------------

    def exchange_chunks(self, a: Genome, b: Genome, length: int, rng: np.random.Generator,
                        kind: CrossoverType) -> None:
        """依 kind 選擇以區塊為單位的點交叉"""
        if kind is CrossoverType.ANY_POINT:
            self.any_point(a, b, length, rng)
        elif kind in (CrossoverType.ONE_POINT, CrossoverType.ONE_POINT_NO_NOP):
            self.one_point(a, b, length, rng, nonempty=kind is CrossoverType.ONE_POINT_NO_NOP)
        else:
            self.two_point(a, b, length, rng, nonempty=kind is CrossoverType.TWO_POINT_NO_NOP)

    def one_point(self, a: Genome, b: Genome, length: int, rng: np.random.Generator,
                  nonempty: bool = False) -> None:
        """一點交叉：交換區塊 [0, point)

        point 取自 [0, n)，只有 point == 0 一種空操作；nonempty 時取自 [1, n)。
        """
        chunk = self.species.chunk_size
        chunks = length // chunk
        if not self._enough_chunks(chunks, 2 if nonempty else 1, "One-point"):
            return
        point = int(rng.integers(1 if nonempty else 0, chunks))
        swap_range(a, b, 0, point * chunk)

    def two_point(self, a: Genome, b: Genome, length: int, rng: np.random.Generator,
                  nonempty: bool = False) -> None:
        """兩點交叉：交換兩個區塊索引之間的半開區間

        nonempty 時重抽直到兩點不同。
        """
        chunk = self.species.chunk_size
        chunks = length // chunk
        if not self._enough_chunks(chunks, 2 if nonempty else 1, "Two-point"):
            return
        point = int(rng.integers(0, chunks))
        point0 = int(rng.integers(0, chunks))
        while nonempty and point0 == point:
            point0 = int(rng.integers(0, chunks))
        if point0 > point:
            point0, point = point, point0
        swap_range(a, b, point0 * chunk, point * chunk)

    def any_point(self, a: Genome, b: Genome, length: int, rng: np.random.Generator) -> None:
        """any-point 交叉：每個區塊以 crossover_probability 的機率獨立交換"""
        chunk = self.species.chunk_size
        probability = self.species.crossover_probability
        for index in range(length // chunk):
            if rng.random() < probability:
                swap_range(a, b, index * chunk, (index + 1) * chunk)

    # ------------------------------------------------------------------
    # 數值重組
    # ------------------------------------------------------------------

    def _draw_scale(self, rng: np.random.Generator) -> float:
        extension = self.species.line_extension
        return rng.random() * (1.0 + 2.0 * extension) - extension

    def _recombine(self, x: float, y: float, alpha: float, beta: float) -> Tuple[float, float]:
        t = alpha * x + (1.0 - alpha) * y
        u = beta * y + (1.0 - beta) * x
        if self.species.element_kind.is_integer:
            t = math.floor(t + 0.5)
            u = math.floor(u + 0.5)
        return t, u

    def line(self, a: Genome, b: Genome, length: int, rng: np.random.Generator) -> None:
        """線性重組

        整個基因組共用一組 alpha、beta；只有兩個子代值都在邊界內的基因才會被改寫。
        """
        species = self.species
        alpha = self._draw_scale(rng)
        beta = self._draw_scale(rng)
        for index in range(length):
            t, u = self._recombine(a.value(index), b.value(index), alpha, beta)
            if species.in_bounds(index, t) and species.in_bounds(index, u):
                a.assign(index, t)
                b.assign(index, u)

    def intermediate(self, a: Genome, b: Genome, length: int, rng: np.random.Generator) -> None:
        """中間重組

        每個基因各自抽取 alpha、beta，重抽直到兩個子代值都在邊界內。
        超過 INTERMEDIATE_MAX_TRIES 次仍失敗時保留原值並記錄警告。
        """
        species = self.species
        for index in range(length):
            x = a.value(index)
            y = b.value(index)
            for _ in range(INTERMEDIATE_MAX_TRIES):
                t, u = self._recombine(x, y, self._draw_scale(rng), self._draw_scale(rng))
                if species.in_bounds(index, t) and species.in_bounds(index, u):
                    a.assign(index, t)
                    b.assign(index, u)
                    break
            else:
                warn_once(
                    logger, INTERMEDIATE_GAVE_UP,
                    f"Intermediate recombination found no in-bounds values for gene {index} "
                    f"after {INTERMEDIATE_MAX_TRIES} tries, leaving it unchanged",
                )

    def simulated_binary(self, a: Genome, b: Genome, length: int, rng: np.random.Generator) -> None:
        """模擬二進位交叉 (SBX, NSGA-II)

        每個基因以 0.5 的機率重組；兩親代值差距不超過 SIMULATED_BINARY_CROSSOVER_EPS
        時保持不變。子代值會被截在邊界內，並以 0.5 的機率互換。
        """
        species = self.species
        eta = float(species.crossover_distribution_index)
        for index in range(length):
            if not rng.random() < 0.5:
                continue
            p1 = a.value(index)
            p2 = b.value(index)
            if not abs(p1 - p2) > SIMULATED_BINARY_CROSSOVER_EPS:
                continue

            y1, y2 = (p1, p2) if p1 < p2 else (p2, p1)
            yl = species.min_gene(index)
            yu = species.max_gene(index)
            rand = rng.random()

            betaq = _spread_factor(1.0 + 2.0 * (y1 - yl) / (y2 - y1), rand, eta)
            c1 = 0.5 * ((y1 + y2) - betaq * (y2 - y1))
            betaq = _spread_factor(1.0 + 2.0 * (yu - y2) / (y2 - y1), rand, eta)
            c2 = 0.5 * ((y1 + y2) + betaq * (y2 - y1))

            c1 = min(max(c1, yl), yu)
            c2 = min(max(c2, yl), yu)

            if rng.random() < 0.5:
                a.assign(index, c2)
                b.assign(index, c1)
            else:
                a.assign(index, c1)
                b.assign(index, c2)


def _spread_factor(beta: float, rand: float, eta: float) -> float:
    """SBX 的分佈擴展係數 betaq"""
    # 親代超出邊界時 beta < 1
    beta = max(beta, 1.0)
    alpha = 2.0 - beta ** -(eta + 1.0)
    if rand <= 1.0 / alpha:
        return (rand * alpha) ** (1.0 / (eta + 1.0))
    return (1.0 / (2.0 - rand * alpha)) ** (1.0 / (eta + 1.0))
