"""
突變算子 (Mutation Operator)

依物種的逐基因設定就地突變基因組：重設、高斯、多項式、整數重設與整數
隨機漫步。超出邊界的候選值依重試預算重抽，預算用盡時改為均勻抽取並記錄
一次性警告。
"""

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from .exceptions import SpeciesMismatchError
from .factory import uniform_integer, uniform_real
from .genome import Genome
from .models import MAXIMUM_INTEGER_IN_DOUBLE, ElementKind, MutationType
from .notifications import RETRY_LIMIT_REACHED, warn_once

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)


class MutationOperator:
    """突變算子

    Attributes:
        species: 所屬物種
    """

    def __init__(self, species: "VectorSpecies"):
        self.species = species

    def mutate(self, genome: Genome, rng: np.random.Generator) -> None:
        """就地突變基因組

        每個基因以 mutation_probability 的機率進行突變。

        Raises:
            SpeciesMismatchError: 基因組不屬於此物種
        """
        if genome.species is not self.species:
            raise SpeciesMismatchError("mutate")
        for index in range(len(genome)):
            if rng.random() < self.species.mutation_probability(index):
                self.mutate_gene(genome, index, rng)

    def mutate_gene(self, genome: Genome, index: int, rng: np.random.Generator) -> int:
        """突變單一基因

        候選值與原值相同時最多再重試 duplicate_retries 次。

        Returns:
            實際抽取的候選值數目（最多 duplicate_retries + 1）
        """
        attempts = self.species.duplicate_retry_count(index) + 1

        if genome.element_kind is ElementKind.GENE:
            original = genome.genes[index]
            for draw in range(1, attempts + 1):
                candidate = original.clone()
                candidate.mutate(rng)
                if candidate != original:
                    genome.genes[index] = candidate
                    return draw
            return attempts

        original = genome.genes[index]
        for draw in range(1, attempts + 1):
            genome.assign(index, self._candidate(genome.value(index), index, genome.element_kind, rng))
            if genome.genes[index] != original:
                return draw
        return attempts

    def _candidate(self, value, index: int, kind: ElementKind, rng: np.random.Generator):
        mutation_type = self.species.mutation_type(index)
        if mutation_type is MutationType.GAUSS:
            return self.gaussian(value, index, rng)
        if mutation_type is MutationType.POLYNOMIAL:
            return self.polynomial(value, index, rng)
        if mutation_type is MutationType.INTEGER_RANDOM_WALK:
            return self.random_walk(value, index, kind, rng)
        if mutation_type is MutationType.INTEGER_RESET or kind.is_integer:
            return uniform_integer(rng, self.species.min_gene(index), self.species.max_gene(index))
        return uniform_real(rng, self.species.min_gene(index), self.species.max_gene(index))

    def _give_up(self, index: int, rng: np.random.Generator) -> float:
        warn_once(
            logger, RETRY_LIMIT_REACHED,
            f"Out-of-bounds retry limit reached while mutating gene {index}, "
            f"falling back to a uniform draw",
        )
        return uniform_real(rng, self.species.min_gene(index), self.species.max_gene(index))

    def gaussian(self, value: float, index: int, rng: np.random.Generator) -> float:
        """高斯突變：加上 N(0, stdev) 的擾動，超出邊界時重抽"""
        species = self.species
        low = species.min_gene(index)
        high = species.max_gene(index)
        stdev = species.mutation_stdev(index)
        bounded = species.mutation_is_bounded(index)
        budget = species.retry_budget(index)

        attempts = 0
        while True:
            candidate = value + rng.standard_normal() * stdev
            attempts += 1
            if not bounded or low <= candidate <= high:
                return candidate
            if budget.exhausted(attempts):
                return self._give_up(index, rng)

    def polynomial(self, value: float, index: int, rng: np.random.Generator) -> float:
        """多項式突變 (NSGA-II)

        正規化距離限制在 [0, 1]；上下界相同的基因保持不變。
        """
        species = self.species
        yl = species.min_gene(index)
        yu = species.max_gene(index)
        if yu == yl:
            return value
        eta = float(species.mutation_distribution_index(index))
        alternative = species.polynomial_is_alternative(index)
        bounded = species.mutation_is_bounded(index)
        budget = species.retry_budget(index)

        y = value
        span = yu - yl
        delta1 = min(max((y - yl) / span, 0.0), 1.0)
        delta2 = min(max((yu - y) / span, 0.0), 1.0)
        mut_pow = 1.0 / (eta + 1.0)

        attempts = 0
        while True:
            rnd = rng.random()
            if rnd <= 0.5:
                xy = 1.0 - delta1
                val = 2.0 * rnd + ((1.0 - 2.0 * rnd) * xy ** (eta + 1.0) if alternative else 0.0)
                deltaq = val ** mut_pow - 1.0
            else:
                xy = 1.0 - delta2
                val = 2.0 * (1.0 - rnd) + (2.0 * (rnd - 0.5) * xy ** (eta + 1.0) if alternative else 0.0)
                deltaq = 1.0 - val ** mut_pow
            candidate = y + deltaq * span
            attempts += 1
            if not bounded or yl <= candidate <= yu:
                return candidate
            if budget.exhausted(attempts):
                return self._give_up(index, rng)

    def random_walk(self, value, index: int, kind: ElementKind, rng: np.random.Generator):
        """整數隨機漫步：每步 ±1，以 random_walk_probability 的機率繼續

        受限時不離開 [min_gene, max_gene]，否則不離開元素類型的可表示範圍。
        """
        species = self.species
        if species.mutation_is_bounded(index):
            low = species.min_gene(index)
            high = species.max_gene(index)
        elif kind.is_integer:
            low, high = kind.native_range()
        else:
            low, high = -MAXIMUM_INTEGER_IN_DOUBLE, MAXIMUM_INTEGER_IN_DOUBLE
        probability = species.random_walk_probability(index)

        current = value
        while True:
            step = 1 if rng.random() < 0.5 else -1
            base = math.floor(current)
            # 往 step 方向走不了時改走反方向
            if (step == 1 and base < high) or (step == -1 and base > low):
                current = base + step
            elif (step == -1 and base < high) or (step == 1 and base > low):
                current = base - step
            if not rng.random() < probability:
                break
        return current if kind.is_integer else float(current)
