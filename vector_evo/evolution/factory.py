"""
基因組工廠 (Genome Factory)

依物種設定決定初始長度（固定、均勻或幾何分佈），並以邊界內的均勻隨機值
填滿每個基因。建立時不套用任何重試預算，必定成功。
"""

import logging
import math
from typing import TYPE_CHECKING, Optional

import numpy as np

from .exceptions import SpeciesMismatchError
from .genome import Genome
from .models import ElementKind, GenomeSizing

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)

_INT64_MIN = int(np.iinfo(np.int64).min)
_INT64_MAX = int(np.iinfo(np.int64).max)


def uniform_real(rng: np.random.Generator, low: float, high: float) -> float:
    """在 [low, high] 內均勻抽取實數

    以凸組合計算，避免 high - low 溢位成無限大。
    """
    if low == high:
        return low
    r = rng.random()
    value = low * (1.0 - r) + high * r
    return min(max(value, low), high)


def uniform_integer(rng: np.random.Generator, low: float, high: float) -> int:
    """在 [low, high] 內均勻抽取整數

    區間計算使用 64 位元整數，因此 int32 全範圍不會溢位。
    """
    lo = max(int(math.floor(low)), _INT64_MIN)
    hi = min(int(math.floor(high)), _INT64_MAX)
    return int(rng.integers(lo, hi, endpoint=True, dtype=np.int64))


class GenomeFactory:
    """基因組工廠

    Attributes:
        species: 所屬物種
    """

    def __init__(self, species: "VectorSpecies"):
        self.species = species

    def initial_length(self, rng: np.random.Generator) -> int:
        """抽取新基因組的長度"""
        species = self.species
        if species.sizing is GenomeSizing.UNIFORM:
            return int(rng.integers(species.min_initial_size, species.max_initial_size, endpoint=True))
        if species.sizing is GenomeSizing.GEOMETRIC:
            length = species.min_initial_size
            while rng.random() < species.growth_probability:
                length += 1
            return length
        return species.genome_size

    def random_value(self, index: int, rng: np.random.Generator):
        """為第 index 個基因抽取一個邊界內的均勻隨機值"""
        species = self.species
        if species.element_kind is ElementKind.GENE:
            gene = species.gene_prototype.clone()
            gene.reset(rng)
            return gene
        low = species.min_gene(index)
        high = species.max_gene(index)
        if species.element_kind.is_integer or species.mutation_type(index).is_integer_type:
            return uniform_integer(rng, low, high)
        return uniform_real(rng, low, high)

    def create(self, rng: np.random.Generator) -> Genome:
        """建立一個新的隨機基因組"""
        genome = Genome(self.species)
        self.reset(genome, rng, self.initial_length(rng))
        return genome

    def reset(self, genome: Genome, rng: np.random.Generator, length: Optional[int] = None) -> None:
        """以均勻隨機值重新填滿基因組

        Args:
            genome: 要重設的基因組
            rng: 亂數產生器
            length: 新長度（僅限可變長度物種），None 表示保留原長度
        """
        if genome.species is not self.species:
            raise SpeciesMismatchError("reset")
        if length is not None:
            genome.set_length(length)
        for index in range(len(genome)):
            genome.assign(index, self.random_value(index, rng))
