"""
可變長度算子 (Variable-Length Operators)

給可變長度物種使用的兩個算子，都建立在 Genome.split / Genome.join 之上：

- ListCrossoverOperator：兩親代各自選擇切點並交換中段，子代長度可以改變
- GeneDuplicationOperator：複製基因組中的一段並接在尾端
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np

from .exceptions import ContractViolationError, InvalidParameterError, SpeciesMismatchError
from .genome import Genome
from .models import CrossoverType

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)


def _require_dynamic(species: "VectorSpecies", operator: str) -> None:
    if not species.is_dynamic:
        raise ContractViolationError(
            f"{operator} requires a dynamically sized species",
            "Declare genome-size as uniform or geometric",
        )


class ListCrossoverOperator:
    """清單交叉算子

    兩個親代各自選擇一段（以區塊對齊的）連續基因並互相交換，因此子代長度
    可與親代不同。最多嘗試 tries 次，直到兩個子代長度都大於 min_child_size；
    成功時才改寫親代。

    Attributes:
        species: 所屬物種
        crossover_type: ONE_POINT（交換尾段）或 TWO_POINT（交換任意中段）
        min_child_size: 子代長度必須大於此值
        tries: 最多嘗試次數
        min_crossover_percent: 交換段佔親代長度的最小比例
        max_crossover_percent: 交換段佔親代長度的最大比例
    """

    def __init__(
        self,
        species: "VectorSpecies",
        crossover_type: CrossoverType = CrossoverType.ONE_POINT,
        min_child_size: int = 0,
        tries: int = 1,
        min_crossover_percent: float = 0.0,
        max_crossover_percent: float = 1.0,
    ):
        """初始化清單交叉算子

        Raises:
            ContractViolationError: 物種為固定長度
            InvalidParameterError: 參數不合法
        """
        _require_dynamic(species, "List crossover")
        if crossover_type not in (CrossoverType.ONE_POINT, CrossoverType.TWO_POINT):
            raise InvalidParameterError("crossover_type", crossover_type.value, "one or two")
        if min_child_size < 0:
            raise InvalidParameterError("min_child_size", min_child_size, ">= 0")
        if tries < 1:
            raise InvalidParameterError("tries", tries, ">= 1")
        if not 0.0 <= min_crossover_percent <= 1.0:
            raise InvalidParameterError("min_crossover_percent", min_crossover_percent, "in [0.0, 1.0]")
        if not min_crossover_percent <= max_crossover_percent <= 1.0:
            raise InvalidParameterError(
                "max_crossover_percent", max_crossover_percent,
                f"in [{min_crossover_percent}, 1.0]",
            )

        self.species = species
        self.crossover_type = crossover_type
        self.min_child_size = min_child_size
        self.tries = tries
        self.min_crossover_percent = min_crossover_percent
        self.max_crossover_percent = max_crossover_percent

    def _chunk_limits(self, length: int) -> Tuple[int, int, int]:
        chunk = self.species.chunk_size
        chunks = length // chunk
        min_chunks = int(chunks * self.min_crossover_percent)
        max_chunks = int(chunks * self.max_crossover_percent)
        return chunks, min_chunks, max(min_chunks, max_chunks)

    def _cut_points(self, length: int, rng: np.random.Generator) -> Optional[Tuple[int, int]]:
        chunk = self.species.chunk_size
        chunks, min_chunks, max_chunks = self._chunk_limits(length)

        if self.crossover_type is CrossoverType.ONE_POINT:
            # 交換從 begin 到最後一個完整區塊的尾段
            span = int(rng.integers(min_chunks, max_chunks, endpoint=True))
            return (chunks - span) * chunk, chunks * chunk

        begin = int(rng.integers(0, chunks, endpoint=True))
        end = int(rng.integers(0, chunks, endpoint=True))
        if begin > end:
            begin, end = end, begin
        if min_chunks <= end - begin <= max_chunks:
            return begin * chunk, end * chunk
        return None

    def crossover(self, a: Genome, b: Genome, rng: np.random.Generator) -> bool:
        """就地交叉兩個可變長度基因組

        Returns:
            是否產生了有效的子代（失敗時親代保持不變）

        Raises:
            SpeciesMismatchError: 基因組不屬於此物種
        """
        if a.species is not self.species or b.species is not self.species:
            raise SpeciesMismatchError("list crossover")

        for _ in range(self.tries):
            cut_a = self._cut_points(len(a), rng)
            cut_b = self._cut_points(len(b), rng)
            if cut_a is None or cut_b is None:
                continue

            pieces_a = a.split(cut_a)
            pieces_b = b.split(cut_b)
            pieces_a[1], pieces_b[1] = pieces_b[1], pieces_a[1]
            child_a = a.join(pieces_a)
            child_b = b.join(pieces_b)
            if len(child_a) > self.min_child_size and len(child_b) > self.min_child_size:
                a.genes = child_a.genes
                b.genes = child_b.genes
                return True

        logger.debug(f"List crossover produced no valid children in {self.tries} tries")
        return False


class GeneDuplicationOperator:
    """基因複製算子

    隨機選擇非空區段 [begin, end)，複製後接到基因組尾端。

    Attributes:
        species: 所屬物種
    """

    def __init__(self, species: "VectorSpecies"):
        _require_dynamic(species, "Gene duplication")
        self.species = species

    def duplicate(self, genome: Genome, rng: np.random.Generator) -> Optional[Tuple[int, int]]:
        """就地複製一段基因到尾端

        Returns:
            被複製的區段 (begin, end)；空基因組時為 None
        """
        if genome.species is not self.species:
            raise SpeciesMismatchError("gene duplication")
        length = len(genome)
        if length == 0:
            return None

        begin = int(rng.integers(0, length, endpoint=True))
        end = int(rng.integers(0, length, endpoint=True))
        while end == begin:
            end = int(rng.integers(0, length, endpoint=True))
        if end < begin:
            begin, end = end, begin

        splice = genome.split([begin, end])[1]
        pieces: List[np.ndarray] = [genome.genes, splice]
        genome.genes = genome.join(pieces).genes
        return begin, end
