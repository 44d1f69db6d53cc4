"""
基因組 (Genome)

基因組擁有一個型別固定的 numpy 陣列，並參照（但不擁有）其物種。
複製基因組時會深度複製基因陣列，兄弟個體之間不會共用緩衝區。
"""

import logging
import math
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from .exceptions import ContractViolationError, ElementKindMismatchError
from .models import ElementKind, Gene

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)


def object_array(items: Iterable[Any]) -> np.ndarray:
    """建立元素為 Gene 物件的一維陣列"""
    items = list(items)
    array = np.empty(len(items), dtype=object)
    for index, item in enumerate(items):
        array[index] = item
    return array


def narrow_float32(value: float, low: float, high: float) -> np.float32:
    """將 float64 值轉為 float32，並保持原本落在 [low, high] 內的值仍在範圍內"""
    narrowed = np.float32(value)
    if low <= value <= high:
        # 以 float64 比較，避免邊界被降為 float32
        if float(narrowed) > high:
            narrowed = np.nextafter(narrowed, np.float32(-np.inf))
        elif float(narrowed) < low:
            narrowed = np.nextafter(narrowed, np.float32(np.inf))
    return narrowed


class Genome:
    """向量基因組

    Attributes:
        species: 所屬物種
        genes: 基因陣列，dtype 由物種的元素類型決定
    """

    def __init__(self, species: "VectorSpecies", genes: Optional[Sequence[Any]] = None):
        self.species = species
        kind = species.element_kind
        if genes is None:
            length = 0 if species.is_dynamic else species.genome_size
            self.genes = self._blank(length)
        elif kind is ElementKind.GENE:
            self.genes = object_array(genes)
            for gene in self.genes:
                if not isinstance(gene, Gene):
                    raise ElementKindMismatchError(f"Genome({type(gene).__name__})", kind.value)
        else:
            self.genes = np.array(genes, dtype=kind.dtype, copy=True).reshape(-1)

        if not species.is_dynamic and len(self.genes) != species.genome_size:
            raise ContractViolationError(
                f"Fixed-length genome must have {species.genome_size} genes, got {len(self.genes)}",
                "Use set_length() only with dynamically sized species",
            )

    def _blank(self, length: int) -> np.ndarray:
        if self.species.element_kind is ElementKind.GENE:
            prototype = self.species.gene_prototype
            return object_array(prototype.clone() for _ in range(length))
        return np.zeros(length, dtype=self.species.element_kind.dtype)

    @property
    def element_kind(self) -> ElementKind:
        return self.species.element_kind

    def __len__(self) -> int:
        return len(self.genes)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_list())

    def __getitem__(self, index: int) -> Any:
        return self.value(index)

    def value(self, index: int) -> Any:
        """取得 Python 原生型別的基因值"""
        gene = self.genes[index]
        if self.element_kind is ElementKind.GENE:
            return gene
        if self.element_kind.is_integer:
            return int(gene)
        return float(gene)

    def assign(self, index: int, value: Any) -> None:
        """寫入一個基因值，並依元素類型轉換"""
        kind = self.element_kind
        if kind is ElementKind.FLOAT:
            self.genes[index] = narrow_float32(
                float(value), self.species.min_gene(index), self.species.max_gene(index))
        elif kind.is_integer:
            self.genes[index] = int(value)
        else:
            self.genes[index] = value

    def to_list(self) -> List[Any]:
        return [self.value(index) for index in range(len(self.genes))]

    def copy(self) -> "Genome":
        """深度複製基因組（共用物種）"""
        clone = Genome.__new__(Genome)
        clone.species = self.species
        if self.element_kind is ElementKind.GENE:
            clone.genes = object_array(gene.clone() for gene in self.genes)
        else:
            clone.genes = self.genes.copy()
        return clone

    def set_length(self, length: int) -> None:
        """調整基因組長度

        增長時以零值（GENE 類型則為原型基因的複本）補齊，縮短時截斷。

        Raises:
            ContractViolationError: 固定長度物種或長度為負
        """
        if length < 0:
            raise ContractViolationError(f"Genome length must be >= 0, got {length}")
        if length == len(self.genes):
            return
        if not self.species.is_dynamic:
            raise ContractViolationError(
                f"Cannot resize a fixed-length genome of {self.species.genome_size} genes to {length}")
        if length < len(self.genes):
            self.genes = self.genes[:length].copy()
        else:
            extension = self._blank(length - len(self.genes))
            self.genes = np.concatenate([self.genes, extension])

    def split(self, points: Sequence[int]) -> List[np.ndarray]:
        """依排序好的切點將基因組切成 len(points) + 1 段

        Args:
            points: 遞增排列、落在 [0, len] 內的切點

        Returns:
            各段基因的陣列複本
        """
        length = len(self.genes)
        previous = 0
        for point in points:
            if point < previous or point > length:
                raise ContractViolationError(
                    f"Split points must be sorted and within [0, {length}], got {list(points)}")
            previous = point

        bounds = [0] + list(points) + [length]
        pieces = []
        for start, end in zip(bounds[:-1], bounds[1:]):
            if self.element_kind is ElementKind.GENE:
                pieces.append(object_array(gene.clone() for gene in self.genes[start:end]))
            else:
                pieces.append(self.genes[start:end].copy())
        return pieces

    def join(self, pieces: Sequence[Sequence[Any]]) -> "Genome":
        """串接多段基因，回傳屬於同一物種的新基因組"""
        if self.element_kind is ElementKind.GENE:
            joined = object_array(gene for piece in pieces for gene in piece)
        elif pieces:
            joined = np.concatenate([np.asarray(piece, dtype=self.element_kind.dtype) for piece in pieces])
        else:
            joined = np.zeros(0, dtype=self.element_kind.dtype)
        return Genome(self.species, joined)

    def clamp(self) -> None:
        """將所有基因限制在物種邊界內"""
        if self.element_kind is ElementKind.GENE:
            return
        for index in range(len(self.genes)):
            low = self.species.min_gene(index)
            high = self.species.max_gene(index)
            value = self.value(index)
            if value < low:
                self.assign(index, low)
            elif value > high:
                self.assign(index, high)

    def is_in_range(self) -> bool:
        """所有基因是否都落在物種邊界內"""
        if self.element_kind is ElementKind.GENE:
            return True
        return all(
            self.species.in_bounds(index, self.value(index))
            for index in range(len(self.genes))
        )

    def distance_to(self, other: "Genome") -> float:
        """與另一基因組的距離

        數值基因組使用歐氏距離（長度不同時多出的基因視為 0），
        GENE 類型則計算不相等的基因數目。
        """
        if other.element_kind is not self.element_kind:
            raise ElementKindMismatchError("distance_to", other.element_kind.value)
        if self.element_kind is ElementKind.GENE:
            overlap = min(len(self), len(other))
            differing = sum(1 for index in range(overlap) if self.genes[index] != other.genes[index])
            return float(differing + abs(len(self) - len(other)))
        longest = max(len(self), len(other))
        mine = np.zeros(longest)
        theirs = np.zeros(longest)
        mine[:len(self)] = self.genes
        theirs[:len(other)] = other.genes
        return math.sqrt(float(np.sum((mine - theirs) ** 2)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        if self.element_kind is not other.element_kind or len(self) != len(other):
            return False
        if self.element_kind is ElementKind.GENE:
            return all(mine == theirs for mine, theirs in zip(self.genes, other.genes))
        return bool(np.array_equal(self.genes, other.genes))

    __hash__ = None

    def format_value(self, index: int) -> str:
        gene = self.genes[index]
        if self.element_kind is ElementKind.GENE:
            return gene.to_human_string()
        if self.element_kind is ElementKind.FLOAT:
            return str(gene)
        return repr(self.value(index))

    def to_human_string(self) -> str:
        """以空白分隔的可讀字串"""
        return " ".join(self.format_value(index) for index in range(len(self.genes)))

    def __repr__(self) -> str:
        return f"Genome({self.element_kind.value}, [{self.to_human_string()}])"
