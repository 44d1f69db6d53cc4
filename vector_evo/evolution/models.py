"""
基因資料模型 (Gene Data Models)

定義向量基因組共用的列舉、常數與不透明基因 (Gene) 基底類別。
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np


class ElementKind(Enum):
    """基因元素類型

    Attributes:
        DOUBLE: 64 位元浮點數
        FLOAT: 32 位元浮點數
        INTEGER: 32 位元整數
        SHORT: 16 位元整數
        GENE: 不透明基因物件
    """
    DOUBLE = "double"
    FLOAT = "float"
    INTEGER = "integer"
    SHORT = "short"
    GENE = "gene"

    @property
    def dtype(self) -> np.dtype:
        """對應的 numpy dtype"""
        return np.dtype(_KIND_DTYPES[self])

    @property
    def is_floating(self) -> bool:
        return self in (ElementKind.DOUBLE, ElementKind.FLOAT)

    @property
    def is_integer(self) -> bool:
        return self in (ElementKind.INTEGER, ElementKind.SHORT)

    @property
    def is_numeric(self) -> bool:
        return self is not ElementKind.GENE

    @property
    def tag(self) -> bytes:
        """二進位格式中的類型標籤（單一位元組）"""
        return _KIND_TAGS[self]

    @classmethod
    def from_tag(cls, tag: bytes) -> "ElementKind":
        for kind, value in _KIND_TAGS.items():
            if value == tag:
                return kind
        raise ValueError(f"Unknown element kind tag: {tag!r}")

    def native_range(self) -> Tuple[float, float]:
        """元素類型可表示的數值範圍

        Returns:
            (最小值, 最大值)；浮點數為有限值範圍
        """
        if self.is_integer:
            info = np.iinfo(self.dtype)
            return int(info.min), int(info.max)
        if self is ElementKind.FLOAT:
            limit = float(np.finfo(np.float32).max)
            return -limit, limit
        if self is ElementKind.DOUBLE:
            limit = float(np.finfo(np.float64).max)
            return -limit, limit
        raise ValueError("Opaque genes have no numeric range")

    def in_native_range(self, value: float) -> bool:
        low, high = self.native_range()
        return low <= value <= high


_KIND_DTYPES: Dict[ElementKind, object] = {
    ElementKind.DOUBLE: np.float64,
    ElementKind.FLOAT: np.float32,
    ElementKind.INTEGER: np.int32,
    ElementKind.SHORT: np.int16,
    ElementKind.GENE: object,
}

_KIND_TAGS: Dict[ElementKind, bytes] = {
    ElementKind.DOUBLE: b"d",
    ElementKind.FLOAT: b"f",
    ElementKind.INTEGER: b"i",
    ElementKind.SHORT: b"s",
    ElementKind.GENE: b"g",
}


class CrossoverType(Enum):
    """交叉演算法

    值為參數檔中使用的名稱。
    """
    ONE_POINT = "one"
    ONE_POINT_NO_NOP = "one-nonempty"
    TWO_POINT = "two"
    TWO_POINT_NO_NOP = "two-nonempty"
    ANY_POINT = "any"
    LINE = "line"
    INTERMEDIATE = "intermediate"
    SIMULATED_BINARY = "sbx"

    @property
    def exchanges_chunks(self) -> bool:
        """是否以區塊 (chunk) 為單位交換基因"""
        return self in _CHUNK_CROSSOVERS

    @classmethod
    def parse(cls, name: str) -> Optional["CrossoverType"]:
        lowered = name.strip().lower()
        for member in cls:
            if member.value == lowered:
                return member
        return None


_CHUNK_CROSSOVERS = frozenset({
    CrossoverType.ONE_POINT,
    CrossoverType.ONE_POINT_NO_NOP,
    CrossoverType.TWO_POINT,
    CrossoverType.TWO_POINT_NO_NOP,
    CrossoverType.ANY_POINT,
})


class MutationType(Enum):
    """突變演算法"""
    RESET = "reset"
    GAUSS = "gauss"
    POLYNOMIAL = "polynomial"
    INTEGER_RESET = "integer-reset"
    INTEGER_RANDOM_WALK = "integer-random-walk"

    @property
    def is_integer_type(self) -> bool:
        """突變後的值是否永遠為整數"""
        return self in (MutationType.INTEGER_RESET, MutationType.INTEGER_RANDOM_WALK)

    @property
    def may_be_bounded(self) -> bool:
        """是否受 mutation-bounded 參數影響"""
        return self in (
            MutationType.GAUSS,
            MutationType.POLYNOMIAL,
            MutationType.INTEGER_RANDOM_WALK,
        )

    @classmethod
    def parse(cls, name: str) -> Optional["MutationType"]:
        lowered = name.strip().lower()
        if lowered == "random-walk":
            return cls.INTEGER_RANDOM_WALK
        for member in cls:
            if member.value == lowered:
                return member
        return None


class GenomeSizing(Enum):
    """初始基因組長度的決定方式"""
    FIXED = "fixed"
    UNIFORM = "uniform"
    GEOMETRIC = "geometric"


@dataclass(frozen=True)
class RetryBudget:
    """超出邊界時的重試預算

    limit 為 None 表示無限重試；否則為最多嘗試次數 (>= 1)。

    Attributes:
        limit: 最多嘗試次數，None 代表無限制
    """
    limit: Optional[int] = None

    def __post_init__(self):
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"A limited retry budget must be >= 1, got {self.limit}")

    @classmethod
    def unlimited(cls) -> "RetryBudget":
        return cls(None)

    @classmethod
    def limited(cls, count: int) -> "RetryBudget":
        return cls(count)

    @classmethod
    def from_declared(cls, count: int) -> "RetryBudget":
        """由參數值建立；宣告值 0 代表無限重試"""
        if count == 0:
            return cls.unlimited()
        return cls.limited(count)

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    def exhausted(self, attempts: int) -> bool:
        """已嘗試 attempts 次後是否用盡預算"""
        return self.limit is not None and attempts >= self.limit


# 預設常數
DEFAULT_OUT_OF_BOUNDS_RETRIES = 100
SIMULATED_BINARY_CROSSOVER_EPS = 1.0e-14
MAXIMUM_INTEGER_IN_DOUBLE = 9.007199254740992e15
INTERMEDIATE_MAX_TRIES = 100_000


class Gene(ABC):
    """不透明基因基底類別

    GENE 類型的基因組以 Gene 物件為元素。子類別必須定義 reset、
    等價比較與雜湊；文字與二進位序列化為選用功能。
    """

    @abstractmethod
    def reset(self, rng: np.random.Generator) -> None:
        """隨機重新初始化此基因"""

    def mutate(self, rng: np.random.Generator) -> None:
        """突變此基因，預設為重新初始化"""
        self.reset(rng)

    def clone(self) -> "Gene":
        return copy.deepcopy(self)

    @abstractmethod
    def __eq__(self, other: object) -> bool:
        ...

    @abstractmethod
    def __hash__(self) -> int:
        ...

    def to_human_string(self) -> str:
        return str(self)

    def encode(self) -> str:
        """編碼為可由 decode 讀回的字串"""
        raise NotImplementedError(f"encode() is not implemented in {type(self).__name__}")

    def decode(self, text: str) -> None:
        """從 encode 的輸出還原此基因"""
        raise NotImplementedError(f"decode() is not implemented in {type(self).__name__}")

    def to_bytes(self) -> bytes:
        raise NotImplementedError(f"to_bytes() is not implemented in {type(self).__name__}")

    def from_bytes(self, data: bytes) -> None:
        raise NotImplementedError(f"from_bytes() is not implemented in {type(self).__name__}")
