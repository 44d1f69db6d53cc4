"""
向量物種 (Vector Species)

物種是同一族基因組共用的限制表：基因組長度、交叉方式，以及逐基因的
邊界、突變機率、突變方式與重試預算。物種在 setup() 完成驗證後即不可變，
可在多個工作者之間安全共用。

逐基因參數依下列順序解析，後寫入者優先：

1. 全域預設值 (key)
2. 區段值 (segment.<n>.key)
3. 明確的逐基因值 (key.<i>)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np

from .exceptions import (
    ConfigurationError,
    InvalidBoundsError,
    InvalidParameterError,
    InvalidSegmentError,
    MissingParameterError,
    UnsupportedCrossoverError,
    UnsupportedMutationError,
    validate_bounds,
    validate_non_negative,
    validate_positive,
    validate_probability,
)
from .models import (
    DEFAULT_OUT_OF_BOUNDS_RETRIES,
    CrossoverType,
    ElementKind,
    Gene,
    GenomeSizing,
    MutationType,
    RetryBudget,
)
from .parameters import DEFAULT_BASE, ParameterSource, join_key

logger = logging.getLogger(__name__)


# 參數名稱
P_ELEMENT_KIND = "element-kind"
P_GENE = "gene"
P_GENOME_SIZE = "genome-size"
P_CHUNK_SIZE = "chunk-size"
P_MIN_INITIAL_SIZE = "min-initial-size"
P_MAX_INITIAL_SIZE = "max-initial-size"
P_GEOMETRIC_PROBABILITY = "geometric-prob"
P_CROSSOVER_TYPE = "crossover-type"
P_CROSSOVER_PROBABILITY = "crossover-prob"
P_LINE_EXTENSION = "line-extension"
P_CROSSOVER_DISTRIBUTION_INDEX = "crossover-distribution-index"
P_NUM_SEGMENTS = "num-segments"
P_SEGMENT_TYPE = "segment-type"
P_SEGMENT = "segment"
P_SEGMENT_START = "start"
P_SEGMENT_END = "end"

P_MUTATION_PROBABILITY = "mutation-prob"
P_DUPLICATE_RETRIES = "duplicate-retries"
P_OUT_OF_BOUNDS_RETRIES = "out-of-bounds-retries"
P_MIN_GENE = "min-gene"
P_MAX_GENE = "max-gene"
P_MUTATION_TYPE = "mutation-type"
P_MUTATION_STDEV = "mutation-stdev"
P_MUTATION_DISTRIBUTION_INDEX = "mutation-distribution-index"
P_POLYNOMIAL_ALTERNATIVE = "alternative-polynomial-version"
P_RANDOM_WALK_PROBABILITY = "random-walk-probability"
P_MUTATION_BOUNDED = "mutation-bounded"

V_GEOMETRIC = "geometric"
V_UNIFORM = "uniform"


def _frozen(values: np.ndarray) -> np.ndarray:
    array = np.array(values, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class VectorSpecies:
    """向量基因組的物種限制表

    逐基因陣列長度為 genome_size + 1，最後一格是超出宣告長度之基因
    （可變長度基因組）所使用的參數。存取方法會將索引限制在最後一格。

    Attributes:
        element_kind: 基因元素類型
        genome_size: 固定長度基因組的長度（動態長度時為 1）
        chunk_size: 點交叉的交換單位
        sizing: 初始長度的決定方式
        min_initial_size: 動態長度的最小初始長度
        max_initial_size: 均勻長度的最大初始長度
        growth_probability: 幾何長度每次增長的機率
        crossover_type: 交叉演算法
        crossover_probability: any-point 交叉中每個區塊交換的機率
        line_extension: 線性/中間重組的延伸距離
        crossover_distribution_index: SBX 分佈指數
        min_genes: 各基因最小值
        max_genes: 各基因最大值
        mutation_probabilities: 各基因突變機率
        mutation_types: 各基因突變方式
        duplicate_retries: 突變結果與原值相同時的額外重試次數
        out_of_bounds_retries: 超出邊界時的重試預算
        mutation_stdevs: 高斯突變標準差
        mutation_distribution_indices: 多項式突變分佈指數
        polynomial_alternatives: 是否使用多項式突變的替代公式
        random_walk_probabilities: 隨機漫步每步繼續的機率
        mutation_bounded: 突變結果是否必須落在邊界內
        gene_prototype: GENE 類型的原型基因
    """
    element_kind: ElementKind
    genome_size: int
    chunk_size: int = 1
    sizing: GenomeSizing = GenomeSizing.FIXED
    min_initial_size: int = 0
    max_initial_size: int = 0
    growth_probability: float = 0.0
    crossover_type: CrossoverType = CrossoverType.ONE_POINT
    crossover_probability: float = 0.0
    line_extension: float = 0.0
    crossover_distribution_index: int = 0
    min_genes: np.ndarray = field(default=None, repr=False)
    max_genes: np.ndarray = field(default=None, repr=False)
    mutation_probabilities: np.ndarray = field(default=None, repr=False)
    mutation_types: Tuple[MutationType, ...] = field(default=(), repr=False)
    duplicate_retries: np.ndarray = field(default=None, repr=False)
    out_of_bounds_retries: Tuple[RetryBudget, ...] = field(default=(), repr=False)
    mutation_stdevs: np.ndarray = field(default=None, repr=False)
    mutation_distribution_indices: np.ndarray = field(default=None, repr=False)
    polynomial_alternatives: np.ndarray = field(default=None, repr=False)
    random_walk_probabilities: np.ndarray = field(default=None, repr=False)
    mutation_bounded: np.ndarray = field(default=None, repr=False)
    gene_prototype: Optional[Gene] = field(default=None, repr=False)

    def __post_init__(self):
        slots = self.genome_size + 1
        defaults = {
            "min_genes": (np.zeros(slots), np.float64),
            "max_genes": (np.zeros(slots), np.float64),
            "mutation_probabilities": (np.zeros(slots), np.float64),
            "duplicate_retries": (np.zeros(slots), np.int64),
            "mutation_stdevs": (np.full(slots, np.nan), np.float64),
            "mutation_distribution_indices": (np.full(slots, -1), np.int64),
            "polynomial_alternatives": (np.ones(slots), np.bool_),
            "random_walk_probabilities": (np.full(slots, np.nan), np.float64),
            "mutation_bounded": (np.ones(slots), np.bool_),
        }
        for name, (default, dtype) in defaults.items():
            value = getattr(self, name)
            array = default if value is None else value
            array = np.asarray(array, dtype=dtype)
            if array.shape != (slots,):
                raise ValueError(f"{name} must have length genome_size + 1 = {slots}, got {array.shape}")
            object.__setattr__(self, name, _frozen(array.astype(dtype)))

        if not self.mutation_types:
            object.__setattr__(self, "mutation_types", (MutationType.RESET,) * slots)
        if not self.out_of_bounds_retries:
            object.__setattr__(
                self, "out_of_bounds_retries",
                (RetryBudget.limited(DEFAULT_OUT_OF_BOUNDS_RETRIES),) * slots,
            )
        object.__setattr__(self, "mutation_types", tuple(self.mutation_types))
        object.__setattr__(self, "out_of_bounds_retries", tuple(self.out_of_bounds_retries))
        if len(self.mutation_types) != slots or len(self.out_of_bounds_retries) != slots:
            raise ValueError(f"Per-gene tuples must have length genome_size + 1 = {slots}")
        if self.element_kind is ElementKind.GENE and self.gene_prototype is None:
            raise ValueError("GENE species require a gene prototype")

    # ------------------------------------------------------------------
    # 建構
    # ------------------------------------------------------------------

    @classmethod
    def setup(cls, declarations: Mapping[str, Any], base: str = DEFAULT_BASE) -> "VectorSpecies":
        """從參數宣告建立並驗證物種

        Args:
            declarations: 相對於 base 的參數鍵值對應表
            base: 參數路徑前綴，用於錯誤訊息

        Returns:
            驗證完成、不可變的物種

        Raises:
            ConfigurationError: 任何宣告無效時，訊息包含出錯的參數路徑
        """
        return _SpeciesBuilder(ParameterSource(declarations, base)).build()

    # ------------------------------------------------------------------
    # 逐基因存取
    # ------------------------------------------------------------------

    def _slot(self, index: int) -> int:
        return index if index < self.genome_size else self.genome_size

    def min_gene(self, index: int) -> float:
        return float(self.min_genes[self._slot(index)])

    def max_gene(self, index: int) -> float:
        return float(self.max_genes[self._slot(index)])

    def mutation_probability(self, index: int) -> float:
        return float(self.mutation_probabilities[self._slot(index)])

    def mutation_type(self, index: int) -> MutationType:
        return self.mutation_types[self._slot(index)]

    def duplicate_retry_count(self, index: int) -> int:
        return int(self.duplicate_retries[self._slot(index)])

    def retry_budget(self, index: int) -> RetryBudget:
        return self.out_of_bounds_retries[self._slot(index)]

    def mutation_stdev(self, index: int) -> float:
        return float(self.mutation_stdevs[self._slot(index)])

    def mutation_distribution_index(self, index: int) -> int:
        return int(self.mutation_distribution_indices[self._slot(index)])

    def polynomial_is_alternative(self, index: int) -> bool:
        return bool(self.polynomial_alternatives[self._slot(index)])

    def random_walk_probability(self, index: int) -> float:
        return float(self.random_walk_probabilities[self._slot(index)])

    def mutation_is_bounded(self, index: int) -> bool:
        return bool(self.mutation_bounded[self._slot(index)])

    # ------------------------------------------------------------------
    # 查詢
    # ------------------------------------------------------------------

    @property
    def is_dynamic(self) -> bool:
        """是否為可變長度基因組"""
        return self.sizing is not GenomeSizing.FIXED

    def chunk_count(self, length: int) -> int:
        return length // self.chunk_size

    def in_bounds(self, index: int, value: float) -> bool:
        return self.min_gene(index) <= value <= self.max_gene(index)

    # ------------------------------------------------------------------
    # 外部介面
    # ------------------------------------------------------------------

    def create_individual(self, rng: np.random.Generator):
        """建立一個新的隨機基因組"""
        from .factory import GenomeFactory
        return GenomeFactory(self).create(rng)

    def reset(self, genome, rng: np.random.Generator) -> None:
        """以均勻隨機值重新填滿基因組"""
        from .factory import GenomeFactory
        GenomeFactory(self).reset(genome, rng)

    def crossover(self, a, b, rng: np.random.Generator,
                  kind: Optional[CrossoverType] = None) -> None:
        """就地交叉兩個基因組；kind 未指定時使用物種的交叉方式"""
        from .crossover import CrossoverOperator
        CrossoverOperator(self).crossover(a, b, rng, kind)

    def mutate(self, genome, rng: np.random.Generator) -> None:
        """就地突變基因組"""
        from .mutation import MutationOperator
        MutationOperator(self).mutate(genome, rng)


class _SpeciesBuilder:
    """讀取參數並組出 VectorSpecies

    所有設定錯誤都在這裡偵測；下游元件信任驗證過的物種。
    """

    def __init__(self, params: ParameterSource):
        self.params = params
        self.kind = ElementKind.DOUBLE
        self.sizing = GenomeSizing.FIXED
        self.genome_size = 1
        self.chunk_size = 1
        self.min_initial_size = 0
        self.max_initial_size = 0
        self.growth_probability = 0.0
        self._warned = set()

    def _warn(self, key: str, message: str) -> None:
        if key not in self._warned:
            self._warned.add(key)
            logger.warning(f"{message} [{self.params.path(key)}]")

    def build(self) -> VectorSpecies:
        self._setup_element_kind()
        prototype = self._setup_prototype()
        self._setup_genome()
        self._allocate()
        self._setup_globals()
        crossover = self._setup_crossover()
        self._setup_segments()
        for index in range(self.genome_size):
            self._load_gene(index, "", str(index))
        self._validate_genes()

        crossover_type, crossover_probability, line_extension, distribution_index = crossover
        return VectorSpecies(
            element_kind=self.kind,
            genome_size=self.genome_size,
            chunk_size=self.chunk_size,
            sizing=self.sizing,
            min_initial_size=self.min_initial_size,
            max_initial_size=self.max_initial_size,
            growth_probability=self.growth_probability,
            crossover_type=crossover_type,
            crossover_probability=crossover_probability,
            line_extension=line_extension,
            crossover_distribution_index=distribution_index,
            min_genes=self.min_genes,
            max_genes=self.max_genes,
            mutation_probabilities=self.mutation_probabilities,
            mutation_types=tuple(self.mutation_types),
            duplicate_retries=self.duplicate_retries,
            out_of_bounds_retries=tuple(self.retry_budgets),
            mutation_stdevs=self.stdevs,
            mutation_distribution_indices=self.distribution_indices,
            polynomial_alternatives=self.alternatives,
            random_walk_probabilities=self.walk_probabilities,
            mutation_bounded=self.bounded,
            gene_prototype=prototype,
        )

    # ------------------------------------------------------------------

    def _setup_element_kind(self) -> None:
        raw = self.params.get_object(P_ELEMENT_KIND)
        if isinstance(raw, ElementKind):
            self.kind = raw
            return
        name = str(raw).strip().lower()
        for kind in ElementKind:
            if kind.value == name:
                self.kind = kind
                return
        raise InvalidParameterError(
            self.params.path(P_ELEMENT_KIND), raw,
            "one of: " + ", ".join(kind.value for kind in ElementKind),
        )

    def _setup_prototype(self) -> Optional[Gene]:
        if self.kind is not ElementKind.GENE:
            return None
        raw = self.params.get_object(P_GENE, None)
        if raw is None:
            raise MissingParameterError(
                self.params.path(P_GENE),
                "Gene genomes need a prototype Gene instance or Gene subclass",
            )
        if isinstance(raw, type) and issubclass(raw, Gene):
            raw = raw()
        if not isinstance(raw, Gene):
            raise InvalidParameterError(self.params.path(P_GENE), raw, "a Gene instance or subclass")
        return raw

    def _setup_genome(self) -> None:
        params = self.params
        form = params.get_string(P_GENOME_SIZE, None)
        if form is None:
            raise MissingParameterError(params.path(P_GENOME_SIZE),
                                        "Declare an integer size, 'geometric' or 'uniform'")

        if form.lower() in (V_GEOMETRIC, V_UNIFORM):
            self.sizing = GenomeSizing.GEOMETRIC if form.lower() == V_GEOMETRIC else GenomeSizing.UNIFORM
            self.genome_size = 1
            self.chunk_size = params.get_int(P_CHUNK_SIZE, 1)
            if self.chunk_size != 1:
                raise InvalidParameterError(params.path(P_CHUNK_SIZE), self.chunk_size,
                                            f"1 when using {form.lower()} size initialization")
            if self.sizing is GenomeSizing.GEOMETRIC:
                self._setup_geometric()
            else:
                self._setup_uniform()
            return

        self.genome_size = params.get_int(P_GENOME_SIZE)
        if self.genome_size <= 0:
            raise InvalidParameterError(params.path(P_GENOME_SIZE), self.genome_size, "> 0")
        self.chunk_size = params.get_int(P_CHUNK_SIZE, 1)
        if self.chunk_size <= 0 or self.chunk_size > self.genome_size:
            raise InvalidParameterError(params.path(P_CHUNK_SIZE), self.chunk_size,
                                        f"> 0 and <= genome-size ({self.genome_size})")
        if self.genome_size % self.chunk_size != 0:
            raise InvalidParameterError(params.path(P_CHUNK_SIZE), self.chunk_size,
                                        f"a divisor of genome-size ({self.genome_size})")

    def _setup_geometric(self) -> None:
        params = self.params
        self.min_initial_size = params.get_int(P_MIN_INITIAL_SIZE, 0)
        if self.min_initial_size < 0:
            self._warn(P_MIN_INITIAL_SIZE,
                       "Geometric size initialization with a negative minimum initial size, assuming 0")
            self.min_initial_size = 0
        probability = params.get_float(P_GEOMETRIC_PROBABILITY, None)
        if probability is None:
            raise MissingParameterError(params.path(P_GEOMETRIC_PROBABILITY),
                                        "Geometric size initialization needs a growth probability in [0.0, 1.0)")
        self.growth_probability = validate_probability(
            params.path(P_GEOMETRIC_PROBABILITY), probability, inclusive_upper=False)

    def _setup_uniform(self) -> None:
        params = self.params
        for key in (P_MIN_INITIAL_SIZE, P_MAX_INITIAL_SIZE):
            if not params.exists(key):
                raise MissingParameterError(params.path(key),
                                            "Uniform size initialization needs min and max initial sizes >= 0")
        self.min_initial_size = int(validate_non_negative(
            params.path(P_MIN_INITIAL_SIZE), params.get_int(P_MIN_INITIAL_SIZE)))
        self.max_initial_size = int(validate_non_negative(
            params.path(P_MAX_INITIAL_SIZE), params.get_int(P_MAX_INITIAL_SIZE)))
        if self.max_initial_size < self.min_initial_size:
            raise InvalidParameterError(params.path(P_MAX_INITIAL_SIZE), self.max_initial_size,
                                        f">= min-initial-size ({self.min_initial_size})")

    def _allocate(self) -> None:
        slots = self.genome_size + 1
        self.min_genes = np.zeros(slots)
        self.max_genes = np.zeros(slots)
        # 每個基因的邊界來自哪個參數鍵，錯誤訊息用
        self.min_keys: List[str] = [P_MIN_GENE] * slots
        self.max_keys: List[str] = [P_MAX_GENE] * slots
        self.mutation_probabilities = np.zeros(slots)
        self.mutation_types: List[MutationType] = [MutationType.RESET] * slots
        self.duplicate_retries = np.zeros(slots, dtype=np.int64)
        self.retry_budgets: List[RetryBudget] = [RetryBudget.limited(DEFAULT_OUT_OF_BOUNDS_RETRIES)] * slots
        self.stdevs = np.full(slots, np.nan)
        self.distribution_indices = np.full(slots, -1, dtype=np.int64)
        self.alternatives = np.ones(slots, dtype=np.bool_)
        self.walk_probabilities = np.full(slots, np.nan)
        self.bounded = np.ones(slots, dtype=np.bool_)
        self.bounded_declared = np.zeros(slots, dtype=np.bool_)
        self.alternative_declared = np.zeros(slots, dtype=np.bool_)

    def _setup_globals(self) -> None:
        params = self.params

        if not params.exists(P_MUTATION_PROBABILITY):
            raise MissingParameterError(params.path(P_MUTATION_PROBABILITY),
                                        "Declare a global mutation probability in [0.0, 1.0]")

        if self.kind.is_numeric:
            minimum = params.get_float(P_MIN_GENE, 0.0)
            maximum = params.get_float(P_MAX_GENE, minimum)
            validate_bounds(params.path(P_MAX_GENE), 0, minimum, maximum)
            self.min_genes[:] = minimum
            self.max_genes[:] = maximum
            if not params.exists(P_MUTATION_TYPE):
                self._warn(P_MUTATION_TYPE, "No global mutation type given, assuming 'reset' mutation")

        self._load_slots(slice(None), "", "")

    def _setup_crossover(self) -> Tuple[CrossoverType, float, float, int]:
        params = self.params
        name = params.get_string(P_CROSSOVER_TYPE, None)
        if name is None:
            self._warn(P_CROSSOVER_TYPE, "No crossover type given, assuming one-point crossover")
            crossover_type = CrossoverType.ONE_POINT
        else:
            crossover_type = CrossoverType.parse(name)
            if crossover_type is None:
                raise UnsupportedCrossoverError(params.path(P_CROSSOVER_TYPE), name)

        probability = 0.0
        extension = 0.0
        distribution_index = 0

        if crossover_type in (CrossoverType.LINE, CrossoverType.INTERMEDIATE):
            if not self.kind.is_numeric:
                raise UnsupportedCrossoverError(params.path(P_CROSSOVER_TYPE),
                                                crossover_type.value, self.kind.value)
            if not params.exists(P_LINE_EXTENSION):
                raise MissingParameterError(params.path(P_LINE_EXTENSION),
                                            "Line and intermediate recombination need a line extension >= 0.0 (0.25 is common)")
            extension = validate_non_negative(params.path(P_LINE_EXTENSION),
                                              params.get_float(P_LINE_EXTENSION))
        elif crossover_type is CrossoverType.ANY_POINT:
            if not params.exists(P_CROSSOVER_PROBABILITY):
                raise MissingParameterError(params.path(P_CROSSOVER_PROBABILITY),
                                            "Any-point crossover needs a per-chunk probability in [0.0, 0.5]")
            probability = validate_probability(params.path(P_CROSSOVER_PROBABILITY),
                                               params.get_float(P_CROSSOVER_PROBABILITY), upper=0.5)
        elif crossover_type is CrossoverType.SIMULATED_BINARY:
            if not self.kind.is_floating:
                raise UnsupportedCrossoverError(params.path(P_CROSSOVER_TYPE),
                                                crossover_type.value, self.kind.value)
            if not params.exists(P_CROSSOVER_DISTRIBUTION_INDEX):
                raise MissingParameterError(params.path(P_CROSSOVER_DISTRIBUTION_INDEX),
                                            "Simulated binary crossover needs a distribution index >= 0")
            distribution_index = int(validate_non_negative(
                params.path(P_CROSSOVER_DISTRIBUTION_INDEX),
                params.get_int(P_CROSSOVER_DISTRIBUTION_INDEX)))

        if crossover_type is not CrossoverType.ANY_POINT and params.exists(P_CROSSOVER_PROBABILITY):
            self._warn(P_CROSSOVER_PROBABILITY,
                       "'crossover-prob' is only used by any-point crossover, where it is the "
                       "probability that a chunk is exchanged")

        if crossover_type in (CrossoverType.ONE_POINT_NO_NOP, CrossoverType.TWO_POINT_NO_NOP) \
                and self.sizing is GenomeSizing.FIXED \
                and self.genome_size // self.chunk_size < 2:
            raise ConfigurationError(
                params.path(P_CROSSOVER_TYPE),
                f"Crossover type '{crossover_type.value}' needs at least 2 chunks, "
                f"but the genome has {self.genome_size // self.chunk_size}",
                "Use 'one' or 'two' crossover, or a smaller chunk-size",
            )

        return crossover_type, probability, extension, distribution_index

    # ------------------------------------------------------------------
    # 區段
    # ------------------------------------------------------------------

    def _setup_segments(self) -> None:
        params = self.params
        if not params.exists(P_NUM_SEGMENTS):
            return
        if self.sizing is not GenomeSizing.FIXED:
            self._warn(P_NUM_SEGMENTS,
                       "Dynamic initial sizing used with per-segment declarations, "
                       "global min/max declarations are probably intended")
        count = params.get_int(P_NUM_SEGMENTS)
        if count < 0:
            raise InvalidParameterError(params.path(P_NUM_SEGMENTS), count, ">= 0")
        if count == 0:
            self._warn(P_NUM_SEGMENTS, "The number of genome segments is 0, no segments will be defined")
            return

        segment_type = params.get_string(P_SEGMENT_TYPE, P_SEGMENT_START).lower()
        if segment_type == P_SEGMENT_START:
            self._segments_by_start(count)
        elif segment_type == P_SEGMENT_END:
            self._segments_by_end(count)
        else:
            raise InvalidParameterError(params.path(P_SEGMENT_TYPE), segment_type,
                                        f"'{P_SEGMENT_START}' or '{P_SEGMENT_END}'")

    def _segment_index(self, segment: int, which: str) -> Tuple[str, int]:
        key = join_key(P_SEGMENT, segment, which)
        if not self.params.exists(key):
            raise InvalidSegmentError(self.params.path(key), segment,
                                      f"no {which} index declared")
        return key, self.params.get_int(key)

    def _segments_by_start(self, count: int) -> None:
        previous_start = self.genome_size
        for segment in range(count - 1, -1, -1):
            key, start = self._segment_index(segment, P_SEGMENT_START)
            if start < 0 or start >= previous_start:
                raise InvalidSegmentError(self.params.path(key), segment,
                                          f"start index {start} must be >= 0 and < {previous_start}")
            if segment == 0 and start != 0:
                raise InvalidSegmentError(self.params.path(key), segment,
                                          f"the first segment must start at 0, not {start}")
            prefix = join_key(P_SEGMENT, segment)
            self._load_slots(slice(start, previous_start), prefix, "")
            previous_start = start

    def _segments_by_end(self, count: int) -> None:
        previous_end = -1
        for segment in range(count):
            key, end = self._segment_index(segment, P_SEGMENT_END)
            if end <= previous_end or end >= self.genome_size:
                raise InvalidSegmentError(self.params.path(key), segment,
                                          f"end index {end} must be > {previous_end} and < {self.genome_size}")
            if segment == count - 1 and end != self.genome_size - 1:
                raise InvalidSegmentError(self.params.path(key), segment,
                                          f"the last segment must end at {self.genome_size - 1}, not {end}")
            prefix = join_key(P_SEGMENT, segment)
            self._load_slots(slice(previous_end + 1, end + 1), prefix, "")
            previous_end = end

    # ------------------------------------------------------------------
    # 逐基因參數
    # ------------------------------------------------------------------

    def _load_gene(self, index: int, prefix: str, postfix: str) -> None:
        self._load_slots(slice(index, index + 1), prefix, postfix)

    def _load_slots(self, slots: slice, prefix: str, postfix: str) -> None:
        """將 prefix.key.postfix 形式的參數寫入 slots 範圍"""
        params = self.params
        per_gene = prefix != "" or postfix != ""

        def key_of(name: str) -> str:
            return join_key(prefix, name, postfix)

        def present(name: str) -> bool:
            return params.exists(key_of(name))

        key = key_of(P_MUTATION_PROBABILITY)
        if present(P_MUTATION_PROBABILITY):
            self.mutation_probabilities[slots] = validate_probability(
                params.path(key), params.get_float(key))

        key = key_of(P_DUPLICATE_RETRIES)
        if present(P_DUPLICATE_RETRIES):
            self.duplicate_retries[slots] = validate_non_negative(params.path(key), params.get_int(key))

        key = key_of(P_OUT_OF_BOUNDS_RETRIES)
        if present(P_OUT_OF_BOUNDS_RETRIES):
            count = int(validate_non_negative(params.path(key), params.get_int(key)))
            self._assign(self.retry_budgets, slots, RetryBudget.from_declared(count))

        if not self.kind.is_numeric:
            return

        if per_gene:
            self._load_bounds(slots, key_of)

        key = key_of(P_MUTATION_TYPE)
        if present(P_MUTATION_TYPE):
            self._assign(self.mutation_types, slots, self._parse_mutation_type(key))

        key = key_of(P_MUTATION_STDEV)
        if present(P_MUTATION_STDEV):
            self.stdevs[slots] = validate_positive(params.path(key), params.get_float(key))

        key = key_of(P_MUTATION_DISTRIBUTION_INDEX)
        if present(P_MUTATION_DISTRIBUTION_INDEX):
            self.distribution_indices[slots] = validate_non_negative(params.path(key), params.get_int(key))

        key = key_of(P_POLYNOMIAL_ALTERNATIVE)
        if present(P_POLYNOMIAL_ALTERNATIVE):
            self.alternatives[slots] = params.get_bool(key)
            self.alternative_declared[slots] = True

        key = key_of(P_RANDOM_WALK_PROBABILITY)
        if present(P_RANDOM_WALK_PROBABILITY):
            probability = validate_probability(params.path(key), params.get_float(key))
            if probability == 0.0 or probability == 1.0:
                raise InvalidParameterError(params.path(key), probability, "in (0.0, 1.0)")
            self.walk_probabilities[slots] = probability

        key = key_of(P_MUTATION_BOUNDED)
        if present(P_MUTATION_BOUNDED):
            self.bounded[slots] = params.get_bool(key)
            self.bounded_declared[slots] = True

    def _load_bounds(self, slots: slice, key_of) -> None:
        params = self.params
        found = {}
        for name, target, sources in ((P_MIN_GENE, self.min_genes, self.min_keys),
                                      (P_MAX_GENE, self.max_genes, self.max_keys)):
            key = key_of(name)
            if not params.exists(key):
                continue
            value = params.get_float(key)
            if math.isnan(value) or not self.kind.in_native_range(value):
                raise InvalidParameterError(params.path(key), value,
                                            f"a number within the range of {self.kind.value} genes")
            target[slots] = value
            self._assign(sources, slots, key)
            found[name] = key
            if self.sizing is not GenomeSizing.FIXED:
                self._warn(name, "Dynamic initial sizing used with per-gene or per-segment "
                                 f"{name} declarations, global declarations are probably intended")
        if P_MAX_GENE in found and P_MIN_GENE not in found:
            logger.warning(f"Max gene specified but not min gene [{params.path(key_of(P_MIN_GENE))}]")
        if P_MIN_GENE in found and P_MAX_GENE not in found:
            logger.warning(f"Min gene specified but not max gene [{params.path(key_of(P_MAX_GENE))}]")

    def _parse_mutation_type(self, key: str) -> MutationType:
        params = self.params
        name = params.get_string(key)
        mutation_type = MutationType.parse(name)
        if mutation_type is None:
            raise UnsupportedMutationError(params.path(key), name)
        if self.kind.is_integer:
            if mutation_type in (MutationType.GAUSS, MutationType.POLYNOMIAL):
                raise UnsupportedMutationError(params.path(key), name, self.kind.value)
        elif mutation_type.is_integer_type:
            if "integer-mutation" not in self._warned:
                self._warned.add("integer-mutation")
                logger.warning(f"Integer mutation '{mutation_type.value}' used on {self.kind.value} genes, "
                               f"these genes will only be set to integer values")
        return mutation_type

    @staticmethod
    def _assign(values: List[Any], slots: slice, value: Any) -> None:
        for index in range(*slots.indices(len(values))):
            values[index] = value

    # ------------------------------------------------------------------
    # 最終驗證
    # ------------------------------------------------------------------

    def _bounds_key(self, index: int) -> str:
        """錯誤訊息中代表此基因邊界的參數鍵，較具體的宣告優先"""
        if self.max_keys[index] != P_MAX_GENE:
            return self.max_keys[index]
        return self.min_keys[index]

    @staticmethod
    def _float32_between(minimum: float, maximum: float) -> bool:
        """[minimum, maximum] 內是否存在 float32 可表示的值"""
        low = np.float32(minimum)
        if float(low) < minimum:
            low = np.nextafter(low, np.float32(np.inf))
        return float(low) <= maximum

    def _validate_genes(self) -> None:
        if not self.kind.is_numeric:
            return
        params = self.params
        warn_bounded = False
        warn_alternative = False

        for index in range(self.genome_size + 1):
            minimum = float(self.min_genes[index])
            maximum = float(self.max_genes[index])
            bounds_key = params.path(self._bounds_key(index))
            validate_bounds(bounds_key, index, minimum, maximum)
            for name, value, key in ((P_MIN_GENE, minimum, self.min_keys[index]),
                                     (P_MAX_GENE, maximum, self.max_keys[index])):
                if not self.kind.in_native_range(value):
                    raise InvalidBoundsError(params.path(key), index, minimum, maximum,
                                             f"{name} is outside the range of {self.kind.value} genes")
            if self.kind is ElementKind.FLOAT and not self._float32_between(minimum, maximum):
                raise InvalidBoundsError(bounds_key, index, minimum, maximum,
                                         "no float32 value lies between the bounds")

            mutation_type = self.mutation_types[index]
            integral = self.kind.is_integer or mutation_type.is_integer_type
            if integral and (minimum != math.floor(minimum) or maximum != math.floor(maximum)):
                raise InvalidBoundsError(bounds_key, index, minimum, maximum,
                                         "integer mutation needs integral bounds")

            if mutation_type is MutationType.GAUSS and math.isnan(self.stdevs[index]):
                raise MissingParameterError(params.path(P_MUTATION_STDEV),
                                            f"Gaussian mutation of gene {index} needs a strictly positive standard deviation")
            if mutation_type is MutationType.POLYNOMIAL:
                if self.distribution_indices[index] < 0:
                    raise MissingParameterError(params.path(P_MUTATION_DISTRIBUTION_INDEX),
                                                f"Polynomial mutation of gene {index} needs a distribution index >= 0")
                warn_alternative = warn_alternative or not self.alternative_declared[index]
            if mutation_type is MutationType.INTEGER_RANDOM_WALK and math.isnan(self.walk_probabilities[index]):
                raise MissingParameterError(params.path(P_RANDOM_WALK_PROBABILITY),
                                            f"Random walk mutation of gene {index} needs a probability in (0.0, 1.0)")
            if mutation_type.may_be_bounded:
                warn_bounded = warn_bounded or not self.bounded_declared[index]

        if warn_alternative:
            self._warn(P_POLYNOMIAL_ALTERNATIVE,
                       f"Polynomial mutation used but {P_POLYNOMIAL_ALTERNATIVE} is not defined, assuming 'true'")
        if warn_bounded:
            self._warn(P_MUTATION_BOUNDED,
                       f"Gaussian, polynomial or random walk mutation used but {P_MUTATION_BOUNDED} "
                       f"is not defined, assuming 'true'")
