"""
向量基因組變異引擎 (Vector Genome Variation Engine)

以物種限制表描述向量基因組（double、float、int32、int16 與不透明基因），
並提供交叉、突變與初始化演算法。
"""

from .models import (
    ElementKind,
    CrossoverType,
    MutationType,
    GenomeSizing,
    RetryBudget,
    Gene,
    DEFAULT_OUT_OF_BOUNDS_RETRIES,
    SIMULATED_BINARY_CROSSOVER_EPS,
    MAXIMUM_INTEGER_IN_DOUBLE,
    INTERMEDIATE_MAX_TRIES,
)

from .parameters import (
    DEFAULT_BASE,
    ParameterSource,
)

from .species import (
    VectorSpecies,
)

from .genome import (
    Genome,
)

from .factory import (
    GenomeFactory,
)

from .crossover import (
    CrossoverOperator,
)

from .mutation import (
    MutationOperator,
)

from .variable_length import (
    ListCrossoverOperator,
    GeneDuplicationOperator,
)

from .codec import (
    write_genome,
    read_genome,
    format_genome,
    parse_genome,
    genome_to_human,
    genome_to_json,
    genome_from_json,
)

from .random_source import (
    make_generator,
    spawn_generators,
)

from .notifications import (
    warn_once,
    notification_counts,
    reset_notifications,
)

from .exceptions import (
    VectorEvolutionError,
    ConfigurationError,
    MissingParameterError,
    InvalidParameterError,
    InvalidBoundsError,
    InvalidSegmentError,
    UnsupportedCrossoverError,
    UnsupportedMutationError,
    ContractViolationError,
    SpeciesMismatchError,
    ElementKindMismatchError,
    GenomeFormatError,
)

__all__ = [
    # Models
    "ElementKind",
    "CrossoverType",
    "MutationType",
    "GenomeSizing",
    "RetryBudget",
    "Gene",
    "DEFAULT_OUT_OF_BOUNDS_RETRIES",
    "SIMULATED_BINARY_CROSSOVER_EPS",
    "MAXIMUM_INTEGER_IN_DOUBLE",
    "INTERMEDIATE_MAX_TRIES",
    # Parameters
    "DEFAULT_BASE",
    "ParameterSource",
    # Species / Genome
    "VectorSpecies",
    "Genome",
    "GenomeFactory",
    # Operators
    "CrossoverOperator",
    "MutationOperator",
    "ListCrossoverOperator",
    "GeneDuplicationOperator",
    # Codec
    "write_genome",
    "read_genome",
    "format_genome",
    "parse_genome",
    "genome_to_human",
    "genome_to_json",
    "genome_from_json",
    # Random
    "make_generator",
    "spawn_generators",
    # Notifications
    "warn_once",
    "notification_counts",
    "reset_notifications",
    # Exceptions
    "VectorEvolutionError",
    "ConfigurationError",
    "MissingParameterError",
    "InvalidParameterError",
    "InvalidBoundsError",
    "InvalidSegmentError",
    "UnsupportedCrossoverError",
    "UnsupportedMutationError",
    "ContractViolationError",
    "SpeciesMismatchError",
    "ElementKindMismatchError",
    "GenomeFormatError",
]
