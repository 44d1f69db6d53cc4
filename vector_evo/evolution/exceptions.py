"""
Vector Evolution Exception Classes

This module defines custom exceptions for the vector genome variation engine.
Configuration errors are raised only while a species is being set up; contract
violations signal incorrect wiring between a genome and the operators invoked
on it; format errors signal malformed serialized payloads.
"""

import math
from typing import Optional, Any


class VectorEvolutionError(Exception):
    """Base exception class for all vector-evolution errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.suggestion:
            return f"{self.message}. Suggestion: {self.suggestion}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(VectorEvolutionError):
    """
    Raised when a species declaration is invalid.

    The offending parameter path (for example ``vector.species.min-gene.3``)
    is stored in ``parameter`` and always appears in the message.
    """

    def __init__(self, parameter: str, message: str, suggestion: Optional[str] = None):
        self.parameter = parameter
        super().__init__(f"{message} [{parameter}]", suggestion)


class MissingParameterError(ConfigurationError):
    """Raised when a required parameter is not declared."""

    def __init__(self, parameter: str, suggestion: Optional[str] = None):
        super().__init__(parameter, f"Missing required parameter '{parameter}'", suggestion)


class InvalidParameterError(ConfigurationError):
    """Raised when a parameter is declared with an unusable value."""

    def __init__(self, parameter: str, value: Any, expected: str):
        self.value = value
        self.expected = expected
        super().__init__(
            parameter,
            f"Invalid value {value!r} for parameter '{parameter}'",
            f"Value must be {expected}",
        )


class InvalidBoundsError(ConfigurationError):
    """Raised when min-gene/max-gene are inverted, NaN or outside the element range."""

    def __init__(self, parameter: str, gene_index: int, min_gene: float, max_gene: float,
                 reason: str):
        self.gene_index = gene_index
        self.min_gene = min_gene
        self.max_gene = max_gene
        super().__init__(
            parameter,
            f"Invalid bounds for gene {gene_index}: min-gene={min_gene}, max-gene={max_gene} ({reason})",
            "Declare min-gene <= max-gene within the range of the element kind",
        )


class InvalidSegmentError(ConfigurationError):
    """Raised when genome segments are missing, out of range or not contiguous."""

    def __init__(self, parameter: str, segment: int, reason: str):
        self.segment = segment
        super().__init__(
            parameter,
            f"Invalid genome segment {segment}: {reason}",
            "Segments must partition the genome contiguously from gene 0 to the last gene",
        )


class UnsupportedCrossoverError(ConfigurationError):
    """Raised when a crossover type is unknown or unsupported by the element kind."""

    def __init__(self, parameter: str, crossover_type: str, element_kind: Optional[str] = None):
        self.crossover_type = crossover_type
        self.element_kind = element_kind
        if element_kind is None:
            message = f"Unknown crossover type '{crossover_type}'"
            suggestion = "Use one of: one, one-nonempty, two, two-nonempty, any, line, intermediate, sbx"
        else:
            message = f"Crossover type '{crossover_type}' is not supported for {element_kind} genomes"
            suggestion = "Choose a point-based crossover for this element kind"
        super().__init__(parameter, message, suggestion)


class UnsupportedMutationError(ConfigurationError):
    """Raised when a mutation type is unknown or unsupported by the element kind."""

    def __init__(self, parameter: str, mutation_type: str, element_kind: Optional[str] = None):
        self.mutation_type = mutation_type
        self.element_kind = element_kind
        if element_kind is None:
            message = f"Unknown mutation type '{mutation_type}'"
            suggestion = "Use one of: reset, gauss, polynomial, integer-reset, integer-random-walk"
        else:
            message = f"Mutation type '{mutation_type}' is not supported for {element_kind} genomes"
            suggestion = "Integer genomes support reset and integer-random-walk mutation"
        super().__init__(parameter, message, suggestion)


# =============================================================================
# Contract Violations
# =============================================================================

class ContractViolationError(VectorEvolutionError):
    """Raised when an operator is invoked on genomes it cannot handle."""


class SpeciesMismatchError(ContractViolationError):
    """Raised when a genome is not bound to the species an operator belongs to."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Genome passed to {operation} belongs to a different species",
            "Create genomes with the species whose operators are used on them",
        )


class ElementKindMismatchError(ContractViolationError):
    """Raised when an operation does not support the genome's element kind."""

    def __init__(self, operation: str, element_kind: str):
        self.operation = operation
        self.element_kind = element_kind
        super().__init__(f"{operation} is not supported for {element_kind} genomes")


# =============================================================================
# Serialization Errors
# =============================================================================

class GenomeFormatError(VectorEvolutionError):
    """Raised when a serialized genome cannot be decoded."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)


# =============================================================================
# Validation Functions
# =============================================================================

def validate_probability(parameter: str, value: float, upper: float = 1.0,
                         inclusive_upper: bool = True) -> float:
    """
    Validate that a probability lies in [0, upper].

    Raises:
        InvalidParameterError: If the value is NaN or outside the interval
    """
    too_high = value > upper if inclusive_upper else value >= upper
    if math.isnan(value) or value < 0.0 or too_high:
        closing = "]" if inclusive_upper else ")"
        raise InvalidParameterError(parameter, value, f"in [0.0, {upper}{closing}")
    return value


def validate_non_negative(parameter: str, value: float) -> float:
    """
    Validate that a count or index is >= 0.

    Raises:
        InvalidParameterError: If the value is negative or NaN
    """
    if math.isnan(value) or value < 0:
        raise InvalidParameterError(parameter, value, ">= 0")
    return value


def validate_positive(parameter: str, value: float) -> float:
    """
    Validate that a value is strictly positive.

    Raises:
        InvalidParameterError: If the value is <= 0 or NaN
    """
    if math.isnan(value) or value <= 0:
        raise InvalidParameterError(parameter, value, "> 0")
    return value


def validate_bounds(parameter: str, gene_index: int, min_gene: float, max_gene: float) -> None:
    """
    Validate a resolved pair of gene bounds.

    Raises:
        InvalidBoundsError: If either bound is NaN or max_gene < min_gene
    """
    if math.isnan(min_gene) or math.isnan(max_gene):
        raise InvalidBoundsError(parameter, gene_index, min_gene, max_gene, "bound is NaN")
    if max_gene < min_gene:
        raise InvalidBoundsError(parameter, gene_index, min_gene, max_gene,
                                 "max-gene is smaller than min-gene")
